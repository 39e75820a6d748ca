"""
Booking request validation and conflict checking.

``submit`` is the only code path that writes to storage. The room lookup,
both overlap checks and the insert share one transaction that starts by
locking the room, so two submissions for the same room are serialized and
cannot both pass the overlap check for the same slot.
"""

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud
from .errors import (
    BookingError,
    InactiveRoom,
    InternalError,
    InvalidDuration,
    InvalidRoom,
    InvalidStartTime,
    InvalidStudentId,
    MissingFields,
    PendingRequestConflict,
    RoomAlreadyBooked,
    StartTimeInPast,
)

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 30
MAX_DURATION_MINUTES = 120

STUDENT_ID_PATTERN = re.compile(r"[0-9]{6,7}")
CLOCK_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})")

PENDING_POLICY_REJECT = "reject"
PENDING_POLICY_WARN = "warn"


@dataclass
class SubmissionResult:
    accepted: bool
    request_id: Optional[int] = None
    reason: Optional[BookingError] = None


def _missing(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_clock(value: str) -> time:
    if not isinstance(value, str):
        raise InvalidStartTime()
    match = CLOCK_PATTERN.fullmatch(value.strip())
    if not match:
        raise InvalidStartTime()
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidStartTime()
    return time(hours, minutes)


def requested_interval(start_clock: str, duration_minutes: int, now: datetime) -> tuple[datetime, datetime]:
    # Always today's date; the client never gets to choose the day.
    start = datetime.combine(now.date(), parse_clock(start_clock))
    return start, start + timedelta(minutes=duration_minutes)


def _number(value):
    """Numeric value of an int, float or numeric string; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _room_key(value):
    number = _number(value)
    if number is None or not math.isfinite(number) or number != int(number):
        return None
    return int(number)


def validate_fields(student_id, room_id, start_clock, duration_minutes):
    """
    Checks that need no storage access, in rejection order.

    Returns the student id as a string and the duration in minutes. Numeric
    student ids are accepted as their decimal digits.
    """
    if any(_missing(value) for value in (student_id, room_id, start_clock, duration_minutes)):
        raise MissingFields()
    if isinstance(student_id, int) and not isinstance(student_id, bool):
        student_id = str(student_id)
    if not isinstance(student_id, str) or not STUDENT_ID_PATTERN.fullmatch(student_id):
        raise InvalidStudentId()
    duration = _number(duration_minutes)
    # NaN fails the range check as well
    if duration is None or not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
        raise InvalidDuration()
    return student_id, duration


def _create_request(db: Session, student_id, room_id, start_clock, duration_minutes, now, pending_policy):
    student_id, duration = validate_fields(student_id, room_id, start_clock, duration_minutes)

    room_key = _room_key(room_id)
    if room_key is None:
        raise InvalidRoom()
    crud.lock_for_write(db)
    room = crud.get_room(db, room_key, lock=True)
    if room is None:
        raise InvalidRoom()
    if not room.is_active:
        raise InactiveRoom()
    room_id = room.id

    start, end = requested_interval(start_clock, duration, now)
    if start <= now:
        raise StartTimeInPast()

    if crud.get_conflicting_bookings(db, room_id, start, end):
        raise RoomAlreadyBooked()

    pending = crud.get_pending_conflicts(db, room_id, start, end)
    if pending:
        if pending_policy == PENDING_POLICY_REJECT:
            raise PendingRequestConflict()
        logger.warning(
            "Room %s %s-%s overlaps pending request(s) %s",
            room_id, start.isoformat(), end.isoformat(), [p.id for p in pending],
        )

    db_request = crud.create_booking_request(db, room_id, student_id, start, end)
    db.commit()
    db.refresh(db_request)
    return db_request


def submit(
    db: Session,
    student_id,
    room_id,
    start_clock,
    duration_minutes,
    now: datetime,
    pending_policy: str = PENDING_POLICY_REJECT,
) -> SubmissionResult:
    """
    Validate a booking request and store it as pending.

    Rejections for bad input or taken slots come back as a result with
    ``accepted=False``; storage failures raise ``InternalError``.
    """
    try:
        db_request = _create_request(db, student_id, room_id, start_clock, duration_minutes, now, pending_policy)
    except BookingError as exc:
        db.rollback()
        logger.info("Booking request rejected for room %s: %s", room_id, exc.code)
        return SubmissionResult(accepted=False, reason=exc)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InternalError(str(exc)) from exc

    logger.info(
        "Booking request %s accepted for room %s (%s-%s)",
        db_request.id, room_id, db_request.start_time.isoformat(), db_request.end_time.isoformat(),
    )
    return SubmissionResult(accepted=True, request_id=db_request.id)
