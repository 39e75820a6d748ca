import logging
from datetime import date, datetime, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, schemas
from .errors import DataUnavailable

logger = logging.getLogger(__name__)


def list_rooms(db: Session, now: datetime) -> list[schemas.RoomStatus]:
    """Active rooms in id order, flagged unavailable while a booking covers ``now``."""
    try:
        rooms = crud.get_active_rooms(db)
        occupied = crud.get_occupied_room_ids(db, at=now)
    except SQLAlchemyError as exc:
        raise DataUnavailable(str(exc)) from exc

    return [
        schemas.RoomStatus(id=room.id, name=room.name, is_available=room.id not in occupied)
        for room in rooms
    ]


def list_schedule(db: Session, day: date, window_start: time, window_end: time) -> schemas.DaySchedule:
    """
    Every active room with the bookings that touch the display window of ``day``.

    Bookings come back ordered by start time. Student ids are read from storage
    but never copied into the result.
    """
    start = datetime.combine(day, window_start)
    end = datetime.combine(day, window_end)
    try:
        rooms = crud.get_active_rooms(db)
        bookings = crud.get_bookings_in_window(db, window_start=start, window_end=end)
    except SQLAlchemyError as exc:
        raise DataUnavailable(str(exc)) from exc

    by_room = {}
    for booking in bookings:
        by_room.setdefault(booking.room_id, []).append(schemas.ScheduledBooking.model_validate(booking))

    return schemas.DaySchedule(
        date=day.isoformat(),
        rooms=[
            schemas.RoomSchedule(id=room.id, name=room.name, bookings=by_room.get(room.id, []))
            for room in rooms
        ],
    )
