from sqlalchemy.orm import Session
from . import models
from .database import SQLITE_BEGIN_MODE
from datetime import datetime


def lock_for_write(db: Session):
    # Must run before anything else touches the session: SQLite takes its
    # write lock at BEGIN, other backends rely on get_room(lock=True).
    return db.connection(execution_options={SQLITE_BEGIN_MODE: "IMMEDIATE"})


def get_active_rooms(db: Session):
    return db.query(models.Room).filter(models.Room.is_active.is_(True)).order_by(models.Room.id).all()


def get_room(db: Session, room_id: int, lock: bool = False):
    query = db.query(models.Room).filter(models.Room.id == room_id)
    if lock:
        query = query.with_for_update()
    return query.first()


def get_occupied_room_ids(db: Session, at: datetime):
    rows = db.query(models.Booking.room_id).filter(
        models.Booking.start_time <= at,
        models.Booking.end_time >= at
    ).distinct().all()
    return {row.room_id for row in rows}


def get_bookings_in_window(db: Session, window_start: datetime, window_end: datetime):
    return db.query(models.Booking).filter(
        models.Booking.end_time >= window_start,
        models.Booking.start_time <= window_end
    ).order_by(models.Booking.start_time, models.Booking.id).all()


def get_conflicting_bookings(db: Session, room_id: int, start_time: datetime, end_time: datetime):
    return db.query(models.Booking).filter(
        models.Booking.room_id == room_id,
        models.Booking.start_time < end_time,
        models.Booking.end_time > start_time
    ).all()


def get_pending_conflicts(db: Session, room_id: int, start_time: datetime, end_time: datetime):
    return db.query(models.BookingRequest).filter(
        models.BookingRequest.room_id == room_id,
        models.BookingRequest.status == models.PENDING,
        models.BookingRequest.start_time < end_time,
        models.BookingRequest.end_time > start_time
    ).all()


def create_booking_request(db: Session, room_id: int, student_id: str, start_time: datetime, end_time: datetime):
    db_request = models.BookingRequest(
        room_id=room_id,
        student_id=student_id,
        start_time=start_time,
        end_time=end_time,
        status=models.PENDING,
    )
    db.add(db_request)
    db.flush()
    return db_request


def create_room(db: Session, name: str, access_group: str = None, is_active: bool = True):
    db_room = models.Room(name=name, access_group=access_group, is_active=is_active)
    db.add(db_room)
    db.commit()
    db.refresh(db_room)
    return db_room


def create_booking(db: Session, room_id: int, student_id: str, start_time: datetime, end_time: datetime):
    db_booking = models.Booking(room_id=room_id, student_id=student_id, start_time=start_time, end_time=end_time)
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    return db_booking


def count_rooms(db: Session):
    return db.query(models.Room).count()
