from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .database import Base

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    access_group = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    bookings = relationship("Booking", back_populates="room")
    requests = relationship("BookingRequest", back_populates="room")


class Booking(Base):
    """Confirmed occupancy, written by the approval workflow."""

    __tablename__ = "bookings"
    __table_args__ = (CheckConstraint("end_time > start_time", name="ck_bookings_interval"),)

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    student_id = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)

    room = relationship("Room", back_populates="bookings")


class BookingRequest(Base):
    __tablename__ = "booking_requests"
    __table_args__ = (CheckConstraint("end_time > start_time", name="ck_booking_requests_interval"),)

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    student_id = Column(String, nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False, index=True)
    status = Column(String, nullable=False, default=PENDING, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    room = relationship("Room", back_populates="requests")
