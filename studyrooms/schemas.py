from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, Optional


class RoomStatus(BaseModel):
    id: int
    name: str
    is_available: bool


class ScheduledBooking(BaseModel):
    # student_id stays out of the public schedule
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(from_attributes=True)


class RoomSchedule(BaseModel):
    id: int
    name: str
    bookings: list[ScheduledBooking] = []


class DaySchedule(BaseModel):
    date: str
    rooms: list[RoomSchedule]


class BookingRequestCreate(BaseModel):
    # Raw JSON values: the validator classifies every field in its own rule
    # order, so nothing is type-checked here.
    student_id: Any = None
    room_id: Any = None
    start_time: Any = None
    duration: Any = None


class BookingRequestAccepted(BaseModel):
    message: str
    request_id: int


class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None
