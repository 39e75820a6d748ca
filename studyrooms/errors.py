"""
Error taxonomy for the booking service.

Validation errors (400) and conflicts (409) are shown to the student verbatim.
Everything with a 500 status is reported as a generic failure and logged in
full by the HTTP layer.
"""


class BookingError(Exception):
    """Base class for every failure the service reports."""

    code = "InternalError"
    status_code = 500
    message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationFailed(BookingError):
    status_code = 400


class MissingFields(ValidationFailed):
    code = "MissingFields"
    message = "Missing required fields: student_id, room_id, start_time, duration"


class InvalidStudentId(ValidationFailed):
    code = "InvalidStudentId"
    message = "Invalid student ID format. Must be 6-7 digits."


class InvalidDuration(ValidationFailed):
    code = "InvalidDuration"
    message = "Duration must be between 30 and 120 minutes."


class InvalidRoom(ValidationFailed):
    code = "InvalidRoom"
    message = "Invalid room ID"


class InactiveRoom(ValidationFailed):
    code = "InactiveRoom"
    message = "This room is currently inactive"


class InvalidStartTime(ValidationFailed):
    code = "InvalidStartTime"
    message = "Start time must be in HH:MM format"


class StartTimeInPast(ValidationFailed):
    code = "StartTimeInPast"
    message = "Start time must be in the future"


class SlotConflict(BookingError):
    status_code = 409


class RoomAlreadyBooked(SlotConflict):
    code = "RoomAlreadyBooked"
    message = "This room is already booked for the selected time"


class PendingRequestConflict(SlotConflict):
    code = "PendingRequestConflict"
    message = "Another request for this room and time is awaiting approval"


class DataUnavailable(BookingError):
    code = "DataUnavailable"
    message = "Booking data is unavailable"


class InternalError(BookingError):
    pass


class RequestTimeout(BookingError):
    """Raised client-side when the service does not answer in time."""

    code = "RequestTimeout"
    status_code = None
    message = "Request timeout"
