import logging
import os

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import availability, booking, config, crud, models, schemas
from .database import Base, SessionLocal, engine
from .errors import BookingError, MissingFields

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# --- FastAPI app ---
app = FastAPI(title="Study room booking")


class OpenCORSMiddleware(CORSMiddleware):
    """Answers every browser preflight with an empty 200, whatever headers it asks for."""

    def preflight_response(self, request_headers):
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
                "Access-Control-Allow-Headers": request_headers.get("access-control-request-headers") or "Content-Type",
            },
        )


app.add_middleware(
    OpenCORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_now():
    return config.local_now()


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    if not config.SEED_ROOMS:
        return
    db = SessionLocal()
    try:
        if crud.count_rooms(db) == 0:
            for name in config.SEED_ROOMS:
                crud.create_room(db, name=name)
            logger.info("Seeded %d rooms", len(config.SEED_ROOMS))
    finally:
        db.close()


# --- Error responses ---
def _error_body(message: str, error: str = None):
    return schemas.ErrorResponse(message=message, error=error).model_dump(exclude_none=True)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = exc.detail
    elif exc.status_code == 405:
        body = _error_body("Method not allowed")
    else:
        body = _error_body(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any(error.get("type") == "missing" for error in errors):
        message = MissingFields.message
    else:
        message = "Invalid request body"
    return JSONResponse(status_code=400, content=_error_body(message, error=str(errors)))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_error_body("Internal server error", error=str(exc)))


def _server_error(message: str, exc: Exception):
    logger.exception(message)
    return HTTPException(status_code=500, detail=_error_body(message, error=str(exc)))


# --- API Endpoints ---
def _preflight():
    return Response(status_code=200)


for _path in ("/api/getRooms", "/api/getRoomSchedules", "/api/submitBookingRequest"):
    app.add_api_route(_path, _preflight, methods=["OPTIONS"], include_in_schema=False)


@app.get("/api/getRooms", response_model=list[schemas.RoomStatus])
def get_rooms(db: Session = Depends(get_db), now=Depends(get_now)):
    try:
        return availability.list_rooms(db, now=now)
    except BookingError as exc:
        raise _server_error("Failed to fetch rooms", exc)


@app.get("/api/getRoomSchedules", response_model=schemas.DaySchedule)
def get_room_schedules(db: Session = Depends(get_db), now=Depends(get_now)):
    try:
        return availability.list_schedule(
            db,
            day=now.date(),
            window_start=config.SCHEDULE_WINDOW_START,
            window_end=config.SCHEDULE_WINDOW_END,
        )
    except BookingError as exc:
        raise _server_error("Failed to fetch room schedules", exc)


@app.post("/api/submitBookingRequest", response_model=schemas.BookingRequestAccepted)
def submit_booking_request(
    request: schemas.BookingRequestCreate,
    db: Session = Depends(get_db),
    now=Depends(get_now),
):
    try:
        result = booking.submit(
            db,
            student_id=request.student_id,
            room_id=request.room_id,
            start_clock=request.start_time,
            duration_minutes=request.duration,
            now=now,
            pending_policy=config.PENDING_OVERLAP_POLICY,
        )
    except BookingError as exc:
        raise _server_error("Failed to submit booking request", exc)

    if not result.accepted:
        raise HTTPException(status_code=result.reason.status_code, detail=result.reason.message)
    return schemas.BookingRequestAccepted(
        message="Booking request submitted successfully",
        request_id=result.request_id,
    )


# --- Static Files ---
if config.STATIC_DIR and os.path.isdir(config.STATIC_DIR):
    app.mount("/", StaticFiles(directory=config.STATIC_DIR, html=True), name="static")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
