import os
from datetime import datetime, time
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _parse_clock(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./studyrooms.db")
BOOKING_TIMEZONE = os.getenv("BOOKING_TIMEZONE") or None

SCHEDULE_WINDOW_START = _parse_clock(os.getenv("SCHEDULE_WINDOW_START", "08:00"))
SCHEDULE_WINDOW_END = _parse_clock(os.getenv("SCHEDULE_WINDOW_END", "19:00"))

# "reject" blocks a slot that overlaps a pending request, "warn" only logs it
PENDING_OVERLAP_POLICY = os.getenv("PENDING_OVERLAP_POLICY", "reject").lower()

SEED_ROOMS = [name.strip() for name in os.getenv("SEED_ROOMS", "").split(",") if name.strip()]
STATIC_DIR = os.getenv("STATIC_DIR", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))


def local_now() -> datetime:
    """Current wall-clock time as a naive datetime in the booking timezone."""
    if BOOKING_TIMEZONE:
        return datetime.now(ZoneInfo(BOOKING_TIMEZONE)).replace(tzinfo=None)
    return datetime.now()
