"""
Async client for the booking API.

``RoomBoard`` keeps the latest rooms list and day schedule fetched from the
service and refreshes them on a fixed interval between ``start()`` and
``stop()``. A manual ``refresh()`` may run while the poller is mid-flight;
every refresh takes a generation number and a response is applied only when
it is newer than the last one applied, so a slow older response can never
overwrite fresher data.
"""

import asyncio
import itertools
import logging
from typing import Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from . import schemas
from .errors import BookingError, InternalError, RequestTimeout

logger = logging.getLogger(__name__)

ROOM_LIST = TypeAdapter(list[schemas.RoomStatus])

REFRESH_INTERVAL = 15.0
REQUEST_TIMEOUT = 10.0


class BookingRejected(BookingError):
    """The service refused a booking request with a user-facing message."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class RoomBoard:
    def __init__(
        self,
        base_url: str,
        refresh_interval: float = REFRESH_INTERVAL,
        request_timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.refresh_interval = refresh_interval
        self.request_timeout = request_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._task: Optional[asyncio.Task] = None
        self._generations = itertools.count(1)
        self._applied_generation = 0

        self.rooms: list[schemas.RoomStatus] = []
        self.schedule: Optional[schemas.DaySchedule] = None
        self.last_error: Optional[BookingError] = None

    @property
    def available_rooms(self) -> list[schemas.RoomStatus]:
        return [room for room in self.rooms if room.is_available]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.request_timeout,
                transport=self._transport,
            )
        return self._client

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._http().request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeout() from exc
        except httpx.HTTPError as exc:
            raise InternalError(str(exc)) from exc

    async def _get_json(self, path: str):
        response = await self._request("GET", path)
        if response.status_code != 200:
            raise InternalError(f"{path} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise InternalError(f"{path} returned a non-JSON body") from exc

    async def _fetch_both(self):
        tasks = [
            asyncio.ensure_future(self._get_json("/api/getRooms")),
            asyncio.ensure_future(self._get_json("/api/getRoomSchedules")),
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # one call failed or refresh was cancelled: stop the other call too
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def refresh(self) -> bool:
        """
        Fetch rooms and schedule together and store them.

        Returns False when a newer refresh has already been applied and this
        response was dropped.
        """
        generation = next(self._generations)
        rooms_data, schedule_data = await self._fetch_both()
        if generation <= self._applied_generation:
            logger.debug("Dropping stale refresh %d (applied %d)", generation, self._applied_generation)
            return False

        try:
            rooms = ROOM_LIST.validate_python(rooms_data)
            schedule = schemas.DaySchedule.model_validate(schedule_data)
        except ValidationError as exc:
            raise InternalError(f"Unexpected payload from the booking API: {exc}") from exc

        self.rooms = rooms
        self.schedule = schedule
        self._applied_generation = generation
        self.last_error = None
        return True

    async def submit_request(self, student_id: str, room_id: int, start_time: str, duration: int) -> int:
        """Send a booking request; returns the request id or raises ``BookingRejected``."""
        response = await self._request(
            "POST",
            "/api/submitBookingRequest",
            json={
                "student_id": student_id,
                "room_id": room_id,
                "start_time": start_time,
                "duration": duration,
            },
        )
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            raise InternalError(f"HTTP {status}")

        if status == 200 and isinstance(body.get("request_id"), int):
            return body["request_id"]
        if status in (400, 409) and body.get("message"):
            raise BookingRejected(status, body["message"])
        raise InternalError(body.get("message") or f"HTTP {status}")

    async def _poll(self):
        while True:
            try:
                await self.refresh()
            except BookingError as exc:
                self.last_error = exc
                logger.warning("Room board refresh failed: %s", exc)
            await asyncio.sleep(self.refresh_interval)

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._poll())

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
