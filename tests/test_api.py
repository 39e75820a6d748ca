from unittest.mock import patch

import pytest

from studyrooms import config
from studyrooms.errors import DataUnavailable

from .conftest import at


def booking_body(**overrides):
    body = {"student_id": "1234567", "room_id": 1, "start_time": "10:00", "duration": 60}
    body.update(overrides)
    return body


class TestGetRooms:
    def test_lists_rooms_with_availability(self, client, seed):
        busy = seed.room("Busy")
        free = seed.room("Free")
        seed.booking(busy, at("09:00"), at("10:00"))

        response = client.get("/api/getRooms")

        assert response.status_code == 200
        assert response.json() == [
            {"id": busy, "name": "Busy", "is_available": False},
            {"id": free, "name": "Free", "is_available": True},
        ]

    def test_wrong_method(self, client):
        response = client.post("/api/getRooms")

        assert response.status_code == 405
        assert response.json() == {"message": "Method not allowed"}

    def test_options_preflight(self, client):
        response = client.options("/api/getRooms")

        assert response.status_code == 200
        assert response.content == b""

    def test_cors_header_present(self, client, seed):
        seed.room()

        response = client.get("/api/getRooms", headers={"Origin": "https://example.org"})

        assert response.headers["access-control-allow-origin"] == "*"

    def test_storage_failure_is_500(self, client):
        with patch("studyrooms.availability.list_rooms", side_effect=DataUnavailable("connection refused")):
            response = client.get("/api/getRooms")

        assert response.status_code == 500
        assert response.json() == {"message": "Failed to fetch rooms", "error": "connection refused"}


class TestGetRoomSchedules:
    def test_returns_today_schedule_without_student_ids(self, client, seed):
        room = seed.room("Group Room")
        seed.booking(room, at("10:00"), at("11:30"), student_id="7654321")

        response = client.get("/api/getRoomSchedules")

        assert response.status_code == 200
        assert response.json() == {
            "date": "2026-10-17",
            "rooms": [
                {
                    "id": room,
                    "name": "Group Room",
                    "bookings": [{"start_time": "2026-10-17T10:00:00", "end_time": "2026-10-17T11:30:00"}],
                }
            ],
        }

    def test_wrong_method(self, client):
        assert client.delete("/api/getRoomSchedules").status_code == 405

    def test_options_preflight(self, client):
        assert client.options("/api/getRoomSchedules").status_code == 200

    def test_storage_failure_is_500(self, client):
        with patch("studyrooms.availability.list_schedule", side_effect=DataUnavailable("timeout")):
            response = client.get("/api/getRoomSchedules")

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to fetch room schedules"


class TestSubmitBookingRequest:
    def test_accepts_valid_request(self, client, seed):
        room = seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Booking request submitted successfully"
        assert isinstance(body["request_id"], int)

    def test_numeric_student_id_and_string_duration_are_coerced(self, client, seed):
        room = seed.room()

        response = client.post(
            "/api/submitBookingRequest",
            json=booking_body(room_id=str(room), student_id=123456, duration="45"),
        )

        assert response.status_code == 200

    def test_missing_fields(self, client):
        response = client.post("/api/submitBookingRequest", json={"student_id": "1234567"})

        assert response.status_code == 400
        assert response.json() == {
            "message": "Missing required fields: student_id, room_id, start_time, duration",
        }

    def test_empty_body_is_missing_fields(self, client):
        response = client.post("/api/submitBookingRequest")

        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing required fields")

    def test_malformed_json(self, client):
        response = client.post(
            "/api/submitBookingRequest",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request body"

    def test_invalid_student_id(self, client, seed):
        room = seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room, student_id="12345"))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid student ID format. Must be 6-7 digits."

    def test_invalid_duration(self, client, seed):
        room = seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room, duration=121))

        assert response.status_code == 400
        assert response.json()["message"] == "Duration must be between 30 and 120 minutes."

    def test_unknown_and_inactive_rooms(self, client, seed):
        closed = seed.room("Closed", is_active=False)

        unknown = client.post("/api/submitBookingRequest", json=booking_body(room_id=closed + 1))
        inactive = client.post("/api/submitBookingRequest", json=booking_body(room_id=closed))

        assert (unknown.status_code, unknown.json()["message"]) == (400, "Invalid room ID")
        assert (inactive.status_code, inactive.json()["message"]) == (400, "This room is currently inactive")

    def test_start_in_past(self, client, seed):
        room = seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room, start_time="09:15"))

        assert response.status_code == 400
        assert response.json()["message"] == "Start time must be in the future"

    def test_conflict_is_409(self, client, seed):
        room = seed.room()
        seed.booking(room, at("10:30"), at("11:00"))

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room))

        assert response.status_code == 409
        assert response.json()["message"] == "This room is already booked for the selected time"

    def test_second_overlapping_request_is_409(self, client, seed):
        room = seed.room()
        assert client.post("/api/submitBookingRequest", json=booking_body(room_id=room)).status_code == 200

        response = client.post(
            "/api/submitBookingRequest",
            json=booking_body(room_id=room, student_id="654321", start_time="10:30"),
        )

        assert response.status_code == 409

    def test_warn_policy_accepts_overlapping_pending(self, client, seed, monkeypatch):
        monkeypatch.setattr(config, "PENDING_OVERLAP_POLICY", "warn")
        room = seed.room()
        client.post("/api/submitBookingRequest", json=booking_body(room_id=room))

        response = client.post(
            "/api/submitBookingRequest",
            json=booking_body(room_id=room, student_id="654321", start_time="10:30"),
        )

        assert response.status_code == 200

    def test_wrong_method(self, client):
        assert client.get("/api/submitBookingRequest").status_code == 405

    def test_options_preflight(self, client):
        response = client.options("/api/submitBookingRequest")

        assert response.status_code == 200
        assert response.content == b""

    def test_missing_field_wins_over_bad_room_type(self, client):
        response = client.post(
            "/api/submitBookingRequest",
            json={"room_id": "abc", "start_time": "10:00", "duration": 60},
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Missing required fields")

    def test_fractional_duration_is_accepted(self, client, seed):
        room = seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room, duration=60.5))

        assert response.status_code == 200

    def test_numeric_start_time_is_invalid_start_time(self, client, seed):
        room = seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id=room, start_time=1000))

        assert response.status_code == 400
        assert response.json()["message"] == "Start time must be in HH:MM format"

    def test_non_numeric_room_id_is_invalid_room(self, client, seed):
        seed.room()

        response = client.post("/api/submitBookingRequest", json=booking_body(room_id="abc"))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid room ID"

    def test_non_object_body_is_invalid(self, client):
        response = client.post("/api/submitBookingRequest", json=["1234567", 1, "10:00", 60])

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid request body"


class TestBrowserPreflight:
    PATHS = ["/api/getRooms", "/api/getRoomSchedules", "/api/submitBookingRequest"]

    @pytest.mark.parametrize("path", PATHS)
    def test_preflight_is_empty_200(self, client, path):
        response = client.options(
            path,
            headers={"Origin": "https://rooms.example.org", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_any_requested_header_is_allowed(self, client):
        response = client.options(
            "/api/getRooms",
            headers={
                "Origin": "https://rooms.example.org",
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "x-requested-with",
            },
        )

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-headers"] == "x-requested-with"

    def test_error_responses_carry_allow_origin(self, client):
        response = client.post(
            "/api/submitBookingRequest",
            json={},
            headers={"Origin": "https://rooms.example.org"},
        )

        assert response.status_code == 400
        assert response.headers["access-control-allow-origin"] == "*"
