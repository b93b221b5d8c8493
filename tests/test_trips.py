import logging
from datetime import timedelta

import pytest

from mileage_tracker.core.exceptions import (
    ActiveTripExistsError,
    InvalidCoordinatesError,
    NotFoundError,
    TripNotActiveError,
    ValidationError,
)
from mileage_tracker.models import Trip, TripStatus
from mileage_tracker.repositories.performance_repo import performance_repository
from mileage_tracker.services.trip_service import TripService
from mileage_tracker.utils.date_utils import DateUtils


def _start(client, staff_id, latitude=40.0, longitude=-75.0):
    return client.post(
        "/api/v1/gps/start-trip",
        json={"staffId": staff_id, "latitude": latitude, "longitude": longitude, "address": "Depot"},
    )


class TestTripAPI:
    def test_start_trip(self, client, staff):
        response = _start(client, staff.id)

        assert response.status_code == 201
        body = response.json()
        assert body["tripId"] > 0
        assert "startTime" in body

    def test_second_start_is_conflict(self, client, staff):
        first = _start(client, staff.id).json()
        response = _start(client, staff.id)

        assert response.status_code == 409
        assert response.json()["error_code"] == "ACTIVE_TRIP_EXISTS"
        assert str(first["tripId"]) in response.json()["message"]

    def test_start_trip_unknown_staff(self, client):
        response = _start(client, 999)
        assert response.status_code == 404
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"

    def test_start_trip_rejects_bad_coordinates(self, client, staff):
        response = _start(client, staff.id, latitude=95.0)
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_route_point(self, client, staff):
        trip_id = _start(client, staff.id).json()["tripId"]

        response = client.post(
            "/api/v1/gps/route-point",
            json={"tripId": trip_id, "latitude": 40.005, "longitude": -75.0, "speed": 28.0},
        )

        assert response.status_code == 200
        assert response.json() == {"tripId": trip_id, "routePointCount": 1}

    def test_end_trip_straight_line(self, client, staff):
        """(40.0, -75.0) -> (40.01, -75.0) at the default rate"""
        trip_id = _start(client, staff.id).json()["tripId"]

        response = client.post(
            "/api/v1/gps/end-trip",
            json={"staffId": staff.id, "latitude": 40.01, "longitude": -75.0},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["tripId"] == trip_id
        assert body["totalDistance"] == 0.69
        assert body["costPerMile"] == 0.67
        assert body["totalCost"] == 0.46
        assert body["totalDriveTime"] == 0

    def test_end_trip_uses_route_points(self, client, staff):
        trip_id = _start(client, staff.id).json()["tripId"]
        for latitude in (40.0, 40.01, 40.02):
            client.post("/api/v1/gps/route-point", json={"tripId": trip_id, "latitude": latitude, "longitude": -75.0})

        body = client.post(
            "/api/v1/gps/end-trip",
            json={"tripId": trip_id, "latitude": 40.0, "longitude": -75.0},
        ).json()

        assert body["totalDistance"] == 1.38

    def test_end_trip_without_active_trip(self, client, staff):
        response = client.post("/api/v1/gps/end-trip", json={"staffId": staff.id})
        assert response.status_code == 404
        assert "Active trip not found" in response.json()["message"]

    def test_end_trip_requires_an_id(self, client):
        response = client.post("/api/v1/gps/end-trip", json={"latitude": 40.0, "longitude": -75.0})
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_trip_completes_once(self, client, staff):
        trip_id = _start(client, staff.id).json()["tripId"]
        assert client.post("/api/v1/gps/end-trip", json={"tripId": trip_id}).status_code == 200

        again = client.post("/api/v1/gps/end-trip", json={"tripId": trip_id})
        point = client.post(
            "/api/v1/gps/route-point", json={"tripId": trip_id, "latitude": 40.0, "longitude": -75.0}
        )

        assert again.status_code == 409
        assert again.json()["error_code"] == "TRIP_NOT_ACTIVE"
        assert point.status_code == 409

    def test_new_trip_after_completion(self, client, staff):
        trip_id = _start(client, staff.id).json()["tripId"]
        client.post("/api/v1/gps/end-trip", json={"tripId": trip_id})

        response = _start(client, staff.id)
        assert response.status_code == 201
        assert response.json()["tripId"] != trip_id


class TestTripService:
    def test_end_trip_records_drive_time_and_miles(self, db_session, staff, t0):
        service = TripService(db_session)
        trip = service.start_trip(staff.id, 40.0, -75.0, now=t0)

        result = service.end_trip(trip_id=trip.id, latitude=40.01, longitude=-75.0, now=t0 + timedelta(minutes=45))

        assert result["total_drive_time"] == 45
        assert result["total_distance"] == 0.69
        assert result["total_cost"] == 0.46

        completed = db_session.get(Trip, trip.id)
        db_session.refresh(completed)
        assert completed.status == TripStatus.COMPLETED.value
        assert completed.total_distance == 0.69
        assert completed.end_location == {"lat": 40.01, "lng": -75.0, "address": None}

        row = performance_repository.get_daily(db_session, staff.id, DateUtils.local_date(t0))
        assert row.total_drive_time == 45
        assert row.total_miles == pytest.approx(0.691, abs=0.001)
        assert row.total_cost == 0.46

    def test_trips_accumulate_into_one_day(self, db_session, staff, t0):
        service = TripService(db_session)
        for offset in (0, 2):
            start = t0 + timedelta(hours=offset)
            trip = service.start_trip(staff.id, 40.0, -75.0, now=start)
            service.end_trip(trip_id=trip.id, latitude=40.01, longitude=-75.0, now=start + timedelta(minutes=20))

        row = performance_repository.get_daily(db_session, staff.id, DateUtils.local_date(t0))
        assert row.total_drive_time == 40
        assert row.total_miles == pytest.approx(1.382, abs=0.001)

    def test_end_trip_by_staff_picks_active_trip(self, db_session, staff, t0):
        service = TripService(db_session)
        trip = service.start_trip(staff.id, 40.0, -75.0, now=t0)

        result = service.end_trip(staff_id=staff.id, now=t0 + timedelta(minutes=10))

        assert result["trip_id"] == trip.id
        assert result["total_distance"] == 0.0
        assert result["total_cost"] == 0.0

    def test_second_start_is_rejected(self, db_session, staff, t0):
        service = TripService(db_session)
        service.start_trip(staff.id, 40.0, -75.0, now=t0)
        with pytest.raises(ActiveTripExistsError):
            service.start_trip(staff.id, 40.0, -75.0, now=t0)

    def test_end_trip_validation(self, db_session, staff):
        service = TripService(db_session)
        with pytest.raises(ValidationError):
            service.end_trip()
        with pytest.raises(InvalidCoordinatesError):
            service.end_trip(staff_id=staff.id, latitude=40.0)
        with pytest.raises(NotFoundError):
            service.end_trip(trip_id=12345)

    def test_route_point_on_unknown_trip(self, db_session):
        with pytest.raises(NotFoundError):
            TripService(db_session).append_route_point(12345, 40.0, -75.0)

    def test_route_point_on_completed_trip(self, db_session, staff, t0):
        service = TripService(db_session)
        trip = service.start_trip(staff.id, 40.0, -75.0, now=t0)
        service.end_trip(trip_id=trip.id, now=t0 + timedelta(minutes=5))

        with pytest.raises(TripNotActiveError):
            service.append_route_point(trip.id, 40.0, -75.0)


class TestStaffLocation:
    def test_offline_without_trip(self, client, staff):
        response = client.get("/api/v1/gps/staff-location", params={"staffId": staff.id})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "offline"
        assert body["hasActiveTrip"] is False
        assert body["activeTrip"] is None
        assert body["currentLocation"] is None
        assert body["staff"] == {"id": staff.id, "name": "Dana Reyes", "department": "Nursing"}

    def test_active_at_trip_start(self, client, staff):
        _start(client, staff.id)

        body = client.get("/api/v1/gps/staff-location", params={"staffId": staff.id}).json()

        assert body["status"] == "active"
        assert body["hasActiveTrip"] is True
        assert body["activeTrip"]["startLocation"]["address"] == "Depot"
        assert body["currentLocation"]["latitude"] == 40.0
        assert body["currentLocation"]["isRecent"] is True

    def test_driving_with_recent_fast_point(self, client, staff):
        trip_id = _start(client, staff.id).json()["tripId"]
        client.post(
            "/api/v1/gps/route-point",
            json={"tripId": trip_id, "latitude": 40.02, "longitude": -75.01, "speed": 31.5},
        )

        body = client.get("/api/v1/gps/staff-location", params={"staffId": staff.id}).json()

        assert body["status"] == "driving"
        assert body["currentLocation"]["latitude"] == 40.02
        assert body["currentLocation"]["speed"] == 31.5
        assert len(body["activeTrip"]["routePoints"]) == 1

    def test_on_visit(self, client, staff):
        _start(client, staff.id)
        client.post("/api/v1/visits/start", json={"staffId": staff.id, "patientName": "R. Alvarez"})

        body = client.get("/api/v1/gps/staff-location", params={"staffId": staff.id}).json()

        assert body["status"] == "on_visit"
        assert body["currentVisit"]["patientName"] == "R. Alvarez"

    def test_stale_trip_is_offline(self, db_session, staff, t0):
        service = TripService(db_session)
        service.start_trip(staff.id, 40.0, -75.0, now=t0)

        result = service.get_staff_location(staff.id, now=t0 + timedelta(hours=9))

        assert result["status"] == "offline"
        assert result["has_active_trip"] is True
        assert result["current_location"]["is_recent"] is False
        assert result["current_location"]["age_minutes"] == 540

    def test_unknown_staff(self, client):
        response = client.get("/api/v1/gps/staff-location", params={"staffId": 999})
        assert response.status_code == 404

    def test_missing_staff_id(self, client):
        response = client.get("/api/v1/gps/staff-location")
        assert response.status_code == 422


def test_rejected_end_trip_is_not_logged_as_error(db_session, staff, caplog):
    trips_logger = logging.getLogger("mileage_tracker.trips")
    caplog.set_level(logging.DEBUG, logger="mileage_tracker.trips")
    # app logging config stops propagation at "mileage_tracker"
    trips_logger.addHandler(caplog.handler)
    try:
        with pytest.raises(NotFoundError):
            TripService(db_session).end_trip(staff_id=staff.id)
    finally:
        trips_logger.removeHandler(caplog.handler)

    records = [record for record in caplog.records if record.name == "mileage_tracker.trips"]
    assert records
    assert all(record.levelno < logging.ERROR for record in records)
    assert "404" in records[-1].getMessage()
