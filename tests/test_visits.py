from datetime import timedelta

import pytest

from mileage_tracker.core.exceptions import NotFoundError, TripNotActiveError, ValidationError, VisitNotInProgressError
from mileage_tracker.repositories.performance_repo import performance_repository
from mileage_tracker.services.trip_service import TripService
from mileage_tracker.services.visit_service import VisitService
from mileage_tracker.utils.date_utils import DateUtils

from .conftest import make_staff


def test_start_visit_estimates_drive_from_trip_start(db_session, staff, t0):
    trip = TripService(db_session).start_trip(staff.id, 40.0, -75.0, now=t0)

    visit = VisitService(db_session).start_visit(
        staff.id,
        patient_name="R. Alvarez",
        patient_address="12 Elm St",
        visit_type="wound care",
        latitude=40.1,
        longitude=-75.0,
        now=t0 + timedelta(minutes=20),
    )

    assert visit["trip_id"] == trip.id
    assert visit["distance"] == 6.91
    # 6.91 mi at 25 mph
    assert visit["drive_time"] == 17


def test_start_visit_without_location_has_no_estimate(db_session, staff, t0):
    TripService(db_session).start_trip(staff.id, 40.0, -75.0, now=t0)
    visit = VisitService(db_session).start_visit(staff.id, now=t0)
    assert visit["distance"] == 0.0
    assert visit["drive_time"] == 0


def test_start_visit_requires_active_trip(db_session, staff):
    with pytest.raises(NotFoundError) as exc_info:
        VisitService(db_session).start_visit(staff.id)
    assert "No active trip" in exc_info.value.detail


def test_start_visit_on_another_staff_members_trip(db_session, staff, t0):
    other = make_staff(db_session, name="Sam Ortiz", email="sam@example.org")
    trip = TripService(db_session).start_trip(other.id, 40.0, -75.0, now=t0)
    with pytest.raises(ValidationError):
        VisitService(db_session).start_visit(staff.id, trip_id=trip.id)


def test_start_visit_on_completed_trip(db_session, staff, t0):
    trips = TripService(db_session)
    trip = trips.start_trip(staff.id, 40.0, -75.0, now=t0)
    trips.end_trip(trip_id=trip.id, now=t0 + timedelta(minutes=5))
    with pytest.raises(TripNotActiveError):
        VisitService(db_session).start_visit(staff.id, trip_id=trip.id)


def test_end_visit_feeds_daily_stats(db_session, staff, t0):
    trips = TripService(db_session)
    visits = VisitService(db_session)
    trip = trips.start_trip(staff.id, 40.0, -75.0, now=t0)
    visit = visits.start_visit(staff.id, latitude=40.01, longitude=-75.0, now=t0 + timedelta(minutes=15))

    result = visits.end_visit(visit["id"], notes="Dressing changed", now=t0 + timedelta(minutes=60))
    trips.end_trip(trip_id=trip.id, now=t0 + timedelta(minutes=75))

    assert result["duration"] == 45
    row = performance_repository.get_daily(db_session, staff.id, DateUtils.local_date(t0))
    assert row.total_visits == 1
    assert row.total_visit_time == 45
    assert row.avg_visit_duration == 45.0
    assert row.total_drive_time == 75
    # 45 / (45 + 75)
    assert row.efficiency_score == 38


def test_end_visit_twice(db_session, staff, t0):
    TripService(db_session).start_trip(staff.id, 40.0, -75.0, now=t0)
    visits = VisitService(db_session)
    visit = visits.start_visit(staff.id, now=t0)
    visits.end_visit(visit["id"], now=t0 + timedelta(minutes=30))

    with pytest.raises(VisitNotInProgressError):
        visits.end_visit(visit["id"], now=t0 + timedelta(minutes=40))

    row = performance_repository.get_daily(db_session, staff.id, DateUtils.local_date(t0))
    assert row.total_visits == 1


def test_end_unknown_visit(db_session):
    with pytest.raises(NotFoundError):
        VisitService(db_session).end_visit(4040)


class TestVisitAPI:
    def test_start_and_end(self, client, staff):
        trip_id = client.post(
            "/api/v1/gps/start-trip", json={"staffId": staff.id, "latitude": 40.0, "longitude": -75.0}
        ).json()["tripId"]

        started = client.post(
            "/api/v1/visits/start",
            json={"staffId": staff.id, "patientName": "R. Alvarez", "latitude": 40.1, "longitude": -75.0},
        )
        assert started.status_code == 201
        body = started.json()
        assert body["tripId"] == trip_id
        assert body["patientName"] == "R. Alvarez"
        assert body["distance"] == 6.91
        assert body["driveTime"] == 17

        ended = client.post("/api/v1/visits/end", json={"visitId": body["id"], "notes": "ok"})
        assert ended.status_code == 200
        assert ended.json()["id"] == body["id"]
        assert ended.json()["duration"] == 0
        assert "endTime" in ended.json()

    def test_start_without_trip(self, client, staff):
        response = client.post("/api/v1/visits/start", json={"staffId": staff.id})
        assert response.status_code == 404

    def test_end_unknown_visit(self, client):
        response = client.post("/api/v1/visits/end", json={"visitId": 77})
        assert response.status_code == 404
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"
