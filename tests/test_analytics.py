from datetime import date, timedelta
from types import SimpleNamespace

import pytest

from mileage_tracker.core.exceptions import InvalidTimeRangeError, NotFoundError
from mileage_tracker.services.analytics_service import (
    AnalyticsService,
    aggregate_stats,
    compare_periods,
    fill_daily_series,
    per_staff_breakdown,
    sum_by_date,
)
from mileage_tracker.services.performance_service import PerformanceService
from mileage_tracker.utils.date_utils import DateUtils

from .conftest import make_staff

TODAY = date(2026, 3, 10)


def _row(staff_id=1, day=TODAY, miles=0.0, cost=0.0, drive=0, visit=0, visits=0):
    return SimpleNamespace(
        staff_id=staff_id, date=day, total_miles=miles, total_cost=cost,
        total_drive_time=drive, total_visit_time=visit, total_visits=visits,
    )


def test_fill_daily_series_zero_fills_missing_days():
    series = fill_daily_series({"2026-03-02": 4.5}, date(2026, 3, 1), date(2026, 3, 3))
    assert series == [("2026-03-01", 0.0), ("2026-03-02", 4.5), ("2026-03-03", 0.0)]


def test_fill_daily_series_empty():
    series = fill_daily_series({}, date(2026, 3, 1), date(2026, 3, 2))
    assert series == [("2026-03-01", 0.0), ("2026-03-02", 0.0)]


def test_compare_periods():
    assert compare_periods(110, 100) == 10.0
    assert compare_periods(5, 0) == 0
    assert compare_periods(90, 100) == -10.0
    assert compare_periods(1, 3) == -66.7


def test_aggregate_stats():
    totals = aggregate_stats(
        [_row(miles=10, cost=6.7, drive=40, visit=60, visits=2), _row(miles=5, cost=3.35, drive=20)],
        co2_lbs_per_mile=0.404,
    )
    assert totals["total_miles"] == 15
    assert totals["total_cost"] == pytest.approx(10.05)
    assert totals["total_visits"] == 2
    assert totals["avg_efficiency"] == 50
    assert totals["co2_reduction_lbs"] == pytest.approx(6.06)


def test_aggregate_stats_empty():
    totals = aggregate_stats([], co2_lbs_per_mile=0.404)
    assert totals["total_miles"] == 0
    assert totals["avg_efficiency"] == 0


def test_sum_by_date_combines_staff():
    rows = [_row(1, TODAY, miles=2), _row(2, TODAY, miles=3), _row(1, TODAY - timedelta(days=1), miles=1)]
    assert sum_by_date(rows, "total_miles") == {"2026-03-09": 1.0, "2026-03-10": 5.0}


def test_per_staff_breakdown_orders_by_miles_and_drops_idle():
    staff = [
        SimpleNamespace(id=1, name="Avery", role="Nursing"),
        SimpleNamespace(id=2, name="Blake", role="Staff"),
        SimpleNamespace(id=3, name="Casey", role="Therapy"),
    ]
    rows = [_row(1, miles=3.333, cost=2.23, drive=30), _row(3, miles=12, cost=8.04, drive=30, visit=90)]

    breakdown = per_staff_breakdown(staff, rows)

    assert [entry["id"] for entry in breakdown] == [3, 1]
    assert breakdown[0] == {"id": 3, "name": "Casey", "role": "Therapy", "miles": 12.0, "efficiency": 75, "cost": 8.04}
    assert breakdown[1]["miles"] == 3.33


def test_gps_analytics_compares_with_previous_window(db_session, staff):
    performance = PerformanceService(db_session)
    performance.record_activity(staff.id, TODAY, drive_time_delta=60, miles_delta=10)
    performance.record_activity(staff.id, date(2026, 3, 8), drive_time_delta=30, miles_delta=5)
    # previous window: 2026-02-25 .. 2026-03-03
    performance.record_activity(staff.id, date(2026, 3, 1), drive_time_delta=30, miles_delta=10)
    # outside both windows
    performance.record_activity(staff.id, date(2026, 2, 1), drive_time_delta=30, miles_delta=100)

    result = AnalyticsService(db_session).get_gps_analytics("7d", today=TODAY)

    assert result["start_date"] == "2026-03-04"
    assert result["end_date"] == "2026-03-10"
    assert result["total_miles"] == 15.0
    assert result["total_cost"] == pytest.approx(10.05)
    assert result["total_hours"] == 1.5
    assert result["co2_reduction"] == pytest.approx(6.06)
    assert result["miles_change"] == 50.0
    assert result["cost_change"] == pytest.approx(50.0)
    assert [point["date"] for point in result["daily_mileage"]] == DateUtils.date_range_strings(
        date(2026, 3, 4), TODAY
    )
    assert [point["miles"] for point in result["daily_mileage"]] == [0, 0, 0, 0, 5.0, 0, 10.0]
    assert result["staff_performance"][0]["id"] == staff.id


def test_gps_analytics_filters_by_staff(db_session, staff):
    other = make_staff(db_session, name="Jordan Kim", department=None, email="jordan@example.org")
    performance = PerformanceService(db_session)
    performance.record_activity(staff.id, TODAY, 10, 4)
    performance.record_activity(other.id, TODAY, 10, 6)

    everyone = AnalyticsService(db_session).get_gps_analytics("1d", today=TODAY)
    assert everyone["total_miles"] == 10.0
    assert [entry["name"] for entry in everyone["staff_performance"]] == ["Jordan Kim", "Dana Reyes"]
    assert everyone["staff_performance"][0]["role"] == "Staff"

    one = AnalyticsService(db_session).get_gps_analytics("1d", staff_id=other.id, today=TODAY)
    assert one["total_miles"] == 6.0
    assert len(one["staff_performance"]) == 1


def test_gps_analytics_rejects_unknown_range(db_session):
    with pytest.raises(InvalidTimeRangeError):
        AnalyticsService(db_session).get_gps_analytics("2w", today=TODAY)


def test_gps_analytics_unknown_staff(db_session):
    with pytest.raises(NotFoundError):
        AnalyticsService(db_session).get_gps_analytics("7d", staff_id=404, today=TODAY)


def test_analytics_endpoint(client, db_session, staff):
    PerformanceService(db_session).record_activity(staff.id, DateUtils.local_today(), 30, 12)

    response = client.get("/api/v1/analytics", params={"timeRange": "30d"})

    assert response.status_code == 200
    body = response.json()
    assert body["timeRange"] == "30d"
    assert body["totalMiles"] == 12.0
    assert body["totalCost"] == 8.04
    assert len(body["dailyMileage"]) == 30
    assert body["dailyCosts"][-1] == {"date": DateUtils.local_today().isoformat(), "cost": 8.04}
    assert body["staffPerformance"][0]["name"] == "Dana Reyes"


def test_analytics_endpoint_defaults_to_seven_days(client):
    body = client.get("/api/v1/analytics").json()
    assert body["timeRange"] == "7d"
    assert len(body["dailyMileage"]) == 7
    assert body["milesChange"] == 0


def test_analytics_endpoint_invalid_range(client):
    response = client.get("/api/v1/analytics", params={"timeRange": "365d"})
    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"
    assert response.json()["field"] == "timeRange"
