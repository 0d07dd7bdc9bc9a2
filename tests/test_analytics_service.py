"""
Tests for `services/analytics_service.py`: dashboard totals and breakdowns,
funnel conversion math, and map data.
"""
from datetime import datetime, timedelta

import pytest

from leadpulse.core.config import AnalyticsConfig
from leadpulse.services.analytics_service import (
    AnalyticsService,
    conversion_rates,
    quality_rate,
    start_of_day,
)
from leadpulse.utils.helpers import utcnow


@pytest.fixture()
def service(db):
    return AnalyticsService(db, AnalyticsConfig())


@pytest.mark.parametrize(
    "high, total, expected",
    [(10, 40, 25), (0, 0, 0), (5, 0, 0), (1, 3, 33), (1, 8, 13), (40, 40, 100)],
)
def test_quality_rate(high, total, expected):
    assert quality_rate(high, total) == expected


def test_conversion_rate_is_stage_over_previous_stage():
    assert conversion_rates([100, 50, 25, 25]) == [100, 50, 50, 100]


def test_conversion_rate_after_empty_stage_is_zero():
    assert conversion_rates([0, 5, 0, 0]) == [100, 0, 0, 0]
    assert conversion_rates([10, 0, 3, 0]) == [100, 0, 0, 0]


def test_dashboard_quality_rate_over_window(service, make_submission):
    for index in range(40):
        make_submission(quality_score=90 if index < 10 else 50)
    make_submission(quality_score=95, submission_date=utcnow() - timedelta(days=60))

    result = service.dashboard(days=30)

    assert result["totals"]["allTime"] == 41
    assert result["totals"]["period"] == 40
    assert result["totals"]["qualityRate"] == 25


def test_dashboard_empty_window(service, make_submission):
    make_submission(submission_date=utcnow() - timedelta(days=90))

    result = service.dashboard(days=7)

    assert result["totals"]["period"] == 0
    assert result["totals"]["qualityRate"] == 0
    assert result["analytics"]["dailySubmissions"] == []
    assert result["analytics"]["byCountry"] == []
    assert result["analytics"]["recentSubmissions"] == []


def test_dashboard_today_count(service, make_submission):
    now = utcnow()
    make_submission(submission_date=max(start_of_day(now), now - timedelta(seconds=1)))
    make_submission(submission_date=start_of_day(now) - timedelta(hours=2))

    assert service.dashboard(days=30)["totals"]["today"] == 1


def test_dashboard_daily_counts_ascending(service, make_submission):
    now = utcnow()
    make_submission(submission_date=now - timedelta(days=3))
    make_submission(submission_date=now - timedelta(days=3))
    make_submission(submission_date=now - timedelta(days=1))

    daily = service.dashboard(days=30)["analytics"]["dailySubmissions"]

    assert [row["count"] for row in daily] == [2, 1]
    assert daily[0]["id"] == (now - timedelta(days=3)).date().isoformat()
    assert daily[0]["id"] < daily[1]["id"]


def test_dashboard_top_countries_exclude_unknown(service, make_submission):
    for _ in range(3):
        make_submission(geolocation={"country": "United States"}, quality_score=80)
    make_submission(geolocation={"country": "Canada"}, quality_score=40)
    make_submission(geolocation={"country": "Canada"}, quality_score=60)
    make_submission(geolocation={"country": "Unknown"})
    make_submission(geolocation={"country": "Unknown"})
    make_submission(geolocation={"country": "Unknown"})
    make_submission(geolocation={"country": "Unknown"})

    by_country = service.dashboard()["analytics"]["byCountry"]

    assert [row["id"] for row in by_country] == ["United States", "Canada"]
    assert [row["count"] for row in by_country] == [3, 2]
    assert by_country[1]["avgQuality"] == pytest.approx(50)


def test_dashboard_top_countries_limited_to_ten(service, make_submission):
    for index in range(12):
        make_submission(geolocation={"country": f"Country {index:02d}"})

    assert len(service.dashboard()["analytics"]["byCountry"]) == 10


def test_dashboard_device_and_status_breakdowns(service, make_submission):
    make_submission(device_info={"type": "mobile"}, status="pending")
    make_submission(device_info={"type": "mobile"}, status="qualified")
    make_submission(device_info={"type": "desktop"}, status="qualified")

    analytics = service.dashboard()["analytics"]
    by_device = {row["id"]: row["count"] for row in analytics["byDevice"]}
    by_status = {row["id"]: row["count"] for row in analytics["byStatus"]}

    assert by_device == {"mobile": 2, "desktop": 1}
    # Statuses without records are absent rather than zero
    assert by_status == {"pending": 1, "qualified": 2}


def test_dashboard_recent_submissions_projection(service, make_submission):
    now = utcnow()
    for minutes in range(7):
        make_submission(fname=f"Lead {minutes}", submission_date=now - timedelta(minutes=minutes + 1))

    recent = service.dashboard()["analytics"]["recentSubmissions"]

    assert [row["fname"] for row in recent] == ["Lead 0", "Lead 1", "Lead 2", "Lead 3", "Lead 4"]
    assert set(recent[0]) == {
        "id", "fname", "lname", "email", "submission_date", "geolocation", "quality_score", "status",
    }


def test_funnel_counts_rates_and_quality(service, make_submission):
    for score in (40, 60, 80, 100):
        make_submission(status="pending", quality_score=score)
    make_submission(status="processed", quality_score=70)
    make_submission(status="processed", quality_score=90)
    make_submission(status="contacted")
    for _ in range(3):
        make_submission(status="rejected")

    result = service.funnel(days=30)
    stages = result["funnel"]

    assert [stage["status"] for stage in stages] == ["pending", "processed", "contacted", "qualified"]
    assert [stage["count"] for stage in stages] == [4, 2, 1, 0]
    assert [stage["conversionRate"] for stage in stages] == [100, 50, 50, 0]
    assert stages[0]["avgQuality"] == pytest.approx(70)
    assert stages[1]["avgQuality"] == pytest.approx(80)
    assert stages[3]["avgQuality"] == 0
    assert result["totalSubmissions"] == 7


def test_funnel_ignores_submissions_outside_window(service, make_submission):
    make_submission(status="pending", submission_date=utcnow() - timedelta(days=45))

    result = service.funnel(days=30)

    assert result["totalSubmissions"] == 0
    assert [stage["conversionRate"] for stage in result["funnel"]] == [100, 0, 0, 0]


def test_map_data_excludes_zero_coordinates(service, make_submission):
    austin = {"city": "Austin", "country": "United States", "latitude": 30.27, "longitude": -97.74}
    make_submission(geolocation=austin)
    make_submission(geolocation=austin)
    make_submission(geolocation={"city": "Toronto", "country": "Canada", "latitude": 43.65, "longitude": -79.38})
    make_submission(geolocation={"city": "Nowhere", "country": "Atlantis", "latitude": 0, "longitude": 0})
    make_submission(geolocation={"city": "Meridian", "country": "Ghana", "latitude": 5.6, "longitude": 0})

    points = service.map_data()

    assert [point["location"]["city"] for point in points] == ["Austin", "Toronto"]
    assert points[0]["count"] == 2
    assert points[0]["coordinates"] == {"lat": pytest.approx(30.27), "lng": pytest.approx(-97.74)}


def test_map_data_limit(db, make_submission):
    for index in range(5):
        make_submission(geolocation={"city": f"City {index}", "latitude": 10 + index, "longitude": 20 + index})

    points = AnalyticsService(db, AnalyticsConfig(map_limit=3)).map_data()

    assert len(points) == 3


def test_location_stats_groups_by_place(service, make_submission):
    texas = {"country": "United States", "region": "Texas", "city": "Austin"}
    make_submission(geolocation=texas, quality_score=60)
    make_submission(geolocation=texas, quality_score=80)
    make_submission(geolocation={"country": "Canada", "region": "Ontario", "city": "Toronto"})

    stats = service.location_stats()

    assert stats[0] == {
        "country": "United States", "region": "Texas", "city": "Austin", "count": 2, "avgQuality": 70.0,
    }
    assert len(stats) == 2


def test_start_of_day_is_midnight_of_the_utc_date():
    assert start_of_day(datetime(2026, 3, 1, 23, 59, 59)) == datetime(2026, 3, 1)
