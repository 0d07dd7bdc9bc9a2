"""
Analytics service: dashboard summary, conversion funnel and map data.

Every method is a set of independent point-in-time reads at the store's
default isolation level. Submissions written while a dashboard is being
assembled may show up in some of its figures and not others.
"""
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from leadpulse.core.config import settings, AnalyticsConfig
from leadpulse.database.models.submission import Submission, SubmissionStatus
from leadpulse.repositories.submission_repository import SubmissionFilter, SubmissionRepository
from leadpulse.schemas.submissions import SubmissionSummary
from leadpulse.utils.helpers import utcnow
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)

FUNNEL_STAGES = [
    SubmissionStatus.PENDING.value,
    SubmissionStatus.PROCESSED.value,
    SubmissionStatus.CONTACTED.value,
    SubmissionStatus.QUALIFIED.value,
]


def window_start(days: int, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(days=days)


def start_of_day(now: Optional[datetime] = None) -> datetime:
    """
    Midnight UTC of the current day. Stored timestamps are naive UTC, so the
    "today" total counts from UTC midnight whatever the server's local zone.
    """
    return (now or utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)


def quality_rate(high_quality: int, total: int) -> int:
    """Percentage of high-quality submissions, rounded half up; 0 for an empty window"""
    if total <= 0:
        return 0
    return int(math.floor(high_quality / total * 100 + 0.5))


def conversion_rates(counts: Sequence[int]) -> List[float]:
    """
    Stage-over-previous-stage conversion. The first stage is 100 by
    definition; a stage after an empty stage is 0.
    """
    rates = []
    for index, count in enumerate(counts):
        if index == 0:
            rates.append(100.0)
            continue
        previous = counts[index - 1]
        rates.append(count / previous * 100 if previous > 0 else 0.0)
    return rates


def _as_float(value: Any) -> float:
    return float(value) if value is not None else 0.0


class AnalyticsService:
    """Read-only aggregation over stored submissions"""

    def __init__(self, db: Session, config: Optional[AnalyticsConfig] = None):
        self.repository = SubmissionRepository(db)
        self.config = config or settings.analytics

    def dashboard(self, days: Optional[int] = None) -> Dict[str, Any]:
        days = days or self.config.default_days
        now = utcnow()
        window = SubmissionFilter(since=window_start(days, now))

        total_all_time = self.repository.count()
        today = self.repository.count_matching(SubmissionFilter(since=start_of_day(now)))
        total_period = self.repository.count_matching(window)
        high_quality = self.repository.count_matching(
            window, Submission.quality_score >= self.config.high_quality_threshold
        )

        logger.debug(f"[dim]Dashboard for {days} days: {total_period} submissions in window[/dim]")

        return {
            "period": {"days": days, "startDate": window.since, "endDate": now},
            "totals": {
                "allTime": total_all_time,
                "period": total_period,
                "today": today,
                "qualityRate": quality_rate(high_quality, total_period),
            },
            "analytics": {
                "dailySubmissions": self.daily_counts(window),
                "byCountry": self.top_countries(window),
                "byDevice": self.device_counts(window),
                "byStatus": self.status_counts(window),
                "recentSubmissions": self.recent(window, self.config.recent_limit),
            },
        }

    def daily_counts(self, window: SubmissionFilter) -> List[Dict[str, Any]]:
        day = func.date(Submission.submission_date).label("day")
        rows = self.repository.grouped(
            keys=[day],
            aggregates=[self.repository.count_label()],
            filters=window,
            order_by=[day.asc()],
        )
        # SQLite returns text, PostgreSQL returns a date
        return [{"id": str(row["day"]), "count": int(row["count"])} for row in rows]

    def top_countries(self, window: SubmissionFilter) -> List[Dict[str, Any]]:
        country = Submission.geo("country").label("country")
        count = self.repository.count_label()
        rows = self.repository.grouped(
            keys=[country],
            aggregates=[count, self.repository.avg_quality_label()],
            filters=window,
            extra_conditions=[Submission.geo("country").isnot(None), Submission.geo("country") != "Unknown"],
            order_by=[count.desc()],
            limit=self.config.top_countries_limit,
        )
        return [
            {"id": row["country"], "count": int(row["count"]), "avgQuality": _as_float(row["avgQuality"])}
            for row in rows
        ]

    def device_counts(self, window: SubmissionFilter) -> List[Dict[str, Any]]:
        device_type = Submission.device("type").label("device_type")
        rows = self.repository.grouped(
            keys=[device_type],
            aggregates=[self.repository.count_label()],
            filters=window,
        )
        return [{"id": row["device_type"], "count": int(row["count"])} for row in rows]

    def status_counts(self, window: SubmissionFilter) -> List[Dict[str, Any]]:
        """Only statuses that occur in the window are returned"""
        rows = self.repository.grouped(
            keys=[Submission.status],
            aggregates=[self.repository.count_label()],
            filters=window,
        )
        return [{"id": row["status"], "count": int(row["count"])} for row in rows]

    def recent(self, window: SubmissionFilter, limit: int) -> List[Dict[str, Any]]:
        return [
            SubmissionSummary.model_validate(submission).model_dump()
            for submission in self.repository.find_recent(window, limit=limit)
        ]

    def funnel(self, days: Optional[int] = None) -> Dict[str, Any]:
        days = days or self.config.default_days
        window = SubmissionFilter(since=window_start(days))

        rows = self.repository.grouped(
            keys=[Submission.status],
            aggregates=[self.repository.count_label(), self.repository.avg_quality_label()],
            filters=window,
        )
        by_status = {row["status"]: row for row in rows}

        counts = [int(by_status[stage]["count"]) if stage in by_status else 0 for stage in FUNNEL_STAGES]
        rates = conversion_rates(counts)

        funnel = []
        for stage, count, rate in zip(FUNNEL_STAGES, counts, rates):
            row = by_status.get(stage)
            funnel.append({
                "status": stage,
                "count": count,
                "avgQuality": _as_float(row["avgQuality"]) if row else 0.0,
                "conversionRate": rate,
            })

        return {
            "period": {"days": days, "startDate": window.since},
            "totalSubmissions": sum(counts),
            "funnel": funnel,
        }

    def map_data(self, days: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Submission counts per (city, country, lat, lng). Records with a zero
        or missing coordinate are left out, which also drops any genuine
        location on the equator or prime meridian.
        """
        days = days or self.config.default_days
        window = SubmissionFilter(since=window_start(days))
        count = self.repository.count_label()

        rows = self.repository.grouped(
            keys=[
                Submission.geo("city").label("city"),
                Submission.geo("country").label("country"),
                Submission.geo_number("latitude").label("lat"),
                Submission.geo_number("longitude").label("lng"),
            ],
            aggregates=[count],
            filters=window,
            extra_conditions=[self.repository.coordinates_present()],
            order_by=[count.desc()],
            limit=self.config.map_limit,
        )
        return [
            {
                "coordinates": {"lat": float(row["lat"]), "lng": float(row["lng"])},
                "location": {"city": row["city"], "country": row["country"]},
                "count": int(row["count"]),
            }
            for row in rows
        ]

    def location_stats(self, days: Optional[int] = None) -> List[Dict[str, Any]]:
        days = days or self.config.default_days
        window = SubmissionFilter(since=window_start(days))
        count = self.repository.count_label()

        rows = self.repository.grouped(
            keys=[
                Submission.geo("country").label("country"),
                Submission.geo("region").label("region"),
                Submission.geo("city").label("city"),
            ],
            aggregates=[count, self.repository.avg_quality_label()],
            filters=window,
            order_by=[count.desc()],
            limit=self.config.location_stats_limit,
        )
        return [
            {
                "country": row["country"],
                "region": row["region"],
                "city": row["city"],
                "count": int(row["count"]),
                "avgQuality": _as_float(row["avgQuality"]),
            }
            for row in rows
        ]
