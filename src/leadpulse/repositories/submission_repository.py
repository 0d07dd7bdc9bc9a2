"""
Submission repository: filtered reads, grouped aggregates and bulk writes
over the submissions table.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from leadpulse.database.models.submission import Submission
from leadpulse.repositories.base_repository import BaseRepository
from leadpulse.utils.helpers import to_naive_utc


LIKE_ESCAPE = "\\"


def escape_like(text: str) -> str:
    """Make LIKE wildcards in user text match literally"""
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


@dataclass(frozen=True)
class SubmissionFilter:
    """
    Filter set shared by listing, export and the windowed analytics queries.
    All given criteria are combined with AND.
    """
    search: Optional[str] = None
    status: Optional[str] = None
    country: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    since: Optional[datetime] = None  # lookback window start

    def conditions(self) -> List[Any]:
        conditions = []

        if self.search:
            pattern = f"%{escape_like(self.search)}%"
            columns = [
                Submission.fname,
                Submission.lname,
                Submission.email,
                Submission.phone,
                Submission.geo("city"),
                Submission.geo("region"),
            ]
            conditions.append(or_(*(column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns)))

        if self.status:
            conditions.append(Submission.status == self.status)

        if self.country:
            conditions.append(Submission.geo("country") == self.country)

        if self.date_from:
            conditions.append(Submission.submission_date >= to_naive_utc(self.date_from))
        if self.date_to:
            conditions.append(Submission.submission_date <= to_naive_utc(self.date_to))
        if self.since:
            conditions.append(Submission.submission_date >= to_naive_utc(self.since))

        return conditions


class SubmissionRepository(BaseRepository[Submission]):
    """Data access for Submission records"""

    def __init__(self, db: Session):
        super().__init__(db, Submission)

    def count_matching(self, filters: SubmissionFilter, *extra) -> int:
        return self.count(*filters.conditions(), *extra)

    def find_many(
        self,
        filters: SubmissionFilter,
        sort_by: str = "submission_date",
        descending: bool = True,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Submission], int]:
        """
        Return one page of matching records and the total match count.
        `id` breaks ties so repeated queries page identically.
        """
        conditions = filters.conditions()
        total = self.count(*conditions)

        column = getattr(Submission, sort_by)
        order = [column.desc(), Submission.id.desc()] if descending else [column.asc(), Submission.id.asc()]

        rows = (
            self.db.query(Submission)
            .filter(*conditions)
            .order_by(*order)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def find_recent(self, filters: SubmissionFilter, limit: Optional[int] = None) -> List[Submission]:
        """Matching records, newest first"""
        query = (
            self.db.query(Submission)
            .filter(*filters.conditions())
            .order_by(Submission.submission_date.desc(), Submission.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def grouped(
        self,
        keys: Sequence[Any],
        aggregates: Sequence[Any],
        filters: SubmissionFilter,
        extra_conditions: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        GROUP BY the labeled key expressions and compute the labeled
        aggregates, returning one dict per group keyed by label.
        """
        query = (
            self.db.query(*keys, *aggregates)
            .filter(*filters.conditions(), *extra_conditions)
            .group_by(*keys)
        )
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        return [dict(row._mapping) for row in query.all()]

    def update_by_ids(self, ids: Sequence[int], values: Dict[str, Any]) -> int:
        if not ids:
            return 0
        return self.update_where([Submission.id.in_(list(ids))], values)

    def coordinates_present(self) -> Any:
        """Both coordinates set and neither equal to zero"""
        lat = Submission.geo_number("latitude")
        lng = Submission.geo_number("longitude")
        return and_(lat.isnot(None), lng.isnot(None), lat != 0, lng != 0)

    @staticmethod
    def count_label(name: str = "count"):
        return func.count(Submission.id).label(name)

    @staticmethod
    def avg_quality_label(name: str = "avgQuality"):
        return func.avg(Submission.quality_score).label(name)
