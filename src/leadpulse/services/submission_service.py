"""
Submission service: filtered listing and record management
"""
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from leadpulse.database.models.submission import Submission, SubmissionStatus
from leadpulse.repositories.submission_repository import SubmissionFilter, SubmissionRepository
from leadpulse.schemas.submissions import SubmissionPatch, SubmissionSummary
from leadpulse.services.analytics_service import window_start
from leadpulse.utils.exceptions import DatabaseError, NotFoundError, ValidationError
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)

SORT_ORDERS = ("asc", "desc")


class SubmissionService:
    """Listing, lookup and status management for stored submissions"""

    def __init__(self, db: Session):
        self.repository = SubmissionRepository(db)

    def list_submissions(
        self,
        filters: SubmissionFilter,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "submission_date",
        sort_order: str = "desc",
    ) -> Tuple[List[Submission], Dict[str, int]]:
        """
        Get one page of submissions matching the filters.

        Args:
            filters: Search, status, country and date range criteria
            page: 1-based page number
            limit: Page size
            sort_by: Any stored column name
            sort_order: "asc" or "desc"

        Returns:
            The page of submissions and its pagination metadata

        Raises:
            ValidationError: If the sort field or direction is unknown
        """
        if sort_by not in Submission.column_names():
            raise ValidationError(f"Invalid sort field '{sort_by}'")
        if sort_order.lower() not in SORT_ORDERS:
            raise ValidationError(f"Invalid sort order '{sort_order}', expected 'asc' or 'desc'")

        submissions, total = self.repository.find_many(
            filters,
            sort_by=sort_by,
            descending=sort_order.lower() == "desc",
            page=page,
            limit=limit,
        )
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        }
        return submissions, pagination

    def get_submission(self, submission_id: int) -> Submission:
        submission = self.repository.find_by_id(submission_id)
        if not submission:
            raise NotFoundError()
        return submission

    def update_status(self, submission_id: int, status: Optional[str]) -> Submission:
        """
        Set a submission's status. Any valid status may follow any other;
        no transition order is enforced.
        """
        if status not in SubmissionStatus.values():
            raise ValidationError({"message": "Invalid status", "validStatuses": SubmissionStatus.values()})

        submission = self.get_submission(submission_id)
        previous = submission.status
        try:
            submission = self.repository.update(submission, status=status)
        except Exception as e:
            raise DatabaseError(f"Failed to update submission {submission_id}: {e}") from e

        logger.info(f"[cyan]Submission {submission_id} status:[/cyan] {previous} → [bold]{status}[/bold]")
        return submission

    def bulk_update(self, ids: List[int], updates: SubmissionPatch) -> int:
        values = updates.model_dump(exclude_none=True, mode="json")
        if not ids:
            raise ValidationError("Invalid request: ids array and updates object required")
        if not values:
            raise ValidationError("Invalid request: updates must change at least one field")

        try:
            modified = self.repository.update_by_ids(ids, values)
        except Exception as e:
            raise DatabaseError(f"Bulk update failed: {e}") from e

        logger.info(f"[green]Bulk update:[/green] {modified} of {len(ids)} submissions changed {sorted(values)}")
        return modified

    def soft_delete(self, submission_id: int) -> Submission:
        """Deletion marks the submission rejected; rows are never removed"""
        return self.update_status(submission_id, SubmissionStatus.REJECTED.value)

    def recent_summary(self, days: int = 7, limit: int = 10) -> List[Dict[str, Any]]:
        window = SubmissionFilter(since=window_start(days))
        return [
            SubmissionSummary.model_validate(submission).model_dump()
            for submission in self.repository.find_recent(window, limit=limit)
        ]
