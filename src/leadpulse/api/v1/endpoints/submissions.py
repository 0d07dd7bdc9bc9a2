"""
Submission API endpoints: public form intake and record management
"""
import asyncio
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from rich.markup import escape
from sqlalchemy.orm import Session

from leadpulse.api.v1.dependencies import require_permission
from leadpulse.core.dependencies import get_db
from leadpulse.repositories.submission_repository import SubmissionFilter
from leadpulse.schemas.submissions import (
    BulkUpdateRequest,
    BulkUpdateResponse,
    IntakeResponse,
    MessageResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
    SubmissionDetail,
    SubmissionListResponse,
    SubmissionSummary,
)
from leadpulse.services.analytics_service import AnalyticsService
from leadpulse.services.enrichment import Geolocator, RequestContext, get_geolocator
from leadpulse.services.intake_service import IntakeService
from leadpulse.services.submission_service import SubmissionService
from leadpulse.schemas.analytics import LocationStat
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def request_context(request: Request) -> RequestContext:
    """Snapshot the headers and peer address the intake pipeline needs"""
    headers = request.headers
    # ASGI exposes a single peer address for the connection
    peer = request.client.host if request.client else None
    return RequestContext(
        forwarded_for=headers.get("x-forwarded-for"),
        real_ip=headers.get("x-real-ip"),
        remote_address=peer,
        framework_ip=peer,
        user_agent=headers.get("user-agent"),
        referer=headers.get("referer"),
    )


@router.post("/submit", response_model=IntakeResponse)
async def submit_form(
    request: Request,
    db: Session = Depends(get_db),
    geolocator: Geolocator = Depends(get_geolocator),
):
    """
    Receive one lead form submission (an object or a one-element array).

    Returns SUCCESS with the new submission id, or ERROR with HTTP 500 and
    the underlying error message. A reduced record may still have been
    stored on the error path.
    """
    logger.info("[cyan]📝 Form intake request received[/cyan]")
    try:
        body = await request.json()
    except ValueError:
        body = None

    # Enrichment and the store are blocking, so they run off the event loop
    result = await asyncio.to_thread(IntakeService(db, geolocator).submit, body, request_context(request))
    status_code = status.HTTP_200_OK if result.status == "SUCCESS" else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=status_code, content=result.model_dump(exclude_none=True))


@router.get("/submissions", response_model=SubmissionListResponse)
def list_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=1000),
    search: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    country: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    sort_by: str = Query("submission_date", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewSubmissions")),
):
    """
    Get submissions with search, filters, sorting and pagination.

    `search` matches name, email, phone, city and region case-insensitively;
    `status` and `country` are exact matches; `dateFrom`/`dateTo` are inclusive.
    """
    try:
        filters = SubmissionFilter(
            search=search,
            status=status_filter,
            country=country,
            date_from=date_from,
            date_to=date_to,
        )
        submissions, pagination = SubmissionService(db).list_submissions(
            filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
        )
        return {
            "submissions": submissions,
            "pagination": pagination,
            "filters": {
                "search": search,
                "status": status_filter,
                "country": country,
                "dateFrom": date_from,
                "dateTo": date_to,
            },
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]Error fetching submissions:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/submissions/recent/summary", response_model=List[SubmissionSummary])
def recent_submissions(
    days: int = Query(7, ge=1, le=3650),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewSubmissions")),
):
    """The 10 most recent submissions in the last `days` days"""
    try:
        return SubmissionService(db).recent_summary(days=days)
    except Exception as e:
        logger.error(f"[red]Error fetching recent submissions:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/submissions/location/stats", response_model=List[LocationStat])
def location_stats(
    days: Optional[int] = Query(None, ge=1, le=3650),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewSubmissions")),
):
    """Submission counts and average quality per country/region/city"""
    try:
        return AnalyticsService(db).location_stats(days=days)
    except Exception as e:
        logger.error(f"[red]Error fetching location stats:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/submissions/bulk/update", response_model=BulkUpdateResponse)
def bulk_update_submissions(
    request_body: BulkUpdateRequest,
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewSubmissions")),
):
    """Apply the same field updates to every listed submission"""
    try:
        modified = SubmissionService(db).bulk_update(request_body.ids, request_body.updates)
        return {"message": f"Updated {modified} submissions", "modifiedCount": modified}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]Bulk update error:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/submissions/{submission_id}", response_model=SubmissionDetail)
def get_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewSubmissions")),
):
    """Get a single submission by id"""
    try:
        return SubmissionService(db).get_submission(submission_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]Error fetching submission {submission_id}:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/submissions/{submission_id}/status", response_model=StatusUpdateResponse)
def update_submission_status(
    submission_id: int,
    update: StatusUpdateRequest,
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewSubmissions")),
):
    """Set a submission's status; any status may be set from any other"""
    try:
        submission = SubmissionService(db).update_status(submission_id, update.status)
        return {"message": "Status updated successfully", "submission": submission}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]Error updating status of submission {submission_id}:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/submissions/{submission_id}", response_model=MessageResponse)
def delete_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("manageUsers")),
):
    """Soft delete: the submission is marked rejected and kept"""
    try:
        SubmissionService(db).soft_delete(submission_id)
        return {"message": "Submission marked as rejected (soft delete)"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]Error deleting submission {submission_id}:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))
