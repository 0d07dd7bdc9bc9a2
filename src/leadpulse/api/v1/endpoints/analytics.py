"""
Analytics API endpoints: dashboard, funnel, map data and exports
"""
import asyncio
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse, Response
from rich.markup import escape
from sqlalchemy.orm import Session

from leadpulse.api.v1.dependencies import require_permission
from leadpulse.core.dependencies import get_db
from leadpulse.repositories.submission_repository import SubmissionFilter
from leadpulse.schemas.analytics import DashboardResponse, FunnelResponse, MapPoint
from leadpulse.services.analytics_service import AnalyticsService
from leadpulse.services.export_service import ExportService, export_filename, schedule_cleanup
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/analytics")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_filters(
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    status_filter: Optional[str] = Query(None, alias="status"),
    country: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
) -> SubmissionFilter:
    """Listing filters without pagination"""
    return SubmissionFilter(
        search=search,
        status=status_filter,
        country=country,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    days: Optional[int] = Query(None, ge=1, le=3650),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewAnalytics")),
):
    """Totals, quality rate, daily/country/device/status breakdowns and recent submissions"""
    try:
        return AnalyticsService(db).dashboard(days=days)
    except Exception as e:
        logger.error(f"[red]Dashboard analytics error:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/funnel", response_model=FunnelResponse)
def funnel(
    days: Optional[int] = Query(None, ge=1, le=3650),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewAnalytics")),
):
    """Conversion funnel pending → processed → contacted → qualified"""
    try:
        return AnalyticsService(db).funnel(days=days)
    except Exception as e:
        logger.error(f"[red]Funnel analytics error:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/map-data", response_model=List[MapPoint])
def map_data(
    days: Optional[int] = Query(None, ge=1, le=3650),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("viewAnalytics")),
):
    """Submission counts per located city, for map visualizations"""
    try:
        return AnalyticsService(db).map_data(days=days)
    except Exception as e:
        logger.error(f"[red]Map data error:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/export/csv")
async def export_csv(
    filters: SubmissionFilter = Depends(export_filters),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("exportData")),
):
    """
    Download matching submissions as CSV.
    The file is removed from the export directory after the configured delay.
    Returns 404 when nothing matches.
    """
    service = ExportService(db)
    try:
        path = await asyncio.to_thread(service.export_csv, filters)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]CSV export error:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail="Export failed")

    schedule_cleanup(path, service.config.cleanup_delay_seconds)
    return FileResponse(path, media_type="text/csv", filename=path.name)


@router.get("/export/excel")
def export_excel(
    filters: SubmissionFilter = Depends(export_filters),
    db: Session = Depends(get_db),
    _role: str = Depends(require_permission("exportData")),
):
    """Download matching submissions as an Excel workbook. Returns 404 when nothing matches."""
    service = ExportService(db)
    try:
        content = service.export_excel(filters)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[red]Excel export error:[/red] {escape(str(e))}")
        raise HTTPException(status_code=500, detail="Export failed")

    filename = export_filename(service.config.filename_prefix, "xlsx")
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
