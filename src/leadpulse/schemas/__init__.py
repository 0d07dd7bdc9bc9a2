"""
Pydantic schemas for request/response validation
"""
from leadpulse.schemas.base import (
    BaseSchema,
    TimestampSchema,
    IDSchema,
    BaseResponseSchema
)
from leadpulse.schemas.submissions import (
    IntakePayload,
    IntakeResponse,
    GeoLocation,
    BrowserInfo,
    OsInfo,
    DeviceInfo,
    SubmissionSummary,
    SubmissionDetail,
    SubmissionListResponse,
    StatusUpdateRequest,
    SubmissionPatch,
    BulkUpdateRequest,
)
from leadpulse.schemas.analytics import (
    DashboardResponse,
    FunnelResponse,
    FunnelStage,
    MapPoint,
    LocationStat,
)

__all__ = [
    # Base schemas
    "BaseSchema",
    "TimestampSchema",
    "IDSchema",
    "BaseResponseSchema",
    # Submission schemas
    "IntakePayload",
    "IntakeResponse",
    "GeoLocation",
    "BrowserInfo",
    "OsInfo",
    "DeviceInfo",
    "SubmissionSummary",
    "SubmissionDetail",
    "SubmissionListResponse",
    "StatusUpdateRequest",
    "SubmissionPatch",
    "BulkUpdateRequest",
    # Analytics schemas
    "DashboardResponse",
    "FunnelResponse",
    "FunnelStage",
    "MapPoint",
    "LocationStat",
]
