"""
Analytics response schemas
"""
from typing import List, Optional
from datetime import datetime

from leadpulse.schemas.base import BaseSchema
from leadpulse.schemas.submissions import SubmissionSummary


class Period(BaseSchema):
    days: int
    startDate: datetime
    endDate: Optional[datetime] = None


class Totals(BaseSchema):
    allTime: int
    period: int
    today: int
    qualityRate: int


class GroupCount(BaseSchema):
    """One row of a single-key grouping; `id` is the group value"""
    id: Optional[str] = None
    count: int


class CountryCount(GroupCount):
    avgQuality: float = 0


class DashboardAnalytics(BaseSchema):
    dailySubmissions: List[GroupCount]
    byCountry: List[CountryCount]
    byDevice: List[GroupCount]
    byStatus: List[GroupCount]
    recentSubmissions: List[SubmissionSummary]


class DashboardResponse(BaseSchema):
    period: Period
    totals: Totals
    analytics: DashboardAnalytics


class FunnelStage(BaseSchema):
    status: str
    count: int
    avgQuality: float
    conversionRate: float


class FunnelResponse(BaseSchema):
    period: Period
    totalSubmissions: int
    funnel: List[FunnelStage]


class Coordinates(BaseSchema):
    lat: float
    lng: float


class MapLocation(BaseSchema):
    city: Optional[str] = None
    country: Optional[str] = None


class MapPoint(BaseSchema):
    coordinates: Coordinates
    location: MapLocation
    count: int


class LocationStat(BaseSchema):
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    count: int
    avgQuality: float
