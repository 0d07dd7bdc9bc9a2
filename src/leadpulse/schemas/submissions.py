"""
Submission request and response schemas
"""
import re
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import ConfigDict, Field, field_validator

from leadpulse.database.models.submission import SubmissionStatus
from leadpulse.schemas.base import BaseSchema, BaseResponseSchema

UNKNOWN = "Unknown"


def _default(value: Optional[str], default: str) -> str:
    """Blank or missing values fall back to the field default"""
    return value if value else default


class IntakePayload(BaseSchema):
    """
    Raw lead form fields. Every field is optional; defaults are resolved by
    the accessor methods rather than at parse time so the raw values stay
    available for logging.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    fname: Optional[str] = None
    lname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    state: Optional[str] = None
    age: Optional[str] = None
    beneficiary: Optional[str] = None

    xx_trusted_form_cert_url: Optional[str] = Field(None, alias="xxTrustedFormCertUrl")
    trusted_form_alt: Optional[str] = Field(None, alias="Trusted_Form_Alt")
    trusted_form_cert_url: Optional[str] = None

    case_type: Optional[str] = None
    ownerid: Optional[str] = None
    campaign: Optional[str] = None
    offer_url: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def coerce_scalar(cls, v: Any) -> Optional[str]:
        # Forms post numbers for age/phone; nested values are malformed
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, (bool, int, float)):
            return str(v)
        raise ValueError(f"expected a scalar value, got {type(v).__name__}")

    def contact_fields(self) -> Dict[str, Optional[str]]:
        """Person fields with every default from the record schema applied"""
        email = (self.email or "").strip().lower()
        return {
            "fname": _default((self.fname or "").strip(), UNKNOWN),
            "lname": _default((self.lname or "").strip(), UNKNOWN),
            "email": email or None,
            "phone": _default(re.sub(r"\D", "", self.phone or ""), "0000000000"),
            "state": _default((self.state or "").strip().upper(), "XX"),
            "age": _default(self.age, "0"),
            "beneficiary": _default(self.beneficiary, "other"),
        }

    def trusted_form_url(self, pending_url: str) -> str:
        return (
            self.xx_trusted_form_cert_url
            or self.trusted_form_alt
            or self.trusted_form_cert_url
            or pending_url
        )


class GeoLocation(BaseSchema):
    """Fixed-shape geolocation record; every field has a default"""
    country: str = UNKNOWN
    country_code: str = "XX"
    region: str = UNKNOWN
    region_code: str = ""
    city: str = UNKNOWN
    zip: str = ""
    latitude: float = 0
    longitude: float = 0
    timezone: str = ""
    isp: str = ""
    org: str = ""

    @classmethod
    def from_lookup(cls, data: Optional[Dict[str, Any]]) -> "GeoLocation":
        """Build from a partial lookup result; empty or missing values keep their default"""
        if not data:
            return cls()
        return cls(**{key: value for key, value in data.items() if key in cls.model_fields and value})


class BrowserInfo(BaseSchema):
    family: str = UNKNOWN
    version: str = UNKNOWN
    major: str = UNKNOWN


class OsInfo(BaseSchema):
    family: str = UNKNOWN
    version: str = UNKNOWN
    major: str = UNKNOWN


class DeviceInfo(BaseSchema):
    family: str = UNKNOWN
    brand: str = UNKNOWN
    model: str = UNKNOWN
    type: Literal["mobile", "tablet", "desktop"] = "desktop"


class IntakeResponse(BaseSchema):
    """Outward envelope for the intake endpoint"""
    status: Literal["SUCCESS", "ERROR"]
    message: str
    submissionId: Optional[int] = None
    error: Optional[str] = None


class SubmissionSummary(BaseSchema):
    """Reduced projection used by dashboards and recent lists"""
    id: Optional[int] = None
    fname: str
    lname: str
    email: Optional[str] = None
    submission_date: datetime
    geolocation: Dict[str, Any]
    quality_score: int
    status: str


class SubmissionDetail(BaseResponseSchema):
    """Full submission record"""
    fname: str
    lname: str
    email: Optional[str] = None
    phone: str
    state: str
    age: str
    beneficiary: str
    ip_address: str
    user_agent: str
    geolocation: Dict[str, Any]
    browser_info: Dict[str, Any]
    os_info: Dict[str, Any]
    device_info: Dict[str, Any]
    trusted_form_cert_url: str
    case_type: Optional[str] = None
    ownerid: Optional[str] = None
    campaign: Optional[str] = None
    offer_url: Optional[str] = None
    referrer: Optional[str] = None
    status: str
    quality_score: int
    submission_date: datetime


class Pagination(BaseSchema):
    page: int
    limit: int
    total: int
    pages: int


class ListingFilters(BaseSchema):
    search: Optional[str] = None
    status: Optional[str] = None
    country: Optional[str] = None
    dateFrom: Optional[datetime] = None
    dateTo: Optional[datetime] = None


class SubmissionListResponse(BaseSchema):
    """Response schema for the filtered listing endpoint"""
    submissions: List[SubmissionDetail]
    pagination: Pagination
    filters: ListingFilters


class StatusUpdateRequest(BaseSchema):
    # Kept as a plain string so an unknown value gets the 400 with valid statuses
    status: Optional[str] = None


class SubmissionPatch(BaseSchema):
    """Fields a bulk update may change"""
    model_config = ConfigDict(extra="forbid")

    status: Optional[SubmissionStatus] = None
    quality_score: Optional[int] = Field(None, ge=0, le=100)
    campaign: Optional[str] = None
    case_type: Optional[str] = None
    ownerid: Optional[str] = None


class BulkUpdateRequest(BaseSchema):
    ids: List[int]
    updates: SubmissionPatch


class MessageResponse(BaseSchema):
    message: str


class StatusUpdateResponse(MessageResponse):
    submission: SubmissionDetail


class BulkUpdateResponse(MessageResponse):
    modifiedCount: int
