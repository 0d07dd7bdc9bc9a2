"""
Submission model: one enriched lead form intake record.
"""
import enum

from sqlalchemy import Column, String, Text, Integer, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB

from leadpulse.database.models.base import BaseModel
from leadpulse.utils.helpers import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
NestedJSON = JSON().with_variant(JSONB(), "postgresql")


class SubmissionStatus(str, enum.Enum):
    """Workflow status; any value may be set from any other"""
    PENDING = "pending"
    PROCESSED = "processed"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list:
        return [member.value for member in cls]


class Submission(BaseModel):
    """
    Submission model representing one lead form intake.
    Maps to the 'submissions' table.

    The geolocation, browser_info, os_info and device_info columns always
    hold a complete object (see schemas.submissions), so aggregation code
    can group on their keys without checking for presence.
    """
    __tablename__ = "submissions"

    # Form data
    fname = Column(String(255), nullable=False, default="Unknown")
    lname = Column(String(255), nullable=False, default="Unknown")
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=False, default="0000000000", index=True)
    state = Column(String(50), nullable=False, default="XX")
    age = Column(String(20), nullable=False, default="0")
    beneficiary = Column(String(100), nullable=False, default="other")

    # Technical data
    ip_address = Column(String(64), nullable=False, default="127.0.0.1")
    user_agent = Column(Text, nullable=False, default="Unknown")
    geolocation = Column(NestedJSON, nullable=False, default=dict)
    browser_info = Column(NestedJSON, nullable=False, default=dict)
    os_info = Column(NestedJSON, nullable=False, default=dict)
    device_info = Column(NestedJSON, nullable=False, default=dict)

    # Provenance / tracking
    trusted_form_cert_url = Column(String(500), nullable=False, default="https://cert.trustedform.com/pending")
    case_type = Column(String(100), nullable=True, default="Final Expense")
    ownerid = Column(String(100), nullable=True, default="005TR00000CDuezYAD")
    campaign = Column(String(255), nullable=True)
    offer_url = Column(Text, nullable=True)
    referrer = Column(Text, nullable=True)

    # Workflow
    status = Column(String(20), nullable=False, default=SubmissionStatus.PENDING.value, index=True)
    quality_score = Column(Integer, nullable=False, default=0)
    submission_date = Column(DateTime, nullable=False, default=utcnow, index=True)

    @classmethod
    def geo(cls, field: str):
        """Text accessor for a geolocation sub-field, usable in filters and GROUP BY"""
        return cls.geolocation[field].as_string()

    @classmethod
    def geo_number(cls, field: str):
        """Numeric accessor for latitude/longitude"""
        return cls.geolocation[field].as_float()

    @classmethod
    def device(cls, field: str):
        """Text accessor for a device_info sub-field"""
        return cls.device_info[field].as_string()

    @classmethod
    def column_names(cls) -> list:
        return [column.name for column in cls.__table__.columns]

    def __repr__(self) -> str:
        return f"<Submission id={self.id} email={self.email!r} status={self.status}>"
