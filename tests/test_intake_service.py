"""
Tests for `services/intake_service.py`.

Covers:
- field defaults and normalization on the happy path
- provenance fallbacks (trusted-form chain, offer URL from referrer)
- the degraded fallback save when enrichment or persistence fails
"""
import logging

import pytest
from rich.text import Text

from leadpulse.core.config import IntakeConfig
from leadpulse.database.models import Submission
from leadpulse.repositories.submission_repository import SubmissionRepository
from leadpulse.schemas.submissions import BrowserInfo, DeviceInfo, GeoLocation, OsInfo
from leadpulse.services.enrichment import Geolocator, RequestContext
from leadpulse.services.intake_service import FAILURE_MESSAGE, IntakeService

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BrokenGeolocator(Geolocator):
    def lookup(self, ip):
        raise RuntimeError("geo database corrupted")


@pytest.fixture()
def service(db):
    return IntakeService(db, Geolocator(), IntakeConfig())


def stored(db):
    return db.query(Submission).all()


def test_submit_normalizes_contact_fields(db, service):
    payload = {
        "fname": "  Jane ",
        "lname": "Doe",
        "email": "  Jane.Doe@Example.COM ",
        "phone": "(555) 123-4567",
        "state": "tx",
        "age": 67,
        "beneficiary": "spouse",
        "campaign": "fall-promo",
    }
    context = RequestContext(forwarded_for="::ffff:203.0.113.5", user_agent=CHROME_WINDOWS)

    result = service.submit(payload, context)

    assert result.status == "SUCCESS"
    assert result.submissionId is not None
    submission = db.get(Submission, result.submissionId)
    assert submission.fname == "Jane"
    assert submission.email == "jane.doe@example.com"
    assert submission.phone == "5551234567"
    assert submission.state == "TX"
    assert submission.age == "67"
    assert submission.campaign == "fall-promo"
    assert submission.ip_address == "203.0.113.5"
    assert submission.browser_info["family"] == "Chrome"
    assert submission.device_info["type"] == "desktop"


def test_submit_empty_payload_applies_every_default(db, service):
    result = service.submit({}, RequestContext())

    assert result.status == "SUCCESS"
    submission = db.get(Submission, result.submissionId)
    assert submission.fname == "Unknown"
    assert submission.lname == "Unknown"
    assert submission.email is None
    assert submission.phone == "0000000000"
    assert submission.state == "XX"
    assert submission.age == "0"
    assert submission.beneficiary == "other"
    assert submission.ip_address == "127.0.0.1"
    assert submission.user_agent == "Unknown"
    assert submission.trusted_form_cert_url == "https://cert.trustedform.com/pending"
    assert submission.case_type == "Final Expense"
    assert submission.ownerid == "005TR00000CDuezYAD"
    assert submission.campaign == ""
    assert submission.offer_url == ""
    assert submission.referrer == ""
    assert submission.status == "pending"
    assert submission.quality_score == 0
    assert submission.submission_date is not None
    assert submission.geolocation == GeoLocation().model_dump()
    assert set(submission.browser_info) == {"family", "version", "major"}
    assert set(submission.device_info) == {"family", "brand", "model", "type"}


def test_submit_phone_without_digits_defaults(db, service):
    result = service.submit({"phone": "call me"}, RequestContext())

    assert db.get(Submission, result.submissionId).phone == "0000000000"


def test_submit_array_uses_first_element(db, service):
    result = service.submit([{"fname": "First"}, {"fname": "Second"}], RequestContext())

    assert result.status == "SUCCESS"
    assert [s.fname for s in stored(db)] == ["First"]


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"xxTrustedFormCertUrl": "https://cert/a", "Trusted_Form_Alt": "https://cert/b"}, "https://cert/a"),
        ({"Trusted_Form_Alt": "https://cert/b", "trusted_form_cert_url": "https://cert/c"}, "https://cert/b"),
        ({"trusted_form_cert_url": "https://cert/c"}, "https://cert/c"),
    ],
)
def test_trusted_form_fallback_chain(db, service, payload, expected):
    result = service.submit(payload, RequestContext())

    assert db.get(Submission, result.submissionId).trusted_form_cert_url == expected


def test_offer_url_falls_back_to_referrer(db, service):
    referer = "https://landing.example.com/quote"
    result = service.submit({}, RequestContext(referer=referer))

    submission = db.get(Submission, result.submissionId)
    assert submission.offer_url == referer
    assert submission.referrer == referer


def test_enrichment_failure_saves_one_basic_record(db):
    service = IntakeService(db, BrokenGeolocator(), IntakeConfig())
    payload = {"fname": "Jane", "email": "Jane@Example.com", "xxTrustedFormCertUrl": "https://cert/a"}
    context = RequestContext(forwarded_for="203.0.113.5", framework_ip="10.0.0.9", user_agent=CHROME_WINDOWS)

    result = service.submit(payload, context)

    assert result.status == "ERROR"
    assert result.message == FAILURE_MESSAGE
    assert "geo database corrupted" in result.error

    records = stored(db)
    assert len(records) == 1
    basic = records[0]
    assert basic.fname == "Jane"
    assert basic.lname == "Unknown"
    assert basic.email == "Jane@Example.com"
    assert basic.ip_address == "10.0.0.9"
    assert basic.user_agent == CHROME_WINDOWS
    assert basic.trusted_form_cert_url == "https://cert/a"
    assert basic.geolocation == GeoLocation().model_dump()
    assert basic.browser_info == BrowserInfo().model_dump()
    assert basic.os_info == OsInfo().model_dump()
    assert basic.device_info == DeviceInfo().model_dump()
    assert basic.status == "pending"


def test_primary_save_failure_falls_back(db, service, monkeypatch):
    original_create = SubmissionRepository.create
    calls = []

    def flaky_create(self, **kwargs):
        calls.append(kwargs)
        if len(calls) == 1:
            raise RuntimeError("connection reset")
        return original_create(self, **kwargs)

    monkeypatch.setattr(SubmissionRepository, "create", flaky_create)

    result = service.submit({"fname": "Jane", "phone": "555-0100"}, RequestContext())

    assert result.status == "ERROR"
    assert result.error == "connection reset"
    assert len(calls) == 2
    records = stored(db)
    assert len(records) == 1
    # The fallback stores the raw phone, without digit stripping
    assert records[0].phone == "555-0100"


def test_fallback_failure_is_swallowed(db, service, monkeypatch):
    def failing_create(self, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(SubmissionRepository, "create", failing_create)

    result = service.submit({"fname": "Jane"}, RequestContext())

    assert result.status == "ERROR"
    assert result.error == "database unavailable"
    assert stored(db) == []


def test_unreadable_payload_stores_nothing(db, service):
    result = service.submit("not an object", RequestContext())

    assert result.status == "ERROR"
    assert result.error
    assert stored(db) == []


def test_malformed_field_triggers_fallback(db, service):
    result = service.submit({"fname": "Jane", "age": {"years": 70}}, RequestContext())

    assert result.status == "ERROR"
    assert "age" in result.error
    assert [s.fname for s in stored(db)] == ["Jane"]


class CollectingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


def test_log_lines_render_user_text_verbatim(service):
    handler = CollectingHandler()
    intake_logger = logging.getLogger("leadpulse.services.intake_service")
    intake_logger.addHandler(handler)
    try:
        service.submit({"email": "x[/x][bold]@example.com"}, RequestContext())
    finally:
        intake_logger.removeHandler(handler)

    saved = [message for message in handler.messages if "New submission saved" in message]
    assert len(saved) == 1
    # Markup parsing would fail on the closing tag if the email were not escaped
    assert "x[/x][bold]@example.com" in Text.from_markup(saved[0]).plain
