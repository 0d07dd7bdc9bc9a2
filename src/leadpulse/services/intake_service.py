"""
Lead form intake: normalize, enrich and persist one submission.
"""
from typing import Any, Dict, Optional

from rich.markup import escape
from sqlalchemy.orm import Session

from leadpulse.core.config import settings, IntakeConfig
from leadpulse.database.models.submission import Submission, SubmissionStatus
from leadpulse.repositories.submission_repository import SubmissionRepository
from leadpulse.schemas.submissions import (
    BrowserInfo,
    DeviceInfo,
    GeoLocation,
    IntakePayload,
    IntakeResponse,
    OsInfo,
)
from leadpulse.services.enrichment import (
    LOOPBACK_IP,
    Geolocator,
    RequestContext,
    normalize_ip,
    parse_user_agent,
    resolve_client_ip,
)
from leadpulse.utils.helpers import utcnow
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Submission received successfully"
FAILURE_MESSAGE = "Submission failed. Please try again."


def first_payload(body: Any) -> Any:
    """Callers may post a single object or an array holding it"""
    if isinstance(body, list):
        return body[0] if body else None
    return body


class IntakeService:
    """
    Turns one raw form payload into a stored Submission.

    If normalization, enrichment or the save fails, a reduced record built
    from the plain form fields is saved instead, so a usable payload always
    leaves at least one row behind. The two writes are independent: a
    primary write that landed before failing plus the fallback yields two rows.
    """

    def __init__(self, db: Session, geolocator: Geolocator, config: Optional[IntakeConfig] = None):
        self.repository = SubmissionRepository(db)
        self.geolocator = geolocator
        self.config = config or settings.intake

    def submit(self, body: Any, context: RequestContext) -> IntakeResponse:
        try:
            record = self.build_record(body, context)
            submission = self.repository.create(**record)
        except Exception as e:
            logger.error(f"[red]❌ Form intake failed:[/red] {escape(str(e))}")
            self._save_fallback(body, context)
            return IntakeResponse(status="ERROR", message=FAILURE_MESSAGE, error=str(e))

        geo = submission.geolocation or {}
        logger.info(
            f"[green]✅ New submission saved:[/green] [cyan]id={submission.id}[/cyan] "
            f"email={escape(str(submission.email))} "
            f"location={escape(str(geo.get('city')))}, {escape(str(geo.get('country')))}"
        )
        return IntakeResponse(status="SUCCESS", message=SUCCESS_MESSAGE, submissionId=submission.id)

    def build_record(self, body: Any, context: RequestContext) -> Dict[str, Any]:
        """Full enriched record with every field default applied"""
        ip_address = normalize_ip(resolve_client_ip(context))
        user_agent = context.user_agent or ""
        browser, os_info, device = parse_user_agent(user_agent)
        geolocation = self.geolocator.locate(ip_address)

        payload = IntakePayload.model_validate(first_payload(body))
        referrer = context.referer or ""

        return {
            **payload.contact_fields(),
            "ip_address": ip_address,
            "user_agent": user_agent or "Unknown",
            "geolocation": geolocation.model_dump(),
            "browser_info": browser.model_dump(),
            "os_info": os_info.model_dump(),
            "device_info": device.model_dump(),
            "trusted_form_cert_url": payload.trusted_form_url(self.config.pending_cert_url),
            "case_type": payload.case_type or self.config.default_case_type,
            "ownerid": payload.ownerid or self.config.default_owner_id,
            "campaign": payload.campaign or "",
            "offer_url": payload.offer_url or referrer,
            "referrer": referrer,
            "status": SubmissionStatus.PENDING.value,
            "quality_score": 0,
            "submission_date": utcnow(),
        }

    def build_fallback_record(self, data: Dict[str, Any], context: RequestContext) -> Dict[str, Any]:
        """Reduced record from fields that can be read without parsing or lookups"""
        def text(key: str, default: Optional[str]) -> Optional[str]:
            value = data.get(key)
            return str(value) if value not in (None, "") else default

        return {
            "fname": text("fname", "Unknown"),
            "lname": text("lname", "Unknown"),
            "email": text("email", None),
            "phone": text("phone", "0000000000"),
            "state": text("state", "XX"),
            "age": text("age", "0"),
            "beneficiary": text("beneficiary", "other"),
            "ip_address": context.framework_ip or context.remote_address or LOOPBACK_IP,
            "user_agent": context.user_agent or "Unknown",
            "trusted_form_cert_url": text("xxTrustedFormCertUrl", self.config.pending_cert_url),
            "geolocation": GeoLocation().model_dump(),
            "browser_info": BrowserInfo().model_dump(),
            "os_info": OsInfo().model_dump(),
            "device_info": DeviceInfo().model_dump(),
            "status": SubmissionStatus.PENDING.value,
            "quality_score": 0,
            "submission_date": utcnow(),
        }

    def _save_fallback(self, body: Any, context: RequestContext) -> Optional[Submission]:
        data = first_payload(body)
        if not isinstance(data, dict):
            logger.warning("[yellow]⚠️  Payload is not an object, no basic submission saved[/yellow]")
            return None

        try:
            logger.info("[cyan]Attempting to save basic submission data...[/cyan]")
            submission = self.repository.create(**self.build_fallback_record(data, context))
            logger.info(f"[green]✅ Basic submission saved despite errors:[/green] [cyan]id={submission.id}[/cyan]")
            return submission
        except Exception as e:
            logger.error(f"[red]❌ Failed to save basic submission:[/red] {escape(str(e))}")
            return None
