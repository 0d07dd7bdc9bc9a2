"""
Export service: flat projection of submissions for CSV and Excel files.

Cells are sanitized against spreadsheet formula injection: leading
=, +, -, @, tab and carriage return characters are stripped from text
values, and each strip is logged.
"""
import asyncio
import csv
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from rich.markup import escape
from sqlalchemy.orm import Session

from leadpulse.core.config import settings, ExportConfig
from leadpulse.database.models.submission import Submission
from leadpulse.repositories.submission_repository import SubmissionFilter, SubmissionRepository
from leadpulse.utils.exceptions import NoDataError
from leadpulse.utils.helpers import format_datetime, safe_get, utcnow
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)

# (key, header, excel column width)
EXPORT_COLUMNS = [
    ("id", "ID", 10),
    ("firstName", "First Name", 15),
    ("lastName", "Last Name", 15),
    ("email", "Email", 25),
    ("phone", "Phone", 15),
    ("state", "State", 8),
    ("age", "Age", 8),
    ("beneficiary", "Beneficiary", 12),
    ("city", "City", 15),
    ("region", "Region", 15),
    ("country", "Country", 15),
    ("zip", "ZIP", 10),
    ("ipAddress", "IP Address", 15),
    ("browser", "Browser", 15),
    ("os", "OS", 15),
    ("device", "Device", 10),
    ("status", "Status", 12),
    ("qualityScore", "Quality Score", 12),
    ("campaign", "Campaign", 20),
    ("submissionDate", "Submission Date", 22),
    ("trustedFormCert", "Trusted Form Cert", 40),
]

HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF4472C4")
HEADER_FONT = Font(bold=True, color="FFFFFFFF")

DANGEROUS_PREFIXES = {"=", "+", "-", "@", "\t", "\r"}


def sanitize_cell(value: Any, field_name: str = "unknown") -> Any:
    """Strip formula-triggering leading characters from text; other types pass through"""
    if not isinstance(value, str) or not value:
        return value

    text = value.strip()
    stripped = []
    while text and text[0] in DANGEROUS_PREFIXES:
        stripped.append(text[0])
        text = text[1:]

    if stripped:
        logger.warning(
            f"[yellow]⚠️  Stripped leading {escape(repr(stripped))} from export field[/yellow] "
            f"[cyan]{escape(field_name)}[/cyan]"
        )
    return text


def flatten_submission(submission: Submission) -> Dict[str, Any]:
    """Denormalize one submission into a single-level export row"""
    geolocation = submission.geolocation or {}
    return {
        "id": submission.id,
        "firstName": submission.fname,
        "lastName": submission.lname,
        "email": submission.email or "",
        "phone": submission.phone,
        "state": submission.state,
        "age": submission.age,
        "beneficiary": submission.beneficiary,
        "city": safe_get(geolocation, "city", default=""),
        "region": safe_get(geolocation, "region", default=""),
        "country": safe_get(geolocation, "country", default=""),
        "zip": safe_get(geolocation, "zip", default=""),
        "ipAddress": submission.ip_address,
        "browser": safe_get(submission.browser_info or {}, "family", default=""),
        "os": safe_get(submission.os_info or {}, "family", default=""),
        "device": safe_get(submission.device_info or {}, "type", default=""),
        "status": submission.status,
        "qualityScore": submission.quality_score,
        "campaign": submission.campaign or "",
        "submissionDate": format_datetime(submission.submission_date) or "",
        "trustedFormCert": submission.trusted_form_cert_url,
    }


def export_filename(prefix: str, extension: str) -> str:
    """Timestamped name with a random suffix; concurrent exports never share a file"""
    timestamp = utcnow().strftime("%Y-%m-%dT%H-%M-%S")
    return f"{prefix}_{timestamp}_{uuid4().hex[:8]}.{extension}"


def write_csv(rows: List[Dict[str, Any]], path: Path) -> Path:
    """Write rows with human-readable headers to a CSV file"""
    path.parent.mkdir(parents=True, exist_ok=True)
    headers = {key: header for key, header, _ in EXPORT_COLUMNS}
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(headers))
        writer.writerow(headers)
        for row in rows:
            writer.writerow({key: sanitize_cell(row.get(key), key) for key in headers})
    return path


def build_workbook(rows: List[Dict[str, Any]], title: str = "Submissions") -> bytes:
    """Render rows as an .xlsx workbook with a styled header row"""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = title

    worksheet.append([header for _, header, _ in EXPORT_COLUMNS])
    for index, (_, _, width) in enumerate(EXPORT_COLUMNS, start=1):
        worksheet.column_dimensions[get_column_letter(index)].width = width
        cell = worksheet.cell(row=1, column=index)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    for row in rows:
        worksheet.append([sanitize_cell(row.get(key), key) for key, _, _ in EXPORT_COLUMNS])

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def remove_export_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
        logger.info(f"[dim]Export file removed:[/dim] {path.name}")
    except OSError as e:
        logger.error(f"[red]Failed to remove export file {path}:[/red] {escape(str(e))}")


def schedule_cleanup(path: Path, delay_seconds: float) -> asyncio.TimerHandle:
    """Remove the export file after a delay, whether or not the download finished"""
    loop = asyncio.get_running_loop()
    return loop.call_later(delay_seconds, remove_export_file, path)


class ExportService:
    """Builds export rows and files from filtered submissions"""

    def __init__(self, db: Session, config: Optional[ExportConfig] = None):
        self.repository = SubmissionRepository(db)
        self.config = config or settings.export

    def collect_rows(self, filters: SubmissionFilter) -> List[Dict[str, Any]]:
        """
        Flat rows for every matching submission, newest first.

        Raises:
            NoDataError: If nothing matches, so no empty file is produced
        """
        submissions = self.repository.find_recent(filters)
        if not submissions:
            raise NoDataError()
        return [flatten_submission(submission) for submission in submissions]

    def export_csv(self, filters: SubmissionFilter) -> Path:
        rows = self.collect_rows(filters)
        path = Path(self.config.directory) / export_filename(self.config.filename_prefix, "csv")
        write_csv(rows, path)
        logger.info(f"[green]CSV export written:[/green] [cyan]{path.name}[/cyan] ({len(rows)} rows)")
        return path

    def export_excel(self, filters: SubmissionFilter) -> bytes:
        rows = self.collect_rows(filters)
        content = build_workbook(rows)
        logger.info(f"[green]Excel export built:[/green] {len(rows)} rows")
        return content
