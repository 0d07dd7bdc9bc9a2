"""
Submission enrichment: client IP resolution, user-agent parsing, device
classification and offline geolocation.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import geoip2.database
import geoip2.errors
from user_agents import parse as parse_user_agent_string

from leadpulse.schemas.submissions import BrowserInfo, DeviceInfo, GeoLocation, OsInfo
from leadpulse.utils.logging import get_logger

logger = get_logger(__name__)

LOOPBACK_IP = "127.0.0.1"

MOBILE_PATTERN = re.compile(r"mobile|android|iphone|ipod|blackberry|opera mini|iemobile", re.IGNORECASE)
TABLET_PATTERN = re.compile(r"tablet|ipad", re.IGNORECASE)


@dataclass(frozen=True)
class RequestContext:
    """
    Immutable snapshot of the request metadata the intake pipeline reads.
    Built once per request at the HTTP boundary.
    """
    forwarded_for: Optional[str] = None
    real_ip: Optional[str] = None
    remote_address: Optional[str] = None
    socket_address: Optional[str] = None
    legacy_socket_address: Optional[str] = None
    framework_ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None


def resolve_client_ip(context: RequestContext) -> Optional[str]:
    """
    First available address, in order: forwarded-for, real-ip, connection,
    socket, legacy socket, framework. For a forwarded-for chain only the
    originating client (first hop) is used.
    """
    forwarded = context.forwarded_for.split(",")[0].strip() if context.forwarded_for else None
    return (
        forwarded
        or context.real_ip
        or context.remote_address
        or context.socket_address
        or context.legacy_socket_address
        or context.framework_ip
    )


def normalize_ip(raw_ip: Optional[str]) -> str:
    """Keep the text after the last colon ("::ffff:1.2.3.4" -> "1.2.3.4"); empty becomes loopback"""
    if not raw_ip:
        return LOOPBACK_IP
    cleaned = raw_ip.rsplit(":", 1)[-1].strip()
    return cleaned or LOOPBACK_IP


def classify_device_type(user_agent: str) -> str:
    # Mobile is checked first: "Mobile ... iPad" counts as mobile
    if MOBILE_PATTERN.search(user_agent or ""):
        return "mobile"
    if TABLET_PATTERN.search(user_agent or ""):
        return "tablet"
    return "desktop"


def _major(version: Tuple) -> Optional[str]:
    return str(version[0]) if version else None


def parse_user_agent(user_agent: str) -> Tuple[BrowserInfo, OsInfo, DeviceInfo]:
    """
    Parse a raw user-agent string into browser, OS and device records.
    Anything the parser cannot determine stays "Unknown".
    """
    agent = parse_user_agent_string(user_agent or "")

    browser = BrowserInfo(
        family=agent.browser.family or "Unknown",
        version=agent.browser.version_string or "Unknown",
        major=_major(agent.browser.version) or "Unknown",
    )
    os_info = OsInfo(
        family=agent.os.family or "Unknown",
        version=agent.os.version_string or "Unknown",
        major=_major(agent.os.version) or "Unknown",
    )
    device = DeviceInfo(
        family=agent.device.family or "Unknown",
        brand=agent.device.brand or "Unknown",
        model=agent.device.model or "Unknown",
        type=classify_device_type(user_agent),
    )
    return browser, os_info, device


class Geolocator:
    """
    Offline IP geolocation backed by a MaxMind City database.
    Without a database every lookup is a miss.
    """

    def __init__(self, database_path: Optional[str] = None):
        self.database_path = database_path
        self._reader: Optional[geoip2.database.Reader] = None

    @property
    def available(self) -> bool:
        return self._reader is not None

    def open(self) -> None:
        if self._reader is not None or not self.database_path:
            return
        self._reader = geoip2.database.Reader(self.database_path)
        logger.info(f"[green]GeoIP database loaded:[/green] [cyan]{self.database_path}[/cyan]")

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None

    def lookup(self, ip: str) -> Optional[Dict[str, Any]]:
        """
        Partial geolocation fields for an IP, or None when nothing is found.
        Addresses that are not valid IPs count as not found.
        """
        if self._reader is None:
            return None
        try:
            response = self._reader.city(ip)
        except (geoip2.errors.AddressNotFoundError, ValueError):
            return None

        subdivision = response.subdivisions.most_specific
        return {
            "country": response.country.name,
            "country_code": response.country.iso_code,
            "region": subdivision.name,
            "region_code": subdivision.iso_code,
            "city": response.city.name,
            "zip": response.postal.code,
            "latitude": response.location.latitude,
            "longitude": response.location.longitude,
            "timezone": response.location.time_zone,
        }

    def locate(self, ip: str) -> GeoLocation:
        return GeoLocation.from_lookup(self.lookup(ip))


# Shared reader, opened by the application lifespan
geolocator = Geolocator()


def get_geolocator() -> Geolocator:
    """FastAPI dependency returning the process-wide geolocator"""
    return geolocator
