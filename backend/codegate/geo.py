"""
IP geolocation lookup.
Best-effort enrichment for audit records: every failure mode resolves to
``None`` so a slow or unreachable provider never blocks a check.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from .config import settings
from .security import is_private_ip, is_valid_ip
from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


class GeoLocator:
    """Looks up the location of an IP address over HTTP."""

    def __init__(
        self,
        url_template: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url_template = url_template or settings.GEO_LOOKUP_URL
        self.timeout = settings.GEO_LOOKUP_TIMEOUT if timeout is None else timeout
        self.enabled = settings.GEO_LOOKUP_ENABLED if enabled is None else enabled
        self._transport = transport

    def should_lookup(self, ip: str) -> bool:
        if not self.enabled or not is_valid_ip(ip):
            return False
        return not is_private_ip(ip)

    async def lookup(self, ip: str) -> Optional[GeoLocation]:
        """
        Resolve an IP to country/region/city.

        Returns:
            GeoLocation, or None if the lookup is disabled, skipped for a
            local address, or failed for any reason
        """
        if not self.should_lookup(ip):
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url_template.format(ip=ip))
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.warning(f"Geolocation lookup timed out for {ip}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Geolocation lookup request error for {ip}: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Geolocation lookup returned invalid JSON for {ip}: {e}")
            return None

        if not isinstance(data, dict) or data.get("status", "success") != "success":
            logger.debug(f"Geolocation lookup unsuccessful for {ip}: {data}")
            return None

        return GeoLocation(
            country=data.get("country") or None,
            region=data.get("regionName") or data.get("region") or None,
            city=data.get("city") or None,
        )


geo_locator = GeoLocator()


def get_geo_locator() -> GeoLocator:
    """FastAPI dependency for the geolocation capability."""
    return geo_locator
