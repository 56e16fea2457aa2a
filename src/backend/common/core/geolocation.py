# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging
from typing import Any, Optional

import httpx

from common.config import config
from common.protocols import GeolocationProvider
from common.typing import GeoPosition

logger = logging.getLogger(__name__)


class NullGeolocation(GeolocationProvider):
    """Position lookup disabled; alerts are sent without coordinates."""

    async def current_position(self) -> Optional[GeoPosition]:
        return None


class StaticGeolocation(GeolocationProvider):
    """Fixed position, for installations that do not move."""

    def __init__(self, latitude: float, longitude: float) -> None:
        self._position = GeoPosition(latitude=latitude, longitude=longitude)

    async def current_position(self) -> Optional[GeoPosition]:
        return self._position


class IpGeolocation(GeolocationProvider):
    """Approximate position from an IP geolocation JSON service.

    Understands ``lat``/``lon`` (ip-api.com) and ``latitude``/``longitude``
    response keys. Any failure is logged and reported as "no position".
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url or config.GEOLOCATION_URL
        self._timeout = timeout
        self._transport = transport

    async def current_position(self) -> Optional[GeoPosition]:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                res = await client.get(self._url)
                res.raise_for_status()
                return _parse_position(res.json())
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(
                "Geolocation lookup failed", extra={"url": self._url, "error": str(e)}
            )
            return None


def _parse_position(data: dict[str, Any]) -> GeoPosition:
    if "lat" in data and "lon" in data:
        return GeoPosition(latitude=float(data["lat"]), longitude=float(data["lon"]))
    return GeoPosition(
        latitude=float(data["latitude"]), longitude=float(data["longitude"])
    )


def build_geolocation_provider(mode: Optional[str] = None) -> GeolocationProvider:
    """Create the provider selected by ``mode`` or GEOLOCATION_MODE."""
    name = (mode or config.GEOLOCATION_MODE).strip().lower()
    if name == "none":
        return NullGeolocation()
    if name == "static":
        return StaticGeolocation(config.GEOLOCATION_LAT, config.GEOLOCATION_LON)
    if name == "ip":
        return IpGeolocation()
    raise ValueError(
        f"Unsupported GEOLOCATION_MODE '{name}'. Known modes: ip, none, static."
    )
