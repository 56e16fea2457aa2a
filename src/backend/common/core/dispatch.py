# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import logging
from typing import Optional

import httpx
import numpy as np

from common.config import config
from common.core.geolocation import NullGeolocation
from common.metrics import get_alerts_dispatch_failed, get_alerts_dispatched
from common.protocols import GeolocationProvider
from common.typing import GeoPosition
from common.utils.drawing import encode_png

logger = logging.getLogger(__name__)

PHOTO_FILENAME = "detected_object.png"


class RemoteAlertDispatcher:
    """Sends proximity alerts to the remote alert endpoint, fire-and-forget.

    Each dispatch becomes its own task. The caller gets the task back but is
    not expected to await it: outcomes are only logged, failures are never
    retried and never reach the caller.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        geolocation: Optional[GeolocationProvider] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url or config.ALERT_URL
        self._geolocation = geolocation or NullGeolocation()
        self._client = httpx.AsyncClient(
            timeout=config.ALERT_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )
        self._pending: set[asyncio.Task[bool]] = set()
        self._dispatched = get_alerts_dispatched()
        self._failed = get_alerts_dispatch_failed()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, message: str, raster: np.ndarray) -> asyncio.Task[bool]:
        """Capture ``raster`` now and send it with ``message`` in the background.

        Returns:
            The background task; it resolves to True when the endpoint
            answered with a 2xx status.
        """
        photo: Optional[bytes]
        try:
            photo = encode_png(raster)
        except (ValueError, TypeError) as e:
            logger.warning("Alert photo capture failed", extra={"error": str(e)})
            photo = None

        task = asyncio.create_task(self._send(message, photo))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(self, message: str, photo: Optional[bytes]) -> bool:
        try:
            data = {"message": message}
            position = await self._lookup_position()
            if position is not None:
                data["latitude"] = str(position.latitude)
                data["longitude"] = str(position.longitude)

            files = None
            if photo is not None:
                files = {"photo": (PHOTO_FILENAME, photo, "image/png")}

            res = await self._client.post(self._url, data=data, files=files)
            if res.is_success:
                self._dispatched.add(1)
                logger.info(
                    "Alert sent", extra={"url": self._url, "status": res.status_code}
                )
                return True

            self._failed.add(1)
            logger.error(
                "Alert endpoint rejected alert",
                extra={
                    "url": self._url,
                    "status": res.status_code,
                    "body": res.text[:200],
                },
            )
            return False
        except Exception as e:
            self._failed.add(1)
            logger.error(
                "Error sending alert", extra={"url": self._url, "error": str(e)}
            )
            return False

    async def _lookup_position(self) -> Optional[GeoPosition]:
        try:
            return await self._geolocation.current_position()
        except Exception as e:
            logger.warning(
                "Geolocation unavailable, sending alert without coordinates",
                extra={"error": str(e)},
            )
            return None

    async def aclose(self) -> None:
        """Let in-flight alerts finish, then close the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._client.aclose()
