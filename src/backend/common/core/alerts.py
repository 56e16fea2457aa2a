# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import contextlib
import logging
from typing import Optional

from common.metrics import get_alerts_dropped, get_alerts_spoken
from common.protocols import SpeechOutput

logger = logging.getLogger(__name__)


class AlertDebouncer:
    """Single-flight gate for spoken alerts.

    While one utterance is playing every further alert is dropped; nothing is
    queued. All calls happen on the event loop thread, so the flag needs no
    lock, only the set-before-spawn / clear-on-completion ordering.
    """

    def __init__(self, speech: SpeechOutput) -> None:
        self._speech = speech
        self._in_flight = False
        self._task: Optional[asyncio.Task[None]] = None
        self._spoken = get_alerts_spoken()
        self._dropped = get_alerts_dropped()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def raise_alert(self, message: str) -> bool:
        """Start speaking ``message`` unless an alert is already playing.

        Returns:
            True if the utterance was started, False if it was dropped.
        """
        if self._in_flight:
            self._dropped.add(1)
            return False

        self._in_flight = True
        self._spoken.add(1)
        self._task = asyncio.create_task(self._speak(message))
        return True

    async def _speak(self, message: str) -> None:
        try:
            await self._speech.speak(message)
        except Exception as e:
            logger.error("Voice alert failed", extra={"error": str(e)})
        finally:
            self._in_flight = False

    async def wait_idle(self) -> None:
        """Wait until the current utterance, if any, has finished."""
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def aclose(self) -> None:
        """Wait for the current utterance, then release the speech backend."""
        await self.wait_idle()
        self._speech.close()
