# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import pyttsx3

from common.config import config
from common.protocols import SpeechOutput

logger = logging.getLogger(__name__)


class Pyttsx3Speech(SpeechOutput):
    """Offline text-to-speech through pyttsx3.

    ``runAndWait`` blocks until the utterance has been spoken, so it runs on a
    dedicated single worker thread. The engine is created on that thread and
    never touched from anywhere else.
    """

    def __init__(self, rate: Optional[int] = None, volume: Optional[float] = None) -> None:
        self._rate = config.TTS_RATE if rate is None else rate
        self._volume = config.TTS_VOLUME if volume is None else volume
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tts")
        self._engine: Optional[pyttsx3.Engine] = None

    def _speak_blocking(self, text: str) -> None:
        if self._engine is None:
            self._engine = pyttsx3.init()
            self._engine.setProperty("rate", self._rate)
            self._engine.setProperty("volume", self._volume)
        self._engine.say(text)
        self._engine.runAndWait()

    async def speak(self, text: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(self._executor, self._speak_blocking, text)

    def close(self) -> None:
        """Stop the TTS worker thread; an utterance in progress still finishes."""
        self._executor.shutdown(wait=False)


class LoggingSpeech(SpeechOutput):
    """Speech stand-in for headless hosts: logs the utterance instead."""

    async def speak(self, text: str) -> None:
        logger.warning("Voice alert", extra={"utterance": text})

    def close(self) -> None:
        pass


def build_speech_output(backend: Optional[str] = None) -> SpeechOutput:
    """Create the speech output named by ``backend`` or SPEECH_BACKEND."""
    name = (backend or config.SPEECH_BACKEND).strip().lower()
    if name == "pyttsx3":
        return Pyttsx3Speech()
    if name == "log":
        return LoggingSpeech()
    raise ValueError(
        f"Unsupported SPEECH_BACKEND '{name}'. Known backends: log, pyttsx3."
    )
