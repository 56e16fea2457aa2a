# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from common.typing import Detection, GeoPosition


@runtime_checkable
class ObjectDetectionBackend(Protocol):
    """Synchronous interface implemented by model-specific adapters."""

    def predict(self, frame_bgr: np.ndarray) -> list[Detection]:
        """Run inference on a BGR frame and return parsed detections."""
        ...


@runtime_checkable
class ObjectDetector(Protocol):
    """Asynchronous detector wrapper used by the detection loop."""

    async def infer(self, frame_bgr: np.ndarray) -> list[Detection]:
        """Run inference once and return detections."""
        ...


@runtime_checkable
class SpeechOutput(Protocol):
    """Plays a text utterance and returns once playback has finished."""

    async def speak(self, text: str) -> None: ...

    def close(self) -> None:
        """Release the audio backend."""
        ...


@runtime_checkable
class GeolocationProvider(Protocol):
    """Looks up the current position, or None when it is unavailable."""

    async def current_position(self) -> Optional[GeoPosition]: ...
