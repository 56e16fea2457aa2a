# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Callable, Optional

import pytest

from common.core.alerts import AlertDebouncer
from proximity.loop import DetectionLoop
from tests.test_utils import FakeCamera, FakeDetector, FakeSpeech, RecordingDispatcher


@pytest.fixture
def speech() -> FakeSpeech:
    return FakeSpeech()


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def make_loop(
    camera: FakeCamera, speech: FakeSpeech, dispatcher: RecordingDispatcher
) -> Callable[..., DetectionLoop]:
    """Build a DetectionLoop wired to fakes; keyword args override the defaults."""

    def _make(
        detector: Optional[FakeDetector] = None,
        frame_interval: float = 60.0,
        **overrides,
    ) -> DetectionLoop:
        detector = detector or FakeDetector()

        async def load_detector() -> FakeDetector:
            return detector

        cam = overrides.pop("camera", camera)
        return DetectionLoop(
            debouncer=overrides.pop("debouncer", AlertDebouncer(speech)),
            dispatcher=overrides.pop("dispatcher", dispatcher),
            camera_factory=lambda: cam,
            detector_loader=overrides.pop("detector_loader", load_detector),
            warning_distance=overrides.pop("warning_distance", 0.8),
            frame_interval=frame_interval,
        )

    return _make
