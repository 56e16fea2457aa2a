# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import contextlib
import logging
import math
import time
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol

import numpy as np
from pydantic import BaseModel

from common.config import config
from common.core.alerts import AlertDebouncer
from common.core.camera import CameraStream
from common.core.detector import get_detector
from common.core.dispatch import RemoteAlertDispatcher
from common.core.distance import (
    estimate_distance,
    format_distance_label,
    overlay_level,
)
from common.metrics import get_detection_duration
from common.protocols import ObjectDetector
from common.typing import Detection, DetectionPayload
from common.utils.drawing import OVERLAY_COLORS, draw_bounding_box

logger = logging.getLogger("proximity.loop")


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class FrameSource(Protocol):
    """What the loop needs from a camera stream."""

    async def open(self) -> object: ...

    async def close(self) -> None: ...

    def latest(self) -> Optional[np.ndarray]: ...


class FrameReport(BaseModel):
    """Per-frame metadata published to subscribers."""

    timestamp: float
    frame_id: int
    session_id: int
    width: int
    height: int
    detections: list[DetectionPayload]


@dataclass
class SessionState:
    """Mutable state of the detection session, owned by the loop."""

    state: LoopState = LoopState.IDLE
    session_id: int = 0
    frame_id: int = 0
    frame_size: tuple[int, int] = (0, 0)
    raster: Optional[np.ndarray] = field(default=None, repr=False)


@dataclass(frozen=True)
class Evaluation:
    detection: Detection
    label: str
    distance: float
    alert: bool


FrameListener = Callable[[FrameReport], Awaitable[None]]


def make_detector_loader(
    model_path: Optional[Path] = None,
) -> Callable[[], Awaitable[ObjectDetector]]:
    """Return a coroutine function that loads the (cached) detector off-loop."""

    async def load() -> ObjectDetector:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, get_detector, model_path)

    return load


class DetectionLoop:
    """Drives capture, detection, overlay drawing and alerting frame by frame.

    Two states: IDLE and RUNNING. ``start`` acquires a camera and the detector
    and then schedules iterations until ``stop`` is called. Each start bumps
    the session id; an iteration that finds the id changed (or the loop idle)
    discards its results and does not schedule another one.
    """

    def __init__(
        self,
        debouncer: AlertDebouncer,
        dispatcher: RemoteAlertDispatcher,
        camera_factory: Callable[[], FrameSource] = CameraStream,
        detector_loader: Optional[Callable[[], Awaitable[ObjectDetector]]] = None,
        warning_distance: Optional[float] = None,
        frame_interval: Optional[float] = None,
    ) -> None:
        self._debouncer = debouncer
        self._dispatcher = dispatcher
        self._camera_factory = camera_factory
        self._detector_loader = detector_loader or make_detector_loader()
        self.warning_distance = (
            config.WARNING_DISTANCE if warning_distance is None else warning_distance
        )
        self.frame_interval = (
            config.FRAME_INTERVAL if frame_interval is None else frame_interval
        )

        self.session = SessionState()
        self._camera: Optional[FrameSource] = None
        self._detector: Optional[ObjectDetector] = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._start_lock = asyncio.Lock()
        self._listeners: set[FrameListener] = set()
        self._detection_duration = get_detection_duration()

    @property
    def state(self) -> LoopState:
        return self.session.state

    @property
    def is_running(self) -> bool:
        return self.session.state is LoopState.RUNNING

    @property
    def debouncer(self) -> AlertDebouncer:
        return self._debouncer

    @property
    def dispatcher(self) -> RemoteAlertDispatcher:
        return self._dispatcher

    @property
    def raster(self) -> Optional[np.ndarray]:
        """The current annotated frame, or None while idle."""
        return self.session.raster

    def add_listener(self, listener: FrameListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: FrameListener) -> None:
        self._listeners.discard(listener)

    def _is_current(self, session_id: int) -> bool:
        return self.is_running and self.session.session_id == session_id

    async def start(self) -> None:
        """Transition IDLE -> RUNNING.

        Raises:
            CameraUnavailableError: If no camera could be acquired; the loop
                stays idle.
        """
        async with self._start_lock:
            if self.is_running:
                return

            self.session.session_id += 1
            session_id = self.session.session_id

            camera = self._camera_factory()
            await camera.open()
            try:
                detector = await self._detector_loader()
            except BaseException:
                await camera.close()
                raise

            if self.session.session_id != session_id:
                # stop() arrived while we were acquiring resources
                logger.info("Start aborted by stop request")
                await camera.close()
                return

            self._camera = camera
            self._detector = detector
            self.session.state = LoopState.RUNNING
            self.session.frame_id = 0
            task = asyncio.create_task(self._run(session_id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            logger.info("Detection started", extra={"session_id": session_id})

    async def stop(self) -> None:
        """Transition to IDLE.

        An inference already in progress is left to finish; its results are
        discarded and no further iteration is scheduled.
        """
        was_running = self.is_running
        self.session.session_id += 1
        self.session.state = LoopState.IDLE
        self.session.raster = None

        camera, self._camera = self._camera, None
        if camera is not None:
            await camera.close()
        if was_running:
            logger.info("Detection stopped")

    async def shutdown(self) -> None:
        """Stop, cancel loop tasks, then let the voice alert finish and close speech.

        Tasks of earlier sessions may still be sleeping or finishing an
        inference; they are cancelled too.
        """
        await self.stop()
        for task in list(self._tasks):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
        await self._debouncer.aclose()

    async def _run(self, session_id: int) -> None:
        while self._is_current(session_id):
            try:
                await self._process_frame(session_id)
            except Exception as e:
                logger.warning("Frame processing error", extra={"error": str(e)})

            if not self._is_current(session_id):
                break
            await asyncio.sleep(self.frame_interval)

    async def _process_frame(self, session_id: int) -> None:
        camera, detector = self._camera, self._detector
        if camera is None or detector is None:
            return

        frame = camera.latest()
        if frame is None:
            return

        raster = frame.copy()
        height, width = raster.shape[:2]
        self.session.frame_size = (width, height)
        self.session.raster = raster
        self.session.frame_id += 1

        start = time.perf_counter()
        detections = await detector.infer(frame)
        self._detection_duration.record(time.perf_counter() - start)

        if not self._is_current(session_id):
            return

        payload: list[DetectionPayload] = []
        for detection in detections:
            evaluation = self.evaluate(detection)
            self._draw(raster, evaluation)
            if evaluation.alert:
                self._raise_alerts(evaluation.label, raster)
            payload.append(self._to_payload(evaluation))

        await self._publish(
            FrameReport(
                timestamp=time.time() * 1000,  # milliseconds
                frame_id=self.session.frame_id,
                session_id=session_id,
                width=width,
                height=height,
                detections=payload,
            )
        )

    def evaluate(self, detection: Detection) -> Evaluation:
        """Estimate distance for one detection and decide whether it alerts."""
        label = detection.label.lower()
        distance = estimate_distance(detection.box.width, label)
        alert = overlay_level(distance, self.warning_distance) == "alert"
        return Evaluation(
            detection=detection, label=label, distance=distance, alert=alert
        )

    def _raise_alerts(self, label: str, raster: np.ndarray) -> None:
        self._debouncer.raise_alert(f"Warning! {label} too close!")
        self._dispatcher.dispatch(f"ALERT: {label} detected too close!", raster)

    def _draw(self, raster: np.ndarray, evaluation: Evaluation) -> None:
        color = OVERLAY_COLORS["alert" if evaluation.alert else "normal"]
        draw_bounding_box(
            raster,
            evaluation.detection.box,
            format_distance_label(evaluation.label, evaluation.distance),
            color,
        )

    @staticmethod
    def _to_payload(evaluation: Evaluation) -> DetectionPayload:
        box = evaluation.detection.box
        return {
            "box": {"x": box.x, "y": box.y, "width": box.width, "height": box.height},
            "label": evaluation.label,
            "score": evaluation.detection.score,
            "distance": (
                evaluation.distance if math.isfinite(evaluation.distance) else None
            ),
            "alert": evaluation.alert,
        }

    async def _publish(self, report: FrameReport) -> None:
        for listener in list(self._listeners):
            try:
                await listener(report)
            except Exception as e:
                logger.warning("Frame listener failed", extra={"error": str(e)})

    def status(self) -> dict[str, object]:
        width, height = self.session.frame_size
        return {
            "state": self.session.state.value,
            "session_id": self.session.session_id,
            "frame_id": self.session.frame_id,
            "frame_width": width,
            "frame_height": height,
            "alert_in_flight": self._debouncer.in_flight,
            "pending_dispatches": self._dispatcher.pending,
        }
