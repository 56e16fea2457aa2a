# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import functools
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncContextManager, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from common import __version__
from common.config import config
from common.core.alerts import AlertDebouncer
from common.core.camera import CameraStream
from common.core.dispatch import RemoteAlertDispatcher
from common.core.geolocation import build_geolocation_provider
from common.core.speech import build_speech_output
from common.logging_config import configure_logging
from common.metrics import configure_metrics
from common.utils.camera import CameraUnavailableError
from proximity.loop import DetectionLoop, make_detector_loader
from proximity.routes import FrameBroadcaster, router

SERVICE_NAME = "proximity"

configure_logging(service_name=SERVICE_NAME, service_version=__version__)
configure_metrics(service_name=SERVICE_NAME, service_version=__version__)

logger = logging.getLogger("proximity.main")


def build_detection_loop(
    model_path: Optional[Path] = None,
    camera_index: Optional[int] = None,
    alert_url: Optional[str] = None,
    speech_backend: Optional[str] = None,
) -> DetectionLoop:
    """Wire the detection loop to its collaborators from configuration."""
    debouncer = AlertDebouncer(build_speech_output(speech_backend))
    dispatcher = RemoteAlertDispatcher(
        url=alert_url, geolocation=build_geolocation_provider()
    )
    return DetectionLoop(
        debouncer=debouncer,
        dispatcher=dispatcher,
        camera_factory=functools.partial(CameraStream, camera_index=camera_index),
        detector_loader=make_detector_loader(model_path),
    )


def create_lifespan(
    loop_factory: Callable[[], DetectionLoop],
    autostart: bool,
) -> Callable[[FastAPI], AsyncContextManager[None]]:
    """Create the lifespan context that owns the detection loop."""

    @asynccontextmanager
    async def lifespan_context(app: FastAPI) -> AsyncIterator[None]:
        detection_loop = loop_factory()
        broadcaster = FrameBroadcaster()
        detection_loop.add_listener(broadcaster.send_report)
        app.state.detection_loop = detection_loop
        app.state.broadcaster = broadcaster

        if autostart:
            try:
                await detection_loop.start()
            except CameraUnavailableError as e:
                logger.error("Autostart failed", extra={"error": str(e)})
        yield
        await detection_loop.shutdown()
        await detection_loop.dispatcher.aclose()
        await broadcaster.shutdown()

    return lifespan_context


def create_app(
    model_path: Optional[Path] = None,
    camera_index: Optional[int] = None,
    alert_url: Optional[str] = None,
    speech_backend: Optional[str] = None,
    autostart: Optional[bool] = None,
    loop_factory: Optional[Callable[[], DetectionLoop]] = None,
) -> FastAPI:
    """App factory to avoid import-time side effects in tests.

    Args:
        model_path: Path to YOLO model file. If None, uses config default.
        camera_index: Force a camera index instead of the label heuristic.
        alert_url: Remote alert endpoint. If None, uses ALERT_URL.
        speech_backend: "pyttsx3" or "log". If None, uses SPEECH_BACKEND.
        autostart: Start detection when the app starts. If None, uses AUTOSTART.
        loop_factory: Builds the detection loop; overrides the other wiring
            arguments.
    """
    if loop_factory is None:
        loop_factory = functools.partial(
            build_detection_loop,
            model_path=model_path,
            camera_index=camera_index,
            alert_url=alert_url,
            speech_backend=speech_backend,
        )

    app = FastAPI(
        title="Proximity Guard",
        version=__version__,
        description=(
            "Runs object detection on a live camera feed, estimates distance "
            "from bounding-box width and raises spoken and remote alerts when "
            "an object is too close."
        ),
        lifespan=create_lifespan(
            loop_factory, config.AUTOSTART if autostart is None else autostart
        ),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()
