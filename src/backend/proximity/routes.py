# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import Response

from common.utils.camera import CameraUnavailableError
from common.utils.drawing import encode_png
from proximity.loop import DetectionLoop, FrameReport

logger = logging.getLogger("proximity.routes")


class FrameBroadcaster:
    """Fans frame reports out to connected WebSocket clients."""

    def __init__(self) -> None:
        self.active_connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        self.active_connections.discard(websocket)

    async def handle_message(self, websocket: WebSocket, message: str) -> None:
        """Answer pings; anything else is ignored."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            return
        if isinstance(data, dict) and data.get("type") == "ping":
            await websocket.send_text(json.dumps({"type": "pong"}))

    async def send_report(self, report: FrameReport) -> None:
        """Send a frame report to every client, dropping dead connections."""
        if not self.active_connections:
            return
        message = report.model_dump_json()
        dead_connections = set()
        for websocket in self.active_connections.copy():
            try:
                await websocket.send_text(message)
            except Exception:
                dead_connections.add(websocket)
        self.active_connections -= dead_connections

    async def shutdown(self) -> None:
        for websocket in self.active_connections.copy():
            try:
                await websocket.close()
            except Exception as e:
                logger.debug("WebSocket close failed", extra={"error": str(e)})
        self.active_connections.clear()


router = APIRouter()


def _detection_loop(request: Request) -> DetectionLoop:
    return request.app.state.detection_loop


@router.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "proximity"}


@router.get("/status")
def status(request: Request) -> dict[str, Any]:
    """Current detection state and alert bookkeeping."""
    return _detection_loop(request).status()


@router.post("/detection/start")
async def start_detection(request: Request) -> dict[str, Any]:
    """Start detection; 503 if no camera can be acquired."""
    loop = _detection_loop(request)
    try:
        await loop.start()
    except CameraUnavailableError as e:
        logger.error("Unable to start detection", extra={"error": str(e)})
        raise HTTPException(status_code=503, detail=str(e)) from e
    return loop.status()


@router.post("/detection/stop")
async def stop_detection(request: Request) -> dict[str, Any]:
    loop = _detection_loop(request)
    await loop.stop()
    return loop.status()


@router.get("/snapshot")
async def snapshot(request: Request) -> Response:
    """The latest annotated frame as PNG, encoded on the event loop thread."""
    raster = _detection_loop(request).raster
    if raster is None:
        raise HTTPException(status_code=404, detail="No frame available")
    return Response(content=encode_png(raster), media_type="image/png")


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Streams one JSON frame report per processed frame."""
    broadcaster: FrameBroadcaster = websocket.app.state.broadcaster
    await broadcaster.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            await broadcaster.handle_message(websocket, message)
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
