# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import asyncio
import contextlib
import logging
from typing import Iterable, Optional

import cv2
import numpy as np

from common.config import config
from common.utils.camera import (
    VideoDevice,
    list_video_devices,
    open_camera,
    read_frame,
    select_video_device,
)

logger = logging.getLogger(__name__)


class CameraStream:
    """Live frames from one camera, read by a background task."""

    def __init__(
        self,
        camera_index: Optional[int] = None,
        label_hints: Optional[Iterable[str]] = None,
        max_probe: Optional[int] = None,
    ) -> None:
        """Initialize camera stream state.

        Args:
            camera_index: Force this device index. None or a negative value
                selects a device with the label heuristic.
            label_hints: Substrings that mark a preferred (external) camera.
            max_probe: Indices to probe on platforms without device labels.
        """
        if camera_index is None:
            camera_index = config.CAMERA_INDEX
        self._camera_index = camera_index
        self._label_hints = list(
            config.CAMERA_LABEL_HINTS if label_hints is None else label_hints
        )
        self._max_probe = config.CAMERA_MAX_PROBE if max_probe is None else max_probe

        self._cap: Optional[cv2.VideoCapture] = None
        self._frame: Optional[np.ndarray] = None
        self._running = False
        self._reader_task: Optional[asyncio.Task[None]] = None
        self.device: Optional[VideoDevice] = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    async def open(self) -> VideoDevice:
        """Select and open a camera, then start reading frames.

        Device enumeration and opening block, so they run in the default
        executor.

        Raises:
            CameraUnavailableError: If no device exists or none can be opened.
        """
        if self._cap is not None and self.device is not None:
            return self.device

        loop = asyncio.get_running_loop()
        if self._camera_index >= 0:
            device = VideoDevice(
                index=self._camera_index, label=f"Camera {self._camera_index}"
            )
        else:
            devices = await loop.run_in_executor(
                None, list_video_devices, self._max_probe
            )
            logger.info(
                "Available cameras",
                extra={"devices": [f"{d.index}:{d.label}" for d in devices]},
            )
            device = select_video_device(devices, self._label_hints)

        self._cap = await loop.run_in_executor(None, open_camera, device.index)
        self.device = device
        self._running = True
        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info(
            "Selected camera",
            extra={"device_index": device.index, "device_label": device.label},
        )
        return device

    async def close(self) -> None:
        """Stop the reader task and release the capture handle."""
        self._running = False
        if self._reader_task is not None:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._frame = None
        self.device = None

    async def _read_loop(self) -> None:
        """Continuously read frames without blocking the event loop.

        On failed reads, waits briefly (~30 ms) to avoid busy-waiting while
        the camera recovers.
        """
        loop = asyncio.get_running_loop()
        while self._running and self._cap is not None:
            ok, frame = await loop.run_in_executor(None, read_frame, self._cap)
            if ok:
                self._frame = frame
            else:
                await asyncio.sleep(0.03)

    def latest(self) -> Optional[np.ndarray]:
        """Return the most recently captured BGR frame, or None if none yet."""
        return self._frame
