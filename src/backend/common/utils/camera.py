# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

V4L2_SYSFS_ROOT = Path("/sys/class/video4linux")
_V4L2_NODE = re.compile(r"^video(\d+)$")


class CameraUnavailableError(RuntimeError):
    """Raised when no camera can be found or opened."""


@dataclass(frozen=True)
class VideoDevice:
    """A video input device the camera stack can open by index."""

    index: int
    label: str


def _list_v4l2_devices(sysfs_root: Path) -> list[VideoDevice]:
    devices: list[VideoDevice] = []
    for node in sysfs_root.iterdir():
        match = _V4L2_NODE.match(node.name)
        if match is None:
            continue
        index_file = node / "index"
        if index_file.exists() and index_file.read_text().strip() not in ("", "0"):
            # metadata or secondary node of a device already listed
            continue
        name_file = node / "name"
        label = name_file.read_text().strip() if name_file.exists() else node.name
        devices.append(VideoDevice(index=int(match.group(1)), label=label))
    return sorted(devices, key=lambda device: device.index)


def _probe_devices(max_probe: int) -> list[VideoDevice]:
    devices: list[VideoDevice] = []
    for idx in range(max_probe):
        cap = cv2.VideoCapture(idx)
        try:
            if cap.isOpened():
                devices.append(VideoDevice(index=idx, label=f"Camera {idx}"))
        finally:
            cap.release()
    return devices


def list_video_devices(
    max_probe: int = 10, sysfs_root: Path = V4L2_SYSFS_ROOT
) -> list[VideoDevice]:
    """Enumerate available video input devices.

    On Linux the V4L2 sysfs tree gives us device labels without opening
    anything. Elsewhere OpenCV has no enumeration API, so indices
    ``0..max_probe-1`` are probed and labelled generically.

    Args:
        max_probe: Number of indices to probe when labels are unavailable.
        sysfs_root: Root of the video4linux sysfs class directory.

    Returns:
        Devices ordered by index; empty when nothing is connected.
    """
    if sys.platform.startswith("linux") and sysfs_root.is_dir():
        return _list_v4l2_devices(sysfs_root)
    return _probe_devices(max_probe)


def select_video_device(
    devices: list[VideoDevice], hints: Iterable[str]
) -> VideoDevice:
    """Pick the camera to use.

    External cameras are preferred: the first device whose label contains any
    of ``hints`` (case-insensitive) wins. Otherwise the last enumerated device
    is used, which is usually the most recently connected one.

    Raises:
        CameraUnavailableError: If ``devices`` is empty.
    """
    if not devices:
        raise CameraUnavailableError(
            "No camera detected. Connect a webcam or check camera permissions."
        )

    lowered = [hint.lower() for hint in hints]
    for device in devices:
        label = device.label.lower()
        if any(hint in label for hint in lowered):
            return device

    fallback = devices[-1]
    logger.warning(
        "No external camera matched, using last available device",
        extra={"device_index": fallback.index, "device_label": fallback.label},
    )
    return fallback


def open_camera(idx: int) -> cv2.VideoCapture:
    """Open a webcam using platform-appropriate OpenCV backends.

    Tries multiple backends depending on the operating system (e.g., DirectShow
    on Windows, AVFoundation on macOS, V4L2 on Linux). Returns the first
    successfully opened camera.

    Args:
        idx (int): The index of the camera to open.

    Returns:
        cv2.VideoCapture: An opened OpenCV VideoCapture object ready for frame reads.

    Raises:
        CameraUnavailableError: If the camera cannot be opened with any backend.
    """
    if sys.platform.startswith("win"):
        backends = [cv2.CAP_DSHOW, cv2.CAP_ANY]
    elif sys.platform == "darwin":
        backends = [cv2.CAP_AVFOUNDATION, cv2.CAP_ANY]
    else:
        backends = [cv2.CAP_V4L2, cv2.CAP_ANY]

    last_error: Optional[str] = None
    for backend in backends:
        cap = (
            cv2.VideoCapture(idx, backend)
            if backend != cv2.CAP_ANY
            else cv2.VideoCapture(idx)
        )
        if cap.isOpened():
            return cap
        cap.release()
        last_error = f"backend={backend}"

    msg = f"Cannot open camera at index {idx}"
    if last_error:
        msg += f" (last tried {last_error})"
    msg += ". Check the connection or set CAMERA_INDEX explicitly."
    raise CameraUnavailableError(msg)


def read_frame(cap: cv2.VideoCapture) -> tuple[bool, Optional[np.ndarray]]:
    """Read a single frame; meant to be called through run_in_executor."""
    return cap.read()
