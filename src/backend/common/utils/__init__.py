# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from common.utils.camera import (
    CameraUnavailableError,
    VideoDevice,
    list_video_devices,
    open_camera,
    read_frame,
    select_video_device,
)

from common.utils.detection import get_detections

from common.utils.drawing import (
    ALERT_COLOR,
    NORMAL_COLOR,
    OVERLAY_COLORS,
    draw_bounding_box,
    encode_png,
)

__all__ = [
    "CameraUnavailableError",
    "VideoDevice",
    "list_video_devices",
    "open_camera",
    "read_frame",
    "select_video_device",
    "get_detections",
    "ALERT_COLOR",
    "NORMAL_COLOR",
    "OVERLAY_COLORS",
    "draw_bounding_box",
    "encode_png",
]
