# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import cv2
import numpy as np

from common.typing import BoundingBox

# BGR
NORMAL_COLOR: tuple[int, int, int] = (0, 255, 0)
ALERT_COLOR: tuple[int, int, int] = (0, 0, 255)
TEXT_COLOR: tuple[int, int, int] = (255, 255, 255)

OVERLAY_COLORS: dict[str, tuple[int, int, int]] = {
    "normal": NORMAL_COLOR,
    "alert": ALERT_COLOR,
}

_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_LABEL_HEIGHT = 20


def draw_bounding_box(
    raster: np.ndarray,
    box: BoundingBox,
    text: str,
    color: tuple[int, int, int] = ALERT_COLOR,
) -> np.ndarray:
    """Draw a box outline with a filled label tab above it, in place.

    The tab is as wide as the text plus padding and sits on the box's top
    edge, clamped to the raster so boxes touching the top still get a label.
    """
    x1, y1 = int(round(box.x)), int(round(box.y))
    x2, y2 = int(round(box.x + box.width)), int(round(box.y + box.height))
    cv2.rectangle(raster, (x1, y1), (x2, y2), color, 3)

    (text_w, _), _ = cv2.getTextSize(text, _FONT, _FONT_SCALE, 1)
    tab_top = max(0, y1 - _LABEL_HEIGHT)
    cv2.rectangle(
        raster, (x1, tab_top), (x1 + text_w + 10, tab_top + _LABEL_HEIGHT), color, -1
    )
    cv2.putText(
        raster,
        text,
        (x1 + 5, tab_top + _LABEL_HEIGHT - 5),
        _FONT,
        _FONT_SCALE,
        TEXT_COLOR,
        1,
        cv2.LINE_AA,
    )
    return raster


def encode_png(raster: np.ndarray) -> bytes:
    """Encode a BGR raster as PNG bytes.

    Raises:
        ValueError: If OpenCV cannot encode the image.
    """
    try:
        ok, buffer = cv2.imencode(".png", raster)
    except cv2.error as e:
        raise ValueError(f"Failed to encode raster as PNG: {e}") from e
    if not ok:
        raise ValueError("Failed to encode raster as PNG")
    return buffer.tobytes()
