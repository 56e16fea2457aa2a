# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import cv2
import numpy as np
import pytest

from common.typing import BoundingBox
from common.utils.drawing import (
    ALERT_COLOR,
    NORMAL_COLOR,
    OVERLAY_COLORS,
    draw_bounding_box,
    encode_png,
)


def test_overlay_colors_map_levels():
    assert OVERLAY_COLORS["normal"] == NORMAL_COLOR
    assert OVERLAY_COLORS["alert"] == ALERT_COLOR
    assert NORMAL_COLOR != ALERT_COLOR


@pytest.mark.parametrize("color", [NORMAL_COLOR, ALERT_COLOR], ids=["normal", "alert"])
def test_draw_bounding_box_outlines_in_color(color):
    raster = np.zeros((200, 200, 3), dtype=np.uint8)

    result = draw_bounding_box(raster, BoundingBox(50, 60, 80, 100), "person - 1.00m", color)

    assert result is raster
    # left edge of the box, below the label tab
    assert tuple(raster[120, 50]) == color
    # interior stays untouched
    assert tuple(raster[120, 90]) == (0, 0, 0)


def test_draw_bounding_box_clamps_label_at_top_edge():
    raster = np.zeros((100, 100, 3), dtype=np.uint8)

    draw_bounding_box(raster, BoundingBox(0, 0, 40, 40), "car", ALERT_COLOR)

    assert raster.any()


def test_encode_png_produces_decodable_image():
    raster = np.full((12, 16, 3), 200, dtype=np.uint8)

    data = encode_png(raster)

    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    decoded = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    assert decoded.shape == raster.shape


def test_encode_png_rejects_empty_raster():
    with pytest.raises(ValueError):
        encode_png(np.zeros((0, 0, 3), dtype=np.uint8))
