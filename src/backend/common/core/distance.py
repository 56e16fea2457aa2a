# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
"""Known-width distance heuristic.

Each supported class is assumed to have a fixed real-world width. With a
fixed focal length the pinhole relation gives

    distance = real_width * focal_length / pixel_width

Classes without a known width, and degenerate boxes, map to ``math.inf``,
which never compares below a warning threshold.
"""

import math
from typing import Literal, Mapping, Optional

from common.config import config

UNKNOWN_DISTANCE = math.inf

KNOWN_WIDTHS: Mapping[str, float] = config.KNOWN_WIDTHS

OverlayLevel = Literal["normal", "alert"]


def estimate_distance(
    bbox_width: float,
    label: str,
    known_widths: Optional[Mapping[str, float]] = None,
    focal_length: Optional[float] = None,
) -> float:
    """Estimate the distance in metres to an object of class ``label``.

    Returns UNKNOWN_DISTANCE when the class has no known width or the box has
    no positive width.
    """
    widths = KNOWN_WIDTHS if known_widths is None else known_widths
    focal = config.FOCAL_LENGTH if focal_length is None else focal_length

    real_width = widths.get(label)
    if real_width is None or bbox_width <= 0:
        return UNKNOWN_DISTANCE
    return (real_width * focal) / bbox_width


def is_too_close(distance: float, threshold: Optional[float] = None) -> bool:
    limit = config.WARNING_DISTANCE if threshold is None else threshold
    return distance < limit


def overlay_level(distance: float, threshold: Optional[float] = None) -> OverlayLevel:
    return "alert" if is_too_close(distance, threshold) else "normal"


def format_distance_label(label: str, distance: float) -> str:
    """Overlay text, e.g. ``"person - 1.00m"``; just the label when unknown."""
    if math.isfinite(distance):
        return f"{label} - {distance:.2f}m"
    return label
