# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from dataclasses import dataclass
from typing import Optional

from typing_extensions import TypedDict


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in pixel coordinates, origin at the top-left corner."""

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


@dataclass(frozen=True)
class Detection:
    """One object instance reported by the detector for a single frame."""

    box: BoundingBox
    label: str
    score: float


@dataclass(frozen=True)
class GeoPosition:
    latitude: float
    longitude: float


# Strict typing for the frame report because it's coupled with WebSocket clients
Box = TypedDict("Box", {"x": float, "y": float, "width": float, "height": float})


class DetectionPayload(TypedDict):
    """Detection data sent to clients via the WebSocket frame report."""

    box: Box
    label: str
    score: float
    distance: Optional[float]
    alert: bool
