# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import math

import pytest

from common.core.distance import (
    KNOWN_WIDTHS,
    UNKNOWN_DISTANCE,
    estimate_distance,
    format_distance_label,
    is_too_close,
    overlay_level,
)


@pytest.mark.parametrize(
    "label, bbox_width, expected",
    [
        ("person", 400, 1.0),
        ("person", 600, 0.5 * 800 / 600),
        ("car", 1800, 0.8),
        ("bus", 1000, 2.0),
        ("motorcycle", 960, 1.0),
        ("truck", 2800, 0.8),
    ],
    ids=["person_1m", "person_close", "car", "bus", "motorcycle", "truck"],
)
def test_estimate_distance_known_classes(label, bbox_width, expected):
    assert estimate_distance(bbox_width, label) == pytest.approx(expected)


@pytest.mark.parametrize("label", ["bicycle", "dog", "", "Person"])
def test_unknown_labels_have_infinite_distance(label):
    assert estimate_distance(100, label) == UNKNOWN_DISTANCE
    assert math.isinf(estimate_distance(100, label))


@pytest.mark.parametrize("bbox_width", [0, -5])
def test_degenerate_width_has_infinite_distance(bbox_width):
    assert estimate_distance(bbox_width, "person") == UNKNOWN_DISTANCE


def test_distance_halves_when_box_doubles():
    near = estimate_distance(800, "car")
    far = estimate_distance(400, "car")

    assert far == pytest.approx(2 * near)


def test_custom_widths_and_focal_length():
    distance = estimate_distance(
        100, "cone", known_widths={"cone": 0.3}, focal_length=500
    )

    assert distance == pytest.approx(1.5)


def test_known_widths_table():
    assert dict(KNOWN_WIDTHS) == {
        "person": 0.5,
        "car": 1.8,
        "bus": 2.5,
        "motorcycle": 1.2,
        "truck": 2.8,
    }
    with pytest.raises(TypeError):
        KNOWN_WIDTHS["bicycle"] = 0.6  # type: ignore[index]


@pytest.mark.parametrize(
    "distance, expected",
    [(0.79, True), (0.8, False), (1.0, False), (UNKNOWN_DISTANCE, False)],
    ids=["closer", "at_threshold", "farther", "unknown"],
)
def test_is_too_close(distance, expected):
    assert is_too_close(distance, 0.8) is expected


def test_overlay_level():
    assert overlay_level(0.5, 0.8) == "alert"
    assert overlay_level(1.0, 0.8) == "normal"
    assert overlay_level(UNKNOWN_DISTANCE, 0.8) == "normal"


@pytest.mark.parametrize(
    "label, distance, expected",
    [
        ("person", 1.0, "person - 1.00m"),
        ("person", 0.6666, "person - 0.67m"),
        ("bicycle", UNKNOWN_DISTANCE, "bicycle"),
    ],
)
def test_format_distance_label(label, distance, expected):
    assert format_distance_label(label, distance) == expected
