# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import numpy as np
import pytest

from common.typing import BoundingBox, Detection
from common.utils.detection import get_detections
from tests.test_utils import DummyBoxes, DummyResult

COCO_SUBSET = {0: "person", 1: "bicycle", 2: "car", 7: "truck"}


@pytest.mark.parametrize(
    "input_triggering_empty_list",
    [[], None, [DummyResult(None)]],
    ids=["empty_list", "none_value", "result_with_no_bboxes"],
)
def test_get_detections_returns_empty(input_triggering_empty_list) -> None:
    assert get_detections(input_triggering_empty_list) == []


@pytest.mark.parametrize(
    "xyxy, cls_ids, confs, expected",
    [
        (
            [[10, 20, 50, 60]],
            [1],
            [0.9],
            [Detection(box=BoundingBox(10, 20, 40, 40), label="bicycle", score=0.9)],
        ),
        (
            [[0, 0, 10, 10], [5, 6, 15, 20], [100, 120, 740, 180]],
            [2, 0, 7],
            [0.5, 0.99, 0.42],
            [
                Detection(box=BoundingBox(0, 0, 10, 10), label="car", score=0.5),
                Detection(box=BoundingBox(5, 6, 10, 14), label="person", score=0.99),
                Detection(
                    box=BoundingBox(100, 120, 640, 60), label="truck", score=0.42
                ),
            ],
        ),
        (
            np.zeros((0, 4)),
            [],
            [],
            [],
        ),
    ],
    ids=["single_detection", "multiple_detections", "no_detections"],
)
def test_get_detections(xyxy, cls_ids, confs, expected) -> None:
    boxes = DummyBoxes(xyxy=xyxy, cls=cls_ids, conf=confs)
    result = DummyResult(boxes=boxes, names=COCO_SUBSET)

    detections = get_detections([result])

    assert len(detections) == len(expected)
    for got, want in zip(detections, expected):
        assert got.label == want.label
        assert got.box == want.box
        assert got.score == pytest.approx(want.score, rel=1e-6)


def test_get_detections_keeps_fractional_box_coordinates() -> None:
    boxes = DummyBoxes(xyxy=[[10.5, 20.25, 410.5, 300.0]], cls=[0], conf=[0.8])

    (detection,) = get_detections([DummyResult(boxes, names=COCO_SUBSET)])

    assert detection.box.x == pytest.approx(10.5)
    assert detection.box.width == pytest.approx(400.0)


def test_get_detections_lowercases_model_labels() -> None:
    boxes = DummyBoxes(xyxy=[[0, 0, 5, 5]], cls=[3], conf=[0.7])

    (detection,) = get_detections([DummyResult(boxes, names={3: "Motorcycle"})])

    assert detection.label == "motorcycle"


def test_get_detections_falls_back_to_class_id_without_names() -> None:
    boxes = DummyBoxes(xyxy=[[0, 0, 5, 5]], cls=[42], conf=[0.7])

    (detection,) = get_detections([DummyResult(boxes)])

    assert detection.label == "42"
