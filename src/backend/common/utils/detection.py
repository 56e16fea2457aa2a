# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from typing import Any, Mapping, Optional

from ultralytics.engine.results import Results  # type: ignore[import-untyped]

from common.typing import BoundingBox, Detection


def _label_for(class_id: int, names: Optional[Mapping[int, str]]) -> str:
    if names and class_id in names:
        return str(names[class_id]).lower()
    return str(class_id)


def get_detections(inference_results: list[Results] | list[Any]) -> list[Detection]:
    """Convert YOLO inference output into Detection values.

    Boxes come out of the model as (x1, y1, x2, y2); they are converted to
    (x, y, width, height) and class ids are resolved to lower-case labels
    through the result's ``names`` table.

    Args:
        inference_results: The list of results returned by model.predict().

    Returns:
        One Detection per box of the first result; empty if there are none.
    """
    if not inference_results:
        return []

    result = inference_results[0]
    if result.boxes is None or len(result.boxes) == 0:
        return []

    names = getattr(result, "names", None)
    bbox_coords = result.boxes.xyxy.cpu().numpy()
    class_ids = result.boxes.cls.cpu().numpy().astype(int)
    confidences = result.boxes.conf.cpu().numpy()

    return [
        Detection(
            box=BoundingBox.from_xyxy(float(x1), float(y1), float(x2), float(y2)),
            label=_label_for(int(class_id), names),
            score=float(confidence),
        )
        for (x1, y1, x2, y2), class_id, confidence in zip(
            bbox_coords, class_ids, confidences
        )
    ]
