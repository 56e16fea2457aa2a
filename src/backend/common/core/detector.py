# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import numpy as np
import torch
from ultralytics import YOLO  # type: ignore[import-untyped]

from common.config import config
from common.protocols import ObjectDetectionBackend, ObjectDetector
from common.typing import Detection
from common.utils.detection import get_detections

logger = logging.getLogger(__name__)

BackendFactory = Callable[[Optional[Path]], ObjectDetectionBackend]
_backend_registry: dict[str, BackendFactory] = {}


def register_detector_backend(name: str, factory: BackendFactory) -> None:
    """Register a detector backend factory by name."""
    normalized = name.strip().lower()
    if not normalized:
        raise ValueError("Detector backend name cannot be empty")
    _backend_registry[normalized] = factory


def available_detector_backends() -> list[str]:
    """Return the list of known detector backends."""
    return sorted(_backend_registry)


def _build_engine(
    model_path: Optional[Path], backend: Optional[str]
) -> ObjectDetectionBackend:
    backend_name = (backend or config.DETECTOR_BACKEND).lower()
    try:
        factory = _backend_registry[backend_name]
    except KeyError:
        known = ", ".join(available_detector_backends())
        raise ValueError(
            f"Unsupported DETECTOR_BACKEND '{backend_name}'. Known backends: {known or 'none'}."
        ) from None
    return factory(model_path)


class _Detector(ObjectDetector):
    def __init__(
        self, model_path: Optional[Path] = None, backend: Optional[str] = None
    ) -> None:
        """Load the chosen backend.

        Args:
            model_path: Optional path to a model file to override config.
            backend: Optional backend name. If None, uses config.DETECTOR_BACKEND.
        """
        self._engine: ObjectDetectionBackend = _build_engine(model_path, backend)
        self._lock = asyncio.Lock()

    async def infer(self, frame_bgr: np.ndarray) -> list[Detection]:
        """Run detection on a single frame.

        The backend call blocks, so it runs in the default executor. Calls are
        serialized; every call runs the model once on the frame it was given.

        Args:
            frame_bgr (np.ndarray): Input image in BGR color format.

        Returns:
            list[Detection]: Zero or more detections for the frame.
        """
        async with self._lock:
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, self._engine.predict, frame_bgr)


_detector_instance: Optional[_Detector] = None


def get_detector(model_path: Optional[Path] = None) -> _Detector:
    """Get or create the singleton detector instance.

    The loaded model is kept for the lifetime of the process, so restarting
    detection does not reload it.

    Args:
        model_path: Path to the YOLO model file. Only used on first call.
    """
    global _detector_instance
    if _detector_instance is None:
        _detector_instance = _Detector(model_path=model_path)
        logger.info("Detector loaded", extra={"backend": config.DETECTOR_BACKEND})
    return _detector_instance


def reset_detector() -> None:
    """Drop the cached detector so the next get_detector() reloads it."""
    global _detector_instance
    _detector_instance = None


class _DetectorEngine:
    """Base class for synchronous detector backends."""

    def predict(self, frame_bgr: np.ndarray) -> list[Detection]:
        """Run inference on a BGR frame and return parsed detections."""
        raise NotImplementedError


class _TorchDetector(_DetectorEngine):
    def __init__(self, model_path: Optional[Path] = None) -> None:
        if model_path is None:
            model_path = config.MODEL_PATH
        else:
            model_path = Path(model_path).resolve()

        # Ultralytics downloads official weights by bare name when the path is missing.
        weights = str(model_path) if model_path.exists() else model_path.name
        self._model = YOLO(weights)
        self._device = self._resolve_device(config.TORCH_DEVICE)
        self._half = self._resolve_half_precision(config.TORCH_HALF_PRECISION)
        self._imgsz = config.DETECTOR_IMAGE_SIZE
        self._conf = config.DETECTOR_CONF_THRESHOLD

    def predict(self, frame_bgr: np.ndarray) -> list[Detection]:
        """Run a single-frame inference with the torch-backed YOLO model."""
        inference_results = self._model.predict(
            frame_bgr,
            imgsz=self._imgsz,
            conf=self._conf,
            verbose=False,
            device=self._device,
            half=self._half,
        )
        return get_detections(inference_results)

    def _resolve_device(self, override: Optional[str]) -> str:
        """Pick the torch device, favoring explicit override, then CUDA/MPS, else CPU."""
        if override:
            return override
        if torch.cuda.is_available():
            return "cuda:0"
        if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
            return "mps"
        return "cpu"

    def _resolve_half_precision(self, pref: Optional[str]) -> bool:
        """Return whether to run the model in FP16."""
        pref = (pref or "auto").lower()
        if pref in ("true", "1", "yes"):
            return True
        if pref in ("false", "0", "no"):
            return False
        return self._device.startswith("cuda")


register_detector_backend("torch", _TorchDetector)
