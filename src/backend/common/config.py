# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import os
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional


def _env_bool(key: str, default: str = "false") -> bool:
    return os.getenv(key, default).lower() in ("1", "true", "yes")


class Config:
    """Application configuration."""

    # Camera settings
    CAMERA_INDEX: int = int(
        os.getenv("CAMERA_INDEX", "-1")
    )  # -1 selects a device by label heuristic
    CAMERA_LABEL_HINTS: list[str] = [
        hint.strip().lower()
        for hint in os.getenv("CAMERA_LABEL_HINTS", "usb,otg,external,hd").split(",")
        if hint.strip()
    ]
    CAMERA_MAX_PROBE: int = int(
        os.getenv("CAMERA_MAX_PROBE", "10")
    )  # indices probed when the OS exposes no device labels

    # Model settings
    MODEL_PATH: Path = Path(os.getenv("MODEL_PATH", "models/yolov8n.pt")).resolve()
    DETECTOR_BACKEND: str = os.getenv("DETECTOR_BACKEND", "torch").lower()
    DETECTOR_IMAGE_SIZE: int = int(os.getenv("DETECTOR_IMAGE_SIZE", "640"))
    DETECTOR_CONF_THRESHOLD: float = float(os.getenv("DETECTOR_CONF_THRESHOLD", "0.25"))
    TORCH_DEVICE: Optional[str] = os.getenv("TORCH_DEVICE")
    TORCH_HALF_PRECISION: str = os.getenv("TORCH_HALF_PRECISION", "auto")

    # Distance heuristic
    FOCAL_LENGTH: float = float(
        os.getenv("FOCAL_LENGTH", "800")
    )  # assumed, uncalibrated focal length in pixels
    WARNING_DISTANCE: float = float(
        os.getenv("WARNING_DISTANCE", "0.8")
    )  # metres; closer objects raise an alert
    KNOWN_WIDTHS: Mapping[str, float] = MappingProxyType(
        {
            "person": 0.5,
            "car": 1.8,
            "bus": 2.5,
            "motorcycle": 1.2,
            "truck": 2.8,
        }
    )

    # Loop pacing
    FRAME_INTERVAL: float = float(
        os.getenv("FRAME_INTERVAL", str(1 / 30))
    )  # seconds between iterations, roughly one display refresh
    AUTOSTART: bool = _env_bool("AUTOSTART")

    # Remote alert endpoint
    ALERT_URL: str = os.getenv("ALERT_URL", "http://localhost:5000/send-alert")
    ALERT_TIMEOUT: float = float(os.getenv("ALERT_TIMEOUT", "10.0"))

    # Geolocation
    GEOLOCATION_MODE: str = os.getenv("GEOLOCATION_MODE", "none").lower()
    GEOLOCATION_URL: str = os.getenv("GEOLOCATION_URL", "http://ip-api.com/json/")
    GEOLOCATION_LAT: float = float(os.getenv("GEOLOCATION_LAT", "0.0"))
    GEOLOCATION_LON: float = float(os.getenv("GEOLOCATION_LON", "0.0"))

    # Speech output
    SPEECH_BACKEND: str = os.getenv("SPEECH_BACKEND", "pyttsx3").lower()
    TTS_RATE: int = int(os.getenv("TTS_RATE", "160"))  # words per minute
    TTS_VOLUME: float = float(os.getenv("TTS_VOLUME", "1.0"))  # 0.0 - 1.0

    # CORS settings
    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")


config = Config()
