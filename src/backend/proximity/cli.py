# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

logger = logging.getLogger("proximity.cli")

APP_IMPORT_PATH = "proximity.main:app"


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the proximity guard service."""
    parser = argparse.ArgumentParser(
        description="Proximity warning service: object detection, distance estimation and alerts"
    )
    parser.add_argument(
        "--model-path",
        type=str,
        default=None,
        help="Path to the YOLO model file. If not provided, uses MODEL_PATH.",
    )
    parser.add_argument(
        "--camera-index",
        type=int,
        default=None,
        help="Camera index to open. If not provided, an external camera is picked by label.",
    )
    parser.add_argument(
        "--alert-url",
        type=str,
        default=None,
        help="Endpoint that receives remote alerts. If not provided, uses ALERT_URL.",
    )
    parser.add_argument(
        "--speech-backend",
        choices=["pyttsx3", "log"],
        default=None,
        help="Voice alert output. If not provided, uses SPEECH_BACKEND.",
    )
    parser.add_argument(
        "--autostart",
        action="store_true",
        help="Start detection as soon as the service is up",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind the server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind the server to (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    return parser.parse_args(argv)


def validate_model_path(path_str: Optional[str]) -> tuple[Optional[Path], bool]:
    """Resolve a model path and check it points to a file.

    A bare file name such as ``yolov8n.pt`` is accepted even when missing,
    since Ultralytics downloads official weights by name.

    Returns:
        Tuple of (resolved Path or None, validation success status).
    """
    if not path_str:
        return None, True

    path = Path(path_str).resolve()
    if path.is_dir():
        logger.error(f"Expected a model file, but got a directory: {path}")
        return None, False
    if not path.exists() and Path(path_str).parent != Path("."):
        logger.error(f"Model file does not exist: {path}")
        return None, False
    return path, True


def _export_options(args: argparse.Namespace, model_path: Optional[Path]) -> None:
    overrides = {
        "MODEL_PATH": str(model_path) if model_path else None,
        "CAMERA_INDEX": None if args.camera_index is None else str(args.camera_index),
        "ALERT_URL": args.alert_url,
        "SPEECH_BACKEND": args.speech_backend,
        "AUTOSTART": "true" if args.autostart else None,
    }
    for key, value in overrides.items():
        if value is not None:
            os.environ[key] = value


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point for the proximity guard CLI."""
    args = parse_arguments(argv)

    # Import here so logging/metrics are configured only when actually serving
    from proximity.main import create_app

    model_path, is_valid = validate_model_path(args.model_path)
    if not is_valid:
        sys.exit(1)

    if args.reload:
        # The reloader imports the app by name in a fresh process, so options
        # travel through the environment that common.config reads.
        _export_options(args, model_path)
        uvicorn.run(APP_IMPORT_PATH, host=args.host, port=args.port, reload=True)
        return

    app = create_app(
        model_path=model_path,
        camera_index=args.camera_index,
        alert_url=args.alert_url,
        speech_backend=args.speech_backend,
        autostart=args.autostart or None,
    )

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
