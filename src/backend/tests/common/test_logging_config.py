# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import json
import logging
import sys

from common.logging_config import JsonFormatter, PrettyFormatter


def _record(msg: str = "Alert sent", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "common.core.dispatch", logging.INFO, __file__, 1, msg, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_service_and_extras():
    formatter = JsonFormatter("proximity", "test")

    payload = json.loads(formatter.format(_record(url="http://alerts.test", status=200)))

    assert payload["message"] == "Alert sent"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "common.core.dispatch"
    assert payload["service"] == "proximity"
    assert payload["environment"] == "test"
    assert payload["url"] == "http://alerts.test"
    assert payload["status"] == 200
    assert "trace_id" not in payload


def test_json_formatter_keeps_reserved_keys():
    formatter = JsonFormatter("proximity", "test")

    payload = json.loads(formatter.format(_record(service="other")))

    assert payload["service"] == "proximity"


def test_json_formatter_serializes_exceptions():
    formatter = JsonFormatter("proximity", "test")
    try:
        raise RuntimeError("camera gone")
    except RuntimeError:
        record = logging.LogRecord(
            "proximity.loop", logging.ERROR, __file__, 1, "boom", None, sys.exc_info()
        )

    payload = json.loads(formatter.format(record))

    assert "RuntimeError: camera gone" in payload["exception"]


def test_pretty_formatter_is_single_line():
    formatter = PrettyFormatter("proximity", "dev")

    line = formatter.format(_record("Selected camera", device_index=2))

    assert "\n" not in line
    assert "[common.core.dispatch] Selected camera" in line
    assert "service=proximity" in line
    assert "env=dev" in line
    assert "device_index=2" in line
