# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any

from opentelemetry import _logs, trace
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

_configured = False

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRIBUTES: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class _ServiceFormatter(logging.Formatter):
    """Base formatter that knows which service emitted the record."""

    def __init__(self, service_name: str, environment: str) -> None:
        super().__init__()
        self.service_name = service_name
        self.environment = environment

    def _context(self, record: logging.LogRecord) -> dict[str, Any]:
        """Collect trace ids and `extra=` fields attached to the record."""
        context: dict[str, Any] = {}
        span_ctx = trace.get_current_span().get_span_context()
        if span_ctx and span_ctx.is_valid:
            context["trace_id"] = format(span_ctx.trace_id, "032x")
            context["span_id"] = format(span_ctx.span_id, "016x")

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                context[key] = value

        if record.exc_info:
            context["exception"] = self.formatException(record.exc_info)
        return context

    @staticmethod
    def _timestamp(record: logging.LogRecord) -> str:
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


class JsonFormatter(_ServiceFormatter):
    """Format log records as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self._timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
        }
        for key, value in self._context(record).items():
            payload.setdefault(key, value)
        return json.dumps(payload, ensure_ascii=True, default=str)


class PrettyFormatter(_ServiceFormatter):
    """Human-readable, single-line log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        extras = {"service": self.service_name, "env": self.environment}
        for key, value in self._context(record).items():
            extras.setdefault(key, value)

        return " ".join(
            [
                self._timestamp(record),
                f"{record.levelname:<7}",
                f"[{record.name}]",
                record.getMessage(),
                " ".join(f"{k}={v}" for k, v in extras.items()),
            ]
        )


def configure_logging(
    service_name: str,
    service_version: str | None = None,
    environment: str | None = None,
) -> None:
    """
    Configure application logging with OpenTelemetry and console output.

    This sets up:
      - Root logger with JSON (default) or pretty console output
      - OpenTelemetry logger provider, exporting over OTLP HTTP when an
        endpoint is configured
      - Respect for LOG_LEVEL / LOG_FORMAT / ENVIRONMENT / OTEL_EXPORTER_OTLP* env vars

    Calling it again is a no-op.
    """
    global _configured
    if _configured:
        return

    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    env = environment or os.getenv("ENVIRONMENT", "development")
    log_format = os.getenv("LOG_FORMAT", "json").lower()

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version or "unknown",
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: env,
        }
    )
    logger_provider = LoggerProvider(resource=resource)
    _logs.set_logger_provider(logger_provider)

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    if otlp_endpoint:
        try:
            logger_provider.add_log_record_processor(
                BatchLogRecordProcessor(OTLPLogExporter(endpoint=otlp_endpoint))
            )
        except Exception as err:  # pragma: no cover - exporter failures handled gracefully
            logging.getLogger(__name__).warning(
                "OTLP exporter setup failed; console logging only",
                extra={"error": str(err)},
            )

    formatter_cls = PrettyFormatter if log_format == "pretty" else JsonFormatter
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter_cls(service_name, env))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(console_handler)
    root.addHandler(LoggingHandler(level=log_level, logger_provider=logger_provider))

    _configured = True
