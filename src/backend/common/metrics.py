# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging
import os
from typing import Optional

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes

_METER_NAME = "proximity"

_configured = False
_meter: Optional[metrics.Meter] = None
_instruments: dict[str, metrics.Counter | metrics.Histogram] = {}


def configure_metrics(
    service_name: str,
    service_version: str,
    environment: str | None = None,
) -> metrics.Meter:
    """
    Configure OpenTelemetry metrics and return a Meter instance.

    Metrics are exported over OTLP HTTP only when OTEL_EXPORTER_OTLP_METRICS_ENDPOINT
    or OTEL_EXPORTER_OTLP_ENDPOINT is set; otherwise the provider records
    without exporting.

    Args:
        service_name: Name of the service (e.g., "proximity")
        service_version: Version of the service
        environment: Deployment environment (e.g., "development", "production")

    Returns:
        Meter instance for creating metrics
    """
    global _configured, _meter
    if _configured and _meter is not None:
        return _meter

    env = environment or os.getenv("ENVIRONMENT", "development")
    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: env,
        }
    )

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )
    meter_provider = MeterProvider(resource=resource)
    if otlp_endpoint:
        try:
            reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(endpoint=otlp_endpoint), export_interval_millis=5000
            )
            meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
        except Exception as err:  # pragma: no cover
            logging.getLogger(__name__).warning(
                "OTLP metrics exporter setup failed; metrics not exported",
                extra={"error": str(err)},
            )

    metrics.set_meter_provider(meter_provider)
    _meter = metrics.get_meter(_METER_NAME, service_version)
    _instruments.clear()
    _configured = True
    return _meter


def get_meter() -> metrics.Meter:
    """Return the configured meter, or the global (no-op until configured) one."""
    if _meter is not None:
        return _meter
    return metrics.get_meter(_METER_NAME)


def _counter(name: str, description: str) -> metrics.Counter:
    instrument = _instruments.get(name)
    if instrument is None:
        instrument = get_meter().create_counter(name, unit="1", description=description)
        _instruments[name] = instrument
    return instrument  # type: ignore[return-value]


def get_alerts_spoken() -> metrics.Counter:
    return _counter("proximity.alerts.spoken", "Spoken alerts started")


def get_alerts_dropped() -> metrics.Counter:
    return _counter(
        "proximity.alerts.dropped", "Spoken alerts dropped while another was playing"
    )


def get_alerts_dispatched() -> metrics.Counter:
    return _counter(
        "proximity.alerts.dispatched", "Remote alerts accepted by the alert endpoint"
    )


def get_alerts_dispatch_failed() -> metrics.Counter:
    return _counter(
        "proximity.alerts.dispatch_failed", "Remote alerts that failed to send"
    )


def get_detection_duration() -> metrics.Histogram:
    """Histogram of per-frame detector latency in seconds."""
    name = "proximity.detection.duration"
    instrument = _instruments.get(name)
    if instrument is None:
        instrument = get_meter().create_histogram(
            name, unit="s", description="Detector inference time per frame"
        )
        _instruments[name] = instrument
    return instrument  # type: ignore[return-value]
