# src/nodekeeper/core/telemetry.py
"""Initializes OpenTelemetry and exposes the counters the controllers emit."""

import logging
from typing import Dict

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from .config import config

logger = logging.getLogger(__name__)

NODECLAIMS_REGISTERED = "nodekeeper_nodeclaims_registered"
NODES_CREATED = "nodekeeper_nodes_created"
NODECLAIMS_TERMINATED = "nodekeeper_nodeclaims_terminated"

_DESCRIPTIONS = {
    NODECLAIMS_REGISTERED: "Number of nodeclaims registered in total.",
    NODES_CREATED: "Number of nodes created in total.",
    NODECLAIMS_TERMINATED: "Number of nodeclaims terminated in total.",
}


def initialize_telemetry():
    """
    Configures the global MeterProvider. Metrics are exported via OTLP/HTTP.
    """
    resource = Resource(attributes={SERVICE_NAME: "nodekeeper"})
    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{config.OTEL_EXPORTER_OTLP_ENDPOINT}/v1/metrics")
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    logger.info(f"OpenTelemetry initialized. Exporting to: {config.OTEL_EXPORTER_OTLP_ENDPOINT}")


class Telemetry:
    """
    Side-effect only counter sink.

    Nothing here may influence a reconcile: failures to record are logged and
    dropped.
    """

    def __init__(self, meter=None):
        self._meter = meter or metrics.get_meter("nodekeeper.meter")
        self._counters: Dict[str, object] = {}

    def _counter(self, name: str):
        counter = self._counters.get(name)
        if counter is None:
            counter = self._meter.create_counter(name, description=_DESCRIPTIONS.get(name, ""))
            self._counters[name] = counter
        return counter

    def increment(self, name: str, amount: int = 1, **attributes: str):
        try:
            self._counter(name).add(amount, attributes=attributes)
        except Exception as e:
            logger.debug("Failed to record metric '%s': %s", name, e)
