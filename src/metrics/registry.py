"""
Prometheus metrics for the Daikin exporter

One MetricsRegistry is built at startup and handed to the adaptors, the
discovery service and the scrape API. It owns its own CollectorRegistry, so
nothing is registered in prometheus_client's process-wide default registry.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TelemetryGauge:
    """Snapshot field exported as a gauge labeled by device name"""
    field: str
    name: str
    documentation: str
    divisor: float = 1.0


TELEMETRY_GAUGES = (
    TelemetryGauge('power_on', 'daikin_power_on', 'Unit power state (1 = on)'),
    TelemetryGauge('set_temp', 'daikin_set_point_degrees', 'Temperature set-point'),
    TelemetryGauge('set_humid', 'daikin_set_humidity_percent', 'Humidity set-point'),
    TelemetryGauge('mode', 'daikin_mode', 'Operating mode'),
    TelemetryGauge('fan_rate', 'daikin_fan_rate', 'Fan rate (1 = auto, 2 = silent, 3-7 = level)'),
    TelemetryGauge('fan_dir', 'daikin_fan_direction', 'Fan direction'),
    TelemetryGauge('unit_temp', 'daikin_unit_temperature_degrees', 'Indoor unit temperature'),
    TelemetryGauge('outdoor_temp', 'daikin_outdoor_temperature_degrees', 'Outdoor temperature'),
    TelemetryGauge('compressor_demand', 'daikin_compressor_demand', 'Compressor demand'),
    TelemetryGauge('daily_runtime', 'daikin_daily_runtime_minutes', 'Runtime today'),
    TelemetryGauge('monitor_fan_speed', 'daikin_monitor_fan_speed', 'Monitored fan speed'),
    TelemetryGauge('monitor_rawrtmp', 'daikin_monitor_rawrtmp_degrees', 'Monitored raw room temperature', 10),
    TelemetryGauge('monitor_trtmp', 'daikin_monitor_trtmp_degrees', 'Monitored room temperature', 10),
    TelemetryGauge('monitor_fangl', 'daikin_monitor_fangl', 'Monitored fan angle'),
    TelemetryGauge('monitor_hetmp', 'daikin_monitor_hetmp_degrees', 'Monitored heat exchanger temperature', 10),
    TelemetryGauge('monitor_resets', 'daikin_monitor_resets', 'Adaptor reset count'),
    TelemetryGauge('monitor_router_disconnects', 'daikin_monitor_router_disconnects', 'Adaptor router disconnect count'),
    TelemetryGauge('monitor_polling_errors', 'daikin_monitor_polling_errors', 'Adaptor polling error count'),
)


def _as_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class MetricsRegistry:
    """Owns every metric the exporter publishes"""

    def __init__(self):
        self.registry = CollectorRegistry()

        self.http_requests = Counter(
            'daikin_http_requests_total',
            'Number of HTTP requests made to Daikin adaptors',
            ['host', 'path'],
            registry=self.registry
        )
        self.http_errors = Counter(
            'daikin_http_request_errors_total',
            'Number of HTTP request errors made to Daikin adaptors',
            ['host', 'path', 'error_type'],
            registry=self.registry
        )
        self.http_durations = Histogram(
            'daikin_http_request_duration_seconds',
            'HTTP request durations',
            ['host', 'path'],
            registry=self.registry
        )
        self.discover_requests = Counter(
            'daikin_udp_discover_requests_total',
            'Number of UDP discover requests made to Daikin adaptors',
            ['address'],
            registry=self.registry
        )
        self.discover_responses = Counter(
            'daikin_udp_discover_responses_total',
            'Number of UDP discover responses read from Daikin adaptors',
            ['host'],
            registry=self.registry
        )
        self.watched_adaptors = Gauge(
            'daikin_watched_adaptors',
            'Number of Daikin adaptors being polled',
            registry=self.registry
        )

        self.telemetry = {
            definition.field: (definition, Gauge(definition.name, definition.documentation, ['device'], registry=self.registry))
            for definition in TELEMETRY_GAUGES
        }

    async def refresh(self, adaptors: Iterable) -> None:
        """Copy adaptor snapshots into the telemetry gauges"""
        count = 0
        for adaptor in adaptors:
            count += 1
            snapshot = await adaptor.snapshot()
            self.update_device(adaptor.host, snapshot)
        self.watched_adaptors.set(count)

    def update_device(self, host: str, snapshot: dict) -> None:
        device_name = snapshot.get('device_name')
        if not device_name:
            # No label to export under yet
            return

        for field, (definition, gauge) in self.telemetry.items():
            value = _as_float(snapshot.get(field))
            if value is None:
                continue
            gauge.labels(device=device_name).set(value / definition.divisor)

        logger.debug(f"Updated metrics for {device_name} ({host})")

    def render(self) -> bytes:
        """Text exposition of every metric"""
        return generate_latest(self.registry)
