"""
Metrics module for the Daikin exporter
"""

from .registry import MetricsRegistry, TelemetryGauge, TELEMETRY_GAUGES

__all__ = ['MetricsRegistry', 'TelemetryGauge', 'TELEMETRY_GAUGES']
