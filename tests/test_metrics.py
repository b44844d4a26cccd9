"""Tests for MetricsRegistry snapshot export."""

import pytest

from metrics.registry import TELEMETRY_GAUGES, MetricsRegistry

from helpers import FakeAdaptor

SNAPSHOT = {
    "device_name": "Living",
    "power_on": "1",
    "set_temp": "25",
    "fan_rate": "1",
    "monitor_rawrtmp": "235",
    "monitor_trtmp": "230",
    "monitor_hetmp": "310",
    "monitor_fan_speed": "1000",
    "monitor_resets": "2",
}


def _value(metrics, name, device="Living"):
    return metrics.registry.get_sample_value(name, {"device": device})


class TestUpdateDevice:
    def test_gauges_labeled_by_device(self, metrics):
        metrics.update_device("10.0.60.21", SNAPSHOT)

        assert _value(metrics, "daikin_set_point_degrees") == 25.0
        assert _value(metrics, "daikin_power_on") == 1.0
        assert _value(metrics, "daikin_fan_rate") == 1.0
        assert _value(metrics, "daikin_monitor_fan_speed") == 1000.0
        assert _value(metrics, "daikin_monitor_resets") == 2.0

    def test_tenths_fields_are_scaled(self, metrics):
        metrics.update_device("10.0.60.21", SNAPSHOT)

        assert _value(metrics, "daikin_monitor_rawrtmp_degrees") == 23.5
        assert _value(metrics, "daikin_monitor_trtmp_degrees") == 23.0
        assert _value(metrics, "daikin_monitor_hetmp_degrees") == 31.0

    def test_unnamed_device_exports_nothing(self, metrics):
        snapshot = dict(SNAPSHOT)
        del snapshot["device_name"]

        metrics.update_device("10.0.60.21", snapshot)

        assert "daikin_set_point_degrees{" not in metrics.render().decode()

    def test_empty_device_name_exports_nothing(self, metrics):
        metrics.update_device("10.0.60.21", dict(SNAPSHOT, device_name=""))

        assert "daikin_set_point_degrees{" not in metrics.render().decode()

    def test_unparsable_value_keeps_previous(self, metrics):
        metrics.update_device("10.0.60.21", SNAPSHOT)
        metrics.update_device("10.0.60.21", dict(SNAPSHOT, set_temp="M"))

        assert _value(metrics, "daikin_set_point_degrees") == 25.0

    def test_absent_value_is_not_exported(self, metrics):
        metrics.update_device("10.0.60.21", SNAPSHOT)

        assert _value(metrics, "daikin_outdoor_temperature_degrees") is None

    def test_every_field_has_unique_metric(self):
        names = [gauge.name for gauge in TELEMETRY_GAUGES]
        fields = [gauge.field for gauge in TELEMETRY_GAUGES]
        assert len(set(names)) == len(names)
        assert len(set(fields)) == len(fields)

    def test_registries_are_independent(self):
        first = MetricsRegistry()
        second = MetricsRegistry()

        first.update_device("10.0.60.21", SNAPSHOT)

        assert second.registry.get_sample_value("daikin_set_point_degrees", {"device": "Living"}) is None


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_reads_adaptor_snapshots(self, metrics):
        adaptors = [
            FakeAdaptor("10.0.60.21", snapshot=SNAPSHOT),
            FakeAdaptor("10.0.60.22", snapshot={"device_name": "Bedroom", "set_temp": "21.5"}),
            FakeAdaptor("10.0.60.99"),
        ]

        await metrics.refresh(adaptors)

        assert _value(metrics, "daikin_set_point_degrees", "Bedroom") == 21.5
        assert _value(metrics, "daikin_set_point_degrees", "Living") == 25.0
        assert metrics.registry.get_sample_value("daikin_watched_adaptors") == 3.0

    @pytest.mark.asyncio
    async def test_render_is_prometheus_text(self, metrics):
        await metrics.refresh([FakeAdaptor("10.0.60.21", snapshot=SNAPSHOT)])

        text = metrics.render().decode()

        assert "# TYPE daikin_set_point_degrees gauge" in text
        assert 'daikin_set_point_degrees{device="Living"} 25.0' in text
