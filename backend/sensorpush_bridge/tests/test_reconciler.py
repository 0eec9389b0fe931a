"""Tests for derived values and the sensor state tracker."""

from __future__ import annotations

import pytest

from sensorpush_bridge.models import Sample
from sensorpush_bridge.services.reconciler import (
    SensorStateTracker,
    battery_percentage,
    fahrenheit_to_celsius,
    is_low_battery,
    latest_sample,
)

from .conftest import sample_map, sensor_map


class TestDerivedValues:
    def test_fahrenheit_to_celsius(self) -> None:
        assert fahrenheit_to_celsius(32) == 0
        assert fahrenheit_to_celsius(212) == 100
        assert fahrenheit_to_celsius(-40) == -40

    @pytest.mark.parametrize(
        "voltage, percent, low",
        [
            (3.0, 100.0, False),
            (2.0, 0.0, True),
            (2.5, 50.0, False),
            (2.2, 20.0, False),
            (2.19, 19.0, True),
            (3.3, 100.0, False),
            (1.5, 0.0, True),
        ],
    )
    def test_battery_percentage(self, voltage: float, percent: float, low: bool) -> None:
        level = battery_percentage(voltage)
        assert level == pytest.approx(percent)
        assert is_low_battery(level) is low

    def test_twenty_percent_is_not_low(self) -> None:
        assert is_low_battery(20) is False
        assert is_low_battery(19.9) is True

    def test_latest_sample_picks_greatest_timestamp(self) -> None:
        older = Sample(temperature=50, humidity=30)
        newer = Sample(temperature=60, humidity=35)
        samples = {"2024-01-01T00:05:00Z": newer, "2024-01-01T00:00:00Z": older}

        assert latest_sample(samples) == ("2024-01-01T00:05:00Z", newer)

    def test_latest_sample_of_nothing(self) -> None:
        assert latest_sample({}) is None


class TestSyncTracked:
    def test_tracks_only_valid_sensors_with_defaults(self, sensors) -> None:
        tracker = SensorStateTracker()
        added, removed = tracker.sync_tracked(sensors)

        assert sorted(added) == ["111.aaa", "222.bbb"]
        assert removed == []
        assert "333.ccc" not in tracker

        garage = tracker.get("111.aaa")
        assert garage.name == "Garage"
        assert garage.temperature_c == 0
        assert garage.humidity_pct == 0
        assert garage.battery_pct == 100
        assert garage.low_battery is False
        assert garage.has_battery is True
        assert garage.last_observed is None

        assert tracker.get("222.bbb").has_battery is False

    def test_prunes_deactivated_and_missing_sensors(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)

        payload = {
            "111.aaa": {"name": "Garage", "active": False},
        }
        added, removed = tracker.sync_tracked(sensor_map(payload))

        assert added == []
        assert sorted(removed) == ["111.aaa", "222.bbb"]
        assert len(tracker) == 0

    def test_rediscovery_keeps_values_and_refreshes_name(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)
        tracker.apply_samples(sample_map({"111.aaa": {"2024-01-01T00:00:00Z": (212, 40)}}), sensors)

        renamed = sensor_map({"111.aaa": {"name": "Workshop", "battery_voltage": None}})
        added, removed = tracker.sync_tracked(renamed)

        assert added == []
        assert removed == ["222.bbb"]
        state = tracker.get("111.aaa")
        assert state.name == "Workshop"
        assert state.temperature_c == pytest.approx(100)
        assert state.has_battery is True

    def test_rediscovery_enables_battery_once_voltage_appears(self) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensor_map({"a": {"name": "Shed"}}))
        assert tracker.get("a").has_battery is False

        with_voltage = sensor_map({"a": {"name": "Shed", "battery_voltage": 2.1}})
        tracker.sync_tracked(with_voltage)
        tracker.apply_samples(sample_map({"a": {"t1": (32, 50)}}), with_voltage)

        state = tracker.get("a")
        assert state.has_battery is True
        assert state.battery_pct == pytest.approx(10)
        assert state.low_battery is True


class TestApplySamples:
    def test_applies_newest_sample_and_battery(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)

        samples = sample_map({
            "111.aaa": {
                "2024-01-01T00:00:00Z": (50, 30),
                "2024-01-01T00:05:00Z": (212, 45.5),
            },
        })
        updated = tracker.apply_samples(samples, sensors)

        assert updated == ["111.aaa"]
        state = tracker.get("111.aaa")
        assert state.temperature_c == pytest.approx(100)
        assert state.humidity_pct == 45.5
        assert state.last_observed == "2024-01-01T00:05:00Z"
        assert state.battery_pct == pytest.approx(95)
        assert state.low_battery is False

    def test_low_voltage_flags_low_battery(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)

        drained = sensor_map({"111.aaa": {"name": "Garage", "battery_voltage": 2.1}})
        tracker.apply_samples(sample_map({"111.aaa": {"t1": (32, 50)}}), drained)

        state = tracker.get("111.aaa")
        assert state.battery_pct == pytest.approx(10)
        assert state.low_battery is True

    def test_sensor_without_battery_keeps_defaults(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)

        # Voltage shows up later, but battery tracking was decided at discovery
        with_voltage = sensor_map({"222.bbb": {"name": "Freezer", "battery_voltage": 2.05}})
        tracker.apply_samples(sample_map({"222.bbb": {"t1": (0, 80)}}), with_voltage)

        state = tracker.get("222.bbb")
        assert state.temperature_c == pytest.approx(-17.777, abs=0.01)
        assert state.battery_pct == 100
        assert state.low_battery is False

    def test_missing_voltage_keeps_previous_battery(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)
        tracker.apply_samples(sample_map({"111.aaa": {"t1": (32, 50)}}), sensors)

        no_voltage = sensor_map({"111.aaa": {"name": "Garage"}})
        tracker.apply_samples(sample_map({"111.aaa": {"t2": (41, 55)}}), no_voltage)

        state = tracker.get("111.aaa")
        assert state.temperature_c == pytest.approx(5)
        assert state.battery_pct == pytest.approx(95)

    def test_sensor_without_samples_is_untouched(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)
        tracker.apply_samples(sample_map({"222.bbb": {"t1": (50, 60)}}), sensors)

        updated = tracker.apply_samples(sample_map({"111.aaa": {"t2": (32, 10)}}), sensors)

        assert updated == ["111.aaa"]
        freezer = tracker.get("222.bbb")
        assert freezer.temperature_c == pytest.approx(10)
        assert freezer.last_observed == "t1"

    def test_untracked_sensors_are_ignored(self, sensors) -> None:
        tracker = SensorStateTracker()
        tracker.sync_tracked(sensors)

        updated = tracker.apply_samples(sample_map({"333.ccc": {"t1": (50, 60)}}), sensors)

        assert updated == []
        assert "333.ccc" not in tracker
