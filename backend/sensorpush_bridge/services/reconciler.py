"""
Reconciliation Engine
=====================

Maps fresh samples and sensor metadata onto the live state of each tracked
sensor.

THE RULES:
---------
- Newest sample wins. Timestamps are ISO-8601 strings, so the biggest
  string is the most recent one.
- Temperature arrives in Fahrenheit, we keep Celsius.
- Battery % is a straight line from 2.0V (empty) to 3.0V (full).
  Below 20% counts as low battery.
- A sensor that got no sample this round keeps what it had.
"""

import logging
from typing import Mapping, Optional

from sensorpush_bridge.models import Sample, Sensor, SensorLiveState

logger = logging.getLogger(__name__)


MIN_BATTERY_VOLTAGE = 2.0
MAX_BATTERY_VOLTAGE = 3.0
LOW_BATTERY_PERCENT = 20


# =============================================================================
# DERIVED VALUES
# =============================================================================

def fahrenheit_to_celsius(temperature_f: float) -> float:
    return (temperature_f - 32) * 5 / 9


def battery_percentage(voltage: float) -> float:
    """
    Convert a battery voltage to a 0-100 level.

    Args:
        voltage: Battery voltage in volts

    Returns:
        Percentage, clamped to 0..100
    """
    level = ((voltage - MIN_BATTERY_VOLTAGE) / (MAX_BATTERY_VOLTAGE - MIN_BATTERY_VOLTAGE)) * 100
    return max(0.0, min(100.0, level))


def is_low_battery(percentage: float) -> bool:
    return percentage < LOW_BATTERY_PERCENT


def latest_sample(samples: Mapping[str, Sample]) -> Optional[tuple[str, Sample]]:
    """Pick the (timestamp, sample) pair with the greatest timestamp string."""
    if not samples:
        return None
    timestamp = max(samples)
    return timestamp, samples[timestamp]


# =============================================================================
# THE TRACKER
# =============================================================================

class SensorStateTracker:
    """
    Keeps one SensorLiveState per tracked sensor.

    The tracked set only changes through sync_tracked() (discovery);
    apply_samples() only ever updates values of sensors already tracked.
    """

    def __init__(self):
        self._states: dict[str, SensorLiveState] = {}

    @property
    def tracked_ids(self) -> list[str]:
        return list(self._states)

    def get(self, sensor_id: str) -> Optional[SensorLiveState]:
        return self._states.get(sensor_id)

    def all(self) -> list[SensorLiveState]:
        return list(self._states.values())

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, sensor_id: object) -> bool:
        return sensor_id in self._states

    def sync_tracked(self, metadata: Mapping[str, Sensor]) -> tuple[list[str], list[str]]:
        """
        Make the tracked set exactly the valid sensors in `metadata`.

        Args:
            metadata: Full sensor map from the cloud

        Returns:
            (added_ids, removed_ids)
        """
        valid = {sensor_id: sensor for sensor_id, sensor in metadata.items() if sensor.is_valid}

        removed = [sensor_id for sensor_id in self._states if sensor_id not in valid]
        for sensor_id in removed:
            logger.info(f"Removing inactive sensor: {self._states[sensor_id].name or sensor_id}")
            del self._states[sensor_id]

        added = []
        for sensor_id, sensor in valid.items():
            state = self._states.get(sensor_id)
            if state is not None:
                state.name = sensor.name
                # A voltage reported later turns battery tracking on; it never turns off
                state.has_battery = state.has_battery or sensor.battery_voltage is not None
                continue

            logger.info(f"Tracking new sensor: {sensor.name or sensor_id}")
            self._states[sensor_id] = SensorLiveState(
                sensor_id=sensor_id,
                name=sensor.name,
                has_battery=sensor.battery_voltage is not None,
            )
            added.append(sensor_id)

        return added, removed

    def apply_samples(
        self,
        samples: Mapping[str, Mapping[str, Sample]],
        metadata: Mapping[str, Sensor],
    ) -> list[str]:
        """
        Update tracked sensors from one poll's samples.

        Args:
            samples: Samples keyed by sensor ID, then timestamp
            metadata: Current metadata cache (for battery voltage)

        Returns:
            IDs of the sensors whose state changed
        """
        updated = []

        for sensor_id, state in self._states.items():
            picked = latest_sample(samples.get(sensor_id) or {})
            if picked is None:
                continue
            timestamp, sample = picked

            state.temperature_c = fahrenheit_to_celsius(sample.temperature)
            state.humidity_pct = sample.humidity
            state.last_observed = timestamp

            sensor = metadata.get(sensor_id)
            voltage = sensor.battery_voltage if sensor else None
            if state.has_battery and voltage is not None:
                state.battery_pct = battery_percentage(voltage)
                state.low_battery = is_low_battery(state.battery_pct)

            logger.debug(
                f"Updated {state.name or sensor_id}: "
                f"{state.temperature_c:.1f}°C, {state.humidity_pct:.1f}%"
            )
            updated.append(sensor_id)

        return updated
