"""
Connection Check
================

Walks through every SensorPush call once and prints what comes back.
Handy to confirm credentials before starting the server.

Usage:
    SENSORPUSH_EMAIL=me@example.com SENSORPUSH_PASSWORD=secret sensorpush-check
    sensorpush-check --verbose
"""

import argparse
import asyncio
import logging
import sys

from sensorpush_bridge.config import Config
from sensorpush_bridge.exceptions import ConfigError, SensorPushError
from sensorpush_bridge.services.reconciler import fahrenheit_to_celsius, latest_sample
from sensorpush_bridge.services.sensorpush_api import SensorPushApi


async def run_check(api) -> int:
    """
    Authenticate, list sensors, fetch samples and list gateways.

    Args:
        api: A SensorPushApi (or anything with the same methods)

    Returns:
        Process exit code (0 = everything worked)
    """
    print("=" * 60)
    print("SensorPush connection check")
    print("=" * 60)

    try:
        print("\nStep 1: Authenticating...")
        await api.authenticate()
        print("Authentication successful")

        print("\nStep 2: Discovering sensors...")
        sensors = await api.list_sensors()
        print(f"Found {len(sensors)} sensor(s)")

        if not sensors:
            print("No sensors found in your account.")
            print("Make sure you have sensors registered in the SensorPush app.")
            return 0

        for sensor_id, sensor in sensors.items():
            print(f"\n  Sensor: {sensor.name}")
            print(f"  ID: {sensor_id}")
            print(f"  Active: {'Yes' if sensor.is_valid else 'No'}")
            if sensor.battery_voltage is not None:
                print(f"  Battery: {sensor.battery_voltage:.2f}V")

        print("\nStep 3: Fetching latest readings...")
        samples = await api.list_samples(list(sensors), limit=1)
        for sensor_id, sensor in sensors.items():
            picked = latest_sample(samples.get(sensor_id) or {})
            if picked is None:
                print(f"\n  {sensor.name}: No data available")
                continue
            timestamp, sample = picked
            print(f"\n  {sensor.name}:")
            print(f"    Temperature: {sample.temperature}°F ({fahrenheit_to_celsius(sample.temperature):.1f}°C)")
            print(f"    Humidity: {sample.humidity:.1f}%")
            print(f"    Last Updated: {timestamp}")

        print("\nStep 4: Discovering gateways...")
        gateways = await api.list_gateways()
        print(f"Found {len(gateways)} gateway(s)")
        for gateway_id, gateway in gateways.items():
            print(f"\n  Gateway: {gateway.name}")
            print(f"  ID: {gateway_id}")
            print(f"  Last Seen: {gateway.last_seen or 'Never'}")

    except SensorPushError as e:
        print(f"\nCHECK FAILED: {e}")
        return 1

    print("\n" + "=" * 60)
    print("ALL CHECKS PASSED")
    print("=" * 60)
    return 0


async def _main(config: Config) -> int:
    api = SensorPushApi(
        email=config.email,
        password=config.password,
        base_url=config.api_base_url,
        request_timeout=config.request_timeout,
    )
    try:
        return await run_check(api)
    finally:
        await api.close()


def main() -> None:
    """Main entry point for sensorpush-check."""
    parser = argparse.ArgumentParser(description="Check SensorPush credentials and API access")
    parser.add_argument("--verbose", action="store_true", help="Show debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(asctime)s] %(levelname)s %(message)s",
    )

    config = Config()
    try:
        config.validate()
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    sys.exit(asyncio.run(_main(config)))


if __name__ == "__main__":
    main()
