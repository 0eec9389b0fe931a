"""
Sensor Manager
==============

This is the BRAIN of the whole operation!

WHAT IT DOES:
------------
1. Discovers the sensors on the SensorPush account and decides which to track
2. Keeps a cache of sensor metadata (name, battery voltage, active flag)
3. Schedules automatic polling (every 60 seconds at most)
4. Feeds every fresh sample to the reconciler and tells the host about it

THE POLLING CYCLE:
-----------------
SensorPush allows one request per minute, so every tick makes exactly ONE
call:

    tick 1..9   -> POST /samples          (latest reading per tracked sensor)
    tick 10     -> POST /devices/sensors  (refresh metadata, e.g. battery)
    tick 11..19 -> POST /samples
    tick 20     -> POST /devices/sensors
    ...

A failed tick is logged and forgotten. The next tick runs as usual.

STATES:
------
    IDLE --discover_devices()--> ACTIVE --stop_polling()--> STOPPED
                                   ^  |
                                   +--+  discover again = restart, counter back to 0
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from sensorpush_bridge.exceptions import SensorPushError
from sensorpush_bridge.models import (
    DiscoveryResult,
    PollingState,
    PollingStatusResponse,
    Sensor,
    SensorLiveState,
)
from sensorpush_bridge.services.reconciler import SensorStateTracker
from sensorpush_bridge.utils.validation import (
    DEFAULT_POLLING_INTERVAL_MS,
    clamp_polling_interval,
)

logger = logging.getLogger(__name__)


class SensorManager:
    """
    The central manager for all SensorPush sensors.

    HOW TO USE:
    ----------
    manager = SensorManager(
        api=SensorPushApi(email, password),
        polling_interval=60000,
        on_sensor_updated=handle_update,   # async def handle_update(sensor_id, state)
    )

    result = await manager.discover_devices()   # also starts polling
    ...
    await manager.shutdown()
    """

    # Every Nth tick refreshes metadata instead of fetching samples
    METADATA_REFRESH_CYCLES = 10

    JOB_ID = "sensorpush_poll"

    def __init__(
        self,
        api,
        polling_interval: Optional[int] = DEFAULT_POLLING_INTERVAL_MS,
        on_discovery_complete: Optional[Callable] = None,
        on_sensor_updated: Optional[Callable] = None,
        on_sensor_removed: Optional[Callable] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        """
        Set up the manager.

        Args:
            api: The SensorPushApi to talk to
            polling_interval: Milliseconds between ticks (clamped to >= 60000)
            on_discovery_complete: Callback(list[Sensor]) after each discovery
            on_sensor_updated: Callback(sensor_id, SensorLiveState) after each update
            on_sensor_removed: Callback(sensor_id) when a sensor stops being tracked
            scheduler: Scheduler to use (a new AsyncIOScheduler by default)
        """
        self.api = api
        self.polling_interval = clamp_polling_interval(polling_interval)

        self.on_discovery_complete = on_discovery_complete
        self.on_sensor_updated = on_sensor_updated
        self.on_sensor_removed = on_sensor_removed

        self.tracker = SensorStateTracker()
        self._metadata: dict[str, Sensor] = {}

        self.state = PollingState.IDLE
        self.cycle_count = 0
        # Bumped on every start/stop; results of calls started under an
        # older generation are dropped
        self._generation = 0

        self.last_poll_at: Optional[datetime] = None
        self.last_metadata_refresh_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

        # This is the scheduler - it runs the poll job on a timer
        self.scheduler = scheduler or AsyncIOScheduler()

    @property
    def metadata(self) -> dict[str, Sensor]:
        """Current metadata cache (replaced wholesale, never edited in place)."""
        return self._metadata

    # =========================================================================
    # DISCOVERY
    # =========================================================================

    async def discover_devices(self) -> DiscoveryResult:
        """
        Log in, fetch all sensors, update the tracked set and (re)start polling.

        Returns:
            DiscoveryResult with status "success" or "error"
        """
        logger.info("Discovering SensorPush devices...")

        try:
            await self.api.authenticate()
            sensors = await self.api.list_sensors()
        except SensorPushError as e:
            logger.error(f"Failed to discover devices: {e}")
            self.last_error = str(e)
            return DiscoveryResult(status="error", error_message=str(e))
        except Exception as e:
            logger.error(f"Failed to discover devices: {e}", exc_info=True)
            self.last_error = str(e)
            return DiscoveryResult(status="error", error_message=str(e))

        self._metadata = sensors
        logger.info(f"Found {len(sensors)} sensor(s)")

        added, removed = self.tracker.sync_tracked(sensors)
        if removed:
            logger.info(f"Removing {len(removed)} inactive sensor(s)")
        for sensor_id in removed:
            await self._notify(self.on_sensor_removed, sensor_id)

        valid_sensors = [sensor for sensor in sensors.values() if sensor.is_valid]
        await self._notify(self.on_discovery_complete, valid_sensors)

        self.start_polling()

        return DiscoveryResult(
            status="success",
            sensors_found=len(sensors),
            tracked=len(self.tracker),
            added=added,
            removed=removed,
        )

    # =========================================================================
    # SCHEDULER CONTROL
    # =========================================================================

    def start_polling(self):
        """
        Start (or restart) the polling job.

        Restarting replaces the existing job and resets the cycle counter.
        Must be called with an asyncio event loop running.
        """
        self._generation += 1
        self.cycle_count = 0

        self.scheduler.add_job(
            self.poll,
            trigger=IntervalTrigger(seconds=self.polling_interval / 1000),
            id=self.JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()

        self.state = PollingState.ACTIVE

        logger.info(f"Started polling every {self.polling_interval / 1000:g} seconds")
        logger.info(
            f"Metadata refresh every {self.METADATA_REFRESH_CYCLES} cycles "
            f"(~{self.METADATA_REFRESH_CYCLES * self.polling_interval / 60000:g} minutes)"
        )

    def stop_polling(self):
        """Remove the polling job. In-flight results will be discarded."""
        self._generation += 1
        if self.scheduler.get_job(self.JOB_ID):
            self.scheduler.remove_job(self.JOB_ID)
        self.state = PollingState.STOPPED
        logger.info("Stopped polling")

    async def shutdown(self):
        """Stop polling, stop the scheduler, and close the API client."""
        self.stop_polling()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        await self.api.close()

    # =========================================================================
    # POLLING JOBS
    # =========================================================================

    async def poll(self):
        """One tick: every 10th cycle refreshes metadata, the rest fetch samples."""
        self.cycle_count += 1

        if self.cycle_count % self.METADATA_REFRESH_CYCLES == 0:
            logger.debug(f"Cycle {self.cycle_count}: refreshing metadata")
            await self.refresh_metadata()
        else:
            logger.debug(f"Cycle {self.cycle_count}: updating sensor data")
            await self.update_sensor_data()

    async def refresh_metadata(self):
        """Re-fetch the full sensor list and swap the cache."""
        generation = self._generation
        try:
            logger.debug("Refreshing sensor metadata cache")
            sensors = await self.api.list_sensors()
        except SensorPushError as e:
            logger.error(f"Failed to refresh sensor metadata: {e}")
            self.last_error = str(e)
            return
        except Exception as e:
            logger.error(f"Failed to refresh sensor metadata: {e}", exc_info=True)
            self.last_error = str(e)
            return

        if not self._is_current(generation):
            logger.debug("Polling stopped while refreshing metadata, discarding result")
            return

        self._metadata = sensors
        self.last_metadata_refresh_at = datetime.now(timezone.utc)

    async def update_sensor_data(self):
        """Fetch the latest sample for every tracked sensor and apply it."""
        sensor_ids = self.tracker.tracked_ids
        if not sensor_ids:
            return

        generation = self._generation
        try:
            samples = await self.api.list_samples(sensor_ids, limit=1)
        except SensorPushError as e:
            logger.error(f"Failed to update sensor data: {e}")
            self.last_error = str(e)
            return
        except Exception as e:
            logger.error(f"Failed to update sensor data: {e}", exc_info=True)
            self.last_error = str(e)
            return

        if not self._is_current(generation):
            logger.debug("Polling stopped while fetching samples, discarding result")
            return

        updated = self.tracker.apply_samples(samples, self._metadata)
        self.last_poll_at = datetime.now(timezone.utc)

        # Snapshot first: a discovery may prune sensors while callbacks are awaited
        states = [(sensor_id, self.tracker.get(sensor_id)) for sensor_id in updated]
        for sensor_id, state in states:
            await self._notify(self.on_sensor_updated, sensor_id, state)

    # =========================================================================
    # READING STATE
    # =========================================================================

    def get_sensor_state(self, sensor_id: str) -> Optional[SensorLiveState]:
        return self.tracker.get(sensor_id)

    def get_all_sensor_states(self) -> list[SensorLiveState]:
        return self.tracker.all()

    def status(self) -> PollingStatusResponse:
        """Snapshot of the scheduler for diagnostics."""
        return PollingStatusResponse(
            state=self.state,
            cycle_count=self.cycle_count,
            interval_ms=self.polling_interval,
            metadata_refresh_cycles=self.METADATA_REFRESH_CYCLES,
            tracked_sensors=len(self.tracker),
            last_poll_at=self.last_poll_at,
            last_metadata_refresh_at=self.last_metadata_refresh_at,
            last_error=self.last_error,
        )

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _is_current(self, generation: int) -> bool:
        return self.state == PollingState.ACTIVE and self._generation == generation

    async def _notify(self, callback: Optional[Callable], *args: Any):
        """Call a host callback (sync or async). Its failures never stop a tick."""
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Sensor callback {getattr(callback, '__name__', callback)} failed: {e}", exc_info=True)
