"""
Live geo stream for the camera overlay.

Responsibilities:
- Own the position and magnetometer subscriptions for one overlay session.
- Gate expensive work (address, weather, map tile) behind a freshness
  interval; cheap fields (position, speed, altitude, magnetic field) are
  merged into the last snapshot on every tick.
- Serialize full refreshes and drop results that arrive after the stream
  was stopped (generation counter).
- Poll location permission while not live and start once it is granted.
- Push LiveGeoData snapshots to listeners as soon as anything changes.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from typing import Any, Callable, Coroutine

from .config import validate_options
from .const import (
    CONF_CACHE_DIR,
    CONF_FULL_UPDATE_INTERVAL,
    CONF_MAX_CACHED_TILES,
    CONF_PERMISSION_POLL_INTERVAL,
    CONF_TILE_ZOOM,
    CONF_USER_AGENT,
    MAGNETOMETER_INTERVAL,
    PERMISSION_GRANTED,
    PERMISSION_UNKNOWN,
    POSITION_INTERVAL,
)
from .live_stream_data import LiveGeoData, StreamState
from .models import (
    GeoData,
    Listener,
    LocationProvider,
    Magnetometer,
    MagnetometerSample,
    Position,
    Subscription,
    now_iso,
)
from .request_coalescer import RequestCoalescer
from .snapshot import SnapshotAssembler, plus_code
from .tile_cache import TileCache

_LOGGER = logging.getLogger(__name__)

_ACTIVE_STATES = (StreamState.STARTING, StreamState.LIVE)


class LiveGeoStream:
    """
    Continuously updated GeoData for one overlay session.

    Created by the screen on mount, shut down on unmount.  Readers use
    `data` (a LiveGeoData) or register a listener.
    """

    def __init__(
        self,
        location: LocationProvider,
        magnetometer: Magnetometer,
        *,
        assembler: SnapshotAssembler | None = None,
        tile_cache: TileCache | None = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the stream from validated options."""
        self._options = validate_options(options)
        self.location = location
        self.magnetometer = magnetometer
        self.assembler = assembler or SnapshotAssembler(
            location, magnetometer, user_agent=self._options[CONF_USER_AGENT]
        )
        self._owns_tile_cache = tile_cache is None
        self.tile_cache = tile_cache or TileCache(
            self._options[CONF_CACHE_DIR],
            user_agent=self._options[CONF_USER_AGENT],
            max_tiles=self._options[CONF_MAX_CACHED_TILES],
        )

        self._full_update_interval: float = self._options[CONF_FULL_UPDATE_INTERVAL]
        self._tile_zoom: int = self._options[CONF_TILE_ZOOM]
        self._permission_poll_interval: float = self._options[CONF_PERMISSION_POLL_INTERVAL]

        self.state = StreamState.IDLE
        self.permission_status = PERMISSION_UNKNOWN
        self._enabled = False

        # Bumped on every start/stop; async results from older generations are dropped
        self._generation = 0
        # Monotonic time the last full refresh was started; 0 so the first tick is due
        self._last_full_update: float = 0.0
        # Incremented on every partial merge; a landing refresh keeps fields merged after it started
        self._position_merges = 0
        self._magnetometer_merges = 0

        self._location_sub: Subscription | None = None
        self._magnetometer_sub: Subscription | None = None
        self._refresh = RequestCoalescer()
        self._tasks: set[asyncio.Task] = set()
        self._permission_task: asyncio.Task | None = None
        self._listeners: list[Listener] = []

        self.data = LiveGeoData()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def async_add_listener(self, update_callback: Listener) -> Callable[[], None]:
        """Register a callback fired on every new snapshot; returns its remover."""
        self._listeners.append(update_callback)

        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    def async_set_updated_data(self, data: LiveGeoData) -> None:
        """Swap in a new snapshot and notify listeners."""
        self.data = data
        for update_callback in list(self._listeners):
            try:
                update_callback()
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Error in live geo stream listener")

    # ------------------------------------------------------------------
    # Enable / disable
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def async_set_enabled(self, enabled: bool) -> None:
        """Start or stop live updates."""
        self._enabled = enabled
        self._ensure_permission_poller()
        if enabled:
            await self._async_evaluate()
        else:
            self.stop()

    def stop(self) -> None:
        """Unsubscribe from position and magnetometer updates immediately."""
        self._generation += 1
        for subscription in (self._location_sub, self._magnetometer_sub):
            if subscription is not None:
                subscription.remove()
        self._location_sub = None
        self._magnetometer_sub = None

        if self.state in _ACTIVE_STATES:
            _LOGGER.debug("Stopping live geo updates")
            self.state = StreamState.STOPPED
        if self.data.loading:
            self.async_set_updated_data(dataclasses.replace(self.data, loading=False))

    async def _async_evaluate(self) -> None:
        """Enter `starting` if enabled, not already running and permission is granted."""
        if not self._enabled or self.state in _ACTIVE_STATES:
            return

        await self._async_check_permission()
        if self.permission_status != PERMISSION_GRANTED:
            _LOGGER.debug("Location permission not granted yet (%s)", self.permission_status)
            if self.data.loading:
                self.async_set_updated_data(dataclasses.replace(self.data, loading=False))
            return

        # State may have changed while the permission query was suspended
        if not self._enabled or self.state in _ACTIVE_STATES:
            return
        await self._async_start()

    async def _async_start(self) -> None:
        """Run the first full refresh, then subscribe to live updates."""
        self._generation += 1
        generation = self._generation
        self.state = StreamState.STARTING
        _LOGGER.debug("Starting live geo updates")
        self.async_set_updated_data(dataclasses.replace(self.data, loading=True))

        self._last_full_update = time.monotonic()
        await self._refresh.run(
            self._refresh_key(generation), lambda: self._async_full_refresh(generation)
        )
        if not self._is_current(generation):
            return
        self.async_set_updated_data(dataclasses.replace(self.data, loading=False))

        try:
            location_sub = await self.location.watch_position(
                self._handle_position,
                time_interval=POSITION_INTERVAL,
                distance_interval=0,
            )
            if not self._is_current(generation):
                location_sub.remove()
                return
            self._location_sub = location_sub
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Failed to subscribe to position updates: %s", exc)
            # Back to idle; the permission poller re-evaluates on its next tick
            self.stop()
            self.state = StreamState.IDLE
            return

        self.state = StreamState.LIVE
        await self._async_subscribe_magnetometer(generation)

    async def _async_subscribe_magnetometer(self, generation: int) -> None:
        """Subscribe to continuous magnetometer samples when the sensor exists."""
        try:
            available = await self.magnetometer.is_available()
            if not available or not self._is_current(generation):
                return
            self.magnetometer.set_update_interval(MAGNETOMETER_INTERVAL)
            self._magnetometer_sub = self.magnetometer.add_listener(self._handle_magnetometer)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Magnetometer updates unavailable: %s", exc)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def _handle_position(self, position: Position) -> None:
        """Position watch callback: full refresh when stale, partial merge otherwise."""
        generation = self._generation
        if not self._is_current(generation):
            return

        now = time.monotonic()
        if self._full_refresh_due(now):
            self._last_full_update = now
            self._create_task(
                self._refresh.run(
                    self._refresh_key(generation),
                    lambda: self._async_full_refresh(generation),
                )
            )
            return

        current = self.data.data
        if current is None:
            return
        merged = dataclasses.replace(
            current,
            latitude=position.latitude,
            longitude=position.longitude,
            altitude=position.altitude,
            speed=position.speed,
            date_time=now_iso(),
        )
        self._position_merges += 1
        self.async_set_updated_data(dataclasses.replace(self.data, data=merged))

    def _handle_magnetometer(self, sample: MagnetometerSample) -> None:
        """Magnetometer callback: always overwrite only the magnetic field."""
        if not self._is_current(self._generation):
            return
        current = self.data.data
        if current is None:
            return
        merged = dataclasses.replace(current, magnetic_field=sample.magnitude)
        self._magnetometer_merges += 1
        self.async_set_updated_data(dataclasses.replace(self.data, data=merged))

    def _full_refresh_due(self, now: float) -> bool:
        if self._refresh.is_in_flight(self._refresh_key(self._generation)):
            return False
        if self.data.data is None:
            return True
        return now - self._last_full_update > self._full_update_interval

    async def _async_full_refresh(self, generation: int) -> None:
        """Re-assemble the snapshot and re-fetch the map tile."""
        position_merges = self._position_merges
        magnetometer_merges = self._magnetometer_merges
        try:
            snapshot = await self.assembler.async_assemble_snapshot()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Snapshot assembly failed: %s", exc)
            return

        if not self._is_current(generation):
            _LOGGER.debug("Discarding snapshot from stopped stream")
            return
        if snapshot is None:
            _LOGGER.warning("No location available; keeping last known snapshot")
            return
        snapshot = self._keep_newer_ticks(snapshot, position_merges, magnetometer_merges)
        self.async_set_updated_data(dataclasses.replace(self.data, data=snapshot))

        tile = await self.tile_cache.async_get_tile(
            snapshot.latitude, snapshot.longitude, self._tile_zoom
        )
        if not self._is_current(generation):
            return
        self.async_set_updated_data(dataclasses.replace(self.data, map_tile=tile))

    def _keep_newer_ticks(
        self, snapshot: GeoData, position_merges: int, magnetometer_merges: int
    ) -> GeoData:
        """Carry over cheap fields merged while the refresh was in flight."""
        current = self.data.data
        if current is None:
            return snapshot
        if self._position_merges != position_merges:
            snapshot = dataclasses.replace(
                snapshot,
                latitude=current.latitude,
                longitude=current.longitude,
                altitude=current.altitude,
                speed=current.speed,
                date_time=current.date_time,
                plus_code=plus_code(current.latitude, current.longitude),
            )
        if self._magnetometer_merges != magnetometer_merges:
            snapshot = dataclasses.replace(snapshot, magnetic_field=current.magnetic_field)
        return snapshot

    # ------------------------------------------------------------------
    # Permission polling
    # ------------------------------------------------------------------

    def _ensure_permission_poller(self) -> None:
        if self._permission_task is None or self._permission_task.done():
            self._permission_task = asyncio.ensure_future(self._async_poll_permission())

    async def _async_poll_permission(self) -> None:
        while True:
            await asyncio.sleep(self._permission_poll_interval)
            if self.state in _ACTIVE_STATES:
                continue
            try:
                if self._enabled:
                    await self._async_evaluate()
                else:
                    await self._async_check_permission()
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning("Permission poll failed: %s", exc)

    async def _async_check_permission(self) -> None:
        try:
            self.permission_status = await self.location.get_permission_status()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to query location permission: %s", exc)
            self.permission_status = PERMISSION_UNKNOWN

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self.state in _ACTIVE_STATES

    @staticmethod
    def _refresh_key(generation: int) -> tuple[str, int]:
        return ("full_refresh", generation)

    def _create_task(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def async_shutdown(self) -> None:
        """Clean up all resources owned by this stream."""
        self._enabled = False
        self.stop()
        tasks = list(self._tasks)
        if self._permission_task is not None:
            tasks.append(self._permission_task)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._permission_task = None
        await self._refresh.shutdown()
        if self._owns_tile_cache:
            await self.tile_cache.async_shutdown()
        self._listeners.clear()


async def create_live_geo_stream(
    enabled: bool,
    location: LocationProvider,
    magnetometer: Magnetometer,
    **kwargs: Any,
) -> LiveGeoStream:
    """Build a stream and apply the initial enabled flag."""
    stream = LiveGeoStream(location, magnetometer, **kwargs)
    await stream.async_set_enabled(enabled)
    return stream
