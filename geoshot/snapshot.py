"""
Geo snapshot assembly for a single capture event.

Responsibilities:
- Gate on location permission and a single device position fix.
- Fan out reverse geocoding, weather and magnetometer reads concurrently.
- Merge everything into one GeoData, degrading each source independently.
"""
from __future__ import annotations

import asyncio
import logging

from .api.geocoding import fallback_address_result, reverse_geocode as _reverse_geocode_http
from .api.weather import UNKNOWN_WEATHER_RESULT, get_weather as _get_weather_http
from .const import MAGNETOMETER_TIMEOUT, PERMISSION_GRANTED, USER_AGENT
from .models import (
    AddressResult,
    GeoData,
    LocationProvider,
    Magnetometer,
    WeatherResult,
    now_iso,
)
from .sensors import read_magnetic_field

_LOGGER = logging.getLogger(__name__)


def plus_code(lat: float, lon: float) -> str:
    """Compact hemisphere-tagged coordinate code, e.g. '48.8584N 2.2945E'."""
    return (
        f"{abs(lat):.4f}{'N' if lat >= 0 else 'S'} "
        f"{abs(lon):.4f}{'E' if lon >= 0 else 'W'}"
    )


class SnapshotAssembler:
    """Builds GeoData snapshots from the device location and external sources."""

    def __init__(
        self,
        location: LocationProvider,
        magnetometer: Magnetometer,
        *,
        user_agent: str = USER_AGENT,
        magnetometer_timeout: float = MAGNETOMETER_TIMEOUT,
    ) -> None:
        self.location = location
        self.magnetometer = magnetometer
        self._user_agent = user_agent
        self._magnetometer_timeout = magnetometer_timeout

    async def async_assemble_snapshot(self) -> GeoData | None:
        """
        Return a snapshot for the current position, or None when no location
        is available (permission missing or position fix failed).
        """
        try:
            status = await self.location.get_permission_status()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to query location permission: %s", exc)
            return None
        if status != PERMISSION_GRANTED:
            _LOGGER.info("Location permission not granted (%s)", status)
            return None

        try:
            position = await self.location.get_current_position()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to get current position: %s", exc)
            return None

        lat, lon = position.latitude, position.longitude
        address, weather, magnetic_field = await asyncio.gather(
            self._reverse_geocode(lat, lon),
            self._get_weather(lat, lon),
            self._read_magnetic_field(),
            return_exceptions=True,
        )

        if isinstance(address, BaseException):
            _LOGGER.warning("Reverse geocoding raised: %s", address)
            address = fallback_address_result(lat, lon)
        if isinstance(weather, BaseException):
            _LOGGER.warning("Weather lookup raised: %s", weather)
            weather = UNKNOWN_WEATHER_RESULT
        if isinstance(magnetic_field, BaseException):
            _LOGGER.warning("Magnetometer read raised: %s", magnetic_field)
            magnetic_field = None

        # Stamped after fan-in: reflects assembly completion time
        return GeoData(
            latitude=lat,
            longitude=lon,
            altitude=position.altitude,
            speed=position.speed,
            address=address.full_address,
            place_name=address.place_name,
            plus_code=plus_code(lat, lon),
            date_time=now_iso(),
            temperature=weather.temperature,
            weather_condition=weather.condition,
            magnetic_field=magnetic_field,
        )

    # ------------------------------------------------------------------
    # Source delegates
    # ------------------------------------------------------------------

    async def _reverse_geocode(self, lat: float, lon: float) -> AddressResult:
        return await _reverse_geocode_http(lat, lon, user_agent=self._user_agent)

    async def _get_weather(self, lat: float, lon: float) -> WeatherResult:
        return await _get_weather_http(lat, lon, user_agent=self._user_agent)

    async def _read_magnetic_field(self) -> float | None:
        return await read_magnetic_field(self.magnetometer, timeout=self._magnetometer_timeout)


async def assemble_snapshot(
    location: LocationProvider, magnetometer: Magnetometer, *, user_agent: str = USER_AGENT
) -> GeoData | None:
    """One-shot snapshot for the capture flow."""
    return await SnapshotAssembler(location, magnetometer, user_agent=user_agent).async_assemble_snapshot()
