"""
Domain models for geoshot.

Pure data classes plus the protocols describing the platform collaborators
(device location service and magnetometer). No HTTP or asyncio logic lives
here.
"""
from __future__ import annotations

import dataclasses
import math
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol


def now_iso() -> str:
    """UTC timestamp in ISO-8601 with millisecond precision and 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclasses.dataclass(frozen=True)
class Position:
    """Single device position fix."""

    latitude: float
    longitude: float
    altitude: float | None = None
    speed: float | None = None


@dataclasses.dataclass(frozen=True)
class MagnetometerSample:
    """Raw magnetometer reading in microtesla per axis."""

    x: float
    y: float
    z: float

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


@dataclasses.dataclass(frozen=True)
class AddressResult:
    full_address: str
    place_name: str


@dataclasses.dataclass(frozen=True)
class WeatherResult:
    temperature: float | None
    condition: str


# Field name -> key used by overlay consumers and persisted capture metadata
_DICT_KEYS = {
    "latitude": "latitude",
    "longitude": "longitude",
    "altitude": "altitude",
    "speed": "speed",
    "address": "address",
    "place_name": "placeName",
    "plus_code": "plusCode",
    "date_time": "dateTime",
    "temperature": "temperature",
    "weather_condition": "weatherCondition",
    "magnetic_field": "magneticField",
}


@dataclasses.dataclass(frozen=True)
class GeoData:
    """
    Snapshot of everything known about the device location at one moment.

    Always replace via dataclasses.replace(); never mutate in place.
    Only latitude/longitude are guaranteed; every other field degrades
    independently to None or a placeholder.
    """

    latitude: float
    longitude: float
    altitude: float | None
    speed: float | None
    address: str
    place_name: str
    plus_code: str
    date_time: str
    temperature: float | None
    weather_condition: str
    magnetic_field: float | None

    def to_dict(self) -> dict[str, Any]:
        return {key: getattr(self, field) for field, key in _DICT_KEYS.items()}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> GeoData:
        return cls(**{field: raw.get(key) for field, key in _DICT_KEYS.items()})


# ---------------------------------------------------------------------------
# Platform collaborators
# ---------------------------------------------------------------------------

class Subscription(Protocol):
    """Handle returned by a platform listener registration."""

    def remove(self) -> None:
        ...


class LocationProvider(Protocol):
    """Device location service (permissions, one-shot fix, continuous watch)."""

    async def get_permission_status(self) -> str:
        ...

    async def get_current_position(self) -> Position:
        ...

    async def watch_position(
        self,
        callback: Callable[[Position], None],
        *,
        time_interval: float,
        distance_interval: float,
    ) -> Subscription:
        ...


class Magnetometer(Protocol):
    """Hardware magnetometer."""

    async def is_available(self) -> bool:
        ...

    def set_update_interval(self, seconds: float) -> None:
        ...

    def add_listener(self, callback: Callable[[MagnetometerSample], None]) -> Subscription:
        ...


Listener = Callable[[], None]
CoroFactory = Callable[[], Awaitable[Any]]
