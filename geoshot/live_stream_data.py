"""
LiveGeoData — immutable view of a live geo stream shared with the overlay.

This is a pure data module with no network dependencies.
"""
from __future__ import annotations

import dataclasses
import enum

from .models import GeoData


class StreamState(enum.Enum):
    IDLE = "idle"
    STARTING = "starting"
    LIVE = "live"
    STOPPED = "stopped"


@dataclasses.dataclass(frozen=True)
class LiveGeoData:
    """
    Copy-on-write snapshot of what the overlay renders.

    Always replace via dataclasses.replace(); never mutate in place.
    """

    # Last known snapshot; None until the first successful full refresh
    data: GeoData | None = None

    # Local tile path or remote tile URL
    map_tile: str | None = None

    # True while the first full refresh is in progress
    loading: bool = True
