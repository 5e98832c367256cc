"""
Display strings for the geo overlay.

Missing values render as placeholders so the overlay never shows blanks.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone, tzinfo

from .models import GeoData


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_date_time(iso_string: str, tz: tzinfo | None = None) -> str:
    """'Wednesday, 19/11/2025 03:24 AM GMT +05:30' in tz (local time when None)."""
    moment = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(tz)

    offset_minutes = int(moment.utcoffset().total_seconds() // 60)
    sign = "+" if offset_minutes >= 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return f"{moment.strftime('%A, %d/%m/%Y %I:%M %p')} GMT {sign}{hours:02d}:{minutes:02d}"


def format_overlay_fields(geo: GeoData, tz: tzinfo | None = None) -> dict[str, str]:
    """Every text line of the overlay, keyed by field."""
    speed_kmh = _round_half_up(geo.speed * 3.6) if geo.speed else 0
    altitude = _round_half_up(geo.altitude) if geo.altitude else 0
    magnetic = _round_half_up(geo.magnetic_field) if geo.magnetic_field else 0
    temperature = "--" if geo.temperature is None else str(_round_half_up(geo.temperature))

    return {
        "place_name": geo.place_name,
        "address": f"{geo.plus_code}, {geo.address}",
        "coordinates": f"Lat {geo.latitude:.6f}° Long {geo.longitude:.6f}°",
        "date_time": format_date_time(geo.date_time, tz),
        "speed": f"{speed_kmh} km/h",
        "altitude": f"{altitude} m",
        "magnetic_field": f"{magnetic} µT",
        "weather": f"{temperature}°C {geo.weather_condition}",
    }
