"""
Web Mercator (slippy map) tile projection.

Pure functions, no I/O.
"""
from __future__ import annotations

import math

from .const import DEFAULT_TILE_ZOOM, MAX_LATITUDE, TILE_URL


def project(lat: float, lon: float, zoom: int) -> tuple[int, int]:
    """
    Map a WGS84 coordinate to the (x, y) index of the tile containing it.

    Defined for |lat| <= 85.0511 (the Web Mercator limit). The poles have no
    tile, so latitudes beyond the limit are clamped onto the edge rows.
    """
    lat = min(max(lat, -MAX_LATITUDE), MAX_LATITUDE)
    n = 2 ** int(zoom)
    lat_rad = math.radians(lat)
    x = math.floor((lon + 180.0) / 360.0 * n)
    y = math.floor((1.0 - math.log(math.tan(lat_rad) + 1.0 / math.cos(lat_rad)) / math.pi) / 2.0 * n)
    # Edges (lon=180, lat=±MAX_LATITUDE) land exactly on n
    return min(max(x, 0), n - 1), min(max(y, 0), n - 1)


def tile_url(zoom: int, x: int, y: int) -> str:
    return f"{TILE_URL}/{zoom}/{x}/{y}.png"


def tile_filename(zoom: int, x: int, y: int) -> str:
    return f"{zoom}_{x}_{y}.png"


def map_image_url(lat: float, lon: float, zoom: int = DEFAULT_TILE_ZOOM) -> str:
    """Remote URL of the tile under a coordinate."""
    x, y = project(lat, lon, zoom)
    return tile_url(zoom, x, y)
