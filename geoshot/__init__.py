"""
geoshot — geo metadata acquisition and map tile caching for camera overlays.

Entry points:
    assemble_snapshot(location, magnetometer)   one-shot GeoData for a capture
    get_tile(lat, lon, zoom)                    cached map tile path or URL
    create_live_geo_stream(enabled, ...)        throttled live overlay stream
"""
from .const import VERSION
from .live_stream import LiveGeoStream, create_live_geo_stream
from .live_stream_data import LiveGeoData, StreamState
from .models import GeoData, MagnetometerSample, Position
from .snapshot import SnapshotAssembler, assemble_snapshot
from .tile_cache import TileCache, get_tile

__version__ = VERSION

__all__ = [
    "GeoData",
    "LiveGeoData",
    "LiveGeoStream",
    "MagnetometerSample",
    "Position",
    "SnapshotAssembler",
    "StreamState",
    "TileCache",
    "assemble_snapshot",
    "create_live_geo_stream",
    "get_tile",
]
