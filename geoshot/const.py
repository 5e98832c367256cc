DOMAIN = "geoshot"
VERSION = "0.3.0"

# Providers require a descriptive client identifier or they throttle/block requests
USER_AGENT = f"geoshot/{VERSION} (+https://github.com/geoshot/geoshot)"

GEOCODING_API_URL = "https://nominatim.openstreetmap.org/reverse"
GEOCODING_DETAIL_ZOOM = 18          # Nominatim detail level (18 = building)
WEATHER_API_URL = "https://api.open-meteo.com/v1/forecast"
TILE_URL = "https://tile.openstreetmap.org"

REQUEST_TIMEOUT = 10                # seconds per HTTP request
REQUEST_ATTEMPTS = 1                # external providers are rate limited; never retry

# Fallback labels
UNKNOWN_LOCATION = "Unknown Location"
UNKNOWN_WEATHER = "Unknown"

# Open-Meteo WMO weather code -> label. Code 0 alone is clear sky; any other
# code takes the first band whose inclusive upper bound covers it
WEATHER_CLEAR = "Clear"
WEATHER_CODE_BANDS: tuple[tuple[int, str], ...] = (
    (3, "Partly Cloudy"),
    (49, "Foggy"),
    (59, "Drizzle"),
    (69, "Rain"),
    (79, "Snow"),
    (84, "Showers"),
    (99, "Thunderstorm"),
)

# Location permission statuses reported by the platform
PERMISSION_GRANTED = "granted"
PERMISSION_DENIED = "denied"
PERMISSION_UNKNOWN = "unknown"

# Magnetometer
MAGNETOMETER_TIMEOUT = 1.0          # seconds to wait for a single sample
MAGNETOMETER_INTERVAL = 1.0         # live stream sampling period

# Map tiles
DEFAULT_TILE_ZOOM = 15
MAX_TILE_ZOOM = 19
MAX_LATITUDE = 85.05112878          # Web Mercator limit
MAX_CACHED_TILES = 500              # LRU bound on files in the tile cache directory

# Live stream intervals (seconds)
FULL_UPDATE_INTERVAL = 15           # address, weather, tile
POSITION_INTERVAL = 1               # position watch cadence
PERMISSION_POLL_INTERVAL = 2        # permission re-check while not live

# Options keys
CONF_FULL_UPDATE_INTERVAL = "full_update_interval"
CONF_TILE_ZOOM = "tile_zoom"
CONF_USER_AGENT = "user_agent"
CONF_CACHE_DIR = "cache_dir"
CONF_MAX_CACHED_TILES = "max_cached_tiles"
CONF_PERMISSION_POLL_INTERVAL = "permission_poll_interval"
