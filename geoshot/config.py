"""Options schema for geoshot live streams and tile caches."""
from __future__ import annotations

import logging
import os
from typing import Any

import voluptuous as vol

from .const import (
    CONF_CACHE_DIR,
    CONF_FULL_UPDATE_INTERVAL,
    CONF_MAX_CACHED_TILES,
    CONF_PERMISSION_POLL_INTERVAL,
    CONF_TILE_ZOOM,
    CONF_USER_AGENT,
    DEFAULT_TILE_ZOOM,
    DOMAIN,
    FULL_UPDATE_INTERVAL,
    MAX_CACHED_TILES,
    MAX_TILE_ZOOM,
    PERMISSION_POLL_INTERVAL,
    USER_AGENT,
)

_LOGGER = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".cache", DOMAIN, "tiles")

positive_seconds = vol.All(vol.Coerce(float), vol.Range(min=0.1))
# The tile provider rejects requests without a descriptive identifier
user_agent_validator = vol.All(str, vol.Length(min=3), vol.Match(r"^\S+"))

OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_FULL_UPDATE_INTERVAL, default=FULL_UPDATE_INTERVAL): positive_seconds,
        vol.Optional(CONF_TILE_ZOOM, default=DEFAULT_TILE_ZOOM): vol.All(
            vol.Coerce(int), vol.Range(min=0, max=MAX_TILE_ZOOM)
        ),
        vol.Optional(CONF_USER_AGENT, default=USER_AGENT): user_agent_validator,
        vol.Optional(CONF_CACHE_DIR, default=DEFAULT_CACHE_DIR): vol.All(str, vol.Length(min=1)),
        # None disables eviction
        vol.Optional(CONF_MAX_CACHED_TILES, default=MAX_CACHED_TILES): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=1))
        ),
        vol.Optional(CONF_PERMISSION_POLL_INTERVAL, default=PERMISSION_POLL_INTERVAL): positive_seconds,
    }
)


def validate_options(options: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Return a complete options dict with defaults filled in.

    Raises voluptuous.Invalid on unknown keys or out-of-range values.
    """
    validated = OPTIONS_SCHEMA(dict(options or {}))
    _LOGGER.debug("Using options: %s", validated)
    return validated
