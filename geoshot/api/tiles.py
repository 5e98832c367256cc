"""
Map tile download from the OpenStreetMap tile server.

The tile usage policy requires a descriptive User-Agent; anonymous clients
get blocked.
"""
import logging

from geoshot.const import USER_AGENT
from geoshot.projection import tile_url
from geoshot.requests import build_headers, make_request

_LOGGER = logging.getLogger(__name__)


async def download_tile(zoom: int, x: int, y: int, user_agent: str = USER_AGENT) -> bytes:
    """
    Download the raw PNG bytes of one tile.

    Raises on any network error or non-2xx status; the tile cache decides
    how to degrade.

    Corresponding CURL command:
    curl -H 'User-Agent: <agent>' 'https://tile.openstreetmap.org/<z>/<x>/<y>.png'
    """
    url = tile_url(zoom, x, y)
    content = await make_request(
        url, build_headers(user_agent, accept="image/png"), response_type="bytes"
    )
    if not content:
        raise ValueError(f"Empty tile body from {url}")
    _LOGGER.debug("Downloaded tile %s (%s bytes)", url, len(content))
    return content
