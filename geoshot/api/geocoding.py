"""
Reverse geocoding via the OpenStreetMap Nominatim API.

Responsible for:
- Turning a coordinate into a full address and a short place label
- Falling back to an offline coordinate string when the service is unreachable
"""
import asyncio
import logging

import aiohttp

from geoshot.const import GEOCODING_API_URL, GEOCODING_DETAIL_ZOOM, UNKNOWN_LOCATION, USER_AGENT
from geoshot.models import AddressResult
from geoshot.requests import ApiResponseError, build_headers, make_request

_LOGGER = logging.getLogger(__name__)

# Address components tried in order for the short place label
PLACE_NAME_KEYS = ("city", "town", "village", "county")


def fallback_address(lat: float, lon: float) -> str:
    """Offline address text for a coordinate."""
    return f"{lat:.6f}, {lon:.6f}"


def fallback_address_result(lat: float, lon: float) -> AddressResult:
    return AddressResult(full_address=fallback_address(lat, lon), place_name=UNKNOWN_LOCATION)


def parse_address(lat: float, lon: float, raw_json: dict) -> AddressResult:
    """Pick display name and place label out of a Nominatim response."""
    address = raw_json.get("address") or {}
    place_name = next(
        (address[key] for key in PLACE_NAME_KEYS if address.get(key)),
        UNKNOWN_LOCATION,
    )
    full_address = raw_json.get("display_name") or fallback_address(lat, lon)
    return AddressResult(full_address=full_address, place_name=place_name)


async def reverse_geocode(lat: float, lon: float, user_agent: str = USER_AGENT) -> AddressResult:
    """
    Resolve (lat, lon) to an address. Never raises.

    Corresponding CURL command:
    curl -H 'User-Agent: <agent>' \
      'https://nominatim.openstreetmap.org/reverse?format=json&lat=<lat>&lon=<lon>&zoom=18'
    """
    params = {"format": "json", "lat": lat, "lon": lon, "zoom": GEOCODING_DETAIL_ZOOM}
    try:
        raw_json = await make_request(GEOCODING_API_URL, build_headers(user_agent), params=params)
    except ApiResponseError as e:
        _LOGGER.warning("Reverse geocoding error for (%.6f, %.6f): %s", lat, lon, e)
        return fallback_address_result(lat, lon)
    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.warning("Timeout while reverse geocoding (%.6f, %.6f)", lat, lon)
        return fallback_address_result(lat, lon)
    except (aiohttp.ClientError, ValueError) as e:
        _LOGGER.warning("Reverse geocoding request failed for (%.6f, %.6f): %s", lat, lon, e)
        return fallback_address_result(lat, lon)
    except Exception as e:  # noqa: BLE001
        _LOGGER.error("Unexpected error reverse geocoding (%.6f, %.6f): %s", lat, lon, e)
        return fallback_address_result(lat, lon)

    if not isinstance(raw_json, dict):
        _LOGGER.warning("Unexpected reverse geocoding response: %s", raw_json)
        return fallback_address_result(lat, lon)

    return parse_address(lat, lon, raw_json)
