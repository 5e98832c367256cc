"""
Current weather from the Open-Meteo forecast API.

Responsible for:
- Fetching current temperature and WMO weather code for a coordinate
- Mapping the weather code onto a coarse human label
"""
import asyncio
import logging

import aiohttp

from geoshot.const import (
    UNKNOWN_WEATHER,
    USER_AGENT,
    WEATHER_API_URL,
    WEATHER_CLEAR,
    WEATHER_CODE_BANDS,
)
from geoshot.models import WeatherResult
from geoshot.requests import ApiResponseError, build_headers, make_request

_LOGGER = logging.getLogger(__name__)

UNKNOWN_WEATHER_RESULT = WeatherResult(temperature=None, condition=UNKNOWN_WEATHER)


def weather_condition(code) -> str:
    """Label for a WMO weather code; first band whose upper bound covers it wins."""
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return UNKNOWN_WEATHER
    if code == 0:
        return WEATHER_CLEAR
    for upper_bound, label in WEATHER_CODE_BANDS:
        if code <= upper_bound:
            return label
    return UNKNOWN_WEATHER


async def get_weather(lat: float, lon: float, user_agent: str = USER_AGENT) -> WeatherResult:
    """
    Fetch current conditions for (lat, lon). Never raises.

    Corresponding CURL command:
    curl 'https://api.open-meteo.com/v1/forecast?latitude=<lat>&longitude=<lon>&current_weather=true'
    """
    params = {"latitude": lat, "longitude": lon, "current_weather": "true"}
    try:
        raw_json = await make_request(WEATHER_API_URL, build_headers(user_agent), params=params)
    except ApiResponseError as e:
        _LOGGER.warning("Weather API error for (%.5f, %.5f): %s", lat, lon, e)
        return UNKNOWN_WEATHER_RESULT
    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.warning("Timeout fetching weather for (%.5f, %.5f)", lat, lon)
        return UNKNOWN_WEATHER_RESULT
    except (aiohttp.ClientError, ValueError) as e:
        _LOGGER.warning("Weather request failed for (%.5f, %.5f): %s", lat, lon, e)
        return UNKNOWN_WEATHER_RESULT
    except Exception as e:  # noqa: BLE001
        _LOGGER.error("Unexpected error fetching weather for (%.5f, %.5f): %s", lat, lon, e)
        return UNKNOWN_WEATHER_RESULT

    current = raw_json.get("current_weather") if isinstance(raw_json, dict) else None
    if not isinstance(current, dict):
        _LOGGER.warning("Unexpected weather response for (%.5f, %.5f): %s", lat, lon, raw_json)
        return UNKNOWN_WEATHER_RESULT

    return WeatherResult(
        temperature=current.get("temperature"),
        condition=weather_condition(current.get("weathercode")),
    )
