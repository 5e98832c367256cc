"""
Low-level HTTP request helper shared by the geocoding, weather and tile clients.
This module handles timeouts, optional retry on timeout and response decoding.
"""
import asyncio
import logging
import aiohttp

from .const import REQUEST_ATTEMPTS, REQUEST_TIMEOUT, USER_AGENT


_LOGGER = logging.getLogger(__name__)


class ApiResponseError(Exception):
    """Exception raised when a provider answers with a JSON error body."""
    def __init__(self, status: int, error_json: dict):
        self.status = status
        self.error_json = error_json
        super().__init__(f"API Error (HTTP {status}): {error_json}")


def build_headers(user_agent: str = USER_AGENT, accept: str = "application/json") -> dict:
    """Headers every provider request carries, including the client identifier."""
    return {"User-Agent": user_agent, "Accept": accept}


async def make_request(
    url: str,
    headers: dict,
    params: dict = None,
    response_type: str = "json",
    timeout: float = REQUEST_TIMEOUT,
    max_attempts: int = REQUEST_ATTEMPTS,
):
    """
    Make an HTTP GET request, retrying on timeout up to max_attempts times.

    Args:
        url: Target URL for the request
        headers: HTTP headers dictionary
        params: URL query parameters (optional)
        response_type: "json" to decode a JSON body, "bytes" for the raw body
        timeout: Base timeout in seconds (multiplied by attempt number for each retry)
        max_attempts: Maximum number of attempts

    Returns:
        Parsed JSON response or raw bytes

    Raises:
        asyncio.TimeoutError: If all attempts time out
        ApiResponseError: If the provider returns a JSON error body
        ValueError: On non-2xx status or unexpected content type
        aiohttp.ClientError: For other network errors
    """
    for attempt in range(max_attempts):
        try:
            # Session timeout grows with each attempt
            timeout_config = aiohttp.ClientTimeout(total=timeout * (attempt + 1))
            session = aiohttp.ClientSession(timeout=timeout_config)

            try:
                response = await session.get(url, headers=headers, params=params)
                return await _process_response(response, url, response_type)
            finally:
                await session.close()

        except (asyncio.TimeoutError, TimeoutError):
            if attempt < max_attempts - 1:
                continue
            _LOGGER.warning("Timeout on GET %s after %s attempts", url, max_attempts)
            raise

    return None


async def _process_response(response, url: str, response_type: str):
    """
    Decode a response or raise for error statuses.

    Raises:
        ApiResponseError: For JSON error bodies
        ValueError: For other error statuses or unexpected content types
    """
    content_type = response.headers.get("Content-Type", "")

    if 200 <= response.status < 300:
        if response_type == "bytes":
            return await response.read()
        if "json" in content_type:
            return await response.json()
        text = await response.text()
        _LOGGER.warning(
            "Unexpected content type in successful response: %s (status %s) from %s",
            content_type, response.status, url,
        )
        raise ValueError(f"Expected JSON but got {content_type}: {text[:200]}")

    if "json" in content_type:
        try:
            error_json = await response.json()
        except Exception as e:  # noqa: BLE001
            _LOGGER.error(
                "Failed to parse error response as JSON from %s: %s (status %s)",
                url, e, response.status,
            )
            raise ValueError(f"HTTP {response.status} from {url}") from e
        raise ApiResponseError(response.status, error_json)

    text = await response.text()
    _LOGGER.warning(
        "Received non-JSON error response from %s: status %s, content-type: %s, body preview: %s",
        url, response.status, content_type, text[:200],
    )
    raise ValueError(f"HTTP {response.status} with {content_type} from {url}")
