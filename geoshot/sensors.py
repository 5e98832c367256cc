"""One-shot magnetometer read with a hard timeout."""
from __future__ import annotations

import asyncio
import logging

from .const import MAGNETOMETER_TIMEOUT
from .models import Magnetometer, MagnetometerSample

_LOGGER = logging.getLogger(__name__)


async def read_magnetic_field(
    magnetometer: Magnetometer, timeout: float = MAGNETOMETER_TIMEOUT
) -> float | None:
    """
    Return the magnitude (µT) of the next magnetometer sample.

    Returns None when the sensor is unavailable or no sample arrives within
    timeout.  The listener is removed exactly once on every path.
    """
    try:
        available = await magnetometer.is_available()
    except Exception as exc:  # noqa: BLE001
        _LOGGER.warning("Magnetometer availability check failed: %s", exc)
        return None
    if not available:
        _LOGGER.debug("Magnetometer not available")
        return None

    fut: asyncio.Future = asyncio.get_running_loop().create_future()

    def _on_sample(sample: MagnetometerSample) -> None:
        # First sample wins; later ones (or ones after timeout) are ignored
        if not fut.done():
            fut.set_result(sample.magnitude)

    try:
        subscription = magnetometer.add_listener(_on_sample)
    except Exception as exc:  # noqa: BLE001
        _LOGGER.warning("Failed to subscribe to magnetometer: %s", exc)
        return None

    try:
        return await asyncio.wait_for(fut, timeout)
    except (asyncio.TimeoutError, TimeoutError):
        _LOGGER.debug("No magnetometer sample within %.1f s", timeout)
        return None
    finally:
        subscription.remove()
