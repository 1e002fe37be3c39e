"""Scanning for Marstek devices."""

from __future__ import annotations

import logging

from bleak import BleakScanner
from bleak.backends.device import BLEDevice

from .protocol import DEVICE_NAME_PREFIX

_LOGGER = logging.getLogger(__name__)


async def discover_devices(
        timeout: float = 10.0,
        name_prefix: str = DEVICE_NAME_PREFIX,
) -> list[BLEDevice]:
    """Scan for Marstek devices.

    Args:
        timeout: Scan duration in seconds (default: 10)
        name_prefix: Advertised name prefix to match (default: "MST")

    Returns:
        Matching devices, in discovery order
    """
    _LOGGER.debug("Scanning for %s* devices (%.1fs)", name_prefix, timeout)
    devices = await BleakScanner.discover(timeout=timeout)
    found = [d for d in devices if d.name and d.name.startswith(name_prefix)]
    _LOGGER.info("Found %d device(s)", len(found))
    return found
