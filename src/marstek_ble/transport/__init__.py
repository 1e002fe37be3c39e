"""BLE transport."""

from .base import Transport
from .connection import BLEConnection

__all__ = ["BLEConnection", "Transport"]
