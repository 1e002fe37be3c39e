"""Transport contract used by the protocol engine."""

from __future__ import annotations

import asyncio
from typing import Protocol


class Transport(Protocol):
    """Byte-level link to one connected device.

    notifications yields one complete frame per notification and None
    once the connection is gone.
    """

    @property
    def notifications(self) -> asyncio.Queue[bytes | None]:
        ...

    @property
    def is_connected(self) -> bool:
        ...

    async def write_command(self, data: bytes) -> None:
        """Write one frame; raises BLEConnectionError on failure."""
        ...
