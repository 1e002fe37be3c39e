"""Protocol engine tying the mailbox, router, dispatcher and OTA together."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..exceptions import ProtocolError
from ..models.config import DispatchConfig, OTAConfig
from ..models.enums import FrameFormat
from ..models.ota import OTAResult
from ..transport.base import Transport
from .dispatcher import CommandDispatcher, PendingCommand, ResponseMatcher
from .mailbox import AckMailbox, ActivationWaiter
from .ota import OTAUpdater, ProgressCallback
from .router import NotificationRouter, ResponseHandler

_LOGGER = logging.getLogger(__name__)


class ProtocolEngine:
    """Protocol state for one device session.

    Owns the acknowledgment mailbox, the activation waiter, the command
    dispatcher and the notification router. The router runs as a task
    consuming the transport's notification queue.

    The transport is used by one dispatch path at a time: generic
    commands are refused while a firmware update runs.
    """

    def __init__(
            self,
            transport: Transport,
            ota_config: OTAConfig | None = None,
            dispatch_config: DispatchConfig | None = None,
            response_handler: ResponseHandler | None = None,
            response_matcher: ResponseMatcher | None = None,
    ):
        """Initialize protocol engine.

        Args:
            transport: Connected byte transport
            ota_config: Firmware update timeouts (default: OTAConfig())
            dispatch_config: Generic command retry policy (default: DispatchConfig())
            response_handler: Receives (response, command name) for generic commands
            response_matcher: Rule deciding which notification answers a command
        """
        self._transport = transport
        self.ota_config = ota_config or OTAConfig()

        self.mailbox = AckMailbox()
        self.activation = ActivationWaiter()
        self.dispatcher = CommandDispatcher(
            transport.write_command,
            dispatch_config,
            response_matcher,
        )
        self.router = NotificationRouter(
            self.mailbox,
            self.activation,
            self.dispatcher,
            response_handler,
        )

        self._router_task: asyncio.Task[None] | None = None
        self._ota: OTAUpdater | None = None

    async def __aenter__(self) -> ProtocolEngine:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    @property
    def is_running(self) -> bool:
        return self._router_task is not None and not self._router_task.done()

    @property
    def ota_in_progress(self) -> bool:
        return self._ota is not None and self._ota.state.is_active

    async def start(self) -> None:
        """Start routing notifications."""
        if self.is_running:
            return
        self._drain_notifications()
        self._router_task = asyncio.create_task(
            self.router.run(self._transport.notifications)
        )
        _LOGGER.debug("Notification router started")

    async def stop(self) -> None:
        """Stop routing, drop any outstanding generic command and fail pending waits."""
        self.dispatcher.cancel()
        self.mailbox.abort("engine stopped")
        self.activation.abort("engine stopped")
        task, self._router_task = self._router_task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        _LOGGER.debug("Notification router stopped")

    def _drain_notifications(self) -> None:
        """Discard frames and close markers left over from a previous connection."""
        channel = self._transport.notifications
        dropped = 0
        while True:
            try:
                channel.get_nowait()
            except asyncio.QueueEmpty:
                break
            dropped += 1
        if dropped:
            _LOGGER.debug("Discarded %d stale notification(s)", dropped)

    async def send_command(
            self,
            cmd: int,
            payload: bytes | None = None,
            *,
            name: str | None = None,
            frame_format: FrameFormat = FrameFormat.STANDARD,
            max_attempts: int | None = None,
    ) -> PendingCommand:
        """Send a generic command (fire-and-forget with time-based retry).

        Raises:
            ProtocolError: If a firmware update is running
        """
        if self.ota_in_progress:
            raise ProtocolError("Cannot send commands while an OTA update is in progress")
        return await self.dispatcher.send(
            cmd,
            payload,
            name=name,
            frame_format=frame_format,
            max_attempts=max_attempts,
        )

    async def update_firmware(
            self,
            firmware: bytes,
            progress_callback: ProgressCallback | None = None,
    ) -> OTAResult:
        """Run a complete firmware update.

        Args:
            firmware: Complete firmware image
            progress_callback: Called with OTAProgress after each chunk

        Returns:
            Terminal OTAResult

        Raises:
            ProtocolError: If an update is already running
        """
        if self.ota_in_progress:
            raise ProtocolError("OTA update already in progress")
        if not self.is_running:
            await self.start()

        # The OTA path takes over the transport
        self.dispatcher.cancel()

        self._ota = OTAUpdater(
            self._transport,
            self.mailbox,
            self.activation,
            self.ota_config,
            progress_callback,
        )
        return await self._ota.run(firmware)
