"""Fire-and-forget dispatch of generic (non-OTA) commands."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Protocol

from ..exceptions import BLEConnectionError
from ..models.config import DispatchConfig
from ..models.enums import FrameFormat
from ..protocol.commands import IDENTIFIER_BYTE, START_BYTE, build_command_frame, build_meter_ip_frame
from ..protocol.hexdump import format_bytes

_LOGGER = logging.getLogger(__name__)


@dataclass
class PendingCommand:
    """A generic command waiting for any response."""

    cmd: int
    name: str
    payload: bytes = b""
    frame_format: FrameFormat = FrameFormat.STANDARD
    max_attempts: int = 3
    attempt: int = 1
    sent_at: float = 0.0

    def encode(self) -> bytes:
        if self.frame_format == FrameFormat.METER_IP:
            return build_meter_ip_frame(self.cmd, self.payload)
        return build_command_frame(self.cmd, self.payload)

    @property
    def can_retry(self) -> bool:
        return self.attempt < self.max_attempts


class ResponseMatcher(Protocol):
    """Decides whether a notification answers the outstanding command."""

    def matches(self, pending: PendingCommand, data: bytes) -> bool:
        ...


class AnyNotificationMatcher:
    """Any notification answers the outstanding command.

    This is the liveness rule the vendor tool uses. Frames carry no
    request identifier, so a stray notification (or the reply to an
    earlier query) satisfies whatever command is outstanding.
    """

    def matches(self, pending: PendingCommand, data: bytes) -> bool:
        return True


class CommandEchoMatcher:
    """Only a command frame echoing the request's command byte matches."""

    def matches(self, pending: PendingCommand, data: bytes) -> bool:
        return (
            len(data) >= 4
            and data[0] == START_BYTE
            and data[2] == IDENTIFIER_BYTE
            and data[3] == pending.cmd
        )


class CommandDispatcher:
    """Sends generic commands with a coarse, time-based retry.

    At most one command is outstanding. A background task checks
    response_timeout seconds after each write whether the command is still
    outstanding; if so it is re-sent until max_attempts is reached, then
    dropped. Failed writes are retried after write_retry_delay seconds
    under the same ceiling. Nothing is reported back to the caller beyond
    logging.
    """

    def __init__(
            self,
            write: Callable[[bytes], Awaitable[None]],
            config: DispatchConfig | None = None,
            matcher: ResponseMatcher | None = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize dispatcher.

        Args:
            write: Transport write coroutine
            config: Retry timing (default: DispatchConfig())
            matcher: Response matching rule (default: AnyNotificationMatcher)
            clock: Monotonic clock in seconds
        """
        self._write = write
        self.config = config or DispatchConfig()
        self.matcher: ResponseMatcher = matcher or AnyNotificationMatcher()
        self._clock = clock

        self._outstanding: PendingCommand | None = None
        self._timer: asyncio.Task[None] | None = None

    @property
    def outstanding(self) -> PendingCommand | None:
        """Command currently waiting for a response."""
        return self._outstanding

    async def send(
            self,
            cmd: int,
            payload: bytes | None = None,
            *,
            name: str | None = None,
            frame_format: FrameFormat = FrameFormat.STANDARD,
            max_attempts: int | None = None,
    ) -> PendingCommand:
        """Send a command and start tracking it.

        A previously outstanding command is replaced.

        Args:
            cmd: Command byte
            payload: Optional payload bytes
            name: Human-readable name for logging
            frame_format: Standard or meter-IP framing
            max_attempts: Override the configured attempt ceiling

        Returns:
            The tracked command
        """
        pending = PendingCommand(
            cmd=int(cmd),
            name=name or f"command 0x{int(cmd):02x}",
            payload=bytes(payload or b""),
            frame_format=frame_format,
            max_attempts=max_attempts or self.config.max_attempts,
        )
        # Encode up front so invalid payloads raise to the caller
        pending.encode()

        if self._outstanding is not None:
            _LOGGER.debug("Replacing outstanding %s", self._outstanding.name)
        self._cancel_timer()
        await self._transmit(pending)
        return pending

    def resolve(self, data: bytes) -> PendingCommand | None:
        """Clear the outstanding command if the notification answers it.

        Returns:
            The answered command, or None
        """
        pending = self._outstanding
        if pending is None or not self.matcher.matches(pending, data):
            return None
        self._outstanding = None
        self._cancel_timer()
        return pending

    def cancel(self) -> None:
        """Stop tracking the outstanding command and its retries."""
        if self._outstanding is not None:
            _LOGGER.debug("Cancelling outstanding %s", self._outstanding.name)
        self._outstanding = None
        self._cancel_timer()

    async def _transmit(self, pending: PendingCommand) -> None:
        frame = pending.encode()
        self._outstanding = pending
        pending.sent_at = self._clock()

        _LOGGER.debug(
            "Sending %s (attempt %d/%d): %s",
            pending.name,
            pending.attempt,
            pending.max_attempts,
            format_bytes(frame),
        )

        try:
            await self._write(frame)
        except BLEConnectionError as e:
            _LOGGER.warning("Failed to send %s: %s", pending.name, e)
            if pending.can_retry:
                self._schedule(self._retry_after_error(pending))
            else:
                _LOGGER.error("Giving up on %s after %d attempts", pending.name, pending.attempt)
                self._clear(pending)
            return

        self._schedule(self._check_response(pending))

    async def _check_response(self, pending: PendingCommand) -> None:
        await asyncio.sleep(self.config.response_timeout)
        if self._outstanding is not pending:
            return
        if self._clock() - pending.sent_at < self.config.stale_after:
            return

        if pending.can_retry:
            pending.attempt += 1
            _LOGGER.info(
                "No response, retrying %s (attempt %d/%d)",
                pending.name,
                pending.attempt,
                pending.max_attempts,
            )
            await self._transmit(pending)
        else:
            _LOGGER.warning(
                "No response for %s after %d attempts", pending.name, pending.attempt
            )
            self._clear(pending)

    async def _retry_after_error(self, pending: PendingCommand) -> None:
        await asyncio.sleep(self.config.write_retry_delay)
        if self._outstanding is not pending:
            return
        pending.attempt += 1
        _LOGGER.info(
            "Retrying %s due to error (attempt %d/%d)",
            pending.name,
            pending.attempt,
            pending.max_attempts,
        )
        await self._transmit(pending)

    def _clear(self, pending: PendingCommand) -> None:
        if self._outstanding is pending:
            self._outstanding = None

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        self._timer = asyncio.create_task(coro)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()
