"""Single-slot acknowledgment waiters."""

from __future__ import annotations

import asyncio
import logging

from ..models.enums import AckFailure
from ..models.frames import AckResult, OTAAck

_LOGGER = logging.getLogger(__name__)


class PendingAck:
    """An armed wait for one acknowledgment command byte."""

    def __init__(self, expected_cmd: int):
        self.expected_cmd = expected_cmd
        self.future: asyncio.Future[AckResult] = asyncio.get_running_loop().create_future()

    @property
    def done(self) -> bool:
        return self.future.done()

    def _resolve(self, result: AckResult) -> bool:
        if self.future.done():
            return False
        self.future.set_result(result)
        return True


class AckMailbox:
    """Holds at most one pending acknowledgment wait.

    The slot is armed before the command is written, so an ack that
    arrives while the write is still in flight is not lost. Resolution is
    one-shot: the slot is cleared as soon as it fires and later deliveries
    are reported back as unmatched.

    Usage:
        pending = mailbox.expect(OTACommand.SIZE)
        await transport.write_command(frame)
        result = await mailbox.wait(pending, timeout=2.0)
    """

    def __init__(self) -> None:
        self._slot: PendingAck | None = None

    @property
    def pending(self) -> PendingAck | None:
        """Currently armed wait, if any."""
        if self._slot is not None and self._slot.done:
            return None
        return self._slot

    def expect(self, expected_cmd: int) -> PendingAck:
        """Arm the slot for an ack with the given command byte.

        An earlier unresolved wait is overwritten and resolves as
        SUPERSEDED; callers are expected to serialize their exchanges.
        """
        previous = self.pending
        if previous is not None:
            _LOGGER.warning(
                "Ack wait for 0x%02x superseded by wait for 0x%02x",
                previous.expected_cmd,
                expected_cmd,
            )
            previous._resolve(AckResult.failed(AckFailure.SUPERSEDED, "superseded"))

        self._slot = PendingAck(expected_cmd)
        return self._slot

    def release(self, pending: PendingAck) -> None:
        """Disarm a wait that will never be awaited (e.g. the write failed)."""
        if self._slot is pending:
            self._slot = None
        if not pending.done:
            pending.future.cancel()

    async def wait(self, pending: PendingAck, timeout: float) -> AckResult:
        """Wait for an armed ack.

        Returns:
            AckResult: ok with the ack, or a TIMEOUT / UNEXPECTED_COMMAND /
            SUPERSEDED / DISCONNECTED failure
        """
        try:
            return await asyncio.wait_for(pending.future, timeout=timeout)
        except asyncio.TimeoutError:
            return AckResult.failed(AckFailure.TIMEOUT, "timeout")
        finally:
            if self._slot is pending:
                self._slot = None

    async def wait_for_ack(self, expected_cmd: int, timeout: float) -> AckResult:
        """Arm the slot and wait (for acks that are not triggered by a write)."""
        return await self.wait(self.expect(expected_cmd), timeout)

    def deliver(self, ack: OTAAck) -> bool:
        """Resolve the pending wait with a verified ack.

        A non-matching command resolves the wait immediately as a failure
        rather than continuing to wait.

        Returns:
            True if a waiter consumed the ack, False if nobody was waiting
        """
        pending = self.pending
        if pending is None:
            return False
        self._slot = None

        if ack.cmd == pending.expected_cmd:
            return pending._resolve(AckResult.success(ack))

        return pending._resolve(AckResult(
            ok=False,
            ack=ack,
            failure=AckFailure.UNEXPECTED_COMMAND,
            reason=(
                f"unexpected cmd: expected 0x{pending.expected_cmd:02x}, "
                f"got 0x{ack.cmd:02x}"
            ),
        ))

    def abort(self, reason: str) -> bool:
        """Fail the pending wait because the connection went away."""
        pending = self.pending
        if pending is None:
            return False
        self._slot = None
        return pending._resolve(AckResult.failed(AckFailure.DISCONNECTED, reason))


class ActivationWaiter:
    """Single-shot wait for the upgrade mode activation reply (0x1F).

    Independent of the AckMailbox: activation is answered with a command
    frame, not an OTA frame.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[AckResult] | None = None

    @property
    def armed(self) -> bool:
        return self._future is not None and not self._future.done()

    def arm(self) -> None:
        """Start listening for the activation reply."""
        if self.armed:
            _LOGGER.warning("Activation wait re-armed before resolution")
            self._future.set_result(AckResult.failed(AckFailure.SUPERSEDED, "superseded"))
        self._future = asyncio.get_running_loop().create_future()

    def disarm(self) -> None:
        if self._future is not None and not self._future.done():
            self._future.cancel()
        self._future = None

    def resolve(self, accepted: bool, status: int | None) -> bool:
        """Deliver the device's verdict.

        Args:
            accepted: True when the device reported it is armed for upgrade
            status: Raw status byte (None for an empty payload)

        Returns:
            True if a waiter was resolved
        """
        if not self.armed:
            return False
        if accepted:
            self._future.set_result(AckResult.success())
        else:
            shown = "empty" if status is None else f"0x{status:02x}"
            self._future.set_result(
                AckResult.failed(AckFailure.REJECTED, f"activation rejected - status: {shown}")
            )
        return True

    def abort(self, reason: str) -> bool:
        if not self.armed:
            return False
        self._future.set_result(AckResult.failed(AckFailure.DISCONNECTED, reason))
        return True

    async def wait(self, timeout: float) -> AckResult:
        """Wait for the armed activation reply.

        Raises:
            RuntimeError: If arm() was not called first
        """
        future = self._future
        if future is None:
            raise RuntimeError("Activation waiter not armed")
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            return AckResult.failed(AckFailure.TIMEOUT, "timeout - no response received")
        finally:
            if self._future is future:
                self._future = None
