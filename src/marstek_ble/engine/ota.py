"""Firmware update (OTA) state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from ..exceptions import BLEConnectionError, OTASessionError, ProtocolError
from ..models.config import OTAConfig
from ..models.enums import AckFailure, OTAState
from ..models.frames import AckResult
from ..models.ota import FirmwareAnalysis, OTAProgress, OTAResult, OTASession
from ..protocol.chunking import FirmwareChunk, count_chunks, iter_firmware_chunks
from ..protocol.commands import (
    CHUNK_SIZE,
    OTA_STATUS_OK,
    OTACommand,
    build_ota_activate_command,
    build_ota_chunk_command,
    build_ota_finalize_command,
    build_ota_size_command,
)
from ..protocol.firmware import analyze_firmware
from ..protocol.responses import parse_chunk_ack_offset, parse_size_ack_checksum
from ..transport.base import Transport
from .mailbox import AckMailbox, ActivationWaiter

_LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[OTAProgress], None]


class OTAUpdater:
    """Drives one firmware update through its steps.

    IDLE -> PREPARING -> ACTIVATING -> SENDING_SIZE -> TRANSFERRING_CHUNKS
    -> FINALIZING -> COMPLETED, with FAILED reachable from every active
    state. Only chunk transfer retries; every other failure ends the
    session. A failed session is never resumed: run() starts over from
    the first step.
    """

    def __init__(
            self,
            transport: Transport,
            mailbox: AckMailbox,
            activation: ActivationWaiter,
            config: OTAConfig | None = None,
            progress_callback: ProgressCallback | None = None,
    ):
        self._transport = transport
        self._mailbox = mailbox
        self._activation = activation
        self.config = config or OTAConfig()
        self.progress_callback = progress_callback

        self._state = OTAState.IDLE
        self._session: OTASession | None = None
        self._analysis: FirmwareAnalysis | None = None

    @property
    def state(self) -> OTAState:
        return self._state

    @property
    def session(self) -> OTASession | None:
        """Session data while an update runs, None otherwise."""
        return self._session

    async def run(self, firmware: bytes) -> OTAResult:
        """Perform a complete firmware update.

        Args:
            firmware: Complete firmware image

        Returns:
            OTAResult describing success or the reason for failure

        Raises:
            ProtocolError: If an update is already running on this instance
        """
        if self._state.is_active:
            raise ProtocolError("OTA update already in progress")

        self._analysis = None
        try:
            self._prepare(firmware)
            await self._activate()
            await self._send_size()
            await self._transfer_chunks()
            await self._finalize()
        except OTASessionError as e:
            return self._fail(str(e))
        except BLEConnectionError as e:
            return self._fail(f"Transport error: {e}")
        finally:
            self._session = None

        self._transition(OTAState.COMPLETED)
        _LOGGER.info("OTA update completed successfully, device will restart")
        return OTAResult(success=True, state=OTAState.COMPLETED, analysis=self._analysis)

    def _transition(self, state: OTAState) -> None:
        _LOGGER.debug("OTA state %s -> %s", self._state.name, state.name)
        self._state = state

    def _fail(self, reason: str) -> OTAResult:
        failed_state = self._state
        self._transition(OTAState.FAILED)
        _LOGGER.error("OTA update failed during %s: %s", failed_state.name, reason)
        return OTAResult(
            success=False,
            state=OTAState.FAILED,
            reason=reason,
            failed_state=failed_state,
            analysis=self._analysis,
        )

    def _prepare(self, firmware: bytes) -> None:
        self._transition(OTAState.PREPARING)

        if not firmware:
            raise OTASessionError("No firmware data")
        if not self._transport.is_connected:
            raise OTASessionError("Device not connected")

        firmware = bytes(firmware)
        self._analysis = analyze_firmware(firmware)
        self._session = OTASession(
            firmware=firmware,
            checksum=self._analysis.checksum,
            chunk_size=CHUNK_SIZE,
            total_chunks=count_chunks(len(firmware), CHUNK_SIZE),
        )

        _LOGGER.info(
            "Starting OTA update: %d bytes, %d chunks of %d bytes",
            self._session.size,
            self._session.total_chunks,
            CHUNK_SIZE,
        )

    async def _activate(self) -> None:
        self._transition(OTAState.ACTIVATING)
        _LOGGER.info("Activating upgrade mode (cmd 0x1F)")

        self._activation.arm()
        try:
            await self._transport.write_command(build_ota_activate_command())
        except BLEConnectionError:
            self._activation.disarm()
            raise

        result = await self._activation.wait(self.config.activation_timeout)
        if not result.ok:
            raise OTASessionError(f"Failed to activate upgrade mode: {result.reason}")

    async def _exchange(self, frame: bytes, expected_cmd: int, timeout: float) -> AckResult:
        pending = self._mailbox.expect(expected_cmd)
        try:
            await self._transport.write_command(frame)
        except BLEConnectionError:
            self._mailbox.release(pending)
            raise
        return await self._mailbox.wait(pending, timeout)

    async def _send_size(self) -> None:
        self._transition(OTAState.SENDING_SIZE)
        session = self._require_session()

        _LOGGER.info(
            "Sending firmware size: %d bytes with checksum 0x%08x",
            session.size,
            session.checksum,
        )
        result = await self._exchange(
            build_ota_size_command(session.size, session.checksum),
            OTACommand.SIZE,
            self.config.size_ack_timeout,
        )
        if not result.ok:
            raise OTASessionError(f"Size ACK failed: {result.reason}")

        echoed = parse_size_ack_checksum(result.payload)
        if echoed is None:
            _LOGGER.debug("Size ACK carries no checksum echo")
        elif echoed != session.checksum:
            _LOGGER.warning(
                "Firmware checksum mismatch: sent 0x%08x, got 0x%08x",
                session.checksum,
                echoed,
            )
        else:
            _LOGGER.info("Firmware checksum verified: 0x%08x", echoed)

    async def _transfer_chunks(self) -> None:
        self._transition(OTAState.TRANSFERRING_CHUNKS)
        session = self._require_session()

        for chunk in iter_firmware_chunks(session.firmware, session.chunk_size):
            await self._send_chunk(chunk, session.total_chunks)

            session.offset = chunk.end
            session.chunk_index = chunk.index
            if self.progress_callback is not None:
                self.progress_callback(OTAProgress(
                    chunk_index=chunk.index,
                    total_chunks=session.total_chunks,
                    percent=int(chunk.index * 100 / session.total_chunks + 0.5),
                    offset=chunk.offset,
                ))

    async def _send_chunk(self, chunk: FirmwareChunk, total_chunks: int) -> None:
        attempts = self.config.chunk_attempts
        frame = build_ota_chunk_command(chunk.offset, chunk.data)
        reason = ""

        for attempt in range(1, attempts + 1):
            try:
                result = await self._exchange(frame, OTACommand.CHUNK, self.config.chunk_ack_timeout)
            except BLEConnectionError as e:
                reason = f"write failed: {e}"
            else:
                if result.ok:
                    self._check_offset_echo(chunk, result)
                    _LOGGER.debug(
                        "Chunk %d/%d confirmed at offset 0x%x (%d bytes)",
                        chunk.index,
                        total_chunks,
                        chunk.offset,
                        len(chunk.data),
                    )
                    return
                if result.failure == AckFailure.DISCONNECTED:
                    raise OTASessionError(f"Failed to send chunk {chunk.index}: {result.reason}")
                reason = result.reason

            _LOGGER.warning(
                "Retry %d/%d for chunk %d: %s", attempt, attempts, chunk.index, reason
            )
            if attempt < attempts:
                await asyncio.sleep(self.config.chunk_retry_delay)

        raise OTASessionError(
            f"Failed to send chunk {chunk.index} after {attempts} attempts: {reason}"
        )

    @staticmethod
    def _check_offset_echo(chunk: FirmwareChunk, result: AckResult) -> None:
        echoed = parse_chunk_ack_offset(result.payload)
        if echoed is not None and echoed != chunk.offset:
            _LOGGER.warning(
                "Offset mismatch: sent 0x%x, got 0x%x", chunk.offset, echoed
            )

    async def _finalize(self) -> None:
        self._transition(OTAState.FINALIZING)
        _LOGGER.info("Sending OTA finalization command")

        result = await self._exchange(
            build_ota_finalize_command(),
            OTACommand.FINALIZE,
            self.config.finalize_timeout,
        )
        if not result.ok:
            raise OTASessionError(f"Finalize ACK failed: {result.reason}")

        status = result.payload[0] if result.payload else None
        if status != OTA_STATUS_OK:
            shown = "empty" if status is None else f"0x{status:02x}"
            raise OTASessionError(f"OTA finalization failed - status: {shown}")

    def _require_session(self) -> OTASession:
        if self._session is None:
            raise OTASessionError("No active OTA session")
        return self._session
