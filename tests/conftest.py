"""Shared fixtures: fake transport and a scripted device."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Callable

import pytest

from marstek_ble.exceptions import BLEConnectionError
from marstek_ble.models.config import DispatchConfig, OTAConfig
from marstek_ble.protocol.commands import (
    IDENTIFIER_BYTE,
    START_BYTE,
    CommandCode,
    OTACommand,
    build_command_frame,
    xor_checksum,
)


def device_ack(cmd: int, payload: bytes = b"", reserved: int = 0x10) -> bytes:
    """OTA ack as the device sends it (length = full frame length)."""
    length = len(payload) + 6
    frame = bytes([START_BYTE]) + length.to_bytes(2, "little") + bytes([cmd, reserved]) + payload
    return frame + bytes([xor_checksum(frame)])


class FakeTransport:
    """In-memory transport recording writes and replaying scripted replies."""

    def __init__(self, responder: Callable[[bytes], list[bytes]] | None = None):
        self.notifications: asyncio.Queue[bytes | None] = asyncio.Queue()
        self.written: list[bytes] = []
        self.responder = responder
        self.connected = True
        self.fail_writes = 0

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def write_command(self, data: bytes) -> None:
        if not self.connected:
            raise BLEConnectionError("Not connected")
        if self.fail_writes:
            self.fail_writes -= 1
            raise BLEConnectionError("Write failed: injected")
        self.written.append(bytes(data))
        if self.responder is not None:
            for reply in self.responder(bytes(data)):
                self.notifications.put_nowait(reply)

    def notify(self, data: bytes | None) -> None:
        self.notifications.put_nowait(data)


class FakeDevice:
    """Scripted device firmware answering the OTA exchange.

    Attributes:
        activation_status: Payload byte returned for 0x1F (None = no reply)
        echo_checksum: Checksum echoed in the size ack (None = echo the sent one)
        drop_chunk_attempts: chunk offset -> number of attempts to ignore
        finalize_status: Payload byte returned for 0x52 (None = no reply)
        offset_skew: Added to the echoed chunk offset
    """

    def __init__(self) -> None:
        self.activation_status: int | None = 0x01
        self.echo_checksum: int | None = None
        self.drop_chunk_attempts: dict[int, int] = {}
        self.finalize_status: int | None = 0x01
        self.offset_skew = 0
        self.size_reply_cmd = OTACommand.SIZE
        self.chunk_attempts: Counter[int] = Counter()
        self.received = bytearray()

    def __call__(self, frame: bytes) -> list[bytes]:
        if frame[2] == IDENTIFIER_BYTE and frame[3] == CommandCode.OTA_ACTIVATE:
            if self.activation_status is None:
                return []
            return [build_command_frame(CommandCode.OTA_ACTIVATE, bytes([self.activation_status]))]

        cmd, payload = frame[3], frame[5:-1]
        if cmd == OTACommand.SIZE:
            checksum = payload[4:8] if self.echo_checksum is None else self.echo_checksum.to_bytes(4, "little")
            return [device_ack(self.size_reply_cmd, payload[0:4] + checksum)]

        if cmd == OTACommand.CHUNK:
            offset = int.from_bytes(payload[0:4], "little")
            self.chunk_attempts[offset] += 1
            if self.chunk_attempts[offset] <= self.drop_chunk_attempts.get(offset, 0):
                return []
            if offset == len(self.received):
                self.received.extend(payload[4:])
            return [device_ack(OTACommand.CHUNK, (offset + self.offset_skew).to_bytes(4, "little"))]

        if cmd == OTACommand.FINALIZE:
            if self.finalize_status is None:
                return []
            return [device_ack(OTACommand.FINALIZE, bytes([self.finalize_status]))]

        return []


@pytest.fixture
def fast_ota_config() -> OTAConfig:
    return OTAConfig(
        activation_timeout=0.2,
        size_ack_timeout=0.2,
        chunk_ack_timeout=0.05,
        finalize_timeout=0.2,
        chunk_attempts=3,
        chunk_retry_delay=0.01,
    )


@pytest.fixture
def fast_dispatch_config() -> DispatchConfig:
    return DispatchConfig(
        response_timeout=0.05,
        stale_after=0.04,
        write_retry_delay=0.02,
        max_attempts=3,
    )


@pytest.fixture
def make_device_ack() -> Callable[..., bytes]:
    return device_ack


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def fake_device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def transport(fake_device: FakeDevice) -> FakeTransport:
    return FakeTransport(responder=fake_device)
