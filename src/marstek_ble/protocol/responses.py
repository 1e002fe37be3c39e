"""BLE response validation and parsing."""

from __future__ import annotations

from ..exceptions import ChecksumMismatchError, LengthMismatchError, MalformedHeaderError
from ..models.enums import FrameFormat
from ..models.frames import CommandResponse, OTAAck
from .commands import IDENTIFIER_BYTE, START_BYTE, CommandCode, xor_checksum

OTA_MIN_FRAME_LEN = 6
COMMAND_MIN_FRAME_LEN = 5


def decode_ota_frame(data: bytes) -> OTAAck:
    """Decode and verify an OTA frame.

    Format: [0x73][len_lo][len_hi][cmd][reserved][payload...][xor]

    Device acknowledgments declare the full frame length, while frames
    built by this package declare the length minus the three header
    bytes; both are accepted.

    Args:
        data: One complete notification

    Returns:
        Verified acknowledgment

    Raises:
        MalformedHeaderError: Wrong start byte or frame shorter than 6 bytes
        LengthMismatchError: Declared length does not match received bytes
        ChecksumMismatchError: XOR over the frame does not match the last byte
    """
    if len(data) < OTA_MIN_FRAME_LEN or data[0] != START_BYTE:
        raise MalformedHeaderError(
            f"Bad OTA frame header ({len(data)} bytes, start=0x{data[0]:02x})"
            if data else "Empty OTA frame"
        )

    declared = int.from_bytes(data[1:3], "little")
    if declared not in (len(data), len(data) - 3):
        raise LengthMismatchError(
            f"Length mismatch: declared {declared}, got {len(data)}"
        )

    expected = xor_checksum(data[:-1])
    if expected != data[-1]:
        raise ChecksumMismatchError(
            f"Bad XOR checksum: expected 0x{expected:02x}, got 0x{data[-1]:02x}"
        )

    return OTAAck(cmd=data[3], reserved=data[4], payload=bytes(data[5:-1]))


def _command_checksum_ok(data: bytes, frame_format: FrameFormat) -> bool:
    if frame_format == FrameFormat.METER_IP:
        return xor_checksum(data[2:-1]) == data[-1]
    return xor_checksum(data[:-1]) == data[-1]


def _declared_command_length(data: bytes, frame_format: FrameFormat) -> int:
    return len(data) - 1 if frame_format == FrameFormat.METER_IP else len(data)


def decode_command_frame(data: bytes, frame_format: FrameFormat | None = None) -> CommandResponse:
    """Decode and verify a standard or meter-IP command frame.

    Format: [0x73][len][0x23][cmd][payload...][xor]

    Args:
        data: One complete notification
        frame_format: Expected variant, or None to detect it from the
            checksum scope

    Returns:
        Verified command and payload

    Raises:
        MalformedHeaderError: Too short, wrong start or identifier byte
        ChecksumMismatchError: Neither checksum scope matches
        LengthMismatchError: Length byte inconsistent with the variant
    """
    if (
        len(data) < COMMAND_MIN_FRAME_LEN
        or data[0] != START_BYTE
        or data[2] != IDENTIFIER_BYTE
    ):
        raise MalformedHeaderError(f"Bad command frame header: {bytes(data[:4]).hex()}")

    candidates = [frame_format] if frame_format is not None else list(FrameFormat)
    matched = next((fmt for fmt in candidates if _command_checksum_ok(data, fmt)), None)
    if matched is None:
        raise ChecksumMismatchError(
            f"Bad XOR checksum 0x{data[-1]:02x} for command 0x{data[3]:02x}"
        )

    if frame_format is None:
        allowed = {len(data), len(data) - 1}
    else:
        allowed = {_declared_command_length(data, frame_format)}
    if data[1] not in allowed:
        raise LengthMismatchError(
            f"Length mismatch: declared {data[1]}, got {len(data)}"
        )

    return CommandResponse(cmd=data[3], payload=bytes(data[4:-1]), frame_format=matched)


def is_activation_response(data: bytes) -> bool:
    """Check whether a notification is the reply to OTA activation (0x1F)."""
    return (
        len(data) >= COMMAND_MIN_FRAME_LEN
        and data[0] == START_BYTE
        and data[2] == IDENTIFIER_BYTE
        and data[3] == CommandCode.OTA_ACTIVATE
    )


def looks_like_ota_frame(data: bytes) -> bool:
    """Check whether a notification has the shape of an OTA frame.

    Command frames carry the identifier byte where an OTA frame keeps its
    high length byte; an OTA frame that long never fits one notification.
    """
    if len(data) < OTA_MIN_FRAME_LEN or data[0] != START_BYTE:
        return False
    if data[2] == IDENTIFIER_BYTE:
        return False
    return int.from_bytes(data[1:3], "little") >= 3


def parse_activation_status(payload: bytes) -> int | None:
    """Status byte of an activation reply (None when the payload is empty)."""
    return payload[0] if payload else None


def parse_size_ack_checksum(payload: bytes) -> int | None:
    """Checksum echoed in a size ack.

    Format: [size:4 LE][checksum:4 LE]; None when the ack is shorter.
    """
    if len(payload) < 8:
        return None
    return int.from_bytes(payload[4:8], "little")


def parse_chunk_ack_offset(payload: bytes) -> int | None:
    """Offset echoed in a chunk ack ([offset:4 LE]); None when shorter."""
    if len(payload) < 4:
        return None
    return int.from_bytes(payload[0:4], "little")
