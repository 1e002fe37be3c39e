"""BLE protocol commands and frame builders for Marstek devices."""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from functools import reduce
from operator import xor
from typing import Final, NamedTuple


class CommandCode(IntEnum):
    """Command bytes for standard (non-OTA) frames."""

    # Read-only queries
    RUNTIME_INFO = 0x03
    DEVICE_INFO = 0x04
    WIFI_INFO = 0x08
    SYSTEM_DATA = 0x0D
    ERROR_CODES = 0x13
    BMS_DATA = 0x14
    CONFIG_DATA = 0x1A
    EVENT_LOG = 0x1C
    METER_IP = 0x21
    NETWORK_INFO = 0x24

    # Settings
    SET_DATE_TIME = 0x0B
    SET_LOCAL_API_PORT = 0x28
    WRITE_CONFIG = 0x80

    # Enter upgrade mode
    OTA_ACTIVATE = 0x1F


class OTACommand(IntEnum):
    """Command bytes for OTA frames."""

    SIZE = 0x50       # Firmware size + checksum
    CHUNK = 0x51      # Offset + firmware data
    FINALIZE = 0x52   # Commit image, device restarts
    ERROR = 0xFF      # Device-side error class ack


# BLE identifiers
SERVICE_UUID: Final = "0000ff00-0000-1000-8000-00805f9b34fb"
TX_CHAR_UUID: Final = "0000ff01-0000-1000-8000-00805f9b34fb"  # write without response
RX_CHAR_UUID: Final = "0000ff02-0000-1000-8000-00805f9b34fb"  # notifications
DEVICE_NAME_PREFIX: Final = "MST"

# Wire constants
START_BYTE: Final = 0x73
IDENTIFIER_BYTE: Final = 0x23
OTA_RESERVED: Final = 0x10
OTA_ACTIVATION_MAGIC: Final = bytes([0x0A, 0x0B, 0x0C])
OTA_STATUS_OK: Final = 0x01

# Protocol mandated, not negotiated from the MTU
CHUNK_SIZE: Final = 128

MAX_COMMAND_PAYLOAD: Final = 0xFF - 5
MAX_OTA_PAYLOAD: Final = 0xFFFF - 3

METER_IP_READ_SELECTOR: Final = 0x0B
CONFIG_WRITE_SUBCOMMAND: Final = 0x0C
CONFIG_DELIMITER: Final = "<.,.>"


class CommandSpec(NamedTuple):
    """A named query in the diagnostics sequence."""

    code: CommandCode
    name: str
    payload: bytes = b""


DIAGNOSTIC_COMMANDS: Final[tuple[CommandSpec, ...]] = (
    CommandSpec(CommandCode.RUNTIME_INFO, "Runtime Info"),
    CommandSpec(CommandCode.DEVICE_INFO, "Device Info"),
    CommandSpec(CommandCode.WIFI_INFO, "WiFi Info"),
    CommandSpec(CommandCode.SYSTEM_DATA, "System Data"),
    CommandSpec(CommandCode.ERROR_CODES, "Error Codes"),
    CommandSpec(CommandCode.BMS_DATA, "BMS Data"),
    CommandSpec(CommandCode.CONFIG_DATA, "Config Data"),
    CommandSpec(CommandCode.EVENT_LOG, "Event Log"),
    CommandSpec(CommandCode.METER_IP, "Read Meter IP", bytes([METER_IP_READ_SELECTOR])),
    CommandSpec(CommandCode.NETWORK_INFO, "Network Info"),
)


def xor_checksum(data: bytes) -> int:
    """XOR of every byte in data (0 for empty input)."""
    return reduce(xor, data, 0)


def _check_command_payload(payload: bytes) -> None:
    if len(payload) > MAX_COMMAND_PAYLOAD:
        raise ValueError(
            f"Payload size {len(payload)} exceeds maximum {MAX_COMMAND_PAYLOAD}"
        )


def build_command_frame(cmd: int, payload: bytes | None = None) -> bytes:
    """Build a standard command frame.

    Args:
        cmd: Command byte
        payload: Optional payload bytes

    Returns:
        Frame bytes

    Format:
        [0x73][len][0x23][cmd][payload...][xor]
        - len: total frame length (5 + payload length)
        - xor: XOR of every preceding byte

        The length byte includes the start and length bytes themselves,
        unlike the meter-IP frame. Devices expect 0x05 for an empty
        payload; do not change this to 4 + payload length.
    """
    body = bytes(payload or b"")
    _check_command_payload(body)

    frame = bytes([START_BYTE, len(body) + 5, IDENTIFIER_BYTE, cmd]) + body
    return frame + bytes([xor_checksum(frame)])


def build_meter_ip_frame(cmd: int, payload: bytes | None = None) -> bytes:
    """Build a meter-IP command frame.

    Format:
        [0x73][len][0x23][cmd][payload...][xor]
        - len: 4 + payload length
        - xor: XOR of [0x23, cmd, payload...] only; start and length
          bytes are not covered
    """
    body = bytes(payload or b"")
    _check_command_payload(body)

    covered = bytes([IDENTIFIER_BYTE, cmd]) + body
    return bytes([START_BYTE, len(body) + 4]) + covered + bytes([xor_checksum(covered)])


def build_ota_frame(cmd: int, reserved: int = OTA_RESERVED, payload: bytes = b"") -> bytes:
    """Build an OTA frame.

    Format:
        [0x73][len_lo][len_hi][cmd][reserved][payload...][xor]
        - len: little-endian uint16 counting cmd + reserved + payload + xor
        - xor: XOR of every preceding byte, length bytes included
    """
    body = bytes(payload)
    if len(body) > MAX_OTA_PAYLOAD:
        raise ValueError(f"Payload size {len(body)} exceeds maximum {MAX_OTA_PAYLOAD}")

    length = len(body) + 3
    frame = bytes([START_BYTE]) + length.to_bytes(2, "little") + bytes([cmd, reserved]) + body
    return frame + bytes([xor_checksum(frame)])


def build_ota_activate_command() -> bytes:
    """Build the upgrade mode activation command (0x1F + magic bytes)."""
    return build_command_frame(CommandCode.OTA_ACTIVATE, OTA_ACTIVATION_MAGIC)


def build_ota_size_command(firmware_size: int, checksum: int) -> bytes:
    """Build the firmware size command.

    Payload: [size:4 LE][checksum:4 LE]
    """
    payload = firmware_size.to_bytes(4, "little") + (checksum & 0xFFFFFFFF).to_bytes(4, "little")
    return build_ota_frame(OTACommand.SIZE, OTA_RESERVED, payload)


def build_ota_chunk_command(offset: int, chunk_data: bytes) -> bytes:
    """Build a firmware data command.

    Payload: [offset:4 LE][data:<=128]
    """
    if len(chunk_data) > CHUNK_SIZE:
        raise ValueError(f"Chunk size {len(chunk_data)} exceeds maximum {CHUNK_SIZE}")
    return build_ota_frame(OTACommand.CHUNK, OTA_RESERVED, offset.to_bytes(4, "little") + chunk_data)


def build_ota_finalize_command() -> bytes:
    """Build the finalize command (empty payload)."""
    return build_ota_frame(OTACommand.FINALIZE, OTA_RESERVED, b"")


def build_date_time_payload(when: datetime) -> bytes:
    """Encode a timestamp as [year_lo][year_hi][month][day][hour][minute][second]."""
    return when.year.to_bytes(2, "little") + bytes(
        [when.month, when.day, when.hour, when.minute, when.second]
    )


def build_local_api_port_payload(port: int) -> bytes:
    """Encode the local API port as [enable=1][port_lo][port_hi]."""
    if not 1 <= port <= 0xFFFF:
        raise ValueError(f"Port out of range: {port} (must be 1-65535)")
    return bytes([0x01]) + port.to_bytes(2, "little")


def build_server_config_payload(url: str, port: int, username: str, password: str) -> bytes:
    """Encode server credentials for the XID config write (0x80 / 0x0C)."""
    if not url:
        raise ValueError("Server URL is required")
    if not 1 <= port <= 0xFFFF:
        raise ValueError(f"Port out of range: {port} (must be 1-65535)")
    if not username:
        raise ValueError("Username is required")
    if not password:
        raise ValueError("Password is required")

    config = CONFIG_DELIMITER.join([url, str(port), username, password])
    payload = bytes([CONFIG_WRITE_SUBCOMMAND]) + config.encode("utf-8")
    _check_command_payload(payload)
    return payload
