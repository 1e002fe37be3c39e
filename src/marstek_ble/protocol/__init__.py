"""BLE protocol implementation."""

from .chunking import FirmwareChunk, count_chunks, iter_firmware_chunks
from .commands import (
    CHUNK_SIZE,
    DEVICE_NAME_PREFIX,
    DIAGNOSTIC_COMMANDS,
    IDENTIFIER_BYTE,
    OTA_ACTIVATION_MAGIC,
    OTA_RESERVED,
    RX_CHAR_UUID,
    SERVICE_UUID,
    START_BYTE,
    TX_CHAR_UUID,
    CommandCode,
    CommandSpec,
    OTACommand,
    build_command_frame,
    build_meter_ip_frame,
    build_ota_activate_command,
    build_ota_chunk_command,
    build_ota_finalize_command,
    build_ota_frame,
    build_ota_size_command,
    xor_checksum,
)
from .firmware import analyze_firmware, firmware_checksum
from .hexdump import format_bytes, format_hex_dump
from .responses import (
    decode_command_frame,
    decode_ota_frame,
    is_activation_response,
    looks_like_ota_frame,
)

__all__ = [
    "CommandCode",
    "CommandSpec",
    "OTACommand",
    "SERVICE_UUID",
    "TX_CHAR_UUID",
    "RX_CHAR_UUID",
    "DEVICE_NAME_PREFIX",
    "START_BYTE",
    "IDENTIFIER_BYTE",
    "OTA_RESERVED",
    "OTA_ACTIVATION_MAGIC",
    "CHUNK_SIZE",
    "DIAGNOSTIC_COMMANDS",
    "xor_checksum",
    "build_command_frame",
    "build_meter_ip_frame",
    "build_ota_frame",
    "build_ota_activate_command",
    "build_ota_size_command",
    "build_ota_chunk_command",
    "build_ota_finalize_command",
    "decode_ota_frame",
    "decode_command_frame",
    "is_activation_response",
    "looks_like_ota_frame",
    "analyze_firmware",
    "firmware_checksum",
    "FirmwareChunk",
    "count_chunks",
    "iter_firmware_chunks",
    "format_bytes",
    "format_hex_dump",
]
