"""Firmware image checksum and type detection."""

from __future__ import annotations

import logging
from typing import Final

from ..models.enums import FirmwareType
from ..models.ota import FirmwareAnalysis

_LOGGER = logging.getLogger(__name__)

SIGNATURE_OFFSET: Final = 0x50004
SIGNATURE_LENGTH: Final = 10
EMS_SIGNATURE: Final = "VenusC"

BMS_MIN_SIZE: Final = 32768
SMALL_FIRMWARE_SIZE: Final = 1024

SMALL_SIZE_WARNING: Final = "File size is unusually small for firmware"
VERY_SMALL_SIZE_WARNING: Final = "File size is very small - this may not be valid firmware"


def firmware_checksum(firmware: bytes) -> int:
    """Ones' complement of the 32-bit wraparound byte sum."""
    return ~(sum(firmware) & 0xFFFFFFFF) & 0xFFFFFFFF


def classify_firmware(firmware: bytes) -> tuple[FirmwareType, str | None]:
    """Classify a firmware image.

    Images larger than the signature area are classified by the 10 bytes
    at 0x50004, smaller ones by size.

    Returns:
        Firmware type and an optional size warning
    """
    if len(firmware) > SIGNATURE_OFFSET + SIGNATURE_LENGTH:
        window = firmware[SIGNATURE_OFFSET:SIGNATURE_OFFSET + SIGNATURE_LENGTH]
        if EMS_SIGNATURE in window.decode("utf-8", errors="replace"):
            return FirmwareType.EMS_CONTROL, None
        if any(b not in (0x00, 0xFF) for b in window):
            return FirmwareType.BMS, None
        return FirmwareType.UNKNOWN_EMPTY_SIGNATURE, None

    if len(firmware) >= BMS_MIN_SIZE:
        return FirmwareType.BMS_BY_SIZE, None
    if len(firmware) >= SMALL_FIRMWARE_SIZE:
        return FirmwareType.UNKNOWN_SMALL, SMALL_SIZE_WARNING
    return FirmwareType.UNKNOWN_VERY_SMALL, VERY_SMALL_SIZE_WARNING


def analyze_firmware(firmware: bytes) -> FirmwareAnalysis:
    """Compute the checksum and advisory type of a firmware image.

    The classification never blocks an update.

    Args:
        firmware: Complete firmware image

    Returns:
        FirmwareAnalysis with checksum, type, size and warning
    """
    firmware = bytes(firmware)
    checksum = firmware_checksum(firmware)
    firmware_type, warning = classify_firmware(firmware)

    _LOGGER.info(
        "Firmware analysis: size=%d bytes, type=%s, checksum=0x%08x",
        len(firmware),
        firmware_type.value,
        checksum,
    )
    if warning:
        _LOGGER.warning(warning)

    return FirmwareAnalysis(
        checksum=checksum,
        firmware_type=firmware_type,
        size=len(firmware),
        warning=warning,
    )
