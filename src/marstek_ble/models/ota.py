"""Firmware update session models."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import FirmwareType, OTAState


@dataclass(frozen=True, slots=True)
class FirmwareAnalysis:
    """Checksum and advisory classification of a firmware image.

    Attributes:
        checksum: 32-bit ones' complement of the byte sum
        firmware_type: Classification from the signature area or size
        size: Image size in bytes
        warning: Size warning for suspiciously small images
    """

    checksum: int
    firmware_type: FirmwareType
    size: int
    warning: str | None = None


@dataclass
class OTASession:
    """Mutable state of one firmware update run."""

    firmware: bytes
    checksum: int
    chunk_size: int
    total_chunks: int
    offset: int = 0
    chunk_index: int = 0

    @property
    def size(self) -> int:
        return len(self.firmware)


@dataclass(frozen=True, slots=True)
class OTAProgress:
    """Emitted after each confirmed chunk."""

    chunk_index: int
    total_chunks: int
    percent: int
    offset: int


@dataclass(frozen=True, slots=True)
class OTAResult:
    """Terminal outcome of a firmware update.

    Attributes:
        success: True when the device confirmed finalization
        state: Terminal state (COMPLETED or FAILED)
        reason: Failure description (None on success)
        failed_state: State the session was in when it failed
        analysis: Firmware analysis, when preparation got that far
    """

    success: bool
    state: OTAState
    reason: str | None = None
    failed_state: OTAState | None = None
    analysis: FirmwareAnalysis | None = None
