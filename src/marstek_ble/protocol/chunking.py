"""Firmware image chunking for the OTA data transfer."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from .commands import CHUNK_SIZE


@dataclass(frozen=True, slots=True)
class FirmwareChunk:
    """One slice of the firmware image.

    Attributes:
        index: 1-based chunk number
        offset: Byte offset of the slice in the image
        data: Slice contents (chunk_size bytes, the last one may be shorter)
    """

    index: int
    offset: int
    data: bytes

    @property
    def end(self) -> int:
        return self.offset + len(self.data)


def count_chunks(size: int, chunk_size: int = CHUNK_SIZE) -> int:
    """Number of chunks needed for an image of the given size."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return -(-size // chunk_size)


def iter_firmware_chunks(firmware: bytes, chunk_size: int = CHUNK_SIZE) -> Iterator[FirmwareChunk]:
    """Split a firmware image into sequential chunks.

    Args:
        firmware: Complete firmware image
        chunk_size: Data bytes per chunk (default: 128)

    Yields:
        Chunks in strict offset order
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    for index, offset in enumerate(range(0, len(firmware), chunk_size), start=1):
        yield FirmwareChunk(
            index=index,
            offset=offset,
            data=bytes(firmware[offset:offset + chunk_size]),
        )
