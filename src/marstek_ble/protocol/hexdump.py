"""Hex formatting for frame logging."""

from __future__ import annotations


def format_bytes(data: bytes) -> str:
    """Format bytes as '0x73 0x05 0x23 ...'."""
    return " ".join(f"0x{b:02x}" for b in data)


def format_hex_dump(data: bytes, width: int = 16) -> str:
    """Format bytes as an offset / hex / ASCII dump.

    Example row:
        0000: 73 05 23 03 56 00 00 00  00 00 00 00 00 00 00 00  |s.#.V...........|
    """
    lines = []
    half = width // 2
    for start in range(0, len(data), width):
        row = data[start:start + width]
        hex_part = ""
        for i in range(width):
            hex_part += f"{row[i]:02x} " if i < len(row) else "   "
            if i == half - 1:
                hex_part += " "
        ascii_part = "".join(chr(b) if 32 <= b <= 126 else "." for b in row)
        lines.append(f"{start:04x}: {hex_part} |{ascii_part}|")
    return "\n".join(lines)
