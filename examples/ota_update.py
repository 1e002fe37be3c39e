"""Flash a firmware image to a Marstek device.

Usage:
    uv run python examples/ota_update.py AA:BB:CC:DD:EE:FF firmware.bin
    uv run python examples/ota_update.py AA:BB:CC:DD:EE:FF firmware.bin --analyze-only
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from marstek_ble import MarstekDevice, OTAProgress, analyze_firmware


def _print_progress(progress: OTAProgress) -> None:
    print(
        f"\rUploading: {progress.chunk_index}/{progress.total_chunks} chunks "
        f"({progress.percent}%)",
        end="",
        flush=True,
    )


async def flash(address: str, firmware: bytes) -> bool:
    """Connect and run the update."""
    async with MarstekDevice(address) as device:
        print(f"Connected to {device.name} ({device.device_type.value})")
        result = await device.update_firmware(firmware, progress_callback=_print_progress)

    print()
    if result.success:
        print("Update completed! Device will restart...")
        return True
    print(f"Update failed: {result.reason}")
    return False


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("address", help="Device MAC address")
    parser.add_argument("firmware", type=Path, help="Firmware image")
    parser.add_argument("--analyze-only", action="store_true", help="Only print the firmware analysis")
    parser.add_argument("--debug", action="store_true", help="Log frame traffic")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    firmware = args.firmware.read_bytes()
    analysis = analyze_firmware(firmware)
    print(f"File: {args.firmware.name} ({analysis.size:,} bytes)")
    print(f"Type: {analysis.firmware_type.value}")
    print(f"Checksum: 0x{analysis.checksum:08X}")
    if analysis.warning:
        print(f"Warning: {analysis.warning}")

    if args.analyze_only:
        return 0

    return 0 if asyncio.run(flash(args.address, firmware)) else 1


if __name__ == "__main__":
    sys.exit(main())
