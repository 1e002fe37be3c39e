"""Find Marstek devices and optionally query one of them.

Usage:
    uv run python examples/scan_devices.py --duration 10
    uv run python examples/scan_devices.py --query AA:BB:CC:DD:EE:FF
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime

from marstek_ble import CommandResponse, DeviceType, MarstekDevice, discover_devices, format_hex_dump


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_response(response: CommandResponse, command_name: str) -> None:
    """Print one routed command response."""
    print(
        f"[{_timestamp()}] {command_name}: cmd=0x{response.cmd:02x} "
        f"len={len(response.payload)}"
    )
    if response.payload:
        print(format_hex_dump(response.payload))


async def scan(duration: float) -> None:
    """List devices advertising the Marstek name prefix."""
    devices = await discover_devices(timeout=duration)
    if not devices:
        print("No Marstek devices found")
        return
    for device in devices:
        kind = DeviceType.from_name(device.name).value
        print(f"[{_timestamp()}] {device.name} ({device.address}) type={kind}")


async def query(address: str, interval: float) -> None:
    """Run the diagnostics sequence against one device."""
    async with MarstekDevice(address, response_handler=_print_response) as device:
        await device.run_diagnostics(interval=interval)
        # Leave time for the last response
        await asyncio.sleep(interval)


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--duration", type=float, default=10.0, help="Scan duration in seconds")
    parser.add_argument("--query", metavar="ADDRESS", help="Run diagnostics on this device")
    parser.add_argument("--interval", type=float, default=1.0, help="Delay between queries")
    parser.add_argument("--debug", action="store_true", help="Log frame traffic")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    if args.query:
        asyncio.run(query(args.query, args.interval))
    else:
        asyncio.run(scan(args.duration))


if __name__ == "__main__":
    main()
