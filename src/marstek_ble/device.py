"""Main Marstek BLE device class."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from .engine import ProtocolEngine, ResponseMatcher
from .engine.dispatcher import PendingCommand
from .engine.ota import ProgressCallback
from .engine.router import ResponseHandler
from .models.config import DispatchConfig, OTAConfig
from .models.enums import DeviceType, FrameFormat
from .models.ota import OTAResult
from .protocol import DIAGNOSTIC_COMMANDS, CommandCode
from .protocol.commands import (
    METER_IP_READ_SELECTOR,
    build_date_time_payload,
    build_local_api_port_payload,
    build_server_config_payload,
)
from .transport import BLEConnection

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class MarstekDevice:
    """Marstek Venus battery or CT meter reachable over BLE.

    Main API for talking to one device.

    Usage:
        async with MarstekDevice("AA:BB:CC:DD:EE:FF", response_handler=show) as device:
            await device.request_device_info()

        async with MarstekDevice(mac) as device:
            result = await device.update_firmware(image, progress_callback=print)
            if not result.success:
                print(result.reason)

    Generic commands are fire-and-forget: responses arrive through
    response_handler as (CommandResponse, command name).
    """

    DIAGNOSTICS_INTERVAL = 1.0

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            response_handler: ResponseHandler | None = None,
            ota_config: OTAConfig | None = None,
            dispatch_config: DispatchConfig | None = None,
            response_matcher: ResponseMatcher | None = None,
    ):
        """Initialize Marstek device.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from a prior scan
            timeout: BLE connection timeout in seconds (default: 10)
            response_handler: Receives generic command responses
            ota_config: Firmware update timeouts
            dispatch_config: Generic command retry policy
            response_matcher: Rule deciding which notification answers a command
        """
        self.mac_address = mac_address
        self._connection = BLEConnection(mac_address, ble_device, timeout)
        self._engine = ProtocolEngine(
            self._connection,
            ota_config=ota_config,
            dispatch_config=dispatch_config,
            response_handler=response_handler,
            response_matcher=response_matcher,
        )

    async def __aenter__(self) -> MarstekDevice:
        """Connect and start routing notifications."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device."""
        await self.disconnect()

    async def connect(self) -> None:
        await self._connection.connect()
        await self._engine.start()
        _LOGGER.info("Detected device type: %s", self.device_type.value)

    async def disconnect(self) -> None:
        await self._engine.stop()
        await self._connection.disconnect()

    @property
    def name(self) -> str | None:
        return self._connection.name

    @property
    def device_type(self) -> DeviceType:
        """Battery (ACCP) or CT meter (TPM), from the device name."""
        return DeviceType.from_name(self.name)

    @property
    def is_connected(self) -> bool:
        return self._connection.is_connected

    @property
    def engine(self) -> ProtocolEngine:
        return self._engine

    def _require_connection(self) -> None:
        if not self._connection.is_connected:
            raise RuntimeError("Device not connected")

    async def send_command(
            self,
            cmd: int,
            payload: bytes | None = None,
            name: str | None = None,
            max_attempts: int | None = None,
    ) -> PendingCommand:
        """Send a standard command frame.

        Raises:
            RuntimeError: If not connected
            ProtocolError: If a firmware update is running
        """
        self._require_connection()
        return await self._engine.send_command(
            cmd, payload, name=name, max_attempts=max_attempts
        )

    async def send_meter_ip_command(
            self,
            cmd: int,
            payload: bytes | None = None,
            name: str | None = None,
    ) -> PendingCommand:
        """Send a meter-IP framed command."""
        self._require_connection()
        return await self._engine.send_command(
            cmd, payload, name=name, frame_format=FrameFormat.METER_IP
        )

    async def request_runtime_info(self) -> PendingCommand:
        return await self.send_command(CommandCode.RUNTIME_INFO, name="Runtime Info")

    async def request_device_info(self) -> PendingCommand:
        return await self.send_command(CommandCode.DEVICE_INFO, name="Device Info")

    async def request_wifi_info(self) -> PendingCommand:
        return await self.send_command(CommandCode.WIFI_INFO, name="WiFi Info")

    async def request_system_data(self) -> PendingCommand:
        return await self.send_command(CommandCode.SYSTEM_DATA, name="System Data")

    async def request_error_codes(self) -> PendingCommand:
        return await self.send_command(CommandCode.ERROR_CODES, name="Error Codes")

    async def request_bms_data(self) -> PendingCommand:
        return await self.send_command(CommandCode.BMS_DATA, name="BMS Data")

    async def request_config_data(self) -> PendingCommand:
        return await self.send_command(CommandCode.CONFIG_DATA, name="Config Data")

    async def request_event_log(self) -> PendingCommand:
        return await self.send_command(CommandCode.EVENT_LOG, name="Event Log")

    async def request_network_info(self) -> PendingCommand:
        return await self.send_command(CommandCode.NETWORK_INFO, name="Network Info")

    async def read_meter_ip(self) -> PendingCommand:
        return await self.send_command(
            CommandCode.METER_IP, bytes([METER_IP_READ_SELECTOR]), name="Read Meter IP"
        )

    async def set_date_time(self, when: datetime | None = None) -> PendingCommand:
        """Set the device clock (default: local time now)."""
        when = when or datetime.now()
        _LOGGER.info("Setting time to %s", when.strftime("%Y-%m-%d %H:%M:%S"))
        return await self.send_command(
            CommandCode.SET_DATE_TIME, build_date_time_payload(when), name="Set Date/Time"
        )

    async def set_local_api_port(self, port: int) -> PendingCommand:
        """Enable the local API on the given port.

        Raises:
            ValueError: If port is outside 1-65535
        """
        payload = build_local_api_port_payload(port)
        _LOGGER.info("Setting local API port to %d", port)
        return await self.send_command(
            CommandCode.SET_LOCAL_API_PORT, payload, name=f"Set Local API Port {port}"
        )

    async def write_server_config(
            self,
            url: str,
            port: int,
            username: str,
            password: str,
    ) -> PendingCommand:
        """Overwrite the device's remote monitoring server credentials.

        Sent once, without retries.

        Raises:
            ValueError: If any field is missing or the port is invalid
        """
        payload = build_server_config_payload(url, port, username, password)
        _LOGGER.warning(
            "Modifying device server credentials: URL=%s, Port=%d, User=%s, Pass=%s",
            url,
            port,
            username,
            "*" * len(password),
        )
        return await self.send_command(
            CommandCode.WRITE_CONFIG, payload, name="Write Configuration", max_attempts=1
        )

    async def run_diagnostics(self, interval: float | None = None) -> None:
        """Send every read-only query, one at a time."""
        interval = self.DIAGNOSTICS_INTERVAL if interval is None else interval
        _LOGGER.info("Starting diagnostics sequence (%d commands)", len(DIAGNOSTIC_COMMANDS))

        for spec in DIAGNOSTIC_COMMANDS:
            await self.send_command(spec.code, spec.payload or None, name=spec.name)
            await asyncio.sleep(interval)

        _LOGGER.info("Diagnostics sequence complete")

    async def update_firmware(
            self,
            firmware: bytes,
            progress_callback: ProgressCallback | None = None,
    ) -> OTAResult:
        """Upload and activate new firmware.

        Args:
            firmware: Complete firmware image
            progress_callback: Called with OTAProgress after each chunk

        Returns:
            OTAResult; failures are reported there, not raised

        Raises:
            RuntimeError: If not connected
            ProtocolError: If an update is already running
        """
        self._require_connection()
        _LOGGER.info("Uploading firmware to %s (%d bytes)", self.mac_address, len(firmware))
        return await self._engine.update_firmware(firmware, progress_callback)
