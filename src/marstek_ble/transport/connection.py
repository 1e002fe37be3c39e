"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError
from ..protocol import RX_CHAR_UUID, SERVICE_UUID, TX_CHAR_UUID

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)


class BLEConnection:
    """Manages BLE connection to a Marstek device.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - Context manager for automatic cleanup
    - Notification queue feeding the protocol engine (None on disconnect)
    """

    def __init__(
            self,
            mac_address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 3,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            mac_address: Device MAC address
            ble_device: Optional BLEDevice from a prior scan
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 3)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.mac_address = mac_address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None
        self._notification_queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._tx_characteristic: BleakGATTCharacteristic | None = None
        self._rx_characteristic: BleakGATTCharacteristic | None = None

    async def __aenter__(self) -> BLEConnection:
        """Connect to device (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    async def connect(self) -> None:
        """Establish BLE connection to device.

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.mac_address,
                self.max_attempts
            )

            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.mac_address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.mac_address} not found during scan"
                    )
                self.ble_device = device

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.mac_address,
                disconnected_callback=self._on_disconnected,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.info("Connected to %s (%s)", self.name, self.mac_address)

            await self._setup_notifications()

        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BLEConnectionError:
            raise
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Disconnect from device."""
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.mac_address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None
        self._tx_characteristic = None
        self._rx_characteristic = None

    async def _setup_notifications(self) -> None:
        """Resolve TX/RX characteristics and start RX notifications.

        Raises:
            BLEConnectionError: If service/characteristic not found
        """
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        service = self._client.services.get_service(SERVICE_UUID)
        if not service:
            raise BLEConnectionError(
                f"Service {SERVICE_UUID} not found"
            )

        self._tx_characteristic = service.get_characteristic(TX_CHAR_UUID)
        self._rx_characteristic = service.get_characteristic(RX_CHAR_UUID)
        if not self._tx_characteristic or not self._rx_characteristic:
            raise BLEConnectionError("TX/RX characteristics not found")

        await self._client.start_notify(
            self._rx_characteristic,
            self._notification_callback,
        )

        _LOGGER.debug("Notifications enabled on %s", RX_CHAR_UUID)

    def _notification_callback(self, sender, data: bytearray) -> None:
        """Handle incoming BLE notifications.

        Args:
            sender: Characteristic that sent notification
            data: Notification data (one complete frame)
        """
        self._notification_queue.put_nowait(bytes(data))

    def _on_disconnected(self, client: BleakClient) -> None:
        _LOGGER.info("Device %s disconnected", self.mac_address)
        self._notification_queue.put_nowait(None)

    async def write_command(self, data: bytes) -> None:
        """Write one frame to the device (write without response).

        Raises:
            BLEConnectionError: If not connected or write fails
        """
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")

        if not self._tx_characteristic:
            raise BLEConnectionError("Characteristics not set up")

        try:
            await self._client.write_gatt_char(
                self._tx_characteristic,
                data,
                response=False,
            )
        except Exception as e:
            raise BLEConnectionError(f"Write failed: {e}") from e

    @property
    def notifications(self) -> asyncio.Queue[bytes | None]:
        """Inbound frames, one per notification; None after disconnect."""
        return self._notification_queue

    @property
    def name(self) -> str | None:
        """Advertised device name, once resolved."""
        return self.ble_device.name if self.ble_device else None

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected
