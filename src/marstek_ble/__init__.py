"""Marstek BLE Protocol Package.

  Pure Python package for communicating with Marstek Venus batteries and
  CT meters over Bluetooth Low Energy, including firmware updates.
  """

from .device import MarstekDevice
from .discovery import discover_devices
from .engine import (
    AnyNotificationMatcher,
    CommandEchoMatcher,
    ProtocolEngine,
)
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    ChecksumMismatchError,
    DecodeError,
    LengthMismatchError,
    MalformedHeaderError,
    MarstekError,
    OTASessionError,
    ProtocolError,
)
from .models import (
    AckFailure,
    AckResult,
    CommandResponse,
    DeviceType,
    DispatchConfig,
    FirmwareAnalysis,
    FirmwareType,
    FrameFormat,
    OTAAck,
    OTAConfig,
    OTAProgress,
    OTAResult,
    OTAState,
)
from .protocol import (
    SERVICE_UUID,
    CommandCode,
    OTACommand,
    analyze_firmware,
    format_bytes,
    format_hex_dump,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "MarstekDevice",
    "ProtocolEngine",
    "discover_devices",
    "analyze_firmware",
    # Response matching
    "AnyNotificationMatcher",
    "CommandEchoMatcher",
    # Exceptions
    "MarstekError",
    "BLEConnectionError",
    "BLETimeoutError",
    "ProtocolError",
    "DecodeError",
    "MalformedHeaderError",
    "LengthMismatchError",
    "ChecksumMismatchError",
    "OTASessionError",
    # Models
    "AckResult",
    "CommandResponse",
    "FirmwareAnalysis",
    "OTAAck",
    "OTAConfig",
    "DispatchConfig",
    "OTAProgress",
    "OTAResult",
    # Enums
    "AckFailure",
    "CommandCode",
    "DeviceType",
    "FirmwareType",
    "FrameFormat",
    "OTACommand",
    "OTAState",
    # Utilities
    "format_bytes",
    "format_hex_dump",
    # Constants
    "SERVICE_UUID",
]
