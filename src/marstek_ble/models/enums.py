from __future__ import annotations

from enum import Enum, IntEnum


class FrameFormat(IntEnum):
    """Command frame variants sharing the [0x73][len][0x23][cmd] header.

    They differ in what the length byte counts and which bytes the
    checksum covers.
    """
    STANDARD = 0
    METER_IP = 1


class DeviceType(Enum):
    """Device family, derived from the advertised name."""
    BATTERY = "battery"
    METER = "meter"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str | None) -> DeviceType:
        """Classify a device by its BLE name (MST_ACCP_... / MST_TPM_...)."""
        if not name:
            return cls.UNKNOWN
        if "ACCP" in name:
            return cls.BATTERY
        if "TPM" in name:
            return cls.METER
        return cls.UNKNOWN


class FirmwareType(Enum):
    """Advisory firmware classification."""
    EMS_CONTROL = "EMS/Control Firmware (VenusC signature found)"
    BMS = "BMS Firmware (no VenusC signature)"
    BMS_BY_SIZE = "BMS Firmware (size suggests BMS)"
    UNKNOWN_EMPTY_SIGNATURE = "Unknown (signature area empty)"
    UNKNOWN_SMALL = "Unknown (small size - proceed with caution)"
    UNKNOWN_VERY_SMALL = "Unknown (very small - likely not firmware)"


class OTAState(Enum):
    """Firmware update states, in order."""
    IDLE = "idle"
    PREPARING = "preparing"
    ACTIVATING = "activating"
    SENDING_SIZE = "sending_size"
    TRANSFERRING_CHUNKS = "transferring_chunks"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OTAState.COMPLETED, OTAState.FAILED)

    @property
    def is_active(self) -> bool:
        return not self.is_terminal and self is not OTAState.IDLE


class AckFailure(Enum):
    """Why an acknowledgment wait did not succeed."""
    TIMEOUT = "timeout"
    UNEXPECTED_COMMAND = "unexpected_command"
    REJECTED = "rejected"          # Device answered with a failure status
    SUPERSEDED = "superseded"      # Slot re-armed before resolution
    DISCONNECTED = "disconnected"  # Notification channel closed


class RouteOutcome(Enum):
    """Where the router delivered an inbound notification."""
    ACTIVATION = "activation"
    OTA_ACK = "ota_ack"
    COMMAND_RESPONSE = "command_response"
    DROPPED = "dropped"      # Failed checksum / length verification
    UNMATCHED = "unmatched"  # Nobody was waiting for it
