"""Data models for Marstek devices."""

from .config import DispatchConfig, OTAConfig
from .enums import (
    AckFailure,
    DeviceType,
    FirmwareType,
    FrameFormat,
    OTAState,
    RouteOutcome,
)
from .frames import AckResult, CommandResponse, OTAAck
from .ota import FirmwareAnalysis, OTAProgress, OTAResult, OTASession

__all__ = [
    "AckFailure",
    "AckResult",
    "CommandResponse",
    "DeviceType",
    "DispatchConfig",
    "FirmwareAnalysis",
    "FirmwareType",
    "FrameFormat",
    "OTAAck",
    "OTAConfig",
    "OTAProgress",
    "OTAResult",
    "OTASession",
    "OTAState",
    "RouteOutcome",
]
