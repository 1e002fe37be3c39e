"""Exceptions raised by the Marstek BLE package."""

from __future__ import annotations


class MarstekError(Exception):
    """Base exception for all Marstek BLE errors."""


class BLEConnectionError(MarstekError):
    """Connecting to, writing to, or talking with the device failed."""


class BLETimeoutError(BLEConnectionError):
    """A BLE operation did not complete in time."""


class ProtocolError(MarstekError):
    """Protocol sequencing error or invalid use of the protocol engine."""


class DecodeError(ProtocolError):
    """An inbound frame could not be decoded."""


class MalformedHeaderError(DecodeError):
    """Frame is too short or does not begin with the start byte."""


class LengthMismatchError(DecodeError):
    """Declared frame length does not match the received byte count."""


class ChecksumMismatchError(DecodeError):
    """Recomputed XOR checksum does not match the trailing byte."""


class OTASessionError(ProtocolError):
    """A firmware update step failed and the session cannot continue."""
