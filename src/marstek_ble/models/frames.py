"""Decoded frame and acknowledgment models."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import AckFailure, FrameFormat


@dataclass(frozen=True, slots=True)
class OTAAck:
    """Checksum-verified OTA frame received from the device."""

    cmd: int
    reserved: int
    payload: bytes


@dataclass(frozen=True, slots=True)
class CommandResponse:
    """Checksum-verified standard or meter-IP frame."""

    cmd: int
    payload: bytes
    frame_format: FrameFormat = FrameFormat.STANDARD


@dataclass(frozen=True, slots=True)
class AckResult:
    """Outcome of an acknowledgment wait.

    Waits never raise; a failed wait carries the failure kind and a
    human-readable reason instead.
    """

    ok: bool
    ack: OTAAck | None = None
    failure: AckFailure | None = None
    reason: str = ""

    @classmethod
    def success(cls, ack: OTAAck | None = None) -> AckResult:
        return cls(ok=True, ack=ack)

    @classmethod
    def failed(cls, failure: AckFailure, reason: str) -> AckResult:
        return cls(ok=False, failure=failure, reason=reason)

    @property
    def payload(self) -> bytes:
        """Ack payload, empty when there is no ack."""
        return self.ack.payload if self.ack else b""
