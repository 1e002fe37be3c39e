"""Timing configuration for the protocol engine."""

from __future__ import annotations

from dataclasses import dataclass, fields


def _check_positive(instance: object) -> None:
    for f in fields(instance):
        value = getattr(instance, f.name)
        if value <= 0:
            raise ValueError(f"{f.name} must be positive, got {value}")


@dataclass(frozen=True, slots=True)
class OTAConfig:
    """Per-step timeouts and chunk retry policy for firmware updates.

    All durations are in seconds.
    """

    activation_timeout: float = 5.0
    size_ack_timeout: float = 2.0
    chunk_ack_timeout: float = 1.5
    finalize_timeout: float = 3.0
    chunk_attempts: int = 3
    chunk_retry_delay: float = 0.1

    def __post_init__(self) -> None:
        _check_positive(self)


@dataclass(frozen=True, slots=True)
class DispatchConfig:
    """Time-based retry policy for generic commands.

    A command counts as unanswered when no notification cleared it within
    response_timeout and at least stale_after seconds passed since it was
    written.
    """

    response_timeout: float = 3.0
    stale_after: float = 2.9
    write_retry_delay: float = 1.0
    max_attempts: int = 3

    def __post_init__(self) -> None:
        _check_positive(self)
        if self.stale_after > self.response_timeout:
            raise ValueError(
                f"stale_after ({self.stale_after}) must not exceed "
                f"response_timeout ({self.response_timeout})"
            )
