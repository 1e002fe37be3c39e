"""Protocol engine: acknowledgment mailbox, router, dispatcher and OTA."""

from .core import ProtocolEngine
from .dispatcher import (
    AnyNotificationMatcher,
    CommandDispatcher,
    CommandEchoMatcher,
    PendingCommand,
    ResponseMatcher,
)
from .mailbox import AckMailbox, ActivationWaiter, PendingAck
from .ota import OTAUpdater
from .router import NotificationRouter

__all__ = [
    "ProtocolEngine",
    "AckMailbox",
    "ActivationWaiter",
    "PendingAck",
    "NotificationRouter",
    "CommandDispatcher",
    "PendingCommand",
    "ResponseMatcher",
    "AnyNotificationMatcher",
    "CommandEchoMatcher",
    "OTAUpdater",
]
