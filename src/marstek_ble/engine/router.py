"""Classification and delivery of inbound notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from ..exceptions import DecodeError
from ..models.enums import RouteOutcome
from ..models.frames import CommandResponse
from ..protocol.commands import OTA_STATUS_OK, OTACommand
from ..protocol.hexdump import format_bytes, format_hex_dump
from ..protocol.responses import (
    decode_command_frame,
    decode_ota_frame,
    is_activation_response,
    looks_like_ota_frame,
    parse_activation_status,
)
from .dispatcher import CommandDispatcher
from .mailbox import AckMailbox, ActivationWaiter

_LOGGER = logging.getLogger(__name__)

ResponseHandler = Callable[[CommandResponse, str], None]


class NotificationRouter:
    """Routes every inbound frame to exactly one consumer.

    Precedence:
    1. Activation reply (0x1F) while the activation waiter is armed
    2. OTA frame -> acknowledgment mailbox
    3. Response to the outstanding generic command -> response handler
    4. Anything else is logged and discarded

    Corrupt frames are logged and dropped; they never fail a session by
    themselves. The waiting step simply runs into its timeout.
    """

    def __init__(
            self,
            mailbox: AckMailbox,
            activation: ActivationWaiter,
            dispatcher: CommandDispatcher,
            response_handler: ResponseHandler | None = None,
    ):
        self._mailbox = mailbox
        self._activation = activation
        self._dispatcher = dispatcher
        self.response_handler = response_handler

    async def run(self, channel: asyncio.Queue[bytes | None]) -> None:
        """Consume notifications until the channel yields None.

        None marks the end of the connection; any pending wait is failed
        right away instead of running into its timeout.
        """
        while True:
            data = await channel.get()
            if data is None:
                _LOGGER.debug("Notification channel closed")
                self._mailbox.abort("connection closed")
                self._activation.abort("connection closed")
                return
            self.route(data)

    def route(self, data: bytes) -> RouteOutcome:
        """Classify and deliver one notification."""
        _LOGGER.debug("Response received (%d bytes): %s", len(data), format_bytes(data))

        if self._activation.armed and is_activation_response(data):
            return self._route_activation(data)

        if looks_like_ota_frame(data):
            return self._route_ota(data)

        if self._dispatcher.outstanding is not None:
            pending = self._dispatcher.resolve(data)
            if pending is not None:
                return self._route_response(data, pending.name)

        _LOGGER.debug("Unmatched notification discarded:\n%s", format_hex_dump(data))
        return RouteOutcome.UNMATCHED

    def _route_activation(self, data: bytes) -> RouteOutcome:
        try:
            response = decode_command_frame(data)
        except DecodeError as e:
            _LOGGER.warning("Dropping corrupt activation reply: %s", e)
            return RouteOutcome.DROPPED

        status = parse_activation_status(response.payload)
        accepted = status == OTA_STATUS_OK
        if accepted:
            _LOGGER.info("OTA activation confirmed: device is armed for upgrade")
        else:
            _LOGGER.warning(
                "Unexpected OTA activation payload: %s",
                format_bytes(response.payload) or "empty",
            )
        self._activation.resolve(accepted, status)
        return RouteOutcome.ACTIVATION

    def _route_ota(self, data: bytes) -> RouteOutcome:
        try:
            ack = decode_ota_frame(data)
        except DecodeError as e:
            _LOGGER.warning("Dropping OTA frame: %s", e)
            return RouteOutcome.DROPPED

        if ack.cmd == OTACommand.ERROR:
            _LOGGER.warning("Device reported OTA error: payload=%s", ack.payload.hex())
        else:
            _LOGGER.debug("Received ACK: cmd=0x%02x, payload=%s", ack.cmd, ack.payload.hex())

        if self._mailbox.deliver(ack):
            return RouteOutcome.OTA_ACK

        _LOGGER.debug("No pending wait for ACK 0x%02x, ignoring", ack.cmd)
        return RouteOutcome.UNMATCHED

    def _route_response(self, data: bytes, command_name: str) -> RouteOutcome:
        try:
            response = decode_command_frame(data)
        except DecodeError as e:
            _LOGGER.warning("Dropping response to %s: %s", command_name, e)
            return RouteOutcome.DROPPED

        if self.response_handler is None:
            _LOGGER.info(
                "Response to %s: cmd=0x%02x payload=%s",
                command_name,
                response.cmd,
                response.payload.hex(),
            )
            return RouteOutcome.COMMAND_RESPONSE

        try:
            self.response_handler(response, command_name)
        except Exception:
            _LOGGER.exception("Response handler failed for %s", command_name)
        return RouteOutcome.COMMAND_RESPONSE
