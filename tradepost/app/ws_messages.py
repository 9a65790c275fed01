"""Messages pushed to ``/ws/market`` subscribers.

Every frame uses the v1 envelope::

    {"version": "1", "type": "<event>", "timestamp": "<ISO8601>", "payload": {...}}

Known events are ``bid_placed`` (an auction accepted a bid), ``connection_ready``
(sent once on subscribe) and ``heartbeat`` (the reply to a client ``ping``).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from tradepost.infrastructure.db import to_iso

MESSAGE_FORMAT_VERSION = "1"


class WireMessage(BaseModel):
    version: str = MESSAGE_FORMAT_VERSION
    type: str
    timestamp: str
    payload: dict[str, Any]


MESSAGE_TYPE_MAP: dict[str, type["MarketMessage"]] = {}


class MarketMessage(BaseModel):
    """A typed payload; subclasses register themselves under ``message_type``."""

    message_type: ClassVar[str]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        MESSAGE_TYPE_MAP[cls.message_type] = cls

    def to_wire(self) -> dict[str, Any]:
        return create_message(self.message_type, **self.model_dump(exclude_none=True))


class BidPlacedMessage(MarketMessage):
    """``listing`` is the auction view after the bid, ``bid`` the accepted bid."""

    message_type: ClassVar[str] = "bid_placed"

    listing: dict[str, Any]
    bid: dict[str, Any]


class ConnectionReadyMessage(MarketMessage):
    message_type: ClassVar[str] = "connection_ready"

    server_version: str
    message_format_version: str = MESSAGE_FORMAT_VERSION


class HeartbeatMessage(MarketMessage):
    message_type: ClassVar[str] = "heartbeat"


def create_message(message_type: str, **payload: Any) -> dict[str, Any]:
    return WireMessage(
        type=message_type,
        timestamp=to_iso(datetime.now(timezone.utc)),
        payload=payload,
    ).model_dump()


def parse_message(data: dict[str, Any]) -> MarketMessage | None:
    """The typed message inside a wire frame, or None if unknown or malformed."""
    message_cls = MESSAGE_TYPE_MAP.get(str(data.get("type")))
    if message_cls is None:
        return None
    try:
        return message_cls.model_validate(data.get("payload", {}))
    except ValidationError:
        return None


def wire_event(event: dict[str, Any]) -> dict[str, Any]:
    """Wrap a ``{"type": ..., **fields}`` event from the services in the envelope.

    Registered types are validated through their message class; raises
    ``ValueError`` when a registered event is missing fields.
    """
    fields = dict(event)
    message_type = str(fields.pop("type"))
    message_cls = MESSAGE_TYPE_MAP.get(message_type)
    if message_cls is None:
        return create_message(message_type, **fields)
    return message_cls.model_validate(fields).to_wire()


__all__ = [
    "MESSAGE_FORMAT_VERSION",
    "MESSAGE_TYPE_MAP",
    "BidPlacedMessage",
    "ConnectionReadyMessage",
    "HeartbeatMessage",
    "MarketMessage",
    "WireMessage",
    "create_message",
    "parse_message",
    "wire_event",
]
