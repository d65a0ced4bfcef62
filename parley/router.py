from __future__ import annotations
"""
Routing decisions for inbound frames.

`route()` is a pure function: it inspects one text frame received on an active
session and says what the session should do with it. It performs no I/O and
never raises for bad input.
"""

from dataclasses import dataclass
from typing import Union

from .exceptions import MalformedPayload
from .identity import ClientIdentity
from .messages import (
    CLOSE_COMMAND,
    OutboundMessage,
    Registration,
    decode_object,
    parse_message,
    registration_from,
)


@dataclass(frozen=True, slots=True)
class Forward:
    """Deliver `message` to the mailbox registered for `to`."""

    to: ClientIdentity
    message: OutboundMessage


@dataclass(frozen=True, slots=True)
class CloseRequested:
    """The client asked to end its session."""


@dataclass(frozen=True, slots=True)
class Ignore:
    """Nothing to do. `reason` is for logs and metrics only."""

    reason: str


RouteOutcome = Union[Forward, Registration, CloseRequested, Ignore]

MALFORMED = "malformed"
EMPTY = "empty"


def route(frame: str, sender: ClientIdentity) -> RouteOutcome:
    """
    Decide what to do with an inbound frame.

    Parameters
    ----------
    frame:
        The raw text frame.
    sender:
        Identity registered by the session the frame arrived on. It becomes
        the `from` of the delivered message, whatever the frame claims.

    Returns
    -------
    RouteOutcome
        - `CloseRequested` for the literal `close` command,
        - `Ignore("malformed")` when the frame cannot be decoded, or carries
          `msg` without `from`,
        - `Registration` for any other object without a `from` field,
        - `Ignore("empty")` when there is no message text,
        - `Forward` otherwise.
    """
    if frame == CLOSE_COMMAND:
        return CloseRequested()

    try:
        data = decode_object(frame)
        if "from" not in data:
            if "msg" in data:
                # A routed message that lost its sender field.
                return Ignore(MALFORMED)
            return registration_from(data)
        inbound = parse_message(data, sender)
    except MalformedPayload:
        return Ignore(MALFORMED)

    if not inbound.text:
        return Ignore(EMPTY)

    return Forward(
        to=inbound.to,
        message=OutboundMessage(sender=inbound.sender, text=inbound.text),
    )
