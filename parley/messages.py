from __future__ import annotations
"""
Wire-level message types and the JSON codec for them.

Frames are JSON-encoded text, except for the literal `close` command. Three
inbound shapes exist:

- registration: `{"type": 0|1, "id": <id>}` (first frame of a connection)
- routed message: `{"from": <id>, "type": 0|1, "id": <destination id>, "msg": <text>}`
- close command: the bare text `close`

Deliveries to a client are `{"from": <sender id>, "msg": <text>}`.
"""

import json
from dataclasses import dataclass
from typing import Any

from .exceptions import MalformedPayload
from .identity import ClientIdentity

CLOSE_COMMAND = "close"


@dataclass(frozen=True, slots=True)
class Registration:
    """Identity announcement sent as the first frame of a connection."""

    identity: ClientIdentity


@dataclass(frozen=True, slots=True)
class InboundMessage:
    """
    A routed message as received from a client.

    Attributes
    ----------
    sender:
        Identity of the session the frame arrived on.
    to:
        Destination identity resolved from the `type` and `id` fields.
    text:
        The `msg` field. May be empty; the router decides what to do with it.
    """

    sender: ClientIdentity
    to: ClientIdentity
    text: str


@dataclass(frozen=True, slots=True)
class OutboundMessage:
    """
    A message waiting in a mailbox for delivery.

    The receiver is implicit (the mailbox owner) and is never echoed back.
    """

    sender: ClientIdentity
    text: str

    def to_dict(self) -> dict[str, object]:
        return {"from": self.sender.id, "msg": self.text}


def decode_object(frame: str) -> dict[str, Any]:
    """
    Decode a text frame into a JSON object.

    Raises
    ------
    MalformedPayload
        If the frame is not valid JSON or does not hold an object.
    """
    try:
        data = json.loads(frame)
    except (TypeError, ValueError) as e:
        raise MalformedPayload("Frame is not valid JSON.") from e

    if not isinstance(data, dict):
        raise MalformedPayload("Frame must be a JSON object.")
    return data


def parse_registration(frame: str) -> Registration:
    """
    Parse the first frame of a connection.

    Extra fields are ignored; only `type` and `id` are required.
    """
    return registration_from(decode_object(frame))


def registration_from(data: dict[str, Any]) -> Registration:
    if "type" not in data or "id" not in data:
        raise MalformedPayload("Registration requires 'type' and 'id'.")
    return Registration(identity=ClientIdentity.from_wire(data["type"], data["id"]))


def parse_message(data: dict[str, Any], sender: ClientIdentity) -> InboundMessage:
    """Build an InboundMessage from an already decoded routed-message object."""
    if "type" not in data or "id" not in data:
        raise MalformedPayload("Routed message requires 'type' and 'id'.")

    text = data.get("msg")
    if text is None:
        text = ""
    elif not isinstance(text, str):
        raise MalformedPayload("'msg' must be a string.")

    return InboundMessage(
        sender=sender,
        to=ClientIdentity.from_wire(data["type"], data["id"]),
        text=text,
    )


def encode_outbound(message: OutboundMessage) -> str:
    return json.dumps(message.to_dict(), ensure_ascii=False)
