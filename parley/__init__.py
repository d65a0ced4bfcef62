__version__ = "0.1.0"

from .deadletters import DeadLetter, DeadLetters
from .exceptions import MailboxClosed, MalformedPayload, ParleyError, TransportError
from .hub import RelayHub
from .identity import ClientIdentity, Role
from .link import Link
from .mailbox import Mailbox
from .messages import InboundMessage, OutboundMessage, Registration
from .metrics import RelayMetrics
from .registry import Registry
from .router import CloseRequested, Forward, Ignore, RouteOutcome, route
from .session import Session, SessionState

__all__ = [
    "ClientIdentity",
    "CloseRequested",
    "DeadLetter",
    "DeadLetters",
    "Forward",
    "Ignore",
    "InboundMessage",
    "Link",
    "Mailbox",
    "MailboxClosed",
    "MalformedPayload",
    "OutboundMessage",
    "ParleyError",
    "Registration",
    "Registry",
    "RelayHub",
    "RelayMetrics",
    "Role",
    "RouteOutcome",
    "Session",
    "SessionState",
    "TransportError",
    "route",
]
