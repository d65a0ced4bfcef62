from __future__ import annotations


class ParleyError(Exception):
    """Base exception for all parley relay errors."""


class MailboxClosed(ParleyError):
    """
    Raised when attempting to push messages into a mailbox that has been closed.

    Mailboxes are closed when their owning session tears down, or when a newer
    registration for the same identity evicts them.
    """


class MalformedPayload(ParleyError, ValueError):
    """
    Raised when an inbound frame cannot be decoded into a registration or a
    routed message.

    Fatal for a session that is still awaiting its identity; ignored once the
    session is active.
    """


class TransportError(ParleyError):
    """
    Raised by a link when receiving from or sending to the peer fails.

    Only the session owning the link is affected.
    """
