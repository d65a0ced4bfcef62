from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping


@dataclass(slots=True)
class RelayMetrics:
    """
    Operational counters for a relay hub.

    Counters are plain integers mutated from the event loop thread only, so no
    locking is needed.

    Attributes:
        connections_opened (int): Sessions started by the server shell.
        connections_closed (int): Sessions that reached the closed state.
        registrations (int): Successful identity registrations.
        evictions (int): Registrations that replaced a live session with the
            same identity.
        messages_forwarded (int): Messages accepted by a recipient mailbox.
        messages_dropped (int): Messages that could not be delivered (unknown
            recipient or recipient mailbox closed).
        malformed_frames (int): Frames that could not be decoded.
        transport_errors (int): Receive/send failures on client links.
    """

    connections_opened: int = 0
    connections_closed: int = 0

    registrations: int = 0
    evictions: int = 0

    messages_forwarded: int = 0
    messages_dropped: int = 0

    malformed_frames: int = 0
    transport_errors: int = 0

    def reset(self) -> None:
        """Reset all counters to zero."""
        self.connections_opened = 0
        self.connections_closed = 0
        self.registrations = 0
        self.evictions = 0
        self.messages_forwarded = 0
        self.messages_dropped = 0
        self.malformed_frames = 0
        self.transport_errors = 0

    def snapshot(self) -> Mapping[str, int]:
        """
        Return a stable, read-only snapshot of current metrics.

        This method must never raise and must not expose internal state.
        """
        try:
            return {
                "connections_opened": self.connections_opened,
                "connections_closed": self.connections_closed,
                "registrations": self.registrations,
                "evictions": self.evictions,
                "messages_forwarded": self.messages_forwarded,
                "messages_dropped": self.messages_dropped,
                "malformed_frames": self.malformed_frames,
                "transport_errors": self.transport_errors,
            }
        except Exception:
            return {}
