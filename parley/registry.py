from __future__ import annotations
"""
Directory of connected clients.

The registry maps a `ClientIdentity` to the mailbox of the session that
registered it. It is the only structure shared by all sessions; every session
receives the same instance at construction time.

Only map reads and mutations happen under the lock. Pushing into or popping
from a mailbox obtained through `lookup` never holds it.
"""

from dataclasses import dataclass, field
from typing import Optional

import anyio
import anyio.abc

from .identity import ClientIdentity
from .mailbox import Mailbox


@dataclass(slots=True)
class Registry:
    """
    Concurrency-safe mapping from client identity to mailbox.

    Attributes
    ----------
    _lock : anyio.abc.Lock
        Whole-map lock. Client cardinality is low, so per-key locking is not
        worth the bookkeeping.
    _entries : dict[ClientIdentity, Mailbox]
        Current registrations.
    """

    _lock: anyio.abc.Lock = field(default_factory=anyio.Lock)
    _entries: dict[ClientIdentity, Mailbox] = field(default_factory=dict)

    async def register(self, identity: ClientIdentity, mailbox: Mailbox) -> Optional[Mailbox]:
        """
        Insert or replace the mapping for `identity`.

        Returns
        -------
        Optional[Mailbox]
            The mailbox that was replaced, if any. The caller decides what to
            do with it; the registry never closes mailboxes itself.
        """
        async with self._lock:
            previous = self._entries.get(identity)
            self._entries[identity] = mailbox
        if previous is mailbox:
            return None
        return previous

    async def lookup(self, identity: ClientIdentity) -> Optional[Mailbox]:
        """
        Return the mailbox currently registered for `identity`, or None.

        The returned mailbox remains safe to push into after a concurrent
        deregistration; the push then fails with `MailboxClosed`.
        """
        async with self._lock:
            return self._entries.get(identity)

    async def deregister(self, identity: ClientIdentity, mailbox: Optional[Mailbox] = None) -> bool:
        """
        Remove the mapping for `identity`.

        When `mailbox` is given the entry is only removed if it still points to
        that mailbox, so an evicted session cannot remove its replacement.

        Returns True if an entry was removed. Absent entries are a no-op.
        """
        async with self._lock:
            current = self._entries.get(identity)
            if current is None:
                return False
            if mailbox is not None and current is not mailbox:
                return False
            del self._entries[identity]
            return True

    def identities(self) -> list[ClientIdentity]:
        """Snapshot of the registered identities."""
        return list(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)
