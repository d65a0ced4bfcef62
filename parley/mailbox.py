from __future__ import annotations
"""
Per-client mailbox.

A mailbox is a bounded FIFO of outbound messages owned by exactly one session.
Any number of other sessions push into it; the owner's forwarder is the only
consumer.

Implementation notes
--------------------
We use `anyio.create_memory_object_stream` because:
- it is async-native,
- works across asyncio/trio backends,
- supports backpressure with bounded capacity.

Closing the send side alone does not wake senders that are already blocked on
a full buffer, so each blocked push runs inside its own cancel scope which
`close()` cancels.
"""

import math
from dataclasses import dataclass, field
from typing import Optional

import anyio
import anyio.abc

from .exceptions import MailboxClosed
from .messages import OutboundMessage

DEFAULT_CAPACITY = 2


@dataclass(slots=True, eq=False)
class Mailbox:
    """
    A bounded, closable, single-consumer queue backed by an AnyIO memory
    object stream.

    Parameters
    ----------
    capacity:
        Maximum number of pending messages before `push` blocks. If None,
        capacity is unbounded.
    """

    capacity: Optional[int] = DEFAULT_CAPACITY
    _send: anyio.abc.ObjectSendStream[OutboundMessage] = field(init=False)
    _recv: anyio.abc.ObjectReceiveStream[OutboundMessage] = field(init=False)
    _closed: bool = field(init=False, default=False)
    _blocked: set[anyio.CancelScope] = field(init=False, default_factory=set)
    _closed_event: Optional[anyio.Event] = field(init=False, default=None)

    def __post_init__(self) -> None:
        size = math.inf if self.capacity is None else self.capacity
        send, recv = anyio.create_memory_object_stream[OutboundMessage](size)
        self._send = send
        self._recv = recv
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of messages currently buffered."""
        return self._send.statistics().current_buffer_used

    async def push(self, message: OutboundMessage) -> None:
        """
        Enqueue a message, waiting while the mailbox is full.

        Raises
        ------
        MailboxClosed
            If the mailbox is already closed, or gets closed while the caller
            is waiting for space.
        """
        if self._closed:
            raise MailboxClosed("Mailbox is closed.")

        with anyio.CancelScope() as scope:
            self._blocked.add(scope)
            try:
                await self._send.send(message)
            except (anyio.ClosedResourceError, anyio.BrokenResourceError) as e:
                raise MailboxClosed("Mailbox is closed.") from e
            finally:
                self._blocked.discard(scope)

        if scope.cancelled_caught:
            raise MailboxClosed("Mailbox was closed while waiting for capacity.")

    async def pop(self) -> Optional[OutboundMessage]:
        """
        Dequeue the next message.

        Returns None once the mailbox is closed and every queued message has
        been handed out. Callers treat None as end-of-stream.
        """
        try:
            return await self._recv.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            self._recv.close()
            return None

    async def close(self) -> None:
        """
        Close the mailbox.

        Idempotent. Pending pushers are woken and fail with `MailboxClosed`;
        messages already queued stay available to `pop`.
        """
        if self._closed:
            return
        self._closed = True

        for scope in list(self._blocked):
            scope.cancel()
        self._blocked.clear()

        await self._send.aclose()

        if self._closed_event is not None:
            self._closed_event.set()

    async def wait_closed(self) -> None:
        """Wait until `close()` has been called, whatever is still queued."""
        if self._closed:
            return
        # Created lazily: anyio events need a running event loop.
        if self._closed_event is None:
            self._closed_event = anyio.Event()
        await self._closed_event.wait()
