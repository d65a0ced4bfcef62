from __future__ import annotations
"""
Connection sessions.

A session owns one client link for its whole life. It goes through

    AWAITING_IDENTITY -> ACTIVE -> CLOSING -> CLOSED

and, while ACTIVE, runs in one task group:

- the reader loop (the host task), which receives frames and routes them into
  other clients' mailboxes;
- the forwarder, which drains this client's own mailbox into its link;
- a watcher that ends the session when another session closes its mailbox
  (eviction).

Whichever side stops first, CLOSING closes the mailbox, deregisters and closes
the link before anything waits on the forwarder. A write that never completes
therefore cannot keep a finished session registered.
"""

import logging
from enum import Enum
from typing import Optional

import anyio

from .deadletters import DeadLetterReason, DeadLetters
from .exceptions import MailboxClosed, MalformedPayload, TransportError
from .identity import ClientIdentity
from .link import Link
from .mailbox import DEFAULT_CAPACITY, Mailbox
from .messages import Registration, encode_outbound, parse_registration
from .metrics import RelayMetrics
from .registry import Registry
from .router import MALFORMED, CloseRequested, Forward, Ignore, route

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    AWAITING_IDENTITY = "awaiting_identity"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


class Session:
    """
    Lifecycle and task pair for one client connection.

    Parameters
    ----------
    link:
        The client's duplex link.
    registry:
        Shared client directory. The same instance is handed to every session.
    mailbox_capacity:
        Capacity of the mailbox created at registration.
    idle_timeout:
        Seconds without an inbound frame after which the session closes.
        None disables the timeout.
    max_frame_size:
        Largest accepted inbound frame, in UTF-8 bytes. Larger frames are
        treated as a transport error. None disables the check.
    write_timeout:
        Seconds a single outbound write may take before it counts as a
        transport error. None waits forever.
    metrics:
        Counters to update. A private instance is used when omitted.
    dead_letters:
        Sink for undeliverable messages. A private instance is used when
        omitted.
    """

    def __init__(
        self,
        link: Link,
        registry: Registry,
        *,
        mailbox_capacity: Optional[int] = DEFAULT_CAPACITY,
        idle_timeout: Optional[float] = None,
        max_frame_size: Optional[int] = None,
        write_timeout: Optional[float] = None,
        metrics: Optional[RelayMetrics] = None,
        dead_letters: Optional[DeadLetters] = None,
    ) -> None:
        self._link = link
        self._registry = registry
        self._mailbox_capacity = mailbox_capacity
        self._idle_timeout = idle_timeout
        self._max_frame_size = max_frame_size
        self._write_timeout = write_timeout
        self._metrics = metrics if metrics is not None else RelayMetrics()
        self._dead_letters = dead_letters if dead_letters is not None else DeadLetters()

        self.state = SessionState.AWAITING_IDENTITY
        self.identity: ClientIdentity | None = None
        self.mailbox: Mailbox | None = None
        self._released = False

    async def run(self) -> None:
        """
        Drive the session until the connection is finished.

        Returns once the session is CLOSED. Transport failures and malformed
        input end this session only; they are never raised from here.
        """
        try:
            identity = await self._await_identity()
            if identity is None:
                return

            mailbox = await self._register(identity)
            self.state = SessionState.ACTIVE

            async with anyio.create_task_group() as tg:
                tg.start_soon(self._forward, mailbox, tg.cancel_scope)
                tg.start_soon(self._watch_eviction, mailbox, tg.cancel_scope)
                await self._read_loop(identity)
                await self._release()
                # The link is gone; a forwarder still inside `send` has
                # nothing left to deliver to.
                tg.cancel_scope.cancel()
        finally:
            await self._teardown()

    async def _await_identity(self) -> Optional[ClientIdentity]:
        try:
            frame = await self._receive()
        except TransportError as e:
            self._metrics.transport_errors += 1
            logger.info("Connection failed before registration: %s", e)
            return None

        if not frame:
            return None

        try:
            registration = parse_registration(frame)
        except MalformedPayload as e:
            self._metrics.malformed_frames += 1
            logger.warning("Rejecting connection with invalid registration: %s", e)
            return None

        return registration.identity

    async def _register(self, identity: ClientIdentity) -> Mailbox:
        mailbox = Mailbox(capacity=self._mailbox_capacity)
        previous = await self._registry.register(identity, mailbox)

        self.identity = identity
        self.mailbox = mailbox
        self._metrics.registrations += 1
        logger.info("Registered %s", identity)

        if previous is not None:
            # Closing the old mailbox ends the old forwarder, which in turn
            # stops the old session.
            self._metrics.evictions += 1
            logger.info("Evicting previous session of %s", identity)
            await previous.close()

        return mailbox

    async def _read_loop(self, identity: ClientIdentity) -> None:
        while True:
            try:
                frame = await self._receive()
            except TransportError as e:
                self._metrics.transport_errors += 1
                logger.info("Transport error on %s: %s", identity, e)
                return

            if not frame:
                return

            outcome = route(frame, identity)

            if isinstance(outcome, CloseRequested):
                logger.info("%s requested close", identity)
                return

            if isinstance(outcome, Forward):
                await self._deliver(outcome)
            elif isinstance(outcome, Registration):
                logger.debug("Ignoring repeated registration on %s", identity)
            elif isinstance(outcome, Ignore) and outcome.reason == MALFORMED:
                self._metrics.malformed_frames += 1
                logger.debug("Dropping malformed frame from %s", identity)

    async def _deliver(self, outcome: Forward) -> None:
        target = await self._registry.lookup(outcome.to)
        if target is None:
            self._drop(outcome, "unknown-recipient")
            return

        try:
            await target.push(outcome.message)
        except MailboxClosed:
            self._drop(outcome, "mailbox-closed")
            return

        self._metrics.messages_forwarded += 1

    def _drop(self, outcome: Forward, reason: DeadLetterReason) -> None:
        self._metrics.messages_dropped += 1
        self._dead_letters.emit(outcome.to, outcome.message, reason)
        logger.debug("Dropped message for %s (%s)", outcome.to, reason)

    async def _forward(self, mailbox: Mailbox, scope: anyio.CancelScope) -> None:
        try:
            while True:
                message = await mailbox.pop()
                if message is None:
                    break
                await self._send(encode_outbound(message))
        except TransportError as e:
            self._metrics.transport_errors += 1
            logger.info("Failed to deliver to %s: %s", self.identity, e)
        finally:
            scope.cancel()

    async def _send(self, text: str) -> None:
        try:
            with anyio.fail_after(self._write_timeout):
                await self._link.send(text)
        except TimeoutError as e:
            raise TransportError(f"Write timed out after {self._write_timeout} seconds.") from e

    async def _watch_eviction(self, mailbox: Mailbox, scope: anyio.CancelScope) -> None:
        await mailbox.wait_closed()
        if not self._released:
            logger.info("Session of %s was replaced", self.identity)
        await self._release()
        scope.cancel()

    async def _receive(self) -> Optional[str]:
        frame: Optional[str] = None

        if self._idle_timeout is None:
            frame = await self._link.receive()
        else:
            with anyio.move_on_after(self._idle_timeout) as timeout:
                frame = await self._link.receive()
            if timeout.cancelled_caught:
                logger.info("Closing idle session %s", self.identity or "<unregistered>")
                return None

        if (
            frame is not None
            and self._max_frame_size is not None
            and len(frame.encode("utf-8")) > self._max_frame_size
        ):
            raise TransportError(f"Frame exceeds {self._max_frame_size} bytes.")
        return frame

    async def _release(self) -> None:
        """Close the mailbox, leave the registry and close the link, once."""
        if self._released:
            return
        self._released = True
        self.state = SessionState.CLOSING

        with anyio.CancelScope(shield=True):
            if self.mailbox is not None and self.identity is not None:
                await self.mailbox.close()
                await self._registry.deregister(self.identity, self.mailbox)
            await self._link.close()

    async def _teardown(self) -> None:
        await self._release()
        self.state = SessionState.CLOSED
        self._metrics.connections_closed += 1
        if self.identity is not None:
            logger.info("Session of %s closed", self.identity)
