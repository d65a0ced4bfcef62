from __future__ import annotations

"""
RelayHub: the shared state behind every session.

The hub is the runtime entry-point used by the server shell. It owns:
- the registry of connected clients,
- relay-wide metrics and dead letters,
- the per-session settings (mailbox capacity, idle timeout, frame limit,
  write timeout).

It holds no task group of its own; the server runs one `serve(link)` call per
accepted connection and the session's tasks live inside that call.
"""

from typing import Any, Callable, Optional

from .deadletters import DeadLetter, DeadLetters
from .link import Link
from .mailbox import DEFAULT_CAPACITY
from .metrics import RelayMetrics
from .registry import Registry
from .session import Session


class RelayHub:
    """Root container shared by all sessions of one relay."""

    def __init__(
        self,
        *,
        registry: Optional[Registry] = None,
        mailbox_capacity: Optional[int] = DEFAULT_CAPACITY,
        idle_timeout: Optional[float] = None,
        max_frame_size: Optional[int] = None,
        write_timeout: Optional[float] = None,
        dead_letter_limit: int = 1000,
        on_dead_letter: Optional[Callable[[DeadLetter], None]] = None,
    ) -> None:
        self.registry = registry if registry is not None else Registry()
        self.metrics = RelayMetrics()
        self.dead_letters = DeadLetters(limit=dead_letter_limit, on_dead_letter=on_dead_letter)

        self._mailbox_capacity = mailbox_capacity
        self._idle_timeout = idle_timeout
        self._max_frame_size = max_frame_size
        self._write_timeout = write_timeout

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> "RelayHub":
        """Build a hub from a settings object (see `parley.conf.global_settings`)."""
        return cls(
            mailbox_capacity=settings.mailbox_capacity,
            idle_timeout=settings.idle_timeout,
            max_frame_size=settings.max_frame_size,
            write_timeout=settings.write_timeout,
            dead_letter_limit=settings.dead_letter_limit,
            **kwargs,
        )

    def session(self, link: Link) -> Session:
        return Session(
            link,
            self.registry,
            mailbox_capacity=self._mailbox_capacity,
            idle_timeout=self._idle_timeout,
            max_frame_size=self._max_frame_size,
            write_timeout=self._write_timeout,
            metrics=self.metrics,
            dead_letters=self.dead_letters,
        )

    async def serve(self, link: Link) -> Session:
        """
        Run a session for an accepted link until it closes.

        Returns the finished session, mostly for inspection in tests.
        """
        session = self.session(link)
        self.metrics.connections_opened += 1
        await session.run()
        return session

    def stats(self) -> dict[str, int]:
        """Metrics snapshot plus the number of currently registered clients."""
        data = dict(self.metrics.snapshot())
        data["active_clients"] = len(self.registry)
        return data
