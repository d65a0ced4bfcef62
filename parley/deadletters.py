from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional

from .identity import ClientIdentity
from .messages import OutboundMessage

logger = logging.getLogger(__name__)

DeadLetterReason = Literal["unknown-recipient", "mailbox-closed"]


@dataclass(frozen=True, slots=True)
class DeadLetter:
    """
    A message that could not be delivered.

    Delivery is best-effort and senders are never told about failures. Dead
    letters exist for diagnostics and observability only.
    """

    target: ClientIdentity
    message: OutboundMessage
    reason: DeadLetterReason
    when: float

    @property
    def sender(self) -> ClientIdentity:
        return self.message.sender


@dataclass(slots=True)
class DeadLetters:
    """
    Bounded buffer of the most recent dead letters.

    Parameters
    ----------
    limit:
        Maximum number of dead letters kept. Older entries are discarded.
    on_dead_letter:
        Optional hook called for every dead letter. Errors raised by the hook
        are logged and never reach the session that dropped the message.
    """

    limit: int = 1000
    on_dead_letter: Optional[Callable[[DeadLetter], None]] = None
    _messages: deque[DeadLetter] = field(init=False)

    def __post_init__(self) -> None:
        self._messages = deque(maxlen=self.limit)

    @property
    def messages(self) -> list[DeadLetter]:
        return list(self._messages)

    def emit(
        self,
        target: ClientIdentity,
        message: OutboundMessage,
        reason: DeadLetterReason,
    ) -> DeadLetter:
        dl = DeadLetter(target=target, message=message, reason=reason, when=time.time())
        self._messages.append(dl)

        if self.on_dead_letter is not None:
            try:
                self.on_dead_letter(dl)
            except Exception:
                logger.exception("on_dead_letter hook failed")
        return dl

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
