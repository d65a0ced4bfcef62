from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Link(Protocol):
    """
    Frame-level view of one client connection.

    The relay core never touches sockets or wire bytes; the server shell hands
    every session an object implementing this protocol.

    Usage
    -----
    receive()
        Return the next text frame, or None once the peer has gone away.
        Raises `TransportError` on failure.
    send(text)
        Write one text frame. Raises `TransportError` on failure.
    close()
        Close the connection. Must be idempotent.
    """

    async def receive(self) -> Optional[str]: ...

    async def send(self, text: str) -> None: ...

    async def close(self) -> None: ...
