from __future__ import annotations

"""
Starlette server shell.

Accepts WebSocket connections on the configured path, wraps each one in a
`StarletteLink` and hands it to `RelayHub.serve`. Also exposes small JSON
health and metrics endpoints.
"""

import logging
from typing import Any, Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect

from parley.conf import Settings, get_settings
from parley.exceptions import TransportError
from parley.hub import RelayHub

logger = logging.getLogger(__name__)


class StarletteLink:
    """`Link` implementation over an accepted Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._closed = False

    async def receive(self) -> Optional[str]:
        if self._closed:
            return None

        try:
            message = await self._websocket.receive()
        except RuntimeError as e:
            raise TransportError(str(e)) from e

        if message["type"] == "websocket.disconnect":
            self._closed = True
            return None

        text = message.get("text")
        if text is not None:
            return text

        data = message.get("bytes") or b""
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TransportError("Binary frame is not valid UTF-8.") from e

    async def send(self, text: str) -> None:
        if self._closed:
            raise TransportError("Link is closed.")
        try:
            await self._websocket.send_text(text)
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            raise TransportError(str(e)) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._websocket.close()
        except (RuntimeError, OSError) as e:
            # Peer is already gone.
            logger.debug("Ignoring error while closing websocket: %s", e)


async def relay_endpoint(websocket: WebSocket) -> None:
    hub: RelayHub = websocket.app.state.hub

    await websocket.accept()
    link = StarletteLink(websocket)
    try:
        await hub.serve(link)
    except Exception:
        logger.exception("Relay session failed")
        await link.close()


async def healthz(request: Request) -> JSONResponse:
    hub: RelayHub = request.app.state.hub
    return JSONResponse({"status": "ok", "active_clients": len(hub.registry)})


async def metrics(request: Request) -> JSONResponse:
    hub: RelayHub = request.app.state.hub
    return JSONResponse(hub.stats())


def create_app(
    hub: Optional[RelayHub] = None,
    settings: Optional[Settings] = None,
    **kwargs: Any,
) -> Starlette:
    """
    Build the relay ASGI application.

    Parameters
    ----------
    hub:
        Hub shared by every connection. Built from `settings` when omitted.
    settings:
        Defaults to the process-wide settings.
    kwargs:
        Extra keyword arguments forwarded to `Starlette(...)`.
    """
    settings = settings or get_settings()
    hub = hub or RelayHub.from_settings(settings)

    app = Starlette(
        routes=[
            WebSocketRoute(settings.path, relay_endpoint),
            Route(settings.health_path, healthz),
            Route(settings.metrics_path, metrics),
        ],
        **kwargs,
    )
    app.state.hub = hub
    return app
