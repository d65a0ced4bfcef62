from __future__ import annotations

import logging
from typing import Optional

import uvicorn

from parley.conf import Settings, get_settings
from parley.contrib.starlette import create_app

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def uvicorn_options(settings: Settings) -> dict[str, object]:
    """Translate relay settings into `uvicorn.run` keyword arguments."""
    options: dict[str, object] = {
        "host": settings.host,
        "port": settings.port,
        "ws_ping_interval": settings.ping_interval,
        "log_level": settings.log_level.lower(),
    }
    if settings.tls:
        options["ssl_certfile"] = settings.ssl_certfile
        options["ssl_keyfile"] = settings.ssl_keyfile
    return options


def run(settings: Optional[Settings] = None) -> None:
    """Serve the relay until interrupted."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    scheme = "wss" if settings.tls else "ws"
    logger.info("Relay listening on %s://%s:%s%s", scheme, settings.host, settings.port, settings.path)

    uvicorn.run(create_app(settings=settings), **uvicorn_options(settings))
