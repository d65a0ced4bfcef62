from __future__ import annotations

from typing import Any, Optional

import click
from pydantic import ValidationError

from parley import __version__
from parley.conf import Settings, get_settings
from parley import server

help = """
Parley relay command line.

Run the WebSocket relay or inspect the configuration it would use. Options
given on the command line take precedence over `PARLEY_*` environment
variables.
"""


def _settings_with(overrides: dict[str, Any]) -> Settings:
    """
    Merge non-empty command line overrides into the environment settings.

    Raises
    ------
    click.BadParameter
        If the resulting configuration does not validate.
    """
    values = get_settings().model_dump()
    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return Settings(**values)
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e


@click.group(help=help)
@click.version_option(__version__, prog_name="parley")
def app() -> None:
    """Parley relay."""


@app.command()
@click.option("--host", default=None, help="Interface to bind.")
@click.option("--port", type=int, default=None, help="Port to bind.")
@click.option("--path", default=None, help="WebSocket upgrade path.")
@click.option("--tls/--no-tls", default=None, help="Serve over TLS.")
@click.option("--certfile", "ssl_certfile", default=None, help="TLS certificate file.")
@click.option("--keyfile", "ssl_keyfile", default=None, help="TLS private key file.")
@click.option("--mailbox-capacity", type=int, default=None, help="Pending messages per client.")
@click.option("--idle-timeout", type=float, default=None, help="Close clients idle for this many seconds.")
@click.option("--write-timeout", type=float, default=None, help="Fail writes that take longer than this many seconds.")
@click.option("--log-level", default=None, help="Logging level.")
def serve(**overrides: Optional[Any]) -> None:
    """
    Start the relay server.

    Blocks until interrupted.
    """
    settings = _settings_with(overrides)
    server.run(settings)


@app.command(name="config")
def show_config() -> None:
    """Print the effective settings."""
    for key, value in get_settings().model_dump().items():
        click.echo(f"{key}: {value}")


def main() -> None:
    app()
