import pytest
from click.testing import CliRunner

from parley.cli.app import app
from parley.conf import get_settings
from parley.hub import RelayHub


class CliClient:
    """Invoke the parley CLI in-process, the way a shell would."""

    def __init__(self) -> None:
        self._runner = CliRunner()

    def invoke(self, args: str):
        return self._runner.invoke(app, args)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def hub() -> RelayHub:
    return RelayHub()


@pytest.fixture
def cli() -> CliClient:
    return CliClient()
