import os
import tempfile

# logging writes to $ROOT_DIR/logs, keep it out of the working tree
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="docchat-tests-"))

import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


@pytest.fixture(scope="session")
def logger():
    return setup_logging(name="docchat_bridge_tests")


@pytest.fixture
def make_config(logger):
    """Build a HelperConfig from keyword settings instead of the process environment."""

    def _make(**settings) -> HelperConfig:
        return HelperConfig(logger=logger, environ={key.upper(): str(value) for key, value in settings.items()})

    return _make


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
