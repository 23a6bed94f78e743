import os

import platformdirs
import pytest
from async_test_utils import (
    API_PREFIX,
    TEST_API_KEY,
    TEST_API_SECRET,
    FakeClock,
)

from amo_submit.config import ENV_VARS, ClientConfig
from amo_submit.constants import LOG_LEVEL_ENV_VAR
from amo_submit.submit.interfaces import Credentials

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Mock AuthenticatedTransport.request."
)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG` explaining that network access is blocked.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """
    Register the markers used across the suite.
    """
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test (auto-detected)"
    )
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line("markers", "integration: multi-component workflow tests")
    config.addinivalue_line("markers", "core_submit: submission pipeline tests")
    config.addinivalue_line("markers", "user_interface: CLI tests")


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point the per-user config dir at a temp directory and clear credential variables.

    Variables set by python-dotenv during a test are removed again at teardown so
    they cannot leak into later tests.
    """
    base = tmp_path_factory.mktemp("amo_submit")
    config_dir = base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)

    yield config_dir

    for var in ENV_VARS.values():
        os.environ.pop(var, None)


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing aiohttp entry points.
    """
    try:
        import aiohttp  # type: ignore[import-not-found]

        aiohttp.request = _async_block_network
        aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
        aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
        aiohttp.ClientSession.post = _async_block_network  # type: ignore[assignment]
    except ImportError:
        pass


@pytest.fixture
def fake_clock():
    """Provide a FakeClock starting at t=0."""
    return FakeClock()


@pytest.fixture
def credentials():
    return Credentials(TEST_API_KEY, TEST_API_SECRET)


@pytest.fixture
def client_config(tmp_path, mocker):
    """
    Provide a ClientConfig with short intervals, a mock logger and tmp_path as download dir.
    """
    return ClientConfig(
        api_key=TEST_API_KEY,
        api_secret=TEST_API_SECRET,
        api_url_prefix=API_PREFIX,
        validation_check_interval=1,
        validation_check_timeout=5,
        approval_check_interval=1,
        approval_check_timeout=10,
        logger=mocker.MagicMock(),
        download_dir=tmp_path,
    )
