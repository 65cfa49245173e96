"""
pytest plugin: one cloned database per test module

Registered through the pytest11 entry point. Modules opt in by requesting
the pgsandbox fixture, marking themselves with pytestmark = pytest.mark.pgsandbox,
or for the whole run with the pgsandbox_autouse ini option.
"""

import asyncio
import logging

import pytest

from .context import use_environment
from .session import DatabaseTestEnvironment

logger = logging.getLogger(__name__)


def pytest_addoption(parser):
    parser.addini(
        "pgsandbox_autouse",
        type="bool",
        default=False,
        help="Give every test module its own clone of the template database",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "pgsandbox: run the test module against its own cloned database"
    )


@pytest.fixture(scope="module")
def pgsandbox(request):
    """
    Clone the template database for the current test module.

    Setup and teardown share a private event loop because the
    administrative connection belongs to the loop it was opened on.
    """
    env = DatabaseTestEnvironment(str(request.path))
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(env.setup())
        with use_environment(env.get_isolated_environment()):
            yield env
        loop.run_until_complete(env.teardown())
    finally:
        loop.close()


@pytest.fixture(scope="module")
def pgsandbox_environ(pgsandbox):
    """Isolated environment of the current test module."""
    return pgsandbox.get_isolated_environment()


@pytest.fixture(scope="module")
def pgsandbox_database_name(pgsandbox):
    return pgsandbox.database_name


@pytest.fixture(autouse=True)
def _pgsandbox_autouse(request):
    if request.node.get_closest_marker("pgsandbox") or request.config.getini(
        "pgsandbox_autouse"
    ):
        request.getfixturevalue("pgsandbox")
