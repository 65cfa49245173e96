"""
Isolated environment for test modules

Each test module sees its own copy of the process environment. The copy
is taken when the host context is set up and made active through a
context variable, so code under test reads connection parameters with
pgsandbox.getenv() and gets the test database while os.environ keeps
pointing at the template.
"""

import contextvars
import logging
import os
from contextlib import contextmanager
from typing import Dict, Iterator, Mapping, Optional

import asyncpg

logger = logging.getLogger(__name__)

DATABASE_ENV_KEY = "DB_DATABASE"

# Environment view of the test module currently running
_context_environ: contextvars.ContextVar[Optional[Mapping[str, str]]] = (
    contextvars.ContextVar("pgsandbox_environ", default=None)
)


class IsolatedContext:
    """
    Host lifecycle object owning one isolated environment.

    Provides the setup/teardown/get_isolated_environment capabilities that
    DatabaseTestEnvironment layers its provisioning on.
    """

    def __init__(self, base_environ: Optional[Mapping[str, str]] = None):
        self._base_environ = base_environ
        self._environ: Optional[Dict[str, str]] = None
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def setup(self) -> None:
        """Snapshot the process environment."""
        source = os.environ if self._base_environ is None else self._base_environ
        self._environ = dict(source)
        self._closed = False
        logger.debug("Isolated environment created")

    async def teardown(self) -> None:
        # The snapshot stays readable; teardown of the database needs it
        self._closed = True
        logger.debug("Isolated environment closed")

    def get_isolated_environment(self) -> Dict[str, str]:
        if self._environ is None:
            raise RuntimeError("Isolated environment accessed before setup()")
        return self._environ

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"IsolatedContext({state})"


@contextmanager
def use_environment(mapping: Mapping[str, str]) -> Iterator[Mapping[str, str]]:
    """
    Make a mapping the active environment view for the enclosed code.

    Usage:
        with use_environment(env.get_isolated_environment()):
            assert getenv("DB_DATABASE") == env.database_name
    """
    token = _context_environ.set(mapping)
    try:
        yield mapping
    finally:
        _context_environ.reset(token)


def environ() -> Mapping[str, str]:
    """Get the active environment view, falling back to os.environ."""
    active = _context_environ.get(None)
    if active is not None:
        return active
    return os.environ


def getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    return environ().get(key, default)


async def connect_test_database(
    env: Optional[Mapping[str, str]] = None,
) -> asyncpg.Connection:
    """
    Connect to the database named in an environment view.

    Inside a test module using the pgsandbox fixture this is the clone.
    The caller owns the connection and must close it before the module
    finishes, otherwise dropping the clone fails.

    Args:
        env: Environment mapping. Uses the active view if not provided.
    """
    env = environ() if env is None else env
    return await asyncpg.connect(
        host=env["DB_HOST"],
        port=int(env["DB_PORT"]),
        user=env["DB_USERNAME"],
        password=env["DB_PASSWORD"],
        database=env[DATABASE_ENV_KEY],
    )
