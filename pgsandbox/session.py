"""
Per-test-file database lifecycle

DatabaseTestEnvironment wraps a host lifecycle object (anything with
async setup/teardown and get_isolated_environment) and adds the database
work around it:

    setup:    host setup, connect, quiesce template, clone, inject DB_* values
    teardown: host teardown, drop clone, close connection
"""

import logging
from typing import Dict, Optional, Protocol

import asyncpg

from .context import DATABASE_ENV_KEY, IsolatedContext
from .db.connection import ConnectionRegistry, get_registry, open_admin_connection
from .db.operations import clone_database, drop_database, terminate_template_connections
from .errors import SessionStateError
from .settings import SandboxSettings, get_settings
from .utils.naming import derive_database_name, validate_database_name

logger = logging.getLogger(__name__)


class HostEnvironment(Protocol):
    """Lifecycle capabilities consumed from the test runner."""

    async def setup(self) -> None: ...

    async def teardown(self) -> None: ...

    def get_isolated_environment(self) -> Dict[str, str]: ...


class DatabaseTestEnvironment:
    """
    Gives one test file its own clone of the template database.

    Usage:
        env = DatabaseTestEnvironment("/repo/tests/test_users.py")
        async with env:
            conn = await connect_test_database(env.get_isolated_environment())
            ...
            await conn.close()
    """

    def __init__(
        self,
        identity: str,
        host: Optional[HostEnvironment] = None,
        settings: Optional[SandboxSettings] = None,
        registry: Optional[ConnectionRegistry] = None,
    ):
        """
        Args:
            identity: Path of the test file; the database name derives from it
            host: Host lifecycle object. A fresh IsolatedContext if not provided.
            settings: Connection settings. Uses get_settings() if not provided.
            registry: Handoff registry. Uses the process-wide one if not provided.
        """
        self._identity = identity
        self._host = host if host is not None else IsolatedContext()
        self._settings = settings if settings is not None else get_settings()
        self._registry = registry if registry is not None else get_registry()
        self._database_name = derive_database_name(identity)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def settings(self) -> SandboxSettings:
        return self._settings

    def get_isolated_environment(self) -> Dict[str, str]:
        return self._host.get_isolated_environment()

    def dsn(self) -> str:
        """DSN of the test database."""
        return self._settings.dsn(self._database_name)

    async def setup(self) -> None:
        """
        Provision the test database.

        Errors from any step propagate. With rollback_on_failure enabled a
        clone created before the failure is dropped and the administrative
        connection is closed first.
        """
        await self._host.setup()

        if self._identity in self._registry:
            raise SessionStateError(self._identity, "test file is already set up")

        template = self._settings.database
        name = self._database_name
        logger.debug(f"Setting up {name} for {self._identity}")

        conn = await open_admin_connection(self._settings)
        created = False
        try:
            await terminate_template_connections(conn, template)
            await clone_database(conn, name, template)
            created = True

            # Host, port and credentials of the server holding the clone
            self.get_isolated_environment().update(
                self._settings.connection_environ(name)
            )
            self._registry.register(self._identity, conn)
        except Exception:
            if self._settings.rollback_on_failure:
                await self._rollback(conn, created)
            raise

        logger.info(f"Created test database {name} from template {template}")

    async def _rollback(self, conn: asyncpg.Connection, created: bool) -> None:
        name = self._database_name
        logger.warning(f"Setup of {name} failed, rolling back")
        if created:
            try:
                await drop_database(conn, name)
            except Exception as e:
                logger.error(f"Could not drop {name} during rollback: {e}")
        await self._close_quietly(conn)

    async def teardown(self) -> None:
        """
        Drop the test database and close the administrative connection.

        Safe to call more than once: a missing connection is replaced by a
        new one and the drop uses IF EXISTS. A connection that fails to
        close is logged so drop errors are the ones raised.
        """
        await self._host.teardown()

        conn = self._registry.pop(self._identity, None)
        if conn is None:
            logger.debug(
                f"No administrative connection registered for {self._identity}, opening one"
            )
            conn = await open_admin_connection(self._settings)

        try:
            name = self.get_isolated_environment().get(DATABASE_ENV_KEY, "")
            await drop_database(conn, validate_database_name(name))
        finally:
            await self._close_quietly(conn)

        logger.info(f"Dropped test database {name}")

    async def _close_quietly(self, conn: asyncpg.Connection) -> None:
        try:
            await conn.close()
        except Exception as e:
            logger.error(f"Could not close administrative connection: {e}")

    async def __aenter__(self) -> "DatabaseTestEnvironment":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.teardown()

    def __repr__(self) -> str:
        return (
            f"DatabaseTestEnvironment(identity={self._identity!r}, "
            f"database={self._database_name})"
        )
