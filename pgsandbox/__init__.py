"""
pgsandbox: per-test-file PostgreSQL databases cloned from a template

Each test module gets its own database created with
CREATE DATABASE ... TEMPLATE, so test files never see each other's writes.

pytest usage:

    import pytest
    import pgsandbox

    pytestmark = pytest.mark.pgsandbox

    async def test_users():
        conn = await pgsandbox.connect_test_database()
        try:
            assert await conn.fetchval("SELECT count(*) FROM users") == 3
        finally:
            await conn.close()

Programmatic usage:

    async with DatabaseTestEnvironment("/repo/tests/test_users.py") as env:
        print(env.get_isolated_environment()["DB_DATABASE"])

Connection settings are read from DB_HOST, DB_PORT, DB_USERNAME,
DB_PASSWORD and DB_DATABASE (the template).
"""

from .context import (
    DATABASE_ENV_KEY,
    IsolatedContext,
    connect_test_database,
    environ,
    getenv,
    use_environment,
)
from .db.connection import ConnectionRegistry, get_registry
from .errors import (
    AdminConnectionError,
    CloneError,
    ClonePreconditionError,
    ConfigurationError,
    IdentifierError,
    SandboxError,
    SessionStateError,
    TeardownError,
)
from .session import DatabaseTestEnvironment, HostEnvironment
from .settings import SandboxSettings, get_settings, reload_settings
from .utils.naming import derive_database_name, validate_database_name

__version__ = "0.1.0"

__all__ = [
    "DatabaseTestEnvironment",
    "HostEnvironment",
    "IsolatedContext",
    "ConnectionRegistry",
    "get_registry",
    "SandboxSettings",
    "get_settings",
    "reload_settings",
    "derive_database_name",
    "validate_database_name",
    "DATABASE_ENV_KEY",
    "connect_test_database",
    "environ",
    "getenv",
    "use_environment",
    # Errors
    "SandboxError",
    "ConfigurationError",
    "AdminConnectionError",
    "IdentifierError",
    "SessionStateError",
    "ClonePreconditionError",
    "CloneError",
    "TeardownError",
]
