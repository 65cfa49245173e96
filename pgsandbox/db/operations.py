"""
SQL operations run over the administrative connection

Database names cannot be bound as query parameters, so every name is
validated or quoted before it is interpolated.
"""

import logging
from typing import List

import asyncpg

from ..errors import CloneError, ClonePreconditionError, TeardownError
from ..utils.naming import quote_identifier, validate_database_name

logger = logging.getLogger(__name__)

TERMINATE_CONNECTIONS_SQL = """
    SELECT pg_terminate_backend(pg_stat_activity.pid)
    FROM pg_stat_activity
    WHERE pg_stat_activity.datname = $1
      AND pid <> pg_backend_pid()
"""

DATABASE_EXISTS_SQL = "SELECT EXISTS (SELECT 1 FROM pg_database WHERE datname = $1)"

LIST_TEST_DATABASES_SQL = r"""
    SELECT datname FROM pg_database
    WHERE datname ~ '^test_[0-9a-f]{32}$'
    ORDER BY datname
"""


async def terminate_template_connections(
    conn: asyncpg.Connection, template: str
) -> int:
    """
    Terminate every other session connected to the template database.

    CREATE DATABASE ... TEMPLATE requires that nobody else is connected
    to the source. Sessions opened after this call can still make the
    clone fail.

    Returns:
        int: Number of backends that were signalled
    """
    rows = await conn.fetch(TERMINATE_CONNECTIONS_SQL, template)
    logger.debug(f"Terminated {len(rows)} connection(s) to template {template}")
    return len(rows)


async def clone_database(conn: asyncpg.Connection, name: str, template: str) -> None:
    """
    Create a test database from the template.

    Copies schema, data and sequence positions.

    Raises:
        ClonePreconditionError: Template is missing or still has sessions
        CloneError: Name collision, missing privilege or any other failure
    """
    statement = (
        f"CREATE DATABASE {quote_identifier(validate_database_name(name))} "
        f"TEMPLATE {quote_identifier(template)}"
    )
    logger.debug(f"Creating test database {name} from template {template}")
    try:
        await conn.execute(statement)
    except (
        asyncpg.exceptions.ObjectInUseError,
        asyncpg.exceptions.InvalidCatalogNameError,
    ) as e:
        raise ClonePreconditionError(template, e) from e
    except asyncpg.PostgresError as e:
        raise CloneError(name, template, e) from e


async def drop_database(conn: asyncpg.Connection, name: str) -> None:
    """
    Drop a test database if it exists.

    Dropping a database that is already gone is not an error.

    Raises:
        TeardownError: If the drop fails, usually because connections remain
    """
    statement = f"DROP DATABASE IF EXISTS {quote_identifier(validate_database_name(name))}"
    logger.debug(f"Dropping test database {name}")
    try:
        await conn.execute(statement)
    except asyncpg.PostgresError as e:
        raise TeardownError(name, e) from e


async def database_exists(conn: asyncpg.Connection, name: str) -> bool:
    return await conn.fetchval(DATABASE_EXISTS_SQL, name)


async def list_test_databases(conn: asyncpg.Connection) -> List[str]:
    """List databases on the server whose names look like derived test names."""
    rows = await conn.fetch(LIST_TEST_DATABASES_SQL)
    return [row["datname"] for row in rows]
