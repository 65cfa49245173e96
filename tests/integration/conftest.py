"""
Conftest for integration tests

These tests need a PostgreSQL server reachable through the DB_* settings
(DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD) and a role allowed to create
databases. They build their own template database and skip when the server
cannot be reached.
"""

import asyncio

import asyncpg
import pytest
from pydantic import ValidationError

from pgsandbox.db.connection import open_admin_connection
from pgsandbox.errors import SandboxError
from pgsandbox.settings import SandboxSettings

TEMPLATE_NAME = "pgsandbox_it_template"

TEMPLATE_SCHEMA = """
    CREATE TABLE users (id SERIAL PRIMARY KEY, email TEXT NOT NULL UNIQUE);
    INSERT INTO users (email) VALUES ('a@example.com'), ('b@example.com'), ('c@example.com');
    CREATE VIEW user_emails AS SELECT email FROM users;
"""


async def _create_template(settings: SandboxSettings):
    conn = await open_admin_connection(settings)
    try:
        await conn.execute(f'DROP DATABASE IF EXISTS "{TEMPLATE_NAME}"')
        await conn.execute(f'CREATE DATABASE "{TEMPLATE_NAME}"')
    finally:
        await conn.close()

    template = await open_admin_connection(
        settings.model_copy(update={"system_database": TEMPLATE_NAME})
    )
    try:
        await template.execute(TEMPLATE_SCHEMA)
    finally:
        await template.close()


async def _drop_template(settings: SandboxSettings):
    conn = await open_admin_connection(settings)
    try:
        await conn.execute(f'DROP DATABASE IF EXISTS "{TEMPLATE_NAME}"')
    finally:
        await conn.close()


@pytest.fixture(scope="session")
def integration_settings():
    """Settings pointing at a freshly built template, or skip."""
    try:
        settings = SandboxSettings(database=TEMPLATE_NAME)
    except ValidationError as e:
        pytest.skip(f"PostgreSQL settings not configured: {e}")

    try:
        asyncio.run(_create_template(settings))
    except (SandboxError, asyncpg.PostgresError) as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    yield settings

    asyncio.run(_drop_template(settings))
