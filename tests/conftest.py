"""
Shared fixtures for pgsandbox tests
"""

import os
from unittest.mock import AsyncMock, MagicMock

import pytest

import pgsandbox.settings
from pgsandbox.db.connection import ConnectionRegistry
from pgsandbox.settings import SandboxSettings

DB_ENV = {
    "DB_HOST": "localhost",
    "DB_PORT": "5432",
    "DB_USERNAME": "postgres",
    "DB_PASSWORD": "secret",
    "DB_DATABASE": "app_template",
}


@pytest.fixture
def clean_environment(monkeypatch, tmp_path):
    """Remove DB_* variables and any .env file from view, clear the settings cache."""
    for key in list(os.environ):
        if key.startswith("DB_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    pgsandbox.settings._settings = None
    yield monkeypatch
    pgsandbox.settings._settings = None


@pytest.fixture
def db_environment(clean_environment):
    """Complete DB_* configuration in the process environment."""
    for key, value in DB_ENV.items():
        clean_environment.setenv(key, value)
    return clean_environment


@pytest.fixture
def settings():
    return SandboxSettings(
        host="localhost",
        port=5432,
        username="postgres",
        password="secret",
        database="app_template",
        _env_file=None,
    )


@pytest.fixture
def registry():
    return ConnectionRegistry()


def make_connection():
    """asyncpg.Connection double with the coroutine methods pgsandbox uses."""
    conn = MagicMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock(return_value=True)
    conn.execute = AsyncMock(return_value="OK")
    conn.close = AsyncMock()
    return conn


@pytest.fixture
def connection():
    return make_connection()


@pytest.fixture
def connection_factory():
    return make_connection


@pytest.fixture
def db_env():
    """DB_* configuration as a plain mapping."""
    return dict(DB_ENV)
