"""
Tests for the administrative connection and the handoff registry.
"""

import asyncio
import threading
from unittest.mock import AsyncMock, patch

import asyncpg
import pytest

import pgsandbox.db.connection
from pgsandbox.db.connection import ConnectionRegistry, get_registry, open_admin_connection
from pgsandbox.errors import AdminConnectionError, SessionStateError


class TestOpenAdminConnection:
    async def test_connects_to_system_database(self, settings, connection_factory):
        conn = connection_factory()
        with patch("asyncpg.connect", AsyncMock(return_value=conn)) as connect:
            result = await open_admin_connection(settings)

        assert result is conn
        connect.assert_awaited_once_with(**settings.connect_kwargs())
        assert connect.await_args.kwargs["database"] == "postgres"

    @pytest.mark.parametrize(
        "failure",
        [
            ConnectionRefusedError("refused"),
            asyncio.TimeoutError(),
            asyncpg.exceptions.InvalidPasswordError("bad password"),
            asyncpg.exceptions.InvalidCatalogNameError("no such database"),
        ],
    )
    async def test_failures_become_admin_connection_errors(self, settings, failure):
        with patch("asyncpg.connect", AsyncMock(side_effect=failure)):
            with pytest.raises(AdminConnectionError) as exc_info:
                await open_admin_connection(settings)

        assert exc_info.value.__cause__ is failure
        assert "secret" not in str(exc_info.value)


class TestConnectionRegistry:
    def test_register_and_pop(self, registry, connection_factory):
        conn = connection_factory()
        registry.register("/repo/tests/test_a.py", conn)

        assert "/repo/tests/test_a.py" in registry
        assert len(registry) == 1
        assert registry.get("/repo/tests/test_a.py") is conn
        assert registry.pop("/repo/tests/test_a.py") is conn
        assert len(registry) == 0

    def test_duplicate_registration_rejected(self, registry, connection_factory):
        registry.register("/repo/tests/test_a.py", connection_factory())

        with pytest.raises(SessionStateError):
            registry.register("/repo/tests/test_a.py", connection_factory())

    def test_pop_missing_raises(self, registry):
        with pytest.raises(SessionStateError):
            registry.pop("/repo/tests/test_missing.py")

    def test_pop_missing_with_default(self, registry):
        assert registry.pop("/repo/tests/test_missing.py", None) is None

    def test_get_missing(self, registry):
        assert registry.get("/repo/tests/test_missing.py") is None

    def test_identities_are_kept_apart(self, registry, connection_factory):
        conn_a, conn_b = connection_factory(), connection_factory()
        registry.register("/repo/tests/test_a.py", conn_a)
        registry.register("/repo/tests/test_b.py", conn_b)

        assert sorted(registry.identities()) == [
            "/repo/tests/test_a.py",
            "/repo/tests/test_b.py",
        ]
        assert registry.pop("/repo/tests/test_b.py") is conn_b
        assert registry.get("/repo/tests/test_a.py") is conn_a

    def test_concurrent_registration(self, registry, connection_factory):
        def worker(i):
            registry.register(f"/repo/tests/test_{i}.py", connection_factory())

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 20


class TestGlobalRegistry:
    def test_global_registry_is_shared(self, monkeypatch):
        monkeypatch.setattr(pgsandbox.db.connection, "_registry", None)

        first = get_registry()

        assert isinstance(first, ConnectionRegistry)
        assert get_registry() is first
