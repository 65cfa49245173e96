"""
Administrative connection management and the process-wide handoff registry
"""

import asyncio
import logging
import threading
from typing import Dict, List, Optional

import asyncpg

from ..errors import AdminConnectionError, SessionStateError
from ..settings import SandboxSettings

logger = logging.getLogger(__name__)

_MISSING = object()


async def open_admin_connection(settings: SandboxSettings) -> asyncpg.Connection:
    """
    Open a connection to the system database.

    CREATE DATABASE and DROP DATABASE cannot target the database the
    issuing session is connected to, so they run from here.

    Raises:
        AdminConnectionError: If the server cannot be reached or refuses the login
    """
    logger.debug(
        f"Connecting to system database {settings.system_database} "
        f"at {settings.host}:{settings.port} as {settings.username}"
    )
    try:
        return await asyncpg.connect(**settings.connect_kwargs())
    except (
        OSError,
        asyncio.TimeoutError,
        asyncpg.PostgresError,
        asyncpg.InterfaceError,
    ) as e:
        raise AdminConnectionError(e, settings.dsn()) from e


class ConnectionRegistry:
    """
    Hands administrative connections from setup to teardown.

    The object running teardown is not necessarily the one that ran setup,
    so connections are parked here keyed by test file identity.
    """

    def __init__(self):
        self._connections: Dict[str, asyncpg.Connection] = {}
        self._lock = threading.Lock()

    def register(self, identity: str, connection: asyncpg.Connection) -> None:
        """Park a connection for a test file. Each identity holds at most one."""
        with self._lock:
            if identity in self._connections:
                raise SessionStateError(
                    identity, "an administrative connection is already registered"
                )
            self._connections[identity] = connection
        logger.debug(f"Registered administrative connection for {identity}")

    def get(self, identity: str) -> Optional[asyncpg.Connection]:
        with self._lock:
            return self._connections.get(identity)

    def pop(self, identity: str, default=_MISSING):
        """Remove and return the connection for a test file."""
        with self._lock:
            if identity in self._connections:
                return self._connections.pop(identity)
        if default is _MISSING:
            raise SessionStateError(
                identity, "no administrative connection is registered"
            )
        return default

    def identities(self) -> List[str]:
        with self._lock:
            return list(self._connections)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __repr__(self) -> str:
        return f"ConnectionRegistry(identities={self.identities()})"


# Global registry shared by every test environment in the process
_registry: Optional[ConnectionRegistry] = None


def get_registry() -> ConnectionRegistry:
    """Get the process-wide connection registry, creating it on first use."""
    global _registry
    if _registry is None:
        _registry = ConnectionRegistry()
    return _registry
