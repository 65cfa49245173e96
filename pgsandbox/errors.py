"""
pgsandbox Exception Classes
Provides clear, actionable error messages for setup and teardown failures.
"""

import re
from typing import Any, Dict, List, Optional


class SandboxError(Exception):
    """
    Base exception class for all pgsandbox errors.

    Provides structured error information and actionable guidance.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.suggestions = suggestions or []

        super().__init__(self._format_error_message())

    def _format_error_message(self) -> str:
        """Format a comprehensive error message."""
        lines = [f"pgsandbox Error [{self.error_code}]: {self.message}"]

        if self.context:
            lines.append("\nContext:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("\nSuggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  • {suggestion}")

        return "\n".join(lines)


def mask_dsn(dsn: str) -> str:
    """Mask password in a PostgreSQL DSN for logging and error output."""
    return re.sub(r"://([^:/@]+):([^@]+)@", r"://\1:***@", dsn)


class ConfigurationError(SandboxError):
    """Raised when required connection settings are missing or invalid."""

    def __init__(self, settings: List[str], reason: str):
        context = {"settings": ", ".join(settings), "reason": reason}

        suggestions = [
            "Set DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD and DB_DATABASE",
            "Check the .env file in the working directory",
            "Verify DB_PORT is a number between 1 and 65535",
        ]

        super().__init__(
            message=f"Invalid pgsandbox configuration: {reason}",
            error_code="CONFIGURATION_ERROR",
            context=context,
            suggestions=suggestions,
        )


class AdminConnectionError(SandboxError):
    """Raised when the administrative connection cannot be opened."""

    def __init__(self, original_error: Exception, dsn: Optional[str] = None):
        context = {
            "original_error": str(original_error),
            "error_type": type(original_error).__name__,
        }

        if dsn:
            context["dsn"] = mask_dsn(dsn)

        suggestions = [
            "Verify that PostgreSQL is running and accessible",
            "Check DB_HOST and DB_PORT",
            "Ensure the user can connect to the system database (DB_SYSTEM_DATABASE)",
        ]

        super().__init__(
            message="Failed to connect to the system database",
            error_code="ADMIN_CONNECTION_FAILED",
            context=context,
            suggestions=suggestions,
        )


class IdentifierError(SandboxError):
    """Raised when a database name is not safe to interpolate into SQL."""

    def __init__(self, name: Any, reason: str):
        super().__init__(
            message=f"Refusing to use database name {name!r}: {reason}",
            error_code="INVALID_IDENTIFIER",
            context={"name": repr(name), "reason": reason},
            suggestions=[
                "Test database names must be derived with derive_database_name()",
                "Do not overwrite DB_DATABASE inside the test module",
            ],
        )


class SessionStateError(SandboxError):
    """Raised when the handoff registry is used out of order."""

    def __init__(self, identity: str, reason: str):
        super().__init__(
            message=f"Invalid test session state for {identity}: {reason}",
            error_code="SESSION_STATE_ERROR",
            context={"identity": identity},
            suggestions=[
                "Each test file may only be set up once at a time per process",
            ],
        )


class ClonePreconditionError(SandboxError):
    """Raised when the template database cannot be cloned in its current state."""

    def __init__(self, template: str, original_error: Exception):
        context = {
            "template": template,
            "original_error": str(original_error),
            "error_type": type(original_error).__name__,
        }

        suggestions = [
            "Make sure the template database exists",
            "Close sessions that reconnect to the template database",
            "Do not run application code against the template during tests",
        ]

        super().__init__(
            message=f"Template database '{template}' cannot be cloned",
            error_code="CLONE_PRECONDITION_FAILED",
            context=context,
            suggestions=suggestions,
        )


class CloneError(SandboxError):
    """Raised when CREATE DATABASE ... TEMPLATE fails."""

    def __init__(self, database_name: str, template: str, original_error: Exception):
        context = {
            "database_name": database_name,
            "template": template,
            "original_error": str(original_error),
            "error_type": type(original_error).__name__,
        }

        suggestions = [
            f"Drop a leftover database from a crashed run: pgsandbox drop {database_name}",
            "Ensure the user has the CREATEDB privilege",
        ]

        super().__init__(
            message=f"Failed to create test database '{database_name}' from '{template}'",
            error_code="CLONE_FAILED",
            context=context,
            suggestions=suggestions,
        )


class TeardownError(SandboxError):
    """Raised when the test database cannot be dropped."""

    def __init__(self, database_name: str, original_error: Exception):
        context = {
            "database_name": database_name,
            "original_error": str(original_error),
            "error_type": type(original_error).__name__,
        }

        suggestions = [
            "Close every connection and pool the tests opened against the test database",
            "Dispose ORM engines in fixture teardown",
            f"Remove the orphan manually: pgsandbox drop {database_name}",
        ]

        super().__init__(
            message=f"Failed to drop test database '{database_name}'",
            error_code="TEARDOWN_FAILED",
            context=context,
            suggestions=suggestions,
        )
