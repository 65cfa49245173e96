"""
Utilities for deriving and escaping test database names.

Database names end up interpolated into CREATE/DROP DATABASE statements,
where bind parameters are not allowed. Names produced here are either
a fixed prefix plus a hex digest or double-quoted with embedded quotes
doubled.
"""

import hashlib
import re

from ..errors import IdentifierError

TEST_DATABASE_PREFIX = "test_"

# PostgreSQL truncates identifiers to NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_BYTES = 63

_TEST_DATABASE_NAME = re.compile(r"^test_[0-9a-f]{32}$")


def derive_database_name(identity: str) -> str:
    """
    Derive the test database name for a test file.

    The name is a pure function of the identity: the same test file path
    always maps to the same database, which makes leftovers from crashed
    runs easy to find.

    Args:
        identity: Path of the test file

    Returns:
        str: "test_" followed by the 32 character MD5 hex digest

    Examples:
        >>> derive_database_name("/repo/tests/test_users.py")
        'test_...'
    """
    digest = hashlib.md5(identity.encode("utf-8"), usedforsecurity=False)
    return TEST_DATABASE_PREFIX + digest.hexdigest()


def is_test_database_name(name: str) -> bool:
    """Check whether a name has the shape of a derived test database name."""
    return isinstance(name, str) and _TEST_DATABASE_NAME.match(name) is not None


def validate_database_name(name: str) -> str:
    """
    Validate a test database name against the allow-list pattern.

    Raises:
        IdentifierError: If the name is not "test_" plus 32 lowercase hex digits
    """
    if not is_test_database_name(name):
        raise IdentifierError(name, "expected 'test_' followed by 32 hex digits")
    return name


def quote_identifier(name: str) -> str:
    """
    Quote an identifier for direct interpolation into SQL.

    Used for names that come from configuration, such as the template.

    Raises:
        IdentifierError: If the name is empty, too long or contains NUL
    """
    if not isinstance(name, str) or not name:
        raise IdentifierError(name, "identifier must be a non-empty string")
    if "\x00" in name:
        raise IdentifierError(name, "identifier must not contain NUL characters")
    if len(name.encode("utf-8")) > MAX_IDENTIFIER_BYTES:
        raise IdentifierError(
            name, f"identifier is longer than {MAX_IDENTIFIER_BYTES} bytes"
        )
    return '"' + name.replace('"', '""') + '"'
