"""
CLI Color and Styling Utilities
Provides colored status output for pgsandbox CLI commands.
"""

import os
import sys


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"


def supports_color() -> bool:
    """
    Check if the terminal supports color output.

    Returns:
        True if color is supported, False otherwise
    """
    if os.environ.get("NO_COLOR"):
        return False

    if os.environ.get("FORCE_COLOR"):
        return True

    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False

    term = os.environ.get("TERM", "").lower()
    return term not in ("dumb", "unknown")


def colorize(text: str, color: str, bold: bool = False) -> str:
    """Colorize text if color is supported."""
    if not supports_color():
        return text

    prefix = Colors.BOLD + color if bold else color
    return f"{prefix}{text}{Colors.RESET}"


class StatusIcon:
    """Status icons for CLI output."""

    @staticmethod
    def success() -> str:
        return colorize("✓", Colors.GREEN, bold=True) if supports_color() else "[OK]"

    @staticmethod
    def error() -> str:
        return colorize("✗", Colors.RED, bold=True) if supports_color() else "[ERROR]"

    @staticmethod
    def warning() -> str:
        return colorize("⚠", Colors.YELLOW, bold=True) if supports_color() else "[WARNING]"

    @staticmethod
    def info() -> str:
        return colorize("ℹ", Colors.BLUE, bold=True) if supports_color() else "[INFO]"


def print_status(message: str, status: str = "info"):
    """
    Print a status message with appropriate styling.

    Args:
        message: Message to print
        status: Status type (success, error, warning, info)
    """
    icon_map = {
        "success": StatusIcon.success,
        "error": StatusIcon.error,
        "warning": StatusIcon.warning,
        "info": StatusIcon.info,
    }

    icon = icon_map.get(status, StatusIcon.info)()

    print(f"{icon} {message}")
