"""
pgsandbox CLI - inspect and clean up per-test-file databases
"""

import argparse
import asyncio
import inspect
import logging

from .colors import print_status
from .commands.cleanup import add_cleanup_commands
from .commands.names import add_name_command
from ..errors import SandboxError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgsandbox",
        description="pgsandbox CLI - per-test-file PostgreSQL databases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pgsandbox name tests/test_users.py
  pgsandbox list
  pgsandbox drop tests/test_users.py
  pgsandbox drop --all

Connection settings come from DB_HOST, DB_PORT, DB_USERNAME, DB_PASSWORD
and DB_DATABASE (or a .env file).
        """,
    )

    subparsers = parser.add_subparsers(dest="command", title="Available commands")
    add_name_command(subparsers)
    add_cleanup_commands(subparsers)
    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if inspect.iscoroutinefunction(args.func):
            return asyncio.run(args.func(args))
        return args.func(args)
    except KeyboardInterrupt:
        print_status("Operation interrupted by user", "info")
        return 0
    except SandboxError as e:
        logger.debug("Command failed", exc_info=True)
        print_status(f"Command failed: {e.message}", "error")
        return 1


if __name__ == "__main__":
    exit(main())
