"""
Commands for finding and removing test databases left behind by crashed runs
"""

import os

from ..colors import print_status
from ...db.connection import open_admin_connection
from ...db.operations import database_exists, drop_database, list_test_databases
from ...settings import get_settings
from ...utils.naming import derive_database_name, is_test_database_name


def add_cleanup_commands(subparsers):
    """Add list and drop commands to CLI"""
    subparsers.add_parser(
        "list",
        help="List test databases on the server",
        description="Show databases named like derived test databases",
    ).set_defaults(func=handle_list_command)

    drop_parser = subparsers.add_parser(
        "drop",
        help="Drop test databases",
        description="Drop test databases given test file paths or database names",
    )
    drop_parser.add_argument(
        "targets", nargs="*", help="Test file paths or test database names"
    )
    drop_parser.add_argument(
        "--all", action="store_true", help="Drop every test database on the server"
    )
    drop_parser.set_defaults(func=handle_drop_command)


def resolve_target(target: str) -> str:
    """Map a test file path or a database name to a database name."""
    if is_test_database_name(target):
        return target
    return derive_database_name(os.path.abspath(target))


async def handle_list_command(args):
    """Handle list command"""
    conn = await open_admin_connection(get_settings())
    try:
        names = await list_test_databases(conn)
    finally:
        await conn.close()

    if not names:
        print_status("No test databases found", "success")
        return 0

    for name in names:
        print_status(name, "warning")
    print_status(f"{len(names)} test database(s) found", "info")
    return 0


async def handle_drop_command(args):
    """Handle drop command"""
    if not args.targets and not args.all:
        print_status("Nothing to drop: pass targets or --all", "error")
        return 1

    conn = await open_admin_connection(get_settings())
    try:
        if args.all:
            names = await list_test_databases(conn)
        else:
            names = [resolve_target(target) for target in args.targets]

        for name in names:
            if not await database_exists(conn, name):
                print_status(f"{name} does not exist", "info")
                continue
            await drop_database(conn, name)
            print_status(f"Dropped {name}", "success")
    finally:
        await conn.close()

    return 0
