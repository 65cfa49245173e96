"""
Name derivation command
"""

import os

from ..colors import print_status
from ...utils.naming import derive_database_name


def add_name_command(subparsers):
    """Add name command to CLI"""
    parser = subparsers.add_parser(
        "name",
        help="Print the test database name for test files",
        description="Derive the database name a test file is provisioned under",
    )
    parser.add_argument("paths", nargs="+", help="Test file paths")
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Hash the paths as given instead of making them absolute",
    )
    parser.set_defaults(func=handle_name_command)


def handle_name_command(args):
    """Handle name command"""
    for path in args.paths:
        identity = path if args.raw else os.path.abspath(path)
        print_status(f"{derive_database_name(identity)}  {identity}", "info")
    return 0
