"""Command line interface for joining files.

This module provides a command line interface for joining two
CSV or Parquet files based on :func:`tidyground.table.join`.

The results of the join are then printed to the console in a tabular format
using the :mod:`tidyground.utils.tabulate` module.
"""

import argparse
import sys

from tidyground.commands import add_common_arguments, configure_logging
from tidyground.errors import TidyGroundError
from tidyground.table import JOIN_KINDS, Table, join
from tidyground.utils import tabulate


def parse_key(key: str) -> tuple[str, str]:
    """Parse a ``left=right`` key, a single name is used for both sides."""
    if "=" in key:
        left, right = key.split("=", 1)
        return left, right
    return key, key


def main(argv: list[str] | None = None) -> int:
    """Parse the command line arguments and execute the join."""
    parser = argparse.ArgumentParser(description="Join two CSV or Parquet files.")
    parser.add_argument(
        "-k",
        "--key",
        action="append",
        required=True,
        help="Key column to join on, as NAME or LEFT=RIGHT. Can be provided multiple times.",
    )
    parser.add_argument(
        "--how",
        choices=JOIN_KINDS,
        default="inner",
        help="The kind of join to perform.",
    )
    parser.add_argument(
        "--suffix",
        default="_right",
        help="Suffix for right columns whose name clashes with a left column.",
    )
    parser.add_argument("left", type=str, help="The left file.")
    parser.add_argument("right", type=str, help="The right file.")
    add_common_arguments(parser)
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    keys = [parse_key(key) for key in args.key]
    try:
        result = join(
            args.how, Table.open(args.left), Table.open(args.right), keys, suffix=args.suffix
        )
    except TidyGroundError as e:
        print(f"Unable to join, {e}")
        return 1

    print(tabulate.tabulate(result.batch, max_rows=args.max_rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
