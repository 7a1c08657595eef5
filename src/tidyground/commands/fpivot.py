"""Command line interface for reshaping files.

This module provides a command line interface for pivoting
a CSV or Parquet file between the wide and long layouts, based on
:func:`tidyground.table.pivot_longer` and :func:`tidyground.table.pivot_wider`.

The results are then printed to the console in a tabular format
using the :mod:`tidyground.utils.tabulate` module.
"""

import argparse
import sys

from tidyground.commands import add_common_arguments, configure_logging
from tidyground.errors import TidyGroundError
from tidyground.table import Table, pivot_longer, pivot_wider
from tidyground.utils import tabulate


def main(argv: list[str] | None = None) -> int:
    """Parse the command line arguments and execute the pivot."""
    parser = argparse.ArgumentParser(description="Reshape a CSV or Parquet file.")
    subparsers = parser.add_subparsers(dest="direction", required=True)

    longer = subparsers.add_parser("longer", help="Collapse columns into name/value pairs.")
    longer.add_argument(
        "-c",
        "--column",
        action="append",
        required=True,
        help="Column to collapse. Can be provided multiple times.",
    )
    longer.add_argument("--names-to", default="name", help="Column for the names.")
    longer.add_argument("--values-to", default="value", help="Column for the values.")
    longer.add_argument("file", type=str, help="The file to reshape.")
    add_common_arguments(longer)

    wider = subparsers.add_parser("wider", help="Spread name/value pairs into columns.")
    wider.add_argument("--names-from", default="name", help="Column with the names.")
    wider.add_argument("--values-from", default="value", help="Column with the values.")
    wider.add_argument(
        "--fill",
        default=None,
        help="Value for the absent combinations, parsed as a number when possible.",
    )
    wider.add_argument("--names-prefix", default="", help="Prefix of the new columns.")
    wider.add_argument("--sort", action="store_true", help="Sort the new columns by name.")
    wider.add_argument("file", type=str, help="The file to reshape.")
    add_common_arguments(wider)

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        table = Table.open(args.file)
        if args.direction == "longer":
            result = pivot_longer(table, args.column, args.names_to, args.values_to)
        else:
            result = pivot_wider(
                table,
                args.names_from,
                args.values_from,
                values_fill=parse_fill(args.fill),
                names_prefix=args.names_prefix,
                names_sort=args.sort,
            )
    except (TidyGroundError, ValueError) as e:
        print(f"Unable to pivot, {e}")
        return 1

    print(tabulate.tabulate(result.batch, max_rows=args.max_rows))
    return 0


def parse_fill(value: str | None) -> int | float | str | None:
    """Convert the fill value provided on the command line.

    The shell only provides text, so numbers are recognised
    to be able to fill numeric columns.
    """
    if value is None:
        return None
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            pass
    return value


if __name__ == "__main__":
    sys.exit(main())
