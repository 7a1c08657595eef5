"""Shell commands exposing TidyGround functionalities.

This module contains the shell commands that can be used to join
and reshape data files without writing any Python.

FJoin (file join)
=================

``tidyground-join`` joins two CSV or Parquet files::

    tidyground-join --how left -k id users.csv orders.csv

Keys with different names in the two files are provided as ``left=right``::

    tidyground-join --how inner -k id=user_id users.csv orders.csv

FPivot (file pivot)
===================

``tidyground-pivot`` reshapes a CSV or Parquet file,
from the wide layout to the long one::

    tidyground-pivot longer -c cases -c population --names-to type --values-to count table1.csv

or from the long layout to the wide one::

    tidyground-pivot wider --names-from type --values-from count table2.csv
"""

import argparse
import logging


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by all the commands."""
    parser.add_argument(
        "--max-rows",
        type=int,
        default=20,
        help="How many rows of the result to print.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log the steps performed by the engine.",
    )


def configure_logging(verbose: bool) -> None:
    """Setup logging for the commands, the engine itself never configures it."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
