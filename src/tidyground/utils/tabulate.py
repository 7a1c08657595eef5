"""Format tabular data into a text table for print.

the `tabulate` function takes a `pyarrow.RecordBatch` and formats it into a text table.
It will truncate long strings, format floats to 2 decimal places, show missing
values as ``NA`` and limit the number of rows to display.
The function is used to display Tables and the results of the command line tools.

Example:

    >>> import pyarrow as pa
    >>> data = {
    ...     "country": ["Afghanistan", "Brazil", "China"],
    ...     "year": [1999, 1999, None],
    ...     "rate": [0.37, 2.19, 1.67],
    ... }
    >>> table = pa.RecordBatch.from_pydict(data)
    >>> print(tabulate(table))
    country     | year | rate
    ----------- | ---- | ----
    Afghanistan | 1999 | 0.37
    Brazil      | 1999 | 2.19
    China       | NA   | 1.67

Passing ``show_types=True`` adds a row with the semantic type of each column
right below the header.
"""

from typing import Any

from pyarrow import RecordBatch

from ..compute.types import semantic_type

MISSING = "NA"


def tabulate(recordbatch: RecordBatch, max_rows: int = 20, show_types: bool = False) -> str:
    """Format a RecordBatch into a text table.

    Will produce a string like::

        country     | year     | cases
        <text>      | <number> | <number>
        ----------- | -------- | --------
        Afghanistan | 1999     | 745
        Brazil      | 1999     | 37737

    :param recordbatch: The data to format.
    :param max_rows: How many rows to print at most.
    :param show_types: Add a row with the semantic type of each column.
    """
    cols = recordbatch.column_names
    rows = [
        [format_value(row[c]) for c in cols]
        for row in recordbatch.slice(length=max_rows).to_pylist()
    ]

    header_rows = [cols]
    if show_types:
        header_rows.append(
            [f"<{semantic_type(field.type).value}>" for field in recordbatch.schema]
        )

    colsizes = compute_max_colsize(cols, header_rows[1:] + rows)
    header = [maketablerow(row, colsizes=colsizes) for row in header_rows]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(header + separator + textrows)
    if recordbatch.num_rows > max_rows:
        table += f"\n... and {recordbatch.num_rows - max_rows} more rows"
    return table


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip()


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    This function will format floats to 2 decimal places,
    missing values as ``NA`` and truncate long strings.
    """
    if v is None:
        return MISSING
    elif isinstance(v, float):
        return f"{v:.2f}"
    elif isinstance(v, bool):
        return "true" if v else "false"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
