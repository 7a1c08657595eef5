"""Join and reshape operations over Tables.

These are the entry points for joining and reshaping :class:`Table` objects.
Each operation builds a small query plan out of the compute engine
nodes, runs it, and wraps its result in a new Table
(see :meth:`Table.join`, :meth:`Table.pivot_longer` and :meth:`Table.pivot_wider`)::

    PyArrowTableDataSource(left) --+
                                   +--> LeftJoinNode --> Table
    PyArrowTableDataSource(right) -+

The functions take the tables as arguments, which is convenient
when the kind of join is only known at runtime:

>>> from tidyground.table import Table
>>> a = Table({"id": [1, 2], "val": ["x", "y"]})
>>> b = Table({"id": [2, 3], "score": [9, 4]})
>>> join("full", a, b, on="id").to_pydict()
{'id': [1, 2, 3], 'val': ['x', 'y', None], 'score': [None, 9, 4]}
"""

from typing import Any

from ..compute import JOIN_NODES, KeyMapping
from ..compute.join import KeySpec
from .table import Table

JOIN_KINDS = tuple(JOIN_NODES)
"""The supported kinds of join."""


def join(
    kind: str,
    left: Table,
    right: Table,
    on: KeySpec | KeyMapping,
    suffix: str = "_right",
) -> Table:
    """Join two tables.

    :param kind: One of ``left``, ``right``, ``inner``, ``full``, ``semi``, ``anti``.
    :param left: The left table.
    :param right: The right table.
    :param on: The key columns, see :meth:`tidyground.compute.KeyMapping.parse`.
    :param suffix: Appended to the columns of the right table whose name
                   clashes with a column of the left table.
    :raises ValueError: For unknown kinds of join.
    """
    return left.join(right, on, how=kind, suffix=suffix)


def pivot_longer(
    table: Table,
    columns: list[str],
    names_to: str = "name",
    values_to: str = "value",
) -> Table:
    """Reshape a table from the wide layout to the long layout.

    :param table: The table to reshape.
    :param columns: The columns to collapse.
    :param names_to: The new column holding the names of the collapsed columns.
    :param values_to: The new column holding the values of the collapsed columns.
    """
    return table.pivot_longer(columns, names_to=names_to, values_to=values_to)


def pivot_wider(
    table: Table,
    names_from: str = "name",
    values_from: str = "value",
    values_fill: Any = None,
    names_prefix: str = "",
    names_sort: bool = False,
) -> Table:
    """Reshape a table from the long layout to the wide layout.

    >>> from tidyground.table import Table
    >>> long = Table({"id": [1, 1, 2], "k": ["a", "b", "a"], "v": [1, 2, 3]})
    >>> pivot_wider(long, "k", "v", values_fill=0).to_pydict()
    {'id': [1, 2], 'a': [1, 3], 'b': [2, 0]}

    :param table: The table to reshape.
    :param names_from: The column whose values become the new column names.
    :param values_from: The column whose values fill the new columns.
    :param values_fill: The value for combinations that are absent in the table.
    :param names_prefix: Prepended to the name of each new column.
    :param names_sort: Sort the new columns instead of using order of appearance.
    """
    return table.pivot_wider(
        names_from,
        values_from,
        values_fill=values_fill,
        names_prefix=names_prefix,
        names_sort=names_sort,
    )
