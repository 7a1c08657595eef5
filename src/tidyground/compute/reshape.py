"""Query plan nodes that reshape data between long and wide layouts.

The same information can be laid out in a table in multiple ways.
A *wide* table has one column for each category of a measurement,
while a *long* table stores the category in one column and the
measured value in another one.

For example the number of tuberculosis cases and the population
of a country can be stored in the wide form::

    +-------------+------+-------+------------+
    | country     | year | cases | population |
    +-------------+------+-------+------------+
    | Afghanistan | 1999 | 745   | 19987071   |
    +-------------+------+-------+------------+

or in the long form::

    +-------------+------+------------+----------+
    | country     | year | type       | count    |
    +-------------+------+------------+----------+
    | Afghanistan | 1999 | cases      | 745      |
    | Afghanistan | 1999 | population | 19987071 |
    +-------------+------+------------+----------+

The :class:`PivotLongerNode` goes from the wide form to the long one,
while the :class:`PivotWiderNode` goes back from the long form to the wide one.
Going from wide to long never loses information, while going from long to wide
might have to deal with combinations that don't exist in the long table
(which are filled with a fill value) or that appear more than once
(in which case only the first value is kept).
"""

import logging
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import (
    DuplicateOutputColumnError,
    IncompatibleValueTypeError,
    UnknownColumnError,
)
from .base import QueryPlanNode, collect_batch
from .join import encode_keys
from .types import common_type, decode

logger = logging.getLogger(__name__)

MISSING_NAME = "NA"
"""Name of the column created by :class:`PivotWiderNode` for missing names.

If the names column also contains a literal ``"NA"`` the two columns
would clash, so :class:`~tidyground.errors.DuplicateOutputColumnError` is raised.
"""


def check_columns(schema: pa.Schema, names: list[str]) -> None:
    """Raise :class:`UnknownColumnError` if any of the columns doesn't exist."""
    for name in names:
        if name not in schema.names:
            raise UnknownColumnError(name, schema.names)


def cast_values(array: pa.Array, target: pa.DataType) -> pa.Array:
    """Cast an array to a type that was computed by :func:`common_type`."""
    if array.type == target:
        return array
    if pa.types.is_null(array.type):
        return pa.nulls(len(array), type=target)
    try:
        return pc.cast(decode(array), target)
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
        raise IncompatibleValueTypeError(
            f"Values of type {array.type} can't be converted to {target}: {e}"
        ) from e


class PivotLongerNode(QueryPlanNode):
    """Collapse multiple columns into a pair of name/value columns.

    Each row of the input becomes one row for each collapsed column,
    all the other columns are repeated unchanged on each one of those rows.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"id": [1], "cases": [5], "population": [100]})
    >>> pivot = PivotLongerNode(["cases", "population"], "type", "count", PyArrowTableDataSource(data))
    >>> next(pivot.batches()).to_pydict()
    {'id': [1, 1], 'type': ['cases', 'population'], 'count': [5, 100]}

    The steps involved are:

    1. Pick the columns to collapse, in the order they have in the table,
       and the columns to keep.
    2. Find a type able to hold the values of all the collapsed columns,
       as they will end up in the same column.
    3. Repeat each row of the kept columns once per collapsed column::

        id: [1, 2] -> [1, 1, 2, 2]

    4. Build the names column by repeating the names of
       the collapsed columns once for each row::

        type: [cases, population, cases, population]

    5. Build the values column interleaving the values of the collapsed
       columns, so that for each row we get the value of each column::

        cases:      [5, 7]
        population: [100, 200]
        count:      [5, 100, 7, 200]
    """

    def __init__(
        self,
        columns: list[str],
        names_to: str,
        values_to: str,
        child: QueryPlanNode,
    ) -> None:
        """
        :param columns: The columns to collapse into the names and values columns.
        :param names_to: Name of the new column that will hold the names of the collapsed columns.
        :param values_to: Name of the new column that will hold the values of the collapsed columns.
        :param child: The node emitting the data to reshape.
        """
        if not columns:
            raise ValueError("At least one column to collapse must be provided")
        self.columns = list(columns)
        self.names_to = names_to
        self.values_to = values_to
        self.child = child

    def __str__(self) -> str:
        return f"PivotLongerNode(columns={self.columns}, names_to={self.names_to}, values_to={self.values_to}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Reshape the data of the child node.

        All the data of the child is accumulated, so that
        a single batch with the rows in the expected order is emitted.
        """
        batch = collect_batch(self.child)
        result = self.pivot(batch)
        logger.debug(
            "pivot_longer of %d rows produced %d rows",
            batch.num_rows,
            result.num_rows,
        )
        yield result

    def pivot(self, batch: pa.RecordBatch) -> pa.RecordBatch:
        check_columns(batch.schema, self.columns)
        collapse = set(self.columns)
        collapsed = [name for name in batch.schema.names if name in collapse]
        kept = [name for name in batch.schema.names if name not in collapse]

        if self.names_to == self.values_to:
            raise DuplicateOutputColumnError(self.values_to)
        for name in (self.names_to, self.values_to):
            if name in kept:
                raise DuplicateOutputColumnError(name)

        types = [batch.schema.field(name).type for name in collapsed]
        target = common_type(types)
        if target is None:
            raise IncompatibleValueTypeError(
                f"Columns {collapsed} can't be collapsed in the same column, "
                f"they have incompatible types {[str(t) for t in types]}"
            )
        encode = pa.types.is_dictionary(target)
        if encode:
            # Categoricals might have different levels,
            # they are merged going through their values.
            target = target.value_type

        num_rows, num_collapsed = batch.num_rows, len(collapsed)
        # Output row i comes from input row i // n and collapsed column i % n.
        positions = pa.array(range(num_rows * num_collapsed), type=pa.int64())
        repeated = pc.divide(positions, num_collapsed)
        column_indices = pc.subtract(positions, pc.multiply(repeated, num_collapsed))
        interleaved = pc.add(pc.multiply(column_indices, num_rows), repeated)

        arrays = [batch.column(name).take(repeated) for name in kept]
        arrays.append(pa.array(collapsed, type=pa.string()).take(column_indices))
        values = pa.concat_arrays(
            [cast_values(batch.column(name), target) for name in collapsed]
        ).take(interleaved)
        if encode:
            values = values.dictionary_encode()
        arrays.append(values)
        return pa.record_batch(arrays, names=kept + [self.names_to, self.values_to])


class PivotWiderNode(QueryPlanNode):
    """Spread a pair of name/value columns into one column per name.

    All the columns that are not the names or values columns
    identify the rows of the output (the *id columns*).
    For each distinct value of the names column a new column is created,
    and for each distinct combination of the id columns a row is created.
    Each cell gets the value that the input had for that combination
    of id columns and name.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({
    ...     "id": [1, 1, 2],
    ...     "type": ["cases", "population", "cases"],
    ...     "count": [5, 100, 7],
    ... })
    >>> pivot = PivotWiderNode("type", "count", PyArrowTableDataSource(data))
    >>> next(pivot.batches()).to_pydict()
    {'id': [1, 2], 'cases': [5, 7], 'population': [100, None]}

    The combinations that don't exist in the input (like population for id=2)
    get the ``values_fill`` value, which is missing by default.
    Values that are explicitly missing in the input stay missing.

    When the same combination appears more than once only the first observed
    value is kept, if the values have to be combined somehow
    (summed, averaged...) the data has to be aggregated before the pivot.
    """

    def __init__(
        self,
        names_from: str,
        values_from: str,
        child: QueryPlanNode,
        values_fill: Any = None,
        names_prefix: str = "",
        names_sort: bool = False,
    ) -> None:
        """
        :param names_from: The column whose values become the names of the new columns.
        :param values_from: The column whose values become the values of the new columns.
        :param child: The node emitting the data to reshape.
        :param values_fill: The value for the combinations that are absent in the input.
        :param names_prefix: A prefix prepended to the name of every new column.
        :param names_sort: Sort the new columns by name instead of keeping them
                           in order of appearance.
        """
        if names_from == values_from:
            raise ValueError("The names and values columns must be different")
        self.names_from = names_from
        self.values_from = values_from
        self.child = child
        self.values_fill = values_fill
        self.names_prefix = names_prefix
        self.names_sort = names_sort

    def __str__(self) -> str:
        return f"PivotWiderNode(names_from={self.names_from}, values_from={self.values_from}, values_fill={self.values_fill!r}, child={self.child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Reshape the data of the child node.

        Finding all the names and all the groups requires
        seeing all the data, so the whole output of the child
        is accumulated before reshaping it.
        """
        batch = collect_batch(self.child)
        result = self.pivot(batch)
        logger.debug(
            "pivot_wider of %d rows produced %d rows and %d columns",
            batch.num_rows,
            result.num_rows,
            result.num_columns,
        )
        yield result

    def pivot(self, batch: pa.RecordBatch) -> pa.RecordBatch:
        check_columns(batch.schema, [self.names_from, self.values_from])
        id_columns = [
            name
            for name in batch.schema.names
            if name not in (self.names_from, self.values_from)
        ]

        # Assign each row to its group and each name to its column,
        # both in order of first appearance.
        # cells records for each (group, name) the row that provides its value.
        name_codes, dictionary = encode_names(batch.column(self.names_from))
        labels = pc.cast(dictionary, pa.string()).to_pylist()
        groups: dict[tuple, int] = {}
        group_rows: list[int] = []
        names: dict[int | None, int] = {}
        cells: dict[tuple[int, int | None], int] = {}
        duplicates = 0
        group_keys = encode_keys([(batch, id_columns)])[0]
        for ordinal, (key, code) in enumerate(zip(group_keys, name_codes)):
            group = groups.setdefault(key, len(groups))
            if group == len(group_rows):
                group_rows.append(ordinal)
            names.setdefault(code, len(names))
            if (group, code) in cells:
                duplicates += 1
            else:
                cells[(group, code)] = ordinal

        if duplicates:
            logger.warning(
                "pivot_wider found %d duplicate values for the same %s and %s, "
                "only the first observed ones were kept",
                duplicates,
                id_columns,
                self.names_from,
            )

        new_columns = list(names)
        if self.names_sort:
            # Codes follow the order of first appearance, names are sorted by value.
            ranks = pc.sort_indices(dictionary).to_pylist()
            position = {code: rank for rank, code in enumerate(ranks)}
            new_columns.sort(key=lambda code: (code is None, position.get(code)))

        output_names = list(id_columns)
        for code in new_columns:
            name = self.names_prefix + (MISSING_NAME if code is None else labels[code])
            if name in output_names:
                raise DuplicateOutputColumnError(name)
            output_names.append(name)

        values = batch.column(self.values_from)
        encode = pa.types.is_dictionary(values.type)
        values = decode(values)
        absent = None
        if self.values_fill is not None:
            # The fill value is appended after the last value,
            # so that absent combinations can point to it.
            fill = self.fill_array(values.type)
            values = pa.concat_arrays([cast_values(values, fill.type), fill])
            absent = len(values) - 1

        group_rows_indices = pa.array(group_rows, type=pa.int64())
        arrays = [batch.column(name).take(group_rows_indices) for name in id_columns]
        for code in new_columns:
            indices = [cells.get((group, code), absent) for group in range(len(groups))]
            column = values.take(pa.array(indices, type=pa.int64()))
            if encode:
                column = column.dictionary_encode()
            arrays.append(column)
        return pa.record_batch(arrays, names=output_names)

    def fill_array(self, datatype: pa.DataType) -> pa.Array:
        """Convert the fill value to an array of the values column type."""
        if pa.types.is_null(datatype):
            # Nothing to adapt to, the type of the fill value is used.
            return pa.array([self.values_fill])
        try:
            return pa.array([self.values_fill], type=datatype)
        except (pa.ArrowInvalid, pa.ArrowTypeError, TypeError) as e:
            raise IncompatibleValueTypeError(
                f"Fill value {self.values_fill!r} does not fit column "
                f"'{self.values_from}' of type {datatype}: {e}"
            ) from e


def encode_names(names: pa.Array) -> tuple[list[int | None], pa.Array]:
    """Number the distinct values of a names column in order of appearance.

    Returns the code of each row, ``None`` where the name is missing,
    and the distinct values themselves.

    >>> codes, dictionary = encode_names(pa.array(["b", None, "a", "b"]))
    >>> codes
    [0, None, 1, 0]
    >>> dictionary.to_pylist()
    ['b', 'a']
    """
    names = decode(names)
    if pa.types.is_null(names.type):
        return [None] * len(names), pa.array([], type=pa.string())
    encoded = pc.dictionary_encode(names)
    return encoded.indices.to_pylist(), encoded.dictionary
