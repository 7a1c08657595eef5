"""Query plan nodes that implement join operations.

Joins combine the rows of two tables by matching the values
of one or more *key* columns. Which key column of the left table
must be compared with which key column of the right table
is described by a :class:`KeyMapping`.

There are two families of joins:

* **Mutating joins** add the columns of the right table to the
  rows of the left table: ``left``, ``right``, ``inner`` and ``full``.
* **Filtering joins** only decide which rows of the left table
  to keep, based on them having or not a match in the right table:
  ``semi`` and ``anti``.

All the joins are implemented as hash joins, sharing the same
matching core. First the key values are replaced by integer *codes*:
the key columns of the two tables are cast to a common type,
concatenated and dictionary encoded, so that equal values get the
same code on both sides whatever their Arrow type is
(see :func:`encode_keys`). The right table is then scanned once to build a
:class:`KeyIndex`, a dictionary from each key to the
rows of the right table having that key. Then the left
table is scanned in its original order, and for each row we look
up in the index the rows that have the same key::

    left:                  right:
    +----+-----+           +----+-------+
    | id | val |           | id | score |
    +----+-----+           +----+-------+
    | 1  | x   |           | 2  | 9     |
    | 2  | y   |           | 3  | 4     |
    +----+-----+           +----+-------+

    dictionary_encode([1, 2] + [2, 3]) -> indices [0, 1] + [1, 2]

    KeyIndex(right) = {(1,): [0], (2,): [1]}

    probe left row 0 -> key (0,) -> []
    probe left row 1 -> key (1,) -> [0]

The result of the probe is turned into two lists of row indices,
one for each side, which are used to ``take`` the rows of the two tables.
A missing index means the row has no counterpart on that side,
and ``take`` fills all its columns with nulls::

    left join:  left_indices = [0, 1]   right_indices = [None, 0]

    +----+-----+-------+
    | id | val | score |
    +----+-----+-------+
    | 1  | x   | null  |
    | 2  | y   | 9     |
    +----+-----+-------+

>>> import pyarrow as pa
>>> from tidyground.compute import LeftJoinNode, PyArrowTableDataSource
>>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2], "val": ["x", "y"]}))
>>> right = PyArrowTableDataSource(pa.record_batch({"id": [2, 3], "score": [9, 4]}))
>>> next(LeftJoinNode("id", left, right).batches()).to_pydict()
{'id': [1, 2], 'val': ['x', 'y'], 'score': [None, 9]}

Missing values in the keys never match anything, not even another missing value,
as missing means *unknown* and two unknown values can't be told to be equal.
"""

import abc
import logging
from typing import Iterable, Iterator, Mapping, Sequence, Union

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import (
    DuplicateOutputColumnError,
    EmptyKeyMappingError,
    IncompatibleKeyTypeError,
    UnknownColumnError,
)
from .base import QueryPlanNode, collect_batch
from .types import common_type, comparable, decode

logger = logging.getLogger(__name__)

KeySpec = Union[str, Sequence[str], Sequence[tuple[str, str]], Mapping[str, str]]


class KeyMapping:
    """The pairs of columns used to match the rows of two tables.

    Each pair is made of the name of a column in the left table
    and the name of the column of the right table that it must
    be equal to. When multiple pairs are provided, all of them
    must be equal for two rows to match.

    >>> KeyMapping.parse("id")
    KeyMapping(id=id)
    >>> KeyMapping.parse({"user_id": "id", "year": "year"})
    KeyMapping(user_id=id, year=year)
    >>> KeyMapping.parse([("user_id", "id")]).reversed()
    KeyMapping(id=user_id)
    """

    def __init__(self, pairs: Iterable[tuple[str, str]]) -> None:
        """
        :param pairs: The ``(left_column, right_column)`` pairs.
        """
        self.pairs = tuple((left, right) for left, right in pairs)
        if not self.pairs:
            raise EmptyKeyMappingError("Joins require at least one pair of key columns")

    @classmethod
    def parse(cls, on: Union[KeySpec, "KeyMapping"]) -> "KeyMapping":
        """Build a KeyMapping out of the most common ways to express join keys.

        :param on: Either a column name that has the same name in both tables,
                   a list of such names, a ``{left: right}`` dictionary,
                   or a list of ``(left, right)`` tuples.
        """
        if isinstance(on, KeyMapping):
            return on
        if isinstance(on, str):
            return cls([(on, on)])
        if isinstance(on, Mapping):
            return cls(on.items())

        pairs = []
        for key in on:
            if isinstance(key, str):
                pairs.append((key, key))
            else:
                left, right = key
                pairs.append((left, right))
        return cls(pairs)

    @property
    def left_names(self) -> list[str]:
        return [left for left, _ in self.pairs]

    @property
    def right_names(self) -> list[str]:
        return [right for _, right in self.pairs]

    def reversed(self) -> "KeyMapping":
        """The same mapping, as seen from the right table."""
        return KeyMapping((right, left) for left, right in self.pairs)

    def validate(self, left_schema: pa.Schema, right_schema: pa.Schema) -> None:
        """Check that the key columns exist and can be compared.

        :raises UnknownColumnError: when a key column doesn't exist.
        :raises IncompatibleKeyTypeError: when the two columns of a pair
                                          hold values that can't be compared.
        """
        for left, right in self.pairs:
            if left not in left_schema.names:
                raise UnknownColumnError(left, left_schema.names)
            if right not in right_schema.names:
                raise UnknownColumnError(right, right_schema.names)

            left_type = left_schema.field(left).type
            right_type = right_schema.field(right).type
            if not comparable(left_type, right_type):
                raise IncompatibleKeyTypeError(
                    f"Key column '{left}' ({left_type}) can't be compared "
                    f"with key column '{right}' ({right_type})"
                )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyMapping):
            return NotImplemented
        return self.pairs == other.pairs

    def __hash__(self) -> int:
        return hash(self.pairs)

    def __str__(self) -> str:
        return ", ".join(f"{left}={right}" for left, right in self.pairs)

    def __repr__(self) -> str:
        return f"KeyMapping({self})"


def encode_column(arrays: list[pa.Array]) -> list[list[int | None]]:
    """Replace the values of some arrays with integer codes shared by all of them.

    The arrays are cast to their common type and dictionary encoded
    together, so that equal values get the same code even when they come
    from different arrays with different types. Missing values get ``None``.

    >>> import pyarrow as pa
    >>> encode_column([pa.array([3, 1, None], type=pa.int8()), pa.array([1.0, 4.5])])
    [[0, 1, None], [1, 2]]

    :raises IncompatibleKeyTypeError: if the values can't be converted to a common type.
    """
    arrays = [decode(array) for array in arrays]
    target = common_type([array.type for array in arrays])
    if target is None:
        raise IncompatibleKeyTypeError(
            f"Values of types {[str(array.type) for array in arrays]} can't be compared"
        )
    if pa.types.is_null(target):
        return [[None] * len(array) for array in arrays]

    try:
        merged = pa.concat_arrays([pc.cast(array, target) for array in arrays])
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
        raise IncompatibleKeyTypeError(f"Values can't be converted to {target}: {e}") from e
    codes = pc.dictionary_encode(merged).indices.to_pylist()

    result, offset = [], 0
    for array in arrays:
        result.append(codes[offset : offset + len(array)])
        offset += len(array)
    return result


def encode_keys(sides: list[tuple[pa.RecordBatch, list[str]]]) -> list[list[tuple]]:
    """Compute the key of each row for one or more tables.

    Each side is a table and the names of its key columns,
    the n-th key column of every side is encoded together
    with the n-th key column of the other sides by :func:`encode_column`.
    Returns, for each side, a tuple of codes for each row.
    Tables without key columns get an empty key on every row.
    """
    per_side: list[list[list[int | None]]] = [[] for _ in sides]
    num_keys = len(sides[0][1])
    for position in range(num_keys):
        codes = encode_column([batch.column(names[position]) for batch, names in sides])
        for side, side_codes in enumerate(codes):
            per_side[side].append(side_codes)

    if not num_keys:
        return [[()] * batch.num_rows for batch, _ in sides]
    return [list(zip(*columns)) for columns in per_side]


def has_missing(key: tuple) -> bool:
    """If any value of the key is missing."""
    return any(value is None for value in key)


class KeyIndex:
    """Multi-map from each key to the rows of a table that have it.

    The rows for each key are recorded in their original order,
    this is what guarantees that when a row matches multiple
    rows of the other table, they are emitted in the same order
    they had in the table.

    Rows where any of the key values is missing are kept apart
    in ``missing``, as they can never match any other row.

    >>> index = KeyIndex([(3,), (1,), (3,), (None,)])
    >>> index.lookup((3,))
    [0, 2]
    >>> index.lookup((None,))
    []
    >>> index.missing
    [3]
    """

    def __init__(self, keys: Iterable[tuple]) -> None:
        """
        :param keys: The key of each row of the table, as computed by :func:`encode_keys`.
        """
        self.rows: dict[tuple, list[int]] = {}
        self.missing: list[int] = []
        for ordinal, key in enumerate(keys):
            if has_missing(key):
                self.missing.append(ordinal)
            else:
                self.rows.setdefault(key, []).append(ordinal)

    def lookup(self, key: tuple) -> list[int]:
        """Get the rows matching the key, in their original order."""
        if has_missing(key):
            return []
        return self.rows.get(key, [])


class JoinNode(QueryPlanNode):
    """Base class for all the join nodes.

    Takes care of loading the data of the two children,
    validating the keys and providing the shared matching core.
    Subclasses only have to implement :meth:`join`
    to decide how the matches become the output rows.
    """

    kind: str = ""

    def __init__(
        self,
        keys: KeySpec | KeyMapping,
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        suffix: str = "_right",
    ) -> None:
        """
        :param keys: The columns to join on, see :meth:`KeyMapping.parse`.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param suffix: Appended to the name of the columns of the right table
                       that have the same name of a column of the left table.
        """
        self.keys = KeyMapping.parse(keys)
        self.left_child = left_child
        self.right_child = right_child
        self.suffix = suffix

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(keys={self.keys}, left={self.left_child}, right={self.right_child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for datasets that don't fit in memory.
        """
        left = collect_batch(self.left_child)
        right = collect_batch(self.right_child)
        self.keys.validate(left.schema, right.schema)

        logger.debug(
            "%s join of %d rows with %d rows on %s",
            self.kind,
            left.num_rows,
            right.num_rows,
            self.keys,
        )
        result = self.join(left, right)
        logger.debug("%s join produced %d rows", self.kind, result.num_rows)
        yield result

    def probe(
        self, left: pa.RecordBatch, right: pa.RecordBatch
    ) -> Iterator[tuple[int, list[int]]]:
        """Find the matching rows of the right table for each row of the left table.

        Yields ``(left_ordinal, [right_ordinals])`` for each row of the left table,
        in the order of the left table. The list is empty when there is no match.
        """
        left_keys, right_keys = encode_keys(
            [(left, self.keys.left_names), (right, self.keys.right_names)]
        )
        index = KeyIndex(right_keys)
        for ordinal, key in enumerate(left_keys):
            yield ordinal, index.lookup(key)

    @abc.abstractmethod
    def join(self, left: pa.RecordBatch, right: pa.RecordBatch) -> pa.RecordBatch:
        """Join the two tables, whose keys were already validated."""
        ...


class MutatingJoinNode(JoinNode):
    """Join that combines the columns of the two tables.

    The subclasses only differ in what they do
    with the rows that have no match on the other side.
    """

    keep_unmatched_left = False
    keep_unmatched_right = False

    def join(self, left: pa.RecordBatch, right: pa.RecordBatch) -> pa.RecordBatch:
        """Match the rows and combine them in the output.

        When a row of the left table has multiple matches,
        it's repeated once for each one of them, so that each
        output row has exactly one counterpart per side.
        """
        output_columns = self.output_columns(left.schema, right.schema)

        left_indices: list[int | None] = []
        right_indices: list[int | None] = []
        matched_right = set()
        for ordinal, matches in self.probe(left, right):
            if matches:
                left_indices.extend([ordinal] * len(matches))
                right_indices.extend(matches)
                matched_right.update(matches)
            elif self.keep_unmatched_left:
                left_indices.append(ordinal)
                right_indices.append(None)

        if self.keep_unmatched_right:
            # Rows of the right table that nothing matched are appended
            # at the end, in the order they have in the right table.
            for ordinal in range(right.num_rows):
                if ordinal not in matched_right:
                    left_indices.append(None)
                    right_indices.append(ordinal)

        left_rows = pa.array(left_indices, type=pa.int64())
        right_rows = pa.array(right_indices, type=pa.int64())
        right_keys = dict(self.keys.pairs)

        names, arrays = [], []
        for name, side, source in output_columns:
            if side == "left":
                column = left.column(source).take(left_rows)
                if source in right_keys and self.keep_unmatched_right:
                    # Rows coming only from the right table have
                    # no left key, recover it from the right key.
                    column = coalesce_keys(
                        column, right.column(right_keys[source]).take(right_rows)
                    )
            else:
                column = right.column(source).take(right_rows)
            names.append(name)
            arrays.append(column)
        return pa.record_batch(arrays, names=names)

    def output_columns(
        self, left_schema: pa.Schema, right_schema: pa.Schema
    ) -> list[tuple[str, str, str]]:
        """Compute the columns of the result.

        Returns a list of ``(output_name, side, source_name)``.
        All the columns of the left table come first, then the columns of the
        right table except its keys, as they would duplicate the left ones.
        Right columns that clash with an existing name get the suffix appended.
        """
        columns = [(name, "left", name) for name in left_schema.names]
        taken = set(left_schema.names)
        right_keys = set(self.keys.right_names)
        for name in right_schema.names:
            if name in right_keys:
                continue
            new_name = name
            if new_name in taken:
                new_name = name + self.suffix
            if new_name in taken:
                raise DuplicateOutputColumnError(new_name)
            columns.append((new_name, "right", name))
            taken.add(new_name)
        return columns


class LeftJoinNode(MutatingJoinNode):
    """Keep all the rows of the left table, adding the columns of the right table.

    Rows of the left table without a match get missing
    values in the columns coming from the right table.
    Rows of the right table without a match are dropped.
    """

    kind = "left"
    keep_unmatched_left = True


class InnerJoinNode(MutatingJoinNode):
    """Keep only the rows that have a match in both tables.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource
    >>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
    >>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
    >>> next(InnerJoinNode("id", left, right).batches()).to_pydict()
    {'id': [2, 3], 'name': ['Bob', 'Charlie'], 'age': [30, 25]}
    """

    kind = "inner"


class FullJoinNode(MutatingJoinNode):
    """Keep all the rows of both tables.

    The result is the same as a left join, followed by
    the rows of the right table that had no match.
    Those rows will have missing values in the columns
    of the left table, except for the keys, which take
    the values of the keys of the right table.
    """

    kind = "full"
    keep_unmatched_left = True
    keep_unmatched_right = True


class RightJoinNode(JoinNode):
    """Keep all the rows of the right table, adding the columns of the left table.

    A right join is the mirror of a left join: it is performed
    by swapping the two tables and the key pairs and
    running a left join. So ``right_join(A, B)`` provides
    exactly the same result as ``left_join(B, A)``,
    with the columns of the right table coming first.
    """

    kind = "right"

    def join(self, left: pa.RecordBatch, right: pa.RecordBatch) -> pa.RecordBatch:
        mirrored = LeftJoinNode(
            self.keys.reversed(), self.right_child, self.left_child, suffix=self.suffix
        )
        return mirrored.join(right, left)


class FilteringJoinNode(JoinNode):
    """Join that filters the rows of the left table.

    The result only has the columns of the left table,
    and each row of the left table appears at most once,
    even when it matches multiple rows of the right table.
    """

    keep_matched = True

    def join(self, left: pa.RecordBatch, right: pa.RecordBatch) -> pa.RecordBatch:
        indices = [
            ordinal
            for ordinal, matches in self.probe(left, right)
            if bool(matches) == self.keep_matched
        ]
        return left.take(pa.array(indices, type=pa.int64()))


class SemiJoinNode(FilteringJoinNode):
    """Keep the rows of the left table that have a match in the right table."""

    kind = "semi"
    keep_matched = True


class AntiJoinNode(FilteringJoinNode):
    """Keep the rows of the left table that have no match in the right table.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource
    >>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2], "val": ["x", "y"]}))
    >>> right = PyArrowTableDataSource(pa.record_batch({"id": [2, 3], "score": [9, 4]}))
    >>> next(AntiJoinNode("id", left, right).batches()).to_pydict()
    {'id': [1], 'val': ['x']}
    """

    kind = "anti"
    keep_matched = False


JOIN_NODES: dict[str, type[JoinNode]] = {
    node.kind: node
    for node in (
        LeftJoinNode,
        RightJoinNode,
        InnerJoinNode,
        FullJoinNode,
        SemiJoinNode,
        AntiJoinNode,
    )
}
"""The join node implementing each kind of join."""


def coalesce_keys(left: pa.Array, right: pa.Array) -> pa.Array:
    """Merge two key columns, picking the left value unless it's missing.

    The two columns might have different types as far as they
    are comparable, for example an ``int32`` and an ``int64``,
    in that case both are cast to a type able to hold them.

    >>> import pyarrow as pa
    >>> coalesce_keys(pa.array([1, None], type=pa.int32()), pa.array([None, 7])).to_pylist()
    [1, 7]
    """
    target = common_type([left.type, right.type])
    if target is None:
        raise IncompatibleKeyTypeError(
            f"Key columns of types {left.type} and {right.type} can't be merged"
        )

    encode = pa.types.is_dictionary(target)
    if encode:
        target = target.value_type
    try:
        merged = pc.coalesce(pc.cast(decode(left), target), pc.cast(decode(right), target))
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as e:
        raise IncompatibleKeyTypeError(f"Key columns can't be converted to {target}: {e}") from e
    if encode:
        merged = merged.dictionary_encode()
    return merged
