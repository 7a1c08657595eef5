"""The Table object itself."""
from typing import Any, Iterator, Self

import pyarrow as pa
import pyarrow.compute as pc

from ..compute import (
    JOIN_NODES,
    CSVDataSource,
    ParquetDataSource,
    PivotLongerNode,
    PivotWiderNode,
    PyArrowTableDataSource,
    SelectNode,
    SemanticType,
    semantic_type,
)
from ..compute.base import QueryPlanNode, collect_batch
from ..compute.join import KeyMapping, KeySpec, encode_keys, has_missing
from ..compute.types import decode
from ..errors import DuplicateKeyError, DuplicateOutputColumnError, UnknownColumnError
from ..utils import tabulate


class Table:
  """Data structure that handles data in rows and columns.

  The Table is an ordered collection of named columns,
  all with the same number of rows. Each column has a
  :class:`tidyground.compute.SemanticType` which is used
  to check that joins and pivots make sense.

  Tables are immutable, every operation returns a new Table
  and leaves the original one untouched. Rows have no labels,
  the only identity of a row is its position in the table.

  >>> table = Table({"id": [1, 2], "val": ["x", "y"]})
  >>> table.column_names
  ['id', 'val']
  >>> table.column_type("val")
  <SemanticType.TEXT: 'text'>
  >>> table.row(1)
  {'id': 2, 'val': 'y'}
  """
  def __init__(self, data: QueryPlanNode | pa.Table | pa.RecordBatch | dict) -> None:
    """
    :param data: A compute engine node expected to emit the data for the table,
                 a `pyarrow.Table`, a `pyarrow.RecordBatch` or a dictionary
                 of column names and values.
    """
    if isinstance(data, dict):
      data = pa.table(data)
    if isinstance(data, (pa.Table, pa.RecordBatch)):
      data = PyArrowTableDataSource(data)

    if not isinstance(data, QueryPlanNode):
      raise ValueError("Invalid input, expected a QueryPlanNode, a PyArrow Table or a dict")

    batch = collect_batch(data)
    seen = set()
    for field in batch.schema:
      if field.name in seen:
        raise DuplicateOutputColumnError(field.name)
      seen.add(field.name)
      # Fails on types that have no semantic type.
      semantic_type(field.type)

    self.batch = batch

  @classmethod
  def from_pydict(cls, data: dict[str, Any], schema: pa.Schema | None = None) -> Self:
    """Create a Table from a dictionary of column names and values.

    :param data: The ``{name: [values]}`` of each column.
    :param schema: The Arrow schema to use, when not provided
                   the types are inferred from the values.
    """
    return cls(pa.table(data, schema=schema))

  @classmethod
  def open_csv(cls, filename: str, column_types: dict[str, pa.DataType] | None = None) -> Self:
    """Open a CSV file and create a Table out of its data.

    :param filename: The path to a local CSV file.
    :param column_types: The type of some of the columns, the others are inferred.
    :raises DataSourceError: If the file can't be read.
    """
    return cls(CSVDataSource(filename, column_types=column_types))

  @classmethod
  def open_parquet(cls, filename: str) -> Self:
    """Open a Parquet file and create a Table out of its data.

    :param filename: The path to a local Parquet file.
    """
    return cls(ParquetDataSource(filename))

  @classmethod
  def open(cls, filename: str) -> Self:
    """Open a file guessing its format from the extension.

    Files ending in ``.parquet`` are read as Parquet,
    every other file is read as CSV.

    :param filename: The path to a local CSV or Parquet file.
    """
    if filename.endswith(".parquet"):
      return cls.open_parquet(filename)
    return cls.open_csv(filename)

  @property
  def schema(self) -> pa.Schema:
    return self.batch.schema

  @property
  def column_names(self) -> list[str]:
    return self.batch.schema.names

  @property
  def num_rows(self) -> int:
    return self.batch.num_rows

  @property
  def num_columns(self) -> int:
    return self.batch.num_columns

  def __len__(self) -> int:
    return self.batch.num_rows

  def node(self) -> QueryPlanNode:
    """A compute engine node emitting the data of the table.

    Allows to use the table as the input of a query plan.
    """
    return PyArrowTableDataSource(self.batch)

  def column(self, name: str) -> pa.Array:
    """Get the data of a column.

    :param name: The name of the column.
    """
    if name not in self.batch.schema.names:
      raise UnknownColumnError(name, self.column_names)
    return self.batch.column(name)

  def column_type(self, name: str) -> SemanticType:
    """Get the semantic type of a column.

    :param name: The name of the column.
    """
    if name not in self.batch.schema.names:
      raise UnknownColumnError(name, self.column_names)
    return semantic_type(self.batch.schema.field(name).type)

  def select(self, column_names: list[str]) -> Self:
    """Return a new Table with only the requested columns.

    The columns are in the requested order, the rows
    keep their order.

    :param column_names: The names of the columns to keep.
    """
    return self.__class__(SelectNode(column_names, self.node()))

  def row(self, ordinal: int) -> dict[str, Any]:
    """Get the values of a row as a ``{column: value}`` dictionary.

    :param ordinal: The position of the row, the first row is 0.
    """
    if not 0 <= ordinal < self.batch.num_rows:
      raise IndexError(f"Row {ordinal} out of range, the table has {self.batch.num_rows} rows")
    return self.batch.slice(ordinal, 1).to_pylist()[0]

  def rows(self) -> Iterator[dict[str, Any]]:
    """Iterate over all the rows as ``{column: value}`` dictionaries."""
    yield from self.batch.to_pylist()

  def is_unique(self, columns: list[str]) -> bool:
    """Check if no two rows have the same values for the given columns.

    Rows with a missing value in any of the columns are not considered,
    as a missing value is never equal to another one.

    :param columns: The columns that are expected to identify a row.
    """
    try:
      self.check_unique(columns)
    except DuplicateKeyError:
      return False
    return True

  def check_unique(self, columns: list[str]) -> None:
    """Raise :class:`tidyground.errors.DuplicateKeyError` if the columns don't identify a row.

    The engine never assumes that keys are unique, this allows
    the caller to verify it explicitly before performing joins
    that would otherwise duplicate rows.

    :param columns: The columns that are expected to identify a row.
    """
    for name in columns:
      if name not in self.batch.schema.names:
        raise UnknownColumnError(name, self.column_names)

    seen = set()
    for ordinal, key in enumerate(encode_keys([(self.batch, list(columns))])[0]):
      if has_missing(key):
        continue
      if key in seen:
        raise DuplicateKeyError(list(columns), self.key_labels(columns, ordinal))
      seen.add(key)

  def key_labels(self, columns: list[str], ordinal: int) -> tuple[str, ...]:
    """The values of some columns in a row, rendered as text."""
    return tuple(
      pc.cast(decode(self.batch.column(name).slice(ordinal, 1)), pa.string())[0].as_py()
      for name in columns
    )

  def join(self, other: "Table", on: KeySpec | KeyMapping, how: str = "inner", suffix: str = "_right") -> Self:
    """Join this table with another one.

    :param other: The table to join with, this table is the left one.
    :param on: The key columns, see :meth:`tidyground.compute.KeyMapping.parse`.
    :param how: One of ``left``, ``right``, ``inner``, ``full``, ``semi``, ``anti``.
    :param suffix: Appended to right columns whose name clashes with a left column.
    :raises ValueError: For unknown kinds of join.
    """
    try:
      node_class = JOIN_NODES[how]
    except KeyError:
      raise ValueError(
        f"Unsupported join kind: {how}, expected one of {tuple(JOIN_NODES)}"
      ) from None
    return self.__class__(node_class(on, self.node(), other.node(), suffix=suffix))

  def left_join(self, other: "Table", on: KeySpec | KeyMapping, suffix: str = "_right") -> Self:
    """Keep all rows of this table, adding the columns of the other one."""
    return self.join(other, on, how="left", suffix=suffix)

  def right_join(self, other: "Table", on: KeySpec | KeyMapping, suffix: str = "_right") -> Self:
    """Keep all rows of the other table, adding the columns of this one."""
    return self.join(other, on, how="right", suffix=suffix)

  def inner_join(self, other: "Table", on: KeySpec | KeyMapping, suffix: str = "_right") -> Self:
    """Keep only the rows with a match in both tables."""
    return self.join(other, on, how="inner", suffix=suffix)

  def full_join(self, other: "Table", on: KeySpec | KeyMapping, suffix: str = "_right") -> Self:
    """Keep all the rows of both tables."""
    return self.join(other, on, how="full", suffix=suffix)

  def semi_join(self, other: "Table", on: KeySpec | KeyMapping) -> Self:
    """Keep the rows of this table that have a match in the other one."""
    return self.join(other, on, how="semi")

  def anti_join(self, other: "Table", on: KeySpec | KeyMapping) -> Self:
    """Keep the rows of this table that have no match in the other one."""
    return self.join(other, on, how="anti")

  def pivot_longer(self, columns: list[str], names_to: str = "name", values_to: str = "value") -> Self:
    """Collapse columns into a pair of name/value columns.

    >>> Table({"id": [1], "cases": [5], "population": [100]}).pivot_longer(
    ...     ["cases", "population"], names_to="type", values_to="count"
    ... ).to_pydict()
    {'id': [1, 1], 'type': ['cases', 'population'], 'count': [5, 100]}

    :param columns: The columns to collapse.
    :param names_to: The new column holding the names of the collapsed columns.
    :param values_to: The new column holding the values of the collapsed columns.
    """
    return self.__class__(PivotLongerNode(columns, names_to, values_to, self.node()))

  def pivot_wider(
    self,
    names_from: str = "name",
    values_from: str = "value",
    values_fill: Any = None,
    names_prefix: str = "",
    names_sort: bool = False,
  ) -> Self:
    """Spread a pair of name/value columns into one column per name.

    >>> long = Table({"id": [1, 1, 2], "k": ["a", "b", "a"], "v": [1, 2, 3]})
    >>> long.pivot_wider("k", "v", values_fill=0).to_pydict()
    {'id': [1, 2], 'a': [1, 3], 'b': [2, 0]}

    :param names_from: The column whose values become the new column names.
    :param values_from: The column whose values fill the new columns.
    :param values_fill: The value for combinations that are absent in the table.
    :param names_prefix: Prepended to the name of each new column.
    :param names_sort: Sort the new columns instead of using order of appearance.
    """
    return self.__class__(
      PivotWiderNode(
        names_from,
        values_from,
        self.node(),
        values_fill=values_fill,
        names_prefix=names_prefix,
        names_sort=names_sort,
      )
    )

  def equals(self, other: "Table") -> bool:
    """If the two tables have the same columns, types and values in the same order."""
    return self.batch.equals(other.batch)

  def to_arrow(self) -> pa.Table:
    """Return the data as a pyarrow.Table"""
    return pa.Table.from_batches([self.batch])

  def to_pydict(self) -> dict[str, list[Any]]:
    """Return the data as a ``{column: [values]}`` dictionary."""
    return self.batch.to_pydict()

  def to_pylist(self) -> list[dict[str, Any]]:
    """Return the data as a list of ``{column: value}`` rows."""
    return self.batch.to_pylist()

  def __str__(self) -> str:
    return tabulate.tabulate(self.batch, show_types=True)

  def __repr__(self) -> str:
    return f"Table(columns={self.column_names}, rows={self.num_rows})"
