"""Query Plan nodes that load data

The datasource nodes are the leaves of every plan: they fetch
the data of a table from some source and feed it to the joins
and pivots as Arrow data.

Joins and pivots need to see the whole table before emitting
anything, so instead of streaming a file in many small batches
the file data sources read the whole file at once and emit it
as a single batch. A table without any row still emits one
empty batch, so that the next node gets to know its columns.

Files that can't be read, because they don't exist or
because their content is not valid, are reported
as a :class:`tidyground.errors.DataSourceError`::

    >>> CSVDataSource("/does/not/exist.csv").poll_schema()
    Traceback (most recent call last):
        ...
    tidyground.errors.DataSourceError: Unable to read /does/not/exist.csv: ...
"""

from abc import abstractmethod

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from ..errors import DataSourceError
from .base import QueryPlanNode


def single_batch(table: pa.Table) -> pa.RecordBatch:
    """Merge all the chunks of a table into one batch."""
    batches = table.combine_chunks().to_batches()
    if not batches:
        return pa.record_batch(
            [pa.array([], type=field.type) for field in table.schema],
            schema=table.schema,
        )
    return batches[0]


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that load data from a source."""

    @abstractmethod
    def read(self) -> pa.Table:
        """Load the whole content of the data source."""
        ...

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the data source without loading its content."""
        ...

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the content of the data source as a single batch."""
        yield single_batch(self.read())


class FileDataSource(DataSourceNode):
    """Base class for data sources that read a local file."""

    def __init__(self, filename: str) -> None:
        """
        :param filename: The path of the local file.
        """
        self.filename = filename

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.filename})"

    def failure(self, error: Exception) -> DataSourceError:
        """The error reported when the file can't be read."""
        return DataSourceError(f"Unable to read {self.filename}: {error}")


class CSVDataSource(FileDataSource):
    """Load data from a CSV file.

    The type of each column is guessed from its values,
    unless it's explicitly provided through ``column_types``.
    """

    def __init__(self, filename: str, column_types: dict[str, pa.DataType] | None = None) -> None:
        """
        :param filename: The path of the local CSV file.
        :param column_types: The Arrow type of some of the columns,
                             those not listed are inferred.
        """
        super().__init__(filename)
        self.column_types = column_types or {}

    def read(self) -> pa.Table:
        """Read and parse the whole CSV file."""
        try:
            return pa.csv.read_csv(
                self.filename,
                convert_options=pa.csv.ConvertOptions(column_types=self.column_types),
            )
        except (OSError, pa.ArrowInvalid) as e:
            raise self.failure(e) from e

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the CSV file, parsing only its first block."""
        try:
            with pa.csv.open_csv(
                self.filename,
                convert_options=pa.csv.ConvertOptions(column_types=self.column_types),
            ) as reader:
                return reader.schema
        except (OSError, pa.ArrowInvalid) as e:
            raise self.failure(e) from e


class ParquetDataSource(FileDataSource):
    """Load data from a Parquet file.

    Parquet files are columnar, so when only
    some ``columns`` are needed the others are never read.
    """

    def __init__(self, filename: str, columns: list[str] | None = None) -> None:
        """
        :param filename: The path of the local parquet file.
        :param columns: The columns to load, all of them when not provided.
        """
        super().__init__(filename)
        self.columns = columns

    def read(self) -> pa.Table:
        """Read the requested columns of the Parquet file."""
        try:
            return pa.parquet.read_table(self.filename, columns=self.columns)
        except (OSError, pa.ArrowInvalid) as e:
            raise self.failure(e) from e

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the Parquet file from its metadata."""
        try:
            schema = pa.parquet.read_schema(self.filename)
        except (OSError, pa.ArrowInvalid) as e:
            raise self.failure(e) from e
        if self.columns is None:
            return schema
        try:
            return pa.schema([schema.field(name) for name in self.columns])
        except KeyError as e:
            raise self.failure(e) from e


class PyArrowTableDataSource(DataSourceNode):
    """Load data from an in-memory pyarrow.Table or pyarrow.RecordBatch.

    Given a :class:`pyarrow.Table` or `pyarrow.RecordBatch` object,
    allow to use its data in a query plan.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def read(self) -> pa.Table:
        if isinstance(self.table, pa.RecordBatch):
            return pa.Table.from_batches([self.table])
        return self.table

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the data contained in the Table for consumption by other node.

        A record batch is emitted as is, while the chunks
        of a table are merged in a single batch.
        """
        if isinstance(self.table, pa.RecordBatch):
            yield self.table
        else:
            yield single_batch(self.table)

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the Table."""
        return self.table.schema
