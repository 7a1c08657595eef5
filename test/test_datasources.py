import os
import tempfile

import pyarrow as pa
import pyarrow.csv as csv
import pyarrow.parquet as pq
import pytest

from tidyground.compute.base import collect_batch
from tidyground.compute.datasources import (
    CSVDataSource,
    ParquetDataSource,
    PyArrowTableDataSource,
)
from tidyground.errors import DataSourceError

# A wide table, saved in every supported format
WIDE_TABLE = pa.table({"id": [1, 4, 7], "cases": [2, 5, 8], "population": [3, 6, 9]})

WIDE_CSV_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+")
WIDE_PARQUET_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+")
INVALID_PARQUET_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+")


def setup_module():
    csv.write_csv(WIDE_TABLE, WIDE_CSV_FILE.name)
    WIDE_CSV_FILE.close()
    pq.write_table(WIDE_TABLE, WIDE_PARQUET_FILE.name)
    WIDE_PARQUET_FILE.close()
    INVALID_PARQUET_FILE.write("id,cases\n1,2\n")
    INVALID_PARQUET_FILE.close()


def teardown_module():
    os.unlink(WIDE_CSV_FILE.name)
    os.unlink(WIDE_PARQUET_FILE.name)
    os.unlink(INVALID_PARQUET_FILE.name)


@pytest.mark.parametrize(
    "data_source_class, init_args, expected_str",
    [
        (
            CSVDataSource,
            (WIDE_CSV_FILE.name,),
            f"CSVDataSource({WIDE_CSV_FILE.name})",
        ),
        (
            ParquetDataSource,
            (WIDE_PARQUET_FILE.name,),
            f"ParquetDataSource({WIDE_PARQUET_FILE.name})",
        ),
        (
            PyArrowTableDataSource,
            (WIDE_TABLE,),
            "PyArrowTableDataSource(columns=['id', 'cases', 'population'], rows=3)",
        ),
        (
            PyArrowTableDataSource,
            (WIDE_TABLE.to_batches()[0],),
            "PyArrowTableDataSource(columns=['id', 'cases', 'population'], rows=3)",
        ),
    ],
)
def test_init_and_str(data_source_class, init_args, expected_str):
    data_source = data_source_class(*init_args)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "data_source_class, init_args",
    [
        (CSVDataSource, (WIDE_CSV_FILE.name,)),
        (ParquetDataSource, (WIDE_PARQUET_FILE.name,)),
        (PyArrowTableDataSource, (WIDE_TABLE,)),
        (PyArrowTableDataSource, (WIDE_TABLE.to_batches()[0],)),
    ],
)
def test_batches(data_source_class, init_args):
    data_source = data_source_class(*init_args)
    batches = list(data_source.batches())
    assert len(batches) == 1
    assert batches[0].equals(WIDE_TABLE.to_batches()[0])


@pytest.mark.parametrize(
    "data_source_class, init_args",
    [
        (CSVDataSource, (WIDE_CSV_FILE.name,)),
        (ParquetDataSource, (WIDE_PARQUET_FILE.name,)),
        (PyArrowTableDataSource, (WIDE_TABLE,)),
    ],
)
def test_poll_schema(data_source_class, init_args):
    data_source = data_source_class(*init_args)
    assert data_source.poll_schema().names == ["id", "cases", "population"]


def test_csv_column_types():
    data_source = CSVDataSource(WIDE_CSV_FILE.name, column_types={"id": pa.string()})
    assert data_source.poll_schema().field("id").type == pa.string()

    batch = next(data_source.batches())
    assert batch.column("id").to_pylist() == ["1", "4", "7"]
    assert batch.schema.field("cases").type == pa.int64()


def test_parquet_columns():
    data_source = ParquetDataSource(WIDE_PARQUET_FILE.name, columns=["population", "id"])
    assert data_source.poll_schema().names == ["population", "id"]
    assert next(data_source.batches()).to_pydict() == {
        "population": [3, 6, 9],
        "id": [1, 4, 7],
    }


def test_parquet_unknown_column():
    data_source = ParquetDataSource(WIDE_PARQUET_FILE.name, columns=["deaths"])
    with pytest.raises(DataSourceError):
        data_source.poll_schema()


@pytest.mark.parametrize(
    "data_source",
    [
        CSVDataSource("/does/not/exist.csv"),
        ParquetDataSource("/does/not/exist.parquet"),
        ParquetDataSource(INVALID_PARQUET_FILE.name),
    ],
    ids=["missing-csv", "missing-parquet", "invalid-parquet"],
)
def test_unreadable_files(data_source):
    with pytest.raises(DataSourceError) as err:
        list(data_source.batches())
    assert str(err.value).startswith(f"Unable to read {data_source.filename}: ")

    with pytest.raises(DataSourceError):
        data_source.poll_schema()


def test_empty_table_emits_empty_batch():
    empty = WIDE_TABLE.slice(0, 0)
    batches = list(PyArrowTableDataSource(empty).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.equals(WIDE_TABLE.schema)


def test_chunked_table_emits_single_batch():
    table = pa.concat_tables([WIDE_TABLE, WIDE_TABLE])
    assert table.column(0).num_chunks == 2

    batches = list(PyArrowTableDataSource(table).batches())

    assert len(batches) == 1
    assert batches[0].column("id").to_pylist() == [1, 4, 7, 1, 4, 7]
    assert collect_batch(PyArrowTableDataSource(table)).equals(batches[0])


def test_collect_batch_of_csv_without_rows():
    with tempfile.NamedTemporaryFile(mode="w", suffix=".csv", delete=False) as f:
        f.write("a,b\n")
    try:
        batch = collect_batch(CSVDataSource(f.name))
    finally:
        os.unlink(f.name)
    assert batch.num_rows == 0
    assert batch.schema.names == ["a", "b"]
