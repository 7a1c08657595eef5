import logging

import pyarrow as pa
import pytest

from tidyground.compute import PyArrowTableDataSource
from tidyground.compute.reshape import PivotLongerNode, PivotWiderNode
from tidyground.errors import (
    DuplicateOutputColumnError,
    IncompatibleValueTypeError,
    UnknownColumnError,
)

WIDE_TEST_DATA = pa.record_batch(
    {
        "country": pa.array(["Afghanistan", "Brazil"]),
        "year": pa.array([1999, 1999]),
        "cases": pa.array([745, 37737]),
        "population": pa.array([19987071, 172006362]),
    }
)

LONG_TEST_DATA = pa.record_batch(
    {
        "country": pa.array(["Afghanistan", "Afghanistan", "Brazil"]),
        "year": pa.array([1999, 1999, 1999]),
        "type": pa.array(["cases", "population", "cases"]),
        "count": pa.array([745, 19987071, 37737]),
    }
)


@pytest.fixture
def wide_data_source():
    return PyArrowTableDataSource(WIDE_TEST_DATA)


@pytest.fixture
def long_data_source():
    return PyArrowTableDataSource(LONG_TEST_DATA)


def run(node):
    result_batches = list(node.batches())
    assert len(result_batches) == 1
    return result_batches[0]


def test_pivot_longer_single_row():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1], "cases": [5], "population": [100]})
    )
    result = run(PivotLongerNode(["cases", "population"], "type", "count", data))
    assert result.to_pydict() == {
        "id": [1, 1],
        "type": ["cases", "population"],
        "count": [5, 100],
    }


def test_pivot_longer(wide_data_source):
    result = run(
        PivotLongerNode(["cases", "population"], "type", "count", wide_data_source)
    )
    assert result.to_pydict() == {
        "country": ["Afghanistan", "Afghanistan", "Brazil", "Brazil"],
        "year": [1999, 1999, 1999, 1999],
        "type": ["cases", "population", "cases", "population"],
        "count": [745, 19987071, 37737, 172006362],
    }
    assert result.schema.field("count").type == pa.int64()
    assert result.schema.field("type").type == pa.string()


def test_pivot_longer_follows_table_column_order(wide_data_source):
    result = run(
        PivotLongerNode(["population", "cases"], "type", "count", wide_data_source)
    )
    assert result.column("type").to_pylist() == [
        "cases",
        "population",
        "cases",
        "population",
    ]


def test_pivot_longer_kept_columns_keep_their_order():
    data = PyArrowTableDataSource(
        pa.record_batch({"a": [1], "x": [2], "b": ["k"], "y": [3]})
    )
    result = run(PivotLongerNode(["x", "y"], "name", "value", data))
    assert result.schema.names == ["a", "b", "name", "value"]


def test_pivot_longer_widens_numbers():
    data = PyArrowTableDataSource(
        pa.record_batch(
            {
                "id": [1],
                "small": pa.array([1], type=pa.int8()),
                "ratio": pa.array([0.5], type=pa.float32()),
            }
        )
    )
    result = run(PivotLongerNode(["small", "ratio"], "name", "value", data))
    assert result.schema.field("value").type == pa.float64()
    assert result.column("value").to_pylist() == [1.0, 0.5]


def test_pivot_longer_with_missing_columns():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 2], "a": [1, None], "b": pa.nulls(2)})
    )
    result = run(PivotLongerNode(["a", "b"], "name", "value", data))
    assert result.schema.field("value").type == pa.int64()
    assert result.to_pydict() == {
        "id": [1, 1, 2, 2],
        "name": ["a", "b", "a", "b"],
        "value": [1, None, None, None],
    }


def test_pivot_longer_categorical_columns():
    data = PyArrowTableDataSource(
        pa.record_batch(
            {
                "id": [1, 2],
                "first": pa.array(["x", "y"]).dictionary_encode(),
                "second": pa.array(["z", "x"]).dictionary_encode(),
            }
        )
    )
    result = run(PivotLongerNode(["first", "second"], "name", "value", data))
    assert pa.types.is_dictionary(result.schema.field("value").type)
    assert result.column("value").to_pylist() == ["x", "z", "y", "x"]


def test_pivot_longer_incompatible_types(wide_data_source):
    with pytest.raises(IncompatibleValueTypeError):
        run(PivotLongerNode(["country", "cases"], "name", "value", wide_data_source))


@pytest.mark.parametrize(
    "names_to,values_to,clashing",
    [
        ("year", "count", "year"),
        ("type", "country", "country"),
        ("same", "same", "same"),
    ],
)
def test_pivot_longer_duplicate_output_columns(
    wide_data_source, names_to, values_to, clashing
):
    with pytest.raises(DuplicateOutputColumnError) as err:
        run(PivotLongerNode(["cases", "population"], names_to, values_to, wide_data_source))
    assert err.value.name == clashing


def test_pivot_longer_unknown_column(wide_data_source):
    with pytest.raises(UnknownColumnError) as err:
        run(PivotLongerNode(["cases", "deaths"], "type", "count", wide_data_source))
    assert err.value.name == "deaths"


def test_pivot_longer_requires_columns(wide_data_source):
    with pytest.raises(ValueError):
        PivotLongerNode([], "type", "count", wide_data_source)


def test_pivot_longer_empty_table():
    data = PyArrowTableDataSource(
        pa.table({"id": pa.array([], type=pa.int64()), "a": pa.array([], type=pa.int64())})
    )
    result = run(PivotLongerNode(["a"], "name", "value", data))
    assert result.num_rows == 0
    assert result.schema.names == ["id", "name", "value"]


def test_pivot_longer_str(wide_data_source):
    node = PivotLongerNode(["cases"], "type", "count", wide_data_source)
    assert str(node) == (
        "PivotLongerNode(columns=['cases'], names_to=type, values_to=count, "
        "child=PyArrowTableDataSource(columns=['country', 'year', 'cases', 'population'], rows=2))"
    )


def test_pivot_wider(long_data_source):
    result = run(PivotWiderNode("type", "count", long_data_source))
    assert result.to_pydict() == {
        "country": ["Afghanistan", "Brazil"],
        "year": [1999, 1999],
        "cases": [745, 37737],
        "population": [19987071, None],
    }
    assert result.schema.field("population").type == pa.int64()


def test_pivot_wider_fill_only_absent_combinations():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1, 2], "k": ["a", "b", "a"], "v": [1, None, 3]})
    )
    result = run(PivotWiderNode("k", "v", data, values_fill=0))
    assert result.to_pydict() == {"id": [1, 2], "a": [1, 3], "b": [None, 0]}


def test_pivot_wider_fill_on_missing_values_column():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 2], "k": ["a", "b"], "v": pa.nulls(2)})
    )
    result = run(PivotWiderNode("k", "v", data, values_fill=0))
    assert result.to_pydict() == {"id": [1, 2], "a": [None, 0], "b": [0, None]}


def test_pivot_wider_keeps_first_duplicate(caplog):
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1, 1], "k": ["a", "a", "b"], "v": [1, 2, 3]})
    )
    with caplog.at_level(logging.WARNING, logger="tidyground.compute.reshape"):
        result = run(PivotWiderNode("k", "v", data))

    assert result.to_pydict() == {"id": [1], "a": [1], "b": [3]}
    assert "1 duplicate values" in caplog.text


def test_pivot_wider_names_prefix_and_sort():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1], "year": [2000, 1999], "v": [10, 20]})
    )

    result = run(PivotWiderNode("year", "v", data, names_prefix="y"))
    assert result.schema.names == ["id", "y2000", "y1999"]

    result = run(PivotWiderNode("year", "v", data, names_sort=True))
    assert result.to_pydict() == {"id": [1], "1999": [20], "2000": [10]}


def test_pivot_wider_missing_names():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1], "k": ["a", None], "v": [1, 2]})
    )
    result = run(PivotWiderNode("k", "v", data))
    assert result.to_pydict() == {"id": [1], "a": [1], "NA": [2]}


def test_pivot_wider_missing_name_clashes_with_literal_na():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1, 1], "k": ["a", None, "NA"], "v": [1, 2, 3]})
    )
    with pytest.raises(DuplicateOutputColumnError) as err:
        run(PivotWiderNode("k", "v", data))
    assert err.value.name == "NA"


def test_pivot_wider_sorts_missing_name_last():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1, 1], "k": [None, "b", "a"], "v": [1, 2, 3]})
    )
    result = run(PivotWiderNode("k", "v", data, names_sort=True))
    assert result.to_pydict() == {"id": [1], "a": [3], "b": [2], "NA": [1]}


def test_pivot_wider_groups_nanosecond_timestamps():
    at = pa.array([1_000_000_001, 1_000_000_001, 2_000_000_003], type=pa.timestamp("ns"))
    data = PyArrowTableDataSource(
        pa.record_batch({"at": at, "k": ["a", "b", "a"], "v": [1, 2, 3]})
    )
    result = run(PivotWiderNode("k", "v", data))
    assert result.column("at").equals(
        pa.array([1_000_000_001, 2_000_000_003], type=pa.timestamp("ns"))
    )
    assert result.column("a").to_pylist() == [1, 3]
    assert result.column("b").to_pylist() == [2, None]


def test_pivot_wider_names_from_numbers():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 1], "year": pa.array([2000, 1999], type=pa.int16()), "v": [10, 20]})
    )
    result = run(PivotWiderNode("year", "v", data, names_prefix="y", names_sort=True))
    assert result.schema.names == ["id", "y1999", "y2000"]


def test_pivot_wider_all_names_missing():
    data = PyArrowTableDataSource(
        pa.record_batch({"id": [1, 2], "k": pa.nulls(2), "v": [1, 2]})
    )
    result = run(PivotWiderNode("k", "v", data))
    assert result.to_pydict() == {"id": [1, 2], "NA": [1, 2]}


def test_pivot_wider_without_id_columns():
    data = PyArrowTableDataSource(pa.record_batch({"k": ["a", "b"], "v": [1, 2]}))
    result = run(PivotWiderNode("k", "v", data))
    assert result.to_pydict() == {"a": [1], "b": [2]}


def test_pivot_wider_groups_missing_ids_together():
    data = PyArrowTableDataSource(
        pa.record_batch(
            {"id": pa.array([None, None], type=pa.int64()), "k": ["a", "b"], "v": [1, 2]}
        )
    )
    result = run(PivotWiderNode("k", "v", data))
    assert result.to_pydict() == {"id": [None], "a": [1], "b": [2]}


def test_pivot_wider_categorical_values():
    data = PyArrowTableDataSource(
        pa.record_batch(
            {
                "id": [1, 1, 2],
                "k": ["a", "b", "a"],
                "v": pa.array(["low", "high", "low"]).dictionary_encode(),
            }
        )
    )
    result = run(PivotWiderNode("k", "v", data, values_fill="none"))
    assert pa.types.is_dictionary(result.schema.field("a").type)
    assert result.to_pydict() == {"id": [1, 2], "a": ["low", "low"], "b": ["high", "none"]}


def test_pivot_wider_name_clashes_with_id_column():
    data = PyArrowTableDataSource(
        pa.record_batch({"a": [1, 2], "k": ["a", "b"], "v": [1, 2]})
    )
    with pytest.raises(DuplicateOutputColumnError) as err:
        run(PivotWiderNode("k", "v", data))
    assert err.value.name == "a"


def test_pivot_wider_incompatible_fill(long_data_source):
    with pytest.raises(IncompatibleValueTypeError):
        run(PivotWiderNode("type", "count", long_data_source, values_fill="unknown"))


def test_pivot_wider_unknown_column(long_data_source):
    with pytest.raises(UnknownColumnError) as err:
        run(PivotWiderNode("kind", "count", long_data_source))
    assert err.value.name == "kind"


def test_pivot_wider_same_names_and_values(long_data_source):
    with pytest.raises(ValueError):
        PivotWiderNode("count", "count", long_data_source)


def test_pivot_wider_str(long_data_source):
    node = PivotWiderNode("type", "count", long_data_source, values_fill=0)
    assert str(node) == (
        "PivotWiderNode(names_from=type, values_from=count, values_fill=0, "
        "child=PyArrowTableDataSource(columns=['country', 'year', 'type', 'count'], rows=3))"
    )
