import pyarrow as pa

from tidyground.utils.tabulate import format_value, tabulate


def test_tabulate():
    batch = pa.record_batch({"id": [1, 2], "val": ["x", None]})
    assert tabulate(batch) == "\n".join(
        [
            "id | val",
            "-- | ---",
            "1  | x",
            "2  | NA",
        ]
    )


def test_tabulate_with_types():
    batch = pa.record_batch({"id": [1], "val": ["x"]})
    assert tabulate(batch, show_types=True) == "\n".join(
        [
            "id       | val",
            "<number> | <text>",
            "-------- | ------",
            "1        | x",
        ]
    )


def test_tabulate_max_rows():
    batch = pa.record_batch({"n": list(range(5))})
    text = tabulate(batch, max_rows=2)
    assert text.splitlines() == ["n", "-", "0", "1", "... and 3 more rows"]


def test_tabulate_empty():
    batch = pa.record_batch({"n": pa.array([], type=pa.int64())})
    assert tabulate(batch) == "n\n-"


def test_format_value():
    assert format_value(None) == "NA"
    assert format_value(1.0 / 3) == "0.33"
    assert format_value(True) == "true"
    assert format_value(False) == "false"
    assert format_value(12) == "12"
    assert format_value("x" * 40) == "x" * 27 + "..."
