"""Query plan nodes that implement selection of columns.

A common request when preparing data for a join or a pivot
is to keep only the columns that are relevant,
which is what ``select()`` does in most dataframe libraries.

This module implements the basic selection capabilities.
"""

from typing import Iterator

import pyarrow as pa

from ..errors import UnknownColumnError
from .base import QueryPlanNode


class SelectNode(QueryPlanNode):
    """Select specific columns of the data.

    The selection expects a list of column names to keep,
    the columns are emitted in the order they were requested
    while the order of the rows is preserved.

    >>> import pyarrow as pa
    >>> from tidyground.compute import PyArrowTableDataSource
    >>> data = pa.record_batch({"a": [1, 2, 3], "b": [4, 5, 6], "c": [7, 8, 9]})
    >>> next(SelectNode(["c", "a"], PyArrowTableDataSource(data)).batches()).to_pydict()
    {'c': [7, 8, 9], 'a': [1, 2, 3]}
    """

    def __init__(self, select: list[str], child: QueryPlanNode) -> None:
        """
        :param select: The list of column names to keep.
                       ``[]`` means no column will be kept.
        :param child: The node emitting the data to select the columns from.
        """
        self.select = list(select)
        self.child = child

    def __str__(self) -> str:
        return f"SelectNode(select={self.select}, child={self.child})"

    def batches(self) -> Iterator[pa.RecordBatch]:
        """Apply the selection to the child node.

        For each recordbatch yielded by the child node,
        check that all the requested columns are available
        and then pick them.
        """
        for batch in self.child.batches():
            for name in self.select:
                if name not in batch.schema.names:
                    raise UnknownColumnError(name, batch.schema.names)
            yield batch.select(self.select)
