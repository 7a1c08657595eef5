"""Base classes and interfaces for Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
from typing import Iterator

import pyarrow as pa


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a simple plan might involve
    loading data and reshaping it::

        LoadDataNode -> PivotLongerNode(columns)

    That would be a plan where the last step
    is reshaping, and the LoadDataNode is a child
    of the pivot node.

    The number of children can be variable, some
    nodes like for example Joins, will accept two
    child nodes that have to be joined together.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.

    The base `QueryPlanNode` class does nothing
    and purely acts as the interface that all nodes
    must implement. Actual work will be done
    in the subclasses.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    print(b)
                    yield b

            def __str__(self):
                return f"DebugDataNode()"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> Iterator[pa.RecordBatch]:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Usually this happens by consuming data from its
        child nodes, transforming it somehow, and yielding
        it back to the next consumer.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...


def collect_batch(node: QueryPlanNode) -> pa.RecordBatch:
    """Run a node and gather all the batches it emits in a single one.

    Joins and pivots need to see all rows at once,
    so they accumulate the whole output of their children.

    Nodes might emit no batches at all when they have no data,
    in such case the schema is retrieved from the node itself
    if it's able to provide one (like data sources do).
    """
    batches = list(node.batches())
    if not batches:
        poll_schema = getattr(node, "poll_schema", None)
        if poll_schema is None:
            raise ValueError(f"{node} emitted no data and has no known schema")
        schema = poll_schema()
        return pa.record_batch(
            [pa.array([], type=field.type) for field in schema], schema=schema
        )
    if len(batches) == 1:
        return batches[0]

    # Going through a Table allows to concatenate the batches,
    # combining the chunks of each column gives back contiguous arrays.
    table = pa.Table.from_batches(batches)
    return pa.record_batch(
        [column.combine_chunks() for column in table.columns], schema=table.schema
    )
