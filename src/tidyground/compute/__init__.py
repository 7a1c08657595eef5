"""The TidyGround Compute Engine

The compute engine defines the in-memory
format for query plans and the plan nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leaf nodes of a query:

>>> import pyarrow as pa
>>> from tidyground.compute import PyArrowTableDataSource
>>> from tidyground.compute import InnerJoinNode, PivotLongerNode
>>> countries = pa.table({
...    "country": ["Afghanistan", "Brazil", "China"],
...    "cases": [745, 37737, 212258],
... })
>>> populations = pa.table({
...    "country": ["Brazil", "China"],
...    "population": [172006362, 1272915272],
... })
>>> query = PivotLongerNode(
...     ["cases", "population"], "type", "count",
...     child=InnerJoinNode(
...         "country",
...         PyArrowTableDataSource(countries),
...         PyArrowTableDataSource(populations),
...     )
... )
>>> for data in query.batches():
...     print(data.to_pydict())
{'country': ['Brazil', 'Brazil', 'China', 'China'], 'type': ['cases', 'population', 'cases', 'population'], 'count': [37737, 172006362, 212258, 1272915272]}
"""

from .base import QueryPlanNode, collect_batch
from .datasources import CSVDataSource, ParquetDataSource, PyArrowTableDataSource
from .join import (
    JOIN_NODES,
    AntiJoinNode,
    FullJoinNode,
    InnerJoinNode,
    KeyMapping,
    LeftJoinNode,
    RightJoinNode,
    SemiJoinNode,
)
from .reshape import PivotLongerNode, PivotWiderNode
from .selection import SelectNode
from .types import SemanticType, semantic_type

__all__ = (
    "QueryPlanNode",
    "collect_batch",
    "CSVDataSource",
    "ParquetDataSource",
    "PyArrowTableDataSource",
    "KeyMapping",
    "JOIN_NODES",
    "LeftJoinNode",
    "RightJoinNode",
    "InnerJoinNode",
    "FullJoinNode",
    "SemiJoinNode",
    "AntiJoinNode",
    "PivotLongerNode",
    "PivotWiderNode",
    "SelectNode",
    "SemanticType",
    "semantic_type",
)
