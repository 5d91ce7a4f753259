"""The JoinGround Compute Engine

The compute engine defines the in-memory
format for query plans and the join nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build join pipelines like::

    (RecordBatch)--+
                   +-->JoinNode--(RecordBatch)-->JoinNode--(RecordBatch)-->...
    (RecordBatch)--+

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with ``DataSource`` nodes as the
leafs of the plan:

>>> import pyarrow as pa
>>> flights = pa.table({
...    "flight": pa.array([1545, 1714, 1141]),
...    "carrier": pa.array(["UA", "UA", "AA"]),
... })
>>> airlines = pa.table({
...    "carrier": pa.array(["AA", "UA"]),
...    "name": pa.array(["American Airlines Inc.", "United Air Lines Inc."]),
... })
>>>
>>> from joinground.compute import LeftJoinNode, PyArrowTableDataSource
>>> query = LeftJoinNode(
...     "carrier", "carrier",
...     PyArrowTableDataSource(flights),
...     PyArrowTableDataSource(airlines),
... )
>>> for data in query.batches():
...     print(data)
pyarrow.RecordBatch
flight: int64
carrier: string
name: string
----
flight: [1545,1714,1141]
carrier: ["UA","UA","AA"]
name: ["United Air Lines Inc.","United Air Lines Inc.","American Airlines Inc."]
"""

from .base import QueryPlanNode, materialize
from .datasources import (
    CSVDataSource,
    ParquetDataSource,
    PyArrowTableDataSource,
    open_datasource,
)
from .join import (
    AntiJoinNode,
    FullJoinNode,
    InnerJoinNode,
    JoinRelationshipError,
    JoinUnmatchedError,
    LeftJoinNode,
    RightJoinNode,
    SemiJoinNode,
)
from .keys import (
    JoinKeyError,
    JoinKeys,
    duplicated_keys,
    is_primary_key,
    unmatched_keys,
)
from .setops import (
    IncompatibleSchemaError,
    IntersectNode,
    SetDiffNode,
    UnionAllNode,
    UnionNode,
)

__all__ = (
    "QueryPlanNode",
    "materialize",
    "CSVDataSource",
    "ParquetDataSource",
    "PyArrowTableDataSource",
    "open_datasource",
    "InnerJoinNode",
    "LeftJoinNode",
    "RightJoinNode",
    "FullJoinNode",
    "SemiJoinNode",
    "AntiJoinNode",
    "JoinRelationshipError",
    "JoinUnmatchedError",
    "JoinKeyError",
    "JoinKeys",
    "duplicated_keys",
    "is_primary_key",
    "unmatched_keys",
    "IntersectNode",
    "UnionNode",
    "UnionAllNode",
    "SetDiffNode",
    "IncompatibleSchemaError",
)
