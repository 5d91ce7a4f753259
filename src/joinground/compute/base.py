"""Base classes and interfaces for the Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
from typing import Generator

import pyarrow as pa


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a plan that joins flights to the
    airlines that operate them might look like::

        CSVDataSource(flights) --+
                                 +--> LeftJoinNode(carrier)
        CSVDataSource(airlines) -+

    That would be a plan where the last step
    is the join, and the two data sources are
    the children of the join node.

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

    RecordBatchesGenerator = Generator[pa.RecordBatch, None, None]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
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


def materialize(node: QueryPlanNode) -> pa.RecordBatch:
    """Load all the data emitted by a node into a single RecordBatch.

    Joins and set operations need to see every row of their
    inputs before they can emit anything, so they collect the
    batches of their children in memory.

    Going through a :class:`pyarrow.Table` allows to concatenate
    the batches without copying them until ``combine_chunks``
    is invoked.
    """
    batches = list(node.batches())
    if len(batches) == 1:
        return batches[0]

    if not batches:
        # Sources with no rows might emit no batches at all,
        # in that case only the schema can tell us the columns.
        if not hasattr(node, "poll_schema"):
            raise ValueError(f"{node} emitted no data and has no schema")
        return pa.RecordBatch.from_pylist([], schema=node.poll_schema())

    table = pa.Table.from_batches(batches).combine_chunks()
    if table.num_rows == 0:
        return pa.RecordBatch.from_pylist([], schema=table.schema)
    return table.to_batches()[0]
