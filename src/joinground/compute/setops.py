"""Query plan nodes that implement set operations on rows.

Set operations treat each row of a table as an element of a set,
and two rows are the same element when all their values are equal.
Differently from joins, there is no key: the whole row is compared,
and two missing values in the same column are considered equal.

They require the two tables to have the same columns,
the order of the columns doesn't matter as the right table
is reordered to match the left one.

>>> import pyarrow as pa
>>> from joinground.compute import PyArrowTableDataSource
>>> df1 = PyArrowTableDataSource(pa.record_batch({"x": [1, 2], "y": [1, 1]}))
>>> df2 = PyArrowTableDataSource(pa.record_batch({"x": [1, 2], "y": [1, 2]}))
>>> next(IntersectNode(df1, df2).batches()).to_pylist()
[{'x': 1, 'y': 1}]
>>> next(UnionNode(df1, df2).batches()).to_pylist()
[{'x': 1, 'y': 1}, {'x': 2, 'y': 1}, {'x': 2, 'y': 2}]
>>> next(SetDiffNode(df1, df2).batches()).to_pylist()
[{'x': 2, 'y': 1}]

Apart from :class:`UnionAllNode`, all the operations return distinct rows,
in the order they first appear.
"""

import logging

import pyarrow as pa

from .base import QueryPlanNode, materialize
from .keys import common_type, comparable_types

logger = logging.getLogger(__name__)

# Replaces NaN values in row tuples.
NAN = object()


class IncompatibleSchemaError(ValueError):
    """The two tables don't have the same columns."""


class SetOperationNode(QueryPlanNode):
    """Base class for the set operations between two tables."""

    def __init__(self, left_child: QueryPlanNode, right_child: QueryPlanNode) -> None:
        """
        :param left_child: The node emitting the left table.
        :param right_child: The node emitting the right table.
        """
        self.left_child = left_child
        self.right_child = right_child

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(left={self.left_child}, right={self.right_child})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Load both tables and emit the result of the operation."""
        left_rb, right_rb = self.load()
        result = self.compute(left_rb, right_rb)
        logger.debug(
            "%s of %d and %d rows emitted %d rows",
            self.__class__.__name__,
            left_rb.num_rows,
            right_rb.num_rows,
            result.num_rows,
        )
        yield result

    def compute(self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch) -> pa.RecordBatch:
        """Apply the set operation to the aligned tables."""
        raise NotImplementedError

    def load(self) -> tuple[pa.RecordBatch, pa.RecordBatch]:
        """Load both tables aligning the right columns to the left ones.

        Columns are reordered and, when their types differ
        but are comparable (like int64 and double), cast
        to a common type so that the rows can be compared
        and concatenated.
        """
        left_rb = materialize(self.left_child)
        right_rb = materialize(self.right_child)

        left_names = left_rb.schema.names
        right_names = right_rb.schema.names
        if sorted(left_names) != sorted(right_names):
            missing_right = [n for n in left_names if n not in right_names]
            missing_left = [n for n in right_names if n not in left_names]
            raise IncompatibleSchemaError(
                f"Tables must have the same columns, "
                f"missing in right table: {missing_right}, missing in left table: {missing_left}"
            )

        left_columns = []
        right_columns = []
        for name in left_names:
            left_col = left_rb.column(name)
            right_col = right_rb.column(name)
            if not comparable_types(left_col.type, right_col.type):
                raise IncompatibleSchemaError(
                    f"Column {name} has incompatible types {left_col.type} and {right_col.type}"
                )
            if not left_col.type.equals(right_col.type):
                target = common_type(left_col.type, right_col.type)
                left_col = left_col.cast(target)
                right_col = right_col.cast(target)
            left_columns.append(left_col)
            right_columns.append(right_col)

        return (
            pa.RecordBatch.from_arrays(left_columns, names=left_names),
            pa.RecordBatch.from_arrays(right_columns, names=left_names),
        )


class IntersectNode(SetOperationNode):
    """Emit the distinct rows that appear in both tables."""

    def compute(self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch) -> pa.RecordBatch:
        right_rows = set(row_tuples(right_rb))
        return take_distinct(left_rb, lambda row: row in right_rows)


class UnionNode(SetOperationNode):
    """Emit the distinct rows that appear in either table.

    The rows of the left table come first, followed by
    the rows of the right table that were not seen yet.
    """

    def compute(self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch) -> pa.RecordBatch:
        return take_distinct(concat(left_rb, right_rb))


class UnionAllNode(SetOperationNode):
    """Emit all the rows of the left table followed by all rows of the right one.

    Duplicated rows are preserved, so this is not strictly
    a set operation, but it's frequently used in its place
    when the rows are known to be distinct.
    """

    def compute(self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch) -> pa.RecordBatch:
        return concat(left_rb, right_rb)


class SetDiffNode(SetOperationNode):
    """Emit the distinct rows of the left table that don't appear in the right one."""

    def compute(self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch) -> pa.RecordBatch:
        right_rows = set(row_tuples(right_rb))
        return take_distinct(left_rb, lambda row: row not in right_rows)


def row_tuples(batch: pa.RecordBatch) -> list[tuple]:
    """Convert each row of the batch to a tuple of its values.

    NaN is replaced by a marker, as it isn't equal to itself
    but two NaN in the same column are the same value for a set.
    """
    return [
        tuple(NAN if v != v else v for v in row)
        for row in zip(*(column.to_pylist() for column in batch.columns))
    ]


def take_distinct(batch: pa.RecordBatch, predicate=None) -> pa.RecordBatch:
    """Take the first occurrence of each distinct row of the batch.

    :param batch: The rows to deduplicate.
    :param predicate: When provided, only the rows for which it returns ``True``
                      are considered.
    """
    seen = set()
    indices = []
    for idx, row in enumerate(row_tuples(batch)):
        if row in seen:
            continue
        if predicate is not None and not predicate(row):
            continue
        seen.add(row)
        indices.append(idx)
    return batch.take(pa.array(indices, type=pa.int64()))


def concat(left_rb: pa.RecordBatch, right_rb: pa.RecordBatch) -> pa.RecordBatch:
    """Append the rows of the right batch to the left one."""
    return pa.RecordBatch.from_arrays(
        [
            pa.concat_arrays([left_col, right_col])
            for left_col, right_col in zip(left_rb.columns, right_rb.columns)
        ],
        names=left_rb.schema.names,
    )
