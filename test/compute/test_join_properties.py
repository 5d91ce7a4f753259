"""Relations that must hold between the results of the different joins."""

import pyarrow as pa
import pytest

from joinground.compute import (
    AntiJoinNode,
    FullJoinNode,
    InnerJoinNode,
    IntersectNode,
    LeftJoinNode,
    PyArrowTableDataSource,
    SemiJoinNode,
    UnionNode,
    materialize,
)

TABLE_PAIRS = [
    (
        pa.record_batch({"key": [1, 2, 2], "val_x": ["x1", "x2", "x3"]}),
        pa.record_batch({"key": [1, 2], "val_y": ["y1", "y2"]}),
    ),
    (
        pa.record_batch({"key": [1, 2, 3], "val_x": ["x1", "x2", "x3"]}),
        pa.record_batch({"key": [1, 2, 4], "val_y": ["y1", "y2", "y3"]}),
    ),
    (
        pa.record_batch({"key": [1, 1, None, 5], "val_x": ["x1", "x2", "x3", "x4"]}),
        pa.record_batch({"key": [1, 1, None, 7], "val_y": ["y1", "y2", "y3", "y4"]}),
    ),
    (
        pa.record_batch({"key": pa.array([], type=pa.int64()), "val_x": pa.array([], type=pa.string())}),
        pa.record_batch({"key": [1], "val_y": ["y1"]}),
    ),
]


def _run(node_class, x, y):
    return materialize(
        node_class("key", "key", PyArrowTableDataSource(x), PyArrowTableDataSource(y))
    )


@pytest.mark.parametrize("x,y", TABLE_PAIRS)
def test_row_counts_grow_with_preserved_rows(x, y):
    inner = _run(InnerJoinNode, x, y)
    left = _run(LeftJoinNode, x, y)
    full = _run(FullJoinNode, x, y)

    assert inner.num_rows <= left.num_rows <= full.num_rows


@pytest.mark.parametrize("x,y", TABLE_PAIRS)
def test_left_join_matched_rows_are_the_inner_join(x, y):
    inner = _run(InnerJoinNode, x, y)
    left = _run(LeftJoinNode, x, y)

    # val_y is never null in the right tables, so a null means no match.
    matched = [row for row in left.to_pylist() if row["val_y"] is not None]
    assert matched == inner.to_pylist()


@pytest.mark.parametrize("x,y", TABLE_PAIRS)
def test_semi_join_never_grows(x, y):
    semi = _run(SemiJoinNode, x, y)

    assert semi.num_rows <= x.num_rows
    assert len(set(semi.column("val_x").to_pylist())) == semi.num_rows


@pytest.mark.parametrize("x,y", TABLE_PAIRS)
def test_semi_and_anti_join_partition_the_left_table(x, y):
    semi = _run(SemiJoinNode, x, y).column("val_x").to_pylist()
    anti = _run(AntiJoinNode, x, y).column("val_x").to_pylist()

    assert not set(semi) & set(anti)
    assert sorted(semi + anti) == sorted(x.column("val_x").to_pylist())


def test_left_join_worked_example():
    x, y = TABLE_PAIRS[0]

    result = _run(LeftJoinNode, x, y)

    assert [tuple(row.values()) for row in result.to_pylist()] == [
        (1, "x1", "y1"),
        (2, "x2", "y2"),
        (2, "x3", "y2"),
    ]


def test_set_operations_worked_example():
    df1 = PyArrowTableDataSource(pa.record_batch({"a": [1, 2], "b": [1, 1]}))
    df2 = PyArrowTableDataSource(pa.record_batch({"a": [1, 2], "b": [1, 2]}))

    intersect = materialize(IntersectNode(df1, df2))
    union = materialize(UnionNode(df1, df2))

    assert [tuple(r.values()) for r in intersect.to_pylist()] == [(1, 1)]
    assert [tuple(r.values()) for r in union.to_pylist()] == [(1, 1), (2, 1), (2, 2)]
