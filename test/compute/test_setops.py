import pyarrow as pa
import pytest

from joinground.compute import PyArrowTableDataSource
from joinground.compute.setops import (
    IncompatibleSchemaError,
    IntersectNode,
    SetDiffNode,
    UnionAllNode,
    UnionNode,
)

DF1 = pa.record_batch({"x": pa.array([1, 2]), "y": pa.array([1, 1])})
DF2 = pa.record_batch({"x": pa.array([1, 2]), "y": pa.array([1, 2])})


@pytest.fixture
def df1():
    return PyArrowTableDataSource(DF1)


@pytest.fixture
def df2():
    return PyArrowTableDataSource(DF2)


@pytest.mark.parametrize(
    "node_class,expected",
    [
        (IntersectNode, [(1, 1)]),
        (UnionNode, [(1, 1), (2, 1), (2, 2)]),
        (UnionAllNode, [(1, 1), (2, 1), (1, 1), (2, 2)]),
        (SetDiffNode, [(2, 1)]),
    ],
)
def test_set_operation(df1, df2, node_class, expected):
    result = list(node_class(df1, df2).batches())

    assert len(result) == 1
    assert result[0].schema.names == ["x", "y"]
    assert list(zip(result[0].column("x").to_pylist(), result[0].column("y").to_pylist())) == expected


def test_setdiff_is_not_symmetric(df1, df2):
    result = next(SetDiffNode(df2, df1).batches())

    assert result.to_pylist() == [{"x": 2, "y": 2}]


@pytest.mark.parametrize(
    "node_class,expected",
    [
        (IntersectNode, [1]),
        (UnionNode, [1, 2, 3]),
        (SetDiffNode, [2]),
    ],
)
def test_set_operation_removes_duplicates(node_class, expected):
    left = PyArrowTableDataSource(pa.record_batch({"x": [1, 1, 2, 2]}))
    right = PyArrowTableDataSource(pa.record_batch({"x": [1, 3, 3]}))

    result = next(node_class(left, right).batches())

    assert result.column("x").to_pylist() == expected


def test_set_operation_nulls_are_equal():
    left = PyArrowTableDataSource(pa.record_batch({"x": [1, None], "y": ["a", None]}))
    right = PyArrowTableDataSource(pa.record_batch({"x": [None], "y": [None]}))

    intersect = next(IntersectNode(left, right).batches())
    union = next(UnionNode(left, right).batches())

    assert intersect.to_pylist() == [{"x": None, "y": None}]
    assert union.num_rows == 2


def test_set_operation_reorders_columns():
    left = PyArrowTableDataSource(pa.record_batch({"x": [1, 2], "y": ["a", "b"]}))
    right = PyArrowTableDataSource(pa.record_batch({"y": ["b", "c"], "x": [2, 3]}))

    result = next(UnionNode(left, right).batches())

    assert result.to_pylist() == [
        {"x": 1, "y": "a"},
        {"x": 2, "y": "b"},
        {"x": 3, "y": "c"},
    ]


def test_set_operation_casts_comparable_types():
    left = PyArrowTableDataSource(pa.record_batch({"x": pa.array([1, 2], type=pa.int64())}))
    right = PyArrowTableDataSource(pa.record_batch({"x": pa.array([2.0, 3.0])}))

    result = next(UnionAllNode(left, right).batches())

    assert result.schema.field("x").type == pa.float64()
    assert result.column("x").to_pylist() == [1.0, 2.0, 2.0, 3.0]


def test_set_operation_keeps_fractional_values():
    left = PyArrowTableDataSource(pa.record_batch({"a": pa.array([1, 2], type=pa.int64())}))
    right = PyArrowTableDataSource(pa.record_batch({"a": pa.array([1.0, 2.5])}))

    union = next(UnionNode(left, right).batches())
    intersect = next(IntersectNode(left, right).batches())

    assert union.column("a").to_pylist() == [1.0, 2.0, 2.5]
    assert intersect.column("a").to_pylist() == [1.0]


@pytest.mark.parametrize(
    "node_class,expected",
    [(UnionNode, 1), (IntersectNode, 1), (SetDiffNode, 0), (UnionAllNode, 4)],
)
def test_set_operation_nan_rows_are_equal(node_class, expected):
    df = PyArrowTableDataSource(pa.record_batch({"a": [float("nan"), float("nan")]}))

    result = next(node_class(df, df).batches())

    assert result.num_rows == expected


def test_set_operation_different_columns():
    left = PyArrowTableDataSource(pa.record_batch({"x": [1], "y": [2]}))
    right = PyArrowTableDataSource(pa.record_batch({"x": [1], "z": [2]}))

    with pytest.raises(IncompatibleSchemaError, match=r"missing in right table: \['y'\]"):
        next(IntersectNode(left, right).batches())


def test_set_operation_incompatible_types():
    left = PyArrowTableDataSource(pa.record_batch({"x": [1]}))
    right = PyArrowTableDataSource(pa.record_batch({"x": ["1"]}))

    with pytest.raises(IncompatibleSchemaError, match="incompatible types"):
        next(UnionNode(left, right).batches())


def test_set_operation_str(df1, df2):
    assert str(UnionNode(df1, df2)) == (
        "UnionNode(left=PyArrowTableDataSource(columns=['x', 'y'], rows=2), "
        "right=PyArrowTableDataSource(columns=['x', 'y'], rows=2))"
    )
