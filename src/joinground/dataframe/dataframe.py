"""The Dataframe object itself."""
from typing import Self

import pyarrow as pa

from ..compute import (
    AntiJoinNode,
    CSVDataSource,
    FullJoinNode,
    InnerJoinNode,
    IntersectNode,
    LeftJoinNode,
    ParquetDataSource,
    PyArrowTableDataSource,
    RightJoinNode,
    SemiJoinNode,
    SetDiffNode,
    UnionAllNode,
    UnionNode,
)
from ..compute import keys as _keys
from ..compute.base import QueryPlanNode
from ..compute.keys import KeySpec
from ..utils.tabulate import tabulate


class Dataframe:
  """Data structure that handles data in rows and columns.

  The Dataframe object allows to represent in-memory data
  and combine it with other dataframes through joins
  and set operations.

  The joinground dataframe object is lazy, which means that
  any join will be applied only when the
  ``.collect()`` method will be invoked and no data is kept
  in memory until that moment (unless it already was).

  The join verbs accept the keys in three forms:

  * ``by=None`` joins on all the columns the two dataframes have in common.
  * ``by="key"`` or ``by=["key1", "key2"]`` joins on columns
    that have the same name in both dataframes.
  * ``by={"left_name": "right_name"}`` joins on columns
    that are named differently.
  """
  def __init__(self, node_or_table: QueryPlanNode|pa.Table|pa.RecordBatch) -> None:
    """
    :param node_or_table: A compute engine node expected to emit
                          the data for the dataframe or a `pyarrow.Table`.
    """
    if isinstance(node_or_table, (pa.Table, pa.RecordBatch)):
      node_or_table = PyArrowTableDataSource(node_or_table)

    if not isinstance(node_or_table, QueryPlanNode):
      raise ValueError("Invalid input, expected a QueryPlanNode or a PyArrow Table")

    self.node = node_or_table

  @classmethod
  def open_csv(cls, filename: str) -> Self:
    """Open a CSV file and create a Dataframe out of its data.

    :param filename: The path to a local CSV file.
    """
    return cls(CSVDataSource(filename))

  @classmethod
  def open_parquet(cls, filename: str) -> Self:
    """Open a Parquet file and create a Dataframe out of its data.

    :param filename: The path to a local Parquet file.
    """
    return cls(ParquetDataSource(filename))

  def inner_join(self, other: Self, by: KeySpec|dict[str, str] = None, **options) -> Self:
    """Keep only the rows that have a match in the other dataframe.

    :param other: The dataframe to join with.
    :param by: The keys to join on.
    :param options: ``suffix``, ``relationship`` and ``unmatched``,
                    see :class:`joinground.compute.join.MutatingJoinNode`.
    """
    return self._join(InnerJoinNode, other, by, **options)

  def left_join(self, other: Self, by: KeySpec|dict[str, str] = None, **options) -> Self:
    """Add the columns of the other dataframe preserving all rows of this one."""
    return self._join(LeftJoinNode, other, by, **options)

  def right_join(self, other: Self, by: KeySpec|dict[str, str] = None, **options) -> Self:
    """Add the columns of the other dataframe preserving all its rows."""
    return self._join(RightJoinNode, other, by, **options)

  def full_join(self, other: Self, by: KeySpec|dict[str, str] = None, **options) -> Self:
    """Add the columns of the other dataframe preserving the rows of both."""
    return self._join(FullJoinNode, other, by, **options)

  def semi_join(self, other: Self, by: KeySpec|dict[str, str] = None) -> Self:
    """Keep the rows that have a match in the other dataframe."""
    return self._join(SemiJoinNode, other, by)

  def anti_join(self, other: Self, by: KeySpec|dict[str, str] = None) -> Self:
    """Keep the rows that have no match in the other dataframe."""
    return self._join(AntiJoinNode, other, by)

  def intersect(self, other: Self) -> Self:
    """Keep the distinct rows that are also in the other dataframe."""
    return self.__class__(IntersectNode(self.node, other.node))

  def union(self, other: Self) -> Self:
    """Combine the distinct rows of the two dataframes."""
    return self.__class__(UnionNode(self.node, other.node))

  def union_all(self, other: Self) -> Self:
    """Append the rows of the other dataframe, keeping duplicates."""
    return self.__class__(UnionAllNode(self.node, other.node))

  def setdiff(self, other: Self) -> Self:
    """Keep the distinct rows that are not in the other dataframe."""
    return self.__class__(SetDiffNode(self.node, other.node))

  def duplicated_keys(self, keys: KeySpec) -> Self:
    """Find the key values that identify more than one row.

    An empty result means that ``keys`` is a valid primary key.
    See :func:`joinground.compute.keys.duplicated_keys`.
    """
    return self.__class__(_keys.duplicated_keys(self.to_arrow(), keys))

  def unmatched_keys(self, other: Self, by: KeySpec|dict[str, str] = None) -> Self:
    """Find the foreign key values with no match in the other dataframe.

    See :func:`joinground.compute.keys.unmatched_keys`.
    """
    left_key, right_key = _split_by(by)
    return self.__class__(
      _keys.unmatched_keys(self.to_arrow(), other.to_arrow(), left_key, right_key)
    )

  def collect(self) -> Self:
    """Collect all data of the dataframe in memory.

    Returns a new Dataframe that has all data from the
    previous dataframe eagerly loaded in memory.
    """
    return self.__class__(self.to_arrow())

  def to_arrow(self) -> pa.Table:
    """Collect all the data and return a pyarrow.Table"""
    batches = list(self.node.batches())
    if not batches and hasattr(self.node, "poll_schema"):
      return self.node.poll_schema().empty_table()
    return pa.Table.from_batches(batches)

  @property
  def num_rows(self) -> int:
    """Number of rows, requires computing the dataframe."""
    return self.to_arrow().num_rows

  def __str__(self) -> str:
    return tabulate(self.to_arrow())

  def _join(self, node_class: type, other: Self, by: KeySpec|dict[str, str], **options) -> Self:
    left_key, right_key = _split_by(by)
    return self.__class__(node_class(left_key, right_key, self.node, other.node, **options))


def _split_by(by: KeySpec|dict[str, str]) -> tuple[KeySpec, KeySpec]:
  """Split the ``by`` argument into left and right keys."""
  if isinstance(by, dict):
    return list(by.keys()), list(by.values())
  return by, None
