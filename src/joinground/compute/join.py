"""Query plan nodes that implement join operations.

Joins combine a pair of tables, the left one and the right one,
by matching their rows on the values of key columns.

There are two families of joins:

* **Mutating joins** add the columns of the right table
  to the rows of the left table that match them:
  :class:`InnerJoinNode`, :class:`LeftJoinNode`,
  :class:`RightJoinNode` and :class:`FullJoinNode`.
* **Filtering joins** only use the right table to decide
  which rows of the left table to keep, they never add columns:
  :class:`SemiJoinNode` and :class:`AntiJoinNode`.

All joins are implemented as hash joins: the rows of the right
table are indexed by their key in a hash table, then the
rows of the left table probe it to find their matches.

Keys are compared by exact equality, a null key never
matches anything, not even another null.

Inner Join
==========

Provided by :class:`InnerJoinNode`, the class provides a complete description
of the steps involved in performing a join operation.

>>> import pyarrow as pa
>>> from joinground.compute import InnerJoinNode
>>> from joinground.compute import PyArrowTableDataSource
>>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
>>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
>>> join_node = InnerJoinNode("id", "id", left, right)
>>> next(join_node.batches())
pyarrow.RecordBatch
id: int64
name: string
age: int64
----
id: [2,3]
name: ["Bob","Charlie"]
age: [30,25]
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from .base import QueryPlanNode, materialize
from .keys import JoinKeys, KeySpec, common_type, index_keys, key_tuples

logger = logging.getLogger(__name__)

RELATIONSHIPS = ("one-to-one", "one-to-many", "many-to-one", "many-to-many")
UNMATCHED = ("drop", "error")


class JoinRelationshipError(ValueError):
    """The rows matched by a join violate the declared relationship."""


class JoinUnmatchedError(ValueError):
    """Rows that would be dropped by a join had no match."""


class JoinNode(QueryPlanNode):
    """Base class for all the join nodes.

    Takes care of loading both tables and resolving
    which columns have to be compared to match rows.
    """

    def __init__(
        self,
        left_key: KeySpec,
        right_key: KeySpec,
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
    ) -> None:
        """
        :param left_key: The key column(s) to join on in the left table.
        :param right_key: The key column(s) to join on in the right table.
                          When both keys are ``None`` the tables are
                          joined on all the columns they have in common.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        """
        self.left_key = left_key
        self.right_key = right_key
        self.left_child = left_child
        self.right_child = right_child

    def __str__(self) -> str:
        return (
            f"{self.__class__.__name__}(left_key={self.left_key}, right_key={self.right_key}, "
            f"left={self.left_child}, right={self.right_child})"
        )

    def load(self) -> tuple[pa.RecordBatch, pa.RecordBatch, JoinKeys]:
        """Load both tables in memory and resolve the join keys.

        To perform joins we need all rows of the right table
        in memory to build the hash table, and all rows of the
        left table to be able to preserve their order.
        """
        left_rb = materialize(self.left_child)
        right_rb = materialize(self.right_child)
        keys = JoinKeys.resolve(
            self.left_key, self.right_key, left_rb.schema, right_rb.schema
        )
        logger.debug(
            "%s on %s: %d left rows, %d right rows",
            self.__class__.__name__,
            keys,
            left_rb.num_rows,
            right_rb.num_rows,
        )
        return left_rb, right_rb, keys


class MutatingJoinNode(JoinNode):
    """Join two tables, adding the columns of the right one to the left one.

    The subclasses only differ in which unmatched rows they preserve,
    the inner join preserves none of them, the left join preserves
    those of the left table, the right join those of the right table
    and the full join those of both tables.

    Supposing we have two tables where one of the keys is duplicated::

        left:
        +----+------+
        | id | name |
        +----+------+
        | 1  | x1   |
        | 2  | x2   |
        | 2  | x3   |
        | 4  | x4   |
        +----+------+

        right:
        +----+-------+
        | id | name  |
        +----+-------+
        | 1  | y1    |
        | 2  | y2    |
        | 3  | y3    |
        +----+-------+

    We would perform the following steps:

    1. Build the hash table of the right keys, mapping
       each key to the rows of the right table having it::

        {1: [0], 2: [1], 3: [2]}

    2. Probe the hash table with the key of each left row.
       Each left row is paired with every right row it matches,
       which is where duplicated keys multiply the rows.
       Unmatched rows are paired with ``None`` when they have to be
       preserved. This leads to two lists of row indices::

        left_indices:  [0, 1, 2, 3]
        right_indices: [0, 1, 1, None]

    3. When the right table has to be preserved too, the rows
       of the right table that were never matched are appended::

        left_indices:  [0, 1, 2, 3,    None]
        right_indices: [0, 1, 1, None, 2]

    4. Take the rows at those indices from both tables, a ``None``
       index leads to a row of nulls, and combine the columns.
       The key is emitted only once, and the name of the right
       table gets the ``_right`` suffix as it collides with the left one::

        full join:
        +----+------+------------+
        | id | name | name_right |
        +----+------+------------+
        | 1  | x1   | y1         |
        | 2  | x2   | y2         |
        | 2  | x3   | y2         |
        | 4  | x4   | NA         |
        | 3  | NA   | y3         |
        +----+------+------------+
    """

    keep_left_unmatched = False
    keep_right_unmatched = False

    def __init__(
        self,
        left_key: KeySpec,
        right_key: KeySpec,
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        suffix: str = "_right",
        relationship: str | None = None,
        unmatched: str = "drop",
    ) -> None:
        """
        :param left_key: The key column(s) to join on in the left table.
        :param right_key: The key column(s) to join on in the right table.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param suffix: Appended to the right columns that collide
                       with the name of a left column.
        :param relationship: The expected relationship between the keys
                             of the two tables, one of ``"one-to-one"``,
                             ``"one-to-many"``, ``"many-to-one"``, ``"many-to-many"``.
                             ``None`` only warns about many-to-many matches.
        :param unmatched: What to do with rows that are dropped because
                          they have no match, ``"drop"`` them or raise an ``"error"``.
        """
        super().__init__(left_key, right_key, left_child, right_child)
        if not suffix:
            raise ValueError("The suffix for colliding columns can't be empty")
        if relationship is not None and relationship not in RELATIONSHIPS:
            raise ValueError(
                f"Invalid relationship {relationship!r}, expected one of {RELATIONSHIPS}"
            )
        if unmatched not in UNMATCHED:
            raise ValueError(
                f"Invalid unmatched {unmatched!r}, expected one of {UNMATCHED}"
            )
        self.suffix = suffix
        self.relationship = relationship
        self.unmatched = unmatched

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for tables that don't fit in memory.
        """
        left_rb, right_rb, keys = self.load()

        left_keys = key_tuples(left_rb, keys.left)
        right_keys = key_tuples(right_rb, keys.right)
        right_index = index_keys(right_keys)
        self.check_relationship(left_keys, right_index)

        left_indices: list[int | None] = []
        right_indices: list[int | None] = []
        right_matched = [False] * right_rb.num_rows
        left_unmatched = 0
        for left_row, key in enumerate(left_keys):
            matches = right_index.get(key) if key is not None else None
            if matches:
                for right_row in matches:
                    left_indices.append(left_row)
                    right_indices.append(right_row)
                    right_matched[right_row] = True
            else:
                left_unmatched += 1
                if self.keep_left_unmatched:
                    left_indices.append(left_row)
                    right_indices.append(None)

        right_unmatched = right_matched.count(False)
        if self.keep_right_unmatched:
            for right_row, matched in enumerate(right_matched):
                if not matched:
                    left_indices.append(None)
                    right_indices.append(right_row)

        if self.unmatched == "error":
            if left_unmatched and not self.keep_left_unmatched:
                raise JoinUnmatchedError(
                    f"{left_unmatched} rows of the left table have no match on {keys.left}"
                )
            if right_unmatched and not self.keep_right_unmatched:
                raise JoinUnmatchedError(
                    f"{right_unmatched} rows of the right table have no match on {keys.right}"
                )

        result = self.combine(
            left_rb.take(pa.array(left_indices, type=pa.int64())),
            right_rb.take(pa.array(right_indices, type=pa.int64())),
            keys,
        )
        logger.debug("%s emitted %d rows", self.__class__.__name__, result.num_rows)
        yield result

    def combine(
        self, left_rb: pa.RecordBatch, right_rb: pa.RecordBatch, keys: JoinKeys
    ) -> pa.RecordBatch:
        """Combine the aligned rows of the two tables in a new one.

        ``left_rb`` and ``right_rb`` are expected to have the
        same number of rows, each row of the left one being joined
        to the same row of the right one.
        """
        right_key_for = dict(keys)

        combined_data = {}
        for name in left_rb.column_names:
            column = left_rb.column(name)
            if self.keep_right_unmatched and name in right_key_for:
                # Rows that only exist in the right table have no
                # left key, take it from the right key they matched.
                column = _coalesce(column, right_rb.column(right_key_for[name]))
            combined_data[name] = column
        for name in right_rb.column_names:
            if name in keys.right:
                # Skip the right keys as they have the same values of the left keys
                # and we don't want to duplicate them in the resulting recordbatch
                continue
            new_name = name
            while new_name in combined_data:
                # If the column already exists in the left table, we need to rename it
                new_name += self.suffix
            combined_data[new_name] = right_rb.column(name)
        return pa.RecordBatch.from_arrays(
            list(combined_data.values()), names=list(combined_data.keys())
        )

    def check_relationship(
        self, left_keys: list[tuple | None], right_index: dict[tuple, list[int]]
    ) -> None:
        """Verify that the matching keys respect the declared relationship.

        * ``many-to-one`` requires that each left row matches
          at most one right row.
        * ``one-to-many`` requires that each right row matches
          at most one left row.
        * ``one-to-one`` requires both.
        * ``many-to-many`` accepts anything.

        When no relationship is declared, rows matching multiple
        rows on both sides are probably a mistake in the keys,
        so a warning is logged.
        """
        if self.relationship == "many-to-many":
            return

        left_index = index_keys(left_keys)
        matched = [key for key in left_index if key in right_index]
        left_multiple = [key for key in matched if len(right_index[key]) > 1]
        right_multiple = [key for key in matched if len(left_index[key]) > 1]

        if self.relationship is None:
            if left_multiple and right_multiple:
                logger.warning(
                    "Detected an unexpected many-to-many relationship in %s, "
                    "left key %s matches multiple right rows and "
                    "right key %s matches multiple left rows",
                    self.__class__.__name__,
                    left_multiple[0],
                    right_multiple[0],
                )
            return

        if self.relationship in ("one-to-one", "many-to-one") and left_multiple:
            raise JoinRelationshipError(
                f"Expected {self.relationship} relationship, "
                f"but left key {left_multiple[0]} matches {len(right_index[left_multiple[0]])} right rows"
            )
        if self.relationship in ("one-to-one", "one-to-many") and right_multiple:
            raise JoinRelationshipError(
                f"Expected {self.relationship} relationship, "
                f"but right key {right_multiple[0]} matches {len(left_index[right_multiple[0]])} left rows"
            )


class InnerJoinNode(MutatingJoinNode):
    """Join two data sources using an inner join.

    Only the rows that have a match in both tables are emitted.
    When a key appears M times in the left table and N times in
    the right table, the M x N combinations of those rows are emitted.

    Supposing we have two tables::

        left:                   right:
        +----+---------+        +----+-----+
        | id | name    |        | id | age |
        +----+---------+        +----+-----+
        | 1  | Alice   |        | 3  | 25  |
        | 2  | Bob     |        | 2  | 30  |
        | 3  | Charlie |        +----+-----+
        +----+---------+

    Alice has no match and is dropped::

        +----+---------+-----+
        | id | name    | age |
        +----+---------+-----+
        | 2  | Bob     | 30  |
        | 3  | Charlie | 25  |
        +----+---------+-----+
    """


class LeftJoinNode(MutatingJoinNode):
    """Join two data sources using a left outer join.

    All the rows of the left table are preserved,
    the right columns are null for those that had no match.
    This is the most common join, as it allows to add
    information to a table without losing any of its rows.

    >>> import pyarrow as pa
    >>> from joinground.compute import PyArrowTableDataSource
    >>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
    >>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
    >>> next(LeftJoinNode("id", "id", left, right).batches()).to_pylist()
    [{'id': 1, 'name': 'Alice', 'age': None}, {'id': 2, 'name': 'Bob', 'age': 30}, {'id': 3, 'name': 'Charlie', 'age': 25}]
    """

    keep_left_unmatched = True


class RightJoinNode(MutatingJoinNode):
    """Join two data sources using a right outer join.

    All the rows of the right table are preserved,
    the left columns are null for those that had no match
    except for the keys, which are taken from the right table.
    Rows of the right table without a match come after the matched ones.
    """

    keep_right_unmatched = True


class FullJoinNode(MutatingJoinNode):
    """Join two data sources using a full outer join.

    All the rows of both tables appear in the result at least once.
    The rows of the left table come first in their original order,
    followed by the rows of the right table that had no match.
    """

    keep_left_unmatched = True
    keep_right_unmatched = True


class FilteringJoinNode(JoinNode):
    """Filter the rows of the left table based on the right table.

    Filtering joins never duplicate rows and never add columns,
    the result has exactly the schema of the left table.
    """

    keep_matched = True

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Filter the left table keeping matched or unmatched rows."""
        left_rb, right_rb, keys = self.load()

        key_type = left_rb.schema.field(keys.left[0]).type
        if (
            len(keys.left) == 1
            and key_type.equals(right_rb.schema.field(keys.right[0]).type)
            and not pa.types.is_floating(key_type)
        ):
            # With a single key of the same type on both sides, the lookup
            # can be done by Arrow itself without going through Python objects.
            # Floats go through key tuples, as is_in would match NaN with NaN.
            right_key_values = pc.unique(right_rb.column(keys.right[0]))
            mask = pc.is_in(
                left_rb.column(keys.left[0]),
                options=pc.SetLookupOptions(value_set=right_key_values, skip_nulls=True),
            )
            # Null keys never match, even if the right table has nulls.
            mask = pc.and_kleene(mask, pc.is_valid(left_rb.column(keys.left[0])))
        else:
            right_index = index_keys(key_tuples(right_rb, keys.right))
            mask = pa.array(
                [
                    key is not None and key in right_index
                    for key in key_tuples(left_rb, keys.left)
                ],
                type=pa.bool_(),
            )

        if not self.keep_matched:
            mask = pc.invert(mask)

        result = left_rb.filter(mask)
        logger.debug("%s emitted %d rows", self.__class__.__name__, result.num_rows)
        yield result


class SemiJoinNode(FilteringJoinNode):
    """Keep the rows of the left table that have a match in the right table.

    Differently from an inner join, each row is emitted only once
    even when it matches multiple rows of the right table.

    >>> import pyarrow as pa
    >>> from joinground.compute import PyArrowTableDataSource
    >>> airports = PyArrowTableDataSource(pa.record_batch({"faa": ["EWR", "JFK", "ATL"]}))
    >>> flights = PyArrowTableDataSource(pa.record_batch({"origin": ["JFK", "JFK", "EWR"]}))
    >>> next(SemiJoinNode("faa", "origin", airports, flights).batches()).to_pylist()
    [{'faa': 'EWR'}, {'faa': 'JFK'}]
    """

    keep_matched = True


class AntiJoinNode(FilteringJoinNode):
    """Keep the rows of the left table that have no match in the right table.

    Useful to find implicit missing values, like the
    airports in the flights table that are missing from
    the airports table.
    """

    keep_matched = False


def _coalesce(left: pa.Array, right: pa.Array) -> pa.Array:
    """Fill the nulls of the left array with the values of the right one.

    Arrays of different types are both cast to their common type first.
    """
    if not left.type.equals(right.type):
        target = common_type(left.type, right.type)
        left = left.cast(target)
        right = right.cast(target)
    return pc.coalesce(left, right)
