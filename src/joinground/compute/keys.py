"""Join keys resolution and diagnostics.

Every relation between two tables is expressed through keys.
A *primary key* uniquely identifies each row of its own table,
while a *foreign key* references the primary key of another table.

For example ``airlines.carrier`` is the primary key of the airlines table,
and ``flights.carrier`` is a foreign key that references it.

Joins need to know which columns of the left table have
to be compared to which columns of the right table,
that's the job of :class:`JoinKeys`:

>>> import pyarrow as pa
>>> flights = pa.schema([("carrier", pa.string()), ("flight", pa.int64())])
>>> airlines = pa.schema([("carrier", pa.string()), ("name", pa.string())])
>>> str(JoinKeys.resolve(None, None, flights, airlines))
"JoinKeys(left=['carrier'], right=['carrier'])"

Keys are only useful when they actually identify rows,
real world data frequently violates that assumption, so this
module also provides the diagnostics to detect it:

* :func:`duplicated_keys` finds key values that are repeated,
  meaning the key can't be used as a primary key.
* :func:`unmatched_keys` finds foreign key values that have no
  corresponding row in the table they reference.
"""

import logging
from collections import Counter
from typing import Iterable, Self

import pyarrow as pa

logger = logging.getLogger(__name__)

KeyTuple = tuple
KeySpec = str | Iterable[str] | None


class JoinKeyError(ValueError):
    """The provided keys can't be used to join the tables."""


class JoinKeys:
    """The pairs of columns that are compared to match rows.

    ``left[i]`` in the left table is compared
    to ``right[i]`` in the right table, and two rows
    match only when all the pairs are equal.
    """

    def __init__(self, left: list[str], right: list[str]) -> None:
        """
        :param left: The key columns in the left table.
        :param right: The key columns in the right table.
        """
        if len(left) != len(right):
            raise JoinKeyError(
                f"Left and right keys must have the same length, got {left} and {right}"
            )
        if not left:
            raise JoinKeyError("At least one key column is required")
        self.left = left
        self.right = right

    def __str__(self) -> str:
        return f"JoinKeys(left={self.left}, right={self.right})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JoinKeys):
            return NotImplemented
        return self.left == other.left and self.right == other.right

    @classmethod
    def resolve(
        cls,
        left_key: KeySpec,
        right_key: KeySpec,
        left_schema: pa.Schema,
        right_schema: pa.Schema,
    ) -> Self:
        """Resolve the keys requested by the user against the tables.

        * When no key is provided at all, the tables are joined
          on all the columns they have in common (a *natural join*).
        * When only one side is provided, the same column names
          are used for both tables.
        * When both are provided, they are paired by position.

        The resolved keys are checked to exist in their table
        and to have types that can be compared.

        :param left_key: The key column(s) of the left table.
        :param right_key: The key column(s) of the right table.
        :param left_schema: The schema of the left table.
        :param right_schema: The schema of the right table.
        """
        left = _as_names(left_key)
        right = _as_names(right_key)
        if left is None and right is None:
            left = [name for name in left_schema.names if name in right_schema.names]
            if not left:
                raise JoinKeyError(
                    "No common columns to join on, provide the keys explicitly"
                )
            right = list(left)
            logger.debug("Natural join on %s", left)
        elif left is None:
            left = list(right)
        elif right is None:
            right = list(left)

        keys = cls(left, right)
        _check_columns("left", keys.left, left_schema)
        _check_columns("right", keys.right, right_schema)
        for lname, rname in keys:
            ltype = left_schema.field(lname).type
            rtype = right_schema.field(rname).type
            if not comparable_types(ltype, rtype):
                raise JoinKeyError(
                    f"Can't join {lname} ({ltype}) with {rname} ({rtype}), incompatible types"
                )
        return keys

    def __iter__(self):
        return iter(zip(self.left, self.right))


def comparable_types(ltype: pa.DataType, rtype: pa.DataType) -> bool:
    """Check if values of the two types can be compared for equality.

    Columns full of nulls (``pa.null()``) can be compared to anything,
    as they will never match anyway.
    """
    if ltype.equals(rtype):
        return True
    if pa.types.is_null(ltype) or pa.types.is_null(rtype):
        return True
    if _is_numeric(ltype) and _is_numeric(rtype):
        return True
    if _is_text(ltype) and _is_text(rtype):
        return True
    return False


def common_type(ltype: pa.DataType, rtype: pa.DataType) -> pa.DataType:
    """Find the type both sides can be cast to without losing values.

    Expects types accepted by :func:`comparable_types`.
    Integers mixed with floats or decimals are promoted to ``float64``,
    mixed integers to ``int64``, and strings to ``large_string``
    when either side is large.
    """
    if ltype.equals(rtype) or pa.types.is_null(rtype):
        return ltype
    if pa.types.is_null(ltype):
        return rtype
    if _is_text(ltype):
        return pa.large_string()
    if pa.types.is_integer(ltype) and pa.types.is_integer(rtype):
        return pa.int64()
    return pa.float64()


def key_tuples(data: pa.RecordBatch | pa.Table, columns: list[str]) -> list[KeyTuple | None]:
    """Extract the key of each row as a Python tuple.

    Rows where any of the key columns is null or NaN get ``None``
    as their key, as those never match anything,
    not even another null or NaN.
    """
    values = [data.column(name).to_pylist() for name in columns]
    return [
        None if any(v is None or v != v for v in key) else key
        for key in zip(*values)
    ]


def index_keys(keys: list[KeyTuple | None]) -> dict[KeyTuple, list[int]]:
    """Build a hash table from each key to the rows having it.

    The rows for each key are kept in the order they appear,
    rows with a null key are not indexed.
    """
    index: dict[KeyTuple, list[int]] = {}
    for row, key in enumerate(keys):
        if key is not None:
            index.setdefault(key, []).append(row)
    return index


def duplicated_keys(data: pa.RecordBatch | pa.Table, keys: KeySpec) -> pa.RecordBatch:
    """Find the key values that appear in more than one row.

    This is the check that has to be done to confirm
    that a set of columns is a primary key: if the result
    is empty, every row is uniquely identified by its key.

    >>> import pyarrow as pa
    >>> planes = pa.table({"tailnum": ["N10156", "N102UW", "N10156"], "seats": [55, 182, 55]})
    >>> duplicated_keys(planes, "tailnum").to_pylist()
    [{'tailnum': 'N10156', 'n': 2}]

    :param data: The table to check.
    :param keys: The column(s) expected to identify rows.
    """
    columns = _require_names(keys)
    _check_columns("table", columns, data.schema)
    counts = Counter(k for k in key_tuples(data, columns) if k is not None)
    duplicates = [(key, n) for key, n in counts.items() if n > 1]
    logger.debug("Found %d duplicated keys on %s", len(duplicates), columns)
    return _keys_batch(data.schema, columns, duplicates)


def is_primary_key(data: pa.RecordBatch | pa.Table, keys: KeySpec) -> bool:
    """Check that the key columns uniquely identify every row.

    A primary key can't have missing values,
    so rows with a null key make the check fail too.
    """
    columns = _require_names(keys)
    _check_columns("table", columns, data.schema)
    seen = set()
    for key in key_tuples(data, columns):
        if key is None or key in seen:
            return False
        seen.add(key)
    return True


def unmatched_keys(
    foreign: pa.RecordBatch | pa.Table,
    primary: pa.RecordBatch | pa.Table,
    foreign_keys: KeySpec = None,
    primary_keys: KeySpec = None,
) -> pa.RecordBatch:
    """Find foreign key values that have no match in the primary table.

    For example flights that reference a plane that doesn't exist
    in the planes table. The result has one row for each distinct
    unmatched key, with the number of rows having it in the ``n`` column.

    >>> import pyarrow as pa
    >>> flights = pa.table({"tailnum": ["N10156", "N3ALAA", "N3ALAA", None]})
    >>> planes = pa.table({"tailnum": ["N10156", "N102UW"]})
    >>> unmatched_keys(flights, planes, "tailnum").to_pylist()
    [{'tailnum': 'N3ALAA', 'n': 2}]

    Null foreign keys are not reported, as they don't
    reference anything in the first place.

    :param foreign: The table holding the foreign key.
    :param primary: The table referenced by the foreign key.
    :param foreign_keys: The foreign key column(s).
    :param primary_keys: The primary key column(s) they reference.
    """
    keys = JoinKeys.resolve(foreign_keys, primary_keys, foreign.schema, primary.schema)
    known = set(index_keys(key_tuples(primary, keys.right)))
    counts = Counter(
        k for k in key_tuples(foreign, keys.left) if k is not None and k not in known
    )
    logger.debug("Found %d unmatched keys for %s", len(counts), keys)
    return _keys_batch(foreign.schema, keys.left, list(counts.items()))


def _keys_batch(
    schema: pa.Schema, columns: list[str], counted: list[tuple[KeyTuple, int]]
) -> pa.RecordBatch:
    """Build a RecordBatch with the key columns and their count ``n``.

    When a key column is already named ``n``, the count becomes ``nn``.
    """
    data = {
        name: pa.array([key[idx] for key, _ in counted], type=schema.field(name).type)
        for idx, name in enumerate(columns)
    }
    count_name = "n"
    while count_name in data:
        count_name += "n"
    data[count_name] = pa.array([n for _, n in counted], type=pa.int64())
    return pa.record_batch(data)


def _as_names(keys: KeySpec) -> list[str] | None:
    if keys is None:
        return None
    if isinstance(keys, str):
        return [keys]
    return list(keys)


def _require_names(keys: KeySpec) -> list[str]:
    names = _as_names(keys)
    if not names:
        raise JoinKeyError("At least one key column is required")
    return names


def _check_columns(side: str, columns: list[str], schema: pa.Schema) -> None:
    for name in columns:
        if schema.get_field_index(name) == -1:
            raise JoinKeyError(
                f"Key column {name!r} not found in {side} table, available columns: {schema.names}"
            )


def _is_numeric(t: pa.DataType) -> bool:
    return pa.types.is_integer(t) or pa.types.is_floating(t) or pa.types.is_decimal(t)


def _is_text(t: pa.DataType) -> bool:
    return pa.types.is_string(t) or pa.types.is_large_string(t)
