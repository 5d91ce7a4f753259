"""Format tabular data into a text table for print.

Communicating the result of a join requires showing it,
the `tabulate` function takes a `pyarrow.RecordBatch` or `pyarrow.Table`
and formats it into a text table, preceded by a line summarising its size.

It will render missing values as ``NA``, truncate long strings,
format floats to 2 decimal places, and limit the number of rows to display.

Example:

    >>> import pyarrow as pa
    >>> data = {
    ...     "key": [1, 2, 3],
    ...     "val_x": ["x1", "x2", "x3"],
    ...     "val_y": ["y1", "y2", None],
    ... }
    >>> table = pa.RecordBatch.from_pydict(data)
    >>> print(tabulate(table))
    # A table: 3 x 3
    key | val_x | val_y
    --- | ----- | -----
    1   | x1    | y1
    2   | x2    | y2
    3   | x3    | NA
"""

from typing import Any

from pyarrow import RecordBatch, Table

MISSING = "NA"


def tabulate(data: RecordBatch | Table, max_rows: int = 20) -> str:
    """Format a RecordBatch or Table into a text table.

    Will produce a string like::

        # A table: 3 x 3
        carrier | flight | name
        ------- | ------ | ----------------------
        UA      | 1545   | United Air Lines Inc.
        AA      | 1141   | American Airlines Inc.
        ZZ      | 9999   | NA
    """
    cols = data.column_names
    rows = [
        [format_value(row[c]) for c in cols]
        for row in data.slice(length=max_rows).to_pylist()
    ]

    colsizes = compute_max_colsize(cols, rows)
    summary = [f"# A table: {data.num_rows} x {len(cols)}"]
    header = [maketablerow(cols, colsizes=colsizes)]
    separator = [maketablerow(["-"] * len(cols), colsizes=colsizes, fillvalue="-")]
    textrows = [maketablerow(row, colsizes=colsizes) for row in rows]

    table = "\n".join(summary + header + separator + textrows)
    if data.num_rows > max_rows:
        table += f"\n... and {data.num_rows - max_rows} more rows"
    return table


def compute_max_colsize(cols: list[str], rows: list[list[str]]) -> list[int]:
    """Compute the maximum size of each column in a table."""
    return [
        max([len(row[colidx]) for row in rows] + [len(cols[colidx])])
        for colidx, _ in enumerate(cols)
    ]


def maketablerow(cols: list[str], colsizes: list[int], fillvalue: str = " ") -> str:
    """Make a table row with the given column sizes."""
    return " | ".join(
        [col.ljust(colsizes[idx], fillvalue) for idx, col in enumerate(cols)]
    ).rstrip()


def format_value(v: Any) -> str:
    """Format a value to be printed in the table.

    Missing values are printed as ``NA``, so that
    rows added by outer joins are easy to recognise.
    Floats are formatted to 2 decimal places,
    and long strings are truncated.
    """
    if v is None:
        return MISSING
    elif isinstance(v, bool):
        return "true" if v else "false"
    elif isinstance(v, float):
        return f"{v:.2f}"

    v = str(v)
    if len(v) > 30:
        v = v[:27] + "..."
    return v
