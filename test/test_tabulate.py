import pyarrow as pa
import pytest

from joinground.utils.tabulate import format_value, tabulate


def test_tabulate():
    data = pa.record_batch(
        {
            "key": [1, 2, 3],
            "val_x": ["x1", "x2", "x3"],
            "val_y": ["y1", "y2", None],
        }
    )

    assert tabulate(data) == "\n".join(
        [
            "# A table: 3 x 3",
            "key | val_x | val_y",
            "--- | ----- | -----",
            "1   | x1    | y1",
            "2   | x2    | y2",
            "3   | x3    | NA",
        ]
    )


def test_tabulate_table_with_more_rows():
    data = pa.table({"n": list(range(25))})

    lines = tabulate(data, max_rows=5).splitlines()

    assert lines[0] == "# A table: 25 x 1"
    assert lines[3:8] == ["0", "1", "2", "3", "4"]
    assert lines[-1] == "... and 20 more rows"


def test_tabulate_empty():
    data = pa.table({"faa": pa.array([], type=pa.string())})

    assert tabulate(data) == "# A table: 0 x 1\nfaa\n---"


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "NA"),
        (True, "true"),
        (False, "false"),
        (39.0211, "39.02"),
        (1545, "1545"),
        ("Hartsfield Jackson Atlanta Intl Airport", "Hartsfield Jackson Atlanta ..."),
    ],
)
def test_format_value(value, expected):
    assert format_value(value) == expected
