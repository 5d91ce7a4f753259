import os
import tempfile

import pyarrow as pa
import pyarrow.csv as csv
import pyarrow.parquet as pq
import pytest

from joinground.compute.base import materialize
from joinground.compute.datasources import (
    CSVDataSource,
    ParquetDataSource,
    PyArrowTableDataSource,
    open_datasource,
)

# Mock data for testing
MOCK_PYARROW_TABLE = pa.table(
    {"carrier": ["UA", "AA", "B6"], "name": ["United Air Lines Inc.", "American Airlines Inc.", "JetBlue Airways"]}
)

MOCK_CSV_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".csv")
MOCK_PARQUET_FILE = tempfile.NamedTemporaryFile(delete=False, mode="w+", suffix=".parquet")


def setup_module():
    csv.write_csv(MOCK_PYARROW_TABLE, MOCK_CSV_FILE.name)
    MOCK_CSV_FILE.close()
    pq.write_table(MOCK_PYARROW_TABLE, MOCK_PARQUET_FILE.name)
    MOCK_PARQUET_FILE.close()


def teardown_module():
    os.unlink(MOCK_CSV_FILE.name)
    os.unlink(MOCK_PARQUET_FILE.name)


@pytest.mark.parametrize(
    "data_source_class, init_args, expected_str",
    [
        (
            CSVDataSource,
            (MOCK_CSV_FILE.name, None),
            f"CSVDataSource({MOCK_CSV_FILE.name}, block_size=None)",
        ),
        (
            ParquetDataSource,
            (MOCK_PARQUET_FILE.name, None),
            f"ParquetDataSource({MOCK_PARQUET_FILE.name}, batch_size=65536)",
        ),
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE,),
            "PyArrowTableDataSource(columns=['carrier', 'name'], rows=3)",
        ),
        (
            PyArrowTableDataSource,
            (MOCK_PYARROW_TABLE.to_batches()[0],),
            "PyArrowTableDataSource(columns=['carrier', 'name'], rows=3)",
        ),
    ],
)
def test_init_and_str(data_source_class, init_args, expected_str):
    data_source = data_source_class(*init_args)
    assert str(data_source) == expected_str


@pytest.mark.parametrize(
    "data_source_class, init_args",
    [
        (CSVDataSource, (MOCK_CSV_FILE.name, None)),
        (ParquetDataSource, (MOCK_PARQUET_FILE.name, None)),
        (PyArrowTableDataSource, (MOCK_PYARROW_TABLE,)),
        (PyArrowTableDataSource, (MOCK_PYARROW_TABLE.to_batches()[0],)),
    ],
)
def test_batches(data_source_class, init_args):
    data_source = data_source_class(*init_args)
    batches = list(data_source.batches())
    assert len(batches) == 1
    assert batches[0].to_pylist() == MOCK_PYARROW_TABLE.to_pylist()


@pytest.mark.parametrize(
    "data_source_class, init_args",
    [
        (CSVDataSource, (MOCK_CSV_FILE.name, None)),
        (ParquetDataSource, (MOCK_PARQUET_FILE.name, None)),
        (PyArrowTableDataSource, (MOCK_PYARROW_TABLE,)),
    ],
)
def test_poll_schema(data_source_class, init_args):
    schema = data_source_class(*init_args).poll_schema()
    assert schema.names == ["carrier", "name"]
    assert schema.field("carrier").type == pa.string()


def test_empty_table_emits_schema():
    empty = pa.table({"carrier": pa.array([], type=pa.string())})
    batches = list(PyArrowTableDataSource(empty).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.names == ["carrier"]


def test_materialize_multiple_batches():
    table = pa.Table.from_batches(
        [pa.record_batch({"a": [1, 2]}), pa.record_batch({"a": [3]})]
    )
    batch = materialize(PyArrowTableDataSource(table))
    assert isinstance(batch, pa.RecordBatch)
    assert batch.column("a").to_pylist() == [1, 2, 3]


@pytest.mark.parametrize(
    "filename, expected_class",
    [
        (MOCK_CSV_FILE.name, CSVDataSource),
        (MOCK_PARQUET_FILE.name, ParquetDataSource),
        ("AIRLINES.CSV", CSVDataSource),
    ],
)
def test_open_datasource(filename, expected_class):
    assert isinstance(open_datasource(filename), expected_class)


def test_open_datasource_unsupported():
    with pytest.raises(ValueError, match="File format not supported"):
        open_datasource("airlines.json")
