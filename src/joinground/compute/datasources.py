"""Query Plan nodes that load the tables to join

The datasource nodes are the leafs of every join plan.
They fetch a table from some source, convert it into
the format accepted by the compute engine and forward it
to the join or set operation that consumes it.

Relational data usually comes as a set of files,
one per table, like ``flights.csv``, ``airlines.csv``
and ``planes.parquet``. :func:`open_datasource` picks the
right node for each of them based on their extension.
"""

import logging
import os
from abc import abstractmethod

import pyarrow as pa
import pyarrow.csv
import pyarrow.parquet

from .base import QueryPlanNode

logger = logging.getLogger(__name__)


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that load a table from a source."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the table without loading its content.

        Joins use it to resolve and validate the key columns
        before any row is read.
        """
        ...


class CSVDataSource(DataSourceNode):
    """Load a table from a CSV file.

    Given a local CSV file path, read its rows,
    convert them into Arrow format, and emit them
    for the join nodes of the query plan to consume.
    """

    def __init__(self, filename: str, block_size: int | None = None) -> None:
        """
        :param filename: The path of the local CSV file.
        :param block_size: How many bytes to read for each batch,
                           influences how many batches will be produced.
        """
        self.filename = filename
        self.block_size = block_size

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, block_size={self.block_size})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Open the CSV file and emit its rows in batches."""
        logger.debug("Reading CSV table %s", self.filename)
        with pa.csv.open_csv(
            self.filename, read_options=pa.csv.ReadOptions(block_size=self.block_size)
        ) as reader:
            for batch in reader:
                yield batch

    def poll_schema(self) -> pa.Schema:
        """Infer the schema of the CSV file from its first block."""
        with pa.csv.open_csv(self.filename) as reader:
            return reader.schema


class ParquetDataSource(DataSourceNode):
    """Load a table from a Parquet file.

    Parquet files carry their own schema, so key columns
    keep the same type they had when the table was written.
    """

    def __init__(self, filename: str, batch_size: int | None = None) -> None:
        """
        :param filename: The path of the local parquet file.
        :param batch_size: How many rows to put in each batch,
                           influences how many batches will be produced.
        """
        self.filename = filename
        self.batch_size = batch_size or 65536

    def __str__(self) -> str:
        return f"ParquetDataSource({self.filename}, batch_size={self.batch_size})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Open the Parquet file and emit its row groups in batches."""
        logger.debug("Reading Parquet table %s", self.filename)
        with pa.parquet.ParquetFile(self.filename) as reader:
            yield from reader.iter_batches(batch_size=self.batch_size)

    def poll_schema(self) -> pa.Schema:
        """Read the schema stored in the Parquet metadata."""
        with pa.parquet.ParquetFile(self.filename) as reader:
            return reader.schema_arrow


class PyArrowTableDataSource(DataSourceNode):
    """Use an in-memory pyarrow.Table or pyarrow.RecordBatch as a table.

    This is the most common way to provide small tables,
    like the ones used to illustrate how joins behave::

        x = pa.table({"key": [1, 2, 3], "val_x": ["x1", "x2", "x3"]})
        y = pa.table({"key": [1, 2, 4], "val_y": ["y1", "y2", "y3"]})
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The table or recordbatch with the data to read.
        """
        self.table = table
        self.is_recordbatch = isinstance(table, pa.RecordBatch)

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the data contained in the Table for consumption by other nodes."""
        if self.is_recordbatch:
            yield self.table
        elif self.table.num_rows == 0:
            # An empty table has no chunks, but the consumers
            # still need a batch to know which columns exist.
            yield pa.RecordBatch.from_pylist([], schema=self.table.schema)
        else:
            yield from self.table.to_batches()

    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the Table."""
        return self.table.schema


def open_datasource(filename: str) -> DataSourceNode:
    """Create the datasource node able to read the given file.

    The format is detected from the file extension,
    only ``.csv`` and ``.parquet`` files are supported.

    :param filename: The path of the local file containing the table.
    """
    _, ext = os.path.splitext(filename)
    ext = ext.lower()
    if ext == ".csv":
        return CSVDataSource(filename)
    elif ext == ".parquet":
        return ParquetDataSource(filename)
    raise ValueError(f"File format not supported: {filename}")
