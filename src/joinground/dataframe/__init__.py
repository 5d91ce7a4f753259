"""Dataframe library built on top of joinground.

A dataframe library is a tool designed to handle and manipulate structured data,
typically in the form of tables (i.e., rows and columns).
It allows users to load data from various sources (like CSV files or databases),
explore it, apply transformations, and analyze it.

Data rarely comes in a single table, more frequently it's a set
of related tables, like flights, airlines, airports and planes,
that have to be combined to answer questions. Dataframes provide
joins and set operations as verbs to combine them:

>>> import pyarrow as pa
>>> from joinground.dataframe import Dataframe
>>> x = Dataframe(pa.table({"key": [1, 2, 2], "val_x": ["x1", "x2", "x3"]}))
>>> y = Dataframe(pa.table({"key": [1, 2], "val_y": ["y1", "y2"]}))
>>> print(x.left_join(y, by="key"))
# A table: 3 x 3
key | val_x | val_y
--- | ----- | -----
1   | x1    | y1
2   | x2    | y2
2   | x3    | y2

The verbs are named after the ones used by ``dplyr``,
the most common grammar of data manipulation.
"""

from .dataframe import Dataframe

__all__ = ("Dataframe",)
