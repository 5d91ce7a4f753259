"""JoinGround

A relational data toolkit built from scratch for learning and teaching purposes.

Data analyses rarely involve a single table of data. Typically there are many
tables that must be combined to answer the questions being asked, and
collectively those tables are called relational data, because it's the
relations between them, not just the individual tables, that matter.

JoinGround implements the three families of verbs that work with relational data,
each self documented in literate programming style:

* Mutating joins, which add new columns to one table from matching rows in another.
* Filtering joins, which filter the rows of one table based on whether
  they match a row in another.
* Set operations, which treat the rows of the tables as if they were set elements.

The primary components are:

* The Compute Engine, in charge of executing joins on the data.
* The Dataframe API, which provides an high level API for the compute engine.
* The ``joinground-fjoin`` command, which joins tables stored in files.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute

__all__ = ("compute",)
