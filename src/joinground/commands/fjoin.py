"""Command line interface for joining tables stored in files.

This module provides a command line interface for joining two CSV or
Parquet files based on the JoinGround join and set operation nodes
from :mod:`joinground.compute`.

The results of the execution are then printed to the console in a tabular format
using the :mod:`joinground.utils.tabulate` module.
"""

import argparse
import logging
import sys

from joinground.compute import (
    AntiJoinNode,
    FullJoinNode,
    InnerJoinNode,
    IntersectNode,
    LeftJoinNode,
    RightJoinNode,
    SemiJoinNode,
    SetDiffNode,
    UnionAllNode,
    UnionNode,
    materialize,
    open_datasource,
)
from joinground.utils import tabulate

MUTATING_JOINS = {
    "inner": InnerJoinNode,
    "left": LeftJoinNode,
    "right": RightJoinNode,
    "full": FullJoinNode,
}
FILTERING_JOINS = {
    "semi": SemiJoinNode,
    "anti": AntiJoinNode,
}
SET_OPERATIONS = {
    "intersect": IntersectNode,
    "union": UnionNode,
    "union_all": UnionAllNode,
    "setdiff": SetDiffNode,
}


def build_parser() -> argparse.ArgumentParser:
    """Create the parser for the command line arguments."""
    parser = argparse.ArgumentParser(
        description="Join two tables stored in CSV or Parquet files."
    )
    parser.add_argument(
        "--how",
        choices=[*MUTATING_JOINS, *FILTERING_JOINS, *SET_OPERATIONS],
        default="inner",
        help="The kind of join or set operation to perform.",
    )
    parser.add_argument(
        "--by",
        action="append",
        help="A key column of the left table. Can be provided multiple times. "
        "When omitted the tables are joined on their common columns.",
    )
    parser.add_argument(
        "--by-right",
        action="append",
        help="A key column of the right table, paired with the --by in the same position. "
        "When omitted the same names as --by are used.",
    )
    parser.add_argument(
        "--suffix",
        default="_right",
        help="Suffix for right columns colliding with left ones.",
    )
    parser.add_argument(
        "--max-rows", type=int, default=20, help="How many rows to print."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log how the join is performed."
    )
    parser.add_argument("left", type=str, help="The file of the left table.")
    parser.add_argument("right", type=str, help="The file of the right table.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse the command line arguments and execute the join."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        left = open_datasource(args.left)
        right = open_datasource(args.right)
        if args.how in SET_OPERATIONS:
            plan = SET_OPERATIONS[args.how](left, right)
        elif args.how in FILTERING_JOINS:
            plan = FILTERING_JOINS[args.how](args.by, args.by_right, left, right)
        else:
            plan = MUTATING_JOINS[args.how](
                args.by, args.by_right, left, right, suffix=args.suffix
            )
        result = materialize(plan)
    except ValueError as e:
        # Join errors, unsupported files and unparsable data (ArrowInvalid).
        print(f"Invalid join, {e}")
        return 1

    print(tabulate.tabulate(result, max_rows=args.max_rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
