"""Shell commands exposing JoinGround functionalities.

This module contains the shell commands that can be used to interact with JoinGround.

FJoin (file join)
=================

``joinground-fjoin`` joins tables stored in files::

    joinground-fjoin --how left --by carrier flights.csv airlines.csv

Keys named differently in the two tables are paired by position::

    joinground-fjoin --how semi --by faa --by-right origin airports.csv flights.parquet

Set operations compare whole rows and take no keys::

    joinground-fjoin --how setdiff this_year.csv last_year.csv

"""
