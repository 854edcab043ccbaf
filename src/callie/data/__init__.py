"""Async database access and query building for callie.

SQL in, dicts out. Not an ORM.

Basic usage::

    from callie.data import Database

    db = Database("sqlite:///app.db")

    rows = await db.table("employees").where("status", "active").order_by("name").get()
    employee = await db.find("employees", 42)
    new_id = await db.insert("employees", {"name": "Ada", "status": "active"})

SQLite works out of the box. MySQL needs ``mysql-connector-python``::

    pip install callie[mysql]
"""

from callie.data.conditions import And, Between, Compare, Condition, In, IsNull, Never, Or
from callie.data.database import Database, get_db
from callie.data.dialects import MYSQL, SQLITE, Dialect, Raw, raw
from callie.data.errors import DataError, DriverNotInstalledError, QueryBuilderError
from callie.data.query import CompiledQuery, ExecuteResult, Executor, Query, table

__all__ = [
    "MYSQL",
    "SQLITE",
    "And",
    "Between",
    "Compare",
    "CompiledQuery",
    "Condition",
    "DataError",
    "Database",
    "Dialect",
    "DriverNotInstalledError",
    "ExecuteResult",
    "Executor",
    "In",
    "IsNull",
    "Never",
    "Or",
    "Query",
    "QueryBuilderError",
    "Raw",
    "get_db",
    "raw",
    "table",
]
