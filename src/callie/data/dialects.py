"""SQL dialects: identifier quoting and the few statements that differ.

MySQL and SQLite both accept backtick-quoted identifiers and ``?``
placeholders, so the query builder renders the same text for both
except for upserts and ``TRUNCATE``.
"""

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Raw:
    """A SQL fragment passed through without quoting.

    Only for trusted text — never build one from request data::

        db.table("employees").select("department", raw("COUNT(*) AS headcount"))
    """

    sql: str

    def __str__(self) -> str:
        return self.sql


def raw(sql: str) -> Raw:
    return Raw(sql)


@dataclass(frozen=True, slots=True)
class Dialect:
    """Rendering rules for one database engine."""

    name: str

    def quote(self, identifier: str | Raw) -> str:
        """Quote an identifier, one part per dot: ``users.id`` -> `users`.`id`.

        ``*`` (alone or as ``t.*``) stays bare, embedded backticks are
        doubled, ``Raw`` passes through.
        """
        if isinstance(identifier, Raw):
            return identifier.sql
        return ".".join(
            part if part == "*" else "`" + part.replace("`", "``") + "`"
            for part in identifier.split(".")
        )

    def upsert_clause(
        self,
        update_columns: Sequence[str],
        conflict_columns: Sequence[str],
    ) -> str:
        """The conflict-handling tail of an ``INSERT ... VALUES (...)``."""
        if self.name == "sqlite":
            target = ", ".join(self.quote(c) for c in conflict_columns)
            if not update_columns:
                return f"ON CONFLICT ({target}) DO NOTHING"
            sets = ", ".join(f"{self.quote(c)} = excluded.{self.quote(c)}" for c in update_columns)
            return f"ON CONFLICT ({target}) DO UPDATE SET {sets}"

        if not update_columns:
            # MySQL has no DO NOTHING; a self-assignment keeps the row as is
            first = self.quote(conflict_columns[0])
            return f"ON DUPLICATE KEY UPDATE {first} = {first}"
        sets = ", ".join(f"{self.quote(c)} = VALUES({self.quote(c)})" for c in update_columns)
        return f"ON DUPLICATE KEY UPDATE {sets}"

    def truncate(self, table: str) -> str:
        if self.name == "sqlite":
            return f"DELETE FROM {self.quote(table)}"
        return f"TRUNCATE TABLE {self.quote(table)}"


MYSQL = Dialect("mysql")
SQLITE = Dialect("sqlite")
