"""Immutable query builder for callie.data.

Accumulates SQL clauses through chaining methods, compiles to a SQL string
+ parameters tuple, and executes through a ``Database`` (or anything with
the same ``query`` / ``execute`` / ``dialect`` surface).

Each method returns a new frozen ``Query`` — the original is never mutated,
so a partially built query can be shared and extended safely::

    active = db.table("employees").where("status", "active")

    page = await active.order_by("name").paginate(2, 20).get()
    total = await active.count()

Identifiers are backtick-quoted and every value is bound to a positional
``?`` placeholder; values never appear in the SQL text.

Transparency: ``.sql`` and ``.params`` (or the ``compile_*`` methods for
writes) show exactly what will run. No hidden queries, no magic.

Free-threading safety:
    - Frozen dataclass, tuple accumulators: nothing to share or lock
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Protocol

from callie.data.conditions import (
    Between,
    Compare,
    Condition,
    In,
    IsNull,
    Never,
    combine,
    render,
)
from callie.data.dialects import MYSQL, Dialect, Raw
from callie.data.errors import DataError, QueryBuilderError

OPERATORS = frozenset({"=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "NOT LIKE"})
DIRECTIONS = frozenset({"ASC", "DESC"})

# Plain or dotted identifier, optionally ending in ``.*``
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(?:\.(?:[A-Za-z_][A-Za-z0-9_$]*|\*))*$")
# ``column AS alias`` in select lists
_ALIAS_RE = re.compile(r"^(\S+)\s+as\s+([A-Za-z_][A-Za-z0-9_$]*)$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class ExecuteResult:
    """Outcome of an INSERT/UPDATE/DELETE.

    ``insert_id`` is the first id generated by the statement, or ``None``
    when it generated none.
    """

    insert_id: int | None
    affected_rows: int


class Executor(Protocol):
    """What a ``Query`` needs to run. ``Database`` implements it."""

    @property
    def dialect(self) -> Dialect: ...

    async def query(self, sql: str, /, *params: Any) -> list[dict[str, Any]]: ...

    async def execute(self, sql: str, /, *params: Any) -> ExecuteResult: ...


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """A rendered statement: SQL text plus its positional parameters."""

    sql: str
    params: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class Join:
    kind: str
    table: str
    first: str
    op: str
    second: str


@dataclass(frozen=True, slots=True)
class Query:
    """Immutable query specification.

    Construct with a table name (and optionally the database to run
    against), chain methods to add clauses, then await a terminal
    operation (``get``, ``first``, ``count``, ``insert``, ``update``, ...).

    Every builder method returns a new ``Query`` — the original is unchanged.
    """

    _table: str | None = None
    _db: Executor | None = field(default=None, compare=False, repr=False)
    _columns: tuple[str | Raw, ...] = ("*",)
    _distinct: bool = False
    _where: Condition | None = None
    _joins: tuple[Join, ...] = ()
    _group_by: tuple[str, ...] = ()
    _having: tuple[Compare, ...] = ()
    _order_by: tuple[tuple[str, str], ...] = ()
    _limit: int | None = None
    _offset: int | None = None

    # ── Target ──────────────────────────────────────────────────────────

    def table(self, name: str) -> Query:
        return replace(self, _table=name)

    def from_(self, name: str) -> Query:
        """Alias for ``table()``."""
        return self.table(name)

    def using(self, db: Executor) -> Query:
        """Bind the database this query runs against."""
        return replace(self, _db=db)

    # ── Columns ─────────────────────────────────────────────────────────

    def select(self, *columns: str | Raw | Sequence[str | Raw]) -> Query:
        """Set the selected columns. No arguments means ``*``.

        Accepts identifiers (``"id"``, ``"e.name"``, ``"e.*"``),
        ``"column AS alias"``, and ``raw()`` expressions; lists are
        flattened::

            q.select("id", "name")
            q.select(["id", "name"])
            q.select("department", raw("COUNT(*) AS headcount"))
        """
        flat: list[str | Raw] = []
        for column in columns:
            if isinstance(column, (list, tuple)):
                flat.extend(column)
            else:
                flat.append(column)  # type: ignore[arg-type]
        for column in flat:
            _check_select_column(column)
        return replace(self, _columns=tuple(flat) or ("*",))

    # ── WHERE ───────────────────────────────────────────────────────────

    def where(self, column: str | Raw | Mapping[str, Any], /, *args: Any) -> Query:
        """Add conditions, AND-joined to what came before.

        Three call shapes::

            q.where({"department_id": 3, "deleted_at": None})
            # `department_id` = ? AND `deleted_at` IS NULL

            q.where("status", "active")       # `status` = ?
            q.where("salary", ">=", 5000)     # `salary` >= ?

        ``None`` compares as ``IS NULL`` (``IS NOT NULL`` with ``!=``/``<>``).
        """
        return self._extend(_parse_where(column, args))

    def or_where(self, column: str | Raw | Mapping[str, Any], /, *args: Any) -> Query:
        """Like ``where()``, but the first condition added is OR-joined.

        Only the first one: ``or_where({"a": 1, "b": 2})`` after ``x``
        renders ``x OR a AND b``; ``b`` stays AND-joined.
        """
        return self._extend(_parse_where(column, args), use_or=True)

    def where_in(self, column: str | Raw, values: Iterable[Any]) -> Query:
        """``column IN (...)``; no values matches no rows (``1 = 0``)."""
        items = tuple(values)
        if not items:
            return self._extend([Never()])
        return self._extend([In(column, items)])

    def where_not_in(self, column: str | Raw, values: Iterable[Any]) -> Query:
        """``column NOT IN (...)``; no values adds no condition at all."""
        items = tuple(values)
        if not items:
            return self
        return self._extend([In(column, items, negated=True)])

    def where_null(self, column: str | Raw) -> Query:
        return self._extend([IsNull(column)])

    def where_not_null(self, column: str | Raw) -> Query:
        return self._extend([IsNull(column, negated=True)])

    def where_like(self, column: str | Raw, pattern: str) -> Query:
        return self._extend([Compare(column, "LIKE", pattern)])

    def where_between(self, column: str | Raw, low: Any, high: Any) -> Query:
        return self._extend([Between(column, low, high)])

    def _extend(self, conditions: Sequence[Condition], *, use_or: bool = False) -> Query:
        tree = self._where
        for i, condition in enumerate(conditions):
            tree = combine(tree, condition, use_or=use_or and i == 0)
        return replace(self, _where=tree)

    # ── Joins, grouping, ordering ───────────────────────────────────────

    def join(self, table: str, first: str, op: str, second: str) -> Query:
        """``INNER JOIN table ON first op second``, in call order."""
        return self._join("INNER", table, first, op, second)

    def left_join(self, table: str, first: str, op: str, second: str) -> Query:
        return self._join("LEFT", table, first, op, second)

    def right_join(self, table: str, first: str, op: str, second: str) -> Query:
        return self._join("RIGHT", table, first, op, second)

    def _join(self, kind: str, table: str, first: str, op: str, second: str) -> Query:
        join = Join(kind, table, first, _operator(op), second)
        return replace(self, _joins=(*self._joins, join))

    def group_by(self, *columns: str) -> Query:
        return replace(self, _group_by=(*self._group_by, *columns))

    def having(self, column: str | Raw, op: str, value: Any) -> Query:
        """``HAVING column op ?``; its values bind after the WHERE values."""
        return replace(self, _having=(*self._having, Compare(column, _operator(op), value)))

    def order_by(self, column: str, direction: str = "ASC") -> Query:
        """Append a sort key; repeated calls compose (``ORDER BY a ASC, b DESC``)."""
        normalized = direction.strip().upper()
        if normalized not in DIRECTIONS:
            msg = f"Invalid sort direction {direction!r}; use 'ASC' or 'DESC'"
            raise QueryBuilderError(msg)
        return replace(self, _order_by=(*self._order_by, (column, normalized)))

    # ── Limits ──────────────────────────────────────────────────────────

    def limit(self, count: int | str) -> Query:
        return replace(self, _limit=_non_negative(count, "limit"))

    def offset(self, count: int | str) -> Query:
        return replace(self, _offset=_non_negative(count, "offset"))

    def paginate(self, page: int | str = 1, per_page: int | str = 10) -> Query:
        """``limit(per_page)`` + ``offset((page - 1) * per_page)``; pages start at 1."""
        page_number = max(_non_negative(page, "page"), 1)
        size = _non_negative(per_page, "per_page")
        return replace(self, _limit=size, _offset=(page_number - 1) * size)

    # ── Compilation ─────────────────────────────────────────────────────

    @property
    def sql(self) -> str:
        """The SELECT that ``get()`` will run."""
        return self.compile_select().sql

    @property
    def params(self) -> tuple[Any, ...]:
        """The bound parameters of ``sql``, in placeholder order."""
        return self.compile_select().params

    def compile_select(self, dialect: Dialect | None = None) -> CompiledQuery:
        d = dialect or self._dialect
        params: list[Any] = []
        columns = ", ".join(_render_select_column(c, d) for c in self._columns)
        distinct = "DISTINCT " if self._distinct else ""
        sql = f"SELECT {distinct}{columns} FROM {d.quote(self._require_table())}"
        if self._joins:
            sql += " " + " ".join(
                f"{j.kind} JOIN {d.quote(j.table)} ON {d.quote(j.first)} {j.op} {d.quote(j.second)}"
                for j in self._joins
            )
        sql += self._render_where(d, params)
        if self._group_by:
            sql += " GROUP BY " + ", ".join(d.quote(c) for c in self._group_by)
        if self._having:
            sql += " HAVING " + " AND ".join(render(h, d, params) for h in self._having)
        if self._order_by:
            sql += " ORDER BY " + ", ".join(f"{d.quote(c)} {direction}" for c, direction in self._order_by)
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        if self._offset is not None:
            sql += f" OFFSET {self._offset}"
        return CompiledQuery(sql, tuple(params))

    def compile_insert(self, data: Mapping[str, Any], dialect: Dialect | None = None) -> CompiledQuery:
        if not data:
            msg = "insert() needs at least one column"
            raise QueryBuilderError(msg)
        d = dialect or self._dialect
        columns = ", ".join(d.quote(c) for c in data)
        placeholders = ", ".join("?" for _ in data)
        sql = f"INSERT INTO {d.quote(self._require_table())} ({columns}) VALUES ({placeholders})"
        return CompiledQuery(sql, tuple(data.values()))

    def compile_insert_many(
        self, rows: Sequence[Mapping[str, Any]], dialect: Dialect | None = None
    ) -> CompiledQuery:
        """One multi-row INSERT; every row must have the first row's columns."""
        if not rows or not rows[0]:
            msg = "insert_many() needs at least one row with at least one column"
            raise QueryBuilderError(msg)
        d = dialect or self._dialect
        keys = list(rows[0])
        expected = set(keys)
        params: list[Any] = []
        for index, row in enumerate(rows):
            if set(row) != expected:
                msg = f"insert_many() row {index} has columns {sorted(row)}, expected {sorted(expected)}"
                raise QueryBuilderError(msg)
            params.extend(row[k] for k in keys)
        columns = ", ".join(d.quote(c) for c in keys)
        group = "(" + ", ".join("?" for _ in keys) + ")"
        values = ", ".join(group for _ in rows)
        sql = f"INSERT INTO {d.quote(self._require_table())} ({columns}) VALUES {values}"
        return CompiledQuery(sql, tuple(params))

    def compile_update(self, data: Mapping[str, Any], dialect: Dialect | None = None) -> CompiledQuery:
        """UPDATE with the current WHERE clause. No WHERE means every row."""
        if not data:
            msg = "update() needs at least one column"
            raise QueryBuilderError(msg)
        d = dialect or self._dialect
        params: list[Any] = list(data.values())
        sets = ", ".join(f"{d.quote(c)} = ?" for c in data)
        sql = f"UPDATE {d.quote(self._require_table())} SET {sets}"
        sql += self._render_where(d, params)
        return CompiledQuery(sql, tuple(params))

    def compile_delete(self, dialect: Dialect | None = None) -> CompiledQuery:
        """DELETE with the current WHERE clause. No WHERE means every row."""
        d = dialect or self._dialect
        params: list[Any] = []
        sql = f"DELETE FROM {d.quote(self._require_table())}"
        sql += self._render_where(d, params)
        return CompiledQuery(sql, tuple(params))

    def compile_increment(
        self, column: str, amount: int | float = 1, dialect: Dialect | None = None
    ) -> CompiledQuery:
        d = dialect or self._dialect
        params: list[Any] = [amount]
        target = d.quote(column)
        sql = f"UPDATE {d.quote(self._require_table())} SET {target} = {target} + ?"
        sql += self._render_where(d, params)
        return CompiledQuery(sql, tuple(params))

    def compile_upsert(
        self,
        data: Mapping[str, Any],
        update_columns: Sequence[str] | None = None,
        conflict_columns: Sequence[str] = ("id",),
        dialect: Dialect | None = None,
    ) -> CompiledQuery:
        """INSERT that updates on key conflict.

        ``update_columns`` defaults to every column in *data* except ``id``.
        ``conflict_columns`` names the unique key (SQLite needs it spelled
        out; MySQL uses whichever unique key collides).
        """
        insert = self.compile_insert(data, dialect)
        d = dialect or self._dialect
        updates = list(update_columns) if update_columns is not None else [c for c in data if c != "id"]
        tail = d.upsert_clause(updates, conflict_columns)
        return CompiledQuery(f"{insert.sql} {tail}", insert.params)

    def _render_where(self, dialect: Dialect, params: list[Any]) -> str:
        if self._where is None:
            return ""
        return " WHERE " + render(self._where, dialect, params)

    def _require_table(self) -> str:
        if not self._table:
            msg = "No table selected; call table() first"
            raise QueryBuilderError(msg)
        return self._table

    @property
    def _dialect(self) -> Dialect:
        if self._db is not None:
            return self._db.dialect
        return MYSQL

    def _executor(self) -> Executor:
        if self._db is not None:
            return self._db
        from callie.data.database import get_db

        try:
            return get_db()
        except LookupError:
            msg = (
                "Query has no database. Build it with db.table(...) or run it "
                "inside an App configured with db=..."
            )
            raise DataError(msg) from None

    # ── Reads ───────────────────────────────────────────────────────────

    async def get(self) -> list[dict[str, Any]]:
        """Execute the SELECT and return every row as a dict."""
        db = self._executor()
        compiled = self.compile_select(db.dialect)
        return await db.query(compiled.sql, *compiled.params)

    async def first(self) -> dict[str, Any] | None:
        """The first row (``LIMIT 1``), or ``None`` when there is none."""
        rows = await self.limit(1).get()
        return rows[0] if rows else None

    async def find(self, id: Any) -> dict[str, Any] | None:  # noqa: A002
        """``where("id", id).first()``"""
        return await self.where("id", id).first()

    async def exists(self) -> bool:
        """True if at least one row matches. Uses ``SELECT 1 ... LIMIT 1``."""
        snapshot = replace(self, _columns=(Raw("1"),), _order_by=(), _limit=1, _offset=None)
        return bool(await snapshot.get())

    async def distinct(self, column: str) -> list[dict[str, Any]]:
        """Rows of ``SELECT DISTINCT column``."""
        return await replace(self, _columns=(column,), _distinct=True).get()

    async def pluck(self, column: str) -> list[Any]:
        """The values of one column, in row order."""
        rows = await self.select(column).get()
        return [next(iter(row.values())) for row in rows]

    async def count(self, column: str = "*") -> int:
        """Number of matching rows (``COUNT(*)``, or ``COUNT(column)``).

        Ignores ``order_by()``, ``limit()`` and ``offset()``: counts every
        matching row, so it can run on the same query as a paginated page.
        """
        value = await self._aggregate("COUNT", column, "count")
        return int(value) if value is not None else 0

    async def sum(self, column: str) -> int | float:
        """Sum of *column*; 0 when no rows match."""
        return _number(await self._aggregate("SUM", column, "sum"))

    async def avg(self, column: str) -> int | float:
        """Average of *column*; 0 when no rows match."""
        return _number(await self._aggregate("AVG", column, "avg"))

    async def min(self, column: str) -> Any:
        """Smallest value of *column*, or ``None`` when no rows match."""
        return await self._aggregate("MIN", column, "min")

    async def max(self, column: str) -> Any:
        """Largest value of *column*, or ``None`` when no rows match."""
        return await self._aggregate("MAX", column, "max")

    async def _aggregate(self, func: str, column: str, alias: str) -> Any:
        db = self._executor()
        d = db.dialect
        target = "*" if column == "*" else d.quote(column)
        expression = Raw(f"{func}({target}) AS {d.quote(alias)}")
        snapshot = replace(
            self, _columns=(expression,), _distinct=False, _order_by=(), _limit=None, _offset=None
        )
        compiled = snapshot.compile_select(d)
        rows = await db.query(compiled.sql, *compiled.params)
        if not rows:
            return None
        return rows[0].get(alias)

    # ── Writes ──────────────────────────────────────────────────────────

    async def insert(self, data: Mapping[str, Any]) -> int | None:
        """Insert one row and return its generated id."""
        db = self._executor()
        compiled = self.compile_insert(data, db.dialect)
        result = await db.execute(compiled.sql, *compiled.params)
        return result.insert_id

    async def insert_many(self, rows: Sequence[Mapping[str, Any]]) -> list[int | None]:
        """Insert rows with one statement and return their ids.

        Ids are computed as ``first_id + i``, which holds for
        auto-increment keys without gaps and with no concurrent writers
        interleaving ids. An empty list returns ``[]`` without touching
        the database.
        """
        if not rows:
            return []
        db = self._executor()
        compiled = self.compile_insert_many(rows, db.dialect)
        result = await db.execute(compiled.sql, *compiled.params)
        if result.insert_id is None:
            return [None] * len(rows)
        return [result.insert_id + i for i in range(len(rows))]

    async def update(self, data: Mapping[str, Any]) -> int:
        """Update matching rows and return the affected-row count.

        Without a ``where()`` this updates every row in the table.
        """
        db = self._executor()
        compiled = self.compile_update(data, db.dialect)
        result = await db.execute(compiled.sql, *compiled.params)
        return result.affected_rows

    async def delete(self) -> int:
        """Delete matching rows and return the affected-row count.

        Without a ``where()`` this deletes every row in the table.
        """
        db = self._executor()
        compiled = self.compile_delete(db.dialect)
        result = await db.execute(compiled.sql, *compiled.params)
        return result.affected_rows

    async def increment(self, column: str, amount: int | float = 1) -> int:
        """``SET column = column + amount`` on matching rows."""
        db = self._executor()
        compiled = self.compile_increment(column, amount, db.dialect)
        result = await db.execute(compiled.sql, *compiled.params)
        return result.affected_rows

    async def decrement(self, column: str, amount: int | float = 1) -> int:
        return await self.increment(column, -amount)

    async def upsert(
        self,
        data: Mapping[str, Any],
        update_columns: Sequence[str] | None = None,
        conflict_columns: Sequence[str] = ("id",),
    ) -> int:
        """Insert, or update on key conflict. Returns the id, else the affected rows."""
        db = self._executor()
        compiled = self.compile_upsert(data, update_columns, conflict_columns, db.dialect)
        result = await db.execute(compiled.sql, *compiled.params)
        return result.insert_id or result.affected_rows


def table(name: str, db: Executor | None = None) -> Query:
    """Start a query on *name*."""
    return Query(name, db)


# =============================================================================
# Helpers
# =============================================================================


def _operator(op: str) -> str:
    normalized = " ".join(op.upper().split())
    if normalized not in OPERATORS:
        msg = f"Unsupported operator {op!r}; expected one of {sorted(OPERATORS)}"
        raise QueryBuilderError(msg)
    return normalized


def _equals(column: str | Raw, value: Any) -> Condition:
    if value is None:
        return IsNull(column)
    return Compare(column, "=", value)


def _parse_where(column: str | Raw | Mapping[str, Any], args: tuple[Any, ...]) -> list[Condition]:
    if isinstance(column, Mapping):
        if args:
            msg = "where() with a mapping takes no other arguments"
            raise TypeError(msg)
        return [_equals(key, value) for key, value in column.items()]
    if len(args) == 1:
        return [_equals(column, args[0])]
    if len(args) == 2:
        op = _operator(args[0])
        value = args[1]
        if value is None and op == "=":
            return [IsNull(column)]
        if value is None and op in ("!=", "<>"):
            return [IsNull(column, negated=True)]
        return [Compare(column, op, value)]
    msg = "where() takes a mapping, (column, value) or (column, operator, value)"
    raise TypeError(msg)


def _non_negative(value: int | str, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        msg = f"{name} must be an integer, got {value!r}"
        raise QueryBuilderError(msg) from None
    if number < 0:
        msg = f"{name} must not be negative, got {number}"
        raise QueryBuilderError(msg)
    return number


def _check_select_column(column: str | Raw) -> None:
    if isinstance(column, Raw) or column == "*" or _IDENTIFIER_RE.match(column):
        return
    m = _ALIAS_RE.match(column)
    if m and _IDENTIFIER_RE.match(m.group(1)):
        return
    msg = f"Invalid column {column!r}; wrap SQL expressions in raw()"
    raise QueryBuilderError(msg)


def _render_select_column(column: str | Raw, dialect: Dialect) -> str:
    if isinstance(column, Raw):
        return column.sql
    m = _ALIAS_RE.match(column)
    if m:
        return f"{dialect.quote(m.group(1))} AS {dialect.quote(m.group(2))}"
    return dialect.quote(column)


def _number(value: Any) -> int | float:
    """Aggregate results: ``None`` -> 0, ``Decimal`` -> int or float."""
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (int, float)):
        return value
    return float(value)
