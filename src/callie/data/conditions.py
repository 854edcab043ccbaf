"""WHERE condition trees.

The query builder keeps its WHERE clause as a small tree instead of a
list of tagged strings::

    where("a", 1).or_where("b", 2).where("c", 3)

    And(Or(Compare("a", "=", 1), Compare("b", "=", 2)), Compare("c", "=", 3))

Each chained call folds its condition onto the left of the existing
tree. ``render()`` walks it depth first, emitting one ``?`` per bound
value and appending the value to ``params`` at the same moment, so
placeholders and parameters cannot drift apart.

Rendering adds no parentheses: the output is exactly the chained
fragments joined by their connectives (``a = ? OR b = ? AND c = ?``),
and SQL's own precedence (AND before OR) applies to the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from callie.data.dialects import Dialect, Raw


@dataclass(frozen=True, slots=True)
class Compare:
    """``column <op> ?``"""

    column: str | Raw
    op: str
    value: Any


@dataclass(frozen=True, slots=True)
class IsNull:
    """``column IS NULL`` / ``column IS NOT NULL``"""

    column: str | Raw
    negated: bool = False


@dataclass(frozen=True, slots=True)
class In:
    """``column IN (?, ...)`` / ``column NOT IN (?, ...)``; values is never empty."""

    column: str | Raw
    values: tuple[Any, ...]
    negated: bool = False


@dataclass(frozen=True, slots=True)
class Between:
    """``column BETWEEN ? AND ?``"""

    column: str | Raw
    low: Any
    high: Any


@dataclass(frozen=True, slots=True)
class Never:
    """Always false: ``1 = 0``. What ``where_in(col, [])`` becomes."""


@dataclass(frozen=True, slots=True)
class And:
    left: Condition
    right: Condition


@dataclass(frozen=True, slots=True)
class Or:
    left: Condition
    right: Condition


type Condition = Compare | IsNull | In | Between | Never | And | Or


def combine(tree: Condition | None, condition: Condition, *, use_or: bool = False) -> Condition:
    """Fold *condition* onto *tree* with AND (or OR)."""
    if tree is None:
        return condition
    if use_or:
        return Or(tree, condition)
    return And(tree, condition)


def render(condition: Condition, dialect: Dialect, params: list[Any]) -> str:
    """Render *condition* to SQL, appending bound values to *params* in order."""
    match condition:
        case And(left, right):
            return f"{render(left, dialect, params)} AND {render(right, dialect, params)}"
        case Or(left, right):
            return f"{render(left, dialect, params)} OR {render(right, dialect, params)}"
        case Compare(column, op, value):
            params.append(value)
            return f"{dialect.quote(column)} {op} ?"
        case IsNull(column, negated):
            return f"{dialect.quote(column)} IS {'NOT ' if negated else ''}NULL"
        case In(column, values, negated):
            params.extend(values)
            placeholders = ", ".join("?" for _ in values)
            keyword = "NOT IN" if negated else "IN"
            return f"{dialect.quote(column)} {keyword} ({placeholders})"
        case Between(column, low, high):
            params.append(low)
            params.append(high)
            return f"{dialect.quote(column)} BETWEEN ? AND ?"
        case Never():
            return "1 = 0"
    msg = f"Unknown condition node: {condition!r}"
    raise TypeError(msg)
