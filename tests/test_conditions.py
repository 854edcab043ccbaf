"""Tests for callie.data.conditions — WHERE trees and their rendering."""

import pytest

from callie.data.conditions import (
    And,
    Between,
    Compare,
    In,
    IsNull,
    Never,
    Or,
    combine,
    render,
)
from callie.data.dialects import MYSQL, SQLITE, raw


def rendered(condition) -> tuple[str, list]:
    params: list = []
    return render(condition, MYSQL, params), params


class TestCombine:
    def test_first_condition_becomes_the_tree(self) -> None:
        leaf = Compare("a", "=", 1)
        assert combine(None, leaf) is leaf
        assert combine(None, leaf, use_or=True) is leaf

    def test_and_folds_left(self) -> None:
        a, b, c = Compare("a", "=", 1), Compare("b", "=", 2), Compare("c", "=", 3)
        tree = combine(combine(combine(None, a), b), c)
        assert tree == And(And(a, b), c)

    def test_or(self) -> None:
        a, b = Compare("a", "=", 1), Compare("b", "=", 2)
        assert combine(a, b, use_or=True) == Or(a, b)


class TestRender:
    def test_compare(self) -> None:
        assert rendered(Compare("salary", ">=", 5000)) == ("`salary` >= ?", [5000])

    def test_dotted_column(self) -> None:
        sql, _ = rendered(Compare("e.id", "=", 1))
        assert sql == "`e`.`id` = ?"

    def test_is_null_and_not_null(self) -> None:
        assert rendered(IsNull("deleted_at")) == ("`deleted_at` IS NULL", [])
        assert rendered(IsNull("deleted_at", negated=True)) == ("`deleted_at` IS NOT NULL", [])

    def test_in(self) -> None:
        assert rendered(In("id", (1, 2, 3))) == ("`id` IN (?, ?, ?)", [1, 2, 3])
        assert rendered(In("id", (4,), negated=True)) == ("`id` NOT IN (?)", [4])

    def test_between(self) -> None:
        assert rendered(Between("age", 18, 65)) == ("`age` BETWEEN ? AND ?", [18, 65])

    def test_never(self) -> None:
        assert rendered(Never()) == ("1 = 0", [])

    def test_raw_column_is_not_quoted(self) -> None:
        sql, params = rendered(Compare(raw("LOWER(email)"), "=", "a@b.c"))
        assert sql == "LOWER(email) = ?"
        assert params == ["a@b.c"]

    def test_connectives_without_parentheses(self) -> None:
        tree = And(Or(Compare("a", "=", 1), Compare("b", "=", 2)), Compare("c", "=", 3))
        assert rendered(tree) == ("`a` = ? OR `b` = ? AND `c` = ?", [1, 2, 3])

    def test_params_follow_placeholder_order(self) -> None:
        tree = And(
            And(Compare("a", "=", "x"), In("b", ("y", "z"))),
            Between("c", 1, 2),
        )
        sql, params = rendered(tree)
        assert sql.count("?") == len(params)
        assert params == ["x", "y", "z", 1, 2]

    def test_params_appended_to_existing_list(self) -> None:
        params: list = ["before"]
        render(Compare("a", "=", 1), SQLITE, params)
        assert params == ["before", 1]

    def test_unknown_node_raises(self) -> None:
        with pytest.raises(TypeError, match="Unknown condition"):
            render("a = 1", MYSQL, [])  # type: ignore[arg-type]


class TestDialect:
    def test_quote_escapes_backticks(self) -> None:
        assert MYSQL.quote("we`ird") == "`we``ird`"

    def test_star_stays_bare(self) -> None:
        assert MYSQL.quote("*") == "*"
        assert MYSQL.quote("e.*") == "`e`.*"

    def test_truncate(self) -> None:
        assert MYSQL.truncate("logs") == "TRUNCATE TABLE `logs`"
        assert SQLITE.truncate("logs") == "DELETE FROM `logs`"

    def test_upsert_clauses(self) -> None:
        assert MYSQL.upsert_clause(["name"], ["id"]) == "ON DUPLICATE KEY UPDATE `name` = VALUES(`name`)"
        assert SQLITE.upsert_clause(["name"], ["id"]) == (
            "ON CONFLICT (`id`) DO UPDATE SET `name` = excluded.`name`"
        )

    def test_upsert_without_update_columns(self) -> None:
        assert MYSQL.upsert_clause([], ["id"]) == "ON DUPLICATE KEY UPDATE `id` = `id`"
        assert SQLITE.upsert_clause([], ["id"]) == "ON CONFLICT (`id`) DO NOTHING"
