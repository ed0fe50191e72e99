"""Unit tests for the SQLite expression compiler."""

import pytest
from sqlalchemy import JSON, Column, MetaData, String, Table
from sqlalchemy.dialects import sqlite

from doccrud.domain.entities import Compound, Field, Query, r
from doccrud.domain.exceptions import InvalidQueryError
from doccrud.infrastructure.persistence.expression_compiler import (
    compile_expression,
    compile_index_expressions,
    compile_select,
    json_path,
    project,
)


@pytest.fixture
def table():
    return Table(
        "col_users",
        MetaData(),
        Column("id", String, primary_key=True),
        Column("doc", JSON, nullable=False),
    )


def to_sql(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def test_json_path_quotes_segments():
    assert json_path(("address", "city")) == '$."address"."city"'


def test_json_path_rejects_double_quotes():
    with pytest.raises(InvalidQueryError):
        json_path(('bad"name',))


def test_field_compiles_to_json_extract(table):
    sql = to_sql(compile_expression(Field(("address", "city")), table.c.doc))

    assert sql == "json_extract(col_users.doc, '$.\"address\".\"city\"')"


def test_comparison_and_boolean(table):
    row = Field()
    expr = (row("age") >= 18) & ~(row("role") == "admin")

    sql = to_sql(compile_expression(expr, table.c.doc))

    assert "json_extract(col_users.doc, '$.\"age\"') >= 18" in sql
    assert " AND " in sql
    assert "!=" in sql or "NOT" in sql


def test_null_equality_uses_is_null(table):
    sql = to_sql(compile_expression(Field(("age",)) == None, table.c.doc))  # noqa: E711

    assert sql.endswith("IS NULL")


def test_in_operator(table):
    sql = to_sql(compile_expression(Field(("role",)).is_in(["a", "b"]), table.c.doc))

    assert "IN ('a', 'b')" in sql


def test_compound_only_allowed_in_indexes(table):
    compound = Compound((r.row("last_name"), r.row("first_name")))

    with pytest.raises(InvalidQueryError):
        compile_expression(compound, table.c.doc)

    assert len(compile_index_expressions(compound, table.c.doc)) == 2


def test_keyed_select(table):
    sql = to_sql(compile_select(Query("users").get("abc"), table))

    assert "WHERE col_users.id = 'abc'" in sql


def test_steps_in_natural_order_stay_flat(table):
    query = Query("users").filter({"v": 1}).order_by("v").skip(1).limit(2)

    sql = to_sql(compile_select(query, table))

    assert "anon_1" not in sql
    assert "LIMIT 2 OFFSET 1" in sql


def test_filter_after_pagination_wraps_subquery(table):
    query = Query("users").limit(2).filter({"v": 1})

    sql = to_sql(compile_select(query, table))

    assert "anon_1" in sql
    assert sql.index("LIMIT 2") < sql.index("WHERE")


def test_second_limit_wraps_subquery(table):
    sql = to_sql(compile_select(Query("users").limit(5).limit(2), table))

    assert "LIMIT 5" in sql
    assert "LIMIT 2" in sql


def test_project_keeps_named_fields():
    assert project({"id": "1", "a": 1, "b": 2}, ("a", "missing")) == {"a": 1}
    assert project({"a": 1}, None) == {"a": 1}
