"""Tests for the doccrud command-line interface."""

import asyncio
import json

import click
import pytest
from click.testing import CliRunner

from doccrud.cli import cli, parse_index_option
from doccrud.core.config import Settings
from doccrud.infrastructure.persistence import DatabaseManager


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


def invoke(database_url: str, *args: str):
    runner = CliRunner()
    return runner.invoke(cli, ["--database-url", database_url, "--log-level", "CRITICAL", *args])


def seed(database_url: str, collection: str, records: list[dict]) -> None:
    async def run() -> None:
        db = DatabaseManager(Settings(_env_file=None, database_url=database_url))
        try:
            store = db.document_store
            await store.create_collection(collection)
            await store.insert(collection, records)
        finally:
            await db.disconnect()

    asyncio.run(run())


class TestParseIndexOption:
    def test_dotted_path(self) -> None:
        assert parse_index_option("city=address.city") == ("city", "address.city")

    def test_field_list(self) -> None:
        assert parse_index_option("name=last_name, first_name") == ("name", ["last_name", "first_name"])

    def test_json_options(self) -> None:
        assert parse_index_option('email={"unique": true}') == ("email", {"unique": True})

    def test_empty_spec_is_default_options(self) -> None:
        assert parse_index_option("age=") == ("age", {})

    def test_missing_separator_rejected(self) -> None:
        with pytest.raises(click.BadParameter):
            parse_index_option("city")


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_bootstrap_creates_collection_and_indexes(database_url):
    result = invoke(
        database_url,
        "bootstrap",
        "entity.User",
        "--index",
        "city=address.city",
        "--index",
        "name=last_name,first_name",
        "--index",
        'email={"unique": true}',
    )

    assert result.exit_code == 0, result.output
    summary = json.loads(result.output.strip().splitlines()[-1])
    assert summary == {
        "collection": "User",
        "created_collection": True,
        "created_indexes": ["city", "name", "email"],
    }

    again = invoke(database_url, "bootstrap", "entity.User", "--index", "city=address.city")
    assert json.loads(again.output.strip().splitlines()[-1])["created_indexes"] == []


def test_bootstrap_requires_collection_name(database_url):
    result = invoke(database_url, "bootstrap", "User")

    assert result.exit_code != 0


def test_collections_lists_names(database_url):
    invoke(database_url, "bootstrap", "entity.User")
    invoke(database_url, "bootstrap", "blog", "--collection", "Post")

    result = invoke(database_url, "collections")

    assert result.exit_code == 0
    assert result.output.split() == ["Post", "User"]


def test_find_prints_json_lines(database_url):
    seed(database_url, "Numbers", [{"v": v} for v in range(1, 5)])

    result = invoke(
        database_url,
        "find",
        "test.Numbers",
        "--filters",
        '{"v": {"gte": 2}}',
        "--order-by",
        "v",
        "--limit",
        "2",
        "--field",
        "v",
    )

    assert result.exit_code == 0, result.output
    assert [json.loads(line) for line in result.output.strip().splitlines()] == [
        {"v": 2},
        {"v": 3},
    ]


def test_find_rejects_invalid_json(database_url):
    result = invoke(database_url, "find", "test.Numbers", "--filters", "{not json")

    assert result.exit_code != 0
