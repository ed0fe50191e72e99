"""Command-line interface for doccrud.

Bootstraps collections and inspects their contents in the configured
SQLite database.
"""

import asyncio
import json
from typing import Any

import click

from doccrud.application.services import SchemaBootstrapper, generate_crud_services
from doccrud.core.config import Settings, get_settings
from doccrud.core.dispatch import CrudOperation, Dispatcher, qualify
from doccrud.core.logging import configure_logging
from doccrud.domain.entities import extract_collection_name, parse_index_spec
from doccrud.domain.exceptions import CrudError
from doccrud.infrastructure.persistence import DatabaseManager, init_database


def parse_index_option(value: str) -> tuple[str, Any]:
    """Parse ``NAME=SPEC`` where SPEC is a dotted path, a comma list or a JSON object.

    >>> parse_index_option("name=last_name,first_name")
    ('name', ['last_name', 'first_name'])
    """
    name, sep, spec = value.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME=SPEC, got {value!r}")
    if not spec:
        return name, {}
    if spec.lstrip().startswith("{"):
        try:
            return name, json.loads(spec)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON options for index {name!r}: {e}") from e
    if "," in spec:
        return name, [field.strip() for field in spec.split(",") if field.strip()]
    return name, spec


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _run(settings: Settings, coro_factory: Any) -> Any:
    async def runner() -> Any:
        db = DatabaseManager(settings)
        try:
            await init_database(db)
            return await coro_factory(db)
        finally:
            await db.disconnect()

    try:
        return asyncio.run(runner())
    except CrudError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(version="0.1.0", prog_name="doccrud")
@click.option(
    "--database-url",
    type=str,
    default=None,
    help="SQLite database URL (overrides DOCCRUD_DATABASE_URL)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides config)",
)
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, log_level: str | None) -> None:
    """doccrud - CRUD services generated over a document store."""
    overrides: dict[str, Any] = {}
    if database_url:
        overrides["database_url"] = database_url
    if log_level:
        overrides["log_level"] = log_level

    settings = get_settings().model_copy(update=overrides)
    configure_logging(settings)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("namespace")
@click.option("--collection", type=str, default=None, help="Collection name (defaults to the namespace's last segment)")
@click.option(
    "--index",
    "indexes",
    multiple=True,
    help="Index as NAME=SPEC; SPEC is a dotted path, a comma-separated field list or JSON options",
)
@click.pass_context
def bootstrap(ctx: click.Context, namespace: str, collection: str | None, indexes: tuple[str, ...]) -> None:
    """Create a collection and its indexes if they do not exist."""
    collection_name = collection or extract_collection_name(namespace)
    if not collection_name:
        raise click.BadParameter(
            f"cannot derive a collection from {namespace!r}; pass --collection",
            param_hint="NAMESPACE",
        )

    try:
        specs = {
            name: parse_index_spec(name, raw)
            for name, raw in (parse_index_option(value) for value in indexes)
        }
    except CrudError as e:
        raise click.BadParameter(str(e), param_hint="--index") from e

    async def run(db: DatabaseManager) -> Any:
        return await SchemaBootstrapper(db.document_store).ensure(collection_name, specs)

    result = _run(_settings(ctx), run)
    click.echo(
        json.dumps(
            {
                "collection": collection_name,
                "created_collection": result.created_collection,
                "created_indexes": result.created_indexes,
            }
        )
    )


@cli.command()
@click.pass_context
def collections(ctx: click.Context) -> None:
    """List the existing collections."""

    async def run(db: DatabaseManager) -> list[str]:
        return await db.document_store.list_collections()

    for name in _run(_settings(ctx), run):
        click.echo(name)


@cli.command()
@click.argument("namespace")
@click.option("--collection", type=str, default=None, help="Collection name (defaults to the namespace's last segment)")
@click.option("--filters", type=str, default=None, help="Filter object as JSON")
@click.option("--order-by", type=str, default=None, help="Field to order by")
@click.option("--skip", type=click.IntRange(min=0), default=None)
@click.option("--limit", type=click.IntRange(min=1), default=None)
@click.option("--field", "fields", multiple=True, help="Field to keep (repeatable)")
@click.pass_context
def find(
    ctx: click.Context,
    namespace: str,
    collection: str | None,
    filters: str | None,
    order_by: str | None,
    skip: int | None,
    limit: int | None,
    fields: tuple[str, ...],
) -> None:
    """Print the records matching a query as JSON lines."""
    params: dict[str, Any] = {}
    if filters:
        try:
            params["filters"] = json.loads(filters)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--filters") from e
    if order_by:
        params["order_by"] = order_by
    if skip is not None:
        params["skip"] = skip
    if limit is not None:
        params["limit"] = limit
    if fields:
        params["fields"] = list(fields)

    async def run(db: DatabaseManager) -> list[dict[str, Any]]:
        dispatcher = Dispatcher()
        services = await generate_crud_services(
            namespace,
            {
                "store": db.document_store,
                "collection_name": collection,
                "auto_create_collection": False,
            },
        )
        dispatcher.subscribe_map(services.namespace, services.map)
        return await dispatcher.dispatch(qualify(namespace, CrudOperation.FIND), params)

    for record in _run(_settings(ctx), run):
        click.echo(json.dumps(record, default=str))


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
