"""Resource CLI commands: query resources in the configured database."""

import json
from pathlib import Path

import click

from resourceforge.core.errors import ResourceError
from resourceforge.metadata.registry import ResourceRegistry
from resourceforge.persistence.config import create_database, resolve_database_url
from resourceforge.resources.service import ResourceService


@click.group()
def resource():
    """Resource commands."""
    pass


@resource.command("list")
@click.argument("name")
@click.option("--fields", default=None, help="Comma-separated fields, e.g. 'id,title,project.*'.")
@click.option("--filter", "filter_", default=None, help="Filter tree as JSON.")
@click.option("--search", default=None, help="Case-insensitive search term.")
@click.option("--sort", default=None, help="Comma-separated sort fields, '-' for descending.")
@click.option("--group", default=None, help="Comma-separated group fields.")
@click.option("--limit", type=int, default=None, help="Row limit (-1 for the maximum).")
@click.option("--page", type=int, default=None, help="Page number.")
@click.option("--before", default=None, help="Cursor to page backwards from.")
@click.option("--after", default=None, help="Cursor to page forwards from.")
@click.option("--aggregate", default=None, help='Aggregates as JSON, e.g. \'[{"sum": "points"}]\'.')
@click.option("--with-trashed", is_flag=True, default=False, help="Include trashed rows.")
@click.option("--only-trashed", is_flag=True, default=False, help="Only trashed rows.")
@click.option("--all", "list_all", is_flag=True, default=False, help="Ignore limits and pagination.")
@click.pass_context
def list_cmd(
    ctx: click.Context,
    name: str,
    fields: str | None,
    filter_: str | None,
    search: str | None,
    sort: str | None,
    group: str | None,
    limit: int | None,
    page: int | None,
    before: str | None,
    after: str | None,
    aggregate: str | None,
    with_trashed: bool,
    only_trashed: bool,
    list_all: bool,
):
    """List NAME resources as JSON.

    The database is DATABASE_URL, else the `database` setting of
    resourceforge.yaml.
    """
    metadata_path: Path = ctx.obj["metadata_path"]

    query: dict = {
        key: value
        for key, value in (
            ("fields", fields),
            ("filter", filter_),
            ("search", search),
            ("sort", sort),
            ("group", group),
            ("limit", limit),
            ("page", page),
            ("before", before),
            ("after", after),
            ("aggregate", aggregate),
        )
        if value is not None
    }
    if not list_all:
        query["pagination"] = "cursor" if before is not None or after is not None else "page"

    try:
        registry = ResourceRegistry.from_path(metadata_path)
        db = create_database(resolve_database_url(registry.config))
    except ResourceError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        raise SystemExit(1)

    try:
        db.connect()
        model = ResourceService(db, registry).model(name)
        if with_trashed:
            model.with_trashed()
        elif only_trashed:
            model.only_trashed()
        collection = model.list(query, list_all=list_all)
        output: dict = {"data": collection.list()}
        meta = {}
        if not list_all:
            meta["pagination"] = collection.pagination()
        if aggregate is not None:
            meta["aggregate"] = collection.aggregate()
        if meta:
            output["meta"] = meta
    except ResourceError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        raise SystemExit(1)
    finally:
        db.close()

    click.echo(json.dumps(output, indent=2, default=str))
