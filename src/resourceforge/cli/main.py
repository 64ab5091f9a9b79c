"""resourceforge CLI entry point."""

import logging
from pathlib import Path

import click

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.option(
    "--metadata",
    "metadata_path",
    default="metadata",
    show_default=True,
    type=click.Path(path_type=Path),
    help="Metadata directory containing resources/*.yaml.",
)
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Logging level.",
)
@click.pass_context
def cli(ctx: click.Context, metadata_path: Path, log_level: str):
    """resourceforge: declarative resource query engine CLI."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["metadata_path"] = metadata_path


# Register subcommand groups
from resourceforge.cli.resource_cmd import resource  # noqa: E402
from resourceforge.cli.schema_cmd import schema  # noqa: E402

cli.add_command(schema)
cli.add_command(resource)
