"""kpl stats command - corpus and index size."""

import json
from pathlib import Path

import click

from keyplane.cli.utils import build_engine, read_documents


@click.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats_command(ctx: click.Context, files: tuple[Path, ...], as_json: bool) -> None:
    """Ingest FILES and report document and vector counts."""
    engine = build_engine(read_documents(files), ctx.obj["config"])
    stats = engine.stats()

    if as_json:
        click.echo(json.dumps(stats.to_dict()))
        return

    click.echo(f"Documents: {stats.documents}")
    click.echo(f"Vectors: {stats.vectors}")
    click.echo(f"Dimension: {stats.dim}")
    click.echo(f"Window: {stats.window_size}")
