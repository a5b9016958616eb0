"""kpl keywords command - global or local keywords for a set of documents."""

import json
from pathlib import Path

import click

from keyplane.cli.utils import build_engine, read_documents
from keyplane.core.errors import KeyplaneError


@click.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--local",
    "local_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Report keywords for this file, matched against the corpus.",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def keywords_command(
    ctx: click.Context,
    files: tuple[Path, ...],
    local_file: Path | None,
    as_json: bool,
) -> None:
    """Print representative keywords for FILES.

    Without --local, keywords summarize the whole corpus.
    """
    config = ctx.obj["config"]
    engine = build_engine(read_documents(files), config)

    try:
        if local_file is not None:
            (text,) = read_documents([local_file])
            keywords = engine.local_keywords(text)
            scope = "local"
        else:
            keywords = engine.global_keywords()
            scope = "global"
    except KeyplaneError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps({"scope": scope, "keywords": keywords}))
        return

    if not keywords:
        click.echo("No keywords (empty corpus)")
        return
    for keyword in keywords:
        click.echo(keyword)
