"""keyplane CLI - kpl command."""

from pathlib import Path

import click

from keyplane.cli.keywords import keywords_command
from keyplane.cli.stats import stats_command
from keyplane.config.loader import load_config
from keyplane.core.errors import ConfigError
from keyplane.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="kpl")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file (merged over ~/.config/keyplane/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None) -> None:
    """keyplane - keywords from per-token embeddings."""
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config


cli.add_command(keywords_command, name="keywords")
cli.add_command(stats_command, name="stats")


if __name__ == "__main__":
    cli()
