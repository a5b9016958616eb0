"""CLI utilities."""

from collections.abc import Sequence
from pathlib import Path

import click

from keyplane.config.models import KeyplaneConfig
from keyplane.core.errors import KeyplaneError
from keyplane.core.logging import get_log_file_path
from keyplane.core.progress import pluralize, progress, status, task
from keyplane.engine import EmbeddingEngine


def read_documents(paths: Sequence[Path]) -> list[str]:
    """Read each path as UTF-8 text.

    Raises:
        click.ClickException: If a file cannot be read or decoded.
    """
    documents: list[str] = []
    for path in paths:
        try:
            documents.append(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise click.ClickException(f"Cannot read {path}: {e}") from e
    return documents


def build_engine(documents: Sequence[str], config: KeyplaneConfig) -> EmbeddingEngine:
    """Load the tokenizer and encoder from config and ingest *documents*.

    Raises:
        click.ClickException: If loading or ingestion fails.
    """
    try:
        with task("Loading tokenizer and encoder"):
            engine = EmbeddingEngine.from_config((), config)
        for text in progress(documents, desc="Ingesting", unit="documents"):
            engine.add_document(text)
    except KeyplaneError as e:
        raise click.ClickException(str(e)) from e

    stats = engine.stats()
    status(
        f"Indexed {pluralize(stats.documents, 'document')} "
        f"({pluralize(stats.vectors, 'vector')})",
        style="success",
    )
    if (log_path := get_log_file_path()) is not None:
        status(f"Logging to {log_path}")
    return engine
