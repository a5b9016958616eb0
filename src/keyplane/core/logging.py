"""structlog configuration for keyplane.

Every event goes through stdlib logging so one config can fan out to
several outputs (console and/or files, each console- or JSON-rendered, each
with its own level).  While a document is being ingested its position in the
corpus is attached to every event as ``document``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from keyplane.config.models import LoggingConfig, LogOutputConfig

_current_document: ContextVar[int | None] = ContextVar("current_document", default=None)

# First file destination of the active config, if any
_log_file_path: Path | None = None

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Libraries that log at INFO on every session or index creation
_NOISY_LOGGERS = ("onnxruntime", "faiss", "faiss.loader")


def current_document() -> int | None:
    """Position of the document being ingested in this context, if any."""
    return _current_document.get()


@contextmanager
def document_context(position: int) -> Iterator[None]:
    """Tag log events emitted inside the block with ``document=position``."""
    token = _current_document.set(position)
    try:
        yield
    finally:
        _current_document.reset(token)


def get_log_file_path() -> Path | None:
    return _log_file_path


def _add_document(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    position = _current_document.get()
    if position is not None:
        event_dict.setdefault("document", position)
    return event_dict


class ConsoleSuppressingFilter(logging.Filter):
    """Hide console records while a progress bar owns the terminal.

    Only console handlers carry this filter; files keep every record.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: ARG002
        from keyplane.core.progress import is_console_suppressed

        return not is_console_suppressed()


def _level(name: str | None, fallback: int) -> int:
    if name is None:
        return fallback
    return _LEVELS.get(name.upper(), fallback)


def _build_handler(
    output: LogOutputConfig,
    shared_processors: list[structlog.types.Processor],
    fallback_level: int,
) -> logging.Handler:
    handler: logging.Handler
    is_console = output.destination in ("stderr", "stdout")
    if output.destination == "stderr":
        handler = logging.StreamHandler(sys.stderr)
    elif output.destination == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        path = Path(output.destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a")

    renderer: structlog.types.Processor
    if output.format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=is_console and sys.stderr.isatty(),
            pad_event_to=0,
            pad_level=False,
        )
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(_level(output.level, fallback_level))
    if is_console:
        handler.addFilter(ConsoleSuppressingFilter())
    return handler


def configure_logging(
    *,
    config: LoggingConfig | None = None,
    json_format: bool = False,
    level: str = "INFO",
) -> None:
    """Install structlog + stdlib handlers.

    Args:
        config: Full logging config. When omitted a single stderr output is
            built from ``json_format`` and ``level``.
        json_format: Render the default stderr output as JSON.
        level: Root level for the default config.
    """
    global _log_file_path
    from keyplane.config.models import LoggingConfig, LogOutputConfig

    if config is None:
        config = LoggingConfig(
            level=level,
            outputs=[LogOutputConfig(format="json" if json_format else "console")],
        )
    root_level = _level(config.level, logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", key="timestamp"),
        _add_document,  # type: ignore[list-item]
    ]
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration must take effect for loggers created earlier
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(root_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _log_file_path = next(
        (
            Path(output.destination)
            for output in config.outputs
            if output.destination not in ("stderr", "stdout")
        ),
        None,
    )
    for output in config.outputs:
        root.addHandler(_build_handler(output, shared_processors, root_level))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger  # type: ignore[no-any-return]
