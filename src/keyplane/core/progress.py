"""Terminal feedback for the kpl CLI.

All output goes to stderr through one Rich console so stdout stays clean for
keywords and ``--json`` payloads.  A progress bar is shown only on a TTY and
only for more than ``_BAR_THRESHOLD`` items; while it is live, console log
handlers are muted (see ``ConsoleSuppressingFilter``).
"""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import structlog
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn

_BAR_THRESHOLD = 100

_console = Console(stderr=True)

_PREFIXES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_muted = threading.local()


def is_console_suppressed() -> bool:
    return getattr(_muted, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Mute console log handlers for this thread; file handlers still write."""
    previous = is_console_suppressed()
    _muted.active = True
    try:
        yield
    finally:
        _muted.active = previous


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print one styled line to stderr."""
    _console.print(
        f"{' ' * indent}{_PREFIXES.get(style, '')}{message}", highlight=False, soft_wrap=True
    )


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """``pluralize(1, "vector")`` -> "1 vector"; ``pluralize(3, "vector")`` -> "3 vectors"."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


def progress[T](
    items: Iterable[T],
    *,
    desc: str = "Processing",
    total: int | None = None,
    unit: str = "documents",
    force: bool = False,
) -> Iterator[T]:
    """Yield *items*, drawing a transient bar when it is worth showing."""
    if total is None:
        try:
            total = len(items)  # type: ignore[arg-type]
        except TypeError:
            total = None

    if not (_is_tty() and total is not None and (force or total > _BAR_THRESHOLD)):
        yield from items
        return

    columns = (
        TextColumn("    {task.description}:"),
        BarColumn(bar_width=25, style="cyan", complete_style="cyan"),
        MofNCompleteColumn(),
        TextColumn(unit),
    )
    with suppress_console_logs(), Progress(*columns, console=_console, transient=True) as bar:
        task_id = bar.add_task(desc, total=total)
        for item in items:
            yield item
            bar.advance(task_id)


@contextmanager
def task(name: str) -> Iterator[None]:
    """Announce *name*, then report success with elapsed time or the failure."""
    log = structlog.get_logger()
    status(f"{name}...", style="none")
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        status(f"{name} failed: {e}", style="error")
        log.debug("cli.task_failed", task=name, error=str(e))
        raise
    elapsed = time.perf_counter() - start
    status(f"{name} ({elapsed:.1f}s)", style="success")
    log.debug("cli.task_done", task=name, elapsed_s=round(elapsed, 2))
