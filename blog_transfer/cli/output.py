"""Terminal output helpers for the blog-transfer CLI.

Plain ANSI formatting with no extra dependencies.  Color is disabled
when stdout is not a TTY or ``NO_COLOR`` is set.
"""

from __future__ import annotations

import os
import sys

from blog_transfer.models import TaskProgress, TaskStatus


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(sys.stdout, "isatty"):
        return False
    return sys.stdout.isatty()


_COLOR = _supports_color()


def _ansi(code: str, text: str) -> str:
    if not _COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def bold(text: str) -> str:
    return _ansi("1", text)


def dim(text: str) -> str:
    return _ansi("2", text)


def green(text: str) -> str:
    return _ansi("32", text)


def yellow(text: str) -> str:
    return _ansi("33", text)


def red(text: str) -> str:
    return _ansi("31", text)


def cyan(text: str) -> str:
    return _ansi("36", text)


# ── Structured output ───────────────────────────────────────────────


def header(title: str) -> None:
    """Print a section header."""
    print(f"\n{bold(title)}")


def success(msg: str) -> None:
    print(f"  {green('✓')} {msg}")


def warn(msg: str) -> None:
    print(f"  {yellow('!')} {msg}")


def error(msg: str) -> None:
    print(f"  {red('✗')} {msg}")


def info(msg: str) -> None:
    print(f"  {msg}")


def kv(key: str, value: object, indent: int = 2) -> None:
    """Print a key-value pair."""
    pad = " " * indent
    print(f"{pad}{dim(str(key) + ':')}  {value}")


def next_step(command: str, description: str = "") -> None:
    """Print a suggested next-step command."""
    desc = f"  {dim(description)}" if description else ""
    print(f"    {cyan(command)}{desc}")


# ── Progress ────────────────────────────────────────────────────────

_STATUS_COLOR = {
    TaskStatus.PENDING: dim,
    TaskStatus.PROCESSING: cyan,
    TaskStatus.COMPLETED: green,
    TaskStatus.FAILED: red,
}


def progress_line(progress: TaskProgress) -> str:
    """One-line summary, e.g. ``processing 3/10  My post``."""
    status = _STATUS_COLOR[progress.status](progress.status.value)
    parts = [status]
    if progress.total:
        parts.append(f"{progress.completed}/{progress.total}")
    if progress.current:
        parts.append(dim(progress.current))
    return "  ".join(parts)


def progress_report(progress: TaskProgress) -> None:
    """Print the final state of a task with its errors and warnings."""
    if progress.status is TaskStatus.COMPLETED:
        success("Completed")
    else:
        error(f"Finished with status {progress.status.value}")
    if progress.total:
        kv("Processed", f"{progress.completed}/{progress.total}")
    if progress.report is not None:
        kv("Imported", len(progress.report.succeeded))
        kv("Failed", len(progress.report.failed))
    for e in progress.errors:
        error(f"{e.post}: {e.reason}")
    for w in progress.warnings:
        warn(w)
