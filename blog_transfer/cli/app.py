from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable, Coroutine
from pathlib import Path
from typing import Any

from blog_transfer.cli import output as out
from blog_transfer.cli.config import Config, config_path_display, load_config
from blog_transfer.core.exceptions import ArchiveError, TaskNotFoundError
from blog_transfer.facade import BlogTransfer, UploadedFile
from blog_transfer.models import (
    PostStatus,
    TaskProgress,
    WorkflowKind,
    WorkflowRunStatus,
)

DESCRIPTION = """\
blog-transfer: move blog posts in and out as portable archives

Exports posts (front matter markdown, structured content and images)
to a zip archive, and imports such archives or plain markdown files
back. Tasks are checkpointed step by step, so an interrupted task can
be resumed without redoing finished work."""

POLL_INTERVAL = 0.5


# ── Infrastructure helpers ──────────────────────────────────────────


def _build_bt(cfg: Config) -> BlogTransfer:
    cfg.ensure_dirs()
    return BlogTransfer.from_config(cfg.to_library_config())


async def _follow(
    bt: BlogTransfer,
    task_id: str,
    read: Callable[[str], Awaitable[TaskProgress | None]],
    *,
    done: Callable[[], Awaitable[bool]] | None = None,
) -> TaskProgress | None:
    """Print progress changes until the task reaches a terminal state.

    *done* is an extra stop condition checked on every poll.
    """
    last_line = ""
    progress: TaskProgress | None = None
    while True:
        progress = await read(task_id)
        if progress is not None:
            line = out.progress_line(progress)
            if line != last_line:
                out.info(line)
                last_line = line
            if progress.status.is_terminal:
                return progress
        if done is not None and await done():
            return progress
        if not bt.is_active(task_id):
            return await read(task_id)
        await asyncio.sleep(POLL_INTERVAL)


async def _finish_export(bt: BlogTransfer, task_id: str, dest: Path | None) -> None:
    async def archive_ready() -> bool:
        return await bt.download_export(task_id) is not None

    progress = await _follow(
        bt, task_id, bt.get_export_progress, done=archive_ready
    )
    print()
    if progress is not None:
        out.progress_report(progress)

    data = await bt.download_export(task_id)
    if data is None:
        if progress is None or progress.status.is_terminal:
            return
        out.error("Export did not produce an archive")
        sys.exit(1)

    path = dest or Path(load_config().output_dir) / f"export-{task_id}.zip"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    out.kv("Archive", path)
    out.kv("Size", f"{len(data):,} bytes")


async def _finish_import(bt: BlogTransfer, task_id: str) -> None:
    progress = await _follow(bt, task_id, bt.get_import_progress)
    print()
    if progress is None:
        out.warn("No progress recorded for this task")
        return
    out.progress_report(progress)
    if progress.report is not None:
        for entry in progress.report.succeeded:
            out.kv(entry.slug, entry.title, indent=4)


# ── export ──────────────────────────────────────────────────────────


async def cmd_export(args: argparse.Namespace) -> None:
    cfg = load_config()
    bt = _build_bt(cfg)
    try:
        await bt.init()
        status = PostStatus(args.status) if args.status else None
        started = await bt.start_export(post_ids=args.ids, status=status)

        out.header("Exporting posts")
        out.kv("Task", started.task_id)
        print()
        await _finish_export(bt, started.task_id, Path(args.out) if args.out else None)
    finally:
        await bt.close()


# ── import ──────────────────────────────────────────────────────────


async def cmd_import(args: argparse.Namespace) -> None:
    cfg = load_config()

    uploads = []
    for name in args.paths:
        path = Path(name)
        if not path.is_file():
            out.error(f"File not found: {name}")
            sys.exit(1)
        uploads.append(UploadedFile(name=path.name, data=path.read_bytes()))

    bt = _build_bt(cfg)
    try:
        await bt.init()
        try:
            started = await bt.start_import(uploads)
        except (ValueError, ArchiveError) as exc:
            out.error(getattr(exc, "message", None) or str(exc))
            sys.exit(1)

        out.header(f"Importing ({started.mode.value} archive)")
        out.kv("Task", started.task_id)
        print()
        await _finish_import(bt, started.task_id)
    finally:
        await bt.close()


# ── progress ────────────────────────────────────────────────────────


async def cmd_progress(args: argparse.Namespace) -> None:
    """Show durable run state: one task's step log, or all runs."""
    cfg = load_config()
    bt = _build_bt(cfg)
    try:
        await bt.init()
        store = bt.store

        if args.task_id is None:
            runs = await store.list_runs()
            if not runs:
                out.info("No tasks recorded.")
                return
            out.header("Tasks")
            for run in runs:
                out.kv(
                    run.id,
                    f"{run.kind.value:<7} {run.status.value:<10} "
                    f"{run.created_at:%Y-%m-%d %H:%M}",
                )
            return

        run = await store.get_run(args.task_id)
        if run is None:
            out.error(f"Unknown task: {args.task_id}")
            sys.exit(1)

        out.header(f"Task {run.id}")
        out.kv("Kind", run.kind.value)
        out.kv("Status", run.status.value)
        out.kv("Started", f"{run.created_at:%Y-%m-%d %H:%M:%S}")
        print()
        for cp in await store.list_checkpoints(run.id):
            if cp.failed:
                out.error(f"{cp.seq:>3}  {cp.name}: {cp.error}")
            else:
                out.success(f"{cp.seq:>3}  {cp.name}")

        if run.status is WorkflowRunStatus.RUNNING:
            print()
            out.next_step(f"blog-transfer resume {run.id}", "continue this task")
    finally:
        await bt.close()


# ── resume ──────────────────────────────────────────────────────────


async def cmd_resume(args: argparse.Namespace) -> None:
    cfg = load_config()
    bt = _build_bt(cfg)
    try:
        await bt.init()
        if args.task_id is None:
            task_ids = await bt.resume_incomplete()
            if not task_ids:
                out.info("Nothing to resume.")
                return
        else:
            try:
                await bt.resume(args.task_id)
            except TaskNotFoundError:
                out.error(f"Unknown task: {args.task_id}")
                sys.exit(1)
            except ValueError as exc:
                out.error(str(exc))
                sys.exit(1)
            task_ids = [args.task_id]

        for task_id in task_ids:
            run = await bt.store.get_run(task_id)
            assert run is not None
            out.header(f"Resuming {run.kind.value} task {task_id}")
            print()
            if run.kind is WorkflowKind.EXPORT:
                await _finish_export(bt, task_id, None)
            else:
                await _finish_import(bt, task_id)
    finally:
        await bt.close()


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> None:
    cfg = load_config()

    out.header(f"Configuration ({config_path_display()})")
    print()

    if cfg.database_url:
        out.kv("Store", f"{cfg.store_provider} ({cfg.database_url})")
    elif cfg.store_provider == "sqlite":
        out.kv("Store", f"sqlite ({cfg.sqlite_path})")
    else:
        out.kv("Store", cfg.store_provider)
    if not cfg.is_persistent:
        out.warn("In-memory store: tasks cannot be resumed across commands")

    out.kv("Data directory", cfg.data_dir)
    out.kv("Storage", cfg.storage_path)
    out.kv("Exports", cfg.output_dir)
    for key, value in (cfg.workflow or {}).items():
        out.kv(f"workflow.{key}", value)
    print()


async def cmd_config_path(args: argparse.Namespace) -> None:
    print(config_path_display())


# ── Parser ──────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blog-transfer",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  blog-transfer export                         "
            "Export every post\n"
            "  blog-transfer export --status published      "
            "Export published posts only\n"
            "  blog-transfer import export.zip              "
            "Import an archive\n"
            "  blog-transfer import post-a.md post-b.md     "
            "Import markdown files\n"
            "  blog-transfer progress                       "
            "List recorded tasks\n"
            "  blog-transfer resume                         "
            "Resume interrupted tasks\n"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed logs (steps, retries, warnings)",
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    p_export = sub.add_parser("export", help="Export posts to a zip archive")
    p_export.add_argument(
        "--ids",
        type=int,
        nargs="+",
        metavar="ID",
        help="Only export these post IDs",
    )
    p_export.add_argument(
        "--status",
        choices=[s.value for s in PostStatus],
        help="Only export posts with this status",
    )
    p_export.add_argument("--out", metavar="PATH", help="Output file path")

    p_import = sub.add_parser(
        "import", help="Import one .zip archive or several .md files"
    )
    p_import.add_argument("paths", nargs="+", metavar="FILE")

    p_progress = sub.add_parser("progress", help="Show recorded tasks and steps")
    p_progress.add_argument("task_id", nargs="?", help="Task to inspect")

    p_resume = sub.add_parser("resume", help="Resume interrupted tasks")
    p_resume.add_argument(
        "task_id", nargs="?", help="Task to resume (default: all running)"
    )

    p_cfg = sub.add_parser("config", help="View settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command")
    cfg_sub.add_parser("show", help="Show current settings")
    cfg_sub.add_parser("path", help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, None]]

_COMMAND_MAP: dict[str, _CommandHandler] = {
    "export": cmd_export,
    "import": cmd_import,
    "progress": cmd_progress,
    "resume": cmd_resume,
}

_CONFIG_MAP: dict[str, _CommandHandler] = {
    "show": cmd_config_show,
    "path": cmd_config_path,
}


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    if args.command == "config":
        if not args.config_command:
            parser.parse_args(["config", "--help"])
            return
        handler = _CONFIG_MAP.get(args.config_command)
    else:
        handler = _COMMAND_MAP.get(args.command)

    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        print()
