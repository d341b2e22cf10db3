from __future__ import annotations

import contextlib
import datetime as dt
import os
from collections.abc import Iterator

import typer
from rich import print
from rich.markup import escape

from cmdmem.config import CmdmemConfig, load_config
from cmdmem.errors import CmdmemError
from cmdmem.store import CommandRecord, CommandStore


def store_from_path(db_path: str | None, config: CmdmemConfig | None = None) -> CommandStore:
    if db_path:
        return CommandStore(db_path)
    return CommandStore((config or load_config()).database_path())


@contextlib.contextmanager
def exit_on_error(action: str) -> Iterator[None]:
    try:
        yield
    except CmdmemError as exc:
        print(f"[red]✗ {action} failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def resolve_directory(dir_arg: str | None) -> str:
    if dir_arg:
        return os.path.abspath(os.path.expanduser(dir_arg))
    return os.getcwd()


def format_timestamp(value: str | None) -> str:
    if not value:
        return "-"
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError:
        return value
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def print_record(record: CommandRecord, *, show_dir: bool = True, use_last_used: bool = False) -> None:
    when = format_timestamp(record.last_used if use_last_used else record.timestamp)
    print(f"[{when}] {record.status_symbol()} {escape(record.command)}")
    details = [
        f"Category: {escape(record.category)}",
        f"Duration: {record.duration_display()}",
        f"Usage: {record.usage_count} times",
    ]
    if show_dir:
        details.append(f"Dir: {escape(record.working_dir)}")
    print("  " + " | ".join(details))
    print()
