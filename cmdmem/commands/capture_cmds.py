from __future__ import annotations

import logging
import sqlite3
import sys

import typer
from rich import print
from rich.markup import escape

from cmdmem.capture import CommandCapture
from cmdmem.errors import CmdmemError
from cmdmem.shell_hooks import (
    detect_shell,
    generate_hook,
    installation_instructions,
    parse_shell,
)

logger = logging.getLogger(__name__)


def capture_cmd(
    *,
    store_from_path,
    load_config,
    db_path: str | None,
    command: str,
    exit_code: int,
    duration: int,
) -> None:
    """Record one finished command. Never fails the calling shell."""

    try:
        config = load_config()
        store = store_from_path(db_path, config)
        try:
            CommandCapture.from_config(config, store).capture(command, exit_code, duration)
        finally:
            store.close()
    except (CmdmemError, sqlite3.Error, OSError) as exc:
        logger.warning("capture failed", exc_info=exc)
        print(f"cmdmem: capture error: {escape(str(exc))}", file=sys.stderr)


def init_shell_cmd(*, shell: str | None) -> None:
    """Print the shell hook for zsh or bash."""

    try:
        shell_type = parse_shell(shell) if shell else detect_shell()
    except ValueError as exc:
        print(f"[red]Error: {escape(str(exc))}[/red]", file=sys.stderr)
        print("Tip: pass --shell zsh or --shell bash.", file=sys.stderr)
        raise typer.Exit(code=1) from exc
    sys.stdout.write(generate_hook(shell_type))
    print(installation_instructions(shell_type), file=sys.stderr)
