from __future__ import annotations

import typer
from rich import print

from . import __version__
from .commands.capture_cmds import capture_cmd, init_shell_cmd
from .commands.common import store_from_path
from .commands.history_cmds import (
    category_cmd,
    here_cmd,
    recent_cmd,
    search_cmd,
    top_cmd,
)
from .commands.import_export_cmds import export_cmd, import_cmd
from .commands.maintenance_cmds import config_cmd, init_db_cmd, stats_cmd
from .config import get_config_path, load_config
from .import_export import ImportStrategy
from .store import CommandStore

app = typer.Typer(help="cmdmem: never forget a shell command again")


def _store(db_path: str | None, config=None) -> CommandStore:
    return store_from_path(db_path, config)


@app.command()
def init(
    shell: str = typer.Option(None, help="Shell type (zsh, bash); detected from $SHELL if omitted"),
) -> None:
    """Print shell integration hook code."""
    init_shell_cmd(shell=shell)


@app.command()
def capture(
    command: str = typer.Argument(..., help="The command line that ran"),
    exit_code: int = typer.Option(..., "--exit-code", help="Exit status of the command"),
    duration: int = typer.Option(..., "--duration", help="Run time in milliseconds"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Record a finished command (called by the shell hook)."""
    capture_cmd(
        store_from_path=_store,
        load_config=load_config,
        db_path=db_path,
        command=command,
        exit_code=exit_code,
        duration=duration,
    )


@app.command()
def search(
    query: str,
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
    directory: str = typer.Option(None, "--dir", "-d", help="Only commands run in this directory"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include subdirectories"),
    category: str = typer.Option(None, "--category", "-c", help="Filter by category"),
    success: bool | None = typer.Option(
        None, "--success/--failed", help="Only successful or only failed commands"
    ),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Search command history for a literal phrase."""
    search_cmd(
        store_from_path=_store,
        db_path=db_path,
        query=query,
        limit=limit,
        directory=directory,
        recursive=recursive,
        category=category,
        success=success,
    )


@app.command()
def here(
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include subdirectories"),
    directory: str = typer.Option(None, "--dir", "-d", help="Directory (default: current)"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show commands executed in the current directory."""
    here_cmd(
        store_from_path=_store,
        db_path=db_path,
        directory=directory,
        recursive=recursive,
        limit=limit,
    )


@app.command()
def recent(
    n: int = typer.Argument(20, help="Number of commands to show"),
    directory: str = typer.Option(None, "--dir", "-d", help="Filter by directory"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include subdirectories"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show recent commands."""
    recent_cmd(
        store_from_path=_store,
        db_path=db_path,
        limit=n,
        directory=directory,
        recursive=recursive,
    )


@app.command()
def top(
    n: int = typer.Argument(10, help="Number of commands to show"),
    directory: str = typer.Option(None, "--dir", "-d", help="Filter by directory"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include subdirectories"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show the most frequently used commands."""
    top_cmd(
        store_from_path=_store,
        db_path=db_path,
        limit=n,
        directory=directory,
        recursive=recursive,
    )


@app.command()
def category(
    name: str = typer.Argument(..., help="Category name (git, docker, ...)"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
    directory: str = typer.Option(None, "--dir", "-d", help="Filter by directory"),
    recursive: bool = typer.Option(False, "--recursive", "-r", help="Include subdirectories"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Show commands in a category."""
    category_cmd(
        store_from_path=_store,
        db_path=db_path,
        name=name,
        limit=limit,
        directory=directory,
        recursive=recursive,
    )


@app.command()
def stats(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Show usage statistics."""
    stats_cmd(store_from_path=_store, db_path=db_path)


@app.command()
def export(
    output: str = typer.Argument("history.json", help="Output file path (use - for stdout)"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Export command history to JSON."""
    export_cmd(store_from_path=_store, db_path=db_path, output=output)


@app.command("import")
def import_history(
    input_file: str = typer.Argument(..., help="Input file path (use - for stdin)"),
    strategy: ImportStrategy = typer.Option(
        ImportStrategy.PRESERVE_HIGHER, help="How to merge commands that already exist"
    ),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Import command history from JSON."""
    import_cmd(
        store_from_path=_store,
        db_path=db_path,
        input_file=input_file,
        strategy=strategy,
    )


@app.command()
def init_db(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Create the SQLite database (no-op if it already exists)."""
    init_db_cmd(store_from_path=_store, db_path=db_path)


@app.command()
def config() -> None:
    """Show configuration."""
    config_cmd(load_config=load_config, get_config_path=get_config_path)


@app.command("version")
def version() -> None:
    """Print version."""
    print(__version__)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
