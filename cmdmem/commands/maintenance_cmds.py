from __future__ import annotations

import datetime as dt

from rich import print
from rich.markup import escape

from .common import exit_on_error, format_timestamp


def init_db_cmd(*, store_from_path, db_path: str | None) -> None:
    """Create the SQLite database (no-op if it already exists)."""

    with exit_on_error("Init"):
        store = store_from_path(db_path)
        store.close()
    print(f"Initialized database at {escape(str(store.db_path))}")


def stats_cmd(*, store_from_path, db_path: str | None) -> None:
    """Show command history statistics."""

    with exit_on_error("Stats"):
        store = store_from_path(db_path)
        try:
            stats = store.stats()
        finally:
            store.close()

    print("\n[bold]Command History Statistics[/bold]\n")
    print(f"Total Commands: {stats.total_commands}")
    print(f"Successful: {stats.successful_commands} ({stats.success_rate:.1f}%)")
    failed_rate = 100.0 - stats.success_rate if stats.total_commands else 0.0
    print(f"Failed: {stats.failed_commands} ({failed_rate:.1f}%)")

    if stats.oldest_command and stats.newest_command:
        print("\nTime Range:")
        print(f"  First command: {format_timestamp(stats.oldest_command)}")
        print(f"  Last command:  {format_timestamp(stats.newest_command)}")
        try:
            span = dt.datetime.fromisoformat(stats.newest_command) - dt.datetime.fromisoformat(
                stats.oldest_command
            )
        except ValueError:
            span = dt.timedelta(0)
        if span.days > 0:
            print(f"  Tracking for:  {span.days} days")
            print(f"  Avg per day:   {stats.total_commands / span.days:.1f} commands")

    if stats.by_category:
        print("\nCommands by Category:")
        for item in stats.by_category:
            percentage = item.count / stats.total_commands * 100.0
            print(f"  {escape(item.category):12} {item.count:5} ({percentage:.1f}%)")
    print()


def config_cmd(*, load_config, get_config_path) -> None:
    """Show the effective configuration."""

    config = load_config()
    print("Configuration:")
    print(f"  Config file: {escape(str(get_config_path()))}")
    print(f"  Database: {escape(str(config.database_path()))}")
    privacy = "enabled" if config.redact_enabled else "disabled"
    print(f"  Privacy: {privacy} (patterns: {len(config.redact_patterns)})")
    print(f"  Capture: min_duration={config.min_duration_ms}ms")
