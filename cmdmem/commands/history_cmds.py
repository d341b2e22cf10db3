from __future__ import annotations

from rich import print
from rich.markup import escape

from cmdmem.store import OrderBy, SearchQuery

from .common import exit_on_error, format_timestamp, print_record, resolve_directory


def search_cmd(
    *,
    store_from_path,
    db_path: str | None,
    query: str,
    limit: int,
    directory: str | None,
    recursive: bool,
    category: str | None,
    success: bool | None,
) -> None:
    """Search command history for a literal phrase."""

    with exit_on_error("Search"):
        store = store_from_path(db_path)
        try:
            results = store.search(
                SearchQuery(
                    text=query,
                    category=category,
                    success_only=success,
                    working_dir=resolve_directory(directory) if directory else None,
                    recursive=recursive,
                    limit=limit,
                    order_by=OrderBy.RELEVANCE,
                )
            )
        finally:
            store.close()

    if not results:
        print(f"No commands found matching '{escape(query)}'")
        return
    print(f"\nFound {len(results)} matching command(s):\n")
    for record in results:
        print_record(record)


def here_cmd(
    *,
    store_from_path,
    db_path: str | None,
    directory: str | None,
    recursive: bool,
    limit: int,
) -> None:
    """Show commands executed in a directory."""

    working_dir = resolve_directory(directory)
    with exit_on_error("Query"):
        store = store_from_path(db_path)
        try:
            results = store.recent(limit=limit, working_dir=working_dir, recursive=recursive)
        finally:
            store.close()

    if not results:
        print("No commands in history for this directory.")
        return
    mode = "(recursive)" if recursive else "(exact match)"
    print(f"\nShowing commands in: {escape(working_dir)} {mode}\n")
    print(f"Found {len(results)} command(s):\n")
    for record in results:
        print_record(record, show_dir=recursive)


def recent_cmd(
    *,
    store_from_path,
    db_path: str | None,
    limit: int,
    directory: str | None,
    recursive: bool,
) -> None:
    """Show the most recent commands."""

    with exit_on_error("Query"):
        store = store_from_path(db_path)
        try:
            results = store.recent(
                limit=limit,
                working_dir=resolve_directory(directory) if directory else None,
                recursive=recursive,
            )
        finally:
            store.close()

    if not results:
        print("No commands in history yet.")
        return
    print(f"\nMost recent {len(results)} command(s):\n")
    for record in results:
        print_record(record, show_dir=False)


def top_cmd(
    *,
    store_from_path,
    db_path: str | None,
    limit: int,
    directory: str | None,
    recursive: bool,
) -> None:
    """Show the most frequently used commands."""

    with exit_on_error("Query"):
        store = store_from_path(db_path)
        try:
            results = store.top(
                limit=limit,
                working_dir=resolve_directory(directory) if directory else None,
                recursive=recursive,
            )
        finally:
            store.close()

    if not results:
        print("No commands in history yet.")
        return
    print(f"\nTop {len(results)} most frequently used command(s):\n")
    for index, record in enumerate(results, start=1):
        print(f"{index}. {escape(record.command)} (used {record.usage_count} times)")
        print(
            f"   Category: {escape(record.category)} | "
            f"Last used: {format_timestamp(record.last_used)} | "
            f"Duration: {record.duration_display()}"
        )
        print()


def category_cmd(
    *,
    store_from_path,
    db_path: str | None,
    name: str,
    limit: int,
    directory: str | None,
    recursive: bool,
) -> None:
    """Show commands in one category, most used first."""

    with exit_on_error("Query"):
        store = store_from_path(db_path)
        try:
            results = store.by_category(
                name,
                limit=limit,
                working_dir=resolve_directory(directory) if directory else None,
                recursive=recursive,
            )
        finally:
            store.close()

    if not results:
        print(f"No commands found in category '{escape(name)}'")
        return
    print(f"\nCommands in category '{escape(name)}' ({len(results)} found):\n")
    for record in results:
        print_record(record, use_last_used=True)
