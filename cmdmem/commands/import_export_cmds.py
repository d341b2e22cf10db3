from __future__ import annotations

import json
import sys
from pathlib import Path

import typer
from rich import print
from rich.markup import escape

from cmdmem.import_export import Exporter, Importer, ImportStrategy

from .common import exit_on_error


def export_cmd(*, store_from_path, db_path: str | None, output: str) -> None:
    """Export command history to a JSON snapshot."""

    with exit_on_error("Export"):
        store = store_from_path(db_path)
        try:
            exporter = Exporter(store)
            if output == "-":
                sys.stdout.write(json.dumps(exporter.snapshot(), ensure_ascii=False, indent=2))
                sys.stdout.write("\n")
                return
            print(f"Exporting command history to {escape(output)}...")
            try:
                stats = exporter.export(output)
            except OSError as exc:
                print(f"[red]✗ Export failed: {escape(str(exc))}[/red]")
                raise typer.Exit(code=1) from exc
        finally:
            store.close()

    print("\n[green]✓ Export successful![/green]")
    print(f"  Commands exported: {stats.commands_exported}")
    print(f"  File: {escape(stats.file_path)}")


def import_cmd(
    *,
    store_from_path,
    db_path: str | None,
    input_file: str,
    strategy: ImportStrategy,
) -> None:
    """Merge a JSON snapshot into command history."""

    if input_file == "-":
        input_json = sys.stdin.read()
    else:
        input_path = Path(input_file).expanduser()
        if not input_path.exists():
            print(f"[red]✗ Error: File '{escape(str(input_path))}' not found[/red]")
            raise typer.Exit(code=1)
        try:
            input_json = input_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            print(f"[red]✗ Could not read {escape(str(input_path))}: {escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
        print(f"Importing command history from {escape(str(input_path))}...")

    with exit_on_error("Import"):
        store = store_from_path(db_path)
        try:
            stats = Importer(store, strategy).import_text(input_json)
        finally:
            store.close()

    print("\n[green]✓ Import successful![/green]")
    print(f"  Total commands in file: {stats.total_commands}")
    print(f"  New commands imported: {stats.imported}")
    print(f"  Existing commands updated: {stats.updated}")
    print(f"  Duplicates skipped: {stats.skipped}")
    print(f"\n{stats.summary()}")
