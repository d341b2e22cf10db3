from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import InvalidSnapshot
from .store import CommandRecord, CommandStore
from .store.types import now_iso

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"


@dataclass
class ExportStats:
    commands_exported: int
    file_path: str


@dataclass
class ImportStats:
    total_commands: int = 0
    imported: int = 0
    skipped: int = 0
    updated: int = 0

    def summary(self) -> str:
        return (
            f"Imported {self.imported} new commands, updated {self.updated}, "
            f"skipped {self.skipped} duplicates (total: {self.total_commands})"
        )


class ImportStrategy(str, Enum):
    SKIP = "skip"
    UPDATE_USAGE = "update-usage"
    PRESERVE_HIGHER = "preserve-higher"


class Exporter:
    def __init__(self, store: CommandStore):
        self.store = store

    def snapshot(self) -> dict[str, Any]:
        commands = self.store.get_all()
        return {
            "version": EXPORT_VERSION,
            "exported_at": now_iso(),
            "command_count": len(commands),
            "commands": [record.to_dict() for record in commands],
        }

    def export(self, output_path: Path | str) -> ExportStats:
        data = self.snapshot()
        path = Path(output_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(data, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("exported %d commands to %s", data["command_count"], path)
        return ExportStats(commands_exported=data["command_count"], file_path=str(path))


class Importer:
    """Merges a snapshot into a store.

    Each incoming record either becomes a new row or is reconciled against the
    existing row for the same (command, working_dir) by the chosen strategy.
    """

    def __init__(
        self,
        store: CommandStore,
        strategy: ImportStrategy = ImportStrategy.PRESERVE_HIGHER,
    ):
        self.store = store
        self.strategy = ImportStrategy(strategy)
        self._reconcilers: dict[
            ImportStrategy, Callable[[CommandRecord, CommandRecord], bool]
        ] = {
            ImportStrategy.SKIP: self._reconcile_skip,
            ImportStrategy.UPDATE_USAGE: self._reconcile_update_usage,
            ImportStrategy.PRESERVE_HIGHER: self._reconcile_preserve_higher,
        }

    def import_file(self, input_path: Path | str) -> ImportStats:
        path = Path(input_path).expanduser()
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidSnapshot(f"{path} is not UTF-8 text") from exc
        return self.import_text(text)

    def import_text(self, text: str) -> ImportStats:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise InvalidSnapshot(f"Invalid JSON: {exc}") from exc
        return self.import_data(data)

    def import_data(self, data: Any) -> ImportStats:
        records = parse_snapshot(data)
        stats = ImportStats(total_commands=len(records))
        reconcile = self._reconcilers[self.strategy]
        with self.store.write_section():
            for incoming in records:
                existing = self.store.find_duplicate(incoming.command, incoming.working_dir)
                if existing is None:
                    self.store.insert(incoming)
                    stats.imported += 1
                elif reconcile(existing, incoming):
                    stats.updated += 1
                else:
                    stats.skipped += 1
        logger.info("import (%s): %s", self.strategy.value, stats.summary())
        return stats

    def _reconcile_skip(self, existing: CommandRecord, incoming: CommandRecord) -> bool:
        return False

    def _reconcile_update_usage(self, existing: CommandRecord, incoming: CommandRecord) -> bool:
        self.store.update_usage(
            _record_id(existing),
            existing.usage_count + incoming.usage_count,
            max(existing.last_used, incoming.last_used),
        )
        return True

    def _reconcile_preserve_higher(
        self, existing: CommandRecord, incoming: CommandRecord
    ) -> bool:
        if incoming.usage_count <= existing.usage_count:
            return False
        self.store.update_usage(
            _record_id(existing),
            incoming.usage_count,
            max(existing.last_used, incoming.last_used),
        )
        return True


def parse_snapshot(data: Any) -> list[CommandRecord]:
    if not isinstance(data, dict):
        raise InvalidSnapshot("Invalid export file: expected a JSON object")
    version = data.get("version")
    if not isinstance(version, str) or not version.strip():
        raise InvalidSnapshot("Invalid export file: missing version")
    commands = data.get("commands", [])
    if not isinstance(commands, list):
        raise InvalidSnapshot("Invalid export file: commands must be a list")
    return [CommandRecord.from_dict(item) for item in commands]


def _record_id(record: CommandRecord) -> int:
    if record.id is None:
        raise ValueError("record has not been stored")
    return record.id
