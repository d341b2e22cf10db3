from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from .errors import StorageFailure

DEFAULT_DB_PATH = Path.home() / ".cmdmem" / "history.sqlite"

FTS_TABLE = "commands_fts"

# Case-sensitive trigrams make an indexed phrase match exactly what instr() finds.
FTS_TOKENIZER = "trigram case_sensitive 1"

logger = logging.getLogger(__name__)

COLUMNS = (
    "id",
    "command",
    "timestamp",
    "exit_code",
    "duration_ms",
    "working_dir",
    "category",
    "usage_count",
    "last_used",
)


@contextlib.contextmanager
def storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StorageFailure(f"{action} failed: {exc}") from exc


def connect(db_path: Path | str, check_same_thread: bool = True) -> sqlite3.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS commands (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            command TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            exit_code INTEGER NOT NULL,
            duration_ms INTEGER NOT NULL,
            working_dir TEXT NOT NULL,
            category TEXT NOT NULL,
            usage_count INTEGER NOT NULL DEFAULT 1,
            last_used TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_commands_timestamp ON commands(timestamp DESC);
        CREATE INDEX IF NOT EXISTS idx_commands_category ON commands(category);
        CREATE INDEX IF NOT EXISTS idx_commands_usage ON commands(usage_count DESC);
        CREATE INDEX IF NOT EXISTS idx_commands_command ON commands(command);
        CREATE INDEX IF NOT EXISTS idx_commands_exit_code ON commands(exit_code);
        CREATE INDEX IF NOT EXISTS idx_commands_working_dir ON commands(working_dir);
        CREATE INDEX IF NOT EXISTS idx_commands_command_dir ON commands(command, working_dir);
        """
    )
    try:
        _drop_stale_text_index(conn)
        created = not table_exists(conn, FTS_TABLE)
        _initialize_text_index(conn)
    except sqlite3.OperationalError as exc:
        # Searches degrade to substring scans without the index.
        logger.warning("command text index unavailable", exc_info=exc)
        conn.rollback()
        return
    if created:
        conn.execute(f"INSERT INTO {FTS_TABLE}({FTS_TABLE}) VALUES('rebuild')")
    conn.commit()


def _initialize_text_index(conn: sqlite3.Connection) -> None:
    conn.executescript(
        f"""
        CREATE VIRTUAL TABLE IF NOT EXISTS {FTS_TABLE} USING fts5(
            command,
            content='commands',
            content_rowid='id',
            tokenize='{FTS_TOKENIZER}'
        );

        CREATE TRIGGER IF NOT EXISTS commands_ai AFTER INSERT ON commands BEGIN
            INSERT INTO {FTS_TABLE}(rowid, command) VALUES (new.id, new.command);
        END;

        CREATE TRIGGER IF NOT EXISTS commands_ad AFTER DELETE ON commands BEGIN
            INSERT INTO {FTS_TABLE}({FTS_TABLE}, rowid, command)
            VALUES('delete', old.id, old.command);
        END;

        CREATE TRIGGER IF NOT EXISTS commands_au AFTER UPDATE OF command ON commands BEGIN
            INSERT INTO {FTS_TABLE}({FTS_TABLE}, rowid, command)
            VALUES('delete', old.id, old.command);
            INSERT INTO {FTS_TABLE}(rowid, command) VALUES (new.id, new.command);
        END;
        """
    )


def _drop_stale_text_index(conn: sqlite3.Connection) -> None:
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
        (FTS_TABLE,),
    ).fetchone()
    if row is None or FTS_TOKENIZER in (row[0] or ""):
        return
    logger.info("rebuilding command text index with tokenizer %r", FTS_TOKENIZER)
    conn.executescript(
        f"""
        DROP TRIGGER IF EXISTS commands_ai;
        DROP TRIGGER IF EXISTS commands_ad;
        DROP TRIGGER IF EXISTS commands_au;
        DROP TABLE IF EXISTS {FTS_TABLE};
        """
    )


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (name,),
    ).fetchone()
    return row is not None


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
