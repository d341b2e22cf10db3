from __future__ import annotations

import contextlib
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from .. import db
from ..errors import NotFound, StorageFailure
from . import search as store_search
from .types import CategoryCount, CommandRecord, OrderBy, SearchQuery, Stats, now_iso

_SELECT_COLUMNS = ", ".join(db.COLUMNS)


class CommandStore:
    """SQLite-backed command history, one row per (command, working_dir)."""

    def __init__(
        self,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        check_same_thread: bool = True,
    ):
        self.db_path = Path(db_path).expanduser()
        self._write_depth = 0
        try:
            self.conn = db.connect(self.db_path, check_same_thread=check_same_thread)
            db.initialize_schema(self.conn)
        except sqlite3.Error as exc:
            raise StorageFailure(f"open database {self.db_path} failed: {exc}") from exc
        except OSError as exc:
            raise StorageFailure(f"open database {self.db_path} failed: {exc}") from exc

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> CommandStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextlib.contextmanager
    def write_section(self) -> Iterator[None]:
        """Hold the database write lock for the duration of the block.

        Writers in other processes wait on the lock instead of interleaving with
        a lookup-then-mutate sequence. The block commits on success and rolls
        back on any exception.
        """
        if self._write_depth:
            self._write_depth += 1
            try:
                yield
            finally:
                self._write_depth -= 1
            return
        with db.storage_errors("begin write"):
            if self.conn.in_transaction:
                self.conn.commit()
            self.conn.execute("BEGIN IMMEDIATE")
        self._write_depth = 1
        try:
            yield
        except BaseException:
            self.conn.rollback()
            raise
        else:
            with db.storage_errors("commit"):
                self.conn.commit()
        finally:
            self._write_depth = 0

    def _commit(self) -> None:
        if not self._write_depth:
            self.conn.commit()

    def insert(self, record: CommandRecord) -> int:
        with db.storage_errors("insert"):
            cur = self.conn.execute(
                """
                INSERT INTO commands(
                    command, timestamp, exit_code, duration_ms,
                    working_dir, category, usage_count, last_used
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.command,
                    record.timestamp,
                    record.exit_code,
                    record.duration_ms,
                    record.working_dir,
                    record.category,
                    record.usage_count,
                    record.last_used or record.timestamp,
                ),
            )
            self._commit()
        record_id = int(cur.lastrowid or 0)
        return record_id

    def find_duplicate(self, command: str, working_dir: str) -> CommandRecord | None:
        with db.storage_errors("duplicate lookup"):
            row = self.conn.execute(
                f"""
                SELECT {_SELECT_COLUMNS} FROM commands
                WHERE command = ? AND working_dir = ?
                ORDER BY id
                LIMIT 1
                """,
                (command, working_dir),
            ).fetchone()
        if row is None:
            return None
        return CommandRecord.from_row(row)

    def get(self, record_id: int) -> CommandRecord | None:
        with db.storage_errors("get"):
            row = self.conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM commands WHERE id = ?",
                (record_id,),
            ).fetchone()
        if row is None:
            return None
        return CommandRecord.from_row(row)

    def increment_usage(self, record_id: int) -> None:
        now = now_iso()
        with db.storage_errors("increment usage"):
            cur = self.conn.execute(
                """
                UPDATE commands
                SET usage_count = usage_count + 1,
                    last_used = CASE WHEN last_used > ? THEN last_used ELSE ? END
                WHERE id = ?
                """,
                (now, now, record_id),
            )
            self._commit()
        if cur.rowcount == 0:
            raise NotFound(f"command {record_id} not found")

    def update_usage(self, record_id: int, usage_count: int, last_used: str) -> None:
        """Set an absolute usage count; ``last_used`` only moves forward."""
        with db.storage_errors("update usage"):
            cur = self.conn.execute(
                """
                UPDATE commands
                SET usage_count = ?,
                    last_used = CASE WHEN last_used > ? THEN last_used ELSE ? END
                WHERE id = ?
                """,
                (usage_count, last_used, last_used, record_id),
            )
            self._commit()
        if cur.rowcount == 0:
            raise NotFound(f"command {record_id} not found")

    def text_index_available(self) -> bool:
        try:
            return db.table_exists(self.conn, db.FTS_TABLE)
        except sqlite3.Error:
            return False

    def search(self, query: SearchQuery) -> list[CommandRecord]:
        return store_search.search(self, query)

    def recent(
        self,
        limit: int = 20,
        working_dir: str | None = None,
        recursive: bool = False,
    ) -> list[CommandRecord]:
        return self.search(
            SearchQuery(
                working_dir=working_dir,
                recursive=recursive,
                limit=limit,
                order_by=OrderBy.TIMESTAMP,
            )
        )

    def top(
        self,
        limit: int = 10,
        working_dir: str | None = None,
        recursive: bool = False,
    ) -> list[CommandRecord]:
        return self.search(
            SearchQuery(
                working_dir=working_dir,
                recursive=recursive,
                limit=limit,
                order_by=OrderBy.USAGE_COUNT,
            )
        )

    def by_category(
        self,
        category: str,
        limit: int = 20,
        working_dir: str | None = None,
        recursive: bool = False,
    ) -> list[CommandRecord]:
        return self.search(
            SearchQuery(
                category=category,
                working_dir=working_dir,
                recursive=recursive,
                limit=limit,
                order_by=OrderBy.USAGE_COUNT,
            )
        )

    def stats(self) -> Stats:
        with db.storage_errors("stats"):
            total = int(self.conn.execute("SELECT COUNT(*) FROM commands").fetchone()[0])
            successful = int(
                self.conn.execute("SELECT COUNT(*) FROM commands WHERE exit_code = 0").fetchone()[0]
            )
            category_rows = self.conn.execute(
                """
                SELECT category, COUNT(*) AS count
                FROM commands
                GROUP BY category
                ORDER BY count DESC, category ASC
                """
            ).fetchall()
            span = self.conn.execute(
                "SELECT MIN(timestamp) AS oldest, MAX(timestamp) AS newest FROM commands"
            ).fetchone()
        return Stats(
            total_commands=total,
            successful_commands=successful,
            failed_commands=total - successful,
            by_category=[
                CategoryCount(category=row["category"], count=int(row["count"]))
                for row in category_rows
            ],
            oldest_command=span["oldest"],
            newest_command=span["newest"],
        )

    def get_all(self) -> list[CommandRecord]:
        with db.storage_errors("read all"):
            rows = self.conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM commands ORDER BY timestamp ASC, id ASC"
            ).fetchall()
        return [CommandRecord.from_row(row) for row in rows]

    def count(self) -> int:
        with db.storage_errors("count"):
            return int(self.conn.execute("SELECT COUNT(*) FROM commands").fetchone()[0])
