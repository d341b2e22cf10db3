from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import InvalidSnapshot


def now_iso() -> str:
    return dt.datetime.now(dt.UTC).isoformat(timespec="microseconds")


def normalize_timestamp(value: str) -> str:
    """Return ``value`` as a UTC ISO-8601 string.

    Naive timestamps are taken to be UTC. Raises ``ValueError`` for text that is
    not ISO-8601.
    """
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed.astimezone(dt.UTC).isoformat(timespec="microseconds")


@dataclass
class CommandRecord:
    command: str
    timestamp: str
    exit_code: int
    duration_ms: int
    working_dir: str
    category: str
    usage_count: int = 1
    last_used: str = ""
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.last_used:
            self.last_used = self.timestamp

    @classmethod
    def new(
        cls,
        command: str,
        *,
        exit_code: int,
        duration_ms: int,
        working_dir: str,
        category: str,
        timestamp: str | None = None,
    ) -> CommandRecord:
        created_at = timestamp or now_iso()
        return cls(
            command=command,
            timestamp=created_at,
            exit_code=exit_code,
            duration_ms=duration_ms,
            working_dir=working_dir,
            category=category,
            usage_count=1,
            last_used=created_at,
        )

    @classmethod
    def from_row(cls, row: Any) -> CommandRecord:
        return cls(
            id=int(row["id"]),
            command=row["command"],
            timestamp=row["timestamp"],
            exit_code=int(row["exit_code"]),
            duration_ms=int(row["duration_ms"]),
            working_dir=row["working_dir"],
            category=row["category"],
            usage_count=int(row["usage_count"]),
            last_used=row["last_used"],
        )

    @classmethod
    def from_dict(cls, data: Any) -> CommandRecord:
        """Build a record from its snapshot shape, ignoring the source ``id``."""
        if not isinstance(data, dict):
            raise InvalidSnapshot(f"command entry must be an object, got {type(data).__name__}")
        try:
            command = str(data["command"]).strip()
            timestamp = normalize_timestamp(str(data["timestamp"]))
            last_used_raw = data.get("last_used") or data["timestamp"]
            record = cls(
                command=command,
                timestamp=timestamp,
                exit_code=int(data["exit_code"]),
                duration_ms=int(data["duration_ms"]),
                working_dir=str(data["working_dir"]),
                category=str(data.get("category") or "other"),
                usage_count=int(data.get("usage_count", 1)),
                last_used=normalize_timestamp(str(last_used_raw)),
            )
        except KeyError as exc:
            raise InvalidSnapshot(f"command entry missing field {exc.args[0]!r}") from exc
        except (TypeError, ValueError) as exc:
            raise InvalidSnapshot(f"invalid command entry: {exc}") from exc
        if not record.command:
            raise InvalidSnapshot("command entry has empty command text")
        if record.usage_count < 1:
            raise InvalidSnapshot(f"invalid usage_count {record.usage_count} for {command!r}")
        return record

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "command": self.command,
            "timestamp": self.timestamp,
            "exit_code": self.exit_code,
            "duration_ms": self.duration_ms,
            "working_dir": self.working_dir,
            "category": self.category,
            "usage_count": self.usage_count,
            "last_used": self.last_used,
        }

    def is_success(self) -> bool:
        return self.exit_code == 0

    def status_symbol(self) -> str:
        return "✓" if self.is_success() else "✗"

    def duration_display(self) -> str:
        if self.duration_ms < 1000:
            return f"{self.duration_ms}ms"
        if self.duration_ms < 60_000:
            return f"{self.duration_ms / 1000:.1f}s"
        minutes, remainder = divmod(self.duration_ms, 60_000)
        return f"{minutes}m{remainder // 1000}s"


@dataclass
class CategoryCount:
    category: str
    count: int


@dataclass
class Stats:
    total_commands: int
    successful_commands: int
    failed_commands: int
    by_category: list[CategoryCount] = field(default_factory=list)
    oldest_command: str | None = None
    newest_command: str | None = None

    @property
    def success_rate(self) -> float:
        """Percentage of successful commands; 0.0 for an empty store."""
        if self.total_commands == 0:
            return 0.0
        return self.successful_commands / self.total_commands * 100.0


class OrderBy(str, Enum):
    TIMESTAMP = "timestamp"
    USAGE_COUNT = "usage_count"
    # No scoring is done; relevance sorts like USAGE_COUNT.
    RELEVANCE = "relevance"


@dataclass
class SearchQuery:
    text: str | None = None
    category: str | None = None
    success_only: bool | None = None
    working_dir: str | None = None
    recursive: bool = False
    limit: int = 20
    order_by: OrderBy = OrderBy.TIMESTAMP
