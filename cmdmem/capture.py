from __future__ import annotations

import logging
import os
from collections.abc import Callable

from .categories import Categorizer
from .config import CmdmemConfig
from .errors import NotFound
from .redaction import RedactionEngine
from .store import CommandRecord, CommandStore

logger = logging.getLogger(__name__)

UNKNOWN_WORKING_DIR = "/unknown"

CAPTURE_EMPTY = "empty"
CAPTURE_TOO_FAST = "too_fast"
CAPTURE_REDACTED = "redacted"
CAPTURE_INSERTED = "inserted"
CAPTURE_INCREMENTED = "incremented"


def current_working_directory() -> str:
    return os.getcwd()


class CommandCapture:
    """Turns one finished shell command into at most one store mutation."""

    def __init__(
        self,
        store: CommandStore,
        *,
        redactor: RedactionEngine | None = None,
        categorizer: Categorizer | None = None,
        min_duration_ms: int = 0,
        cwd_resolver: Callable[[], str] = current_working_directory,
    ):
        self.store = store
        self.redactor = redactor or RedactionEngine()
        self.categorizer = categorizer or Categorizer()
        self.min_duration_ms = min_duration_ms
        self.cwd_resolver = cwd_resolver

    @classmethod
    def from_config(cls, config: CmdmemConfig, store: CommandStore) -> CommandCapture:
        # Raises PatternFailure before anything is captured.
        redactor = RedactionEngine(config.redact_patterns, enabled=config.redact_enabled)
        return cls(store, redactor=redactor, min_duration_ms=config.min_duration_ms)

    def resolve_working_dir(self) -> str:
        try:
            working_dir = self.cwd_resolver()
        except OSError:
            return UNKNOWN_WORKING_DIR
        return working_dir or UNKNOWN_WORKING_DIR

    def capture(self, raw_command: str, exit_code: int, duration_ms: int) -> str:
        """Record ``raw_command`` and return what happened to it.

        Returns one of the ``CAPTURE_*`` outcomes. Storage errors propagate; the
        caller decides how to report them.
        """
        command = raw_command.strip()
        if not command:
            return CAPTURE_EMPTY
        # Clock skew in the shell hook can report a negative run time.
        duration_ms = max(int(duration_ms), 0)
        if duration_ms < self.min_duration_ms:
            return CAPTURE_TOO_FAST
        if self.redactor.should_redact(command):
            return CAPTURE_REDACTED

        working_dir = self.resolve_working_dir()
        category = self.categorizer.categorize(command)

        with self.store.write_section():
            existing = self.store.find_duplicate(command, working_dir)
            if existing is not None and existing.id is not None:
                try:
                    self.store.increment_usage(existing.id)
                except NotFound:
                    logger.warning(
                        "command %s vanished before its usage could be incremented", existing.id
                    )
                return CAPTURE_INCREMENTED
            record = CommandRecord.new(
                command,
                exit_code=exit_code,
                duration_ms=duration_ms,
                working_dir=working_dir,
                category=category,
            )
            self.store.insert(record)
        return CAPTURE_INSERTED
