from __future__ import annotations

import re
from collections.abc import Iterable

from .config import DEFAULT_REDACT_PATTERNS
from .errors import PatternFailure


class RedactionEngine:
    """Decides whether a command is too sensitive to keep.

    Patterns are regular expressions matched case-insensitively anywhere in the
    command. A disabled engine never redacts.
    """

    def __init__(self, patterns: Iterable[str] = DEFAULT_REDACT_PATTERNS, enabled: bool = True):
        self.enabled = enabled
        self.patterns: list[re.Pattern[str]] = []
        for pattern in patterns:
            try:
                self.patterns.append(re.compile(pattern, re.IGNORECASE))
            except re.error as exc:
                raise PatternFailure(f"Invalid redaction pattern {pattern!r}: {exc}") from exc

    def should_redact(self, command: str) -> bool:
        if not self.enabled:
            return False
        return any(pattern.search(command) for pattern in self.patterns)
