from __future__ import annotations

from ._store import CommandStore
from .search import quote_fts_phrase
from .types import CategoryCount, CommandRecord, OrderBy, SearchQuery, Stats

__all__ = [
    "CategoryCount",
    "CommandRecord",
    "CommandStore",
    "OrderBy",
    "SearchQuery",
    "Stats",
    "quote_fts_phrase",
]
