from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from .. import db
from .types import CommandRecord, OrderBy, SearchQuery

if TYPE_CHECKING:
    from ._store import CommandStore

logger = logging.getLogger(__name__)

# The trigram tokenizer cannot match phrases shorter than one trigram.
MIN_INDEXED_PHRASE_CHARS = 3

TIER_INDEXED = "indexed"
TIER_SUBSTRING = "substring"


def quote_fts_phrase(text: str) -> str:
    """Quote ``text`` so FTS5 reads it as one literal phrase."""
    return '"' + text.replace('"', '""') + '"'


def select_text_tier(store: CommandStore, text: str) -> str:
    if len(text) < MIN_INDEXED_PHRASE_CHARS:
        return TIER_SUBSTRING
    if not store.text_index_available():
        logger.debug("command text index missing; scanning command text")
        return TIER_SUBSTRING
    return TIER_INDEXED


def search(store: CommandStore, query: SearchQuery) -> list[CommandRecord]:
    text = query.text or None
    if text is None:
        with db.storage_errors("search"):
            return _run(store, query, None)
    if select_text_tier(store, text) == TIER_INDEXED:
        try:
            return _run(store, query, _indexed_text_clause(text))
        except sqlite3.Error as exc:
            logger.debug("indexed search failed for %r; scanning command text", text, exc_info=exc)
    with db.storage_errors("search"):
        return _run(store, query, _substring_text_clause(text))


def _indexed_text_clause(text: str) -> tuple[str, list[Any]]:
    clause = f"id IN (SELECT rowid FROM {db.FTS_TABLE} WHERE {db.FTS_TABLE} MATCH ?)"
    return clause, [quote_fts_phrase(text)]


def _substring_text_clause(text: str) -> tuple[str, list[Any]]:
    return "instr(command, ?) > 0", [text]


def _filter_clauses(query: SearchQuery) -> tuple[list[str], list[Any]]:
    where: list[str] = []
    params: list[Any] = []
    if query.category:
        where.append("category = ?")
        params.append(query.category)
    if query.success_only is True:
        where.append("exit_code = 0")
    elif query.success_only is False:
        where.append("exit_code != 0")
    if query.working_dir:
        if query.recursive:
            base = query.working_dir.rstrip("/") or "/"
            where.append("(working_dir = ? OR working_dir LIKE ? ESCAPE '\\')")
            params.extend([base, f"{db.escape_like(base.rstrip('/'))}/%"])
        else:
            where.append("working_dir = ?")
            params.append(query.working_dir)
    return where, params


def _order_clause(order_by: OrderBy) -> str:
    if OrderBy(order_by) is OrderBy.TIMESTAMP:
        return "ORDER BY timestamp DESC, id DESC"
    return "ORDER BY usage_count DESC, timestamp DESC, id DESC"


def _run(
    store: CommandStore,
    query: SearchQuery,
    text_clause: tuple[str, list[Any]] | None,
) -> list[CommandRecord]:
    where, params = _filter_clauses(query)
    if text_clause is not None:
        clause, clause_params = text_clause
        where.append(clause)
        params.extend(clause_params)
    where_sql = f"WHERE {' AND '.join(where)}" if where else ""
    sql = f"""
        SELECT {", ".join(db.COLUMNS)}
        FROM commands
        {where_sql}
        {_order_clause(query.order_by)}
        LIMIT ?
    """
    params.append(max(int(query.limit), 0))
    rows = store.conn.execute(sql, params).fetchall()
    return [CommandRecord.from_row(row) for row in rows]
