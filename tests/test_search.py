import sqlite3
from pathlib import Path

import pytest

from cmdmem import db
from cmdmem.store import CommandRecord, CommandStore, OrderBy, SearchQuery, quote_fts_phrase
from cmdmem.store import search as store_search

COMMANDS = [
    ("echo ÄÖÜ straße", "/home/dev", 0, "other"),
    ("ping 192.168.1.1", "/home/dev", 0, "network"),
    ("ssh admin@192.168.1.10", "/home/dev", 0, "network"),
    ("curl https://example.com/api?x=1&y=2", "/home/dev/web", 0, "network"),
    ('echo "hello world"', "/home/dev/web", 0, "other"),
    ("rm *.txt", "/home/dev/web/tmp", 1, "file"),
    ("ls *.txt", "/home/dev/project2", 0, "file"),
    ("git status", "/home/dev/web", 0, "git"),
    ("GIT_PAGER=cat git log", "/home/dev/project2", 0, "git"),
    ("echo 50%_off", "/home/dev", 0, "other"),
    ("ls -la", "/home/dev", 0, "file"),
]

QUERIES = [
    "192.168.1.1",
    "https://example.com/api?x=1",
    '"hello',
    "*.txt",
    "git",
    "GIT",
    "50%_",
    "ls",
    "-la",
    "AND",
    "äöü",
    "ÄÖÜ",
    "straße",
    "STRASSE",
    "nothing-matches-this",
]


@pytest.fixture
def store(tmp_path: Path) -> CommandStore:
    store = CommandStore(tmp_path / "history.sqlite")
    for index, (command, working_dir, exit_code, category) in enumerate(COMMANDS):
        store.insert(
            CommandRecord.new(
                command,
                exit_code=exit_code,
                duration_ms=5,
                working_dir=working_dir,
                category=category,
                timestamp=f"2024-01-01T00:00:{index:02d}+00:00",
            )
        )
    return store


def _commands(results: list[CommandRecord]) -> set[str]:
    return {r.command for r in results}


def _drop_text_index(store: CommandStore) -> None:
    store.conn.executescript(
        f"""
        DROP TRIGGER IF EXISTS commands_ai;
        DROP TRIGGER IF EXISTS commands_ad;
        DROP TRIGGER IF EXISTS commands_au;
        DROP TABLE IF EXISTS {db.FTS_TABLE};
        """
    )


def test_quote_fts_phrase_doubles_quotes() -> None:
    assert quote_fts_phrase("git log") == '"git log"'
    assert quote_fts_phrase('say "hi"') == '"say ""hi"""'


def test_special_characters_match_literally(store: CommandStore) -> None:
    assert _commands(store.search(SearchQuery(text="192.168.1.1"))) == {
        "ping 192.168.1.1",
        "ssh admin@192.168.1.10",
    }
    assert _commands(store.search(SearchQuery(text="example.com/api?x=1&y"))) == {
        "curl https://example.com/api?x=1&y=2"
    }
    assert _commands(store.search(SearchQuery(text='"hello world"'))) == {'echo "hello world"'}
    assert _commands(store.search(SearchQuery(text="*.txt"))) == {"rm *.txt", "ls *.txt"}
    assert _commands(store.search(SearchQuery(text="50%_"))) == {"echo 50%_off"}


def test_search_is_case_sensitive(store: CommandStore) -> None:
    assert _commands(store.search(SearchQuery(text="git"))) == {
        "git status",
        "GIT_PAGER=cat git log",
    }
    assert _commands(store.search(SearchQuery(text="GIT"))) == {"GIT_PAGER=cat git log"}
    assert _commands(store.search(SearchQuery(text="ÄÖÜ"))) == {"echo ÄÖÜ straße"}
    assert store.search(SearchQuery(text="äöü")) == []


def test_non_ascii_phrase_matches_same_without_index(store: CommandStore) -> None:
    for text in ("äöü", "ÄÖÜ", "straße"):
        before = _commands(store.search(SearchQuery(text=text)))
        assert before == (set() if text == "äöü" else {"echo ÄÖÜ straße"})
    _drop_text_index(store)
    assert store.search(SearchQuery(text="äöü")) == []
    assert _commands(store.search(SearchQuery(text="ÄÖÜ"))) == {"echo ÄÖÜ straße"}


def test_case_insensitive_index_is_rebuilt(tmp_path: Path) -> None:
    db_path = tmp_path / "history.sqlite"
    with CommandStore(db_path) as store:
        store.insert(
            CommandRecord.new(
                "echo ÄÖÜ", exit_code=0, duration_ms=1, working_dir="/home/dev", category="other"
            )
        )
        _drop_text_index(store)
        try:
            store.conn.execute(
                f"CREATE VIRTUAL TABLE {db.FTS_TABLE} USING fts5("
                "command, content='commands', content_rowid='id', tokenize='trigram')"
            )
        except sqlite3.OperationalError:
            pytest.skip("SQLite build lacks the FTS5 trigram tokenizer")
        store.conn.commit()

    with CommandStore(db_path) as reopened:
        sql = reopened.conn.execute(
            "SELECT sql FROM sqlite_master WHERE name = ?", (db.FTS_TABLE,)
        ).fetchone()[0]
        assert db.FTS_TOKENIZER in sql
        assert reopened.search(SearchQuery(text="äöü")) == []
        assert _commands(reopened.search(SearchQuery(text="ÄÖÜ"))) == {"echo ÄÖÜ"}


def test_short_phrases_use_substring_tier(store: CommandStore) -> None:
    assert store_search.select_text_tier(store, "ls") == store_search.TIER_SUBSTRING
    expected_tier = (
        store_search.TIER_INDEXED if store.text_index_available() else store_search.TIER_SUBSTRING
    )
    assert store_search.select_text_tier(store, "git") == expected_tier
    assert _commands(store.search(SearchQuery(text="ls"))) == {"ls *.txt", "ls -la"}


def test_substring_tier_returns_same_results(store: CommandStore) -> None:
    indexed = {q: _commands(store.search(SearchQuery(text=q, limit=100))) for q in QUERIES}

    _drop_text_index(store)
    assert not store.text_index_available()
    substring = {q: _commands(store.search(SearchQuery(text=q, limit=100))) for q in QUERIES}

    assert indexed == substring


def test_indexed_failure_falls_back_to_substring(
    store: CommandStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    expected = _commands(store.search(SearchQuery(text="*.txt", success_only=True)))

    monkeypatch.setattr(store_search, "select_text_tier", lambda _store, _text: "indexed")
    monkeypatch.setattr(
        store_search,
        "_indexed_text_clause",
        lambda text: ("no_such_column MATCH ?", [text]),
    )

    assert _commands(store.search(SearchQuery(text="*.txt", success_only=True))) == expected
    assert expected == {"ls *.txt"}


def test_filters_combine(store: CommandStore) -> None:
    assert _commands(store.search(SearchQuery(text="txt", success_only=False))) == {"rm *.txt"}
    assert _commands(store.search(SearchQuery(category="git"))) == {
        "git status",
        "GIT_PAGER=cat git log",
    }
    assert _commands(
        store.search(SearchQuery(text="git", working_dir="/home/dev/web"))
    ) == {"git status"}


def test_directory_filter_exact_and_recursive(store: CommandStore) -> None:
    exact = store.search(SearchQuery(working_dir="/home/dev/web", limit=100))
    assert {r.working_dir for r in exact} == {"/home/dev/web"}

    recursive = store.search(
        SearchQuery(working_dir="/home/dev/web/", recursive=True, limit=100)
    )
    assert {r.working_dir for r in recursive} == {"/home/dev/web", "/home/dev/web/tmp"}

    # Prefix matches stop at path boundaries.
    project = store.search(SearchQuery(working_dir="/home/dev/project", recursive=True))
    assert project == []


def test_recent_orders_newest_first_and_limits(store: CommandStore) -> None:
    results = store.recent(limit=3)
    assert [r.command for r in results] == ["ls -la", "echo 50%_off", "GIT_PAGER=cat git log"]
    assert store.recent(limit=0) == []


def test_top_orders_by_usage(store: CommandStore) -> None:
    git_status = store.find_duplicate("git status", "/home/dev/web")
    assert git_status is not None and git_status.id is not None
    store.update_usage(git_status.id, 9, git_status.last_used)

    top = store.top(limit=2)
    assert top[0].command == "git status"
    assert top[0].usage_count == 9
    assert len(top) == 2


def test_by_category_and_relevance_order(store: CommandStore) -> None:
    assert {r.command for r in store.by_category("file")} == {"rm *.txt", "ls *.txt", "ls -la"}
    results = store.search(SearchQuery(text="ls", order_by=OrderBy.RELEVANCE))
    assert [r.command for r in results] == ["ls -la", "ls *.txt"]


def test_text_index_tracks_new_rows(store: CommandStore) -> None:
    store.insert(
        CommandRecord.new(
            "kubectl get pods",
            exit_code=0,
            duration_ms=1,
            working_dir="/home/dev",
            category="kubernetes",
        )
    )
    assert _commands(store.search(SearchQuery(text="get pods"))) == {"kubectl get pods"}


def test_ip_and_url_phrases_match_exactly_once(tmp_path: Path) -> None:
    store = CommandStore(tmp_path / "history.sqlite")
    for command in ("ssh user@10.104.113.39", "curl https://api.github.com/x", "ls"):
        store.insert(
            CommandRecord.new(
                command, exit_code=0, duration_ms=1, working_dir="/home/dev", category="other"
            )
        )

    assert [r.command for r in store.search(SearchQuery(text="10.104.113.39"))] == [
        "ssh user@10.104.113.39"
    ]
    assert [r.command for r in store.search(SearchQuery(text="https://api.github.com"))] == [
        "curl https://api.github.com/x"
    ]
    assert store.search(SearchQuery(text='echo "unterminated')) == []
