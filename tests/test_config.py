import json
from pathlib import Path

import pytest

from cmdmem.config import (
    DEFAULT_REDACT_PATTERNS,
    get_config_path,
    load_config,
    read_config_file,
)


def _write_config(data: dict) -> Path:
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data))
    return config_path


def test_defaults_without_config_file() -> None:
    config = load_config()
    assert config.database_path() == Path("~/.cmdmem/history.sqlite").expanduser()
    assert config.redact_enabled is True
    assert config.redact_patterns == DEFAULT_REDACT_PATTERNS
    assert config.min_duration_ms == 0


def test_config_path_follows_env(tmp_path: Path) -> None:
    assert get_config_path() == tmp_path / "config" / "config.json"
    assert get_config_path(tmp_path / "other.json") == tmp_path / "other.json"


def test_read_config_file_rejects_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")
    with pytest.raises(ValueError, match="invalid config json"):
        read_config_file(config_path)


def test_read_config_file_rejects_non_object(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("[1, 2]")
    with pytest.raises(ValueError, match="config must be an object"):
        read_config_file(config_path)


def test_write_then_load_config(tmp_path: Path) -> None:
    _write_config(
        {
            "db_path": str(tmp_path / "cmds.sqlite"),
            "redact_enabled": "false",
            "redact_patterns": ["aws_secret", " "],
            "min_duration_ms": "250",
            "unknown_key": 1,
        }
    )

    config = load_config()
    assert config.database_path() == tmp_path / "cmds.sqlite"
    assert config.redact_enabled is False
    assert config.redact_patterns == ["aws_secret"]
    assert config.min_duration_ms == 250


def test_env_overrides_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _write_config({"min_duration_ms": 10, "redact_patterns": ["a"]})
    monkeypatch.setenv("CMDMEM_DB_PATH", str(tmp_path / "env.sqlite"))
    monkeypatch.setenv("CMDMEM_REDACT_PATTERNS", "passwd, private_key")
    monkeypatch.setenv("CMDMEM_MIN_DURATION_MS", "75")
    monkeypatch.setenv("CMDMEM_REDACT_ENABLED", "0")

    config = load_config()

    assert config.database_path() == tmp_path / "env.sqlite"
    assert config.redact_patterns == ["passwd", "private_key"]
    assert config.min_duration_ms == 75
    assert config.redact_enabled is False


def test_invalid_config_file_warns_and_uses_defaults() -> None:
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text("{broken")

    with pytest.warns(RuntimeWarning, match="Ignoring config"):
        config = load_config()

    assert config.min_duration_ms == 0


def test_unreadable_config_path_warns_and_uses_defaults() -> None:
    get_config_path().mkdir(parents=True)

    with pytest.warns(RuntimeWarning, match="Ignoring config"):
        config = load_config()

    assert config.redact_patterns == DEFAULT_REDACT_PATTERNS


def test_invalid_values_warn_and_keep_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _write_config({"min_duration_ms": "soon", "db_path": 3})

    with pytest.warns(RuntimeWarning):
        config = load_config()

    assert config.min_duration_ms == 0
    assert config.db_path == "~/.cmdmem/history.sqlite"


def test_negative_min_duration_is_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CMDMEM_MIN_DURATION_MS", "-20")
    assert load_config().min_duration_ms == 0
