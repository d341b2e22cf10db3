from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/cmdmem/config.json").expanduser()

DEFAULT_REDACT_PATTERNS = ["password", "token", "secret", "api_key", "apikey"]

CONFIG_ENV_OVERRIDES = {
    "db_path": "CMDMEM_DB_PATH",
    "redact_enabled": "CMDMEM_REDACT_ENABLED",
    "redact_patterns": "CMDMEM_REDACT_PATTERNS",
    "min_duration_ms": "CMDMEM_MIN_DURATION_MS",
}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("CMDMEM_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


@dataclass
class CmdmemConfig:
    db_path: str = "~/.cmdmem/history.sqlite"
    redact_enabled: bool = True
    redact_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_REDACT_PATTERNS))
    # Commands that finish faster than this are not recorded.
    min_duration_ms: int = 0

    def database_path(self) -> Path:
        return Path(self.db_path).expanduser()


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def _coerce_str_list(value: object, *, key: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, list):
        items: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
        return items
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    warnings.warn(f"Invalid list for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return None


def load_config(path: Path | None = None) -> CmdmemConfig:
    cfg = CmdmemConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = read_config_file(config_path)
        except (OSError, ValueError) as exc:
            warnings.warn(f"Ignoring config {config_path}: {exc}", RuntimeWarning, stacklevel=2)
            data = {}
        cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    if cfg.min_duration_ms < 0:
        cfg.min_duration_ms = 0
    return cfg


def _apply_dict(cfg: CmdmemConfig, data: dict[str, Any]) -> CmdmemConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key == "min_duration_ms":
            cfg.min_duration_ms = _parse_int(value, cfg.min_duration_ms, key=key)
            continue
        if key == "redact_enabled":
            cfg.redact_enabled = _coerce_bool(value, cfg.redact_enabled, key=key)
            continue
        if key == "redact_patterns":
            parsed = _coerce_str_list(value, key=key)
            if parsed is not None:
                cfg.redact_patterns = parsed
            continue
        if key == "db_path":
            if isinstance(value, str) and value.strip():
                cfg.db_path = value.strip()
            else:
                warnings.warn(f"Invalid path for {key}: {value!r}", RuntimeWarning, stacklevel=2)
            continue
    return cfg


def _apply_env(cfg: CmdmemConfig) -> CmdmemConfig:
    env = {key: os.getenv(name) for key, name in CONFIG_ENV_OVERRIDES.items()}
    cfg.db_path = env["db_path"] or cfg.db_path
    cfg.redact_enabled = _parse_bool(env["redact_enabled"], cfg.redact_enabled)
    patterns = _coerce_str_list(env["redact_patterns"], key="redact_patterns")
    if patterns is not None:
        cfg.redact_patterns = patterns
    cfg.min_duration_ms = _parse_int(
        env["min_duration_ms"], cfg.min_duration_ms, key="min_duration_ms"
    )
    return cfg
