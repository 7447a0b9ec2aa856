"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
_DEFAULT_LOG_LEVEL = "WARNING"


def _is_windows() -> bool:
    return os.name == "nt"


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if _is_windows():
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "advscript"
        return Path.home() / "advscript"
    return Path.home() / ".config" / "advscript"


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def default_config() -> Dict[str, Any]:
    return {"debug_mode": False, "max_steps": None, "log_level": _DEFAULT_LOG_LEVEL}


def normalize_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Keep known keys with valid values; anything else falls back to the default."""
    config = default_config()
    if isinstance(raw.get("debug_mode"), bool):
        config["debug_mode"] = raw["debug_mode"]
    max_steps = raw.get("max_steps")
    if isinstance(max_steps, int) and not isinstance(max_steps, bool) and max_steps > 0:
        config["max_steps"] = max_steps
    log_level = raw.get("log_level")
    if isinstance(log_level, str) and log_level.upper() in LOG_LEVELS:
        config["log_level"] = log_level.upper()
    return config


def load_config(path: Path | None = None) -> Dict[str, Any]:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return default_config()
    except Exception:
        return default_config()
    if not isinstance(raw, dict):
        return default_config()
    return normalize_config(raw)


def save_config(config: Dict[str, Any], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = normalize_config(config)
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
