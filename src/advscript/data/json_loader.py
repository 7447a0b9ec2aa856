"""Low-level JSON helpers for catalog, script and world files."""
from __future__ import annotations

import json
from pathlib import Path

from .errors import DataLoadError


def load_json(path: Path) -> object:
    """Load JSON from disk and raise DataLoadError on failure."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"Data file not found: {path}") from exc
    except OSError as exc:
        raise DataLoadError(f"Unable to read data file: {path}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"Invalid JSON in {path}: {exc}") from exc


def write_json(path: Path, payload: object) -> None:
    """Write a JSON payload, creating parent directories as needed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise DataLoadError(f"Unable to write data file: {path}") from exc
