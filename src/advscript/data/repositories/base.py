"""Base repository implementation for JSON definition data."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Generic, TypeVar

from advscript.data.errors import DataValidationError
from advscript.data.json_loader import load_json
from advscript.data import paths

T = TypeVar("T")


class RepositoryBase(Generic[T]):
    """Common caching and loading behavior for repositories."""

    def __init__(self, filename: str, base_path: Path | str | None = None) -> None:
        self._filename = filename
        self._base_path = Path(base_path) if base_path is not None else None
        self._definitions: Dict[str, T] | None = None

    def _get_file_path(self) -> Path:
        definitions_dir = paths.get_definitions_path(self._base_path)
        return definitions_dir / self._filename

    def _load_raw(self) -> dict[str, object]:
        file_path = self._get_file_path()
        raw = load_json(file_path)
        if not isinstance(raw, dict):
            raise DataValidationError(f"Expected top-level object in {file_path}")
        return raw

    def _build(self, raw: dict[str, object]) -> Dict[str, T]:
        """Convert a raw dict into typed definitions."""
        raise NotImplementedError

    def _ensure_loaded(self) -> Dict[str, T]:
        if self._definitions is None:
            raw = self._load_raw()
            self._definitions = self._build(raw)
        return self._definitions

    def get(self, def_id: str) -> T:
        """Return a definition by exact id; raise KeyError when it is unknown."""
        definitions = self._ensure_loaded()
        try:
            return definitions[def_id]
        except KeyError as exc:
            raise KeyError(def_id) from exc

    def all(self) -> list[T]:
        """Return all definitions sorted deterministically by id."""
        definitions = self._ensure_loaded()
        return [definitions[key] for key in sorted(definitions.keys())]
