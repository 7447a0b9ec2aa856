"""Case-insensitive property bag used by script nodes and world flag maps."""
from __future__ import annotations

from typing import Dict, Iterator, Mapping, MutableMapping, Tuple, TypeVar

from advscript.core.types import PropertyValue

V = TypeVar("V")


def is_blank(value: object) -> bool:
    """Return True when a property value counts as "not set"."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def fold_key(key: str) -> str:
    return key.casefold()


class CaseInsensitiveDict(MutableMapping[str, V]):
    """Ordered mapping whose string keys compare case-insensitively.

    The spelling of a key as it was first written is kept, so iteration and
    serialization reproduce the authored names while lookups ignore case.
    """

    def __init__(self, data: Mapping[str, V] | None = None, **kwargs: V) -> None:
        self._store: Dict[str, Tuple[str, V]] = {}
        if data is not None:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self, key: str, value: V) -> None:
        if not isinstance(key, str):
            raise TypeError("Property names must be strings.")
        folded = fold_key(key)
        existing = self._store.get(folded)
        original = existing[0] if existing is not None else key
        self._store[folded] = (original, value)

    def __getitem__(self, key: str) -> V:
        if not isinstance(key, str):
            raise KeyError(key)
        return self._store[fold_key(key)][1]

    def __delitem__(self, key: str) -> None:
        if not isinstance(key, str):
            raise KeyError(key)
        del self._store[fold_key(key)]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and fold_key(key) in self._store

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            other_folded = {
                fold_key(key): value for key, value in other.items() if isinstance(key, str)
            }
            if len(other_folded) != len(other):
                return False
            return {key: value for key, (_, value) in self._store.items()} == other_folded
        return NotImplemented

    def copy(self) -> "CaseInsensitiveDict[V]":
        return CaseInsensitiveDict(dict(self.items()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"


class PropertyBag(CaseInsensitiveDict[PropertyValue]):
    """Node property mapping restricted to None/bool/int/float/str values."""

    def __setitem__(self, key: str, value: PropertyValue) -> None:
        if value is not None and not isinstance(value, (bool, int, float, str)):
            raise TypeError(
                f"Property '{key}' must be None, bool, int, float or str, "
                f"not {type(value).__name__}."
            )
        super().__setitem__(key, value)

    def is_set(self, key: str) -> bool:
        """Return True when the property exists and is not blank."""
        return not is_blank(self.get(key))

    def copy(self) -> "PropertyBag":
        return PropertyBag(dict(self.items()))
