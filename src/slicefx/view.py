"""StoreView — read-only live view over a Registry.

Reads return the unboxed current value, so callers never see Slots:

    view["count"]      # KeyError if never written
    view.get("count")  # None if never written
    view.count         # AttributeError if never written
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterator

from slicefx._registry import UNSET, Registry


def _check_key(key: object) -> None:
    if not isinstance(key, str):
        raise TypeError(f"Key must be a string, received {type(key).__name__}")


class StoreView(Mapping):
    """Read-only Mapping[str, Any] that always reflects the live registry."""

    __slots__ = ("_registry",)

    def __init__(self, registry: Registry) -> None:
        object.__setattr__(self, "_registry", registry)

    def __getitem__(self, key: str) -> Any:
        _check_key(key)
        value = self._registry.value(key)
        if value is UNSET:
            raise KeyError(key)
        return value

    def get(self, key: str, default: Any = None) -> Any:
        _check_key(key)
        value = self._registry.value(key)
        return default if value is UNSET else value

    def __contains__(self, key: object) -> bool:
        _check_key(key)
        return self._registry.value(key) is not UNSET

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._registry.keys()))

    def __len__(self) -> int:
        return sum(1 for _ in self._registry.keys())

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name == "_registry":
            raise AttributeError(name)
        value = self._registry.value(name)
        if value is UNSET:
            raise AttributeError(f"store has no key {name!r}")
        return value

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("StoreView is read-only; use update()")

    def to_dict(self) -> dict[str, Any]:
        """Shallow copy of the current state."""
        return self._registry.snapshot()

    def __repr__(self) -> str:
        return f"StoreView({self._registry.snapshot()!r})"
