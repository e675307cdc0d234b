"""MappingAdapter — persist store keys into any string mapping.

Each saved key is stored as JSON under prefix + key in a
MutableMapping[str, str]: a dict, a shelve.Shelf, a cache client wrapper.
Storage problems never reach the store: an unreadable or schema-invalid
entry is deleted and treated as absent, an unserializable value is simply
not saved.

    prefs = create_store({"theme": "light"}, adapter=MappingAdapter(shelf))
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, MutableMapping, Protocol

from slicefx.adapter import BaseAdapter

logger = logging.getLogger("slicefx.adapters")

_MISSING: Any = object()

_ENABLED = ("always", "never", "after-hydration")
_ON_DESTROY = ("cleanup", "ignore")


class SchemaLike(Protocol):
    def validate(self, data: Any) -> Any: ...


class MappingAdapter(BaseAdapter):
    """Restore saved keys on init and save them after every update.

    enabled:
        "always"           saved values replace the boot state in before_init
        "after-hydration"  saved values are applied through update() on open
        "never"            nothing is restored (updates are still saved)
    on_destroy:
        "cleanup"          saved keys are removed when the scope closes
        "ignore"           saved keys outlive the scope
    """

    def __init__(
        self,
        storage: MutableMapping[str, str] | None,
        *,
        prefix: str = "__ctn_",
        enabled: str = "always",
        on_destroy: str = "ignore",
        raw_limit: int = 1024 * 100,
        schema: SchemaLike | None = None,
        save_keys: Iterable[str] | None = None,
    ) -> None:
        if enabled not in _ENABLED:
            raise ValueError(f"enabled must be one of {_ENABLED}, got {enabled!r}")
        if on_destroy not in _ON_DESTROY:
            raise ValueError(f"on_destroy must be one of {_ON_DESTROY}, got {on_destroy!r}")
        self.storage = storage
        self.prefix = prefix
        self.enabled = enabled
        self.on_destroy = on_destroy
        self.raw_limit = raw_limit
        self.schema = schema
        self.save_keys = frozenset(save_keys) if save_keys is not None else None

    def _saves(self, key: str) -> bool:
        return self.save_keys is None or key in self.save_keys

    def _valid(self, data: dict) -> bool:
        if self.schema is None:
            return True
        try:
            return self.schema.validate(data) is not False
        except Exception:
            return False

    def _read(self, key: str) -> Any:
        if self.storage is None or not self._saves(key):
            return _MISSING
        storage_key = self.prefix + key
        raw = self.storage.get(storage_key)
        if not raw:
            return _MISSING
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable saved value for %r", key)
            self.storage.pop(storage_key, None)
            return _MISSING
        if not self._valid({key: value}):
            logger.warning("Discarding saved value for %r rejected by schema", key)
            self.storage.pop(storage_key, None)
            return _MISSING
        return value

    def before_init(self, state: dict) -> dict:
        if self.enabled == "always":
            for key in list(state):
                value = self._read(key)
                if value is not _MISSING:
                    state[key] = value
        return state

    def after_init(self, store, update: Callable) -> None:
        if self.enabled == "after-hydration":
            for key in list(store):
                value = self._read(key)
                if value is not _MISSING:
                    update({key: value})
        return None

    def after_update(self, store, part) -> None:
        if self.storage is None:
            return
        for key, value in part.items():
            if not self._saves(key):
                continue
            try:
                raw = json.dumps(value)
            except (TypeError, ValueError):
                logger.warning("Not saving %r: value is not JSON serializable", key)
                continue
            if len(raw) + len(self.prefix) + len(key) < self.raw_limit:
                self.storage[self.prefix + key] = raw

    def before_destroy(self, store) -> None:
        if self.storage is None or self.on_destroy != "cleanup":
            return
        for key in list(store):
            if self._saves(key):
                self.storage.pop(self.prefix + key, None)
