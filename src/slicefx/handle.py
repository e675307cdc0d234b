"""StoreHandle — the update dispatcher of one scope.

update() writes a partial state and notifies exactly the listeners of keys
whose value was replaced by a different object. Change detection is by
identity: callers produce new objects for changed data and never mutate a
stored value in place.

Dispatch is two-phase. Every changed slot is written first, then listeners
run key by key in the order of the partial, each key's listeners in
registration order. Listeners may call update() again; the nested call is
dispatched synchronously before the outer call continues.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Union

from slicefx._registry import UNSET, ListenerEntry, Registry, Slot
from slicefx.adapter import AdapterBridge
from slicefx.enabled import Enabled, EnabledLike, is_disabled, resolve_gate
from slicefx.options import Validate
from slicefx.view import StoreView, _check_key

logger = logging.getLogger("slicefx.handle")

Partial = Union[Mapping[str, Any], Callable[[StoreView], Mapping[str, Any]]]
Listener = Callable[[Any], None]


class StoreHandle:
    """Read view plus update/listen/unlisten for one registry."""

    def __init__(
        self,
        registry: Registry,
        *,
        validate: Validate | None = None,
        adapter: AdapterBridge | None = None,
    ) -> None:
        self._registry = registry
        self._validate = validate
        self._adapter = adapter
        self.store = StoreView(registry)
        # Set by the owning scope once it is opened.
        self.mounted = False

    def update(self, part: Partial) -> None:
        """Apply a partial state, or a function of the view returning one.

        A callable value inside the partial is applied to the key's current
        value (None if unset). If validate rejects the would-be state the
        whole update is dropped without raising.
        """
        view = self.store
        if callable(part):
            part = part(view)
        if self._adapter is not None:
            part = self._adapter.before_update(view, part)

        resolved: dict[str, Any] = {}
        for key, value in part.items():
            _check_key(key)
            if callable(value):
                current = self._registry.value(key)
                value = value(None if current is UNSET else current)
            resolved[key] = value

        if self._validate is not None:
            candidate = self._registry.snapshot()
            candidate.update(resolved)
            if not self._validate(candidate):
                logger.debug("Update rejected by validate: %s", list(resolved))
                return

        changed = False
        pending: list[tuple[Slot, ListenerEntry, Any]] = []
        for key, value in resolved.items():
            slot = self._registry.slot(key)
            if slot.value is value:
                continue
            slot.value = value
            changed = True
            pending.extend((slot, entry, value) for entry in slot.listeners)

        for slot, entry, value in pending:
            # Entries removed by an earlier listener in this dispatch are skipped.
            if entry not in slot.listeners:
                continue
            if not is_disabled(entry.enabled, view):
                entry.callback(value)

        if changed and self._adapter is not None:
            self._adapter.after_update(view, resolved)

    def listen(self, key: str, callback: Listener, *, enabled: EnabledLike = Enabled.ALWAYS) -> Callable[[], None]:
        """Register callback for key. Returns an idempotent unlisten thunk.

        enabled gates each notification: "never" suppresses it,
        "after-hydration" suppresses it until the scope is opened, and a
        predicate is evaluated against the live view on every dispatch.
        """
        _check_key(key)
        slot = self._registry.slot(key)
        entry = ListenerEntry(callback, resolve_gate(enabled, self._is_mounted))
        slot.listeners.append(entry)

        def _unlisten() -> None:
            try:
                slot.listeners.remove(entry)
            except ValueError:
                pass  # already removed or registry released

        return _unlisten

    def unlisten(self, key: str, callback: Listener) -> None:
        """Remove the first registration of callback for key, if any.

        Callbacks are matched with ==, not `is`: every `obj.method` access
        builds a new bound method object, and bound methods compare equal
        when they wrap the same function and instance. Plain functions and
        lambdas only equal themselves, so for them this is an identity match.
        """
        slot = self._registry.find(key)
        if slot is None:
            return
        for index, entry in enumerate(slot.listeners):
            if entry.callback == callback:
                del slot.listeners[index]
                return

    def _is_mounted(self) -> bool:
        return self.mounted

    def __repr__(self) -> str:
        return f"StoreHandle({self.store.to_dict()!r})"
