"""StoreScope — one isolated, mounted instance of a store.

Construction seeds a fresh registry, runs the adapter's before_init,
validates the initial state and runs store_will_mount. open() and close()
bracket the rest of the lifetime:

    with store.provider() as handle:
        handle.update({"count": 1})

Two scopes built from the same Store share nothing.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from slicefx._registry import Registry
from slicefx.exceptions import InvalidStoreError
from slicefx.handle import StoreHandle
from slicefx.lifecycle import HookRunner
from slicefx.options import StoreOptions


class StoreScope:
    def __init__(
        self,
        value: Mapping[str, Any],
        options: StoreOptions | None = None,
        *,
        initial: Mapping[str, Any] | None = None,
        interactive: bool = True,
    ) -> None:
        options = options or StoreOptions()
        # Frozen data observers fall back to while disabled or not hydrated.
        # It is the store's configured data, never the per-scope value.
        self.initial: Mapping[str, Any] = MappingProxyType(dict(value if initial is None else initial))

        state = dict(value)
        if options.adapter is not None:
            state = dict(options.adapter.before_init(state))
        if options.validate is not None and not options.validate(state):
            raise InvalidStoreError("Invalid initial store data")

        self._registry = Registry(state)
        self.handle = StoreHandle(self._registry, validate=options.validate, adapter=options.adapter)
        self._runner = HookRunner(options.lifecycle_hooks, options.adapter)
        self._opened = False
        self._closed = False

        # Non-interactive scopes (server rendering, snapshots) skip will-mount.
        if interactive:
            self._runner.will_mount(self.handle)

    @property
    def store(self):
        return self.handle.store

    @property
    def opened(self) -> bool:
        return self._opened

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> StoreHandle:
        """Run did-mount hooks once and mark the scope hydrated."""
        if self._closed:
            raise RuntimeError("StoreScope is closed")
        if not self._opened:
            self._opened = True
            self._runner.did_mount(self.handle)
            self.handle.mounted = True
        return self.handle

    def close(self) -> None:
        """Run unmount hooks and cleanups, then release every slot. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._runner.will_unmount(self.handle)
        finally:
            self.handle.mounted = False
            self._registry.clear()

    def __enter__(self) -> StoreHandle:
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open" if self._opened else "constructed"
        return f"StoreScope({state}, {self._registry.snapshot()!r})"
