"""Adapter bridge — persistence and server-snapshot collaborators.

An adapter is any object implementing some of:

    get_server_snapshot(initial, *context) -> state | awaitable
    before_init(state) -> state
    after_init(store, update) -> None | cleanup(store)
    before_update(store, part) -> part
    after_update(store, part) -> None
    before_destroy(store) -> None

prepare_store() takes get_server_snapshot out and wraps the rest in an
AdapterBridge, so scopes only ever see the interactive hooks.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping

from slicefx.options import StoreOptions


class BaseAdapter:
    """Pass-through adapter. Subclass and override the hooks you need."""

    def before_init(self, state: dict) -> dict:
        return state

    def after_init(self, store, update) -> Callable | None:
        return None

    def before_update(self, store, part: Mapping) -> Mapping:
        return part

    def after_update(self, store, part: Mapping) -> None:
        return None

    def before_destroy(self, store) -> None:
        return None


class AdapterBridge(BaseAdapter):
    """Exposes only the interactive hooks of a wrapped adapter."""

    __slots__ = ("_adapter",)

    def __init__(self, adapter: Any) -> None:
        self._adapter = adapter

    @property
    def wrapped(self) -> Any:
        return self._adapter

    def _hook(self, name: str) -> Callable | None:
        return getattr(self._adapter, name, None)

    def before_init(self, state: dict) -> dict:
        hook = self._hook("before_init")
        return state if hook is None else hook(state)

    def after_init(self, store, update) -> Callable | None:
        hook = self._hook("after_init")
        return None if hook is None else hook(store, update)

    def before_update(self, store, part: Mapping) -> Mapping:
        hook = self._hook("before_update")
        return part if hook is None else hook(store, part)

    def after_update(self, store, part: Mapping) -> None:
        hook = self._hook("after_update")
        if hook is not None:
            hook(store, part)

    def before_destroy(self, store) -> None:
        hook = self._hook("before_destroy")
        if hook is not None:
            hook(store)

    def __repr__(self) -> str:
        return f"AdapterBridge({self._adapter!r})"


def bridge(adapter: Any) -> AdapterBridge | None:
    if adapter is None or isinstance(adapter, AdapterBridge):
        return adapter
    return AdapterBridge(adapter)


@dataclass(frozen=True)
class PreparedStore:
    initial: Mapping[str, Any]
    options: StoreOptions
    get_store: Callable[..., Any]


def prepare_store(initial: Mapping[str, Any], options: StoreOptions | None = None) -> PreparedStore:
    """Split the server-snapshot hook off the adapter.

    get_store(*context) returns the adapter's server snapshot for the given
    request context, or the initial data when there is no such hook. The
    returned options carry a bridged adapter without get_server_snapshot.
    """
    options = options or StoreOptions()
    frozen = MappingProxyType(dict(initial))
    adapter = options.adapter
    raw = adapter.wrapped if isinstance(adapter, AdapterBridge) else adapter
    get_server_snapshot = getattr(raw, "get_server_snapshot", None)

    if get_server_snapshot is not None:
        def get_store(*context: Any) -> Any:
            return get_server_snapshot(dict(frozen), *context)
    else:
        def get_store(*context: Any) -> Any:
            return frozen

    return PreparedStore(
        initial=frozen,
        options=StoreOptions(
            lifecycle_hooks=options.lifecycle_hooks,
            adapter=bridge(adapter),
            validate=options.validate,
        ),
        get_store=get_store,
    )
