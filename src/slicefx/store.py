"""create_store — the construction surface.

A Store is a factory for isolated scopes sharing one initial state and one
set of options:

    Counter = create_store({"count": 0, "name": "x"})

    scope = Counter.provider()
    with scope as handle:
        doubled = Counter.subscribe(scope, keys=["count"], mutation=lambda s: s["count"] * 2)
        handle.update({"count": 2})

provider() accepts per-scope options. Each field given there replaces the
Store's field; lifecycle_hooks in particular is replaced, never merged.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping

from slicefx.adapter import bridge, prepare_store
from slicefx.enabled import Enabled, EnabledLike
from slicefx.handle import StoreHandle
from slicefx.lifecycle import LifecycleHooks
from slicefx.options import StoreOptions, Validate, merge_options
from slicefx.scope import StoreScope
from slicefx.subscription import Mutation, Subscription, subscribe


class Consumer:
    """Render-prop observer: calls render(value) now and on every change.

    The latest render result is kept in .rendered.
    """

    def __init__(
        self,
        scope: StoreScope,
        render: Callable[[Any], Any],
        *,
        keys: Iterable[str] | None = None,
        mutation: Mutation | None = None,
        enabled: EnabledLike = Enabled.ALWAYS,
    ) -> None:
        self._render = render
        self.subscription = subscribe(scope, keys=keys, mutation=mutation, enabled=enabled)
        self.rendered = render(self.subscription.snapshot())
        self._unsubscribe = self.subscription.observe(self._rerender)

    def _rerender(self, value: Any) -> None:
        self.rendered = self._render(value)

    def hydrate(self) -> None:
        self.subscription.hydrate()

    def close(self) -> None:
        self._unsubscribe()

    def __enter__(self) -> Consumer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Store:
    """Factory for scopes of one store shape."""

    def __init__(self, initial: Mapping[str, Any], options: StoreOptions | None = None) -> None:
        prepared = prepare_store(initial, options)
        self._initial = prepared.initial
        self._options = prepared.options
        self._get_store = prepared.get_store

    @property
    def initial(self) -> Mapping[str, Any]:
        """Read-only view of the initial state."""
        return self._initial

    @property
    def options(self) -> StoreOptions:
        return self._options

    def provider(
        self,
        value: Mapping[str, Any] | None = None,
        *,
        options: StoreOptions | None = None,
        interactive: bool = True,
    ) -> StoreScope:
        """Build a new isolated scope, seeded with value or the initial state.

        Observers of the scope that are disabled or not yet hydrated still
        see the Store's initial state, whatever value seeded the scope.
        """
        if options is not None and options.adapter is not None:
            options = replace(options, adapter=bridge(options.adapter))
        return StoreScope(
            self._initial if value is None else value,
            merge_options(self._options, options),
            initial=self._initial,
            interactive=interactive,
        )

    def get_server_snapshot(self, *context: Any) -> Any:
        """State to seed a non-interactive render; may be an awaitable."""
        return self._get_store(*context)

    def subscribe(
        self,
        scope: StoreScope,
        *,
        keys: Iterable[str] | None = None,
        mutation: Mutation | None = None,
        enabled: EnabledLike = Enabled.ALWAYS,
    ) -> Subscription:
        return subscribe(scope, keys=keys, mutation=mutation, enabled=enabled)

    def consumer(
        self,
        scope: StoreScope,
        render: Callable[[Any], Any],
        *,
        keys: Iterable[str] | None = None,
        mutation: Mutation | None = None,
        enabled: EnabledLike = Enabled.ALWAYS,
    ) -> Consumer:
        return Consumer(scope, render, keys=keys, mutation=mutation, enabled=enabled)

    def __repr__(self) -> str:
        return f"Store({dict(self._initial)!r})"


def create_store(
    initial: Mapping[str, Any],
    *,
    lifecycle_hooks: LifecycleHooks | None = None,
    adapter: Any = None,
    validate: Validate | None = None,
) -> Store:
    """Create a Store factory. validate runs when each scope is built."""
    return Store(initial, StoreOptions(lifecycle_hooks=lifecycle_hooks, adapter=adapter, validate=validate))


def use_store_reducer(scope: StoreScope) -> tuple:
    """Non-reactive access: (store, update, listen, unlisten)."""
    handle: StoreHandle = scope.handle
    return handle.store, handle.update, handle.listen, handle.unlisten
