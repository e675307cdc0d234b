"""Subscriptions — per-observer slices with memoized derivations.

A Subscription watches a fixed set of keys of one scope. Its value is a
dict of just those keys, or the result of a mutation function applied to
that dict. The value object is reused as long as every watched key still
holds the identical object, so observers can compare results with `is`
and skip work when nothing they depend on changed.

    sub = subscribe(scope, keys=["count"], mutation=lambda s: s["count"] * 2)
    sub.snapshot()            # pull
    sub.observe(print)        # push: called only when the value changes

The mutation may take up to three positional arguments:
(new_slice, prev_slice, prev_derived). Previous values are None until the
first computation, so accumulators work:

    subscribe(scope, keys=["count"], mutation=lambda s, _, total: (total or 0) + s["count"])
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Generic, Iterable, Mapping, TypeVar

from slicefx.enabled import Enabled, EnabledLike, coerce_enabled, is_disabled, resolve_gate

R = TypeVar("R")

_UNSET: Any = object()

Mutation = Callable[..., R]
OnStoreChange = Callable[..., None]


def _positional_arity(fn: Callable) -> int:
    """How many of (new_slice, prev_slice, prev_derived) fn accepts."""
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return 3
    count = 0
    for param in params:
        if param.kind is param.VAR_POSITIONAL:
            return 3
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            count += 1
    return min(count, 3)


def _clone(source: Mapping[str, Any], keys: tuple[str, ...]) -> dict[str, Any]:
    return {key: source.get(key) for key in keys}


def _clone_and_compare(
    source: Mapping[str, Any], keys: tuple[str, ...], prev: dict[str, Any]
) -> tuple[dict[str, Any], bool]:
    result = _clone(source, keys)
    is_equal = all(key in prev and result[key] is prev[key] for key in keys)
    return result, is_equal


class Subscription(Generic[R]):
    """Observer binding: watched keys, cached slice, cached derived value."""

    def __init__(
        self,
        scope,
        *,
        keys: Iterable[str] | None = None,
        mutation: Mutation | None = None,
        enabled: EnabledLike = Enabled.ALWAYS,
    ) -> None:
        self._handle = scope.handle
        self._initial: Mapping[str, Any] = scope.initial
        # Without explicit keys, watch what the store holds right now.
        self._keys = tuple(keys) if keys is not None else tuple(self._handle.store)
        self._mutation = mutation
        self._arity = _positional_arity(mutation) if mutation is not None else 0
        self._enabled = coerce_enabled(enabled)
        self._hydrated = False
        self._gate = resolve_gate(self._enabled, self._is_hydrated)

        self._prev_slice: Any = _UNSET
        self._prev_derived: Any = _UNSET

        self._callback: OnStoreChange | None = None
        self._unlistens: list[Callable[[], None]] = []

    @property
    def keys(self) -> tuple[str, ...]:
        return self._keys

    @property
    def enabled(self):
        return self._enabled

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    @property
    def value(self) -> R:
        return self.snapshot()

    def snapshot(self) -> R:
        """Current value, recomputed only when a watched key changed.

        While disabled the previous value is kept; if there is none yet the
        value is computed from the store's initial data, not the live store.
        """
        view = self._handle.store
        disabled = is_disabled(self._gate, view)

        if self._prev_slice is _UNSET:
            new_slice, is_equal = _clone(view, self._keys), False
        else:
            new_slice, is_equal = _clone_and_compare(view, self._keys, self._prev_slice)

        if is_equal or disabled:
            if self._mutation is None:
                if self._prev_slice is _UNSET:
                    self._prev_slice = _clone(self._initial, self._keys)
                return self._prev_slice
            if self._prev_derived is not _UNSET:
                return self._prev_derived
            if disabled:
                initial_slice = _clone(self._initial, self._keys)
                self._prev_derived = self._derive(initial_slice)
                self._prev_slice = initial_slice
                return self._prev_derived

        if self._mutation is not None:
            derived = self._derive(new_slice)
            self._prev_derived = derived
            self._prev_slice = new_slice
            return derived

        self._prev_derived = _UNSET
        self._prev_slice = new_slice
        return new_slice

    def _derive(self, new_slice: dict[str, Any]) -> R:
        prev_slice = None if self._prev_slice is _UNSET else self._prev_slice
        prev_derived = None if self._prev_derived is _UNSET else self._prev_derived
        return self._mutation(*(new_slice, prev_slice, prev_derived)[: self._arity])

    # --- Subscription lifecycle ---

    def subscribe(self, on_store_change: OnStoreChange) -> Callable[[], None]:
        """Attach on_store_change to every watched key.

        on_store_change(value) receives the changed key's new value on updates
        and the current snapshot when an after-hydration subscription is
        hydrated. Nothing is attached while the subscription is constantly
        disabled. Returns an idempotent thunk that detaches it again.
        """
        self._detach()
        self._callback = on_store_change
        self._attach()

        def _unsubscribe() -> None:
            if self._callback is on_store_change:
                self._detach()
                self._callback = None

        return _unsubscribe

    def observe(self, callback: Callable[[R], None]) -> Callable[[], None]:
        """Call callback(value) whenever the snapshot is a different object."""
        last = self.snapshot()

        def _on_store_change(*_: Any) -> None:
            nonlocal last
            value = self.snapshot()
            if value is not last:
                last = value
                callback(value)

        return self.subscribe(_on_store_change)

    def reconfigure(self, *, keys: Iterable[str] | None = None, enabled: EnabledLike | None = None) -> None:
        """Change the watched keys or enablement; re-subscribes on any change."""
        changed = False
        if keys is not None and tuple(keys) != self._keys:
            self._keys = tuple(keys)
            changed = True
        if enabled is not None:
            variant = coerce_enabled(enabled)
            if variant != self._enabled:
                self._enabled = variant
                self._gate = resolve_gate(variant, self._is_hydrated)
                changed = True
        if changed:
            self._detach()
            self._attach()

    def hydrate(self) -> None:
        """Mark the observer as committed. Only the first call has an effect.

        An after-hydration subscription with an attached callback is woken
        once with the current snapshot so it switches from the initial data
        to the live store.
        """
        if self._hydrated:
            return
        self._hydrated = True
        if self._enabled is Enabled.AFTER_HYDRATION and self._callback is not None:
            self._callback(self.snapshot())

    def close(self) -> None:
        self._detach()
        self._callback = None

    def _attach(self) -> None:
        if self._callback is None or self._gate is False:
            return
        self._unlistens = [self._handle.listen(key, self._callback) for key in self._keys]

    def _detach(self) -> None:
        unlistens, self._unlistens = self._unlistens, []
        for unlisten in unlistens:
            unlisten()

    def _is_hydrated(self) -> bool:
        return self._hydrated

    def __enter__(self) -> Subscription[R]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Subscription(keys={list(self._keys)!r}, enabled={self._enabled!r})"


def subscribe(
    scope,
    *,
    keys: Iterable[str] | None = None,
    mutation: Mutation | None = None,
    enabled: EnabledLike = Enabled.ALWAYS,
) -> Subscription:
    """Create a Subscription on scope. See Subscription for semantics."""
    return Subscription(scope, keys=keys, mutation=mutation, enabled=enabled)
