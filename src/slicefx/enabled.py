"""Enablement gate — when an observer reads the live store.

An observer is configured with one of four variants:

    Enabled.ALWAYS            read and listen to the live store
    Enabled.NEVER             never listen; keep showing the initial data
    Enabled.AFTER_HYDRATION   behave like NEVER until hydrated, then ALWAYS
    Predicate(fn)             fn(view) decides on every read

The string forms "always", "never" and "after-hydration", booleans, and
plain callables are accepted everywhere and coerced once.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Union

from slicefx.view import StoreView


class Enabled(enum.Enum):
    ALWAYS = "always"
    NEVER = "never"
    AFTER_HYDRATION = "after-hydration"


@dataclass(frozen=True)
class Predicate:
    fn: Callable[[StoreView], bool]

    def __call__(self, view: StoreView) -> bool:
        return bool(self.fn(view))


EnabledLike = Union[Enabled, Predicate, str, bool, Callable[[StoreView], Any]]

# What the accessor consults: a constant, or a predicate over the live view.
Gate = Union[bool, Callable[[StoreView], bool]]


def coerce_enabled(enabled: EnabledLike) -> Enabled | Predicate:
    if isinstance(enabled, (Enabled, Predicate)):
        return enabled
    if enabled is True:
        return Enabled.ALWAYS
    if enabled is False:
        return Enabled.NEVER
    if isinstance(enabled, str):
        try:
            return Enabled(enabled)
        except ValueError:
            raise ValueError(
                f"enabled must be 'always', 'never', 'after-hydration' or a callable, got {enabled!r}"
            ) from None
    if callable(enabled):
        return Predicate(enabled)
    raise TypeError(f"Unsupported enabled value: {enabled!r}")


def resolve_gate(enabled: EnabledLike, mounted: Callable[[], bool]) -> Gate:
    """Resolve a variant into True, False, or a predicate over the view.

    mounted reports the hydration flag; AFTER_HYDRATION reads it on every
    call rather than capturing its current value.
    """
    variant = coerce_enabled(enabled)
    if variant is Enabled.ALWAYS:
        return True
    if variant is Enabled.NEVER:
        return False
    if variant is Enabled.AFTER_HYDRATION:
        return lambda view: mounted()
    return variant


def is_disabled(gate: Gate, view: StoreView) -> bool:
    if gate is False:
        return True
    if gate is True:
        return False
    return not gate(view)
