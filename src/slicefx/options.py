"""StoreOptions — the immutable configuration of a store.

Given once to create_store() and optionally again per scope. A per-scope
field replaces the base field wholesale; fields left unset keep the base
value. lifecycle_hooks is never merged hook by hook.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from slicefx.lifecycle import LifecycleHooks

Validate = Callable[[dict], Any]


@dataclass(frozen=True)
class StoreOptions:
    lifecycle_hooks: LifecycleHooks | None = None
    adapter: Any = None
    validate: Validate | None = None


def merge_options(base: StoreOptions, override: StoreOptions | None) -> StoreOptions:
    if override is None:
        return base
    changes = {
        name: value
        for name, value in (
            ("lifecycle_hooks", override.lifecycle_hooks),
            ("adapter", override.adapter),
            ("validate", override.validate),
        )
        if value is not None
    }
    return replace(base, **changes)
