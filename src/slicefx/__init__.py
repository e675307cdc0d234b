"""slicefx: shared state with per-key subscriptions and memoized slices."""

from importlib.metadata import version as _version

__version__ = _version("slicefx")

from slicefx.adapter import AdapterBridge, BaseAdapter, PreparedStore, prepare_store
from slicefx.adapters import MappingAdapter
from slicefx.enabled import Enabled, Predicate
from slicefx.exceptions import InvalidStoreError
from slicefx.handle import StoreHandle
from slicefx.lifecycle import LifecycleHooks
from slicefx.options import StoreOptions
from slicefx.scope import StoreScope
from slicefx.store import Consumer, Store, create_store, use_store_reducer
from slicefx.subscription import Subscription, subscribe
from slicefx.view import StoreView
# textual NOT auto-imported, opt-in only

__all__ = [
    "create_store",
    "Store",
    "StoreOptions",
    "StoreScope",
    "StoreHandle",
    "StoreView",
    "Subscription",
    "subscribe",
    "Consumer",
    "use_store_reducer",
    "Enabled",
    "Predicate",
    "LifecycleHooks",
    "BaseAdapter",
    "AdapterBridge",
    "PreparedStore",
    "prepare_store",
    "MappingAdapter",
    "InvalidStoreError",
]
