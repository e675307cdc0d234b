"""Lifecycle hooks — extension points around a scope's lifetime.

Order for one scope:

    store_will_mount(store, update, listen, unlisten)   on construction
    store_did_mount(store, update, listen, unlisten)    on open()
    store_will_unmount(store)                           on close(), first
    store_will_unmount_async(store)                     on close(), last

Mount hooks may return a cleanup(store) callable; every collected cleanup
runs exactly once during close(), between the two unmount hooks. The async
unmount hook may return an awaitable, which is scheduled and not awaited.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from threading import Thread
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional

from slicefx.adapter import AdapterBridge

if TYPE_CHECKING:
    from slicefx.handle import StoreHandle

logger = logging.getLogger("slicefx.lifecycle")

Cleanup = Callable[[Any], None]
MountHook = Callable[..., Optional[Cleanup]]
UnmountHook = Callable[[Any], Any]


@dataclass(frozen=True)
class LifecycleHooks:
    store_will_mount: MountHook | None = None
    store_did_mount: MountHook | None = None
    store_will_unmount: UnmountHook | None = None
    store_will_unmount_async: UnmountHook | None = None


class HookRunner:
    """Runs one scope's hooks and adapter init/destroy in a fixed order."""

    def __init__(self, hooks: LifecycleHooks | None, adapter: AdapterBridge | None = None) -> None:
        self._hooks = hooks or LifecycleHooks()
        self._adapter = adapter
        self._cleanups: list[Cleanup] = []
        self._tasks: set[asyncio.Task] = set()

    def will_mount(self, handle: StoreHandle) -> None:
        hook = self._hooks.store_will_mount
        if hook is not None:
            logger.debug("store_will_mount")
            self._keep(hook(handle.store, handle.update, handle.listen, handle.unlisten))

    def did_mount(self, handle: StoreHandle) -> None:
        if self._adapter is not None:
            self._keep(self._adapter.after_init(handle.store, handle.update))
        hook = self._hooks.store_did_mount
        if hook is not None:
            logger.debug("store_did_mount")
            self._keep(hook(handle.store, handle.update, handle.listen, handle.unlisten))

    def will_unmount(self, handle: StoreHandle) -> None:
        """Run every teardown step even if earlier ones fail.

        The first error is re-raised once all steps have run; later errors
        are logged.
        """
        store = handle.store
        cleanups, self._cleanups = self._cleanups, []
        steps = [self._unmount, self._destroy, *cleanups, self._unmount_async]

        error: BaseException | None = None
        for step in steps:
            try:
                step(store)
            except Exception as exc:
                if error is None:
                    error = exc
                else:
                    logger.exception("Teardown step failed after an earlier error")
        if error is not None:
            raise error

    def _unmount(self, store) -> None:
        hook = self._hooks.store_will_unmount
        if hook is not None:
            logger.debug("store_will_unmount")
            hook(store)

    def _destroy(self, store) -> None:
        if self._adapter is not None:
            self._adapter.before_destroy(store)

    def _unmount_async(self, store) -> None:
        hook = self._hooks.store_will_unmount_async
        if hook is not None:
            logger.debug("store_will_unmount_async")
            result = hook(store)
            if inspect.isawaitable(result):
                self._detach(result)

    def _keep(self, cleanup: Cleanup | None) -> None:
        if callable(cleanup):
            self._cleanups.append(cleanup)

    def _detach(self, awaitable: Awaitable) -> None:
        """Schedule awaitable without waiting for it to settle."""

        async def _settle() -> None:
            try:
                await awaitable
            except Exception:
                logger.exception("store_will_unmount_async failed")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop in this thread; give the work its own in a daemon thread.
            Thread(target=asyncio.run, args=(_settle(),), daemon=True).start()
            return

        task = loop.create_task(_settle())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
