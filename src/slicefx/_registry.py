"""Key registry — plain Python structures that hold one store's state.

One Registry per mounted scope. Each key maps to a Slot holding the current
value and its listener entries. Slots are created lazily on first write or
first listen and live until the registry is cleared.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator

# Value of a slot that was created by listen() before anything was written.
UNSET: Any = object()


class ListenerEntry:
    """A registered callback plus the enablement it was registered with."""

    __slots__ = ("callback", "enabled")

    def __init__(self, callback: Callable[[Any], None], enabled: object) -> None:
        self.callback = callback
        self.enabled = enabled


class Slot:
    __slots__ = ("value", "listeners")

    def __init__(self, value: Any = UNSET) -> None:
        self.value = value
        self.listeners: list[ListenerEntry] = []

    def __repr__(self) -> str:
        return f"Slot({self.value!r}, listeners={len(self.listeners)})"


class Registry:
    """Mapping from key to Slot, owned by exactly one store scope."""

    __slots__ = ("_slots",)

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._slots: dict[str, Slot] = {}
        if data:
            for key, value in data.items():
                self._slots[key] = Slot(value)

    def slot(self, key: str) -> Slot:
        """Return the slot for key, creating an empty one if needed."""
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = Slot()
        return slot

    def find(self, key: str) -> Slot | None:
        return self._slots.get(key)

    def value(self, key: str) -> Any:
        slot = self._slots.get(key)
        return UNSET if slot is None else slot.value

    def keys(self) -> Iterator[str]:
        """Keys that currently hold a value."""
        return (key for key, slot in self._slots.items() if slot.value is not UNSET)

    def snapshot(self) -> dict[str, Any]:
        return {key: slot.value for key, slot in self._slots.items() if slot.value is not UNSET}

    def clear(self) -> None:
        """Release every slot and listener."""
        for slot in self._slots.values():
            slot.listeners.clear()
        self._slots.clear()
