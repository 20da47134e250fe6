"""Shared mutable state read by long-lived callbacks.

Stream callbacks must see the latest position and sighting set when they run,
not the values that existed when they subscribed. These holders are owned by
the session and read fresh on every evaluation.
"""

import threading
from typing import Generic, Iterable, TypeVar

from petwatch.core.sighting import Sighting


T = TypeVar("T")


class CurrentValue(Generic[T]):
    """Lock-guarded cell holding the latest value of something."""

    def __init__(self, initial: T | None = None) -> None:
        self._value = initial
        self._lock = threading.Lock()

    def get(self) -> T | None:
        with self._lock:
            return self._value

    def set(self, value: T) -> None:
        with self._lock:
            self._value = value


class SightingSet:
    """Working set of sightings keyed by ID, in arrival order."""

    def __init__(self, sightings: Iterable[Sighting] = ()) -> None:
        self._items: dict[str, Sighting] = {s.id: s for s in sightings}
        self._lock = threading.Lock()

    def replace_all(self, sightings: Iterable[Sighting]) -> None:
        items = {s.id: s for s in sightings}
        with self._lock:
            self._items = items

    def add(self, sighting: Sighting) -> bool:
        """Add a sighting.

        Returns:
            False if a sighting with the same ID was already present
        """
        with self._lock:
            if sighting.id in self._items:
                return False
            self._items[sighting.id] = sighting
            return True

    def snapshot(self) -> list[Sighting]:
        with self._lock:
            return list(self._items.values())

    def __contains__(self, sighting_id: object) -> bool:
        with self._lock:
            return str(sighting_id) in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
