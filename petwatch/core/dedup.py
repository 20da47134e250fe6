"""Deduplication logic.

This module decides which sightings have already triggered an alert during
the current process lifetime.

NotifiedSet is shared by the location path and the feed path, which may run
on different threads, so every check-and-mark goes through claim() under a
lock. Entries are never evicted: memory grows with the number of distinct
sightings alerted, and everything is forgotten on restart.
"""

import threading
from typing import Any, Iterable


class NotifiedSet:
    """Set of sighting IDs already alerted in this session."""

    def __init__(self, ids: Iterable[Any] = ()) -> None:
        self._ids: set[str] = {str(i) for i in ids}
        self._lock = threading.Lock()

    def has_notified(self, sighting_id: Any) -> bool:
        with self._lock:
            return str(sighting_id) in self._ids

    def mark_notified(self, sighting_id: Any) -> None:
        with self._lock:
            self._ids.add(str(sighting_id))

    def claim(self, sighting_id: Any) -> bool:
        """Atomically mark an ID, reporting whether this call was first.

        Returns:
            True if the ID was not yet notified and is now marked
        """
        key = str(sighting_id)
        with self._lock:
            if key in self._ids:
                return False
            self._ids.add(key)
            return True

    def __contains__(self, sighting_id: object) -> bool:
        return self.has_notified(sighting_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._ids)
