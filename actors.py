"""Selectable identities: owners seen in the store plus names typed in by hand."""
from __future__ import annotations

from store import BookingStore


class ActorList:
    def __init__(self, store: BookingStore) -> None:
        self._store = store
        self._manual: list[str] = []
        self._selected = ""

    @property
    def names(self) -> list[str]:
        seeded = self._store.owners()
        return seeded + [n for n in self._manual if n not in seeded]

    @property
    def selected(self) -> str:
        return self._selected

    def select(self, name: str) -> None:
        # Selecting nothing is allowed; toggles then get rejected
        self._selected = (name or "").strip()

    def add(self, name: str) -> bool:
        """Add a manual entry and select it. Empty names and duplicates are ignored."""
        name = (name or "").strip()
        if not name or name in self.names:
            return False
        self._manual.append(name)
        self._selected = name
        return True
