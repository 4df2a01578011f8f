"""Per-listing view counts on top of an injected key-value store."""

from __future__ import annotations

from servicedir.core.kvstore import KeyValueStore

VIEWS_PREFIX = "serviceViews"


class ViewCounter:
    def __init__(self, store: KeyValueStore):
        self._store = store

    @staticmethod
    def _key(listing_id: str) -> str:
        return f"{VIEWS_PREFIX}:{listing_id}"

    def get(self, listing_id: str) -> int:
        return int(self._store.get(self._key(listing_id)) or 0)

    def increment(self, listing_id: str) -> int:
        return self._store.increment(self._key(listing_id))
