"""In-process cache for query results.

Entries are keyed by logical name (``categoryIds``, ``cards``,
``card_<id>``) and hold normalized result rows. There is no TTL and no size
bound; entries live until invalidated or cleared.
"""

import copy
import logging
import threading

logger = logging.getLogger(__name__)

CATEGORY_IDS_KEY = "categoryIds"
CARDS_KEY = "cards"
LIST_KEYS = (CATEGORY_IDS_KEY, CARDS_KEY)


def card_key(card_id) -> str:
    return f"card_{card_id}"


class QueryCache:
    """Thread-safe key → rows mapping. Values are copied on the way in and out."""

    def __init__(self):
        self._entries: dict[str, list] = {}
        self._lock = threading.Lock()

    def get(self, key: str):
        """Return a copy of the cached rows, or None on a miss."""
        with self._lock:
            if key not in self._entries:
                return None
            return copy.deepcopy(self._entries[key])

    def set(self, key: str, rows) -> None:
        with self._lock:
            self._entries[key] = copy.deepcopy(rows)

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if something was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Reset the list slots only.

        Individual ``card_<id>`` entries are left in place; they are dropped
        by ``invalidate`` when that card's state changes. Use ``clear_all``
        to empty everything.
        """
        with self._lock:
            for key in LIST_KEYS:
                self._entries.pop(key, None)
        logger.info("Cleared list caches (%s)", ", ".join(LIST_KEYS))

    def clear_all(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cleared all caches (%d entries)", count)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
