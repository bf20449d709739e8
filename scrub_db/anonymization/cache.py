import threading
from collections.abc import Callable

from scrub_db.anonymization.models import AnonymizationMethod, CacheStats


class ConsistencyCache:
    """At most one substitute per (method, original value) for a session.

    Entries are never evicted; the cache lives exactly as long as the
    session that owns it. ``get_or_create`` holds a lock while generating,
    so two concurrent first sightings of a value cannot race.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[AnonymizationMethod, str], str] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get_or_create(
        self,
        method: AnonymizationMethod,
        original: str,
        generator: Callable[[], str],
    ) -> str:
        """Return the cached substitute, generating and storing it on first use."""
        key = (method, original)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1
            substitute = generator()
            self._entries[key] = substitute
            return substitute

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(entries=len(self._entries), hits=self._hits, misses=self._misses)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
