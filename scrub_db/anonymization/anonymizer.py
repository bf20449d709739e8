"""Session-scoped anonymizer: ValueTransformer + ConsistencyCache."""

from __future__ import annotations

import secrets

from scrub_db.anonymization.base import BaseAnonymizer
from scrub_db.anonymization.cache import ConsistencyCache
from scrub_db.anonymization.exceptions import AnonymizationError
from scrub_db.anonymization.models import AnonymizationMethod, CacheStats
from scrub_db.anonymization.transforms import transform


class Anonymizer(BaseAnonymizer):
    """Substitutes values for one dump-processing session.

    With ``preserve_relationships`` the same (method, value) pair always
    yields the same substitute. Without it the cache is bypassed and fake
    values are salted per call, so repeated inputs are not linkable.
    """

    def __init__(
        self,
        preserve_relationships: bool = True,
        cache: ConsistencyCache | None = None,
    ) -> None:
        self._preserve_relationships = preserve_relationships
        self._cache = cache if cache is not None else ConsistencyCache()

    @property
    def preserve_relationships(self) -> bool:
        return self._preserve_relationships

    def anonymize(self, value: str, method: AnonymizationMethod) -> str:
        if method is AnonymizationMethod.SKIP:
            return value
        try:
            if not self._preserve_relationships:
                salt = secrets.token_hex(8) if method.is_fake else ""
                return transform(method, value, salt)
            return self._cache.get_or_create(
                method, value, lambda: transform(method, value)
            )
        except AnonymizationError:
            raise
        except Exception as exc:
            raise AnonymizationError(
                f"Anonymization with {method.value} failed: {exc}"
            ) from exc

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()
