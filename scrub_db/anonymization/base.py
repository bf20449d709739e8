from abc import ABC, abstractmethod

from scrub_db.anonymization.models import AnonymizationMethod, CacheStats


class BaseAnonymizer(ABC):
    """Contract for all value anonymizers."""

    @abstractmethod
    def anonymize(self, value: str, method: AnonymizationMethod) -> str:
        """Return the substitute for *value* under *method*.

        Args:
            value: Decoded literal value (escapes already resolved).
            method: Strategy chosen for the value's column.

        Returns:
            Replacement value, not yet quoted or escaped for SQL.

        Raises:
            AnonymizationError: on any failure.
        """

    @abstractmethod
    def cache_stats(self) -> CacheStats:
        """Return hit/miss counters of the session's consistency cache."""
