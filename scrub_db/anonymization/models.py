from dataclasses import dataclass
from enum import Enum

from scrub_db.anonymization.exceptions import UnresolvableMethodError


class AnonymizationMethod(Enum):
    """Closed set of strategies a column can be anonymized with."""

    FAKE_EMAIL = "fake_email"
    FAKE_NAME = "fake_name"
    FAKE_PHONE = "fake_phone"
    FAKE_ADDRESS = "fake_address"
    MASK_CREDIT_CARD = "mask_credit_card"
    MASK_SSN = "mask_ssn"
    HASH = "hash"
    SKIP = "skip"

    @classmethod
    def from_name(cls, name: str) -> "AnonymizationMethod":
        """Resolve a config-file method name (canonical or short alias).

        Raises:
            UnresolvableMethodError: if *name* is not a known method.
        """
        key = name.strip().lower() if isinstance(name, str) else ""
        key = _METHOD_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnresolvableMethodError(str(name)) from None

    @property
    def is_fake(self) -> bool:
        return self in _FAKE_METHODS


_METHOD_ALIASES: dict[str, str] = {
    "email": "fake_email",
    "name": "fake_name",
    "phone": "fake_phone",
    "address": "fake_address",
    "credit_card": "mask_credit_card",
    "ssn": "mask_ssn",
}

_FAKE_METHODS = frozenset(
    {
        AnonymizationMethod.FAKE_EMAIL,
        AnonymizationMethod.FAKE_NAME,
        AnonymizationMethod.FAKE_PHONE,
        AnonymizationMethod.FAKE_ADDRESS,
    }
)


@dataclass(frozen=True)
class CacheStats:
    """Hit/miss counters of one ConsistencyCache."""

    entries: int = 0
    hits: int = 0
    misses: int = 0
