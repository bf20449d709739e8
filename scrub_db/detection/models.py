from dataclasses import dataclass
from enum import Enum

from scrub_db.anonymization.models import AnonymizationMethod


class PIICategory(Enum):
    """Closed set of PII types the classifier can recognize."""

    EMAIL = "email"
    PHONE = "phone"
    NAME = "name"
    ADDRESS = "address"
    CREDIT_CARD = "credit_card"
    SSN = "ssn"
    NONE = "none"

    @property
    def default_method(self) -> AnonymizationMethod:
        return _DEFAULT_METHODS[self]


_DEFAULT_METHODS: dict[PIICategory, AnonymizationMethod] = {
    PIICategory.EMAIL: AnonymizationMethod.FAKE_EMAIL,
    PIICategory.PHONE: AnonymizationMethod.FAKE_PHONE,
    PIICategory.NAME: AnonymizationMethod.FAKE_NAME,
    PIICategory.ADDRESS: AnonymizationMethod.FAKE_ADDRESS,
    PIICategory.CREDIT_CARD: AnonymizationMethod.MASK_CREDIT_CARD,
    PIICategory.SSN: AnonymizationMethod.MASK_SSN,
    PIICategory.NONE: AnonymizationMethod.SKIP,
}


@dataclass(frozen=True)
class ClassificationResult:
    """Category assigned to a column/value and how certain the match is."""

    category: PIICategory
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")

    @property
    def is_pii(self) -> bool:
        return self.category is not PIICategory.NONE


NO_MATCH = ClassificationResult(category=PIICategory.NONE, confidence=0.0)


class DatabaseType(Enum):
    """Source dialect of a dump."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "DatabaseType":
        """Resolve an explicit dialect override.

        Raises:
            ValueError: if *name* is not a supported dialect.
        """
        key = name.strip().lower()
        db_type = _DIALECT_ALIASES.get(key)
        if db_type is None:
            raise ValueError(
                f"Unknown dialect '{name}'. Choose from: {sorted(_DIALECT_ALIASES)}"
            )
        return db_type


_DIALECT_ALIASES: dict[str, DatabaseType] = {
    "postgres": DatabaseType.POSTGRESQL,
    "postgresql": DatabaseType.POSTGRESQL,
    "pg": DatabaseType.POSTGRESQL,
    "mysql": DatabaseType.MYSQL,
    "mariadb": DatabaseType.MYSQL,
    "sqlite": DatabaseType.SQLITE,
    "sqlite3": DatabaseType.SQLITE,
}
