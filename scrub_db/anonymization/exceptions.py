class AnonymizationError(Exception):
    """Base exception for all anonymization-related errors."""


class UnresolvableMethodError(AnonymizationError, ValueError):
    """Raised when a method name does not map to a known AnonymizationMethod."""

    def __init__(self, name: str, key: str | None = None) -> None:
        self.name = name
        self.key = key
        where = f" for rule '{key}'" if key is not None else ""
        super().__init__(f"Unknown anonymization method '{name}'{where}")
