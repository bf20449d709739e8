from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from scrub_db.anonymization.models import AnonymizationMethod


def _empty_rules() -> Mapping[str, AnonymizationMethod]:
    return MappingProxyType({})


@dataclass(frozen=True)
class RunConfig:
    """Anonymization settings for one run; read-only once loaded.

    ``custom_rules`` keys are normalized rule keys: lowercase, unquoted
    ``column``, ``table.column`` or ``schema.table.column``.
    """

    auto_detect: bool = True
    preserve_relationships: bool = True
    custom_rules: Mapping[str, AnonymizationMethod] = field(default_factory=_empty_rules)
