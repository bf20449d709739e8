from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from scrub_db.anonymization.models import AnonymizationMethod
from scrub_db.detection.models import PIICategory


class ValueKind(Enum):
    STRING = "string"
    NULL = "null"
    OTHER = "other"  # numbers, booleans, function calls, casts


@dataclass(frozen=True)
class LiteralSpan:
    """One value inside a VALUES tuple, located by its span in the line."""

    start: int
    end: int  # exclusive
    kind: ValueKind
    text: str  # source text, including prefix and quotes
    value: str | None = None  # decoded string content (STRING only)
    quote: str = "'"
    prefix: str = ""  # E, N or _charset introducer
    backslash_escapes: bool = False


@dataclass(frozen=True)
class InsertStatement:
    """Lexical view of one data-insertion line."""

    table: str  # normalized: unquoted, lowercase, dot-qualified
    columns: tuple[str, ...] | None  # None when the statement has no column list
    tuples: tuple[tuple[LiteralSpan, ...], ...]
    continues: bool = False  # VALUES list goes on past the end of the line


@dataclass(frozen=True)
class Row:
    """A single inserted row with its values bound to column names."""

    table: str
    columns: tuple[str, ...]
    values: tuple[LiteralSpan, ...]

    def cells(self) -> list[tuple[str, LiteralSpan]]:
        return list(zip(self.columns, self.values))


@dataclass
class RewriteStats:
    """Counters accumulated by DumpRewriter over one session."""

    lines: int = 0
    statements: int = 0
    rows: int = 0
    unparseable_lines: int = 0
    missing_context_lines: int = 0
    substitutions: Counter[AnonymizationMethod] = field(default_factory=Counter)

    @property
    def total_substitutions(self) -> int:
        return sum(self.substitutions.values())

    @property
    def passed_through_lines(self) -> int:
        return self.unparseable_lines + self.missing_context_lines


@dataclass(frozen=True)
class ScanReport:
    """Detection-only summary: lines per PII category."""

    category_counts: dict[PIICategory, int]
    lines_scanned: int = 0
    rows_scanned: int = 0
    unparseable_lines: int = 0

    @property
    def has_findings(self) -> bool:
        return any(self.category_counts.values())
