"""Streams a dump, substituting PII literals and passing everything else through."""

import io
from collections.abc import Iterable, Iterator

from scrub_db.anonymization.base import BaseAnonymizer
from scrub_db.anonymization.factory import AnonymizerFactory
from scrub_db.anonymization.models import AnonymizationMethod, CacheStats
from scrub_db.config.models import RunConfig
from scrub_db.detection.classifier import PIIClassifier
from scrub_db.detection.models import DatabaseType
from scrub_db.logging.logger import Log
from scrub_db.rewriter.exceptions import MissingTableContextError, UnparseableRowError
from scrub_db.rewriter.models import RewriteStats, Row, ValueKind
from scrub_db.rewriter.resolver import MethodResolver
from scrub_db.rewriter.sql_parser import RowExtractor, encode_literal, split_line_ending


class DumpRewriter:
    """Rewrites one dump session line by line.

    Only string literals whose column resolves to a non-Skip method are
    replaced; every other byte of the line is reproduced as-is. Lines that
    cannot be resolved unambiguously are passed through and counted.
    """

    def __init__(
        self,
        anonymizer: BaseAnonymizer,
        resolver: MethodResolver,
        dialect: DatabaseType = DatabaseType.UNKNOWN,
    ) -> None:
        self._anonymizer = anonymizer
        self._resolver = resolver
        self._extractor = RowExtractor(dialect)
        self.stats = RewriteStats()

    def rewrite(self, lines: Iterable[str]) -> Iterator[str]:
        for line in lines:
            yield self.rewrite_line(line)

    def rewrite_text(self, text: str) -> str:
        return "".join(self.rewrite(io.StringIO(text, newline="")))

    def cache_stats(self) -> CacheStats:
        """Consistency-cache counters of this session."""
        return self._anonymizer.cache_stats()

    def rewrite_line(self, line: str) -> str:
        self.stats.lines += 1
        body, ending = split_line_ending(line)
        try:
            rows = self._extractor.extract(body)
        except MissingTableContextError as exc:
            self.stats.missing_context_lines += 1
            Log.debug(f"Line {self.stats.lines} passed through: {exc}")
            return line
        except UnparseableRowError as exc:
            self.stats.unparseable_lines += 1
            Log.debug(f"Line {self.stats.lines} passed through: {exc}")
            return line
        self.stats.statements = self._extractor.statements
        if not rows:
            return line

        replacements = self._plan_replacements(rows)
        if not replacements:
            return line

        pieces: list[str] = []
        cursor = 0
        for start, end, text in replacements:
            pieces.append(body[cursor:start])
            pieces.append(text)
            cursor = end
        pieces.append(body[cursor:])
        return "".join(pieces) + ending

    def _plan_replacements(self, rows: list[Row]) -> list[tuple[int, int, str]]:
        replacements: list[tuple[int, int, str]] = []
        for row in rows:
            self.stats.rows += 1
            for column, span in row.cells():
                if span.kind is not ValueKind.STRING or not span.value:
                    continue
                method = self._resolver.resolve(row.table, column, span.value)
                if method is AnonymizationMethod.SKIP:
                    continue
                substitute = self._anonymizer.anonymize(span.value, method)
                replacements.append((span.start, span.end, encode_literal(substitute, span)))
                self.stats.substitutions[method] += 1
        return replacements


def build_rewriter(
    config: RunConfig,
    dialect: DatabaseType = DatabaseType.UNKNOWN,
    classifier: PIIClassifier | None = None,
) -> DumpRewriter:
    """Build a DumpRewriter with a fresh anonymizer session."""
    anonymizer = AnonymizerFactory.create(config)
    resolver = MethodResolver(config, classifier)
    return DumpRewriter(anonymizer=anonymizer, resolver=resolver, dialect=dialect)
