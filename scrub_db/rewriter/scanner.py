from collections.abc import Iterable

from scrub_db.detection.classifier import PIIClassifier
from scrub_db.detection.models import DatabaseType, PIICategory
from scrub_db.logging.logger import Log
from scrub_db.rewriter.exceptions import RewriterError
from scrub_db.rewriter.models import ScanReport, ValueKind
from scrub_db.rewriter.sql_parser import RowExtractor, split_line_ending


class DumpScanner:
    """Detection-only pass: counts dump lines per PII category, substitutes nothing."""

    def __init__(
        self,
        classifier: PIIClassifier | None = None,
        dialect: DatabaseType = DatabaseType.UNKNOWN,
    ) -> None:
        self._classifier = classifier if classifier is not None else PIIClassifier()
        self._dialect = dialect

    def scan(self, lines: Iterable[str]) -> ScanReport:
        extractor = RowExtractor(self._dialect)
        counts = {category: 0 for category in PIICategory if category is not PIICategory.NONE}
        lines_scanned = 0
        rows_scanned = 0
        unparseable = 0

        for line in lines:
            lines_scanned += 1
            body, _ = split_line_ending(line)
            try:
                rows = extractor.extract(body)
            except RewriterError as exc:
                unparseable += 1
                Log.debug(f"Line {lines_scanned} skipped by scan: {exc}")
                continue
            found: set[PIICategory] = set()
            for row in rows:
                rows_scanned += 1
                for column, span in row.cells():
                    if span.kind is not ValueKind.STRING or not span.value:
                        continue
                    result = self._classifier.classify(column, span.value)
                    if result.is_pii:
                        found.add(result.category)
            for category in found:
                counts[category] += 1

        return ScanReport(
            category_counts=counts,
            lines_scanned=lines_scanned,
            rows_scanned=rows_scanned,
            unparseable_lines=unparseable,
        )
