"""Command-line entry point for ``scrub-db``.

Usage:
    scrub-db [anonymize] [INPUT] [-c CONFIG] [-o OUTPUT] [--dialect NAME]
    scrub-db scan [INPUT]
    scrub-db detect [INPUT] [--url URL]
"""

import argparse
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from itertools import chain, islice
from pathlib import Path
from typing import TextIO

from scrub_db.anonymization.exceptions import UnresolvableMethodError
from scrub_db.anonymization.models import CacheStats
from scrub_db.config.exceptions import ConfigError
from scrub_db.config.loader import load_config
from scrub_db.config.settings import Settings
from scrub_db.detection.dialect import DialectDetector, default_output_filename
from scrub_db.detection.models import DatabaseType, PIICategory
from scrub_db.logging.logger import Log
from scrub_db.rewriter.models import RewriteStats, ScanReport
from scrub_db.rewriter.rewriter import build_rewriter
from scrub_db.rewriter.scanner import DumpScanner

COMMANDS = ("anonymize", "scan", "detect")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_CATEGORY_LABELS: dict[PIICategory, str] = {
    PIICategory.EMAIL: "email addresses",
    PIICategory.PHONE: "phone numbers",
    PIICategory.CREDIT_CARD: "credit card numbers",
    PIICategory.SSN: "social security numbers",
    PIICategory.NAME: "personal names",
    PIICategory.ADDRESS: "postal addresses",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scrub-db",
        description="Anonymize PII in SQL dumps while preserving relationships.",
    )
    parser.add_argument("--log-level", help="Override SCRUB_DB_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    anonymize = sub.add_parser("anonymize", help="Rewrite a dump with PII substituted (default)")
    anonymize.add_argument("input", nargs="?", help="Dump file path; stdin when omitted or '-'")
    anonymize.add_argument("-c", "--cfg", "--config", dest="config", help="YAML rules file")
    anonymize.add_argument("-o", "--output", help="Output file; '-' for stdout")
    anonymize.add_argument("--dialect", help="postgresql, mysql or sqlite")

    scan = sub.add_parser("scan", help="Report lines that look like they contain PII")
    scan.add_argument("input", nargs="?", help="Dump file path; stdin when omitted or '-'")
    scan.add_argument("--dialect", help="postgresql, mysql or sqlite")

    detect = sub.add_parser("detect", help="Detect the dump's source database dialect")
    detect.add_argument("input", nargs="?", help="Dump file path; stdin when omitted or '-'")
    detect.add_argument("--url", help="Connection string to classify instead of a dump")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point: settings -> logging -> dispatch to the chosen command."""
    arguments = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(_with_default_command(arguments))

    settings = Settings()
    Log.configure(args.log_level or settings.log_level)

    try:
        if args.command == "scan":
            return run_scan(args, settings)
        if args.command == "detect":
            return run_detect(args, settings)
        return run_anonymize(args, settings)
    except (ConfigError, UnresolvableMethodError) as exc:
        Log.error(str(exc))
        return EXIT_USAGE
    except Exception as exc:
        Log.error(f"Fatal error: {exc}")
        return EXIT_FAILURE


def run_anonymize(args: argparse.Namespace, settings: Settings) -> int:
    config_path = Path(args.config) if args.config else settings.config_path
    config = load_config(config_path)
    override = _resolve_dialect_override(args.dialect or settings.dialect)

    if not config.custom_rules and not config.auto_detect:
        Log.warning("No anonymization rules defined! Data will pass through unchanged.")

    with _input_stream(args.input) as stream:
        dialect, lines = _sample_dialect(iter(stream), settings.detect_sample_lines, override)
        Log.info(f"Dump dialect: {dialect.value}")
        output_path = _resolve_output_path(args.output, args.input, dialect)
        rewriter = build_rewriter(config, dialect)
        with _output_stream(output_path) as out:
            for line in rewriter.rewrite(lines):
                out.write(line)

    _log_summary(rewriter.stats, rewriter.cache_stats(), output_path)
    return EXIT_OK


def run_scan(args: argparse.Namespace, settings: Settings) -> int:
    override = _resolve_dialect_override(args.dialect or settings.dialect)
    with _input_stream(args.input) as stream:
        dialect, lines = _sample_dialect(iter(stream), settings.detect_sample_lines, override)
        report = DumpScanner(dialect=dialect).scan(lines)
    sys.stdout.write(format_scan_report(report))
    return EXIT_OK


def run_detect(args: argparse.Namespace, settings: Settings) -> int:
    detector = DialectDetector()
    if args.url:
        db_type = detector.detect(connection=args.url)
    else:
        with _input_stream(args.input) as stream:
            head = "".join(islice(stream, settings.detect_sample_lines))
        db_type = detector.detect(sql_text=head)
    sys.stdout.write(format_detected_dialect(db_type))
    return EXIT_OK


def format_scan_report(report: ScanReport) -> str:
    lines = ["Scan results:"]
    for category, label in _CATEGORY_LABELS.items():
        count = report.category_counts.get(category, 0)
        if count:
            lines.append(f"  {count} lines with potential {label}")
    if not report.has_findings:
        lines.append("  No obvious PII detected in this dump.")
    lines.append(f"  {report.rows_scanned} rows in {report.lines_scanned} lines scanned")
    if report.unparseable_lines:
        lines.append(f"  {report.unparseable_lines} data lines could not be parsed")
    return "\n".join(lines) + "\n"


def format_detected_dialect(db_type: DatabaseType) -> str:
    filename = default_output_filename(db_type)
    if filename is None:
        return (
            f"{db_type.value}\n"
            "No default output target; specify --output or --dialect explicitly.\n"
        )
    return f"{db_type.value}\ndefault output: {filename}\n"


def _with_default_command(arguments: list[str]) -> list[str]:
    """Insert ``anonymize`` after the global options unless a command is given."""
    index = 0
    while index < len(arguments):
        arg = arguments[index]
        if arg in ("-h", "--help"):
            return arguments
        if arg == "--log-level":
            index += 2
        elif arg.startswith("--log-level="):
            index += 1
        else:
            break
    if index < len(arguments) and arguments[index] in COMMANDS:
        return arguments
    return [*arguments[:index], "anonymize", *arguments[index:]]


def _resolve_dialect_override(name: str) -> DatabaseType | None:
    if not name:
        return None
    try:
        return DatabaseType.from_name(name)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _sample_dialect(
    lines: Iterator[str],
    sample_size: int,
    override: DatabaseType | None,
) -> tuple[DatabaseType, Iterator[str]]:
    """Buffer the dump head for detection, then replay it ahead of the rest."""
    if override is not None:
        return override, lines
    head = list(islice(lines, sample_size))
    dialect = DialectDetector().detect(sql_text="".join(head))
    return dialect, chain(head, lines)


def _resolve_output_path(
    output: str | None,
    input_path: str | None,
    dialect: DatabaseType,
) -> Path | None:
    if output == "-":
        return None
    if output:
        path = Path(output)
    elif input_path is None or input_path == "-":
        return None
    else:
        filename = default_output_filename(dialect)
        if filename is None:
            raise ConfigError(
                "Could not determine the dump's dialect; specify --output or --dialect"
            )
        path = Path(filename)
    if input_path not in (None, "-") and path.resolve() == Path(input_path).resolve():
        raise ConfigError(f"Refusing to overwrite the input dump {input_path}")
    return path


@contextmanager
def _input_stream(path: str | None) -> Iterator[TextIO]:
    if path is None or path == "-":
        yield sys.stdin
        return
    with open(path, encoding="utf-8", errors="surrogateescape", newline="") as handle:
        yield handle


@contextmanager
def _output_stream(path: Path | None) -> Iterator[TextIO]:
    if path is None:
        yield sys.stdout
        return
    with open(path, "w", encoding="utf-8", errors="surrogateescape", newline="") as handle:
        yield handle


def _log_summary(stats: RewriteStats, cache: CacheStats, output_path: Path | None) -> None:
    target = str(output_path) if output_path is not None else "stdout"
    Log.info(
        f"Processed {stats.lines} lines: {stats.rows} rows, "
        f"{stats.total_substitutions} values substituted -> {target}"
    )
    for method, count in sorted(stats.substitutions.items(), key=lambda item: item[0].value):
        Log.info(f"  {method.value}: {count}")
    Log.info(
        f"Consistency cache: {cache.entries} entries, {cache.hits} hits, {cache.misses} misses"
    )
    if stats.passed_through_lines:
        Log.warning(
            f"{stats.passed_through_lines} data lines passed through unchanged "
            f"({stats.unparseable_lines} unparseable, "
            f"{stats.missing_context_lines} without table context)"
        )


if __name__ == "__main__":
    sys.exit(main())
