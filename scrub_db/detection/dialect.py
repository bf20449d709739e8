"""Three-tier dialect detection: SQL indicators, connection URL, fallback.

The detected dialect only picks cosmetic defaults (output file name) and
the string-escaping convention used when scanning literals; it never
changes which values are substituted.
"""

from __future__ import annotations

import re
from typing import ClassVar

from scrub_db.detection.models import DatabaseType
from scrub_db.logging.logger import Log

_DEFAULT_OUTPUT_FILENAMES: dict[DatabaseType, str] = {
    DatabaseType.POSTGRESQL: "anonymized.sql",
    DatabaseType.MYSQL: "anonymized.sql",
    DatabaseType.SQLITE: "anonymized.db",
}


def default_output_filename(db_type: DatabaseType) -> str | None:
    """Default output target for *db_type*; None means the caller must ask."""
    return _DEFAULT_OUTPUT_FILENAMES.get(db_type)


class DialectDetector:
    """Classifies a dump or connection string as one DatabaseType."""

    MIN_INDICATORS: ClassVar[int] = 2

    _SQL_INDICATORS: ClassVar[dict[DatabaseType, tuple[re.Pattern[str], ...]]] = {
        DatabaseType.POSTGRESQL: (
            re.compile(r"\bSET\s+statement_timeout\b", re.IGNORECASE),
            re.compile(r"\bCREATE\s+SEQUENCE\b", re.IGNORECASE),
            re.compile(r"\bnextval\s*\(", re.IGNORECASE),
            re.compile(r"::regclass\b", re.IGNORECASE),
            re.compile(r"\bpg_catalog\.", re.IGNORECASE),
            re.compile(r"\bCOPY\s+\S+.*\bFROM\s+stdin\b", re.IGNORECASE),
            re.compile(r"\bOWNER\s+TO\b", re.IGNORECASE),
        ),
        DatabaseType.MYSQL: (
            re.compile(r"/\*!\d*"),
            re.compile(r"`[^`\n]+`"),
            re.compile(r"\bAUTO_INCREMENT\b", re.IGNORECASE),
            re.compile(r"\bENGINE\s*=", re.IGNORECASE),
            re.compile(r"\bLOCK\s+TABLES\b", re.IGNORECASE),
            re.compile(r"\bUNLOCK\s+TABLES\b", re.IGNORECASE),
        ),
        DatabaseType.SQLITE: (
            re.compile(r"\bPRAGMA\s+\w+", re.IGNORECASE),
            re.compile(r"\bBEGIN\s+TRANSACTION\b", re.IGNORECASE),
            re.compile(r"\bAUTOINCREMENT\b", re.IGNORECASE),
            re.compile(r"\bsqlite_sequence\b", re.IGNORECASE),
        ),
    }

    _URL_SCHEMES: ClassVar[dict[str, DatabaseType]] = {
        "postgres": DatabaseType.POSTGRESQL,
        "postgresql": DatabaseType.POSTGRESQL,
        "mysql": DatabaseType.MYSQL,
        "mariadb": DatabaseType.MYSQL,
        "sqlite": DatabaseType.SQLITE,
        "sqlite3": DatabaseType.SQLITE,
    }
    _SQLITE_SUFFIXES: ClassVar[tuple[str, ...]] = (".db", ".sqlite", ".sqlite3", ".db3")

    _SCHEME_RE: ClassVar[re.Pattern[str]] = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*)://")

    def detect(
        self,
        sql_text: str | None = None,
        connection: str | None = None,
    ) -> DatabaseType:
        """Run the tiers in order; the first that yields a dialect wins."""
        if sql_text:
            db_type = self.detect_from_sql(sql_text)
            if db_type is not None:
                return db_type
        if connection:
            db_type = self.detect_from_url(connection)
            if db_type is not None:
                return db_type
        Log.debug("Dialect could not be determined, falling back to unknown")
        return DatabaseType.UNKNOWN

    def detect_from_sql(self, sql_text: str) -> DatabaseType | None:
        """Tier 1: count distinct dialect indicators; None when inconclusive."""
        scores = self.indicator_counts(sql_text)
        qualified = {db: n for db, n in scores.items() if n >= self.MIN_INDICATORS}
        if not qualified:
            return None
        best = max(qualified.values())
        leaders = [db for db, n in qualified.items() if n == best]
        if len(leaders) > 1:
            Log.debug(f"Ambiguous SQL indicators: {scores}")
            return None
        return leaders[0]

    def indicator_counts(self, sql_text: str) -> dict[DatabaseType, int]:
        return {
            db_type: sum(1 for pattern in patterns if pattern.search(sql_text))
            for db_type, patterns in self._SQL_INDICATORS.items()
        }

    def detect_from_url(self, connection: str) -> DatabaseType | None:
        """Tier 2: URL scheme, or a database-file suffix for scheme-less paths."""
        token = connection.strip()
        match = self._SCHEME_RE.match(token)
        if match is not None:
            scheme = match.group(1).lower().split("+", 1)[0]
            return self._URL_SCHEMES.get(scheme)
        if token.lower().endswith(self._SQLITE_SUFFIXES):
            return DatabaseType.SQLITE
        return None
