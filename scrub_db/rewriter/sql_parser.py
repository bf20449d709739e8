"""Bounded lexical scanner for the statement shapes a dump rewriter touches.

This is not a SQL grammar. It recognizes:

* ``INSERT|REPLACE [IGNORE|OR <word>] INTO <table> [(<cols>)] VALUES (...)[, (...)][;]``
  including VALUES lists that continue on following lines;
* ``CREATE [TEMP|UNLOGGED] TABLE [IF NOT EXISTS] <table> (...)`` declarations,
  single- or multi-line, to learn column order for inserts without a column list.

Anything else is left to the caller to pass through untouched.
"""

from __future__ import annotations

import re

from scrub_db.detection.models import DatabaseType
from scrub_db.rewriter.exceptions import MissingTableContextError, UnparseableRowError
from scrub_db.rewriter.models import InsertStatement, LiteralSpan, Row, ValueKind

_IDENT = r'(?:"(?:[^"]|"")+"|`(?:[^`]|``)+`|\[[^\]]+\]|[A-Za-z_][A-Za-z0-9_$]*)'
_QUALIFIED = rf"{_IDENT}(?:\s*\.\s*{_IDENT})*"

_IDENT_RE = re.compile(_IDENT)
_INSERT_RE = re.compile(
    r"^\s*(?:INSERT|REPLACE)"
    r"(?:\s+(?:LOW_PRIORITY|DELAYED|HIGH_PRIORITY|IGNORE|OR\s+[A-Za-z]+))*"
    rf"\s+INTO\s+(?P<table>{_QUALIFIED})\s*"
    r"(?:\((?P<columns>[^)]*)\)\s*)?"
    r"VALUES?\s*",
    re.IGNORECASE,
)
_CREATE_TABLE_RE = re.compile(
    r"^\s*CREATE\s+(?:(?:GLOBAL|LOCAL)\s+)?(?:(?:TEMP|TEMPORARY|UNLOGGED)\s+)?TABLE\s+"
    rf"(?:IF\s+NOT\s+EXISTS\s+)?(?P<table>{_QUALIFIED})\s*\(",
    re.IGNORECASE,
)
_TRAILING_CLAUSE_RE = re.compile(r"(?:ON\s+(?:DUPLICATE|CONFLICT)|RETURNING)\b", re.IGNORECASE)

_BACKSLASH_DECODE = {
    "0": "\0",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "Z": "\x1a",
}
# MySQL keeps the backslash for LIKE wildcards.
_BACKSLASH_KEEP = frozenset({"%", "_"})

_CONSTRAINT_KEYWORDS = frozenset(
    {
        "CONSTRAINT",
        "PRIMARY",
        "UNIQUE",
        "KEY",
        "INDEX",
        "FOREIGN",
        "CHECK",
        "FULLTEXT",
        "SPATIAL",
        "EXCLUDE",
        "LIKE",
        "PERIOD",
    }
)


def unquote_identifier(identifier: str) -> str:
    ident = identifier.strip()
    if len(ident) >= 2:
        first, last = ident[0], ident[-1]
        if first == '"' and last == '"':
            return ident[1:-1].replace('""', '"')
        if first == "`" and last == "`":
            return ident[1:-1].replace("``", "`")
        if first == "[" and last == "]":
            return ident[1:-1]
    return ident


def normalize_table_name(qualified: str) -> str:
    """``"Public"."Users"`` -> ``public.users``."""
    return ".".join(unquote_identifier(p) for p in _IDENT_RE.findall(qualified)).lower()


def split_line_ending(line: str) -> tuple[str, str]:
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1], line[-1]
    return line, ""


def encode_literal(value: str, span: LiteralSpan) -> str:
    """Quote *value* the way *span* was quoted in the source line."""
    quote = span.quote
    escaped = value
    if span.backslash_escapes:
        escaped = (
            escaped.replace("\\", "\\\\")
            .replace("\n", "\\n")
            .replace("\r", "\\r")
        )
        if not span.prefix.upper().startswith("E"):
            escaped = escaped.replace("\0", "\\0").replace("\x1a", "\\Z")
    escaped = escaped.replace(quote, quote + quote)
    return f"{span.prefix}{quote}{escaped}{quote}"


class StatementLexer:
    """Locates value spans inside INSERT lines using one dialect's escaping rules."""

    def __init__(self, dialect: DatabaseType = DatabaseType.UNKNOWN) -> None:
        self._dialect = dialect
        self._backslash_escapes = dialect is DatabaseType.MYSQL
        quotes = "'\"" if dialect is DatabaseType.MYSQL else "'"
        self._string_start = re.compile(
            rf"(?P<prefix>[EeNn]|_[A-Za-z0-9]+)?(?P<quote>[{quotes}])"
        )

    @property
    def dialect(self) -> DatabaseType:
        return self._dialect

    def parse_insert(self, line: str) -> InsertStatement | None:
        """Return the statement on *line*, or None if it is not an insert.

        Raises:
            UnparseableRowError: if it is an insert whose values cannot be resolved.
        """
        match = _INSERT_RE.match(line)
        if match is None:
            return None
        columns = None
        if match.group("columns") is not None:
            columns = tuple(
                unquote_identifier(c) for c in _IDENT_RE.findall(match.group("columns"))
            )
            if not columns:
                raise UnparseableRowError("Empty column list")
        table = normalize_table_name(match.group("table"))
        if not line[match.end() :].strip():
            return InsertStatement(table=table, columns=columns, tuples=(), continues=True)
        tuples, continues = self.scan_values(line, match.end())
        return InsertStatement(table=table, columns=columns, tuples=tuples, continues=continues)

    def scan_values(
        self, line: str, pos: int = 0
    ) -> tuple[tuple[tuple[LiteralSpan, ...], ...], bool]:
        """Scan ``(..), (..)`` from *pos*; also report whether the list continues."""
        n = len(line)
        tuples: list[tuple[LiteralSpan, ...]] = []
        while True:
            pos = _skip_ws(line, pos)
            if pos >= n or line[pos] != "(":
                raise UnparseableRowError(f"Expected '(' at column {pos}")
            values, pos = self._scan_tuple(line, pos + 1)
            tuples.append(values)
            pos = _skip_ws(line, pos)
            if pos >= n:
                return tuple(tuples), False
            char = line[pos]
            if char == ",":
                pos = _skip_ws(line, pos + 1)
                if pos >= n:
                    return tuple(tuples), True
                continue
            if char == ";":
                rest = line[pos + 1 :].strip()
                if rest and not rest.startswith("--"):
                    raise UnparseableRowError("Unexpected content after statement end")
                return tuple(tuples), False
            if _TRAILING_CLAUSE_RE.match(line, pos):
                return tuple(tuples), False
            raise UnparseableRowError(f"Unexpected {char!r} after values at column {pos}")

    def _scan_tuple(self, line: str, pos: int) -> tuple[tuple[LiteralSpan, ...], int]:
        n = len(line)
        values: list[LiteralSpan] = []
        pos = _skip_ws(line, pos)
        if pos < n and line[pos] == ")":
            return (), pos + 1
        while True:
            pos = _skip_ws(line, pos)
            if pos >= n:
                raise UnparseableRowError("Unterminated values tuple")
            span, pos = self._scan_value(line, pos)
            values.append(span)
            pos = _skip_ws(line, pos)
            if pos >= n:
                raise UnparseableRowError("Unterminated values tuple")
            if line[pos] == ",":
                pos += 1
                continue
            if line[pos] == ")":
                return tuple(values), pos + 1
            raise UnparseableRowError(f"Unexpected {line[pos]!r} in values at column {pos}")

    def _scan_value(self, line: str, pos: int) -> tuple[LiteralSpan, int]:
        match = self._string_start.match(line, pos)
        if match is not None:
            prefix = match.group("prefix") or ""
            quote = match.group("quote")
            backslash = self._backslash_escapes or prefix.upper() == "E"
            end, decoded = _read_string(line, match.end("quote") - 1, quote, backslash)
            after = _skip_ws(line, end)
            # A cast or concatenation makes it an expression, not a plain literal.
            if after < len(line) and line[after] in ",)":
                return (
                    LiteralSpan(
                        start=pos,
                        end=end,
                        kind=ValueKind.STRING,
                        text=line[pos:end],
                        value=decoded,
                        quote=quote,
                        prefix=prefix,
                        backslash_escapes=backslash,
                    ),
                    end,
                )
        end = self._scan_bare(line, pos)
        text = line[pos:end].rstrip()
        if not text:
            raise UnparseableRowError(f"Empty value at column {pos}")
        kind = ValueKind.NULL if text.upper() == "NULL" else ValueKind.OTHER
        return LiteralSpan(start=pos, end=pos + len(text), kind=kind, text=text), end

    def _scan_bare(self, line: str, pos: int) -> int:
        """Scan an expression up to the next top-level ',' or ')'."""
        n = len(line)
        depth = 0
        while pos < n:
            char = line[pos]
            if char in "'\"`":
                backslash = self._backslash_escapes and char != "`"
                pos, _ = _read_string(line, pos, char, backslash)
                continue
            if char == "(":
                depth += 1
            elif char == ")":
                if depth == 0:
                    return pos
                depth -= 1
            elif char == "," and depth == 0:
                return pos
            pos += 1
        raise UnparseableRowError("Unterminated expression in values")


class SchemaTracker:
    """Remembers column order from CREATE TABLE declarations seen so far."""

    def __init__(self, backslash_escapes: bool = False) -> None:
        self._backslash_escapes = backslash_escapes
        self._tables: dict[str, tuple[str, ...]] = {}
        self._pending_table: str | None = None
        self._body: list[str] = []
        self._depth = 0

    def feed(self, line: str) -> None:
        if self._pending_table is None:
            match = _CREATE_TABLE_RE.match(line)
            if match is None:
                return
            self._pending_table = normalize_table_name(match.group("table"))
            self._body = []
            self._depth = 1
            line = line[match.end() :]
        self._consume(line)

    def columns_for(self, table: str) -> tuple[str, ...] | None:
        columns = self._tables.get(table)
        if columns is None and "." in table:
            columns = self._tables.get(table.rsplit(".", 1)[-1])
        return columns

    @property
    def tables(self) -> dict[str, tuple[str, ...]]:
        return dict(self._tables)

    def _consume(self, text: str) -> None:
        pos = 0
        n = len(text)
        while pos < n:
            char = text[pos]
            if char in "'\"`":
                end = _find_closing(text, pos, char, self._backslash_escapes and char != "`")
                self._body.append(text[pos:end])
                pos = end
                continue
            if text.startswith("--", pos):
                break
            if char == "(":
                self._depth += 1
            elif char == ")":
                self._depth -= 1
                if self._depth == 0:
                    self._finish()
                    return
            self._body.append(char)
            pos += 1
        self._body.append("\n")

    def _finish(self) -> None:
        table = self._pending_table
        self._pending_table = None
        if table is None:
            return
        columns = tuple(
            column
            for column in (_column_name(part) for part in self._definitions())
            if column is not None
        )
        self._body = []
        if columns:
            self._tables[table] = columns
            short = table.rsplit(".", 1)[-1]
            self._tables[short] = columns

    def _definitions(self) -> list[str]:
        return _split_top_level("".join(self._body), self._backslash_escapes)


class RowExtractor:
    """Turns dump lines into bound Rows, tracking schema and continuations.

    Shared by the rewriter and the detection-only scanner so both see
    exactly the same rows.
    """

    def __init__(self, dialect: DatabaseType = DatabaseType.UNKNOWN) -> None:
        self._lexer = StatementLexer(dialect)
        self._schema = SchemaTracker(backslash_escapes=dialect is DatabaseType.MYSQL)
        self._pending: tuple[str, tuple[str, ...]] | None = None
        self.statements = 0

    @property
    def schema(self) -> SchemaTracker:
        return self._schema

    def extract(self, line: str) -> list[Row]:
        """Rows inserted by *line* (without its line ending); [] for other lines.

        Raises:
            UnparseableRowError: if the line is a data statement that cannot be resolved.
            MissingTableContextError: if no column order is known for the table.
        """
        self._schema.feed(line)
        pending, self._pending = self._pending, None
        if pending is not None and line.lstrip().startswith("("):
            table, columns = pending
            try:
                tuples, continues = self._lexer.scan_values(line)
            except UnparseableRowError:
                # Later tuple lines of the same statement still need their context.
                self._pending = pending
                raise
            if continues:
                self._pending = pending
            return _bind(table, columns, tuples)

        statement = self._lexer.parse_insert(line)
        if statement is None:
            return []
        columns = statement.columns or self._schema.columns_for(statement.table)
        if columns is None:
            raise MissingTableContextError(
                f"No column list known for table '{statement.table}'"
            )
        if statement.continues:
            self._pending = (statement.table, columns)
        rows = _bind(statement.table, columns, statement.tuples)
        self.statements += 1
        return rows


def _bind(
    table: str,
    columns: tuple[str, ...],
    tuples: tuple[tuple[LiteralSpan, ...], ...],
) -> list[Row]:
    rows: list[Row] = []
    for values in tuples:
        if len(values) != len(columns):
            raise UnparseableRowError(
                f"{len(values)} values for {len(columns)} columns of '{table}'"
            )
        rows.append(Row(table=table, columns=columns, values=values))
    return rows


def _skip_ws(line: str, pos: int) -> int:
    n = len(line)
    while pos < n and line[pos].isspace():
        pos += 1
    return pos


def _read_string(line: str, start: int, quote: str, backslash: bool) -> tuple[int, str]:
    """Read the quoted literal opening at *start*; return (end, decoded)."""
    n = len(line)
    out: list[str] = []
    pos = start + 1
    while pos < n:
        char = line[pos]
        if backslash and char == "\\":
            if pos + 1 >= n:
                raise UnparseableRowError("Dangling backslash in string literal")
            escaped = line[pos + 1]
            if escaped in _BACKSLASH_KEEP:
                out.append("\\" + escaped)
            else:
                out.append(_BACKSLASH_DECODE.get(escaped, escaped))
            pos += 2
            continue
        if char == quote:
            if pos + 1 < n and line[pos + 1] == quote:
                out.append(quote)
                pos += 2
                continue
            return pos + 1, "".join(out)
        out.append(char)
        pos += 1
    raise UnparseableRowError("Unterminated string literal")


def _find_closing(text: str, start: int, quote: str, backslash: bool = False) -> int:
    """End of a quoted run inside DDL; unterminated runs extend to line end."""
    pos = start + 1
    n = len(text)
    while pos < n:
        if backslash and text[pos] == "\\":
            pos += 2
            continue
        if text[pos] == quote:
            if pos + 1 < n and text[pos + 1] == quote:
                pos += 2
                continue
            return pos + 1
        pos += 1
    return n


def _split_top_level(body: str, backslash: bool = False) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    pos = 0
    n = len(body)
    while pos < n:
        char = body[pos]
        if char in "'\"`":
            end = _find_closing(body, pos, char, backslash and char != "`")
            current.append(body[pos:end])
            pos = end
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            pos += 1
            continue
        current.append(char)
        pos += 1
    parts.append("".join(current))
    return parts


def _column_name(definition: str) -> str | None:
    text = definition.strip()
    match = _IDENT_RE.match(text)
    if match is None:
        return None
    ident = match.group(0)
    if ident[0] not in "\"`[" and ident.upper() in _CONSTRAINT_KEYWORDS:
        return None
    return unquote_identifier(ident)
