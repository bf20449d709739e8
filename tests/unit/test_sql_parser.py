import pytest

from scrub_db.detection.models import DatabaseType
from scrub_db.rewriter.exceptions import MissingTableContextError, UnparseableRowError
from scrub_db.rewriter.models import LiteralSpan, ValueKind
from scrub_db.rewriter.sql_parser import (
    RowExtractor,
    SchemaTracker,
    StatementLexer,
    encode_literal,
    normalize_table_name,
    split_line_ending,
    unquote_identifier,
)


class TestIdentifiers:
    @pytest.mark.parametrize(
        ("ident", "expected"),
        [
            ("users", "users"),
            ('"Users"', "Users"),
            ('"say ""hi"""', 'say "hi"'),
            ("`users`", "users"),
            ("[users]", "users"),
        ],
    )
    def test_unquote(self, ident: str, expected: str) -> None:
        assert unquote_identifier(ident) == expected

    def test_normalize_table_name(self) -> None:
        assert normalize_table_name('"Public"."Users"') == "public.users"
        assert normalize_table_name("`shop` . `Orders`") == "shop.orders"


class TestSplitLineEnding:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("abc\n", ("abc", "\n")),
            ("abc\r\n", ("abc", "\r\n")),
            ("abc", ("abc", "")),
            ("", ("", "")),
        ],
    )
    def test_split(self, line: str, expected: tuple[str, str]) -> None:
        assert split_line_ending(line) == expected


class TestParseInsert:
    def test_not_an_insert(self) -> None:
        assert StatementLexer().parse_insert("CREATE TABLE users (id int);") is None

    def test_basic_insert(self) -> None:
        stmt = StatementLexer().parse_insert(
            "INSERT INTO users (id, email) VALUES (1, 'a@b.com');"
        )
        assert stmt is not None
        assert stmt.table == "users"
        assert stmt.columns == ("id", "email")
        assert len(stmt.tuples) == 1
        number, email = stmt.tuples[0]
        assert number.kind is ValueKind.OTHER
        assert number.text == "1"
        assert email.kind is ValueKind.STRING
        assert email.value == "a@b.com"
        assert email.text == "'a@b.com'"

    def test_spans_point_into_line(self) -> None:
        line = "INSERT INTO t (a, b) VALUES ('x', 'yy');"
        stmt = StatementLexer().parse_insert(line)
        assert stmt is not None
        for span in stmt.tuples[0]:
            assert line[span.start : span.end] == span.text

    def test_multi_row_insert(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t VALUES (1,'a'),(2,'b'), (3, 'c');")
        assert stmt is not None
        assert stmt.columns is None
        assert [row[1].value for row in stmt.tuples] == ["a", "b", "c"]

    def test_quoted_identifiers(self) -> None:
        stmt = StatementLexer().parse_insert(
            'INSERT INTO "Public"."Users" ("Email", [Phone]) VALUES (\'a\', \'b\');'
        )
        assert stmt is not None
        assert stmt.table == "public.users"
        assert stmt.columns == ("Email", "Phone")

    @pytest.mark.parametrize(
        "prefix",
        ["insert into", "INSERT IGNORE INTO", "REPLACE INTO", "INSERT OR REPLACE INTO"],
    )
    def test_statement_variants(self, prefix: str) -> None:
        stmt = StatementLexer().parse_insert(f"{prefix} t (a) VALUES ('x');")
        assert stmt is not None
        assert stmt.tuples[0][0].value == "x"

    def test_null_and_expressions(self) -> None:
        stmt = StatementLexer().parse_insert(
            "INSERT INTO t (a, b, c, d) VALUES (NULL, now(), 'x'::text, coalesce('y', 'z'));"
        )
        assert stmt is not None
        kinds = [span.kind for span in stmt.tuples[0]]
        assert kinds == [ValueKind.NULL, ValueKind.OTHER, ValueKind.OTHER, ValueKind.OTHER]
        assert stmt.tuples[0][2].text == "'x'::text"

    def test_doubled_quotes_decoded(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t (a) VALUES ('O''Brien');")
        assert stmt is not None
        assert stmt.tuples[0][0].value == "O'Brien"

    def test_values_with_delimiters_inside(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t (a, b) VALUES ('x), (y', 'z;');")
        assert stmt is not None
        assert [span.value for span in stmt.tuples[0]] == ["x), (y", "z;"]

    def test_trailing_comment_allowed(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t (a) VALUES ('x'); -- seed row")
        assert stmt is not None

    def test_on_conflict_clause(self) -> None:
        stmt = StatementLexer().parse_insert(
            "INSERT INTO t (a) VALUES ('x') ON CONFLICT DO NOTHING;"
        )
        assert stmt is not None
        assert stmt.tuples[0][0].value == "x"

    def test_continuation_detected(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t (a) VALUES ('x'),")
        assert stmt is not None
        assert stmt.continues

    def test_values_on_next_line(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t (a) VALUES")
        assert stmt is not None
        assert stmt.continues
        assert stmt.tuples == ()

    @pytest.mark.parametrize(
        "line",
        [
            "INSERT INTO t (a) VALUES ('unterminated);",
            "INSERT INTO t (a) VALUES ('x') garbage;",
            "INSERT INTO t (a) VALUES ('x'); DROP TABLE t;",
            "INSERT INTO t () VALUES ('x');",
            "INSERT INTO t (a) VALUES ('x', ;",
        ],
    )
    def test_unparseable(self, line: str) -> None:
        with pytest.raises(UnparseableRowError):
            StatementLexer().parse_insert(line)


class TestEscaping:
    def test_backslash_is_literal_outside_mysql(self) -> None:
        stmt = StatementLexer(DatabaseType.POSTGRESQL).parse_insert(
            r"INSERT INTO t (a) VALUES ('C:\path\');"
        )
        assert stmt is not None
        assert stmt.tuples[0][0].value == "C:\\path\\"

    def test_mysql_backslash_escapes(self) -> None:
        stmt = StatementLexer(DatabaseType.MYSQL).parse_insert(
            r"INSERT INTO t (a) VALUES ('it\'s\nfine\\ 100\%');"
        )
        assert stmt is not None
        span = stmt.tuples[0][0]
        assert span.value == "it's\nfine\\ 100\\%"
        assert span.backslash_escapes

    def test_mysql_double_quoted_string(self) -> None:
        stmt = StatementLexer(DatabaseType.MYSQL).parse_insert(
            'INSERT INTO t (a) VALUES ("a@b.com");'
        )
        assert stmt is not None
        span = stmt.tuples[0][0]
        assert span.kind is ValueKind.STRING
        assert span.quote == '"'

    def test_e_string_uses_backslash_escapes(self) -> None:
        stmt = StatementLexer(DatabaseType.POSTGRESQL).parse_insert(
            r"INSERT INTO t (a) VALUES (E'line\none');"
        )
        assert stmt is not None
        span = stmt.tuples[0][0]
        assert span.prefix == "E"
        assert span.value == "line\none"

    def test_national_prefix(self) -> None:
        stmt = StatementLexer().parse_insert("INSERT INTO t (a) VALUES (N'Zoë');")
        assert stmt is not None
        assert stmt.tuples[0][0].prefix == "N"
        assert stmt.tuples[0][0].value == "Zoë"


class TestEncodeLiteral:
    def test_doubles_quotes(self) -> None:
        span = LiteralSpan(start=0, end=0, kind=ValueKind.STRING, text="''")
        assert encode_literal("O'Brien", span) == "'O''Brien'"

    def test_keeps_prefix_and_quote(self) -> None:
        span = LiteralSpan(
            start=0, end=0, kind=ValueKind.STRING, text='N""', quote='"', prefix="N"
        )
        assert encode_literal('say "hi"', span) == 'N"say ""hi"""'

    def test_backslash_mode(self) -> None:
        span = LiteralSpan(
            start=0, end=0, kind=ValueKind.STRING, text="''", backslash_escapes=True
        )
        assert encode_literal("a\\b\nc\0", span) == "'a\\\\b\\nc\\0'"

    def test_backslashes_verbatim_in_standard_mode(self) -> None:
        span = LiteralSpan(start=0, end=0, kind=ValueKind.STRING, text="''")
        assert encode_literal("C:\\dir", span) == "'C:\\dir'"


class TestSchemaTracker:
    def test_single_line_declaration(self) -> None:
        tracker = SchemaTracker()
        tracker.feed("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT);")
        assert tracker.columns_for("users") == ("id", "name", "email")

    def test_multi_line_declaration_with_constraints(self) -> None:
        tracker = SchemaTracker()
        for line in [
            "CREATE TABLE IF NOT EXISTS `shop`.`customers` (",
            "  `id` int NOT NULL AUTO_INCREMENT,",
            "  `email` varchar(255) DEFAULT 'n/a, really',",
            "  `price` decimal(10,2), -- money",
            "  PRIMARY KEY (`id`),",
            "  KEY `idx_email` (`email`),",
            "  CONSTRAINT `fk` FOREIGN KEY (`id`) REFERENCES other (`id`)",
            ") ENGINE=InnoDB;",
        ]:
            tracker.feed(line)
        assert tracker.columns_for("shop.customers") == ("id", "email", "price")

    def test_short_name_lookup(self) -> None:
        tracker = SchemaTracker()
        tracker.feed("CREATE TABLE public.users (id int, email text);")
        assert tracker.columns_for("users") == ("id", "email")
        assert tracker.columns_for("other_schema.users") == ("id", "email")

    def test_unknown_table(self) -> None:
        assert SchemaTracker().columns_for("users") is None

    def test_later_declaration_replaces_earlier(self) -> None:
        tracker = SchemaTracker()
        tracker.feed("CREATE TABLE t (a int);")
        tracker.feed("CREATE TEMP TABLE t (b int, c int);")
        assert tracker.columns_for("t") == ("b", "c")

    def test_backslash_quote_in_comment(self) -> None:
        tracker = SchemaTracker(backslash_escapes=True)
        for line in [
            "CREATE TABLE `users` (",
            "  `id` int NOT NULL,",
            "  `note` text COMMENT 'user\\'s note',",
            "  `email` varchar(255) DEFAULT NULL",
            ") ENGINE=InnoDB;",
        ]:
            tracker.feed(line)
        assert tracker.columns_for("users") == ("id", "note", "email")

    def test_backslash_is_plain_without_escapes(self) -> None:
        tracker = SchemaTracker()
        tracker.feed("CREATE TABLE t (path text DEFAULT 'C:\\', email text);")
        assert tracker.columns_for("t") == ("path", "email")


class TestRowExtractor:
    def test_binds_values_to_columns(self) -> None:
        rows = RowExtractor().extract("INSERT INTO users (id, email) VALUES (1, 'a@b.com');")
        assert len(rows) == 1
        assert rows[0].table == "users"
        assert [(column, span.text) for column, span in rows[0].cells()] == [
            ("id", "1"),
            ("email", "'a@b.com'"),
        ]

    def test_uses_declared_columns(self) -> None:
        extractor = RowExtractor()
        extractor.extract("CREATE TABLE users (id int, email text);")
        rows = extractor.extract("INSERT INTO users VALUES (1, 'a@b.com');")
        assert rows[0].columns == ("id", "email")

    def test_missing_table_context(self) -> None:
        with pytest.raises(MissingTableContextError):
            RowExtractor().extract("INSERT INTO users VALUES (1, 'a@b.com');")

    def test_column_count_mismatch(self) -> None:
        with pytest.raises(UnparseableRowError, match="2 values for 1 columns"):
            RowExtractor().extract("INSERT INTO t (a) VALUES (1, 'x');")

    def test_continuation_lines(self) -> None:
        extractor = RowExtractor()
        first = extractor.extract("INSERT INTO t (id, email) VALUES")
        second = extractor.extract("  (1, 'a@b.com'),")
        third = extractor.extract("  (2, 'c@d.com');")
        assert first == []
        assert [row.values[1].value for row in second + third] == ["a@b.com", "c@d.com"]
        assert third[0].columns == ("id", "email")

    def test_continuation_ends_with_statement(self) -> None:
        extractor = RowExtractor()
        extractor.extract("INSERT INTO t (a) VALUES ('x'),")
        extractor.extract("('y');")
        assert extractor.extract("(not a row)") == []

    def test_other_lines_yield_nothing(self) -> None:
        assert RowExtractor().extract("SET statement_timeout = 0;") == []

    def test_unparseable_continuation_keeps_context(self) -> None:
        extractor = RowExtractor()
        extractor.extract("INSERT INTO users (id, email) VALUES")
        extractor.extract("(1, 'a@example.com'),")
        with pytest.raises(UnparseableRowError):
            extractor.extract("(2, 'oops),")
        rows = extractor.extract("(3, 'carol@example.com');")
        assert [row.values[1].value for row in rows] == ["carol@example.com"]
        assert extractor.extract("(4, 'late@example.com');") == []

    def test_mysql_columns_from_declaration_with_escaped_comment(self) -> None:
        extractor = RowExtractor(DatabaseType.MYSQL)
        for line in [
            "CREATE TABLE `users` (",
            "  `id` int NOT NULL,",
            "  `note` text COMMENT 'user\\'s note',",
            "  `email` varchar(255) DEFAULT NULL",
            ") ENGINE=InnoDB;",
        ]:
            extractor.extract(line)
        rows = extractor.extract("INSERT INTO `users` VALUES (1,'hi','bob@example.com');")
        assert rows[0].columns == ("id", "note", "email")
        assert rows[0].values[2].value == "bob@example.com"

    def test_counts_statements_not_continuation_lines(self) -> None:
        extractor = RowExtractor()
        extractor.extract("INSERT INTO t (a) VALUES")
        extractor.extract("('x'),")
        extractor.extract("('y');")
        extractor.extract("INSERT INTO t (a) VALUES ('z');")
        assert extractor.statements == 2
