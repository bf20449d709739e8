import io
import re
from collections.abc import Callable

import pytest

from scrub_db.config.models import RunConfig
from scrub_db.detection.dialect import DialectDetector
from scrub_db.rewriter.models import RewriteStats
from scrub_db.rewriter.rewriter import build_rewriter

_LITERAL_RE = re.compile(r"'((?:[^'\\]|''|\\.)*)'")

RunRewrite = Callable[..., tuple[str, RewriteStats]]


def string_literals(line: str) -> list[str]:
    """Raw contents of the single-quoted literals on *line*, in order."""
    return _LITERAL_RE.findall(line)


@pytest.fixture()
def run_rewrite() -> RunRewrite:
    """Rewrite a whole dump the way the CLI does: detect, then stream."""

    def _run(dump: str, config: RunConfig | None = None) -> tuple[str, RewriteStats]:
        dialect = DialectDetector().detect(sql_text=dump)
        rewriter = build_rewriter(config or RunConfig(), dialect)
        output = "".join(rewriter.rewrite(io.StringIO(dump, newline="")))
        return output, rewriter.stats

    return _run


@pytest.fixture()
def literals() -> Callable[[str], list[str]]:
    return string_literals
