from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from scrub_db.logging.logger import Log

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def read_fixture(name: str) -> str:
    """Read a fixture dump exactly as stored (line endings untouched)."""
    with open(FIXTURES_DIR / name, encoding="utf-8", newline="") as handle:
        return handle.read()


@pytest.fixture()
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture()
def postgres_dump() -> str:
    return read_fixture("postgres.sql")


@pytest.fixture()
def mysql_dump() -> str:
    return read_fixture("mysql.sql")


@pytest.fixture()
def sqlite_dump() -> str:
    return read_fixture("sqlite.sql")


@pytest.fixture()
def generic_dump() -> str:
    return read_fixture("generic.sql")


@pytest.fixture()
def write_config(tmp_path: Path) -> Callable[[str], Path]:
    """Write YAML text to a config file under tmp_path and return its path."""

    def _write(text: str, name: str = "scrub-db.yaml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in (
        "SCRUB_DB_LOG_LEVEL",
        "SCRUB_DB_CONFIG_PATH",
        "SCRUB_DB_DIALECT",
        "SCRUB_DB_DETECT_SAMPLE_LINES",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    Log.reset()
