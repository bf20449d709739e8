"""Loads the YAML run configuration and validates it into a RunConfig."""

from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from scrub_db.anonymization.exceptions import UnresolvableMethodError
from scrub_db.anonymization.models import AnonymizationMethod
from scrub_db.config.exceptions import ConfigError
from scrub_db.config.models import RunConfig
from scrub_db.logging.logger import Log

CONFIG_FILENAMES = ("scrub-db.yaml", ".scrub-db.yaml", "scrub-db.yml", ".scrub-db.yml")

_KNOWN_KEYS = frozenset({"auto_detect", "preserve_relationships", "custom_rules"})
_IDENTIFIER_QUOTES = "\"`[]"


def find_config_file(directory: Path | None = None) -> Path | None:
    """Return the first conventional config file present in *directory*."""
    base = directory if directory is not None else Path.cwd()
    for name in CONFIG_FILENAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None, directory: Path | None = None) -> RunConfig:
    """Load a RunConfig from *path*, or from a discovered file, or defaults.

    Raises:
        ConfigError: if the file is unreadable, not YAML, or structurally invalid.
        UnresolvableMethodError: if a rule names an unknown method.
    """
    if path is None:
        path = find_config_file(directory)
        if path is None:
            Log.warning("No config file found, using defaults")
            return RunConfig()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    config = validate_and_build(data)
    Log.info(f"Using config {path}: {len(config.custom_rules)} custom rules")
    return config


def validate_and_build(data: Any) -> RunConfig:
    """Validate a parsed YAML document and build a RunConfig.

    Raises:
        ConfigError: on any structural violation.
        UnresolvableMethodError: if a rule names an unknown method.
    """
    if data is None:
        return RunConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config document must be a mapping")
    for key in sorted(set(data) - _KNOWN_KEYS, key=str):
        Log.warning(f"Ignoring unknown config key: {key}")
    return RunConfig(
        auto_detect=_build_flag(data, "auto_detect"),
        preserve_relationships=_build_flag(data, "preserve_relationships"),
        custom_rules=_build_rules(data.get("custom_rules")),
    )


def normalize_rule_key(key: str) -> str:
    """Lowercase a rule key and strip identifier quotes from each part."""
    parts = [part.strip().strip(_IDENTIFIER_QUOTES) for part in key.split(".")]
    return ".".join(parts).lower()


def _build_flag(data: dict[str, Any], name: str) -> bool:
    value = data.get(name, True)
    if not isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a boolean, got {value!r}")
    return value


def _build_rules(raw: Any) -> MappingProxyType[str, AnonymizationMethod]:
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, dict):
        raise ConfigError("'custom_rules' must be a mapping of column to method")
    rules: dict[str, AnonymizationMethod] = {}
    for key, name in raw.items():
        if not isinstance(key, str) or not key.strip():
            raise ConfigError(f"Rule key must be a non-empty string, got {key!r}")
        if not isinstance(name, str):
            raise UnresolvableMethodError(repr(name), key=key)
        try:
            rules[normalize_rule_key(key)] = AnonymizationMethod.from_name(name)
        except UnresolvableMethodError as exc:
            raise UnresolvableMethodError(exc.name, key=key) from None
    return MappingProxyType(rules)
