"""Two-tier PII classifier: column-name tokens first, then value patterns.

Categories are always tried in a fixed priority order (Email, SSN,
CreditCard, Phone, Address, Name), so a column like ``home_phone_address``
resolves reproducibly to the first matching category.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import ClassVar

from scrub_db.detection.models import NO_MATCH, ClassificationResult, PIICategory


@dataclass(frozen=True)
class _NameRule:
    """Column-name tokens that identify one category."""

    category: PIICategory
    contains: tuple[str, ...] = ()  # any token containing one of these
    tokens: tuple[str, ...] = ()  # any token equal to one of these
    joined: tuple[str, ...] = ()  # separator-stripped name containing one of these
    excluded: tuple[str, ...] = ()  # any token equal to one of these vetoes the rule


class PIIClassifier:
    """Scores a column name (and optionally a sample value) against PII categories."""

    NAME_CONFIDENCE: ClassVar[float] = 0.95
    DATA_CONFIDENCE: ClassVar[float] = 0.80

    _NAME_RULES: ClassVar[tuple[_NameRule, ...]] = (
        _NameRule(PIICategory.EMAIL, contains=("email",), tokens=("mail",)),
        _NameRule(PIICategory.SSN, tokens=("ssn", "social"), joined=("socialsecurity",)),
        _NameRule(
            PIICategory.CREDIT_CARD,
            tokens=("card", "cc", "ccn"),
            joined=("creditcard", "cardnumber", "ccnumber", "ccnum"),
        ),
        _NameRule(
            PIICategory.PHONE,
            contains=("phone",),
            tokens=("mobile", "tel", "cell", "fax"),
        ),
        _NameRule(
            PIICategory.ADDRESS,
            contains=("address",),
            tokens=("street", "addr"),
            excluded=("ip", "mac", "remote", "ipv4", "ipv6"),
        ),
        _NameRule(
            PIICategory.NAME,
            contains=("name",),
            excluded=("file", "host", "domain", "table", "schema", "column", "database", "db"),
        ),
    )

    _DATA_RULES: ClassVar[tuple[tuple[PIICategory, re.Pattern[str]], ...]] = (
        (
            PIICategory.EMAIL,
            re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"),
        ),
        (PIICategory.SSN, re.compile(r"\d{3}-\d{2}-\d{4}")),
        (
            PIICategory.CREDIT_CARD,
            re.compile(r"(?:\d{4}[- ]?){3}\d{4}|\d{4}[- ]?\d{6}[- ]?\d{5}"),
        ),
        (
            PIICategory.PHONE,
            re.compile(
                r"(?:\+?\d{1,3}[-.\s]?)?(?:\(\d{3}\)|\d{3})[-.\s]?\d{3}[-.\s]?\d{4}"
                r"(?:\s*(?:x|ext\.?)\s*\d{1,6})?",
                re.IGNORECASE,
            ),
        ),
        (
            PIICategory.ADDRESS,
            re.compile(
                r"\d{1,6}\s+(?:[A-Za-z0-9.'\-]+\s+){1,5}"
                r"(?:St|Street|Ave|Avenue|Rd|Road|Blvd|Boulevard|Ln|Lane|Dr|Drive"
                r"|Ct|Court|Way|Pl|Place|Ter|Terrace|Pkwy|Parkway)\.?(?:,?\s.*)?",
                re.IGNORECASE,
            ),
        ),
    )

    def __init__(self) -> None:
        self._name_cache: dict[str, ClassificationResult | None] = {}

    def classify(self, column_name: str, sample: str | None = None) -> ClassificationResult:
        """Classify a column, preferring the name tier over the data tier."""
        by_name = self.classify_name(column_name)
        if by_name is not None:
            return by_name
        if sample is not None:
            by_value = self.classify_value(sample)
            if by_value is not None:
                return by_value
        return NO_MATCH

    def classify_name(self, column_name: str) -> ClassificationResult | None:
        """Name tier only; returns None when no category token matches."""
        if column_name not in self._name_cache:
            self._name_cache[column_name] = self._match_name(column_name)
        return self._name_cache[column_name]

    def classify_value(self, value: str) -> ClassificationResult | None:
        """Data tier only; returns None when no structural pattern matches."""
        candidate = value.strip()
        if not candidate:
            return None
        for category, pattern in self._DATA_RULES:
            if pattern.fullmatch(candidate):
                return ClassificationResult(category=category, confidence=self.DATA_CONFIDENCE)
        return None

    def _match_name(self, column_name: str) -> ClassificationResult | None:
        tokens = tokenize_identifier(column_name)
        if not tokens:
            return None
        joined = "".join(tokens)
        for rule in self._NAME_RULES:
            if _is_excluded(rule, tokens):
                continue
            if (
                any(needle in token for token in tokens for needle in rule.contains)
                or any(token in rule.tokens for token in tokens)
                or any(needle in joined for needle in rule.joined)
            ):
                return ClassificationResult(category=rule.category, confidence=self.NAME_CONFIDENCE)
        return None


def _is_excluded(rule: _NameRule, tokens: list[str]) -> bool:
    # "hostname" and "ipaddress" are vetoed just like "host_name" and "ip_address".
    for token in tokens:
        for excluded in rule.excluded:
            if token == excluded:
                return True
            if token.startswith(excluded) and token[len(excluded) :] in rule.contains:
                return True
    return False


_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATOR_RE = re.compile(r"[^0-9a-z]+")


def tokenize_identifier(name: str) -> list[str]:
    """Split an identifier into lowercase tokens on separators and camelCase.

    ``"customerEmail"``, ``"customer_email"`` and ``"Customer-Email"`` all
    yield ``["customer", "email"]``. Table qualifiers are dropped.
    """
    normalized = unicodedata.normalize("NFKC", name).strip().strip("\"`[]")
    normalized = normalized.rsplit(".", 1)[-1].strip("\"`[]")
    split = _CAMEL_RE.sub(r"\1_\2", normalized).lower()
    return [token for token in _SEPARATOR_RE.split(split) if token]
