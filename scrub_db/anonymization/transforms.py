"""Pure value transformers, one per AnonymizationMethod.

Fake values are drawn from Faker's ``en_US`` corpora. Before each draw the
shared generator is reseeded from the SHA-256 of the input, so the same
input always selects the same fake value without consulting any cache.
"""

from __future__ import annotations

import hashlib
import re
import threading
from collections.abc import Callable
from typing import ClassVar

from faker import Faker

from scrub_db.anonymization.models import AnonymizationMethod

_DIGIT_RE = re.compile(r"\d")


class _SeededFaker:
    """Faker instance whose reseed-and-draw is atomic across threads."""

    _LOCALE: ClassVar[str] = "en_US"

    def __init__(self) -> None:
        self._faker = Faker(self._LOCALE)
        self._lock = threading.Lock()

    def draw(self, seed: int, provider: str) -> str:
        with self._lock:
            self._faker.seed_instance(seed)
            return str(getattr(self._faker, provider)())


_faker = _SeededFaker()


def hash_value(value: str) -> str:
    """Return the SHA-256 hex digest (64 chars) of *value*."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def derive_seed(value: str, salt: str = "") -> int:
    """Derive a 64-bit seed from the hash of *value* (optionally salted)."""
    return int(hash_value(salt + value)[:16], 16)


def fake_email(value: str, salt: str = "") -> str:
    return _faker.draw(derive_seed(value, salt), "safe_email")


def fake_name(value: str, salt: str = "") -> str:
    return _faker.draw(derive_seed(value, salt), "name")


def fake_phone(value: str, salt: str = "") -> str:
    return _faker.draw(derive_seed(value, salt), "phone_number")


def fake_address(value: str, salt: str = "") -> str:
    return _faker.draw(derive_seed(value, salt), "street_address")


def mask_credit_card(value: str) -> str:
    """Mask every digit except the last four, keeping separators in place.

    With fewer than four digits, all of them are masked.
    """
    positions = [m.start() for m in _DIGIT_RE.finditer(value)]
    visible = set(positions[-4:]) if len(positions) >= 4 else set()
    chars = list(value)
    for pos in positions:
        if pos not in visible:
            chars[pos] = "*"
    return "".join(chars)


def mask_ssn(value: str) -> str:
    """Mask every digit; non-digit separators stay where they are."""
    return _DIGIT_RE.sub("*", value)


def skip(value: str) -> str:
    return value


_FAKERS: dict[AnonymizationMethod, Callable[[str, str], str]] = {
    AnonymizationMethod.FAKE_EMAIL: fake_email,
    AnonymizationMethod.FAKE_NAME: fake_name,
    AnonymizationMethod.FAKE_PHONE: fake_phone,
    AnonymizationMethod.FAKE_ADDRESS: fake_address,
}

_PLAIN: dict[AnonymizationMethod, Callable[[str], str]] = {
    AnonymizationMethod.MASK_CREDIT_CARD: mask_credit_card,
    AnonymizationMethod.MASK_SSN: mask_ssn,
    AnonymizationMethod.HASH: hash_value,
    AnonymizationMethod.SKIP: skip,
}


def transform(method: AnonymizationMethod, value: str, salt: str = "") -> str:
    """Apply *method* to *value*.

    *salt* only affects the fake-value methods; hashing and masking are
    always deterministic.
    """
    faker_fn = _FAKERS.get(method)
    if faker_fn is not None:
        return faker_fn(value, salt)
    return _PLAIN[method](value)
