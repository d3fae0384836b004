"""Hashing helpers for document identity and scoped class names."""

from __future__ import annotations

import hashlib
from typing import Iterable

__all__ = [
    "DEFAULT_HASH_ALGORITHM",
    "content_hash",
    "rolling_hash",
    "short_hash",
    "to_base36",
]


DEFAULT_HASH_ALGORITHM = "sha256"
_DELIMITER = b"\x00"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def content_hash(
    text: str,
    *,
    compiler_version: str,
    algorithm: str = DEFAULT_HASH_ALGORITHM,
    extra: Iterable[str] = (),
) -> str:
    """Hash a document, salted with the compiler version and ``extra`` parts."""

    digest = hashlib.new(algorithm)
    digest.update(compiler_version.encode("utf-8"))
    digest.update(_DELIMITER)
    for payload in extra:
        digest.update(payload.encode("utf-8"))
        digest.update(_DELIMITER)
    digest.update(text.encode("utf-8"))
    return digest.hexdigest()


def rolling_hash(text: str) -> int:
    """Return the signed 32-bit ``h = h * 31 + c`` hash over UTF-16 code units.

    Matches ``(h << 5) - h + s.charCodeAt(i)`` with ``h |= 0`` in JavaScript,
    so scoped names agree with the ones produced by the JS toolchain.

    Example:
        >>> rolling_hash("a")
        97
    """

    value = 0
    encoded = text.encode("utf-16-le")
    for index in range(0, len(encoded), 2):
        unit = encoded[index] | (encoded[index + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return value


def to_base36(value: int) -> str:
    """Render a non-negative integer in lowercase base 36.

    Example:
        >>> to_base36(35)
        'z'
    """

    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def short_hash(text: str, *, length: int = 5) -> str:
    """Return the first ``length`` base-36 digits of ``|rolling_hash(text)|``."""

    return to_base36(abs(rolling_hash(text)))[:length]
