"""HMAC-based One-Time Password generation (RFC 4226)."""

from __future__ import annotations

import struct
from hmac import compare_digest

from otpgate.auth.digest import SHA1, HashAlgorithm
from otpgate.auth.mac import hmac_digest
from otpgate.errors import ValidationError

MAX_COUNTER = 2**64 - 1
MAX_DIGITS = 10


def dynamic_truncate(mac: bytes) -> int:
    """Extract the 31-bit value selected by the low nibble of the last byte."""
    offset = mac[-1] & 0x0F
    return (
        (mac[offset] & 0x7F) << 24
        | mac[offset + 1] << 16
        | mac[offset + 2] << 8
        | mac[offset + 3]
    )


def hotp(secret: bytes, counter: int, digits: int = 6, algorithm: HashAlgorithm = SHA1) -> str:
    """Return the zero-padded ``digits``-long HOTP value for ``counter``."""
    if not 0 <= counter <= MAX_COUNTER:
        raise ValidationError("HOTP counter must fit in an unsigned 64-bit integer")
    if not 1 <= digits <= MAX_DIGITS:
        raise ValidationError(f"HOTP digits must be between 1 and {MAX_DIGITS}")

    mac = hmac_digest(secret, struct.pack(">Q", counter), algorithm)
    code = dynamic_truncate(mac) % 10**digits
    return str(code).zfill(digits)


def codes_equal(supplied: str, expected: str) -> bool:
    """Constant-time comparison of two numeric codes."""
    return compare_digest(supplied.encode("ascii", "replace"), expected.encode("ascii"))


def verify(secret: bytes, code: str, counter: int, digits: int = 6, algorithm: HashAlgorithm = SHA1) -> bool:
    return codes_equal(code, hotp(secret, counter, digits, algorithm))
