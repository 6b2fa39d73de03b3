"""TOTP (Time-based One-Time Password, RFC 6238) for 2FA.

The counter is ``floor(unix_time / period)``; verification accepts codes from
``window`` steps either side of it to absorb client clock drift.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass

from otpgate.auth import base32, hotp, provisioning
from otpgate.auth.digest import SHA1, HashAlgorithm
from otpgate.auth.hotp import MAX_DIGITS
from otpgate.errors import ValidationError

DEFAULT_SECRET_BYTES = 20  # 160 bits


@dataclass(frozen=True)
class TotpParams:
    digits: int = 6
    period: int = 30
    window: int = 1
    algorithm: HashAlgorithm = SHA1

    def __post_init__(self) -> None:
        if not 1 <= self.digits <= MAX_DIGITS:
            raise ValidationError(f"TOTP digits must be between 1 and {MAX_DIGITS}")
        if self.period <= 0:
            raise ValidationError("TOTP period must be positive")
        if self.window < 0:
            raise ValidationError("TOTP window must not be negative")


DEFAULT_PARAMS = TotpParams()


def time_counter(unix_time: float, period: int = 30) -> int:
    return int(unix_time // period)


def generate(secret: bytes, unix_time: float, params: TotpParams = DEFAULT_PARAMS) -> str:
    """Code for the time step containing ``unix_time``."""
    return hotp.hotp(secret, time_counter(unix_time, params.period), params.digits, params.algorithm)


def verify(secret: bytes, code: str, unix_time: float, params: TotpParams = DEFAULT_PARAMS) -> bool:
    """Check ``code`` against every step in ``[counter - w, counter + w]``.

    All candidates are compared, so the time taken does not depend on which
    step (if any) matched.
    """
    code = code.strip()
    if len(code) != params.digits or not code.isdigit():
        return False

    counter = time_counter(unix_time, params.period)
    matched = False
    for step in range(counter - params.window, counter + params.window + 1):
        if step < 0:
            continue
        matched |= hotp.verify(secret, code, step, params.digits, params.algorithm)
    return matched


# ---------------------------------------------------------------------------
# Base32 text helpers
# ---------------------------------------------------------------------------


def generate_secret(num_bytes: int = DEFAULT_SECRET_BYTES) -> str:
    """Generate a new TOTP secret (base32-encoded, 32 chars for 160 bits)."""
    if num_bytes < DEFAULT_SECRET_BYTES:
        raise ValidationError("Secrets should be at least 160 bits")
    return base32.encode(secrets.token_bytes(num_bytes))


def get_code(secret: str, unix_time: float | None = None, params: TotpParams = DEFAULT_PARAMS) -> str:
    """Get the TOTP code for a base32 secret (current time by default)."""
    if unix_time is None:
        unix_time = time.time()
    return generate(base32.decode(secret), unix_time, params)


def verify_code(
    secret: str,
    code: str,
    unix_time: float | None = None,
    params: TotpParams = DEFAULT_PARAMS,
) -> bool:
    """Verify a TOTP code against a base32 secret (allows +-window steps)."""
    if unix_time is None:
        unix_time = time.time()
    return verify(base32.decode(secret), code, unix_time, params)


def get_provisioning_uri(
    secret: str,
    username: str,
    issuer: str = "otpgate",
    params: TotpParams = DEFAULT_PARAMS,
) -> str:
    """Get the otpauth:// URI for QR code enrollment."""
    return provisioning.build_uri(
        secret,
        username,
        issuer,
        algorithm=params.algorithm.name,
        digits=params.digits,
        period=params.period,
    )
