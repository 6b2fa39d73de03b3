"""otpauth:// provisioning URIs and secret masking.

URI layout (Key URI Format, consumed by authenticator apps)::

    otpauth://totp/{issuer}:{account}?secret=...&issuer=...&algorithm=SHA1&digits=6&period=30
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qsl, quote, unquote, urlsplit

from otpgate.auth import base32
from otpgate.errors import ValidationError

_ALGORITHMS = ("SHA1", "SHA256", "SHA512")


@dataclass(frozen=True)
class ProvisioningUri:
    secret: str
    account: str
    issuer: str | None = None
    algorithm: str = "SHA1"
    digits: int = 6
    period: int = 30

    def __repr__(self) -> str:
        return (
            f"ProvisioningUri(account={self.account!r}, issuer={self.issuer!r}, "
            f"algorithm={self.algorithm!r}, digits={self.digits}, period={self.period})"
        )


def build_uri(
    secret: str,
    account: str,
    issuer: str,
    algorithm: str = "SHA1",
    digits: int = 6,
    period: int = 30,
) -> str:
    label = f"{quote(issuer, safe='')}:{quote(account, safe='@')}"
    query = "&".join(
        [
            f"secret={secret}",
            f"issuer={quote(issuer, safe='')}",
            f"algorithm={algorithm}",
            f"digits={digits}",
            f"period={period}",
        ]
    )
    return f"otpauth://totp/{label}?{query}"


def parse_uri(uri: str) -> ProvisioningUri:
    """Parse and validate a TOTP provisioning URI."""
    parts = urlsplit(uri)
    if parts.scheme != "otpauth":
        raise ValidationError("Not an otpauth URI")
    if parts.netloc != "totp":
        raise ValidationError("Only totp provisioning URIs are supported")

    label = unquote(parts.path.lstrip("/"))
    issuer: str | None = None
    account = label
    if ":" in label:
        issuer, account = (piece.strip() for piece in label.split(":", 1))
    if not account:
        raise ValidationError("Provisioning URI has no account name")

    params = dict(parse_qsl(parts.query))
    secret = params.get("secret", "")
    if not secret:
        raise ValidationError("No secret found in URI")
    base32.decode(secret)

    query_issuer = params.get("issuer")
    if query_issuer is not None:
        if issuer is not None and issuer != query_issuer:
            raise ValidationError("If issuer is specified in both label and parameters, it should be equal.")
        issuer = query_issuer

    algorithm = params.get("algorithm", "SHA1").upper()
    if algorithm not in _ALGORITHMS:
        raise ValidationError("Invalid value for algorithm, must be SHA1, SHA256 or SHA512")

    try:
        digits = int(params.get("digits", 6))
        period = int(params.get("period", 30))
    except ValueError as exc:
        raise ValidationError("digits and period must be integers") from exc
    if digits not in (6, 7, 8):
        raise ValidationError("Digits may only be 6, 7, or 8")
    if period <= 0:
        raise ValidationError("Period must be positive")

    return ProvisioningUri(
        secret=secret,
        account=account,
        issuer=issuer,
        algorithm=algorithm,
        digits=digits,
        period=period,
    )


def mask_secret(secret: str, visible: int = 4, mask_char: str = "*") -> str:
    """Hide all but the last ``visible`` characters of a secret."""
    if len(secret) <= visible:
        return mask_char * len(secret)
    return mask_char * (len(secret) - visible) + secret[-visible:]
