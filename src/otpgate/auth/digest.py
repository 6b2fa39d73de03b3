"""Hash algorithm capability consumed by the HMAC/HOTP/TOTP layer.

The protocol code only needs a one-shot ``digest`` plus the block and output
sizes, so both the built-in SHA-1 and any :mod:`hashlib` algorithm fit.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from otpgate.auth import sha1 as _sha1


class DigestBackend(StrEnum):
    BUILTIN = "builtin"
    HASHLIB = "hashlib"


class HashAlgorithm(Protocol):
    name: str  # otpauth "algorithm" parameter, e.g. "SHA1"
    digest_size: int
    block_size: int

    def digest(self, data: bytes) -> bytes: ...


@dataclass(frozen=True)
class BuiltinSha1:
    name: str = "SHA1"
    digest_size: int = _sha1.DIGEST_SIZE
    block_size: int = _sha1.BLOCK_SIZE

    def digest(self, data: bytes) -> bytes:
        return _sha1.sha1(data)


@dataclass(frozen=True)
class HashlibAlgorithm:
    """Adapter over a :mod:`hashlib` constructor (sha1, sha256, sha512)."""

    name: str
    hashlib_name: str
    digest_size: int
    block_size: int

    @classmethod
    def named(cls, name: str) -> HashlibAlgorithm:
        hashlib_name = name.replace("-", "").lower()
        if hashlib_name not in _SUPPORTED:
            raise ValueError(f"Unsupported OTP hash algorithm: {name}")
        probe = hashlib.new(hashlib_name)
        return cls(
            name=hashlib_name.upper(),
            hashlib_name=hashlib_name,
            digest_size=probe.digest_size,
            block_size=probe.block_size,
        )

    def digest(self, data: bytes) -> bytes:
        return hashlib.new(self.hashlib_name, data).digest()


_SUPPORTED = ("sha1", "sha256", "sha512")

SHA1 = BuiltinSha1()


def get_algorithm(backend: DigestBackend | str = DigestBackend.BUILTIN, name: str = "SHA1") -> HashAlgorithm:
    """Resolve the configured backend to a :class:`HashAlgorithm`."""
    if DigestBackend(backend) is DigestBackend.BUILTIN:
        if name.replace("-", "").upper() != "SHA1":
            raise ValueError("The builtin backend only implements SHA1")
        return SHA1
    return HashlibAlgorithm.named(name)
