"""HMAC (RFC 2104) over a pluggable hash algorithm."""

from __future__ import annotations

from otpgate.auth.digest import SHA1, HashAlgorithm

_IPAD = 0x36
_OPAD = 0x5C


def hmac_digest(key: bytes, message: bytes, algorithm: HashAlgorithm = SHA1) -> bytes:
    block_size = algorithm.block_size
    if len(key) > block_size:
        key = algorithm.digest(key)
    key = key.ljust(block_size, b"\x00")

    inner_key = bytes(b ^ _IPAD for b in key)
    outer_key = bytes(b ^ _OPAD for b in key)
    inner = algorithm.digest(inner_key + message)
    return algorithm.digest(outer_key + inner)


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """HMAC-SHA1 using the built-in SHA-1."""
    return hmac_digest(key, message, SHA1)
