"""Pure-Python SHA-1 (FIPS 180-4).

SHA-1 is only used here as the HMAC primitive mandated by RFC 4226/6238.
Protocol code reaches it through :mod:`otpgate.auth.digest` so a vetted
implementation can be swapped in.
"""

from __future__ import annotations

import struct

DIGEST_SIZE = 20
BLOCK_SIZE = 64

_MASK = 0xFFFFFFFF
_INITIAL_STATE = (0x67452301, 0xEFCDAB89, 0x98BADCFE, 0x10325476, 0xC3D2E1F0)
_ROUND_CONSTANTS = (0x5A827999, 0x6ED9EBA1, 0x8F1BBCDC, 0xCA62C1D6)


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (32 - shift))) & _MASK


def _pad(message: bytes) -> bytes:
    bit_length = (len(message) * 8) & 0xFFFFFFFFFFFFFFFF
    zeros = (55 - len(message)) % BLOCK_SIZE
    return message + b"\x80" + b"\x00" * zeros + struct.pack(">Q", bit_length)


def _compress(state: tuple[int, ...], block: bytes) -> tuple[int, ...]:
    w = list(struct.unpack(">16I", block))
    for t in range(16, 80):
        w.append(_rotl(w[t - 3] ^ w[t - 8] ^ w[t - 14] ^ w[t - 16], 1))

    a, b, c, d, e = state
    for t in range(80):
        if t < 20:
            f = (b & c) | (~b & d)
        elif t < 40:
            f = b ^ c ^ d
        elif t < 60:
            f = (b & c) | (b & d) | (c & d)
        else:
            f = b ^ c ^ d
        temp = (_rotl(a, 5) + (f & _MASK) + e + _ROUND_CONSTANTS[t // 20] + w[t]) & _MASK
        e = d
        d = c
        c = _rotl(b, 30)
        b = a
        a = temp

    return tuple((h + x) & _MASK for h, x in zip(state, (a, b, c, d, e)))


def sha1(data: bytes) -> bytes:
    """Return the 20-byte SHA-1 digest of ``data``."""
    padded = _pad(bytes(data))
    state = _INITIAL_STATE
    for offset in range(0, len(padded), BLOCK_SIZE):
        state = _compress(state, padded[offset : offset + BLOCK_SIZE])
    return struct.pack(">5I", *state)
