"""RFC 4648 Base32 codec used for the text form of shared secrets."""

from __future__ import annotations

from otpgate.errors import ValidationError

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_DECODE_MAP = {symbol: value for value, symbol in enumerate(ALPHABET)}
_DECODE_MAP.update({symbol.lower(): value for symbol, value in list(_DECODE_MAP.items())})


def encode(data: bytes, padding: bool = False) -> str:
    """Encode bytes as Base32. otpauth secrets are conventionally unpadded."""
    out: list[str] = []
    buffer = 0
    bits = 0
    for byte in data:
        buffer = (buffer << 8) | byte
        bits += 8
        while bits >= 5:
            bits -= 5
            out.append(ALPHABET[(buffer >> bits) & 0x1F])
        buffer &= (1 << bits) - 1
    if bits:
        out.append(ALPHABET[(buffer << (5 - bits)) & 0x1F])
    if padding and len(out) % 8:
        out.append("=" * (8 - len(out) % 8))
    return "".join(out)


def decode(text: str) -> bytes:
    """Decode case-insensitive Base32 text.

    Trailing ``=`` padding is optional. Any other symbol outside the alphabet
    raises :class:`ValidationError`; the trailing partial byte is discarded.
    """
    body = text.rstrip("=")
    out = bytearray()
    buffer = 0
    bits = 0
    for position, symbol in enumerate(body):
        value = _DECODE_MAP.get(symbol)
        if value is None:
            raise ValidationError(f"Invalid base32 character at position {position}")
        buffer = (buffer << 5) | value
        bits += 5
        if bits >= 8:
            bits -= 8
            out.append((buffer >> bits) & 0xFF)
            buffer &= (1 << bits) - 1
    return bytes(out)


def is_valid(text: str) -> bool:
    try:
        decode(text)
    except ValidationError:
        return False
    return True
