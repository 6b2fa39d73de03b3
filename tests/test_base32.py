"""Tests for the RFC 4648 Base32 codec."""

from __future__ import annotations

import base64
import os

import pytest

from otpgate.auth import base32
from otpgate.errors import ValidationError

RFC4648_VECTORS = [
    (b"", ""),
    (b"f", "MY======"),
    (b"fo", "MZXQ===="),
    (b"foo", "MZXW6==="),
    (b"foob", "MZXW6YQ="),
    (b"fooba", "MZXW6YTB"),
    (b"foobar", "MZXW6YTBOI======"),
]


@pytest.mark.parametrize("raw,encoded", RFC4648_VECTORS)
def test_rfc4648_vectors(raw, encoded):
    assert base32.encode(raw, padding=True) == encoded
    assert base32.decode(encoded) == raw


def test_unpadded_encoding_matches_stdlib():
    data = os.urandom(37)
    assert base32.encode(data) == base64.b32encode(data).decode().rstrip("=")


def test_decode_known_secret():
    assert base32.decode("JBSWY3DPEHPK3PXP") == b"Hello!\xde\xad\xbe\xef"


def test_decode_is_case_insensitive():
    assert base32.decode("jbswy3dpehpk3pxp") == base32.decode("JBSWY3DPEHPK3PXP")


def test_round_trip_various_lengths():
    for length in range(0, 41):
        data = os.urandom(length)
        assert base32.decode(base32.encode(data)) == data


def test_trailing_partial_byte_discarded():
    # 3 symbols = 15 bits -> one full byte, 7 bits dropped
    assert base32.decode("MZX") == b"f"


@pytest.mark.parametrize("text", ["JBSW1Y3D", "JBSW Y3DP", "AB=CD", "MZXW6!", "ß"])
def test_rejects_unknown_symbols(text):
    with pytest.raises(ValidationError):
        base32.decode(text)


def test_error_does_not_echo_input():
    with pytest.raises(ValidationError) as exc_info:
        base32.decode("SECRETSECRET0")
    assert "SECRETSECRET" not in str(exc_info.value)
    assert "position 12" in str(exc_info.value)


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        base32.decode("0")


def test_is_valid():
    assert base32.is_valid("JBSWY3DPEHPK3PXP")
    assert not base32.is_valid("JBSWY3DPEHPK3PX1")
