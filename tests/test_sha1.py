"""Tests for the pure-Python SHA-1 and the digest capability."""

from __future__ import annotations

import hashlib
import os

import pytest

from otpgate.auth.digest import SHA1, DigestBackend, HashlibAlgorithm, get_algorithm
from otpgate.auth.sha1 import sha1


@pytest.mark.parametrize(
    "message,expected",
    [
        (b"", "da39a3ee5e6b4b0d3255bfef95601890afd80709"),
        (b"abc", "a9993e364706816aba3e25717850c26c9cd0d89d"),
        (
            b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq",
            "84983e441c3bd26ebaae4aa1f95129e5e54670f1",
        ),
        (b"The quick brown fox jumps over the lazy dog", "2fd4e1c67a2d28fced849ee1bb76e7391b93eb12"),
    ],
)
def test_fips_vectors(message, expected):
    assert sha1(message).hex() == expected


def test_padding_boundaries_match_hashlib():
    # lengths around the 55/56/64-byte padding edges and multi-block inputs
    for length in (1, 55, 56, 57, 63, 64, 65, 119, 120, 128, 300):
        data = os.urandom(length)
        assert sha1(data) == hashlib.sha1(data).digest(), length


def test_digest_is_20_bytes():
    assert len(sha1(b"x" * 1000)) == 20


def test_builtin_algorithm_matches_function():
    assert SHA1.name == "SHA1"
    assert SHA1.digest_size == 20
    assert SHA1.block_size == 64
    assert SHA1.digest(b"abc") == sha1(b"abc")


def test_hashlib_backend():
    algo = get_algorithm(DigestBackend.HASHLIB, "SHA-256")
    assert isinstance(algo, HashlibAlgorithm)
    assert algo.name == "SHA256"
    assert algo.block_size == 64
    assert algo.digest(b"abc") == hashlib.sha256(b"abc").digest()


def test_hashlib_sha1_agrees_with_builtin():
    algo = get_algorithm("hashlib", "SHA1")
    data = os.urandom(77)
    assert algo.digest(data) == SHA1.digest(data)


def test_builtin_backend_is_sha1_only():
    assert get_algorithm("builtin") is SHA1
    with pytest.raises(ValueError):
        get_algorithm("builtin", "SHA256")


def test_unsupported_hashlib_algorithm():
    with pytest.raises(ValueError, match="Unsupported"):
        get_algorithm("hashlib", "MD5")
