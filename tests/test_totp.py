"""Tests for TOTP generation, drift window and the base32 helpers."""

from __future__ import annotations

import pyotp
import pytest

from otpgate.auth import base32, totp
from otpgate.auth.digest import get_algorithm
from otpgate.auth.totp import TotpParams
from otpgate.errors import ValidationError

RFC_SECRET = b"12345678901234567890"
RFC_SECRET_SHA256 = b"12345678901234567890123456789012"
HELLO = "JBSWY3DPEHPK3PXP"

# RFC 6238 Appendix B, SHA1 column
RFC6238_SHA1 = [
    (59, "94287082"),
    (1111111109, "07081804"),
    (1111111111, "14050471"),
    (1234567890, "89005924"),
    (2000000000, "69279037"),
    (20000000000, "65353130"),
]


@pytest.mark.parametrize("unix_time,expected", RFC6238_SHA1)
def test_rfc6238_sha1_eight_digits(unix_time, expected):
    params = TotpParams(digits=8)
    assert totp.generate(RFC_SECRET, unix_time, params) == expected


@pytest.mark.parametrize("unix_time,expected", RFC6238_SHA1)
def test_six_digits_are_suffix_of_eight(unix_time, expected):
    assert totp.generate(RFC_SECRET, unix_time) == expected[-6:]


def test_rfc6238_sha256():
    params = TotpParams(digits=8, algorithm=get_algorithm("hashlib", "SHA256"))
    assert totp.generate(RFC_SECRET_SHA256, 59, params) == "46119246"


def test_pinned_code_at_59():
    assert totp.get_code(HELLO, 59) == "996554"


def test_code_is_stable_within_a_step():
    assert totp.get_code(HELLO, 30) == totp.get_code(HELLO, 59) == "996554"
    assert totp.get_code(HELLO, 60) == "602287"


def test_time_counter():
    assert totp.time_counter(0) == 0
    assert totp.time_counter(29.9) == 0
    assert totp.time_counter(30) == 1
    assert totp.time_counter(1234567890, 60) == 20576131


def test_verify_accepts_one_step_of_drift():
    secret = base32.decode(HELLO)
    now = 1000 * 30 + 5
    for offset in (-30, 0, 30):
        code = totp.generate(secret, now + offset)
        assert totp.verify(secret, code, now)


def test_verify_rejects_two_steps_of_drift():
    secret = base32.decode(HELLO)
    now = 1000 * 30 + 5
    for offset in (-60, 60):
        code = totp.generate(secret, now + offset)
        assert not totp.verify(secret, code, now)


def test_zero_window_is_exact():
    secret = base32.decode(HELLO)
    params = TotpParams(window=0)
    now = 1000 * 30
    assert totp.verify(secret, totp.generate(secret, now), now, params)
    assert not totp.verify(secret, totp.generate(secret, now - 30), now, params)


def test_wider_window():
    secret = base32.decode(HELLO)
    params = TotpParams(window=2)
    now = 1000 * 30
    assert totp.verify(secret, totp.generate(secret, now - 60), now, params)


def test_window_near_epoch_skips_negative_steps():
    secret = base32.decode(HELLO)
    assert totp.verify(secret, "282760", 10)
    assert totp.verify(secret, "996554", 10)
    assert not totp.verify(secret, "602287", 10)


def test_verify_checks_every_step_in_window(monkeypatch):
    from otpgate.auth import hotp

    checked = []
    real_verify = hotp.verify

    def recording_verify(secret, code, counter, digits=6, algorithm=None):
        checked.append(counter)
        return real_verify(secret, code, counter, digits, algorithm)

    monkeypatch.setattr(hotp, "verify", recording_verify)
    secret = base32.decode(HELLO)
    now = 1000 * 30
    # a match on the first step still compares the remaining candidates
    assert totp.verify(secret, totp.generate(secret, now - 30), now)
    assert checked == [999, 1000, 1001]


def test_surrounding_whitespace_is_ignored():
    assert totp.verify_code(HELLO, " 996554\n", 59)


@pytest.mark.parametrize("code", ["", "99655", "9965540", "99655a", "99 6554", "٩٩٦٥٥٤"])
def test_malformed_codes_are_rejected(code):
    assert not totp.verify_code(HELLO, code, 59)


def test_invalid_params():
    with pytest.raises(ValidationError):
        TotpParams(digits=0)
    with pytest.raises(ValidationError):
        TotpParams(period=0)
    with pytest.raises(ValidationError):
        TotpParams(window=-1)


def test_generate_secret():
    secret = totp.generate_secret()
    assert len(secret) == 32
    assert len(base32.decode(secret)) == 20
    assert totp.generate_secret() != secret


def test_generate_secret_minimum_length():
    assert len(totp.generate_secret(32)) == 52  # ceil(256 / 5)
    with pytest.raises(ValidationError):
        totp.generate_secret(10)


def test_get_code_defaults_to_now(monkeypatch):
    monkeypatch.setattr(totp.time, "time", lambda: 59.0)
    assert totp.get_code(HELLO) == "996554"
    assert totp.verify_code(HELLO, "996554")


def test_provisioning_uri_from_params():
    uri = totp.get_provisioning_uri(HELLO, "alice@example.com", "Example")
    assert uri == (
        "otpauth://totp/Example:alice@example.com"
        "?secret=JBSWY3DPEHPK3PXP&issuer=Example&algorithm=SHA1&digits=6&period=30"
    )


# ---------------------------------------------------------------------------
# Interop with pyotp
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("unix_time", [0, 59, 1111111109, 1234567890, 2000000000])
def test_codes_match_pyotp(unix_time):
    secret = pyotp.random_base32()
    assert totp.get_code(secret, unix_time) == pyotp.TOTP(secret).at(unix_time)


def test_pyotp_codes_verify():
    secret = totp.generate_secret()
    reference = pyotp.TOTP(secret)
    assert totp.verify_code(secret, reference.at(1700000000), 1700000000)


def test_provisioning_uri_parses_with_pyotp():
    secret = totp.generate_secret()
    uri = totp.get_provisioning_uri(secret, "alice@example.com", "Econ Discuss")
    parsed = pyotp.parse_uri(uri)
    assert parsed.secret == secret
    assert parsed.name == "alice@example.com"
    assert parsed.issuer == "Econ Discuss"
    assert parsed.at(1700000000) == totp.get_code(secret, 1700000000)
