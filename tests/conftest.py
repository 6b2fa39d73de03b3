"""Shared fixtures for the MFA service tests."""

from __future__ import annotations

import os

import pytest

from otpgate.crypto import SecretBox
from otpgate.hashing import PasslibSecureHash
from otpgate.lifecycle import MfaPolicy
from otpgate.service import MfaService
from otpgate.store import InMemoryAccountStore

# 2009-02-13T23:31:30Z, start of a 30s step
T0 = 1234567890.0


class FakeClock:
    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> PasslibSecureHash:
    # low rounds keep the suite fast; production uses passlib's default
    return PasslibSecureHash(rounds=1000)


@pytest.fixture
def cipher() -> SecretBox:
    return SecretBox(os.urandom(32))


@pytest.fixture
def store() -> InMemoryAccountStore:
    s = InMemoryAccountStore()
    s.create("admin-1", "admin@example.com")
    s.create("admin-enforced", "root@example.com", enforced_2fa=True)
    return s


@pytest.fixture
def policy() -> MfaPolicy:
    return MfaPolicy(issuer="EconDiscuss")


@pytest.fixture
def service(store, hasher, cipher, policy, clock) -> MfaService:
    return MfaService(store=store, hasher=hasher, cipher=cipher, policy=policy, clock=clock)
