"""MFA lifecycle transitions.

Each function takes the current :class:`AccountSecurityRecord` and returns a
:class:`Transition`: the patch to persist plus the payload for the caller.
Nothing here touches storage; a failed proof raises before any patch exists.

States::

    Unset --setup--> Provisioned --verify--> Active --disable--> Unset
                                             Active --regenerate/authenticate--> Active
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Protocol, TypeVar, assert_never

from otpgate.auth import base32, recovery, totp
from otpgate.auth.digest import get_algorithm
from otpgate.auth.provisioning import build_uri, mask_secret
from otpgate.auth.totp import DEFAULT_PARAMS, TotpParams
from otpgate.config import Settings, settings
from otpgate.errors import AlreadyActive, InvalidCode, NotActive, NotProvisioned, PolicyViolation
from otpgate.hashing import SecureHash
from otpgate.models import (
    AccountSecurityRecord,
    ActivationResult,
    AuthenticationResult,
    DisableResult,
    FactorKind,
    ProvisioningBundle,
    RecoveryCode,
    RecoveryCodeBundle,
    RecoveryCodeEntry,
    SecurityPatch,
    TotpCode,
    VerificationInput,
)

ResultT = TypeVar("ResultT")


class SecretCipher(Protocol):
    def encrypt(self, plaintext: str, context: str | None = None) -> str: ...

    def decrypt(self, token: str, context: str | None = None) -> str: ...


@dataclass(frozen=True)
class MfaPolicy:
    issuer: str = "otpgate"
    totp: TotpParams = DEFAULT_PARAMS
    secret_bytes: int = 20
    recovery_code_count: int = 10
    recovery_code_length: int = 12
    allow_recovery_activation: bool = False

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> MfaPolicy:
        config = config or settings
        return cls(
            issuer=config.issuer,
            totp=TotpParams(
                digits=config.totp_digits,
                period=config.totp_period,
                window=config.totp_window,
                algorithm=get_algorithm(config.digest_backend, config.totp_algorithm),
            ),
            secret_bytes=config.secret_bytes,
            recovery_code_count=config.recovery_code_count,
            recovery_code_length=config.recovery_code_length,
            allow_recovery_activation=config.allow_recovery_activation,
        )


@dataclass(frozen=True)
class Transition(Generic[ResultT]):
    patch: SecurityPatch | None
    result: ResultT


def _require_active(record: AccountSecurityRecord) -> None:
    if not record.mfa_secret:
        raise NotProvisioned()
    if not record.mfa_enabled:
        raise NotActive()


def _prove(
    record: AccountSecurityRecord,
    factor: VerificationInput,
    *,
    policy: MfaPolicy,
    cipher: SecretCipher,
    hasher: SecureHash,
    now: datetime,
) -> tuple[RecoveryCodeEntry, ...] | None:
    """Check a factor; returns the updated code set when a recovery code was spent."""
    if isinstance(factor, TotpCode):
        secret = base32.decode(cipher.decrypt(record.mfa_secret or "", context=record.id))
        if not totp.verify(secret, factor.code, now.timestamp(), policy.totp):
            raise InvalidCode()
        return None
    elif isinstance(factor, RecoveryCode):
        index = recovery.find_match(record.mfa_recovery_codes, factor.code, hasher)
        if index is None:
            raise InvalidCode()
        return recovery.consume(record.mfa_recovery_codes, index, now)
    else:
        assert_never(factor)


def begin_setup(
    record: AccountSecurityRecord,
    *,
    policy: MfaPolicy,
    cipher: SecretCipher,
    hasher: SecureHash,
    now: datetime,
    secret: bytes | None = None,
    codes: list[str] | None = None,
) -> Transition[ProvisioningBundle]:
    if record.mfa_enabled:
        raise AlreadyActive()

    secret_b32 = base32.encode(secret if secret is not None else secrets.token_bytes(policy.secret_bytes))
    if codes is None:
        codes = recovery.generate_codes(policy.recovery_code_count, policy.recovery_code_length)

    patch = SecurityPatch(
        mfa_secret=cipher.encrypt(secret_b32, context=record.id),
        mfa_enabled=False,
        mfa_recovery_codes=recovery.hash_codes(codes, hasher),
        updated_at=now,
    )
    bundle = ProvisioningBundle(
        secret=secret_b32,
        provisioning_uri=build_uri(
            secret_b32,
            record.label,
            policy.issuer,
            algorithm=policy.totp.algorithm.name,
            digits=policy.totp.digits,
            period=policy.totp.period,
        ),
        secret_masked=mask_secret(secret_b32),
        recovery_codes=codes,
    )
    return Transition(patch, bundle)


def activate(
    record: AccountSecurityRecord,
    factor: VerificationInput,
    *,
    policy: MfaPolicy,
    cipher: SecretCipher,
    hasher: SecureHash,
    now: datetime,
) -> Transition[ActivationResult]:
    if not record.mfa_secret:
        raise NotProvisioned()
    if record.mfa_enabled:
        raise AlreadyActive()
    if isinstance(factor, RecoveryCode) and not policy.allow_recovery_activation:
        raise PolicyViolation("Recovery codes cannot be used to activate MFA")

    spent = _prove(record, factor, policy=policy, cipher=cipher, hasher=hasher, now=now)
    changes: dict = {"mfa_enabled": True, "updated_at": now}
    if spent is not None:
        changes["mfa_recovery_codes"] = spent
    return Transition(
        SecurityPatch(**changes),
        ActivationResult(occurred_at=now, method=FactorKind(factor.kind)),
    )


def rotate_recovery_codes(
    record: AccountSecurityRecord,
    totp_code: str,
    *,
    policy: MfaPolicy,
    cipher: SecretCipher,
    hasher: SecureHash,
    now: datetime,
    codes: list[str] | None = None,
) -> Transition[RecoveryCodeBundle]:
    """Replace the whole recovery-code set; only a TOTP code is accepted as proof."""
    _require_active(record)
    _prove(record, TotpCode(code=totp_code), policy=policy, cipher=cipher, hasher=hasher, now=now)

    if codes is None:
        codes = recovery.generate_codes(policy.recovery_code_count, policy.recovery_code_length)
    patch = SecurityPatch(mfa_recovery_codes=recovery.hash_codes(codes, hasher), updated_at=now)
    return Transition(patch, RecoveryCodeBundle(codes=codes, count=len(codes), generated_at=now))


def deactivate(
    record: AccountSecurityRecord,
    factor: VerificationInput,
    *,
    policy: MfaPolicy,
    cipher: SecretCipher,
    hasher: SecureHash,
    now: datetime,
) -> Transition[DisableResult]:
    if record.enforced_2fa:
        raise PolicyViolation("Two-factor authentication is enforced for this account")
    _require_active(record)
    _prove(record, factor, policy=policy, cipher=cipher, hasher=hasher, now=now)

    patch = SecurityPatch(mfa_secret=None, mfa_enabled=False, mfa_recovery_codes=(), updated_at=now)
    return Transition(patch, DisableResult(occurred_at=now))


def check_second_factor(
    record: AccountSecurityRecord,
    factor: VerificationInput,
    *,
    policy: MfaPolicy,
    cipher: SecretCipher,
    hasher: SecureHash,
    now: datetime,
) -> Transition[AuthenticationResult]:
    """Login-time proof. A TOTP success needs no write; a recovery code is spent."""
    _require_active(record)
    spent = _prove(record, factor, policy=policy, cipher=cipher, hasher=hasher, now=now)

    patch = None
    remaining = record.remaining_recovery_codes
    if spent is not None:
        patch = SecurityPatch(mfa_recovery_codes=spent, updated_at=now)
        remaining -= 1
    result = AuthenticationResult(
        occurred_at=now,
        method=FactorKind(factor.kind),
        remaining_recovery_codes=remaining,
    )
    return Transition(patch, result)
