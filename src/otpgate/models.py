"""Pydantic models for account security state and MFA results."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from otpgate.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(UTC)


# === Enums ===


class MfaState(StrEnum):
    UNSET = "unset"
    PROVISIONED = "provisioned"
    ACTIVE = "active"


class FactorKind(StrEnum):
    TOTP = "totp"
    RECOVERY = "recovery"


# === Stored state ===


class RecoveryCodeEntry(BaseModel):
    """One hashed recovery code; ``used_at`` is set once it has been consumed."""

    model_config = ConfigDict(frozen=True)

    code_hash: str = Field(repr=False)
    used_at: datetime | None = None

    @property
    def used(self) -> bool:
        return self.used_at is not None


class AccountSecurityRecord(BaseModel):
    """MFA-relevant slice of an account row.

    ``mfa_secret`` holds the encrypted token of the base32 secret, never the
    secret itself.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    mfa_secret: str | None = Field(default=None, repr=False)
    mfa_enabled: bool = False
    mfa_recovery_codes: tuple[RecoveryCodeEntry, ...] = ()
    enforced_2fa: bool = False
    updated_at: datetime = Field(default_factory=utcnow)
    version: int = 0
    deleted_at: datetime | None = None

    @model_validator(mode="after")
    def _enabled_requires_secret(self) -> AccountSecurityRecord:
        if self.mfa_enabled and not self.mfa_secret:
            raise ValueError("mfa_enabled requires an mfa_secret")
        return self

    @property
    def state(self) -> MfaState:
        if self.mfa_enabled:
            return MfaState.ACTIVE
        if self.mfa_secret:
            return MfaState.PROVISIONED
        return MfaState.UNSET

    @property
    def remaining_recovery_codes(self) -> int:
        return sum(1 for entry in self.mfa_recovery_codes if not entry.used)


class SecurityPatch(BaseModel):
    """Partial update of an :class:`AccountSecurityRecord`.

    Only fields that were explicitly set are applied, so ``mfa_secret=None``
    clears the secret while an omitted field is left alone.
    """

    mfa_secret: str | None = Field(default=None, repr=False)
    mfa_enabled: bool | None = None
    mfa_recovery_codes: tuple[RecoveryCodeEntry, ...] | None = None
    updated_at: datetime | None = None

    def changes(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}

    def apply(self, record: AccountSecurityRecord) -> AccountSecurityRecord:
        changes = self.changes()
        changes["version"] = record.version + 1
        return AccountSecurityRecord.model_validate({**dict(record), **changes})


# === Verification input ===


class TotpCode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["totp"] = "totp"
    code: str = Field(repr=False)


class RecoveryCode(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["recovery"] = "recovery"
    code: str = Field(repr=False)


VerificationInput = Annotated[TotpCode | RecoveryCode, Field(discriminator="kind")]

_verification_adapter: TypeAdapter[TotpCode | RecoveryCode] = TypeAdapter(VerificationInput)

_FLAT_KEYS = ("totp_code", "code", "recovery_code")


def parse_verification_input(payload: Mapping[str, Any]) -> TotpCode | RecoveryCode:
    """Turn a wire payload into a :data:`VerificationInput`.

    Accepts either the tagged form (``{"kind": "totp", "code": ...}``) or the
    flat form carrying exactly one non-empty ``totp_code``, ``code`` or
    ``recovery_code``. A tagged payload may not also carry a flat key.
    """
    if "kind" in payload:
        try:
            return _verification_adapter.validate_python(dict(payload))
        except PydanticValidationError as exc:
            raise ValidationError("Malformed verification input") from exc

    supplied = [key for key in _FLAT_KEYS if payload.get(key)]
    if len(supplied) != 1:
        raise ValidationError("Provide exactly one of 'totp_code' or 'recovery_code'")
    key = supplied[0]
    if key == "recovery_code":
        return RecoveryCode(code=str(payload[key]))
    return TotpCode(code=str(payload[key]))


# === Results (returned once, never persisted in plaintext) ===


class ProvisioningBundle(BaseModel):
    method: Literal["totp"] = "totp"
    secret: str = Field(repr=False)
    provisioning_uri: str = Field(repr=False)
    secret_masked: str
    recovery_codes: list[str] = Field(repr=False)


class RecoveryCodeBundle(BaseModel):
    codes: list[str] = Field(repr=False)
    count: int
    generated_at: datetime


class SecurityEvent(BaseModel):
    outcome: str
    message: str | None = None
    occurred_at: datetime = Field(default_factory=utcnow)


class ActivationResult(SecurityEvent):
    outcome: str = "verified"
    method: FactorKind = FactorKind.TOTP


class DisableResult(SecurityEvent):
    outcome: str = "disabled"


class AuthenticationResult(SecurityEvent):
    outcome: str = "authenticated"
    method: FactorKind = FactorKind.TOTP
    remaining_recovery_codes: int = 0


class MfaStatus(BaseModel):
    account_id: str
    state: MfaState
    mfa_enabled: bool
    enforced_2fa: bool
    recovery_codes_remaining: int
    updated_at: datetime
