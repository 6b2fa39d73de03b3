"""MFA service: setup, activation, recovery-code rotation and disable.

The service loads the record, runs the matching transition from
:mod:`otpgate.lifecycle` and writes the patch back with the version it read,
so concurrent writers surface as :class:`~otpgate.errors.Conflict` instead of
silently overwriting each other. Throttling of failed attempts belongs to the
caller; failures are logged at WARNING for it to pick up.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TypeVar

from otpgate import lifecycle
from otpgate.config import Settings, settings
from otpgate.crypto import SecretBox
from otpgate.errors import InvalidCode, NotFound, PolicyViolation
from otpgate.hashing import PasslibSecureHash, SecureHash
from otpgate.lifecycle import MfaPolicy, SecretCipher, Transition
from otpgate.models import (
    AccountSecurityRecord,
    ActivationResult,
    AuthenticationResult,
    DisableResult,
    MfaStatus,
    ProvisioningBundle,
    RecoveryCodeBundle,
    VerificationInput,
)
from otpgate.store import AccountSecurityStore

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class MfaService:
    def __init__(
        self,
        store: AccountSecurityStore,
        hasher: SecureHash,
        cipher: SecretCipher,
        policy: MfaPolicy | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.cipher = cipher
        self.policy = policy or MfaPolicy()
        self.clock = clock

    @classmethod
    def from_settings(cls, store: AccountSecurityStore, config: Settings | None = None) -> MfaService:
        config = config or settings
        return cls(
            store=store,
            hasher=PasslibSecureHash(config.recovery_hash_scheme, config.recovery_hash_rounds),
            cipher=SecretBox.from_settings(config),
            policy=MfaPolicy.from_settings(config),
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def setup(self, account_id: str) -> ProvisioningBundle:
        """Provision a new secret and recovery codes; MFA stays disabled."""
        record = self._load(account_id)
        transition = lifecycle.begin_setup(record, **self._deps())
        self._commit(record, transition)
        logger.info("MFA provisioned for account %s", account_id)
        return transition.result

    def verify(self, account_id: str, factor: VerificationInput) -> ActivationResult:
        """First successful proof of possession enables MFA."""
        record = self._load(account_id)
        transition = self._attempt("verify", record, lambda: lifecycle.activate(record, factor, **self._deps()))
        self._commit(record, transition)
        logger.info("MFA enabled for account %s via %s", account_id, factor.kind)
        return transition.result

    def regenerate_codes(self, account_id: str, totp_code: str) -> RecoveryCodeBundle:
        record = self._load(account_id)
        transition = self._attempt(
            "regenerate", record, lambda: lifecycle.rotate_recovery_codes(record, totp_code, **self._deps())
        )
        self._commit(record, transition)
        logger.info("Recovery codes regenerated for account %s", account_id)
        return transition.result

    def disable(self, account_id: str, factor: VerificationInput) -> DisableResult:
        record = self._load(account_id)
        transition = self._attempt("disable", record, lambda: lifecycle.deactivate(record, factor, **self._deps()))
        self._commit(record, transition)
        logger.info("MFA disabled for account %s", account_id)
        return transition.result

    def authenticate(self, account_id: str, factor: VerificationInput) -> AuthenticationResult:
        """Second-factor check during login for an MFA-enabled account."""
        record = self._load(account_id)
        transition = self._attempt(
            "authenticate", record, lambda: lifecycle.check_second_factor(record, factor, **self._deps())
        )
        self._commit(record, transition)
        if transition.result.method == "recovery":
            logger.info(
                "Recovery code used for account %s (%d remaining)",
                account_id, transition.result.remaining_recovery_codes,
            )
        return transition.result

    def status(self, account_id: str) -> MfaStatus:
        record = self._load(account_id)
        return MfaStatus(
            account_id=record.id,
            state=record.state,
            mfa_enabled=record.mfa_enabled,
            enforced_2fa=record.enforced_2fa,
            recovery_codes_remaining=record.remaining_recovery_codes,
            updated_at=record.updated_at,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), UTC)

    def _deps(self) -> dict:
        return {"policy": self.policy, "cipher": self.cipher, "hasher": self.hasher, "now": self.now()}

    def _load(self, account_id: str) -> AccountSecurityRecord:
        record = self.store.get(account_id)
        if record is None or record.deleted_at is not None:
            raise NotFound()
        return record

    def _attempt(
        self, operation: str, record: AccountSecurityRecord, run: Callable[[], Transition[ResultT]]
    ) -> Transition[ResultT]:
        try:
            return run()
        except InvalidCode:
            logger.warning("MFA %s failed for account %s: invalid code", operation, record.id)
            raise
        except PolicyViolation:
            logger.warning("MFA %s refused by policy for account %s", operation, record.id)
            raise

    def _commit(self, record: AccountSecurityRecord, transition: Transition) -> None:
        if transition.patch is None:
            return
        self.store.update(record.id, transition.patch, expected_version=record.version)
