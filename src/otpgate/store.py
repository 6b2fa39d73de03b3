"""Persistence port for account security records."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from otpgate.errors import Conflict, NotFound
from otpgate.models import AccountSecurityRecord, SecurityPatch

logger = logging.getLogger(__name__)


class AccountSecurityStore(Protocol):
    def get(self, account_id: str) -> AccountSecurityRecord | None: ...

    def update(
        self, account_id: str, patch: SecurityPatch, expected_version: int
    ) -> AccountSecurityRecord:
        """Apply ``patch`` if the stored version still equals ``expected_version``.

        Raises :class:`Conflict` on a version mismatch and :class:`NotFound`
        when the account does not exist.
        """
        ...


class InMemoryAccountStore:
    """Thread-safe dict-backed store with compare-and-swap updates."""

    def __init__(self, records: list[AccountSecurityRecord] | None = None) -> None:
        self._records: dict[str, AccountSecurityRecord] = {}
        self._lock = threading.Lock()
        for record in records or []:
            self.add(record)

    def add(self, record: AccountSecurityRecord) -> AccountSecurityRecord:
        with self._lock:
            self._records[record.id] = record
        return record

    def create(self, account_id: str, label: str, enforced_2fa: bool = False) -> AccountSecurityRecord:
        return self.add(AccountSecurityRecord(id=account_id, label=label, enforced_2fa=enforced_2fa))

    def get(self, account_id: str) -> AccountSecurityRecord | None:
        with self._lock:
            return self._records.get(account_id)

    def update(
        self, account_id: str, patch: SecurityPatch, expected_version: int
    ) -> AccountSecurityRecord:
        with self._lock:
            current = self._records.get(account_id)
            if current is None:
                raise NotFound()
            if current.version != expected_version:
                logger.warning(
                    "Version conflict on account %s (expected %d, found %d)",
                    account_id, expected_version, current.version,
                )
                raise Conflict()
            updated = patch.apply(current)
            self._records[account_id] = updated
            return updated
