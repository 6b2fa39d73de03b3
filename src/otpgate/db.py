"""PostgreSQL-backed :class:`~otpgate.store.AccountSecurityStore`.

Updates are compare-and-swap on the ``version`` column: the ``UPDATE`` only
matches the row version the caller read, otherwise :class:`Conflict` is raised.
"""

from __future__ import annotations

import logging
from typing import Any

import psycopg
import psycopg.rows
from psycopg.types.json import Jsonb

from otpgate.config import settings
from otpgate.errors import Conflict, NotFound
from otpgate.models import AccountSecurityRecord, RecoveryCodeEntry, SecurityPatch

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS account_security (
    id                  TEXT PRIMARY KEY,
    label               TEXT NOT NULL,
    mfa_secret          TEXT,
    mfa_enabled         BOOLEAN NOT NULL DEFAULT FALSE,
    mfa_recovery_codes  JSONB NOT NULL DEFAULT '[]'::jsonb,
    enforced_2fa        BOOLEAN NOT NULL DEFAULT FALSE,
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT now(),
    version             INTEGER NOT NULL DEFAULT 0,
    deleted_at          TIMESTAMPTZ,
    CONSTRAINT mfa_enabled_requires_secret CHECK (NOT mfa_enabled OR mfa_secret IS NOT NULL)
)
"""

_COLUMNS = """id, label, mfa_secret, mfa_enabled, mfa_recovery_codes,
              enforced_2fa, updated_at, version, deleted_at"""


def row_to_record(row: dict[str, Any]) -> AccountSecurityRecord:
    """Convert a DB row to an AccountSecurityRecord."""
    codes = row.get("mfa_recovery_codes") or []
    return AccountSecurityRecord(
        id=str(row["id"]),
        label=row["label"],
        mfa_secret=row["mfa_secret"],
        mfa_enabled=row["mfa_enabled"],
        mfa_recovery_codes=tuple(RecoveryCodeEntry.model_validate(c) for c in codes),
        enforced_2fa=row["enforced_2fa"],
        updated_at=row["updated_at"],
        version=row["version"],
        deleted_at=row.get("deleted_at"),
    )


def _codes_json(entries: tuple[RecoveryCodeEntry, ...]) -> Jsonb:
    return Jsonb([entry.model_dump(mode="json") for entry in entries])


class PostgresAccountStore:
    def __init__(self, conninfo: str | None = None) -> None:
        self.conninfo = conninfo or settings.database_url

    # ---------------------------------------------------------------------------
    # Connection helpers
    # ---------------------------------------------------------------------------

    def _conn(self) -> psycopg.Connection[dict[str, Any]]:
        return psycopg.connect(self.conninfo, row_factory=psycopg.rows.dict_row)

    def _execute_one(self, query: str, params: tuple[Any, ...] | None = None) -> dict[str, Any] | None:
        """Execute query in its own transaction and return one row."""
        with self._conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                conn.commit()
                if cur.description is None:
                    return None
                return cur.fetchone()

    # ---------------------------------------------------------------------------
    # Store API
    # ---------------------------------------------------------------------------

    def init_schema(self) -> None:
        self._execute_one(SCHEMA_SQL)

    def create(self, account_id: str, label: str, enforced_2fa: bool = False) -> AccountSecurityRecord:
        row = self._execute_one(
            f"""INSERT INTO account_security (id, label, enforced_2fa)
                VALUES (%s, %s, %s)
                RETURNING {_COLUMNS}""",
            (account_id, label, enforced_2fa),
        )
        if row is None:
            raise RuntimeError(f"Failed to create account_security row for {account_id}")
        return row_to_record(row)

    def get(self, account_id: str) -> AccountSecurityRecord | None:
        row = self._execute_one(
            f"SELECT {_COLUMNS} FROM account_security WHERE id = %s AND deleted_at IS NULL",
            (account_id,),
        )
        return row_to_record(row) if row else None

    def update(
        self, account_id: str, patch: SecurityPatch, expected_version: int
    ) -> AccountSecurityRecord:
        changes = patch.changes()
        sets: list[str] = []
        params: list[Any] = []

        if "mfa_secret" in changes:
            sets.append("mfa_secret = %s")
            params.append(changes["mfa_secret"])
        if "mfa_enabled" in changes:
            sets.append("mfa_enabled = %s")
            params.append(changes["mfa_enabled"])
        if "mfa_recovery_codes" in changes:
            sets.append("mfa_recovery_codes = %s")
            params.append(_codes_json(changes["mfa_recovery_codes"]))
        if changes.get("updated_at") is not None:
            sets.append("updated_at = %s")
            params.append(changes["updated_at"])
        else:
            sets.append("updated_at = now()")
        sets.append("version = version + 1")
        params.extend([account_id, expected_version])

        row = self._execute_one(
            f"""UPDATE account_security SET {', '.join(sets)}
                WHERE id = %s AND version = %s AND deleted_at IS NULL
                RETURNING {_COLUMNS}""",
            tuple(params),
        )
        if row is not None:
            return row_to_record(row)

        if self.get(account_id) is None:
            raise NotFound()
        logger.warning("Version conflict on account %s (expected %d)", account_id, expected_version)
        raise Conflict()
