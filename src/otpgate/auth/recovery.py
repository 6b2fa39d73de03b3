"""Single-use recovery codes.

Codes are drawn from the base32 alphabet and shown in dash-separated groups
(``ABCD-EFGH-JKLM``). Input is normalised before hashing, so users may type
them in any case with or without separators.
"""

from __future__ import annotations

import secrets
from datetime import datetime

from otpgate.auth.base32 import ALPHABET
from otpgate.hashing import SecureHash
from otpgate.models import RecoveryCodeEntry

GROUP_SIZE = 4


def generate_codes(count: int = 10, length: int = 12) -> list[str]:
    """Generate ``count`` distinct codes of ``length`` symbols (5 bits each)."""
    codes: list[str] = []
    while len(codes) < count:
        raw = "".join(secrets.choice(ALPHABET) for _ in range(length))
        code = "-".join(raw[i : i + GROUP_SIZE] for i in range(0, length, GROUP_SIZE))
        if code not in codes:
            codes.append(code)
    return codes


def normalize(code: str) -> str:
    return "".join(ch for ch in code.upper() if ch not in "- \t")


def hash_codes(codes: list[str], hasher: SecureHash) -> tuple[RecoveryCodeEntry, ...]:
    return tuple(RecoveryCodeEntry(code_hash=hasher.hash(normalize(code))) for code in codes)


def find_match(entries: tuple[RecoveryCodeEntry, ...], code: str, hasher: SecureHash) -> int | None:
    """Index of the unused entry matching ``code``, or None.

    Every stored hash is checked, used or not, so the time spent does not
    reveal how many codes remain or where the match sits.
    """
    candidate = normalize(code)
    match: int | None = None
    for index, entry in enumerate(entries):
        if hasher.verify(candidate, entry.code_hash) and not entry.used and match is None:
            match = index
    return match


def consume(
    entries: tuple[RecoveryCodeEntry, ...], index: int, when: datetime
) -> tuple[RecoveryCodeEntry, ...]:
    """Return ``entries`` with the entry at ``index`` marked used."""
    if entries[index].used:
        raise ValueError("Recovery code already consumed")
    consumed = entries[index].model_copy(update={"used_at": when})
    return entries[:index] + (consumed,) + entries[index + 1 :]
