"""One-way hashing for recovery codes at rest."""

from __future__ import annotations

import logging
from typing import Protocol

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

DEFAULT_SCHEME = "pbkdf2_sha256"


class SecureHash(Protocol):
    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, hashed: str) -> bool: ...


class PasslibSecureHash:
    """:class:`SecureHash` backed by a passlib ``CryptContext``."""

    def __init__(self, scheme: str = DEFAULT_SCHEME, rounds: int | None = None) -> None:
        options: dict[str, int] = {}
        if rounds is not None:
            options[f"{scheme}__default_rounds"] = rounds
        self.context = CryptContext(schemes=[scheme], deprecated="auto", **options)

    def hash(self, plaintext: str) -> str:
        return self.context.hash(plaintext)

    def verify(self, plaintext: str, hashed: str) -> bool:
        try:
            return self.context.verify(plaintext, hashed)
        except ValueError:
            # unrecognised or corrupt hash string; never log the value itself
            logger.warning("Stored recovery code hash could not be parsed")
            return False
