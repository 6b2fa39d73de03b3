"""AES-256-GCM encryption for TOTP secrets at rest.

Tokens are ``base64(nonce + ciphertext)``. The account id is bound as
associated data, so a token copied onto another account fails to decrypt.
"""

from __future__ import annotations

import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from otpgate.config import Settings, settings

_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM


def _decode_key(raw: str) -> bytes:
    if not raw:
        raise RuntimeError("OTPGATE_MASTER_KEY not set")
    key = base64.b64decode(raw)
    if len(key) != 32:
        raise ValueError("OTPGATE_MASTER_KEY must be 32 bytes (base64-encoded)")
    return key


def generate_key() -> str:
    """Fresh base64 master key suitable for OTPGATE_MASTER_KEY."""
    return base64.b64encode(AESGCM.generate_key(bit_length=256)).decode()


class SecretBox:
    def __init__(self, key: bytes) -> None:
        self._aead = AESGCM(key)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> SecretBox:
        """Box keyed by OTPGATE_MASTER_KEY from ``config`` (module settings by default)."""
        return cls(_decode_key((config or settings).otpgate_master_key))

    def encrypt(self, plaintext: str, context: str | None = None) -> str:
        nonce = os.urandom(_NONCE_SIZE)
        aad = context.encode() if context is not None else None
        ct = self._aead.encrypt(nonce, plaintext.encode(), aad)
        return base64.b64encode(nonce + ct).decode()

    def decrypt(self, token: str, context: str | None = None) -> str:
        raw = base64.b64decode(token)
        nonce, ct = raw[:_NONCE_SIZE], raw[_NONCE_SIZE:]
        aad = context.encode() if context is not None else None
        return self._aead.decrypt(nonce, ct, aad).decode()
