"""Symmetric encryption for provider tokens stored in user documents."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

CIPHERTEXT_PREFIX = "fernet:"


class TokenCipherService:
    """Encrypt and decrypt token strings using a Fernet key derived from a secret."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Token encryption secret must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    @staticmethod
    def is_encrypted(value: str) -> bool:
        return value.startswith(CIPHERTEXT_PREFIX)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext token; the result carries a recognizable prefix."""
        token = self._fernet.encrypt(plaintext.encode("utf-8"))
        return CIPHERTEXT_PREFIX + token.decode("utf-8")

    def decrypt(self, value: str) -> str:
        """
        Decrypt a stored token.

        Values written before encryption was enabled have no prefix and are
        returned unchanged.
        """
        if not self.is_encrypted(value):
            return value
        try:
            plaintext = self._fernet.decrypt(value[len(CIPHERTEXT_PREFIX):].encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Failed to decrypt token; invalid ciphertext provided."
            ) from exc
        return plaintext.decode("utf-8")


__all__ = ["CIPHERTEXT_PREFIX", "TokenCipherService"]
