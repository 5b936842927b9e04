"""
Read and write connected-account records nested in user documents.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from app.clients.document_store import DELETE_FIELD, DocumentStore
from app.core.errors import TokenDecryptionError
from app.models.social import (
    PROVIDER_DOCUMENT_FIELDS,
    USERS_COLLECTION,
    ConnectedAccountRecord,
    PostRecord,
    account_fields,
    utc_now_iso,
)
from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

# Optional record fields cleared on reconnect when the provider omits them.
_CLEARABLE_FIELDS = ("refreshToken", "profileImage", "providerUserId")


class AccountService:
    """Persistence contract for connected accounts and their post history."""

    def __init__(
        self,
        store: DocumentStore,
        token_cipher: Optional[TokenCipherService] = None,
    ) -> None:
        self._store = store
        self._cipher = token_cipher

    def read_account(self, uid: str, provider: str) -> Optional[ConnectedAccountRecord]:
        account_field, history_field = account_fields(provider)
        document = self._store.get_document(USERS_COLLECTION, uid) or {}
        data = document.get(account_field)
        if not isinstance(data, dict) or not data.get("accessToken"):
            return None
        return self._decrypt(ConnectedAccountRecord.from_document(data, history_field))

    def list_accounts(self, uid: str) -> Dict[str, ConnectedAccountRecord]:
        """Return every connected account of ``uid`` keyed by provider."""
        document = self._store.get_document(USERS_COLLECTION, uid) or {}
        accounts: Dict[str, ConnectedAccountRecord] = {}
        for provider, (account_field, history_field) in PROVIDER_DOCUMENT_FIELDS.items():
            data = document.get(account_field)
            if not isinstance(data, dict) or not data.get("accessToken"):
                continue
            try:
                accounts[provider] = self._decrypt(
                    ConnectedAccountRecord.from_document(data, history_field)
                )
            except TokenDecryptionError:
                # Listed as disconnected so the dashboard offers a reconnect.
                logger.warning(
                    "Stored %s tokens for user %s cannot be decrypted", provider, uid
                )
        return accounts

    def upsert_account(
        self, uid: str, provider: str, record: ConnectedAccountRecord
    ) -> None:
        """
        Merge ``record`` into the user document.

        Post history is left untouched unless the caller explicitly set
        ``record.posts``; sibling fields and other providers survive.
        """
        account_field, history_field = account_fields(provider)
        payload: Dict[str, Any] = record.model_dump(
            by_alias=True, exclude={"posts"}, exclude_none=True
        )
        for field_name in _CLEARABLE_FIELDS:
            payload.setdefault(field_name, DELETE_FIELD)
        if self._cipher is not None:
            payload["accessToken"] = self._cipher.encrypt(record.access_token)
            if record.refresh_token:
                payload["refreshToken"] = self._cipher.encrypt(record.refresh_token)
        if record.history_is_explicit:
            payload[history_field] = [post.to_document() for post in record.posts]

        now = utc_now_iso()
        document: Dict[str, Any] = {"id": uid, "updatedAt": now, account_field: payload}
        existing = self._store.get_document(USERS_COLLECTION, uid)
        if existing is None or "createdAt" not in existing:
            document["createdAt"] = now

        logger.info(
            "Saving %s account: path=%s/%s fields=%s",
            provider,
            USERS_COLLECTION,
            uid,
            sorted(key for key, value in payload.items() if value is not DELETE_FIELD),
        )
        self._store.set_document(USERS_COLLECTION, uid, document, merge=True)

    def prepend_post(self, uid: str, provider: str, post: PostRecord) -> None:
        """
        Insert ``post`` at the head of the provider's history.

        Raises ``AccountNotConnectedError`` when the account record is absent.
        """
        account_field, history_field = account_fields(provider)
        self._store.prepend_to_list(
            USERS_COLLECTION, uid, (account_field, history_field), post.to_document()
        )

    def _decrypt(self, record: ConnectedAccountRecord) -> ConnectedAccountRecord:
        if self._cipher is None:
            return record
        try:
            updates: Dict[str, Any] = {
                "access_token": self._cipher.decrypt(record.access_token)
            }
            if record.refresh_token:
                updates["refresh_token"] = self._cipher.decrypt(record.refresh_token)
        except ValueError as exc:
            raise TokenDecryptionError(
                "Stored tokens cannot be decrypted; the account must be reconnected"
            ) from exc
        return record.model_copy(update=updates)


__all__ = ["AccountService"]
