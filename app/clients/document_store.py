"""
Document store contract shared by the SQLite and DynamoDB backends.

Documents are JSON-compatible dictionaries addressed by ``(collection, doc_id)``.
Merge writes follow the usual document-database semantics: nested maps are
merged key by key and untouched siblings survive.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from app.core.config import StorageSettings
from app.core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class _DeleteField:
    """Sentinel removing a key during a merge write."""

    _instance: Optional["_DeleteField"] = None

    def __new__(cls) -> "_DeleteField":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE_FIELD"


DELETE_FIELD = _DeleteField()


@runtime_checkable
class DocumentStore(Protocol):
    """Minimal document database interface."""

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def set_document(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        *,
        merge: bool = True,
    ) -> None:
        ...

    def delete_document(self, collection: str, doc_id: str) -> None:
        ...

    def prepend_to_list(
        self,
        collection: str,
        doc_id: str,
        field_path: tuple[str, ...],
        item: Dict[str, Any],
    ) -> None:
        """
        Atomically insert ``item`` at the head of the list at ``field_path``.

        The parent map of the list must already exist; a missing list is
        treated as empty.
        """
        ...


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``base`` updated with ``patch``; nested dicts merge recursively."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if value is DELETE_FIELD:
            merged.pop(key, None)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = strip_sentinels(value)
    return merged


def strip_sentinels(value: Any) -> Any:
    """Drop ``DELETE_FIELD`` markers from a value written without a base."""
    if isinstance(value, dict):
        return {
            key: strip_sentinels(item)
            for key, item in value.items()
            if item is not DELETE_FIELD
        }
    return copy.deepcopy(value)


def resolve_parent(document: Dict[str, Any], field_path: tuple[str, ...]) -> Optional[Dict[str, Any]]:
    """Walk to the map holding the last element of ``field_path``."""
    node: Any = document
    for key in field_path[:-1]:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, dict) else None


def open_document_store(settings: StorageSettings) -> DocumentStore:
    """
    Construct the configured backend.

    Any failure is raised as ``StorageUnavailableError`` so callers can report
    the precondition failure instead of crashing later.
    """
    try:
        if settings.backend == "dynamodb":
            from app.clients.dynamodb import DynamoDBDocumentStore

            return DynamoDBDocumentStore(settings)

        from app.clients.sqlite_store import SQLiteStore

        return SQLiteStore(settings.sqlite_path)
    except StorageUnavailableError:
        raise
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Failed to initialize %s document store", settings.backend)
        raise StorageUnavailableError(
            f"Could not initialize the {settings.backend} document store"
        ) from exc


__all__ = [
    "DELETE_FIELD",
    "DocumentStore",
    "deep_merge",
    "open_document_store",
    "resolve_parent",
    "strip_sentinels",
]
