"""SQLite-backed document store used for local development and tests."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from app.clients.document_store import deep_merge, resolve_parent, strip_sentinels
from app.core.errors import AccountNotConnectedError, PersistenceError


class SQLiteStore:
    """Document store keeping one JSON blob per ``(collection, doc_id)``."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self._db_path, check_same_thread=False, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Hold the write lock for the whole read-modify-write cycle."""
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            raise PersistenceError(f"SQLite transaction failed: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_id TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_id)
                )
                """
            )

    @staticmethod
    def _read(
        conn: sqlite3.Connection, collection: str, doc_id: str
    ) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
            (collection, doc_id),
        ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    @staticmethod
    def _write(
        conn: sqlite3.Connection, collection: str, doc_id: str, data: Dict[str, Any]
    ) -> None:
        conn.execute(
            """
            INSERT INTO documents (collection, doc_id, data)
            VALUES (?, ?, ?)
            ON CONFLICT(collection, doc_id) DO UPDATE SET data = excluded.data
            """,
            (collection, doc_id, json.dumps(data)),
        )

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        conn = self._connect()
        try:
            return self._read(conn, collection, doc_id)
        except sqlite3.Error as exc:
            raise PersistenceError(f"SQLite read failed: {exc}") from exc
        finally:
            conn.close()

    def set_document(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        *,
        merge: bool = True,
    ) -> None:
        with self._transaction() as conn:
            existing = self._read(conn, collection, doc_id) if merge else None
            document = deep_merge(existing or {}, data) if merge else strip_sentinels(data)
            self._write(conn, collection, doc_id, document)

    def delete_document(self, collection: str, doc_id: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, doc_id),
            )

    def prepend_to_list(
        self,
        collection: str,
        doc_id: str,
        field_path: tuple[str, ...],
        item: Dict[str, Any],
    ) -> None:
        with self._transaction() as conn:
            document = self._read(conn, collection, doc_id)
            parent = resolve_parent(document, field_path) if document else None
            if parent is None:
                raise AccountNotConnectedError(
                    f"{collection}/{doc_id} has no {'.'.join(field_path[:-1])}"
                )
            parent[field_path[-1]] = [item, *(parent.get(field_path[-1]) or [])]
            self._write(conn, collection, doc_id, document)


__all__ = ["SQLiteStore"]
