try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from concurrent.futures import ThreadPoolExecutor

import pytest

from app.clients import DELETE_FIELD, SQLiteStore
from app.clients.document_store import deep_merge, open_document_store
from app.core.config import StorageSettings
from app.core.errors import AccountNotConnectedError


def test_deep_merge_keeps_siblings_and_removes_deleted_keys() -> None:
    base = {"a": {"x": 1, "y": 2}, "b": 1}
    merged = deep_merge(base, {"a": {"y": DELETE_FIELD, "z": 3}, "c": {"k": DELETE_FIELD}})

    assert merged == {"a": {"x": 1, "z": 3}, "b": 1, "c": {}}
    assert base == {"a": {"x": 1, "y": 2}, "b": 1}


def test_set_without_merge_replaces_document(store: SQLiteStore) -> None:
    store.set_document("users", "u", {"a": 1, "b": 2})
    store.set_document("users", "u", {"c": 3}, merge=False)

    assert store.get_document("users", "u") == {"c": 3}


def test_delete_document(store: SQLiteStore) -> None:
    store.set_document("oauth_sessions", "n", {"uid": "u"})
    store.delete_document("oauth_sessions", "n")

    assert store.get_document("oauth_sessions", "n") is None


def test_prepend_requires_parent_map(store: SQLiteStore) -> None:
    store.set_document("users", "u", {"id": "u"})

    with pytest.raises(AccountNotConnectedError):
        store.prepend_to_list("users", "u", ("twitterAccount", "tweets"), {"content": "x"})


def test_concurrent_prepends_are_not_lost(store: SQLiteStore) -> None:
    store.set_document("users", "u", {"twitterAccount": {"accessToken": "t"}})

    def prepend(index: int) -> None:
        store.prepend_to_list(
            "users", "u", ("twitterAccount", "tweets"), {"content": str(index)}
        )

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(prepend, range(20)))

    tweets = store.get_document("users", "u")["twitterAccount"]["tweets"]
    assert sorted(int(tweet["content"]) for tweet in tweets) == list(range(20))


def test_open_document_store_builds_sqlite_backend(tmp_path) -> None:
    settings = StorageSettings(backend="sqlite", sqlite_path=str(tmp_path / "nested" / "db.sqlite"))

    backend = open_document_store(settings)

    assert isinstance(backend, SQLiteStore)
    backend.set_document("users", "u", {"id": "u"})
    assert backend.get_document("users", "u") == {"id": "u"}
