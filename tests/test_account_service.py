try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from app.core.errors import AccountNotConnectedError, TokenDecryptionError
from app.models.social import ConnectedAccountRecord, PostRecord
from app.services import AccountService, TokenCipherService
from app.services.token_cipher import CIPHERTEXT_PREFIX


def _post(content: str, post_id: str) -> PostRecord:
    return PostRecord(content=content, provider_post_id=post_id)


def test_read_account_returns_none_without_document(account_service) -> None:
    assert account_service.read_account("nobody", "twitter") is None


def test_read_account_requires_access_token(account_service, store) -> None:
    store.set_document("users", "user-1", {"twitterAccount": {"username": "jack"}})

    assert account_service.read_account("user-1", "twitter") is None


def test_upsert_then_read_round_trips_record(account_service) -> None:
    account_service.upsert_account(
        "user-1",
        "linkedin",
        ConnectedAccountRecord(username="Ada", access_token="token", provider_user_id="sub-1"),
    )

    record = account_service.read_account("user-1", "linkedin")
    assert record is not None
    assert record.username == "Ada"
    assert record.access_token == "token"
    assert record.provider_user_id == "sub-1"
    assert record.posts == []


def test_upsert_merges_and_keeps_unrelated_fields(account_service, store) -> None:
    store.set_document(
        "users",
        "user-1",
        {"displayName": "Jack", "instagramAccount": {"username": "ig", "accessToken": "x"}},
    )

    account_service.upsert_account(
        "user-1", "twitter", ConnectedAccountRecord(username="jack", access_token="t")
    )

    document = store.get_document("users", "user-1")
    assert document["displayName"] == "Jack"
    assert document["instagramAccount"]["accessToken"] == "x"
    assert document["twitterAccount"]["accessToken"] == "t"


def test_explicit_history_replaces_stored_posts(account_service, store) -> None:
    account_service.upsert_account(
        "user-1", "twitter", ConnectedAccountRecord(username="jack", access_token="t")
    )
    account_service.prepend_post("user-1", "twitter", _post("old", "1"))

    account_service.upsert_account(
        "user-1",
        "twitter",
        ConnectedAccountRecord(username="jack", access_token="t", posts=[]),
    )

    assert store.get_document("users", "user-1")["twitterAccount"]["tweets"] == []


def test_prepend_post_puts_newest_first(account_service) -> None:
    account_service.upsert_account(
        "user-1",
        "twitter",
        ConnectedAccountRecord(
            username="jack",
            access_token="t",
            posts=[_post("A", "a"), _post("B", "b")],
        ),
    )

    account_service.prepend_post("user-1", "twitter", _post("C", "c"))

    record = account_service.read_account("user-1", "twitter")
    assert [post.content for post in record.posts] == ["C", "A", "B"]
    assert record.posts[0].status == "posted"
    assert record.posts[0].provider_post_id == "c"


def test_prepend_post_creates_history_when_absent(account_service, store) -> None:
    account_service.upsert_account(
        "user-1", "linkedin", ConnectedAccountRecord(username="Ada", access_token="t")
    )

    account_service.prepend_post("user-1", "linkedin", _post("hello", "urn:li:share:1"))

    posts = store.get_document("users", "user-1")["linkedinAccount"]["posts"]
    assert [post["providerPostId"] for post in posts] == ["urn:li:share:1"]


def test_prepend_post_requires_connected_account(account_service) -> None:
    with pytest.raises(AccountNotConnectedError):
        account_service.prepend_post("user-1", "twitter", _post("hi", "1"))


def test_list_accounts_only_reports_connected_providers(account_service) -> None:
    account_service.upsert_account(
        "user-1", "instagram", ConnectedAccountRecord(username="ig", access_token="t")
    )

    accounts = account_service.list_accounts("user-1")

    assert list(accounts) == ["instagram"]


def test_tokens_are_encrypted_at_rest_when_cipher_configured(store) -> None:
    service = AccountService(store, token_cipher=TokenCipherService(secret="s3cret"))

    service.upsert_account(
        "user-1",
        "twitter",
        ConnectedAccountRecord(username="jack", access_token="plain-at", refresh_token="plain-rt"),
    )

    stored = store.get_document("users", "user-1")["twitterAccount"]
    assert stored["accessToken"].startswith(CIPHERTEXT_PREFIX)
    assert stored["refreshToken"].startswith(CIPHERTEXT_PREFIX)

    record = service.read_account("user-1", "twitter")
    assert record.access_token == "plain-at"
    assert record.refresh_token == "plain-rt"


def test_unknown_provider_is_rejected(account_service) -> None:
    with pytest.raises(ValueError):
        account_service.read_account("user-1", "myspace")


def test_tokens_sealed_with_another_secret_need_reconnect(store) -> None:
    AccountService(store, token_cipher=TokenCipherService(secret="old")).upsert_account(
        "user-1", "twitter", ConnectedAccountRecord(username="jack", access_token="at")
    )
    AccountService(store).upsert_account(
        "user-1", "instagram", ConnectedAccountRecord(username="ig", access_token="ig-at")
    )
    rotated = AccountService(store, token_cipher=TokenCipherService(secret="new"))

    with pytest.raises(TokenDecryptionError):
        rotated.read_account("user-1", "twitter")
    assert list(rotated.list_accounts("user-1")) == ["instagram"]


def test_history_entries_without_any_id_read_as_unknown(account_service, store) -> None:
    store.set_document(
        "users",
        "user-1",
        {
            "twitterAccount": {
                "username": "jack",
                "accessToken": "at",
                "tweets": [
                    {"content": "old", "createdAt": "2023-01-01T00:00:00.000Z"},
                    {"content": "older", "tweetId": 42},
                ],
            }
        },
    )

    record = account_service.read_account("user-1", "twitter")

    assert [post.provider_post_id for post in record.posts] == ["unknown", "42"]
