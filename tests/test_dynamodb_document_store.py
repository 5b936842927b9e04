try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from decimal import Decimal
from typing import Optional

import pytest
from botocore.exceptions import ClientError

from app.clients import DELETE_FIELD, DynamoDBDocumentStore
from app.core.config import StorageSettings
from app.core.errors import AccountNotConnectedError, PersistenceError


def _client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, "Operation")


class DummyTable:
    def __init__(self) -> None:
        self.items: dict[str, dict] = {}
        self.put_calls: list[dict] = []
        self.update_calls: list[dict] = []
        self.conflicts = 0
        self.update_error: Optional[ClientError] = None

    def get_item(self, Key, ConsistentRead=False):  # noqa: N803
        item = self.items.get(Key["pk"])
        return {"Item": item} if item else {}

    def put_item(self, **kwargs):
        self.put_calls.append(kwargs)
        if self.conflicts:
            self.conflicts -= 1
            raise _client_error("ConditionalCheckFailedException")
        self.items[kwargs["Item"]["pk"]] = kwargs["Item"]

    def delete_item(self, Key):  # noqa: N803
        self.items.pop(Key["pk"], None)

    def update_item(self, **kwargs):
        self.update_calls.append(kwargs)
        if self.update_error is not None:
            raise self.update_error


@pytest.fixture()
def table() -> DummyTable:
    return DummyTable()


@pytest.fixture()
def dynamo_store(table: DummyTable) -> DynamoDBDocumentStore:
    settings = StorageSettings(backend="dynamodb", dynamodb_table_name="social-dashboard")
    return DynamoDBDocumentStore(settings, table=table)


def test_get_document_converts_decimals(dynamo_store, table) -> None:
    table.items["users#u"] = {
        "pk": "users#u",
        "sk": "document",
        "version": Decimal("3"),
        "data": {"count": Decimal("2"), "ratio": Decimal("0.5")},
    }

    assert dynamo_store.get_document("users", "u") == {"count": 2, "ratio": 0.5}
    assert dynamo_store.get_document("users", "missing") is None


def test_merge_write_bumps_version_and_keeps_siblings(dynamo_store, table) -> None:
    dynamo_store.set_document("users", "u", {"a": {"x": 1}, "b": 1.5})
    dynamo_store.set_document("users", "u", {"a": {"y": 2, "x": DELETE_FIELD}})

    item = table.items["users#u"]
    assert item["sk"] == "document"
    assert item["version"] == 2
    assert item["data"] == {"a": {"y": 2}, "b": Decimal("1.5")}
    assert all("ConditionExpression" in call for call in table.put_calls)


def test_merge_write_retries_on_conflict(dynamo_store, table) -> None:
    table.conflicts = 2

    dynamo_store.set_document("users", "u", {"id": "u"})

    assert len(table.put_calls) == 3
    assert table.items["users#u"]["data"] == {"id": "u"}


def test_merge_write_gives_up_after_repeated_conflicts(table) -> None:
    settings = StorageSettings(backend="dynamodb", dynamodb_table_name="social-dashboard")
    store = DynamoDBDocumentStore(settings, table=table, max_merge_attempts=2)
    table.conflicts = 5

    with pytest.raises(PersistenceError):
        store.set_document("users", "u", {"id": "u"})
    assert len(table.put_calls) == 2


def test_replace_write_has_no_condition(dynamo_store, table) -> None:
    dynamo_store.set_document("oauth_sessions", "n", {"uid": "u"}, merge=False)

    assert "ConditionExpression" not in table.put_calls[0]
    assert table.items["oauth_sessions#n"]["data"] == {"uid": "u"}


def test_delete_document(dynamo_store, table) -> None:
    dynamo_store.set_document("oauth_sessions", "n", {"uid": "u"}, merge=False)
    dynamo_store.delete_document("oauth_sessions", "n")

    assert "oauth_sessions#n" not in table.items


def test_prepend_uses_single_conditional_list_append(dynamo_store, table) -> None:
    dynamo_store.prepend_to_list(
        "users", "u", ("twitterAccount", "tweets"), {"content": "hi", "providerPostId": "1"}
    )

    call = table.update_calls[0]
    assert call["Key"] == {"pk": "users#u", "sk": "document"}
    assert call["UpdateExpression"].startswith(
        "SET #data.#p0.#p1 = list_append(:item, if_not_exists(#data.#p0.#p1, :empty))"
    )
    assert call["ConditionExpression"] == "attribute_exists(#data.#p0)"
    assert call["ExpressionAttributeNames"]["#p0"] == "twitterAccount"
    assert call["ExpressionAttributeNames"]["#p1"] == "tweets"
    assert call["ExpressionAttributeValues"][":item"] == [
        {"content": "hi", "providerPostId": "1"}
    ]


def test_prepend_without_account_raises_not_connected(dynamo_store, table) -> None:
    table.update_error = _client_error("ConditionalCheckFailedException")

    with pytest.raises(AccountNotConnectedError):
        dynamo_store.prepend_to_list("users", "u", ("twitterAccount", "tweets"), {})


def test_prepend_other_failures_are_persistence_errors(dynamo_store, table) -> None:
    table.update_error = _client_error("ProvisionedThroughputExceededException")

    with pytest.raises(PersistenceError) as excinfo:
        dynamo_store.prepend_to_list("users", "u", ("twitterAccount", "tweets"), {})
    assert not isinstance(excinfo.value, AccountNotConnectedError)
