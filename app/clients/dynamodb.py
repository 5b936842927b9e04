"""
DynamoDB-backed document store.

Each document is one item keyed by ``pk = "<collection>#<doc_id>"`` and
``sk = "document"``; the document body lives in the ``data`` map attribute and
a ``version`` counter guards merge writes.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import BotoCoreError, ClientError

from app.clients.document_store import deep_merge, strip_sentinels
from app.core.config import StorageSettings
from app.core.errors import (
    AccountNotConnectedError,
    PersistenceError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

_SORT_KEY = "document"
_CONDITIONAL_FAILED = "ConditionalCheckFailedException"


def _to_dynamo(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _to_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(item) for item in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: _from_dynamo(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(item) for item in value]
    return value


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class DynamoDBDocumentStore:
    """Document operations on a single DynamoDB table."""

    def __init__(
        self,
        settings: StorageSettings,
        *,
        table: Any = None,
        max_merge_attempts: int = 5,
    ) -> None:
        self._settings = settings
        self._max_merge_attempts = max_merge_attempts
        if table is not None:
            self._table = table
            return
        try:
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            self._table = resource.Table(settings.dynamodb_table_name)
            self._table.load()
        except (BotoCoreError, ClientError) as exc:
            raise StorageUnavailableError(
                f"DynamoDB table {settings.dynamodb_table_name} is not reachable"
            ) from exc

    @staticmethod
    def _key(collection: str, doc_id: str) -> Dict[str, str]:
        return {"pk": f"{collection}#{doc_id}", "sk": _SORT_KEY}

    def _get_item(self, key: Dict[str, str]) -> Optional[Dict[str, Any]]:
        try:
            response = self._table.get_item(Key=key, ConsistentRead=True)
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"DynamoDB read failed for {key['pk']}") from exc
        return response.get("Item")

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        item = self._get_item(self._key(collection, doc_id))
        if not item:
            return None
        return _from_dynamo(item.get("data", {}))

    def set_document(
        self,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
        *,
        merge: bool = True,
    ) -> None:
        key = self._key(collection, doc_id)
        if not merge:
            self._put(key, strip_sentinels(data), version=1)
            return

        for attempt in range(1, self._max_merge_attempts + 1):
            current = self._get_item(key)
            version = int(current.get("version", 0)) if current else 0
            base = _from_dynamo(current.get("data", {})) if current else {}
            if current:
                condition = Attr("version").eq(version) | Attr("version").not_exists()
            else:
                condition = Attr("pk").not_exists()
            try:
                self._put(
                    key, deep_merge(base, data), version=version + 1, condition=condition
                )
                return
            except BotoCoreError as exc:
                raise PersistenceError(f"DynamoDB write failed for {key['pk']}") from exc
            except ClientError as exc:
                if _error_code(exc) != _CONDITIONAL_FAILED:
                    raise PersistenceError(
                        f"DynamoDB write failed for {key['pk']}"
                    ) from exc
                logger.info(
                    "Concurrent update on %s, retrying merge (attempt %s)",
                    key["pk"],
                    attempt,
                )
        raise PersistenceError(
            f"Gave up merging {key['pk']} after {self._max_merge_attempts} conflicts"
        )

    def _put(
        self,
        key: Dict[str, str],
        document: Dict[str, Any],
        *,
        version: int,
        condition: Any = None,
    ) -> None:
        item = {**key, "data": _to_dynamo(document), "version": version}
        kwargs: Dict[str, Any] = {"Item": item}
        if condition is not None:
            kwargs["ConditionExpression"] = condition
            self._table.put_item(**kwargs)
            return
        try:
            self._table.put_item(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"DynamoDB write failed for {key['pk']}") from exc

    def delete_document(self, collection: str, doc_id: str) -> None:
        key = self._key(collection, doc_id)
        try:
            self._table.delete_item(Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"DynamoDB delete failed for {key['pk']}") from exc

    def prepend_to_list(
        self,
        collection: str,
        doc_id: str,
        field_path: tuple[str, ...],
        item: Dict[str, Any],
    ) -> None:
        key = self._key(collection, doc_id)
        names = {"#data": "data", "#version": "version"}
        segments = ["#data"]
        for index, segment in enumerate(field_path):
            placeholder = f"#p{index}"
            names[placeholder] = segment
            segments.append(placeholder)
        list_path = ".".join(segments)
        parent_path = ".".join(segments[:-1])

        try:
            self._table.update_item(
                Key=key,
                UpdateExpression=(
                    f"SET {list_path} = list_append(:item, if_not_exists({list_path}, :empty)), "
                    "#version = if_not_exists(#version, :zero) + :one"
                ),
                ConditionExpression=f"attribute_exists({parent_path})",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues={
                    ":item": [_to_dynamo(item)],
                    ":empty": [],
                    ":zero": 0,
                    ":one": 1,
                },
            )
        except ClientError as exc:
            if _error_code(exc) == _CONDITIONAL_FAILED:
                raise AccountNotConnectedError(
                    f"{collection}/{doc_id} has no {'.'.join(field_path[:-1])}"
                ) from exc
            raise PersistenceError(f"DynamoDB update failed for {key['pk']}") from exc
        except BotoCoreError as exc:
            raise PersistenceError(f"DynamoDB update failed for {key['pk']}") from exc


__all__ = ["DynamoDBDocumentStore"]
