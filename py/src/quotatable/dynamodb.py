from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any

from quotatable.config import Config, normalize_config
from quotatable.errors import wrap_error
from quotatable.logger import get_logger
from quotatable.types import Delete, Get, Put, Result, Scan

_FAMILY_SEP = b":"


@dataclass(slots=True)
class DynamoDBClient:
    region: str | None = None
    endpoint_url: str | None = None
    _boto: Any = None

    def _client(self):
        if self._boto is not None:
            return self._boto

        try:
            import boto3  # type: ignore
        except ImportError as exc:
            raise RuntimeError("quotatable: boto3 is required for the dynamodb quota store") from exc

        self._boto = boto3.client("dynamodb", region_name=self.region, endpoint_url=self.endpoint_url)
        return self._boto

    def get_item(self, **kwargs: Any) -> dict[str, Any]:
        return dict(self._client().get_item(**kwargs) or {})

    def put_item(self, **kwargs: Any) -> dict[str, Any]:
        return dict(self._client().put_item(**kwargs) or {})

    def delete_item(self, **kwargs: Any) -> dict[str, Any]:
        return dict(self._client().delete_item(**kwargs) or {})

    def query(self, **kwargs: Any) -> dict[str, Any]:
        return dict(self._client().query(**kwargs) or {})

    def scan(self, **kwargs: Any) -> dict[str, Any]:
        return dict(self._client().scan(**kwargs) or {})


def _av_b(value: bytes) -> dict[str, bytes]:
    return {"B": bytes(value)}


def _get_binary(item: dict[str, Any], key: str) -> bytes | None:
    av = item.get(key)
    if not isinstance(av, dict) or "B" not in av:
        return None
    value = av.get("B")
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value)
    if isinstance(value, str):
        return base64.b64decode(value)
    return None


def _sort_key(family: bytes, qualifier: bytes) -> bytes:
    return bytes(family) + _FAMILY_SEP + bytes(qualifier)


def _split_sort_key(sk: bytes) -> tuple[bytes, bytes]:
    family, _, qualifier = bytes(sk).partition(_FAMILY_SEP)
    return family, qualifier


@dataclass(slots=True)
class DynamoQuotaStore:
    """Quota table kept in DynamoDB, one item per cell.

    ``PK`` holds the row key, ``SK`` holds ``family:qualifier`` and ``Value``
    the cell bytes, all as binary attributes.
    """

    dynamo: Any
    config: Config

    def __init__(self, *, dynamo: Any | None = None, config: Config | None = None) -> None:
        self.config = normalize_config(config)
        self.dynamo = dynamo or DynamoDBClient(region=self.config.region, endpoint_url=self.config.endpoint_url)

    def _pages(self, operation: str, **kwargs: Any) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        start_key: dict[str, Any] | None = None
        pages = 0
        while True:
            params = dict(kwargs)
            if start_key:
                params["ExclusiveStartKey"] = start_key
            out = getattr(self.dynamo, operation)(**params)
            pages += 1
            items.extend(list(out.get("Items") or []))
            start_key = out.get("LastEvaluatedKey") or None
            if not start_key:
                break
        get_logger().with_table_name(self.config.table_name).debug(
            "quota table read", {"operation": operation, "pages": pages, "items": len(items)}
        )
        return items

    def get(self, get: Get) -> Result:
        try:
            items = self._pages(
                "query",
                TableName=self.config.table_name,
                KeyConditionExpression="#PK = :pk",
                ExpressionAttributeNames={"#PK": "PK"},
                ExpressionAttributeValues={":pk": _av_b(get.row)},
                ConsistentRead=bool(self.config.consistent_read),
            )
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to get quota row") from exc

        cells: dict[bytes, dict[bytes, bytes]] = {}
        for item in items:
            sk = _get_binary(item, "SK")
            value = _get_binary(item, "Value")
            if sk is None or value is None:
                continue
            family, qualifier = _split_sort_key(sk)
            if get.selects(family, qualifier):
                cells.setdefault(family, {})[qualifier] = value
        return Result(row=bytes(get.row), cells=cells)

    def scan(self, scan: Scan) -> list[Result]:
        params: dict[str, Any] = {
            "TableName": self.config.table_name,
            "ConsistentRead": bool(self.config.consistent_read),
        }
        if scan.row_prefix:
            params["FilterExpression"] = "begins_with(#PK, :prefix)"
            params["ExpressionAttributeNames"] = {"#PK": "PK"}
            params["ExpressionAttributeValues"] = {":prefix": _av_b(scan.row_prefix)}

        try:
            items = self._pages("scan", **params)
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to scan quota table") from exc

        rows: dict[bytes, dict[bytes, dict[bytes, bytes]]] = {}
        for item in items:
            row = _get_binary(item, "PK")
            sk = _get_binary(item, "SK")
            value = _get_binary(item, "Value")
            if row is None or sk is None or value is None:
                continue
            if scan.row_prefix and not row.startswith(scan.row_prefix):
                continue
            family, qualifier = _split_sort_key(sk)
            if not scan.selects(family, qualifier):
                continue
            if scan.filter is not None and not scan.filter.matches(row, qualifier):
                continue
            rows.setdefault(row, {}).setdefault(family, {})[qualifier] = value

        return [Result(row=row, cells=rows[row]) for row in sorted(rows)]

    def put(self, put: Put) -> None:
        try:
            self.dynamo.put_item(
                TableName=self.config.table_name,
                Item={
                    "PK": _av_b(put.row),
                    "SK": _av_b(_sort_key(put.family, put.qualifier)),
                    "Value": _av_b(put.value),
                },
            )
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to put quota cell") from exc

    def delete(self, delete: Delete) -> None:
        try:
            self.dynamo.delete_item(
                TableName=self.config.table_name,
                Key={"PK": _av_b(delete.row), "SK": _av_b(_sort_key(delete.family, delete.qualifier))},
            )
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to delete quota cell") from exc
