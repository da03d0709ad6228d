from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TABLE_NAME = "hbase:quota"


@dataclass(slots=True)
class Config:
    table_name: str
    consistent_read: bool

    region: str | None
    endpoint_url: str | None


def quota_table_name() -> str:
    return (
        os.environ.get("QUOTATABLE_TABLE_NAME", "").strip()
        or os.environ.get("QUOTA_TABLE_NAME", "").strip()
        or DEFAULT_TABLE_NAME
    )


def default_config() -> Config:
    return Config(
        table_name=quota_table_name(),
        consistent_read=False,
        region=os.environ.get("AWS_REGION", "").strip() or None,
        endpoint_url=os.environ.get("QUOTATABLE_DYNAMODB_ENDPOINT", "").strip() or None,
    )


def normalize_config(config: Config | None) -> Config:
    if config is None:
        return default_config()
    return config
