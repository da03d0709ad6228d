from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from quotatable.models import SpaceQuotaSnapshot, SpaceViolationPolicy
from quotatable.types import Delete, Get, Put, Result, Scan


class QuotaStore(Protocol):
    def get(self, get: Get) -> Result: ...
    def scan(self, scan: Scan) -> Iterable[Result]: ...
    def put(self, put: Put) -> None: ...
    def delete(self, delete: Delete) -> None: ...


@runtime_checkable
class ClusterConnection(Protocol):
    """Connection able to reach the master and region servers directly."""

    def get_master_region_sizes(self) -> Iterable[tuple[str, int]]: ...

    def get_region_server_quota_snapshots(self, server: str) -> Iterable[tuple[str, SpaceQuotaSnapshot]]: ...

    def get_region_server_space_quota_enforcements(
        self, server: str
    ) -> Iterable[tuple[str, SpaceViolationPolicy]]: ...
