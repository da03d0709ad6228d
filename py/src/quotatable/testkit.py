from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from quotatable.logger import StructuredLogger, key_field
from quotatable.models import SpaceQuotaSnapshot, SpaceViolationPolicy
from quotatable.types import Delete, Get, Put, Result, Scan


@dataclass(slots=True)
class InMemoryQuotaStore:
    rows: dict[bytes, dict[bytes, dict[bytes, bytes]]] = field(default_factory=dict)
    fail_with: Exception | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def add_cell(self, row: bytes, family: bytes, qualifier: bytes, value: bytes) -> None:
        self.rows.setdefault(bytes(row), {}).setdefault(bytes(family), {})[bytes(qualifier)] = bytes(value)

    def get(self, get: Get) -> Result:
        self._check()
        cells: dict[bytes, dict[bytes, bytes]] = {}
        for family, columns in (self.rows.get(get.row) or {}).items():
            for qualifier, value in columns.items():
                if get.selects(family, qualifier):
                    cells.setdefault(family, {})[qualifier] = value
        return Result(row=bytes(get.row), cells=cells)

    def scan(self, scan: Scan) -> list[Result]:
        self._check()
        out: list[Result] = []
        for row in sorted(self.rows):
            if scan.row_prefix and not row.startswith(scan.row_prefix):
                continue
            cells: dict[bytes, dict[bytes, bytes]] = {}
            for family, columns in self.rows[row].items():
                for qualifier in sorted(columns):
                    if not scan.selects(family, qualifier):
                        continue
                    if scan.filter is not None and not scan.filter.matches(row, qualifier):
                        continue
                    cells.setdefault(family, {})[qualifier] = columns[qualifier]
            if cells:
                out.append(Result(row=row, cells=cells))
        return out

    def put(self, put: Put) -> None:
        self._check()
        self.add_cell(put.row, put.family, put.qualifier, put.value)

    def delete(self, delete: Delete) -> None:
        self._check()
        family = (self.rows.get(delete.row) or {}).get(delete.family)
        if family is None:
            return
        family.pop(delete.qualifier, None)
        if not family:
            del self.rows[delete.row][delete.family]
        if not self.rows[delete.row]:
            del self.rows[delete.row]


@dataclass(slots=True)
class FakeClusterConnection:
    region_sizes: list[tuple[str, int]] = field(default_factory=list)
    snapshots: dict[str, list[tuple[str, SpaceQuotaSnapshot]]] = field(default_factory=dict)
    enforcements: dict[str, list[tuple[str, SpaceViolationPolicy]]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def get_master_region_sizes(self) -> list[tuple[str, int]]:
        self.calls.append(("master_region_sizes", ""))
        return list(self.region_sizes)

    def get_region_server_quota_snapshots(self, server: str) -> list[tuple[str, SpaceQuotaSnapshot]]:
        self.calls.append(("region_server_snapshots", str(server)))
        return list(self.snapshots.get(server) or [])

    def get_region_server_space_quota_enforcements(self, server: str) -> list[tuple[str, SpaceViolationPolicy]]:
        self.calls.append(("region_server_enforcements", str(server)))
        return list(self.enforcements.get(server) or [])


class RecordingLogger:
    """Keeps every entry in memory for assertions."""

    def __init__(self, fields: dict[str, Any] | None = None) -> None:
        self.fields: dict[str, Any] = dict(fields or {})
        self.entries: list[tuple[str, str, dict[str, Any]]] = []

    def _log(self, level: str, message: str, fields: tuple[dict[str, Any], ...]) -> None:
        merged = dict(self.fields)
        for extra in fields:
            merged.update(extra or {})
        self.entries.append((level, str(message), merged))

    def debug(self, message: str, *fields: dict[str, Any]) -> None:
        self._log("debug", message, fields)

    def info(self, message: str, *fields: dict[str, Any]) -> None:
        self._log("info", message, fields)

    def warn(self, message: str, *fields: dict[str, Any]) -> None:
        self._log("warn", message, fields)

    def error(self, message: str, *fields: dict[str, Any]) -> None:
        self._log("error", message, fields)

    def with_field(self, key: str, value: Any) -> StructuredLogger:
        return self.with_fields({key: value})

    def with_fields(self, fields: dict[str, Any]) -> StructuredLogger:
        child = RecordingLogger({**self.fields, **dict(fields or {})})
        child.entries = self.entries
        return child

    def with_table_name(self, table_name: str) -> StructuredLogger:
        return self.with_field("table_name", str(table_name))

    def with_row(self, row: bytes) -> StructuredLogger:
        return self.with_field("row", key_field(row))

    def messages(self, level: str | None = None) -> list[str]:
        return [msg for lvl, msg, _ in self.entries if level is None or lvl == level]
