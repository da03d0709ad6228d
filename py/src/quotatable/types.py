from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

# Scopes


@dataclass(frozen=True, slots=True)
class NamespaceScope:
    namespace: str


@dataclass(frozen=True, slots=True)
class TableScope:
    table: str


@dataclass(frozen=True, slots=True)
class UserScope:
    user: str


@dataclass(frozen=True, slots=True)
class UserTableScope:
    user: str
    table: str


@dataclass(frozen=True, slots=True)
class UserNamespaceScope:
    user: str
    namespace: str


QuotaScope = NamespaceScope | TableScope | UserScope | UserTableScope | UserNamespaceScope


# Qualifier kinds. The three settings kinds double as the result of classifying
# a qualifier found on a user row.


@dataclass(frozen=True, slots=True)
class GlobalSettings:
    pass


@dataclass(frozen=True, slots=True)
class UserTableSettings:
    table: str


@dataclass(frozen=True, slots=True)
class UserNamespaceSettings:
    namespace: str


@dataclass(frozen=True, slots=True)
class UsagePolicy:
    pass


QualifierKind = GlobalSettings | UserTableSettings | UserNamespaceSettings | UsagePolicy
SettingsQualifier = GlobalSettings | UserTableSettings | UserNamespaceSettings


# Store requests and results


class CellPredicate(Protocol):
    def matches(self, row: bytes, qualifier: bytes) -> bool: ...


def selects_column(
    families: tuple[bytes, ...],
    columns: tuple[tuple[bytes, bytes], ...],
    family: bytes,
    qualifier: bytes,
) -> bool:
    if not families and not columns:
        return True
    if family in families:
        return True
    return (family, qualifier) in columns


@dataclass(frozen=True, slots=True)
class Get:
    row: bytes
    families: tuple[bytes, ...] = ()
    columns: tuple[tuple[bytes, bytes], ...] = ()

    def selects(self, family: bytes, qualifier: bytes) -> bool:
        return selects_column(self.families, self.columns, family, qualifier)


@dataclass(frozen=True, slots=True)
class Scan:
    families: tuple[bytes, ...] = ()
    columns: tuple[tuple[bytes, bytes], ...] = ()
    row_prefix: bytes | None = None
    filter: CellPredicate | None = None

    def selects(self, family: bytes, qualifier: bytes) -> bool:
        return selects_column(self.families, self.columns, family, qualifier)


@dataclass(frozen=True, slots=True)
class Put:
    row: bytes
    family: bytes
    qualifier: bytes
    value: bytes


@dataclass(frozen=True, slots=True)
class Delete:
    row: bytes
    family: bytes
    qualifier: bytes


@dataclass(slots=True)
class Result:
    row: bytes | None
    cells: dict[bytes, dict[bytes, bytes]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not any(self.cells.values())

    def get_value(self, family: bytes, qualifier: bytes) -> bytes | None:
        return (self.cells.get(family) or {}).get(qualifier)

    def get_family_map(self, family: bytes) -> dict[bytes, bytes]:
        return dict(self.cells.get(family) or {})
