from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from quotatable.errors import new_error, wrap_error
from quotatable.keys import (
    QUOTA_FAMILY_INFO,
    namespace_row_key_regex,
    settings_qualifier_regex_for_user_namespace,
    settings_qualifier_regex_for_user_table,
    table_row_key_regex,
    user_row_key_regex,
)
from quotatable.types import Scan


@dataclass(frozen=True, slots=True)
class QuotaFilter:
    """Scan restriction; every field is a regular expression fragment."""

    user_filter: str | None = None
    table_filter: str | None = None
    namespace_filter: str | None = None

    def is_null(self) -> bool:
        return not (self.user_filter or self.table_filter or self.namespace_filter)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _text(value: bytes) -> str:
    return bytes(value).decode("utf-8", errors="surrogateescape")


@dataclass(frozen=True, slots=True)
class RowRegex:
    pattern: str

    def matches(self, row: bytes, qualifier: bytes) -> bool:
        return _compile(self.pattern).search(_text(row)) is not None


@dataclass(frozen=True, slots=True)
class QualifierRegex:
    pattern: str

    def matches(self, row: bytes, qualifier: bytes) -> bool:
        return _compile(self.pattern).search(_text(qualifier)) is not None


@dataclass(frozen=True, slots=True)
class AllOf:
    filters: tuple[Predicate, ...] = ()

    def matches(self, row: bytes, qualifier: bytes) -> bool:
        return all(f.matches(row, qualifier) for f in self.filters)


@dataclass(frozen=True, slots=True)
class AnyOf:
    filters: tuple[Predicate, ...] = ()

    def matches(self, row: bytes, qualifier: bytes) -> bool:
        if not self.filters:
            return True
        return any(f.matches(row, qualifier) for f in self.filters)


Predicate = RowRegex | QualifierRegex | AllOf | AnyOf


def _regex(pattern: str) -> str:
    try:
        _compile(pattern)
    except re.error as exc:
        raise wrap_error(exc, "illegal_input", f"invalid filter pattern: {pattern!r}") from exc
    return pattern


def make_filter(quota_filter: QuotaFilter) -> AllOf:
    """Predicate tree selecting the quota cells ``quota_filter`` asks for.

    A null filter yields an empty conjunction, which matches every cell.
    """
    if quota_filter is None:
        raise new_error("illegal_input", "quota filter is required")

    user = quota_filter.user_filter
    table = quota_filter.table_filter
    namespace = quota_filter.namespace_filter

    if user:
        user_row = RowRegex(_regex(user_row_key_regex(user)))
        user_filters: list[Predicate] = []
        if namespace:
            user_filters.append(
                AllOf((user_row, QualifierRegex(_regex(settings_qualifier_regex_for_user_namespace(namespace)))))
            )
        if table:
            user_filters.append(
                AllOf((user_row, QualifierRegex(_regex(settings_qualifier_regex_for_user_table(table)))))
            )
        if not user_filters:
            user_filters.append(user_row)
        return AllOf((AnyOf(tuple(user_filters)),))

    if table:
        return AllOf((RowRegex(_regex(table_row_key_regex(table))),))
    if namespace:
        return AllOf((RowRegex(_regex(namespace_row_key_regex(namespace))),))
    return AllOf()


def make_scan(quota_filter: QuotaFilter | None = None) -> Scan:
    if quota_filter is None or quota_filter.is_null():
        return Scan(families=(QUOTA_FAMILY_INFO,))
    return Scan(families=(QUOTA_FAMILY_INFO,), filter=make_filter(quota_filter))
