from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from quotatable.errors import QuotaTableError, new_error, wrap_error
from quotatable.keys import (
    QUOTA_FAMILY_INFO,
    QUOTA_FAMILY_USAGE,
    QUOTA_QUALIFIER_POLICY,
    QUOTA_QUALIFIER_SETTINGS,
    classify_user_qualifier,
    decode_row_key,
    is_table_row_key,
    table_from_row_key,
)
from quotatable.logger import get_logger
from quotatable.models import Quotas, SpaceQuotaSnapshot
from quotatable.records import PayloadSerializer, quotas_from_data, snapshot_from_data
from quotatable.types import (
    GlobalSettings,
    NamespaceScope,
    Result,
    TableScope,
    UserNamespaceSettings,
    UserScope,
    UserTableSettings,
)

NamespaceQuotasCallback = Callable[[str, Quotas], None]
TableQuotasCallback = Callable[[str, Quotas], None]
UserQuotasCallback = Callable[[str, Quotas], None]
UserTableQuotasCallback = Callable[[str, str, Quotas], None]
UserNamespaceQuotasCallback = Callable[[str, str, Quotas], None]


@dataclass(frozen=True, slots=True)
class QuotaCallbacks:
    """Functions invoked per decoded settings record; unset ones are skipped."""

    on_namespace: NamespaceQuotasCallback | None = None
    on_table: TableQuotasCallback | None = None
    on_user: UserQuotasCallback | None = None
    on_user_table: UserTableQuotasCallback | None = None
    on_user_namespace: UserNamespaceQuotasCallback | None = None
    on_unrecognized: Callable[[bytes], None] | None = None


def _row_of(result: Result | None) -> bytes:
    if result is None:
        raise new_error("illegal_input", "result is required")
    if result.row is None:
        raise new_error("illegal_input", "provided result had a null row")
    return bytes(result.row)


def parse_result(
    result: Result,
    callbacks: QuotaCallbacks,
    *,
    serializer: PayloadSerializer | None = None,
) -> None:
    row = _row_of(result)
    try:
        scope = decode_row_key(row)
    except QuotaTableError as exc:
        if exc.type != "malformed_key":
            raise
        get_logger().with_row(row).warn("unexpected row-key")
        if callbacks.on_unrecognized is not None:
            callbacks.on_unrecognized(row)
        return

    match scope:
        case NamespaceScope(namespace=namespace):
            parse_namespace_result(namespace, result, callbacks, serializer=serializer)
        case TableScope(table=table):
            parse_table_result(table, result, callbacks, serializer=serializer)
        case UserScope(user=user):
            parse_user_result(user, result, callbacks, serializer=serializer)


def parse_namespace_result(
    namespace: str,
    result: Result,
    callbacks: QuotaCallbacks,
    *,
    serializer: PayloadSerializer | None = None,
) -> None:
    data = result.get_value(QUOTA_FAMILY_INFO, QUOTA_QUALIFIER_SETTINGS)
    if data is None or callbacks.on_namespace is None:
        return
    callbacks.on_namespace(namespace, quotas_from_data(data, serializer))


def parse_table_result(
    table: str,
    result: Result,
    callbacks: QuotaCallbacks,
    *,
    serializer: PayloadSerializer | None = None,
) -> None:
    data = result.get_value(QUOTA_FAMILY_INFO, QUOTA_QUALIFIER_SETTINGS)
    if data is None or callbacks.on_table is None:
        return
    callbacks.on_table(table, quotas_from_data(data, serializer))


def parse_user_result(
    user: str,
    result: Result,
    callbacks: QuotaCallbacks,
    *,
    serializer: PayloadSerializer | None = None,
) -> None:
    family = result.get_family_map(QUOTA_FAMILY_INFO)
    for qualifier in sorted(family):
        match classify_user_qualifier(qualifier):
            case GlobalSettings():
                if callbacks.on_user is not None:
                    callbacks.on_user(user, quotas_from_data(family[qualifier], serializer))
            case UserTableSettings(table=table):
                if callbacks.on_user_table is not None:
                    callbacks.on_user_table(user, table, quotas_from_data(family[qualifier], serializer))
            case UserNamespaceSettings(namespace=namespace):
                if callbacks.on_user_namespace is not None:
                    callbacks.on_user_namespace(user, namespace, quotas_from_data(family[qualifier], serializer))


def parse_results(
    results: Iterable[Result],
    callbacks: QuotaCallbacks,
    *,
    serializer: PayloadSerializer | None = None,
    on_error: Callable[[Result, QuotaTableError], None] | None = None,
) -> None:
    """Dispatch every row in delivery order.

    A corrupt record never stops the walk. With ``on_error`` each one is handed
    over as it is found; without it they are raised once every row has been
    dispatched, the lone error as is or several grouped under one
    ``corrupt_record`` error whose cause is an ``ExceptionGroup``.
    """
    corrupt: list[QuotaTableError] = []
    for result in results:
        try:
            parse_result(result, callbacks, serializer=serializer)
        except QuotaTableError as exc:
            if exc.type != "corrupt_record":
                raise
            if on_error is not None:
                on_error(result, exc)
            else:
                corrupt.append(exc)

    if len(corrupt) == 1:
        raise corrupt[0]
    if corrupt:
        group = ExceptionGroup("corrupt quota records", corrupt)
        raise wrap_error(group, "corrupt_record", f"{len(corrupt)} quota records could not be decoded") from group


def extract_quota_snapshot(
    result: Result,
    snapshots: dict[str, SpaceQuotaSnapshot],
    *,
    serializer: PayloadSerializer | None = None,
) -> None:
    """Add the table's space quota snapshot held by ``result`` to ``snapshots``."""
    row = _row_of(result)
    if not is_table_row_key(row):
        raise new_error("illegal_input", f"expected a table row-key: {row!r}")
    table = table_from_row_key(row)

    data = result.get_value(QUOTA_FAMILY_USAGE, QUOTA_QUALIFIER_POLICY)
    if data is None:
        raise new_error("illegal_input", "result did not contain the expected column")
    snapshots[table] = snapshot_from_data(data, serializer)
