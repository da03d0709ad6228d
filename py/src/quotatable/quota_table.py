from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from quotatable.errors import QuotaTableError, new_error, wrap_error
from quotatable.filters import QuotaFilter, make_scan
from quotatable.keys import (
    QUOTA_FAMILY_INFO,
    QUOTA_FAMILY_USAGE,
    QUOTA_QUALIFIER_POLICY,
    QUOTA_QUALIFIER_SETTINGS,
    QUOTA_TABLE_ROW_KEY_PREFIX,
    encode_key,
    namespace_row_key,
    settings_qualifier_for_user_namespace,
    settings_qualifier_for_user_table,
    table_row_key,
    user_row_key,
)
from quotatable.models import Quotas, SpaceQuotaSnapshot, SpaceViolationPolicy
from quotatable.records import PayloadSerializer, is_empty_quota, quotas_from_data, quotas_to_data, snapshot_to_data
from quotatable.results import QuotaCallbacks, extract_quota_snapshot, parse_results
from quotatable.store import ClusterConnection, QuotaStore
from quotatable.types import (
    Delete,
    Get,
    NamespaceScope,
    Put,
    QuotaScope,
    Result,
    Scan,
    TableScope,
    UserNamespaceScope,
    UserScope,
    UserTableScope,
)

# Request builders


def make_get_for_table_quotas(table: str) -> Get:
    return Get(row=table_row_key(table), families=(QUOTA_FAMILY_INFO,))


def make_get_for_namespace_quotas(namespace: str) -> Get:
    return Get(row=namespace_row_key(namespace), families=(QUOTA_FAMILY_INFO,))


def make_get_for_user_quotas(user: str, tables: Iterable[str] = (), namespaces: Iterable[str] = ()) -> Get:
    columns = [(QUOTA_FAMILY_INFO, QUOTA_QUALIFIER_SETTINGS)]
    columns.extend((QUOTA_FAMILY_INFO, settings_qualifier_for_user_table(t)) for t in tables)
    columns.extend((QUOTA_FAMILY_INFO, settings_qualifier_for_user_namespace(ns)) for ns in namespaces)
    return Get(row=user_row_key(user), columns=tuple(columns))


def make_quota_snapshot_scan() -> Scan:
    """Scan returning only the space quota snapshots of table rows."""
    return Scan(columns=((QUOTA_FAMILY_USAGE, QUOTA_QUALIFIER_POLICY),), row_prefix=QUOTA_TABLE_ROW_KEY_PREFIX)


def get_scan_for_violations() -> Scan:
    return Scan(columns=((QUOTA_FAMILY_USAGE, QUOTA_QUALIFIER_POLICY),))


def put_space_snapshot(
    table: str,
    snapshot: SpaceQuotaSnapshot,
    serializer: PayloadSerializer | None = None,
) -> Put:
    return Put(
        row=table_row_key(table),
        family=QUOTA_FAMILY_USAGE,
        qualifier=QUOTA_QUALIFIER_POLICY,
        value=snapshot_to_data(snapshot, serializer),
    )


# Settings and snapshot accessors


@dataclass(slots=True)
class QuotaTable:
    store: QuotaStore
    serializer: PayloadSerializer | None

    def __init__(self, store: QuotaStore, *, serializer: PayloadSerializer | None = None) -> None:
        if store is None:
            raise new_error("illegal_input", "store is required")
        self.store = store
        self.serializer = serializer

    def _get_quotas(self, row: bytes, qualifier: bytes) -> Quotas | None:
        try:
            result = self.store.get(Get(row=row, columns=((QUOTA_FAMILY_INFO, qualifier),)))
        except QuotaTableError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to get quotas") from exc

        data = result.get_value(QUOTA_FAMILY_INFO, qualifier)
        if data is None:
            return None
        return quotas_from_data(data, self.serializer)

    def get_table_quota(self, table: str) -> Quotas | None:
        return self._get_quotas(table_row_key(table), QUOTA_QUALIFIER_SETTINGS)

    def get_namespace_quota(self, namespace: str) -> Quotas | None:
        return self._get_quotas(namespace_row_key(namespace), QUOTA_QUALIFIER_SETTINGS)

    def get_user_quota(
        self,
        user: str,
        *,
        table: str | None = None,
        namespace: str | None = None,
    ) -> Quotas | None:
        if table is not None and namespace is not None:
            raise new_error("illegal_input", "table and namespace are mutually exclusive")
        if table is not None:
            return self._get_quotas(user_row_key(user), settings_qualifier_for_user_table(table))
        if namespace is not None:
            return self._get_quotas(user_row_key(user), settings_qualifier_for_user_namespace(namespace))
        return self._get_quotas(user_row_key(user), QUOTA_QUALIFIER_SETTINGS)

    def set_quotas(
        self,
        scope: QuotaScope,
        quotas: Quotas,
    ) -> None:
        """Store ``quotas`` for ``scope``; an empty record removes the cell instead."""
        row, qualifier = encode_key(scope)
        try:
            if is_empty_quota(quotas):
                self.store.delete(Delete(row=row, family=QUOTA_FAMILY_INFO, qualifier=qualifier))
                return
            self.store.put(
                Put(row=row, family=QUOTA_FAMILY_INFO, qualifier=qualifier, value=quotas_to_data(quotas, self.serializer))
            )
        except QuotaTableError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to set quotas") from exc

    def set_table_quota(self, table: str, quotas: Quotas) -> None:
        self.set_quotas(TableScope(table=table), quotas)

    def set_namespace_quota(self, namespace: str, quotas: Quotas) -> None:
        self.set_quotas(NamespaceScope(namespace=namespace), quotas)

    def set_user_quota(
        self,
        user: str,
        quotas: Quotas,
        *,
        table: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if table is not None and namespace is not None:
            raise new_error("illegal_input", "table and namespace are mutually exclusive")
        if table is not None:
            self.set_quotas(UserTableScope(user=user, table=table), quotas)
        elif namespace is not None:
            self.set_quotas(UserNamespaceScope(user=user, namespace=namespace), quotas)
        else:
            self.set_quotas(UserScope(user=user), quotas)

    def _scan(self, scan: Scan) -> Iterable[Result]:
        try:
            return self.store.scan(scan)
        except QuotaTableError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to scan quota table") from exc

    def scan_quotas(
        self,
        callbacks: QuotaCallbacks,
        quota_filter: QuotaFilter | None = None,
        *,
        on_error: Callable[[Result, QuotaTableError], None] | None = None,
    ) -> None:
        parse_results(self._scan(make_scan(quota_filter)), callbacks, serializer=self.serializer, on_error=on_error)

    def list_quotas(
        self,
        quota_filter: QuotaFilter | None = None,
        *,
        on_error: Callable[[Result, QuotaTableError], None] | None = None,
    ) -> list[tuple[QuotaScope, Quotas]]:
        """Every settings record matching ``quota_filter`` with the scope it belongs to."""
        out: list[tuple[QuotaScope, Quotas]] = []
        callbacks = QuotaCallbacks(
            on_namespace=lambda ns, q: out.append((NamespaceScope(namespace=ns), q)),
            on_table=lambda t, q: out.append((TableScope(table=t), q)),
            on_user=lambda u, q: out.append((UserScope(user=u), q)),
            on_user_table=lambda u, t, q: out.append((UserTableScope(user=u, table=t), q)),
            on_user_namespace=lambda u, ns, q: out.append((UserNamespaceScope(user=u, namespace=ns), q)),
        )
        self.scan_quotas(callbacks, quota_filter, on_error=on_error)
        return out

    def get_quota_snapshots(self) -> dict[str, SpaceQuotaSnapshot]:
        snapshots: dict[str, SpaceQuotaSnapshot] = {}
        for result in self._scan(make_quota_snapshot_scan()):
            extract_quota_snapshot(result, snapshots, serializer=self.serializer)
        return snapshots

    def put_space_snapshot(self, table: str, snapshot: SpaceQuotaSnapshot) -> None:
        try:
            self.store.put(put_space_snapshot(table, snapshot, self.serializer))
        except QuotaTableError:
            raise
        except Exception as exc:
            raise wrap_error(exc, "internal_error", "failed to put space quota snapshot") from exc


# Space quota status RPC helpers


def _cluster_connection(conn: Any) -> ClusterConnection:
    if not isinstance(conn, ClusterConnection):
        raise new_error("unsupported_connection", "expected a cluster connection")
    return conn


def get_master_reported_table_sizes(conn: Any) -> dict[str, int]:
    """Table sizes on the filesystem as tracked by the master."""
    cluster = _cluster_connection(conn)
    return {str(table): int(size) for table, size in cluster.get_master_region_sizes()}


def get_region_server_quota_snapshots(conn: Any, server: str) -> dict[str, SpaceQuotaSnapshot]:
    cluster = _cluster_connection(conn)
    return {str(table): snapshot for table, snapshot in cluster.get_region_server_quota_snapshots(server)}


def get_region_server_quota_violations(conn: Any, server: str) -> dict[str, SpaceViolationPolicy]:
    """Violation policies actively enforced on ``server``."""
    cluster = _cluster_connection(conn)
    return {str(table): policy for table, policy in cluster.get_region_server_space_quota_enforcements(server)}
