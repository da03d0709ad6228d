from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT / "py" / "src"))

from quotatable.errors import QuotaTableError  # noqa: E402
from quotatable.filters import QuotaFilter  # noqa: E402
from quotatable.keys import QUOTA_FAMILY_INFO, QUOTA_FAMILY_USAGE, QUOTA_QUALIFIER_POLICY  # noqa: E402
from quotatable.models import Quotas, SpaceQuota, SpaceQuotaSnapshot, SpaceQuotaStatus, Throttle, TimedQuota  # noqa: E402
from quotatable.quota_table import (  # noqa: E402
    QuotaTable,
    get_master_reported_table_sizes,
    get_region_server_quota_snapshots,
    get_region_server_quota_violations,
    get_scan_for_violations,
    make_get_for_namespace_quotas,
    make_get_for_table_quotas,
    make_get_for_user_quotas,
    make_quota_snapshot_scan,
    put_space_snapshot,
)
from quotatable.results import QuotaCallbacks  # noqa: E402
from quotatable.testkit import FakeClusterConnection, InMemoryQuotaStore  # noqa: E402
from quotatable.types import NamespaceScope, TableScope, UserNamespaceScope, UserScope, UserTableScope  # noqa: E402

THROTTLED = Quotas(throttle=Throttle(req_num=TimedQuota(time_unit="SECONDS", soft_limit=10)))
BYPASS = Quotas(bypass_globals=True)
SPACE = Quotas(space=SpaceQuota(soft_limit=1024, violation_policy="NO_WRITES"))


class TestRequestBuilders(unittest.TestCase):
    def test_get_builders(self) -> None:
        self.assertEqual(make_get_for_table_quotas("tbl").row, b"t.tbl")
        self.assertEqual(make_get_for_table_quotas("tbl").families, (QUOTA_FAMILY_INFO,))
        self.assertEqual(make_get_for_namespace_quotas("ns").row, b"n.ns")

        get = make_get_for_user_quotas("bob", ["t1"], ["ns1"])
        self.assertEqual(get.row, b"u.bob")
        self.assertEqual(
            get.columns,
            ((QUOTA_FAMILY_INFO, b"s"), (QUOTA_FAMILY_INFO, b"s.t1"), (QUOTA_FAMILY_INFO, b"s.ns1:")),
        )

    def test_snapshot_scans(self) -> None:
        scan = make_quota_snapshot_scan()
        self.assertEqual(scan.row_prefix, b"t.")
        self.assertTrue(scan.selects(QUOTA_FAMILY_USAGE, QUOTA_QUALIFIER_POLICY))
        self.assertFalse(scan.selects(QUOTA_FAMILY_INFO, b"s"))

        violations = get_scan_for_violations()
        self.assertIsNone(violations.row_prefix)
        self.assertEqual(violations.columns, ((QUOTA_FAMILY_USAGE, QUOTA_QUALIFIER_POLICY),))

    def test_put_space_snapshot(self) -> None:
        snapshot = SpaceQuotaSnapshot(status=SpaceQuotaStatus.not_in_violation(), usage=1, limit=2)
        put = put_space_snapshot("tbl", snapshot)
        self.assertEqual((put.row, put.family, put.qualifier), (b"t.tbl", b"u", b"p"))


class TestQuotaTable(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryQuotaStore()
        self.table = QuotaTable(self.store)

    def test_get_returns_none_when_absent(self) -> None:
        self.assertIsNone(self.table.get_table_quota("tbl"))
        self.assertIsNone(self.table.get_namespace_quota("ns"))
        self.assertIsNone(self.table.get_user_quota("bob"))
        self.assertIsNone(self.table.get_user_quota("bob", table="tbl"))

    def test_set_and_get_for_every_scope(self) -> None:
        self.table.set_table_quota("tbl", THROTTLED)
        self.table.set_namespace_quota("ns", SPACE)
        self.table.set_user_quota("bob", BYPASS)
        self.table.set_user_quota("bob", THROTTLED, table="tbl")
        self.table.set_user_quota("bob", SPACE, namespace="ns")

        self.assertEqual(self.table.get_table_quota("tbl"), THROTTLED)
        self.assertEqual(self.table.get_namespace_quota("ns"), SPACE)
        self.assertEqual(self.table.get_user_quota("bob"), BYPASS)
        self.assertEqual(self.table.get_user_quota("bob", table="tbl"), THROTTLED)
        self.assertEqual(self.table.get_user_quota("bob", namespace="ns"), SPACE)

        self.assertEqual(set(self.store.rows[b"u.bob"][QUOTA_FAMILY_INFO]), {b"s", b"s.tbl", b"s.ns:"})

    def test_empty_quota_deletes_cell(self) -> None:
        self.table.set_table_quota("tbl", THROTTLED)
        self.table.set_table_quota("tbl", Quotas(space=SpaceQuota(soft_limit=1)))
        self.assertIsNone(self.table.get_table_quota("tbl"))
        self.assertNotIn(b"t.tbl", self.store.rows)

    def test_table_and_namespace_are_exclusive(self) -> None:
        with self.assertRaises(QuotaTableError) as ctx:
            self.table.get_user_quota("bob", table="t", namespace="n")
        self.assertEqual(ctx.exception.type, "illegal_input")

    def test_scan_quotas_with_filter(self) -> None:
        self.table.set_table_quota("foo", THROTTLED)
        self.table.set_table_quota("foobar", THROTTLED)
        self.table.set_namespace_quota("foo", SPACE)
        self.table.set_user_quota("bob", BYPASS, table="foo")

        tables: list[str] = []
        self.table.scan_quotas(QuotaCallbacks(on_table=lambda t, q: tables.append(t)), QuotaFilter(table_filter="foo"))
        self.assertEqual(tables, ["foo"])

    def test_list_quotas(self) -> None:
        self.table.set_namespace_quota("ns", SPACE)
        self.table.set_table_quota("tbl", THROTTLED)
        self.table.set_user_quota("bob", BYPASS)
        self.table.set_user_quota("bob", THROTTLED, table="tbl")
        self.table.set_user_quota("bob", SPACE, namespace="ns")
        self.store.add_cell(b"x.stray", QUOTA_FAMILY_INFO, b"s", b"junk")

        listed = self.table.list_quotas()
        self.assertEqual(
            listed,
            [
                (NamespaceScope(namespace="ns"), SPACE),
                (TableScope(table="tbl"), THROTTLED),
                (UserScope(user="bob"), BYPASS),
                (UserNamespaceScope(user="bob", namespace="ns"), SPACE),
                (UserTableScope(user="bob", table="tbl"), THROTTLED),
            ],
        )

        only_bob_tables = self.table.list_quotas(QuotaFilter(user_filter="bob", table_filter=".*"))
        self.assertEqual(only_bob_tables, [(UserTableScope(user="bob", table="tbl"), THROTTLED)])

    def test_list_quotas_continues_past_corrupt_record(self) -> None:
        self.store.add_cell(b"t.a", QUOTA_FAMILY_INFO, b"s", b"garbage")
        self.table.set_table_quota("b", THROTTLED)

        corrupt: list[bytes] = []
        listed = self.table.list_quotas(on_error=lambda result, exc: corrupt.append(result.row))
        self.assertEqual(listed, [(TableScope(table="b"), THROTTLED)])
        self.assertEqual(corrupt, [b"t.a"])

        tables: list[str] = []
        with self.assertRaises(QuotaTableError) as ctx:
            self.table.scan_quotas(QuotaCallbacks(on_table=lambda t, q: tables.append(t)))
        self.assertEqual(ctx.exception.type, "corrupt_record")
        self.assertEqual(tables, ["b"])

    def test_space_snapshots(self) -> None:
        snapshot = SpaceQuotaSnapshot(status=SpaceQuotaStatus(policy="NO_INSERTS", in_violation=True), usage=9, limit=8)
        self.table.put_space_snapshot("tbl", snapshot)
        self.table.set_table_quota("other", THROTTLED)

        self.assertEqual(self.table.get_quota_snapshots(), {"tbl": snapshot})

    def test_store_failures_are_wrapped(self) -> None:
        self.store.fail_with = RuntimeError("boom")
        with self.assertRaises(QuotaTableError) as ctx:
            self.table.get_table_quota("tbl")
        self.assertEqual(ctx.exception.type, "internal_error")
        self.assertIn("boom", str(ctx.exception))

        with self.assertRaises(QuotaTableError):
            self.table.set_table_quota("tbl", THROTTLED)


class TestStatusHelpers(unittest.TestCase):
    def test_requires_cluster_connection(self) -> None:
        for fn in (
            lambda: get_master_reported_table_sizes(object()),
            lambda: get_region_server_quota_snapshots(object(), "rs1"),
            lambda: get_region_server_quota_violations(object(), "rs1"),
        ):
            with self.assertRaises(QuotaTableError) as ctx:
                fn()
            self.assertEqual(ctx.exception.type, "unsupported_connection")

    def test_collects_rpc_results(self) -> None:
        snapshot = SpaceQuotaSnapshot(status=SpaceQuotaStatus(), usage=1, limit=10)
        conn = FakeClusterConnection(
            region_sizes=[("ns:t1", 100), ("t2", 200)],
            snapshots={"rs1": [("t1", snapshot)]},
            enforcements={"rs1": [("t1", "DISABLE")]},
        )

        self.assertEqual(get_master_reported_table_sizes(conn), {"ns:t1": 100, "t2": 200})
        self.assertEqual(get_region_server_quota_snapshots(conn, "rs1"), {"t1": snapshot})
        self.assertEqual(get_region_server_quota_violations(conn, "rs1"), {"t1": "DISABLE"})
        self.assertEqual(get_region_server_quota_violations(conn, "rs2"), {})
        self.assertEqual(conn.calls[0], ("master_region_sizes", ""))
