from __future__ import annotations

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT / "py" / "src"))

from quotatable.errors import QuotaTableError  # noqa: E402
from quotatable.models import (  # noqa: E402
    Quotas,
    SpaceQuota,
    SpaceQuotaSnapshot,
    SpaceQuotaStatus,
    Throttle,
    TimedQuota,
)
from quotatable.records import (  # noqa: E402
    PB_MAGIC,
    get_serializer,
    is_empty_quota,
    quotas_from_data,
    quotas_to_data,
    set_serializer,
    snapshot_from_data,
    snapshot_to_data,
    space_quota_for_policy,
    violation_policy_from_space_quota,
)


class TokenSerializer:
    def serialize_quotas(self, quotas: Quotas) -> bytes:
        return b"BYPASS" if quotas.bypass_globals else b"NONE"

    def deserialize_quotas(self, data: bytes) -> Quotas:
        if data == b"BYPASS":
            return Quotas(bypass_globals=True)
        if data == b"NONE":
            return Quotas()
        raise ValueError("unknown payload")

    def serialize_snapshot(self, snapshot: SpaceQuotaSnapshot) -> bytes:
        return str(snapshot.usage).encode("ascii")

    def deserialize_snapshot(self, data: bytes) -> SpaceQuotaSnapshot:
        return SpaceQuotaSnapshot(status=SpaceQuotaStatus(), usage=int(data), limit=0)


class TestRecordCodec(unittest.TestCase):
    def tearDown(self) -> None:
        set_serializer(None)

    def test_envelope_starts_with_magic(self) -> None:
        data = quotas_to_data(Quotas(bypass_globals=True))
        self.assertEqual(PB_MAGIC, b"PBUF")
        self.assertTrue(data.startswith(PB_MAGIC))

    def test_round_trip(self) -> None:
        quotas = Quotas(
            throttle=Throttle(
                req_num=TimedQuota(time_unit="SECONDS", soft_limit=100),
                write_size=TimedQuota(time_unit="MINUTES", soft_limit=1024, scope="CLUSTER"),
            ),
            bypass_globals=False,
            space=SpaceQuota(soft_limit=10 * 1024**3, violation_policy="NO_INSERTS"),
        )
        self.assertEqual(quotas_from_data(quotas_to_data(quotas)), quotas)
        self.assertEqual(quotas_from_data(quotas_to_data(Quotas())), Quotas())

    def test_corrupted_magic_is_corrupt_record(self) -> None:
        data = bytearray(quotas_to_data(Quotas(bypass_globals=True)))
        data[0] = ord("X")
        with self.assertRaises(QuotaTableError) as ctx:
            quotas_from_data(bytes(data))
        self.assertEqual(ctx.exception.type, "corrupt_record")

    def test_truncated_payload_is_corrupt_record(self) -> None:
        data = quotas_to_data(Quotas(bypass_globals=True))
        with self.assertRaises(QuotaTableError) as ctx:
            quotas_from_data(data[:-2])
        self.assertEqual(ctx.exception.type, "corrupt_record")
        self.assertIsNotNone(ctx.exception.cause)

    def test_unknown_policy_is_corrupt_record(self) -> None:
        with self.assertRaises(QuotaTableError) as ctx:
            quotas_from_data(PB_MAGIC + b'{"space":{"violation_policy":"EXPLODE"}}')
        self.assertEqual(ctx.exception.type, "corrupt_record")

    def test_custom_serializer(self) -> None:
        set_serializer(TokenSerializer())
        self.assertIsInstance(get_serializer(), TokenSerializer)

        data = quotas_to_data(Quotas(bypass_globals=True))
        self.assertEqual(data, b"PBUFBYPASS")
        self.assertEqual(quotas_from_data(data), Quotas(bypass_globals=True))

        with self.assertRaises(QuotaTableError):
            quotas_from_data(b"PBUFjunk")

    def test_snapshot_round_trip(self) -> None:
        snapshot = SpaceQuotaSnapshot(
            status=SpaceQuotaStatus(policy="NO_WRITES", in_violation=True),
            usage=2048,
            limit=1024,
        )
        self.assertEqual(snapshot_from_data(snapshot_to_data(snapshot)), snapshot)

        with self.assertRaises(QuotaTableError) as ctx:
            snapshot_from_data(b"not a snapshot")
        self.assertEqual(ctx.exception.type, "illegal_input")


class TestEmptiness(unittest.TestCase):
    def test_empty_when_nothing_is_set(self) -> None:
        self.assertTrue(is_empty_quota(Quotas()))

    def test_incomplete_space_quota_is_empty(self) -> None:
        incomplete = Quotas(space=SpaceQuota(soft_limit=1024))
        self.assertTrue(is_empty_quota(incomplete))
        self.assertTrue(is_empty_quota(Quotas(space=SpaceQuota(violation_policy="DISABLE"))))

        complete = Quotas(space=SpaceQuota(soft_limit=1024, violation_policy="DISABLE"))
        self.assertFalse(is_empty_quota(complete))

    def test_throttle_or_bypass_is_not_empty(self) -> None:
        self.assertFalse(is_empty_quota(Quotas(throttle=Throttle())))
        self.assertFalse(is_empty_quota(Quotas(bypass_globals=False)))


class TestViolationPolicyHelpers(unittest.TestCase):
    def test_policy_helpers(self) -> None:
        space = space_quota_for_policy("NO_WRITES_COMPACTIONS")
        self.assertEqual(violation_policy_from_space_quota(space), "NO_WRITES_COMPACTIONS")

        with self.assertRaises(QuotaTableError):
            violation_policy_from_space_quota(SpaceQuota(soft_limit=1))
        with self.assertRaises(QuotaTableError):
            space_quota_for_policy("NOPE")
