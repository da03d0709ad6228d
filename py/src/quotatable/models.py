from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

SpaceViolationPolicy = Literal["DISABLE", "NO_WRITES_COMPACTIONS", "NO_WRITES", "NO_INSERTS"]
TimeUnit = Literal["NANOSECONDS", "MICROSECONDS", "MILLISECONDS", "SECONDS", "MINUTES", "HOURS", "DAYS"]
QuotaScopeKind = Literal["CLUSTER", "MACHINE"]

VIOLATION_POLICIES: tuple[str, ...] = ("DISABLE", "NO_WRITES_COMPACTIONS", "NO_WRITES", "NO_INSERTS")
TIME_UNITS: tuple[str, ...] = ("NANOSECONDS", "MICROSECONDS", "MILLISECONDS", "SECONDS", "MINUTES", "HOURS", "DAYS")
QUOTA_SCOPE_KINDS: tuple[str, ...] = ("CLUSTER", "MACHINE")

THROTTLE_FIELDS: tuple[str, ...] = (
    "req_num",
    "req_size",
    "write_num",
    "write_size",
    "read_num",
    "read_size",
    "req_capacity_unit",
    "write_capacity_unit",
    "read_capacity_unit",
)


@dataclass(frozen=True, slots=True)
class TimedQuota:
    time_unit: TimeUnit
    soft_limit: int | None = None
    share: float | None = None
    scope: QuotaScopeKind = "MACHINE"


@dataclass(frozen=True, slots=True)
class Throttle:
    req_num: TimedQuota | None = None
    req_size: TimedQuota | None = None
    write_num: TimedQuota | None = None
    write_size: TimedQuota | None = None
    read_num: TimedQuota | None = None
    read_size: TimedQuota | None = None
    req_capacity_unit: TimedQuota | None = None
    write_capacity_unit: TimedQuota | None = None
    read_capacity_unit: TimedQuota | None = None


@dataclass(frozen=True, slots=True)
class SpaceQuota:
    soft_limit: int | None = None
    violation_policy: SpaceViolationPolicy | None = None
    remove: bool | None = None


@dataclass(frozen=True, slots=True)
class Quotas:
    """Settings stored under a scope's settings qualifier.

    Presence matters: a field left as ``None`` is unset, while ``Throttle()``
    or ``bypass_globals=False`` count as configured.
    """

    throttle: Throttle | None = None
    bypass_globals: bool | None = None
    space: SpaceQuota | None = None


@dataclass(frozen=True, slots=True)
class SpaceQuotaStatus:
    policy: SpaceViolationPolicy | None = None
    in_violation: bool = False

    @staticmethod
    def not_in_violation() -> SpaceQuotaStatus:
        return SpaceQuotaStatus()


@dataclass(frozen=True, slots=True)
class SpaceQuotaSnapshot:
    status: SpaceQuotaStatus
    usage: int
    limit: int
