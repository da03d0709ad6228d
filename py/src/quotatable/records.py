from __future__ import annotations

import json
from typing import Any, Protocol

from quotatable.errors import QuotaTableError, new_error, wrap_error
from quotatable.models import (
    QUOTA_SCOPE_KINDS,
    THROTTLE_FIELDS,
    TIME_UNITS,
    VIOLATION_POLICIES,
    Quotas,
    SpaceQuota,
    SpaceQuotaSnapshot,
    SpaceQuotaStatus,
    Throttle,
    TimedQuota,
)

PB_MAGIC = b"PBUF"


class PayloadSerializer(Protocol):
    def serialize_quotas(self, quotas: Quotas) -> bytes: ...
    def deserialize_quotas(self, data: bytes) -> Quotas: ...
    def serialize_snapshot(self, snapshot: SpaceQuotaSnapshot) -> bytes: ...
    def deserialize_snapshot(self, data: bytes) -> SpaceQuotaSnapshot: ...


def _dumps(value: dict[str, Any]) -> bytes:
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def _loads(data: bytes) -> dict[str, Any]:
    value = json.loads(bytes(data).decode("utf-8"))
    if not isinstance(value, dict):
        raise ValueError("expected a json object")
    return value


def _optional_int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    return int(value)


def _optional_bool(value: Any, name: str) -> bool | None:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be a boolean")
    return value


def _one_of(value: Any, allowed: tuple[str, ...], name: str) -> Any:
    if value not in allowed:
        raise ValueError(f"unknown {name}: {value!r}")
    return value


def _drop_none(value: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in value.items() if v is not None}


def _timed_quota_to_dict(quota: TimedQuota) -> dict[str, Any]:
    return _drop_none(
        {
            "time_unit": quota.time_unit,
            "soft_limit": quota.soft_limit,
            "share": quota.share,
            "scope": quota.scope,
        }
    )


def _timed_quota_from_dict(value: dict[str, Any]) -> TimedQuota:
    share = value.get("share")
    if share is not None and (isinstance(share, bool) or not isinstance(share, int | float)):
        raise ValueError("share must be a number")
    return TimedQuota(
        time_unit=_one_of(value.get("time_unit"), TIME_UNITS, "time unit"),
        soft_limit=_optional_int(value.get("soft_limit"), "soft_limit"),
        share=float(share) if share is not None else None,
        scope=_one_of(value.get("scope", "MACHINE"), QUOTA_SCOPE_KINDS, "quota scope"),
    )


def quotas_to_dict(quotas: Quotas) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if quotas.throttle is not None:
        out["throttle"] = {
            name: _timed_quota_to_dict(getattr(quotas.throttle, name))
            for name in THROTTLE_FIELDS
            if getattr(quotas.throttle, name) is not None
        }
    if quotas.bypass_globals is not None:
        out["bypass_globals"] = bool(quotas.bypass_globals)
    if quotas.space is not None:
        out["space"] = _drop_none(
            {
                "soft_limit": quotas.space.soft_limit,
                "violation_policy": quotas.space.violation_policy,
                "remove": quotas.space.remove,
            }
        )
    return out


def quotas_from_dict(value: dict[str, Any]) -> Quotas:
    throttle: Throttle | None = None
    raw_throttle = value.get("throttle")
    if raw_throttle is not None:
        if not isinstance(raw_throttle, dict):
            raise ValueError("throttle must be an object")
        unknown = set(raw_throttle) - set(THROTTLE_FIELDS)
        if unknown:
            raise ValueError(f"unknown throttle fields: {sorted(unknown)}")
        throttle = Throttle(**{name: _timed_quota_from_dict(raw) for name, raw in raw_throttle.items()})

    space: SpaceQuota | None = None
    raw_space = value.get("space")
    if raw_space is not None:
        if not isinstance(raw_space, dict):
            raise ValueError("space must be an object")
        policy = raw_space.get("violation_policy")
        space = SpaceQuota(
            soft_limit=_optional_int(raw_space.get("soft_limit"), "soft_limit"),
            violation_policy=_one_of(policy, VIOLATION_POLICIES, "violation policy") if policy is not None else None,
            remove=_optional_bool(raw_space.get("remove"), "remove"),
        )

    return Quotas(
        throttle=throttle,
        bypass_globals=_optional_bool(value.get("bypass_globals"), "bypass_globals"),
        space=space,
    )


def snapshot_to_dict(snapshot: SpaceQuotaSnapshot) -> dict[str, Any]:
    status: dict[str, Any] = {"in_violation": bool(snapshot.status.in_violation)}
    if snapshot.status.policy is not None:
        status["violation_policy"] = snapshot.status.policy
    return {"quota_status": status, "quota_usage": int(snapshot.usage), "quota_limit": int(snapshot.limit)}


def snapshot_from_dict(value: dict[str, Any]) -> SpaceQuotaSnapshot:
    status = value.get("quota_status")
    if not isinstance(status, dict):
        raise ValueError("quota_status is required")
    policy = status.get("violation_policy")
    usage = _optional_int(value.get("quota_usage"), "quota_usage")
    limit = _optional_int(value.get("quota_limit"), "quota_limit")
    if usage is None or limit is None:
        raise ValueError("quota_usage and quota_limit are required")
    return SpaceQuotaSnapshot(
        status=SpaceQuotaStatus(
            policy=_one_of(policy, VIOLATION_POLICIES, "violation policy") if policy is not None else None,
            in_violation=bool(_optional_bool(status.get("in_violation"), "in_violation")),
        ),
        usage=usage,
        limit=limit,
    )


class JsonPayloadSerializer:
    """Canonical JSON: sorted keys, compact separators, UTF-8."""

    def serialize_quotas(self, quotas: Quotas) -> bytes:
        return _dumps(quotas_to_dict(quotas))

    def deserialize_quotas(self, data: bytes) -> Quotas:
        return quotas_from_dict(_loads(data))

    def serialize_snapshot(self, snapshot: SpaceQuotaSnapshot) -> bytes:
        return _dumps(snapshot_to_dict(snapshot))

    def deserialize_snapshot(self, data: bytes) -> SpaceQuotaSnapshot:
        return snapshot_from_dict(_loads(data))


_default_serializer: PayloadSerializer = JsonPayloadSerializer()


def get_serializer() -> PayloadSerializer:
    return _default_serializer


def set_serializer(serializer: PayloadSerializer | None) -> None:
    global _default_serializer
    _default_serializer = serializer if serializer is not None else JsonPayloadSerializer()


def is_magic_prefixed(data: bytes) -> bool:
    return bytes(data[: len(PB_MAGIC)]) == PB_MAGIC


def quotas_to_data(quotas: Quotas, serializer: PayloadSerializer | None = None) -> bytes:
    s = serializer or get_serializer()
    return PB_MAGIC + bytes(s.serialize_quotas(quotas))


def quotas_from_data(data: bytes | None, serializer: PayloadSerializer | None = None) -> Quotas:
    if data is None:
        raise new_error("illegal_input", "quota data is required")
    if not is_magic_prefixed(data):
        raise new_error("corrupt_record", "missing pb magic prefix")

    s = serializer or get_serializer()
    try:
        return s.deserialize_quotas(bytes(data[len(PB_MAGIC) :]))
    except QuotaTableError:
        raise
    except Exception as exc:
        raise wrap_error(exc, "corrupt_record", "failed to parse quota data") from exc


def snapshot_to_data(snapshot: SpaceQuotaSnapshot, serializer: PayloadSerializer | None = None) -> bytes:
    s = serializer or get_serializer()
    return bytes(s.serialize_snapshot(snapshot))


def snapshot_from_data(data: bytes, serializer: PayloadSerializer | None = None) -> SpaceQuotaSnapshot:
    s = serializer or get_serializer()
    try:
        return s.deserialize_snapshot(bytes(data))
    except QuotaTableError:
        raise
    except Exception as exc:
        raise wrap_error(exc, "illegal_input", "result did not contain a valid space quota snapshot") from exc


def is_empty_quota(quotas: Quotas) -> bool:
    has_settings = quotas.throttle is not None or quotas.bypass_globals is not None
    # A space quota only counts once both its limit and its policy are set.
    if quotas.space is not None:
        has_settings = has_settings or (
            quotas.space.soft_limit is not None and quotas.space.violation_policy is not None
        )
    return not has_settings


def space_quota_for_policy(policy: str) -> SpaceQuota:
    if policy not in VIOLATION_POLICIES:
        raise new_error("illegal_input", f"unknown violation policy: {policy!r}")
    return SpaceQuota(violation_policy=policy)  # type: ignore[arg-type]


def violation_policy_from_space_quota(space: SpaceQuota) -> str:
    if space.violation_policy is None:
        raise new_error("illegal_input", "space quota does not have a violation policy")
    return space.violation_policy
