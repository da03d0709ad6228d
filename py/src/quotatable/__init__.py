"""Quota table row-key layout, record envelope, scan filters and result dispatch."""

from __future__ import annotations

from quotatable.config import DEFAULT_TABLE_NAME, Config, default_config, quota_table_name
from quotatable.dynamodb import DynamoDBClient, DynamoQuotaStore
from quotatable.errors import ErrorType, QuotaTableError, new_error, wrap_error
from quotatable.filters import AllOf, AnyOf, Predicate, QualifierRegex, QuotaFilter, RowRegex, make_filter, make_scan
from quotatable.keys import (
    NAMESPACE_DELIM,
    QUOTA_FAMILY_INFO,
    QUOTA_FAMILY_USAGE,
    QUOTA_QUALIFIER_POLICY,
    QUOTA_QUALIFIER_SETTINGS,
    QUOTA_QUALIFIER_SETTINGS_PREFIX,
    QUOTA_NAMESPACE_ROW_KEY_PREFIX,
    QUOTA_TABLE_ROW_KEY_PREFIX,
    QUOTA_USER_ROW_KEY_PREFIX,
    classify_user_qualifier,
    decode_key,
    decode_row_key,
    encode_key,
    encode_qualifier,
    encode_row_key,
)
from quotatable.logger import NoOpLogger, StructuredLogger, get_logger, key_field, set_logger
from quotatable.models import (
    Quotas,
    SpaceQuota,
    SpaceQuotaSnapshot,
    SpaceQuotaStatus,
    SpaceViolationPolicy,
    Throttle,
    TimedQuota,
)
from quotatable.quota_table import (
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
from quotatable.records import (
    PB_MAGIC,
    JsonPayloadSerializer,
    PayloadSerializer,
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
from quotatable.results import (
    QuotaCallbacks,
    extract_quota_snapshot,
    parse_namespace_result,
    parse_result,
    parse_results,
    parse_table_result,
    parse_user_result,
)
from quotatable.store import ClusterConnection, QuotaStore
from quotatable.types import (
    Delete,
    Get,
    GlobalSettings,
    NamespaceScope,
    Put,
    QualifierKind,
    QuotaScope,
    Result,
    Scan,
    TableScope,
    UsagePolicy,
    UserNamespaceScope,
    UserNamespaceSettings,
    UserScope,
    UserTableScope,
    UserTableSettings,
)

__all__ = [
    "AllOf",
    "AnyOf",
    "ClusterConnection",
    "Config",
    "DEFAULT_TABLE_NAME",
    "Delete",
    "DynamoDBClient",
    "DynamoQuotaStore",
    "ErrorType",
    "Get",
    "GlobalSettings",
    "JsonPayloadSerializer",
    "NAMESPACE_DELIM",
    "NamespaceScope",
    "NoOpLogger",
    "PB_MAGIC",
    "PayloadSerializer",
    "Predicate",
    "Put",
    "QUOTA_FAMILY_INFO",
    "QUOTA_FAMILY_USAGE",
    "QUOTA_NAMESPACE_ROW_KEY_PREFIX",
    "QUOTA_QUALIFIER_POLICY",
    "QUOTA_QUALIFIER_SETTINGS",
    "QUOTA_QUALIFIER_SETTINGS_PREFIX",
    "QUOTA_TABLE_ROW_KEY_PREFIX",
    "QUOTA_USER_ROW_KEY_PREFIX",
    "QualifierKind",
    "QualifierRegex",
    "QuotaCallbacks",
    "QuotaFilter",
    "QuotaScope",
    "QuotaStore",
    "QuotaTable",
    "QuotaTableError",
    "Quotas",
    "Result",
    "RowRegex",
    "Scan",
    "SpaceQuota",
    "SpaceQuotaSnapshot",
    "SpaceQuotaStatus",
    "SpaceViolationPolicy",
    "StructuredLogger",
    "TableScope",
    "Throttle",
    "TimedQuota",
    "UsagePolicy",
    "UserNamespaceScope",
    "UserNamespaceSettings",
    "UserScope",
    "UserTableScope",
    "UserTableSettings",
    "classify_user_qualifier",
    "decode_key",
    "decode_row_key",
    "default_config",
    "encode_key",
    "encode_qualifier",
    "encode_row_key",
    "extract_quota_snapshot",
    "get_logger",
    "get_master_reported_table_sizes",
    "get_region_server_quota_snapshots",
    "get_region_server_quota_violations",
    "get_scan_for_violations",
    "get_serializer",
    "is_empty_quota",
    "key_field",
    "make_filter",
    "make_get_for_namespace_quotas",
    "make_get_for_table_quotas",
    "make_get_for_user_quotas",
    "make_quota_snapshot_scan",
    "make_scan",
    "new_error",
    "parse_namespace_result",
    "parse_result",
    "parse_results",
    "parse_table_result",
    "parse_user_result",
    "put_space_snapshot",
    "quota_table_name",
    "quotas_from_data",
    "quotas_to_data",
    "set_logger",
    "set_serializer",
    "snapshot_from_data",
    "snapshot_to_data",
    "space_quota_for_policy",
    "violation_policy_from_space_quota",
    "wrap_error",
]
