"""Row-key and qualifier layout of the quota table.

    ROW-KEY        FAM/QUAL        DATA
    n.<namespace>  q:s             <namespace quotas>
    t.<table>      q:s             <table quotas>
    t.<table>      u:p             <space quota snapshot>
    u.<user>       q:s             <user quotas>
    u.<user>       q:s.<table>     <user quotas for table>
    u.<user>       q:s.<ns>:       <user quotas for namespace>

Identifiers are stored verbatim (UTF-8), without escaping. Bytes that are not
valid UTF-8 decode to lone surrogates and encode back to the same bytes.
"""

from __future__ import annotations

import re

from quotatable.errors import new_error
from quotatable.types import (
    GlobalSettings,
    NamespaceScope,
    QualifierKind,
    QuotaScope,
    SettingsQualifier,
    TableScope,
    UsagePolicy,
    UserNamespaceScope,
    UserNamespaceSettings,
    UserScope,
    UserTableScope,
    UserTableSettings,
)

QUOTA_FAMILY_INFO = b"q"
QUOTA_FAMILY_USAGE = b"u"
QUOTA_QUALIFIER_SETTINGS = b"s"
QUOTA_QUALIFIER_SETTINGS_PREFIX = b"s."
QUOTA_QUALIFIER_POLICY = b"p"
QUOTA_USER_ROW_KEY_PREFIX = b"u."
QUOTA_TABLE_ROW_KEY_PREFIX = b"t."
QUOTA_NAMESPACE_ROW_KEY_PREFIX = b"n."

NAMESPACE_DELIM = ":"
_NAMESPACE_DELIM_BYTES = NAMESPACE_DELIM.encode("utf-8")


def _to_bytes(value: str) -> bytes:
    return str(value).encode("utf-8", errors="surrogateescape")


def _to_str(value: bytes) -> str:
    # Identifiers are opaque bytes; undecodable ones survive as lone surrogates.
    return bytes(value).decode("utf-8", errors="surrogateescape")


# Row keys


def user_row_key(user: str) -> bytes:
    return QUOTA_USER_ROW_KEY_PREFIX + _to_bytes(user)


def table_row_key(table: str) -> bytes:
    return QUOTA_TABLE_ROW_KEY_PREFIX + _to_bytes(table)


def namespace_row_key(namespace: str) -> bytes:
    return QUOTA_NAMESPACE_ROW_KEY_PREFIX + _to_bytes(namespace)


def encode_row_key(scope: QuotaScope) -> bytes:
    match scope:
        case NamespaceScope(namespace=namespace):
            return namespace_row_key(namespace)
        case TableScope(table=table):
            return table_row_key(table)
        case UserScope(user=user) | UserTableScope(user=user) | UserNamespaceScope(user=user):
            return user_row_key(user)
    raise new_error("illegal_input", f"unknown quota scope: {scope!r}")


def is_namespace_row_key(key: bytes) -> bool:
    return bytes(key).startswith(QUOTA_NAMESPACE_ROW_KEY_PREFIX)


def is_table_row_key(key: bytes) -> bool:
    return bytes(key).startswith(QUOTA_TABLE_ROW_KEY_PREFIX)


def is_user_row_key(key: bytes) -> bool:
    return bytes(key).startswith(QUOTA_USER_ROW_KEY_PREFIX)


def namespace_from_row_key(key: bytes) -> str:
    return _to_str(key[len(QUOTA_NAMESPACE_ROW_KEY_PREFIX) :])


def table_from_row_key(key: bytes) -> str:
    return _to_str(key[len(QUOTA_TABLE_ROW_KEY_PREFIX) :])


def user_from_row_key(key: bytes) -> str:
    return _to_str(key[len(QUOTA_USER_ROW_KEY_PREFIX) :])


def decode_row_key(key: bytes | None) -> NamespaceScope | TableScope | UserScope:
    """Scope addressed by a row key.

    User rows always decode to ``UserScope``; use :func:`decode_key` with the
    qualifier to tell the per-table and per-namespace forms apart.
    """
    if key is None:
        raise new_error("illegal_input", "row key is required")
    if is_namespace_row_key(key):
        return NamespaceScope(namespace=namespace_from_row_key(key))
    if is_table_row_key(key):
        return TableScope(table=table_from_row_key(key))
    if is_user_row_key(key):
        return UserScope(user=user_from_row_key(key))
    raise new_error("malformed_key", f"unexpected row-key: {bytes(key)!r}")


# Qualifiers


def settings_qualifier_for_user_table(table: str) -> bytes:
    return QUOTA_QUALIFIER_SETTINGS_PREFIX + _to_bytes(table)


def settings_qualifier_for_user_namespace(namespace: str) -> bytes:
    # The trailing delimiter is what tells a namespace qualifier from a table one.
    return QUOTA_QUALIFIER_SETTINGS_PREFIX + _to_bytes(namespace) + _NAMESPACE_DELIM_BYTES


def encode_qualifier(kind: QualifierKind) -> bytes:
    match kind:
        case GlobalSettings():
            return QUOTA_QUALIFIER_SETTINGS
        case UserTableSettings(table=table):
            return settings_qualifier_for_user_table(table)
        case UserNamespaceSettings(namespace=namespace):
            return settings_qualifier_for_user_namespace(namespace)
        case UsagePolicy():
            return QUOTA_QUALIFIER_POLICY
    raise new_error("illegal_input", f"unknown qualifier kind: {kind!r}")


def classify_user_qualifier(qualifier: bytes) -> SettingsQualifier | None:
    """Settings record a user-row qualifier selects, or ``None`` for anything else."""
    q = bytes(qualifier)
    if q == QUOTA_QUALIFIER_SETTINGS:
        return GlobalSettings()
    if not q.startswith(QUOTA_QUALIFIER_SETTINGS_PREFIX):
        return None

    name = q[len(QUOTA_QUALIFIER_SETTINGS_PREFIX) :]
    if not name:
        return None
    if name.endswith(_NAMESPACE_DELIM_BYTES):
        return UserNamespaceSettings(namespace=_to_str(name[: -len(_NAMESPACE_DELIM_BYTES)]))
    return UserTableSettings(table=_to_str(name))


def encode_key(scope: QuotaScope) -> tuple[bytes, bytes]:
    """Row key and info-family qualifier holding the settings of ``scope``."""
    match scope:
        case UserTableScope(table=table):
            qualifier = settings_qualifier_for_user_table(table)
        case UserNamespaceScope(namespace=namespace):
            qualifier = settings_qualifier_for_user_namespace(namespace)
        case _:
            qualifier = QUOTA_QUALIFIER_SETTINGS
    return encode_row_key(scope), qualifier


def decode_key(key: bytes | None, qualifier: bytes | None = None) -> QuotaScope:
    scope = decode_row_key(key)
    if not isinstance(scope, UserScope) or qualifier is None:
        return scope

    match classify_user_qualifier(qualifier):
        case GlobalSettings():
            return scope
        case UserTableSettings(table=table):
            return UserTableScope(user=scope.user, table=table)
        case UserNamespaceSettings(namespace=namespace):
            return UserNamespaceScope(user=scope.user, namespace=namespace)
    raise new_error("malformed_key", f"not a settings qualifier: {bytes(qualifier)!r}")


# Regular expressions matching the shapes above. Caller fragments are already
# regular expressions and are inserted as-is; only the fixed prefixes are escaped.


def _row_key_regex(prefix: bytes, regex: str) -> str:
    return "^" + re.escape(prefix.decode("utf-8")) + regex + "$"


def user_row_key_regex(user: str) -> str:
    return _row_key_regex(QUOTA_USER_ROW_KEY_PREFIX, user)


def table_row_key_regex(table: str) -> str:
    return _row_key_regex(QUOTA_TABLE_ROW_KEY_PREFIX, table)


def namespace_row_key_regex(namespace: str) -> str:
    return _row_key_regex(QUOTA_NAMESPACE_ROW_KEY_PREFIX, namespace)


def settings_qualifier_regex_for_user_table(table: str) -> str:
    # Lookbehind keeps a table pattern off namespace-shaped qualifiers.
    return (
        "^"
        + re.escape(QUOTA_QUALIFIER_SETTINGS_PREFIX.decode("utf-8"))
        + table
        + "(?<!"
        + re.escape(NAMESPACE_DELIM)
        + ")$"
    )


def settings_qualifier_regex_for_user_namespace(namespace: str) -> str:
    return (
        "^"
        + re.escape(QUOTA_QUALIFIER_SETTINGS_PREFIX.decode("utf-8"))
        + namespace
        + re.escape(NAMESPACE_DELIM)
        + "$"
    )
