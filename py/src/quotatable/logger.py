from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StructuredLogger(Protocol):
    def debug(self, message: str, *fields: dict[str, Any]) -> None: ...

    def info(self, message: str, *fields: dict[str, Any]) -> None: ...

    def warn(self, message: str, *fields: dict[str, Any]) -> None: ...

    def error(self, message: str, *fields: dict[str, Any]) -> None: ...

    def with_field(self, key: str, value: Any) -> StructuredLogger: ...

    def with_fields(self, fields: dict[str, Any]) -> StructuredLogger: ...

    def with_table_name(self, table_name: str) -> StructuredLogger: ...

    def with_row(self, row: bytes) -> StructuredLogger: ...


class NoOpLogger:
    def debug(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def info(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def warn(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def error(self, _message: str, *fields: dict[str, Any]) -> None:
        return None

    def with_field(self, _key: str, _value: Any) -> StructuredLogger:
        return self

    def with_fields(self, _fields: dict[str, Any]) -> StructuredLogger:
        return self

    def with_table_name(self, _table_name: str) -> StructuredLogger:
        return self

    def with_row(self, _row: bytes) -> StructuredLogger:
        return self


def key_field(key: bytes | None) -> str:
    """Printable form of a row key or qualifier for log fields.

    Printable ASCII is kept as is; every other byte is written as ``\\xNN``.
    """
    if key is None:
        return ""
    return "".join(chr(b) if 0x20 <= b < 0x7F and b != 0x5C else f"\\x{b:02x}" for b in bytes(key))


_global_logger: StructuredLogger = NoOpLogger()


def get_logger() -> StructuredLogger:
    return _global_logger


def set_logger(logger: StructuredLogger | None) -> None:
    global _global_logger
    _global_logger = logger if logger is not None else NoOpLogger()


__all__ = [
    "NoOpLogger",
    "StructuredLogger",
    "get_logger",
    "key_field",
    "set_logger",
]
