"""
Cell coercion from dataset values to BigQuery JSON wire values.

Cells arrive as the Python scalars polars hands out (``int``, ``float``,
``str``, ``bool``, temporal objects, ``None``). Dispatch is on the column's
logical type:

- ``int``: integers inside the signed/unsigned 64-bit envelope pass through,
  everything else becomes ``None``.
- ``string``: any non-null value is rendered with ``str``.

A tag outside ``LogicalType`` is a configuration fault and raises.
"""

from __future__ import annotations

from typing import Any

from exex_wvm.domain.models import U64_MAX, LogicalType, WireValue
from exex_wvm.errors import UnsupportedTypeError

I64_MIN = -(2**63)


def coerce_int(value: Any) -> WireValue:
    # bool is an int subclass but polars Boolean columns are not integers
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if I64_MIN <= value <= U64_MAX:
        return int(value)
    return None


def coerce_string(value: Any) -> WireValue:
    if value is None:
        return None
    return str(value)


def coerce(value: Any, logical_type: LogicalType | str) -> WireValue:
    """
    Convert one cell into a wire-safe value for the given logical type.

    Raises
    ------
    UnsupportedTypeError
        If ``logical_type`` is not a member of ``LogicalType``.
    """
    kind = LogicalType.parse(logical_type)
    if kind is LogicalType.INT:
        return coerce_int(value)
    if kind is LogicalType.STRING:
        return coerce_string(value)
    raise UnsupportedTypeError(kind)  # pragma: no cover - enum is closed


__all__ = ["coerce", "coerce_int", "coerce_string"]
