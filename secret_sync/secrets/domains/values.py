"""Structural comparison of secret data and tag values.

Backends hand back payloads that went through JSON or similar layers, so the
same logical value can arrive as a different Python type (1 vs 1.0, tuple vs
list, b"x" vs "x", {1: ...} vs {"1": ...}). Values are compared by structure
instead of by concrete type. Booleans stay distinct from numbers.
"""
from collections.abc import Mapping
from decimal import Decimal
from numbers import Number
from typing import Any

_SEQUENCE_TYPES = (list, tuple)


def _is_number(value: Any) -> bool:
    return isinstance(value, (Number, Decimal)) and not isinstance(value, bool)


def _numbers_equal(left: Any, right: Any) -> bool:
    # Decimal("0.1") != 0.1, so mixed pairs compare as floats
    if isinstance(left, Decimal) and isinstance(right, float):
        return float(left) == right
    if isinstance(left, float) and isinstance(right, Decimal):
        return left == float(right)
    return left == right


def _as_text(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return bytes(value)
    return value


def values_equal(left: Any, right: Any) -> bool:
    """
    Compare two values structurally.

    Args:
        left: null, bool, number, string, sequence or mapping value
        right: value to compare against

    Returns:
        True if both values describe the same structure
    """
    left = _as_text(left)
    right = _as_text(right)

    if left is None or right is None:
        return left is None and right is None

    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right

    if _is_number(left) or _is_number(right):
        return _is_number(left) and _is_number(right) and _numbers_equal(left, right)

    if isinstance(left, str) or isinstance(right, str):
        return isinstance(left, str) and isinstance(right, str) and left == right

    if isinstance(left, Mapping) or isinstance(right, Mapping):
        if not (isinstance(left, Mapping) and isinstance(right, Mapping)):
            return False
        left_items = {str(k): v for k, v in left.items()}
        right_items = {str(k): v for k, v in right.items()}
        if left_items.keys() != right_items.keys():
            return False
        return all(values_equal(v, right_items[k]) for k, v in left_items.items())

    if isinstance(left, _SEQUENCE_TYPES) or isinstance(right, _SEQUENCE_TYPES):
        if not (isinstance(left, _SEQUENCE_TYPES) and isinstance(right, _SEQUENCE_TYPES)):
            return False
        if len(left) != len(right):
            return False
        return all(values_equal(a, b) for a, b in zip(left, right))

    return left == right
