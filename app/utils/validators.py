from __future__ import annotations

from typing import Any


def to_native_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        casted = float(value)
        if casted != casted:
            return default
        return casted
    except (TypeError, ValueError):
        return default


def to_native_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def percent_change(change: float, price: float) -> float:
    if price == 0:
        return 0.0
    return change / price * 100
