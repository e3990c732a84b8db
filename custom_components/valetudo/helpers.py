"""Small numeric and string helpers shared by the Valetudo modules."""
from __future__ import annotations

import math
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero towards +inf."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def to_float(val: Any) -> float | None:
    """Coerce numbers and numeric strings into a float.

    Returns None if val is None or cannot be interpreted.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return float(val)
    if isinstance(val, str):
        try:
            return float(val.strip())
        except ValueError:
            return None
    return None


def safe_endpoint_id(*parts: str) -> str:
    """Join parts with dashes, replacing anything but [a-zA-Z0-9-] with '_'."""
    raw = "-".join(str(p) for p in parts)
    return "".join(ch if (ch.isascii() and ch.isalnum()) or ch == "-" else "_" for ch in raw)
