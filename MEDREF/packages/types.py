from __future__ import annotations

import math
import re
from collections.abc import Iterable
from typing import Any

COUNT_PATTERN = re.compile(r"\+?\d+")
TRUE_FLAGS = frozenset({"1", "true", "yes", "on"})
FALSE_FLAGS = frozenset({"0", "false", "no", "off"})


# -----------------------------------------------------------------------------
def parse_count(value: Any) -> int | None:
    """Positive whole number from a settings value, or None when it is not one.

    Strings must hold only the digits; signs other than a leading plus,
    units and decimals are rejected rather than salvaged.

    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        count = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        count = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not COUNT_PATTERN.fullmatch(text):
            return None
        count = int(text)
    else:
        return None
    return count if count > 0 else None


# -----------------------------------------------------------------------------
def coerce_count(value: Any, default: int) -> int:
    count = parse_count(value)
    return default if count is None else count


# -----------------------------------------------------------------------------
def parse_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


# -----------------------------------------------------------------------------
def coerce_percentage(value: Any, default: float) -> float:
    number = parse_number(value)
    if number is None:
        return default
    return min(max(number, 0.0), 100.0)


# -----------------------------------------------------------------------------
def coerce_duration(value: Any, default: float, minimum: float = 0.0) -> float:
    number = parse_number(value)
    if number is None or math.isinf(number):
        return default
    return max(number, minimum)


# -----------------------------------------------------------------------------
def coerce_flag(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_FLAGS:
            return True
        if lowered in FALSE_FLAGS:
            return False
    return default


# -----------------------------------------------------------------------------
def coerce_label(value: Any, default: str) -> str:
    if not isinstance(value, str):
        return default
    return value.strip() or default


# -----------------------------------------------------------------------------
def coerce_name_list(value: Any, default: Iterable[str]) -> tuple[str, ...]:
    """Upper-cased, deduplicated names from a list or a comma separated value."""
    if isinstance(value, str):
        candidates = value.split(",")
    elif isinstance(value, (list, tuple)):
        candidates = [item for item in value if isinstance(item, str)]
    else:
        candidates = []
    names = [candidate.strip().upper() for candidate in candidates if candidate.strip()]
    return tuple(dict.fromkeys(names or [name.upper() for name in default]))


__all__ = [
    "coerce_count",
    "coerce_duration",
    "coerce_flag",
    "coerce_label",
    "coerce_name_list",
    "coerce_percentage",
    "parse_count",
    "parse_number",
]
