"""
Slot metrics normalization.

Every capacity decision and every slot read goes through
``normalize_slot_metrics``. Stored slots come in several historical shapes
(single-volunteer slots without counters, camelCase counters, PascalCase
counters) and may carry junk values; normalization never raises and always
yields ``capacity >= 1`` and ``filled_count >= 0``.
"""

import math
import re
from collections.abc import Mapping
from typing import Any

from core.domain.signup import SlotMetrics, SlotStatus

DEFAULT_CAPACITY = 1

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value: Any) -> int | None:
    """Leading-integer parse; None when *value* holds no usable integer.

    ``"3"`` → 3, ``"3 people"`` → 3, ``2.9`` → 2, ``"abc"`` / NaN / inf / bools → None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def _first_present(properties: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = properties.get(name)
        if value is not None:
            return value
    return None


def normalize_slot_metrics(properties: Mapping[str, Any] | None) -> SlotMetrics:
    """
    Compute capacity and filled count from raw stored slot properties.

    Args:
        properties: Stored slot properties in any historical shape

    Returns:
        SlotMetrics with capacity defaulting to 1 when missing or not a
        positive integer, and filled count inferred from the legacy
        ``VolunteerEmail`` field when no counter was ever stored
    """
    if not isinstance(properties, Mapping):
        properties = {}

    raw_capacity = parse_int(_first_present(properties, "Capacity", "capacity"))
    capacity = raw_capacity if raw_capacity is not None and raw_capacity > 0 else DEFAULT_CAPACITY

    raw_filled = _first_present(properties, "FilledCount", "filledCount")
    if raw_filled is None:
        filled = 1 if properties.get("VolunteerEmail") else 0
    else:
        filled = max(0, parse_int(raw_filled) or 0)

    return SlotMetrics(capacity=capacity, filled_count=filled)


def next_status(current: SlotStatus, filled_count: int, capacity: int) -> SlotStatus:
    """Status after a counter change. Held slots stay held."""
    if current == SlotStatus.HELD:
        return SlotStatus.HELD
    return SlotStatus.FILLED if filled_count >= capacity else SlotStatus.AVAILABLE


def parse_status(raw: Any, metrics: SlotMetrics) -> SlotStatus:
    """Stored status, case-insensitive; unknown or empty values are derived from counters."""
    if isinstance(raw, str):
        try:
            return SlotStatus(raw.strip().lower())
        except ValueError:
            pass
    return next_status(SlotStatus.AVAILABLE, metrics.filled_count, metrics.capacity)
