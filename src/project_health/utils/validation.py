"""Input coercion helpers.

The analytics engine never raises on malformed input. These helpers turn
loosely-typed values coming from a store into numbers, or ``None`` when the
value cannot be used.
"""

import logging
import math
from typing import Any, Optional

logger = logging.getLogger(__name__)


def coerce_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_positive_hours(value: Any) -> Optional[float]:
    """Return ``value`` as a positive, finite number of hours, or None."""
    hours = coerce_float(value)
    if hours is None or hours <= 0:
        logger.debug(f"Rejected hours value: {value!r}")
        return None
    return hours


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves upward (4.5 -> 5), unlike the built-in ``round()``."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def percent(part: int, whole: int) -> int:
    """Integer percentage of ``part`` in ``whole`` (0 when whole is 0)."""
    if whole <= 0:
        return 0
    return int(round_half_up(part / whole * 100))
