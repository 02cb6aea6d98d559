# utils/validators.py
import math
from typing import Any, Optional


def non_empty(text) -> bool:
    """True if `text` is not None/empty after stripping whitespace."""
    return bool(text and str(text).strip())


# ---- Amounts ----
#
# Stored records come from forms and older app versions, so amounts may be
# numbers, numeric strings, None or junk. Booleans are never amounts even
# though float(True) works.

def as_number(x: Any) -> Optional[float]:
    """Finite float for x, or None when x is not a usable number."""
    if x is None or isinstance(x, bool):
        return None
    try:
        val = float(x)
    except (TypeError, ValueError):
        return None
    return val if math.isfinite(val) else None


def number_or(x: Any, default: float = 0.0) -> float:
    """Lenient read for stored records: unusable values become `default`."""
    val = as_number(x)
    return default if val is None else val


def is_non_negative_number(x) -> bool:
    val = as_number(x)
    return val is not None and val >= 0


def is_strictly_positive_number(x) -> bool:
    val = as_number(x)
    return val is not None and val > 0
