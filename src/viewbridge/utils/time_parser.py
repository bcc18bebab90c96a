from __future__ import annotations

import math
import re

from viewbridge.errors import invalid_duration_error

INFINITE_WORDS = {"inf", "infinite", "forever", "none"}

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1.0,
    "sec": 1.0,
    "m": 60.0,
    "min": 60.0,
    "h": 3600.0,
}


def parse_duration(val: str | float | None) -> float | None:
    """Parse a flexible duration into seconds.

    Supports:
    - Numbers, taken as seconds (5, 2.5, "30")
    - Suffixed values ("250ms", "5s", "2m", "1h")
    - "inf", "forever" or "none" for no limit (returns None)

    If already None, returns it.
    """
    if val is None:
        return None

    if isinstance(val, bool):
        raise invalid_duration_error(val)

    if isinstance(val, int | float):
        if math.isinf(val) and val > 0:
            return None
        if math.isnan(val) or val < 0:
            raise invalid_duration_error(val)
        return float(val)

    val_str = str(val).strip().lower()
    if not val_str:
        raise invalid_duration_error(val)

    if val_str in INFINITE_WORDS:
        return None

    match = re.match(r"^(\d+(?:\.\d+)?)\s*(ms|s|sec|m|min|h)?$", val_str)
    if not match:
        raise invalid_duration_error(val)

    amount = float(match.group(1))
    unit = match.group(2) or "s"
    return amount * _UNIT_SECONDS[unit]
