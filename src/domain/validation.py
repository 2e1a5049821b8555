"""Field-level coercion and validation rules for booking money fields."""

from __future__ import annotations

import math
from typing import Any, Optional

from .errors import InvalidInput


def coerce_fare(raw: Any) -> Optional[float]:
    """
    Normalise a client-supplied fare.

    * ``None`` -> unset
    * numbers and numeric strings -> ``float``
    * negative or non-finite values -> unset
    * anything else (booleans, non-numeric strings) -> ``InvalidInput``
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise InvalidInput("Fare must be a number")
    if isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            raise InvalidInput("Fare must be a number") from None
    elif isinstance(raw, (int, float)):
        value = float(raw)
    else:
        raise InvalidInput("Fare must be a number")

    if not math.isfinite(value) or value < 0:
        return None
    return value


def validate_amount(amount: Any) -> float:
    """Owner-set revenue: a finite number >= 0, otherwise ``InvalidInput``."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidInput("Invalid revenue amount")
    value = float(amount)
    if not math.isfinite(value) or value < 0:
        raise InvalidInput("Invalid revenue amount")
    return value
