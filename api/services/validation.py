from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

HUNDRED = Decimal("100")
# Anything larger is a typo, and overflows the decimal context when multiplied.
MAX_AMOUNT = Decimal("1e15")


class InputValidationError(ValueError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


def require_amount(field: str, value: Any) -> Decimal:
    """Coerce a currency amount to Decimal; finite and non-negative."""
    if isinstance(value, bool) or value is None:
        raise InputValidationError(field, "expected a number")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InputValidationError(field, f"not a number: {value!r}") from None
    if not amount.is_finite():
        raise InputValidationError(field, "must be finite")
    if amount < 0:
        raise InputValidationError(field, "must not be negative")
    if amount > MAX_AMOUNT:
        raise InputValidationError(field, f"must not exceed {MAX_AMOUNT:,f}")
    return amount


def require_percent(field: str, value: Any) -> Decimal:
    pct = require_amount(field, value)
    if pct > HUNDRED:
        raise InputValidationError(field, "must be between 0 and 100")
    return pct


def require_number(field: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InputValidationError(field, f"not a number: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise InputValidationError(field, "must be finite")
    if number < 0:
        raise InputValidationError(field, "must not be negative")
    return number


def require_fraction(field: str, value: Any) -> float:
    number = require_number(field, value)
    if number > 1:
        raise InputValidationError(field, "must be a fraction between 0 and 1")
    return number


def require_flag(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InputValidationError(field, f"expected true or false, got {value!r}")
    return value


def require_id(field: str, value: Any) -> Optional[str]:
    """Record ids are strings; null clears the assignment."""
    if value is None or isinstance(value, str):
        return value
    raise InputValidationError(field, f"expected an id string, got {value!r}")
