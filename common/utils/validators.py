from typing import Any

from ..errors import ValidationError


def ensure_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None


def ensure_positive_int(value: Any, field: str) -> int:
    number = ensure_int(value, field)
    if number < 1:
        raise ValidationError(f"{field} must be >= 1")
    return number


def ensure_identifier(value: Any, field: str) -> str:
    ident = str(value or "").strip()
    if not ident:
        raise ValidationError(f"{field} required")
    return ident
