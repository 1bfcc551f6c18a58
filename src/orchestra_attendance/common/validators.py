from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value, field_name: str) -> str:
    cleaned = "" if value is None else str(value).strip()
    if not cleaned:
        raise ValidationError(f"{field_name} is required")
    return cleaned


def require_positive(value: int, field_name: str) -> int:
    if value is None or int(value) < 1:
        raise ValidationError(f"{field_name} must be at least 1")
    return int(value)


def optional_int(value: Optional[str], field_name: str) -> Optional[int]:
    """Parse an optional integer query parameter ("" and None mean absent)."""
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
