from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_month(value: str) -> str:
    v = (value or "").strip()
    parts = v.split("-")
    if len(parts) != 2 or len(parts[0]) != 4 or not all(p.isdigit() for p in parts) or not 1 <= int(parts[1]) <= 12:
        raise ValidationError("Month must be in YYYY-MM format")
    return v


def require_hours(value: float, *, max_hours: float) -> float:
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Hours must be a number")
    if hours < 0 or hours > max_hours:
        raise ValidationError(f"Hours must be between 0 and {max_hours:g}")
    return hours


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_email(value: str) -> str:
    v = require_non_empty(value, "Email").lower()
    local, sep, domain = v.partition("@")
    if not sep or not local or "." not in domain:
        raise ValidationError("Email is invalid")
    return v
