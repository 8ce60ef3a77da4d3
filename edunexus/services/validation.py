"""Field normalizers shared by the services.

Each helper returns the cleaned value or raises ValidationError naming the
field, so nothing is written before all input has been checked.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence
from urllib.parse import urlparse

from edunexus.errors import ValidationError


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clean_text(value: object, field: str, min_length: int = 1) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field.capitalize()} is required", field=field)
    trimmed = value.strip()
    if len(trimmed) < min_length:
        if min_length <= 1:
            raise ValidationError(f"{field.capitalize()} is required", field=field)
        raise ValidationError(
            f"{field.capitalize()} must be at least {min_length} characters", field=field
        )
    return trimmed


def clean_optional_text(value: object, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field.capitalize()} must be text", field=field)
    return value.strip() or None


def clean_number(value: object, field: str, minimum: Optional[float] = None,
                 maximum: Optional[float] = None, strict_minimum: bool = False) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field.capitalize()} must be a number", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field.capitalize()} must be a number", field=field)
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{field.capitalize()} must be a number", field=field)
    if minimum is not None:
        if strict_minimum and number <= minimum:
            raise ValidationError(f"{field.capitalize()} must be greater than {minimum:g}", field=field)
        if not strict_minimum and number < minimum:
            raise ValidationError(f"{field.capitalize()} must be at least {minimum:g}", field=field)
    if maximum is not None and number > maximum:
        raise ValidationError(f"{field.capitalize()} must be at most {maximum:g}", field=field)
    return number


def clean_int(value: object, field: str, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field.capitalize()} must be an integer", field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field.capitalize()} must be an integer", field=field)
    if isinstance(value, float) and value != number:
        raise ValidationError(f"{field.capitalize()} must be an integer", field=field)
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field.capitalize()} must be at least {minimum}", field=field)
    return number


def clean_choice(value: object, field: str, choices: Sequence[str]) -> str:
    if value not in choices:
        raise ValidationError(
            f"Invalid {field}; expected one of: {', '.join(choices)}", field=field
        )
    return value


def parse_datetime(value: object, field: str) -> datetime:
    """Accept a datetime or an ISO-8601 string; naive values are UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Valid {field.replace('_', ' ')} is required", field=field)
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Valid {field.replace('_', ' ')} is required", field=field)
    return as_utc(parsed)


def clean_url(value: object, field: str = "url") -> str:
    if not isinstance(value, str):
        raise ValidationError("Valid URL is required", field=field)
    trimmed = value.strip()
    parsed = urlparse(trimmed)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Valid URL is required", field=field)
    return trimmed


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def format_size(num_bytes: int) -> str:
    """Human-readable size for limit messages: 512 bytes, 1.5KB, 10MB."""
    if num_bytes < 1024:
        return f"{num_bytes} bytes"
    if num_bytes < 1024 * 1024:
        value, unit = num_bytes / 1024, "KB"
    else:
        value, unit = num_bytes / (1024 * 1024), "MB"
    return f"{value:.1f}".rstrip("0").rstrip(".") + unit


def file_too_large(filename: str, limit: int, field: str) -> ValidationError:
    return ValidationError(f"File '{filename}' exceeds {format_size(limit)} limit", field=field)


def too_many_files(limit: int) -> ValidationError:
    return ValidationError(f"At most {limit} files per submission", field="files")
