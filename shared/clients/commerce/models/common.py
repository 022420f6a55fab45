"""Helpers shared by the commerce platform record models."""

import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def flatten_localized(value: Any, preferred: tuple[str, ...] = ("en", "es", "pt")) -> Any:
    """Collapse a localized field like {"es": "Remera"} into a plain string.

    Non-dict values pass through unchanged.
    """
    if not isinstance(value, dict):
        return value
    for language in preferred:
        if value.get(language):
            return value[language]
    for text in value.values():
        if text:
            return text
    return None


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse platform timestamps such as "2024-01-15T10:20:30+0000" into aware datetimes."""
    if not value:
        return None
    normalized = value.strip().replace("Z", "+00:00")
    normalized = _COMPACT_OFFSET.sub(r"\1:\2", normalized)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class Address(BaseModel):
    address: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    zipcode: str | None = None
