from __future__ import annotations

import re
import unicodedata
from datetime import date, datetime
from enum import Enum
from typing import TypeVar

from app.core.errors import ValidationError

E = TypeVar("E", bound=Enum)

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def clean(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def clean_or_none(value: object) -> str | None:
    return clean(value) or None


def is_uuid(value: str) -> bool:
    return bool(_UUID_PATTERN.match(value or ""))


def _fold(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch)).casefold().replace(" ", "_")


def match_enum(enum_cls: type[E], value: object) -> E | None:
    if isinstance(value, enum_cls):
        return value
    raw = clean(value)
    if not raw:
        return None
    folded = _fold(raw)
    for member in enum_cls:
        if folded in (_fold(member.name), _fold(str(member.value))):
            return member
    return None


def parse_enum(enum_cls: type[E], value: object, message: str) -> E:
    member = match_enum(enum_cls, value)
    if member is None:
        raise ValidationError(message)
    return member


def parse_optional_iso_date(value: object, field_name: str) -> date | None:
    raw = clean(value)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError as exc:
        raise ValidationError(f"Formato de data inválido para {field_name}") from exc


def parse_int(value: object, default: int) -> int:
    raw = clean(value)
    if not raw.lstrip("-").isdigit():
        return default
    return int(raw)


def iso(value: date | datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def enum_value(value: Enum | None) -> str | None:
    if value is None:
        return None
    return value.value
