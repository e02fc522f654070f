"""Различные вспомогательные функции."""

from __future__ import annotations

import re
from datetime import datetime

_SOCKET_SCHEMES = ("unix://", "tcp://", "npipe://", "http://", "https://", "ssh://")
_FRACTION_PATTERN = re.compile(r"\.(\d+)")
_RFC3339_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})"
)

SHORT_ID_LENGTH = 12


def normalize_socket_path(raw_value: str) -> str:
    """Возвращает путь сокета с корректным префиксом unix://."""

    value = raw_value.strip()
    if not value:
        return value
    lowered = value.lower()
    if lowered.startswith(_SOCKET_SCHEMES):
        return value
    if value.startswith("/"):
        return f"unix://{value}"
    return value


def short_id(container_id: str) -> str:
    """Приводит идентификатор контейнера к короткой форме (12 символов, нижний регистр)."""

    return container_id.strip()[:SHORT_ID_LENGTH].lower()


def parse_rfc3339(value: str | None) -> datetime | None:
    """Разбирает RFC3339 (в том числе с наносекундами); None, если формат не распознан.

    Строка без часового пояса считается некорректной.
    """

    if not value or not _RFC3339_PATTERN.fullmatch(value.strip()):
        return None
    # datetime понимает не больше 6 знаков дробной части
    candidate = _FRACTION_PATTERN.sub(lambda match: "." + match.group(1)[:6], value.strip(), 1)
    if candidate.endswith("Z"):
        candidate = candidate[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(candidate)
    except ValueError:
        return None
