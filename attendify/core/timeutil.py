# attendify/core/timeutil.py
from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from attendify.core.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    # SQLite devolve datetimes "naive"; tudo é gravado em UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def parse_event_datetime(raw: str | datetime, event_date: date | None) -> datetime:
    """Aceita ISO 8601 (com ou sem offset) ou "HH:MM" combinado com event_date.

    Valores sem fuso são interpretados em settings.TIMEZONE. Retorna UTC.
    """
    if isinstance(raw, datetime):
        value = raw
    else:
        text = (raw or "").strip()
        if not text:
            raise ValueError("empty datetime")
        if len(text) <= 8 and ":" in text and "T" not in text and "-" not in text:
            if event_date is None:
                raise ValueError("event_date is required for time-only values")
            value = datetime.combine(event_date, time.fromisoformat(text))
        else:
            value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=local_tz())
    return value.astimezone(timezone.utc)
