from __future__ import annotations
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app, has_app_context

DEFAULT_TZ = "Asia/Kolkata"

def store_tz():
    name = current_app.config.get("STORE_TZ", DEFAULT_TZ) if has_app_context() else DEFAULT_TZ
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        try:
            import tzdata  # noqa
            return ZoneInfo(name)
        except (ImportError, ZoneInfoNotFoundError):
            return timezone.utc

def store_now() -> datetime:
    """Локальное время магазина без tzinfo, так хранятся окна купонов."""
    return datetime.now(store_tz()).replace(tzinfo=None)

def store_today() -> date:
    return store_now().date()
