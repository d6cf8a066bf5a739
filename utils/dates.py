from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_key(tz_name: str, now: Optional[datetime] = None) -> str:
    """指定タイムゾーンでの暦日 (YYYY-MM-DD)"""
    now = now or utc_now()
    return now.astimezone(ZoneInfo(tz_name)).date().isoformat()


def day_start(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """指定タイムゾーンでの当日 00:00 を UTC で返す"""
    now = now or utc_now()
    local = now.astimezone(ZoneInfo(tz_name))
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def epoch_ms(now: Optional[datetime] = None) -> int:
    return int((now or utc_now()).timestamp() * 1000)
