from __future__ import annotations

import secrets
from datetime import date, datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo


def now_utc_iso() -> str:
    return datetime.now(tz=timezone.utc).replace(microsecond=0).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_urlsafe(10)}"


def today_local(timezone_name: str) -> date:
    return datetime.now(tz=ZoneInfo(timezone_name)).date()


def shift_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def parse_day(raw: str | None) -> date | None:
    s = (raw or "").strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def to_float(v: Any) -> float:
    if v is None or isinstance(v, bool):
        return 0.0
    if isinstance(v, (int, float)):
        return float(v)
    s = str(v).strip().replace(",", "")
    if s == "":
        return 0.0
    try:
        return float(s)
    except ValueError:
        return 0.0


def to_int(v: Any) -> int:
    return int(to_float(v))


def safe_div(a: float, b: float) -> float:
    return a / b if b else 0.0
