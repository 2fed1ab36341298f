from __future__ import annotations

from datetime import date
from typing import Any

from affdash.util import to_float


_COMPACT_UNITS = ((1e9, "T"), (1e6, "Tr"), (1e3, "N"))
_WEEKDAYS_VI = ("T2", "T3", "T4", "T5", "T6", "T7", "CN")


def format_number(v: Any) -> str:
    """vi-VN grouping: 1234567 -> 1.234.567"""
    n = round(to_float(v))
    return f"{n:,}".replace(",", ".")


def format_compact(v: Any) -> str:
    """Short vi-VN notation: 1200000 -> 1,2 Tr; 950 -> 950."""
    n = to_float(v)
    sign = "-" if n < 0 else ""
    a = abs(n)
    for threshold, unit in _COMPACT_UNITS:
        if a >= threshold:
            s = f"{a / threshold:.1f}".replace(".", ",")
            if s.endswith(",0"):
                s = s[:-2]
            return f"{sign}{s} {unit}"
    return f"{sign}{round(a)}"


def format_percent(v: Any) -> str:
    return f"{to_float(v) * 100:.2f}%"


def format_roas(v: Any) -> str:
    return f"{to_float(v):.2f}x"


def format_day(v: Any, *, weekday: bool = False) -> str:
    try:
        d = date.fromisoformat(str(v)[:10])
    except ValueError:
        return str(v or "")
    s = d.strftime("%d/%m/%Y")
    if weekday:
        return f"{_WEEKDAYS_VI[d.weekday()]}, {s}"
    return s


def register_filters(env) -> None:
    env.filters["number"] = format_number
    env.filters["compact"] = format_compact
    env.filters["percent"] = format_percent
    env.filters["roas"] = format_roas
    env.filters["day"] = format_day
