from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from affdash.models import CampaignStat, DailyStats, ShopSettings
from affdash.util import safe_div, shift_days


ALL_CAMPAIGNS = "all"
DEFAULT_RANGE_DAYS = 10

# per-campaign series carried on each chart point: key prefix -> CampaignStat attribute
SERIES_FIELDS: tuple[tuple[str, str], ...] = (
    ("spent", "spent"),
    ("commission", "commission"),
    ("cpc", "cpc"),
    ("conversionRate", "conversion_rate"),
    ("roas", "roas"),
    ("netProfit", "net_profit"),
)


@dataclass
class ChartPoint:
    date: str
    total_orders: int = 0
    total_spent: float = 0.0
    total_commission: float = 0.0
    total_net_profit: float = 0.0
    series: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "date": self.date,
            "totalOrders": self.total_orders,
            "totalSpent": self.total_spent,
            "totalCommission": self.total_commission,
            "totalNetProfit": self.total_net_profit,
        }
        out.update(self.series)
        return out


@dataclass(frozen=True)
class KpiSummary:
    total_orders: int
    total_commission: float
    total_spent: float
    net_profit: float
    roas: float


def default_date_range(today: date, days: int = DEFAULT_RANGE_DAYS) -> tuple[str, str]:
    start = shift_days(today, -(max(1, days) - 1))
    return start.isoformat(), today.isoformat()


def list_campaigns(daily: Iterable[DailyStats]) -> list[str]:
    names = {c.name for d in daily for c in d.campaigns}
    return sorted(names)


def compute_net_profit(spent: float, commission: float, settings: ShopSettings | None) -> float:
    """Commission minus spend minus sales tax on commission and marketing fee on spend."""
    if settings is None:
        return commission - spent
    return commission - spent - commission * settings.sales_tax - spent * settings.marketing_fee


def _is_active(c: CampaignStat) -> bool:
    return bool(c.clicks or c.orders or c.spent or c.commission)


def _net_profit(c: CampaignStat, settings: ShopSettings | None) -> float:
    if c.has_net_profit:
        return c.net_profit
    return compute_net_profit(c.spent, c.commission, settings)


def pivot_chart_data(
    daily: Iterable[DailyStats],
    *,
    start: str | None = None,
    end: str | None = None,
    campaign: str = ALL_CAMPAIGNS,
    only_active: bool = False,
    settings: ShopSettings | None = None,
) -> tuple[list[ChartPoint], list[str]]:
    """
    Group daily campaign rows into chart-ready points.

    Returns (points sorted by date, sorted names of campaigns seen in view).
    Days inside the window with no matching campaign still produce a zero point.
    """
    selected = (campaign or ALL_CAMPAIGNS).strip() or ALL_CAMPAIGNS
    points: list[ChartPoint] = []
    in_view: set[str] = set()

    for day in daily:
        if start and day.date < start:
            continue
        if end and day.date > end:
            continue

        point = ChartPoint(date=day.date)
        for c in day.campaigns:
            if selected != ALL_CAMPAIGNS and c.name != selected:
                continue
            if only_active and not _is_active(c):
                continue

            net = _net_profit(c, settings)
            point.total_orders += c.orders
            point.total_spent += c.spent
            point.total_commission += c.commission
            point.total_net_profit += net

            in_view.add(c.name)
            for prefix, attr in SERIES_FIELDS:
                value = net if attr == "net_profit" else getattr(c, attr)
                point.series[f"{prefix}__{c.name}"] = value
        points.append(point)

    points.sort(key=lambda p: p.date)
    return points, sorted(in_view)


def summarize(points: Iterable[ChartPoint]) -> KpiSummary:
    orders = 0
    commission = 0.0
    spent = 0.0
    net = 0.0
    for p in points:
        orders += p.total_orders
        commission += p.total_commission
        spent += p.total_spent
        net += p.total_net_profit
    return KpiSummary(
        total_orders=orders,
        total_commission=commission,
        total_spent=spent,
        net_profit=net,
        roas=safe_div(commission, spent),
    )


def day_details(daily: Iterable[DailyStats], day: str) -> dict[str, Any]:
    """Campaign rows for one day with per-row ROAS/CR and a totals row."""
    rows: list[dict[str, Any]] = []
    for d in daily:
        if d.date != day:
            continue
        for c in d.campaigns:
            row = c.to_dict()
            row["roas"] = safe_div(c.commission, c.spent)
            row["conversionRate"] = safe_div(c.orders, c.clicks)
            rows.append(row)
        break

    clicks = sum(int(r["clicks"]) for r in rows)
    orders = sum(int(r["orders"]) for r in rows)
    spent = sum(float(r["spent"]) for r in rows)
    commission = sum(float(r["commission"]) for r in rows)
    revenue = sum(float(r["revenue"] or 0) for r in rows)
    return {
        "date": day,
        "rows": rows,
        "total": {
            "clicks": clicks,
            "orders": orders,
            "spent": spent,
            "commission": commission,
            "revenue": revenue,
            "roas": safe_div(commission, spent),
            "conversionRate": safe_div(orders, clicks),
        },
    }


def trend_series(points: Iterable[ChartPoint]) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for p in points:
        out.append(
            {
                "date": p.date,
                "spent": p.total_spent,
                "commission": p.total_commission,
                "profit": p.total_commission - p.total_spent,
                "roas": safe_div(p.total_commission, p.total_spent),
            }
        )
    return out
