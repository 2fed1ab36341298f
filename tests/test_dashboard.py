from __future__ import annotations

from datetime import date

import pytest

from affdash.dashboard import (
    ALL_CAMPAIGNS,
    compute_net_profit,
    day_details,
    default_date_range,
    list_campaigns,
    pivot_chart_data,
    summarize,
    trend_series,
)
from affdash.models import DailyStats, ShopSettings


def _daily() -> list[DailyStats]:
    raw = [
        {
            "date": "2026-03-02",
            "campaignEfficiencies": [
                {"name": "Sale A", "clicks": 100, "orders": 5, "spent": 200000, "commission": 500000, "netProfit": 250000},
                {"name": "Sale B", "clicks": 0, "orders": 0, "spent": 0, "commission": 0, "netProfit": 0},
            ],
        },
        {
            "date": "2026-03-01",
            "campaignEfficiencies": [
                {"name": "Sale A", "clicks": 50, "orders": 1, "spent": 100000, "commission": 80000, "netProfit": -30000},
                {"name": "Sale B", "clicks": 20, "orders": 2, "spent": 50000, "commission": 150000, "netProfit": 90000},
            ],
        },
        {"date": "2026-03-03", "campaignEfficiencies": []},
    ]
    return [DailyStats.from_api(d) for d in raw]


def test_default_date_range_covers_ten_days() -> None:
    start, end = default_date_range(date(2026, 3, 10))
    assert (start, end) == ("2026-03-01", "2026-03-10")


def test_list_campaigns_sorted_unique() -> None:
    assert list_campaigns(_daily()) == ["Sale A", "Sale B"]


def test_pivot_sorts_by_date_and_sums_totals() -> None:
    points, in_view = pivot_chart_data(_daily())

    assert [p.date for p in points] == ["2026-03-01", "2026-03-02", "2026-03-03"]
    first = points[0]
    assert first.total_orders == 3
    assert first.total_spent == 150000
    assert first.total_commission == 230000
    assert first.total_net_profit == 60000
    assert first.series["spent__Sale A"] == 100000
    assert first.series["netProfit__Sale B"] == 90000

    # a day without rows still yields a zero point
    assert points[2].total_orders == 0
    assert points[2].series == {}
    assert in_view == ["Sale A", "Sale B"]


def test_pivot_filters_by_window_and_campaign() -> None:
    points, in_view = pivot_chart_data(_daily(), start="2026-03-02", end="2026-03-02", campaign="Sale A")
    assert len(points) == 1
    assert points[0].total_commission == 500000
    assert in_view == ["Sale A"]

    d = points[0].to_dict()
    assert d["totalOrders"] == 5
    assert "commission__Sale A" in d
    assert "commission__Sale B" not in d


def test_pivot_only_active_skips_idle_rows() -> None:
    points, in_view = pivot_chart_data(_daily(), start="2026-03-02", end="2026-03-02", only_active=True)
    assert in_view == ["Sale A"]
    assert "spent__Sale B" not in points[0].series


def test_pivot_computes_net_profit_when_missing() -> None:
    daily = [
        DailyStats.from_api(
            {"date": "2026-03-01", "campaignEfficiencies": [{"name": "X", "spent": 1000, "commission": 3000}]}
        )
    ]
    shop = ShopSettings(marketing_fee=0.01, sales_tax=0.10)
    points, _ = pivot_chart_data(daily, settings=shop)
    # 3000 - 1000 - 300 tax - 10 fee
    assert points[0].total_net_profit == pytest.approx(1690)


def test_compute_net_profit_without_settings() -> None:
    assert compute_net_profit(1000, 3000, None) == 2000


def test_summarize_kpis() -> None:
    points, _ = pivot_chart_data(_daily(), campaign=ALL_CAMPAIGNS)
    kpi = summarize(points)
    assert kpi.total_orders == 8
    assert kpi.total_spent == 350000
    assert kpi.total_commission == 730000
    assert kpi.net_profit == 310000
    assert round(kpi.roas, 4) == round(730000 / 350000, 4)


def test_summarize_empty_has_zero_roas() -> None:
    kpi = summarize([])
    assert kpi.total_orders == 0
    assert kpi.roas == 0.0


def test_day_details_rows_and_totals() -> None:
    details = day_details(_daily(), "2026-03-01")
    assert details["date"] == "2026-03-01"
    assert [r["name"] for r in details["rows"]] == ["Sale A", "Sale B"]
    assert details["rows"][1]["roas"] == 3.0
    assert details["rows"][1]["conversionRate"] == 0.1

    total = details["total"]
    assert total["clicks"] == 70
    assert total["orders"] == 3
    assert total["spent"] == 150000
    assert total["commission"] == 230000
    assert round(total["roas"], 4) == round(230000 / 150000, 4)


def test_day_details_unknown_day_is_empty() -> None:
    details = day_details(_daily(), "2025-01-01")
    assert details["rows"] == []
    assert details["total"]["roas"] == 0.0


def test_trend_series_profit_and_roas() -> None:
    points, _ = pivot_chart_data(_daily(), campaign="Sale B")
    series = trend_series(points)
    assert series[0] == {"date": "2026-03-01", "spent": 50000, "commission": 150000, "profit": 100000, "roas": 3.0}
    assert series[1]["roas"] == 0.0
