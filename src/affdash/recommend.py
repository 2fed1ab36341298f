from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from affdash.dashboard import compute_net_profit
from affdash.models import DailyStats, Recommendation, ShopSettings
from affdash.util import safe_div


# (min ROAS, level, action), checked top to bottom
ROAS_RULES: tuple[tuple[float, str, str], ...] = (
    (3.0, "VERY_EFFICIENT", "Increase"),
    (2.0, "EFFICIENT", "Increase"),
    (1.0, "OK", "Keep"),
    (0.5, "BAD", "Decrease"),
)
FALLBACK_RULE = ("VERY_BAD", "Stop")

LEVEL_LABELS = {
    "VERY_BAD": "Rất kém",
    "BAD": "Kém",
    "OK": "Ổn định",
    "EFFICIENT": "Hiệu quả",
    "VERY_EFFICIENT": "Rất hiệu quả",
}


@dataclass(frozen=True)
class CampaignTotals:
    name: str
    days: int
    clicks: int
    orders: int
    spent: float
    commission: float
    net_profit: float

    @property
    def roas(self) -> float:
        return safe_div(self.commission, self.spent)

    @property
    def conversion_rate(self) -> float:
        return safe_div(self.orders, self.clicks)


def campaign_totals(
    daily: Iterable[DailyStats],
    settings: ShopSettings | None = None,
) -> list[CampaignTotals]:
    acc: dict[str, dict[str, float]] = {}
    for day in daily:
        for c in day.campaigns:
            a = acc.setdefault(
                c.name,
                {"days": 0, "clicks": 0, "orders": 0, "spent": 0.0, "commission": 0.0, "net": 0.0},
            )
            a["days"] += 1
            a["clicks"] += c.clicks
            a["orders"] += c.orders
            a["spent"] += c.spent
            a["commission"] += c.commission
            a["net"] += c.net_profit if c.has_net_profit else compute_net_profit(c.spent, c.commission, settings)
    return [
        CampaignTotals(
            name=name,
            days=int(a["days"]),
            clicks=int(a["clicks"]),
            orders=int(a["orders"]),
            spent=a["spent"],
            commission=a["commission"],
            net_profit=a["net"],
        )
        for name, a in sorted(acc.items())
    ]


def classify(roas: float) -> tuple[str, str]:
    for threshold, level, action in ROAS_RULES:
        if roas >= threshold:
            return level, action
    return FALLBACK_RULE


def _advice(t: CampaignTotals, level: str, action: str) -> list[str]:
    out: list[str] = []
    if action == "Increase":
        out.append("Tăng ngân sách 20-30% và theo dõi ROAS trong 3 ngày tới.")
        if t.conversion_rate >= 0.05:
            out.append("Tỷ lệ chuyển đổi tốt: mở rộng thêm nhóm đối tượng tương tự.")
    elif action == "Keep":
        out.append("Giữ nguyên ngân sách, tối ưu nội dung quảng cáo để tăng tỷ lệ chuyển đổi.")
    elif action == "Decrease":
        out.append("Giảm ngân sách 30-50% và thu hẹp đối tượng mục tiêu.")
    else:
        out.append("Tạm dừng chiến dịch để cắt lỗ.")
    if t.clicks and not t.orders:
        out.append("Có click nhưng chưa có đơn: kiểm tra lại link đơn hàng và trang đích.")
    if t.net_profit < 0 and level not in {"VERY_BAD", "BAD"}:
        out.append("Lợi nhuận ròng âm sau phí và thuế: xem lại cài đặt phí cửa hàng.")
    return out


def build_recommendations(
    daily: Iterable[DailyStats],
    settings: ShopSettings | None = None,
) -> list[Recommendation]:
    """
    Rule-based recommendations from campaign ROAS over the loaded window.
    Campaigns without spend are skipped. Worst campaigns come first.
    """
    out: list[Recommendation] = []
    for t in campaign_totals(daily, settings):
        if t.spent <= 0:
            continue
        level, action = classify(t.roas)
        summary = (
            f"ROAS {t.roas:.2f}x trong {t.days} ngày: chi {t.spent:,.0f}, hoa hồng {t.commission:,.0f}, "
            f"{t.orders} đơn, lợi nhuận ròng {t.net_profit:,.0f}."
        )
        out.append(
            Recommendation(
                campaign_name=t.name,
                level=level,
                action=action,
                summary=summary,
                actions=_advice(t, level, action),
            )
        )
    out.sort(key=lambda r: (r.rank, r.campaign_name))
    return out


def select_recommendations(
    backend: list[Recommendation],
    daily: Iterable[DailyStats],
    settings: ShopSettings | None = None,
) -> list[Recommendation]:
    if backend:
        return backend
    return build_recommendations(daily, settings)
