from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from affdash.util import to_float, to_int


class LoadingState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class CampaignStat:
    """One campaign's numbers for one day, as reported by the stats endpoint."""

    date: str
    name: str
    clicks: int = 0
    orders: int = 0
    spent: float = 0.0
    commission: float = 0.0
    net_profit: float = 0.0
    cpc: float = 0.0
    conversion_rate: float = 0.0
    revenue: float = 0.0
    roas: float = 0.0
    has_net_profit: bool = True

    @staticmethod
    def from_api(raw: dict[str, Any], *, day: str = "") -> "CampaignStat":
        return CampaignStat(
            date=str(raw.get("date") or day),
            name=str(raw.get("name") or "").strip(),
            clicks=to_int(raw.get("clicks")),
            orders=to_int(raw.get("orders")),
            spent=to_float(raw.get("spent")),
            commission=to_float(raw.get("commission")),
            net_profit=to_float(raw.get("netProfit")),
            cpc=to_float(raw.get("cpc")),
            conversion_rate=to_float(raw.get("conversionRate")),
            revenue=to_float(raw.get("revenue")),
            roas=to_float(raw.get("roas")),
            has_net_profit=raw.get("netProfit") is not None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "name": self.name,
            "clicks": self.clicks,
            "orders": self.orders,
            "spent": self.spent,
            "commission": self.commission,
            "netProfit": self.net_profit,
            "cpc": self.cpc,
            "conversionRate": self.conversion_rate,
            "revenue": self.revenue,
            "roas": self.roas,
        }


@dataclass(frozen=True)
class DailyStats:
    date: str
    campaigns: list[CampaignStat] = field(default_factory=list)

    @staticmethod
    def from_api(raw: dict[str, Any]) -> "DailyStats":
        day = str(raw.get("date") or "")
        rows = raw.get("campaignEfficiencies") or []
        if not isinstance(rows, list):
            rows = []
        return DailyStats(
            date=day,
            campaigns=[CampaignStat.from_api(r, day=day) for r in rows if isinstance(r, dict)],
        )


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    token: str | None = None

    @staticmethod
    def from_api(raw: dict[str, Any], *, token: str | None = None) -> "User":
        return User(
            id=str(raw.get("id") or ""),
            username=str(raw.get("username") or ""),
            email=str(raw.get("email") or ""),
            token=token if token is not None else (raw.get("token") or None),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "username": self.username, "email": self.email}
        if self.token:
            out["token"] = self.token
        return out


@dataclass(frozen=True)
class ShopSettings:
    """Shop financial settings. Rates are fractions on the wire (0.1 = 10%)."""

    marketing_fee: float
    sales_tax: float
    name: str = ""
    description: str = ""

    @staticmethod
    def from_api(raw: dict[str, Any]) -> "ShopSettings":
        return ShopSettings(
            marketing_fee=to_float(raw.get("marketingFee")),
            sales_tax=to_float(raw.get("salesTax")),
            name=str(raw.get("name") or ""),
            description=str(raw.get("description") or ""),
        )

    def to_api(self) -> dict[str, Any]:
        return {
            "marketingFee": self.marketing_fee,
            "salesTax": self.sales_tax,
            "name": self.name,
            "description": self.description,
        }

    def to_percent(self) -> "ShopSettings":
        return ShopSettings(
            marketing_fee=round(self.marketing_fee * 100, 6),
            sales_tax=round(self.sales_tax * 100, 6),
            name=self.name,
            description=self.description,
        )

    def from_percent(self) -> "ShopSettings":
        return ShopSettings(
            marketing_fee=self.marketing_fee / 100,
            sales_tax=self.sales_tax / 100,
            name=self.name,
            description=self.description,
        )


RECOMMENDATION_LEVELS = ("VERY_BAD", "BAD", "OK", "EFFICIENT", "VERY_EFFICIENT")
RECOMMENDATION_ACTIONS = ("Increase", "Keep", "Decrease", "Stop")

# efficiencyLevel 1..5 in the compact backend shape
_LEVEL_BY_NUMBER = {i + 1: level for i, level in enumerate(RECOMMENDATION_LEVELS)}
_ACTION_BY_LEVEL = {
    "VERY_BAD": "Stop",
    "BAD": "Decrease",
    "OK": "Keep",
    "EFFICIENT": "Increase",
    "VERY_EFFICIENT": "Increase",
}


@dataclass(frozen=True)
class Recommendation:
    campaign_name: str
    level: str
    action: str
    summary: str = ""
    actions: list[str] = field(default_factory=list)

    @property
    def rank(self) -> int:
        return RECOMMENDATION_LEVELS.index(self.level)

    @staticmethod
    def from_api(raw: dict[str, Any]) -> "Recommendation":
        name = str(raw.get("name") or raw.get("campaignName") or "").strip()

        level = str(raw.get("level") or "").strip().upper()
        if level not in RECOMMENDATION_LEVELS:
            level = _LEVEL_BY_NUMBER.get(to_int(raw.get("efficiencyLevel")), "OK")

        action = str(raw.get("action") or "").strip().capitalize()
        if action not in RECOMMENDATION_ACTIONS:
            action = _ACTION_BY_LEVEL[level]

        summary = str(raw.get("briefSummary") or raw.get("advise") or "").strip()
        actions_raw = raw.get("recommendedActions")
        if isinstance(actions_raw, list):
            actions = [str(a) for a in actions_raw if str(a).strip()]
        elif raw.get("advise"):
            actions = [str(raw["advise"])]
        else:
            actions = []

        return Recommendation(campaign_name=name, level=level, action=action, summary=summary, actions=actions)


@dataclass(frozen=True)
class CampaignMapping:
    id: int
    name: str
    unmapped: bool = False

    @staticmethod
    def from_api(raw: dict[str, Any]) -> "CampaignMapping":
        return CampaignMapping(
            id=to_int(raw.get("id")),
            name=str(raw.get("name") or ""),
            unmapped=bool(raw.get("unmapped", False)),
        )


@dataclass(frozen=True)
class OrderLink:
    id: int
    name: str
    campaigns: list[CampaignMapping] = field(default_factory=list)

    @staticmethod
    def from_api(raw: dict[str, Any]) -> "OrderLink":
        campaigns = raw.get("campaigns") or []
        return OrderLink(
            id=to_int(raw.get("id")),
            name=str(raw.get("name") or ""),
            campaigns=[CampaignMapping.from_api(c) for c in campaigns if isinstance(c, dict)],
        )

    @property
    def label(self) -> str:
        return self.name or f"#{self.id}"
