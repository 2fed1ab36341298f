from __future__ import annotations

from affdash.models import CampaignStat, OrderLink, Recommendation, ShopSettings


def test_campaign_stat_parses_camel_case() -> None:
    c = CampaignStat.from_api(
        {"name": " Sale ", "clicks": "1,200", "orders": 3, "spent": "50000", "conversionRate": 0.02, "netProfit": None},
        day="2026-03-01",
    )
    assert c.date == "2026-03-01"
    assert c.name == "Sale"
    assert c.clicks == 1200
    assert c.spent == 50000.0
    assert c.conversion_rate == 0.02
    assert c.has_net_profit is False


def test_recommendation_full_shape() -> None:
    r = Recommendation.from_api(
        {
            "name": "Sale",
            "level": "efficient",
            "action": "increase",
            "briefSummary": "Tốt",
            "recommendedActions": ["Tăng ngân sách", ""],
        }
    )
    assert r.level == "EFFICIENT"
    assert r.action == "Increase"
    assert r.summary == "Tốt"
    assert r.actions == ["Tăng ngân sách"]


def test_recommendation_compact_shape() -> None:
    r = Recommendation.from_api({"campaignName": "Sale", "efficiencyLevel": 1, "advise": "Dừng lại"})
    assert r.campaign_name == "Sale"
    assert r.level == "VERY_BAD"
    assert r.action == "Stop"
    assert r.actions == ["Dừng lại"]


def test_shop_settings_percent_conversion() -> None:
    s = ShopSettings.from_api({"marketingFee": 0.015, "salesTax": 0.1, "name": "Shop"})
    p = s.to_percent()
    assert p.marketing_fee == 1.5
    assert p.sales_tax == 10.0
    assert p.from_percent().to_api() == {"marketingFee": 0.015, "salesTax": 0.1, "name": "Shop", "description": ""}


def test_order_link_label_falls_back_to_id() -> None:
    link = OrderLink.from_api({"id": 7, "name": "", "campaigns": [{"id": 1, "name": "A"}, "junk"]})
    assert link.label == "#7"
    assert [c.name for c in link.campaigns] == ["A"]
