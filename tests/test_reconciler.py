"""Tests for cross-source reconciliation."""

import pytest

from campaign_dashboard.processor.filters import FilterState
from campaign_dashboard.processor.reconciler import (
    DELIVERY,
    REACH,
    ReconciledPlatformRecord,
    SourcePriority,
    reconcile,
)
from campaign_dashboard.schema.records import DeliveryRecord, ReachRecord


DEDICATED = {"TikTok", "Meta", "Uber"}


def _delivery(platform, region="São Paulo", **kwargs):
    return DeliveryRecord(date="2025-03-15", platform=platform, region=region, **kwargs)


class TestReconcile:
    def test_dedicated_platform_split_sources(self):
        reach = [ReachRecord(platform="TikTok", impressions=5000, reach=4000)]
        delivery = [_delivery("TikTok", cost=300, clicks=50, impressions=9999, reach=7777)]
        result = reconcile(delivery, reach, DEDICATED)
        assert len(result) == 1
        rec = result[0]
        assert rec.platform == "TikTok"
        assert rec.impressions == 5000
        assert rec.reach == 4000
        assert rec.cost == 300
        assert rec.clicks == 50
        assert rec.dedicated

    def test_other_platforms_use_delivery(self):
        delivery = [
            _delivery("Google", cost=100, clicks=10, impressions=2000, reach=1500),
            _delivery("Google", cost=50, clicks=5, impressions=1000, reach=500),
        ]
        rec = reconcile(delivery, [], DEDICATED)[0]
        assert rec.impressions == 3000
        assert rec.reach == 2000
        assert rec.cost == 150
        assert not rec.dedicated

    def test_dedicated_without_reach_rows_stays_zero(self):
        delivery = [_delivery("Meta", cost=80, clicks=4, impressions=5000, reach=3000)]
        rec = reconcile(delivery, [], DEDICATED)[0]
        assert rec.impressions == 0
        assert rec.reach == 0
        assert rec.cost == 80
        assert rec.clicks == 4

    def test_reach_only_platform_yields_record(self):
        reach = [ReachRecord(platform="Uber", impressions=100, reach=90)]
        rec = reconcile([], reach, DEDICATED)[0]
        assert rec.platform == "Uber"
        assert rec.reach == 90
        assert rec.cost == 0

    def test_reach_rows_for_other_platforms_ignored(self):
        reach = [ReachRecord(platform="Google", impressions=100, reach=90)]
        delivery = [_delivery("Google", impressions=10, reach=5)]
        rec = reconcile(delivery, reach, DEDICATED)[0]
        assert rec.impressions == 10
        assert rec.reach == 5

    def test_case_insensitive_platform_match(self):
        reach = [ReachRecord(platform="tiktok", impressions=5000, reach=4000)]
        delivery = [_delivery("TIKTOK", cost=300)]
        result = reconcile(delivery, reach, {"TikTok"})
        assert len(result) == 1
        assert result[0].platform == "TIKTOK"
        assert result[0].reach == 4000

    def test_filter_applies_to_both_sources(self):
        reach = [
            ReachRecord(platform="Meta", region="São Paulo", impressions=100, reach=80),
            ReachRecord(platform="Meta", region="Rio de Janeiro", impressions=900, reach=700),
        ]
        delivery = [
            _delivery("Meta", region="São Paulo", cost=10),
            _delivery("Meta", region="Rio de Janeiro", cost=90),
        ]
        state = FilterState.create(regions=["São Paulo"])
        rec = reconcile(delivery, reach, DEDICATED, filter_state=state)[0]
        assert rec.reach == 80
        assert rec.impressions == 100
        assert rec.cost == 10

    def test_platform_filter_drops_platform(self):
        reach = [ReachRecord(platform="Meta", impressions=100, reach=80)]
        delivery = [_delivery("Meta", cost=10), _delivery("Google", cost=20)]
        state = FilterState.create(platforms=["Google"])
        result = reconcile(delivery, reach, DEDICATED, filter_state=state)
        assert [r.platform for r in result] == ["Google"]

    def test_custom_priority(self):
        priority = SourcePriority({
            "impressions": DELIVERY,
            "reach": REACH,
            "cost": DELIVERY,
            "clicks": DELIVERY,
        })
        reach = [ReachRecord(platform="Meta", impressions=100, reach=80)]
        delivery = [_delivery("Meta", impressions=1000, reach=900, cost=10)]
        rec = reconcile(delivery, reach, DEDICATED, priority=priority)[0]
        assert rec.impressions == 1000
        assert rec.reach == 80

    def test_invalid_priority_source(self):
        with pytest.raises(ValueError):
            SourcePriority({"reach": "spreadsheet"})

    def test_empty_inputs(self):
        assert reconcile([], [], DEDICATED) == []

    def test_inputs_not_mutated(self):
        reach = [ReachRecord(platform="Meta", impressions=100, reach=80)]
        delivery = [_delivery("Meta", cost=10)]
        snapshot = (list(reach), list(delivery))
        reconcile(delivery, reach, DEDICATED)
        assert (reach, delivery) == snapshot


class TestReconciledPlatformRecord:
    def test_derived_metrics(self):
        rec = ReconciledPlatformRecord(platform="Meta", impressions=5000, reach=4000,
                                       cost=300, clicks=50)
        assert rec.frequency == pytest.approx(1.25)
        assert rec.cpm == pytest.approx(60.0)
        assert rec.cpc == pytest.approx(6.0)
        assert rec.ctr == pytest.approx(1.0)

    def test_zero_denominators(self):
        rec = ReconciledPlatformRecord(platform="Meta", cost=10)
        assert rec.frequency == 0
        assert rec.cpm == 0
        assert rec.cpc == 0

    def test_to_dict(self):
        d = ReconciledPlatformRecord(platform="Meta", impressions=10, reach=5).to_dict()
        assert d["platform"] == "Meta"
        assert d["frequency"] == pytest.approx(2.0)
        assert "ADDITIVE_FIELDS" not in d
