"""Tests for row normalization into typed records."""

import math

import pytest

from campaign_dashboard.processor.aggregator import aggregate
from campaign_dashboard.processor.columns import resolve_columns
from campaign_dashboard.processor.normalizer import (
    is_included,
    normalize_row,
    normalize_table,
    region_from_campaign,
)
from campaign_dashboard.schema.models import RawTable, TableSchema
from campaign_dashboard.schema.records import (
    BenchmarkRecord,
    DeliveryRecord,
    EventRecord,
    PlanRecord,
    ReachRecord,
    SessionRecord,
)
from campaign_dashboard.schema.sources import (
    build_benchmark_schema,
    build_delivery_schema,
    build_events_schema,
    build_plan_schema,
    build_reach_schema,
    build_sessions_schema,
)


DELIVERY_HEADER = ["Date", "Veículo", "Impressions", "Total spent", "Reach", "Clicks"]


# ---------------------------------------------------------------------------
# Delivery rows
# ---------------------------------------------------------------------------

class TestNormalizeDeliveryRow:
    def test_locale_formatted_row(self):
        row = ["15/03/2025", "Meta", "10.000", "R$ 1.500,00", "8.000", "200"]
        rec = normalize_row(DELIVERY_HEADER, row, build_delivery_schema())
        assert isinstance(rec, DeliveryRecord)
        assert rec.date == "2025-03-15"
        assert rec.platform == "Meta"
        assert rec.impressions == 10000
        assert rec.cost == 1500.0
        assert rec.reach == 8000
        assert rec.clicks == 200
        assert rec.frequency == pytest.approx(1.25)
        assert rec.cpm == pytest.approx(150.0)

    def test_zero_reach_gives_zero_frequency(self):
        header = ["Date", "Impressions", "Reach"]
        rec = normalize_row(header, ["01/03/2025", "1.000", "0"], build_delivery_schema())
        assert rec.impressions == 1000
        assert rec.frequency == 0
        assert math.isfinite(rec.cpm)

    def test_precomputed_resolution(self):
        schema = build_delivery_schema()
        resolution = resolve_columns(DELIVERY_HEADER, schema)
        row = ["15/03/2025", "Meta", "10.000", "R$ 1.500,00", "8.000", "200"]
        rec = normalize_row(None, row, schema, resolution=resolution)
        assert rec.impressions == 10000

    def test_defaults_for_absent_columns(self):
        rec = normalize_row(DELIVERY_HEADER, ["15/03/2025", "", "10"], build_delivery_schema())
        assert rec.platform == "Outros"
        assert rec.category == "CPM"
        assert rec.region == "Nacional"
        assert rec.media_format == "static"

    def test_region_from_campaign_tag(self):
        header = ["Date", "Campaign name", "Impressions"]
        rec = normalize_row(header, ["15/03/2025", "Museu | SP | Video", "10"],
                            build_delivery_schema())
        assert rec.region == "São Paulo"

    def test_region_column_wins_over_campaign_tag(self):
        header = ["Date", "Campaign name", "Praça", "Impressions"]
        rec = normalize_row(header, ["15/03/2025", "Museu | SP |", "Salvador", "10"],
                            build_delivery_schema())
        assert rec.region == "Salvador"

    def test_video_format_and_rates(self):
        header = ["Date", "video_estatico_audio", "Impressions", "Total spent",
                  "Video views", "Video completions"]
        row = ["15/03/2025", "Video", "1.000", "R$ 50,00", "400", "250"]
        rec = normalize_row(header, row, build_delivery_schema())
        assert rec.media_format == "video"
        assert rec.cpv == pytest.approx(0.125)
        assert rec.cpvc == pytest.approx(0.2)
        assert rec.vtr == pytest.approx(25.0)

    def test_views_without_completions(self):
        header = ["Date", "Impressions", "Total spent", "Video views"]
        rec = normalize_row(header, ["15/03/2025", "1.000", "R$ 50,00", "500"],
                            build_delivery_schema())
        assert rec.cpv == pytest.approx(0.1)
        assert rec.cpvc == 0.0
        assert rec.vtr == 0.0

    @pytest.mark.parametrize("views,completions", [("1.000", ""), ("5.000", "2.000"), ("", "")])
    def test_row_ratios_match_single_row_group(self, views, completions):
        header = ["Date", "Veículo", "Impressions", "Total spent", "Reach",
                  "Video views", "Video completions"]
        row = ["15/03/2025", "TikTok", "10.000", "R$ 1.000,00", "8.000", views, completions]
        rec = normalize_row(header, row, build_delivery_schema())
        group = aggregate([rec], lambda r: r.platform)[0]
        for name in ("frequency", "cpm", "cpv", "cpvc", "vtr"):
            assert group.value(name) == pytest.approx(getattr(rec, name))

    def test_negative_values_clamped(self):
        header = ["Date", "Impressions", "Total spent"]
        rec = normalize_row(header, ["15/03/2025", "-50", "R$ -10,00"], build_delivery_schema())
        assert rec.impressions == 0
        assert rec.cost == 0.0

    def test_ragged_row(self):
        rec = normalize_row(DELIVERY_HEADER, ["15/03/2025", "Meta", "10.000"],
                            build_delivery_schema())
        assert rec.impressions == 10000
        assert rec.cost == 0.0
        assert rec.clicks == 0

    def test_malformed_cells_do_not_raise(self):
        row = ["someday", None, "lots", "R$ ???", float("nan"), "abc"]
        rec = normalize_row(DELIVERY_HEADER, row, build_delivery_schema())
        assert rec.date is None
        assert rec.impressions == 0
        assert not is_included(rec, build_delivery_schema())


class TestRegionFromCampaign:
    @pytest.mark.parametrize("campaign,region", [
        ("Museu | SP | Display", "São Paulo"),
        ("Museu | RJ | Video", "Rio de Janeiro"),
        ("Museu | MG |", "Minas Gerais"),
        ("Museu | RS |", "Rio Grande do Sul"),
        ("Museu | NAC |", "Nacional"),
        ("Museu", "Nacional"),
    ])
    def test_tags(self, campaign, region):
        assert region_from_campaign(campaign) == region


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

class TestNormalizeTable:
    def test_inclusion_predicate(self):
        table = RawTable.from_values([
            DELIVERY_HEADER,
            ["15/03/2025", "Meta", "10.000", "R$ 1.500,00", "8.000", "200"],
            ["", "Meta", "10.000", "R$ 10,00", "8.000", "200"],       # no date
            ["16/03/2025", "Meta", "0", "R$ 10,00", "0", "0"],        # no impressions
            ["31/02/2025", "Meta", "500", "R$ 10,00", "0", "0"],      # bad date
        ])
        result = normalize_table(table, build_delivery_schema())
        assert len(result.records) == 1
        assert result.dropped == 3
        assert result.records[0].date == "2025-03-15"

    def test_missing_columns_reported(self):
        table = RawTable.from_values([DELIVERY_HEADER, ["15/03/2025", "Meta", "1"]])
        result = normalize_table(table, build_delivery_schema())
        assert any("campaign" in w for w in result.warnings)
        assert not any("'cost'" in w for w in result.warnings)
        assert "campaign" in result.resolution.missing

    def test_no_usable_rows_warned(self):
        table = RawTable.from_values([DELIVERY_HEADER, ["", "", "", "", "", ""]])
        result = normalize_table(table, build_delivery_schema())
        assert result.records == []
        assert any("no usable rows" in w for w in result.warnings)

    def test_empty_table(self):
        result = normalize_table(RawTable.from_values([]), build_delivery_schema())
        assert result.records == []
        assert result.dropped == 0

    def test_reach_tab_with_platform_default(self):
        table = RawTable.from_values([
            ["Anunciante", "Impressões", "Alcance", "Frequência", "Praça"],
            ["Museu", "5.000", "4.000", "1,25", "São Paulo"],
            ["", "0", "0", "", ""],
        ], name="Tiktok_alcance")
        result = normalize_table(table, build_reach_schema(), {"platform": "TikTok"})
        assert result.dropped == 1
        rec = result.records[0]
        assert isinstance(rec, ReachRecord)
        assert rec.platform == "TikTok"
        assert rec.impressions == 5000
        assert rec.reach == 4000
        assert rec.frequency == pytest.approx(1.25)
        assert rec.region == "São Paulo"

    def test_reach_row_kept_with_advertiser_only(self):
        table = RawTable.from_values([
            ["Anunciante", "Impressões", "Alcance"],
            ["Museu", "", ""],
        ])
        result = normalize_table(table, build_reach_schema(), {"platform": "Meta"})
        assert len(result.records) == 1

    def test_reach_tab_without_headers(self):
        table = RawTable.from_values([
            ["col_a", "col_b", "col_c", "col_d", "col_e"],
            ["Museu", "5.000", "4.000", "1,25", "Rio de Janeiro"],
        ])
        result = normalize_table(table, build_reach_schema(), {"platform": "Uber"})
        rec = result.records[0]
        assert rec.reach == 4000
        assert rec.region == "Rio de Janeiro"

    def test_benchmark_table(self):
        table = RawTable.from_values([
            ["Veículo", "Tipo de Mídia", "CPM", "CPC", "Inv", "Imp", "Cliques", "CTR", "VTR 100%"],
            ["Meta", "Display", "R$ 10,00", "R$ 1,50", "", "", "", "0,8", "25"],
            ["", "Display", "R$ 10,00", "", "", "", "", "", ""],
        ])
        result = normalize_table(table, build_benchmark_schema())
        assert len(result.records) == 1
        rec = result.records[0]
        assert isinstance(rec, BenchmarkRecord)
        assert rec.key == "META_DISPLAY"
        assert rec.cpm == pytest.approx(10.0)
        assert rec.cpc == pytest.approx(1.5)
        assert rec.ctr == pytest.approx(0.8)
        assert rec.vtr == pytest.approx(25.0)

    def test_events_table(self):
        table = RawTable.from_values([
            ["Date", "Parâmetro Ação", "Parâmetro Rótulo", "Praça", "Event count"],
            ["20250315", "botao-cta", "Ingressos", "São Paulo", "12"],
            ["20250315", "botao-cta", "Ingressos", "São Paulo", "0"],
        ])
        result = normalize_table(table, build_events_schema())
        assert len(result.records) == 1
        rec = result.records[0]
        assert isinstance(rec, EventRecord)
        assert rec.date == "2025-03-15"
        assert rec.event_count == 12

    def test_sessions_table(self):
        table = RawTable.from_values([
            ["Date", "Session source", "Region", "Device category", "Sessions",
             "New users", "Bounces", "Engaged sessions", "Average session duration"],
            ["20250315", "google", "State of Sao Paulo", "mobile", "100", "40", "30", "70", "12.5"],
            ["20250316", "", "", "", "0", "0", "0", "0", "0"],
        ])
        result = normalize_table(table, build_sessions_schema())
        assert len(result.records) == 1
        rec = result.records[0]
        assert isinstance(rec, SessionRecord)
        assert rec.source == "google"
        assert rec.state == "State of Sao Paulo"
        assert rec.avg_session_duration == pytest.approx(12.5)
        assert rec.session_duration_total == pytest.approx(1250.0)

    def test_sessions_default_labels(self):
        table = RawTable.from_values([["Date", "Sessions"], ["20250315", "5"]])
        rec = normalize_table(table, build_sessions_schema()).records[0]
        assert rec.source == "Outros"
        assert rec.device == "Outros"

    def test_plan_table(self):
        table = RawTable.from_values([
            ["Praça", "Veículo", "MÊS", "Custo Investido", "Custo Previsto", "Tipo de Compra"],
            ["São Paulo", "Meta", "Março", "R$ 1.000,00", "R$ 2.000,00", "CPM"],
            ["", "", "", "", "", ""],
        ])
        result = normalize_table(table, build_plan_schema())
        assert len(result.records) == 1
        rec = result.records[0]
        assert isinstance(rec, PlanRecord)
        assert rec.month == "Março"
        assert rec.cost == 1000.0
        assert rec.planned_cost == 2000.0

    def test_unknown_source_type(self):
        schema = TableSchema(name="x", source_type="bogus")
        with pytest.raises(ValueError, match="Unknown source type"):
            normalize_table(RawTable.from_values([["a"], ["1"]]), schema)
