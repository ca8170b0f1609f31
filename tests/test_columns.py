"""Tests for header-based column resolution."""

import pytest

from campaign_dashboard.processor.columns import (
    EXACT,
    POSITIONAL,
    SUBSTRING,
    normalize_header,
    resolve_column,
    resolve_columns,
)
from campaign_dashboard.schema.models import ColumnSpec, FieldType, SourceType, TableSchema
from campaign_dashboard.schema.sources import build_delivery_schema, build_reach_schema


# ---------------------------------------------------------------------------
# resolve_column
# ---------------------------------------------------------------------------

class TestResolveColumn:
    def test_exact_match(self):
        assert resolve_column(["Date", "Veículo"], ["Veículo"]) == 1

    def test_case_insensitive(self):
        assert resolve_column(["DATE", "veículo"], ["Veículo"]) == 1

    def test_trimmed(self):
        assert resolve_column(["Date", "  Reach  "], ["Reach"]) == 1

    def test_synonyms_in_priority_order(self):
        assert resolve_column(["Custo", "Cost"], ["Cost", "Custo"]) == 1

    def test_later_synonym_used_when_first_absent(self):
        assert resolve_column(["Date", "Alcance"], ["Reach", "Alcance"]) == 1

    def test_substring_fallback(self):
        assert resolve_column(["Date", "Link clicks"], ["Clicks"]) == 1

    def test_substring_reverse_direction(self):
        assert resolve_column(["Impr"], ["Impressions"]) == 0

    def test_exact_beats_substring(self):
        assert resolve_column(["Link clicks", "Clicks"], ["Clicks"]) == 1

    def test_not_found(self):
        assert resolve_column(["Date", "Cost"], ["Reach"]) is None

    def test_empty_header_never_matches(self):
        assert resolve_column(["", None], ["Reach"]) is None

    def test_empty_header_row(self):
        assert resolve_column([], ["Reach"]) is None

    def test_idempotent(self):
        header = ["Date", "Veículo", "Impressions", "Total spent"]
        synonyms = ["Total spent", "Cost"]
        assert resolve_column(header, synonyms) == resolve_column(header, synonyms) == 3


class TestNormalizeHeader:
    def test_collapses_whitespace(self):
        assert normalize_header("  Total   spent ") == "total spent"

    def test_none(self):
        assert normalize_header(None) == ""


# ---------------------------------------------------------------------------
# resolve_columns
# ---------------------------------------------------------------------------

class TestResolveColumns:
    def test_delivery_header(self):
        header = ["Date", "Veículo", "Impressions", "Total spent", "Reach", "Clicks"]
        res = resolve_columns(header, build_delivery_schema())
        assert res.index("date") == 0
        assert res.index("platform") == 1
        assert res.index("impressions") == 2
        assert res.index("cost") == 3
        assert res.index("reach") == 4
        assert res.index("clicks") == 5
        assert res.strategies["cost"] == EXACT
        assert "campaign" in res.missing
        assert "region" in res.missing
        assert not res.is_complete

    def test_header_for(self):
        res = resolve_columns(["Date", "Total spent"], build_delivery_schema())
        assert res.header_for("cost") == "Total spent"
        assert res.header_for("reach") is None

    def test_claimed_column_not_reused_by_substring(self):
        header = ["Video views", "Video completions"]
        res = resolve_columns(header, build_delivery_schema())
        assert res.index("video_views") == 0
        assert res.index("video_completions") == 1
        # "Video views at 25%" contains "video views", but that column is taken
        assert res.index("video_views_25") is None

    def test_substring_strategy_recorded(self):
        res = resolve_columns(["Data do relatório", "Total de cliques"], build_delivery_schema())
        assert res.index("date") == 0
        assert res.strategies["date"] == SUBSTRING
        assert res.index("clicks") == 1
        assert res.strategies["clicks"] == SUBSTRING

    def test_exact_synonym_recorded_as_exact(self):
        res = resolve_columns(["Link clicks"], build_delivery_schema())
        assert res.index("clicks") == 0
        assert res.strategies["clicks"] == EXACT

    def test_positional_fallback(self):
        header = ["col_a", "col_b", "col_c", "col_d", "col_e"]
        res = resolve_columns(header, build_reach_schema())
        assert res.index("advertiser") == 0
        assert res.index("impressions") == 1
        assert res.index("reach") == 2
        assert res.index("frequency") == 3
        assert res.index("region") == 4
        assert res.strategies["reach"] == POSITIONAL
        assert res.missing == ("platform",)

    def test_positional_needs_wide_enough_header(self):
        res = resolve_columns(["col_a", "col_b"], build_reach_schema())
        assert res.index("impressions") == 1
        assert res.index("reach") is None
        assert "reach" in res.missing

    def test_named_columns_beat_positions(self):
        header = ["Praça", "Anunciante", "Impressões", "Alcance", "Frequência"]
        res = resolve_columns(header, build_reach_schema())
        assert res.index("region") == 0
        assert res.index("advertiser") == 1
        assert res.index("frequency") == 4

    def test_positional_skips_claimed_column(self):
        schema = TableSchema(
            name="t",
            source_type=SourceType.REACH,
            columns=[
                ColumnSpec("a", ("Alpha",)),
                ColumnSpec("b", ("Bravo",), FieldType.INTEGER, position=0),
            ],
        )
        res = resolve_columns(["Alpha", "x"], schema)
        assert res.index("a") == 0
        assert res.index("b") is None

    @pytest.mark.parametrize("header", [
        ["Date", "Veículo", "Impressions"],
        ["Impressions", "Date"],
        [],
    ])
    def test_deterministic(self, header):
        schema = build_delivery_schema()
        assert resolve_columns(header, schema) == resolve_columns(header, schema)
