"""Unit tests for the simulation summary and the run analysis."""

from __future__ import annotations

import csv
import io
import json

import pytest

from shelfsim.analysis import (
    analyze_run,
    build_conclusion,
    demand_elasticity,
    format_dollars,
    optimal_price,
    price_elasticity,
    revenue_forecast,
    summarize_simulation,
)
from shelfsim.schemas import ShelfProductInfo


def _info(pid: int, list_price: int, **kwargs) -> ShelfProductInfo:
    return ShelfProductInfo(
        id=pid, brand_name="Acme", product_name=f"P{pid}", list_price=list_price, **kwargs
    )


class TestSummarizeSimulation:
    def test_shares_and_mean_prices(self):
        products = [_info(1, 1000), _info(2, 2000)]
        results = summarize_simulation(products, {1: [800, 1200], 2: [2000]})

        assert [r.product_id for r in results] == [1, 2]
        assert results[0].preference_share == pytest.approx(2 / 3)
        assert results[0].optimal_price == pytest.approx(10.0)
        assert results[0].selections == 2
        assert results[1].preference_share == pytest.approx(1 / 3)
        assert results[1].optimal_price == pytest.approx(20.0)

    def test_no_choices_split_evenly_at_list_price(self):
        products = [_info(1, 1000), _info(2, 2500), _info(3, 400)]
        results = summarize_simulation(products, {})

        assert all(r.preference_share == pytest.approx(1 / 3) for r in results)
        assert [r.optimal_price for r in results] == [10.0, 25.0, 4.0]

    def test_to_dict_uses_api_names(self):
        result = summarize_simulation([_info(1, 1000)], {1: [1000]})[0]
        assert set(result.to_dict()) == {
            "product_id", "brand", "name", "description", "image_url",
            "optimal_price", "preference_share", "selections",
        }

    def test_empty_shelf(self):
        assert summarize_simulation([], {}) == []


class TestPriceMetrics:
    def test_optimal_price_moves_up_for_popular_products(self):
        assert optimal_price(1000, 0.75, 800, 1200) == 1100
        assert optimal_price(1000, 1.0) == 1200

    def test_optimal_price_moves_down_for_unpopular_products(self):
        assert optimal_price(1000, 0.25, 800, 1200) == 900
        assert optimal_price(1000, 0.0) == 800

    def test_optimal_price_at_baseline_share(self):
        assert optimal_price(1000, 0.5) == 1000

    def test_price_elasticity(self):
        assert price_elasticity(1000, 1100, 0.75) == pytest.approx(5.0)
        assert price_elasticity(1000, 1000, 0.9) == 0.0
        assert price_elasticity(0, 100, 0.9) == 0.0

    def test_revenue_forecast(self):
        assert revenue_forecast(0.5, 1000) == 5_000_000
        assert revenue_forecast(0.25, 1000, market_size=100) == 25_000


class TestConclusion:
    def test_insensitive_and_strong(self):
        text = build_conclusion(0.5, 0.5, 1000, 1000)
        assert text == (
            "Price insensitive: Consider premium positioning. "
            "Strong market performance with high preference share."
        )

    def test_sensitive_weak_with_adjustment(self):
        text = build_conclusion(3.0, 0.1, 1000, 800)
        assert "Highly price sensitive" in text
        assert "Limited market traction" in text
        assert text.endswith("Price adjustment of -20.0% recommended.")

    def test_moderate(self):
        text = build_conclusion(1.5, 0.3, 1000, 1100)
        assert "Moderate price sensitivity" in text
        assert "Moderate market acceptance" in text
        assert "Price adjustment" not in text


class TestDemandElasticity:
    def test_log_log_slope(self):
        assert demand_elasticity({100: 10, 200: 5}) == pytest.approx(-1.0)

    def test_needs_two_prices(self):
        assert demand_elasticity({100: 10}) is None
        assert demand_elasticity({100: 10, 200: 0}) is None
        assert demand_elasticity({}) is None


class TestAnalyzeRun:
    @pytest.fixture
    def analysis(self):
        products = [
            _info(1, 1000, low_price=800, high_price=1200),
            _info(2, 1000),
            _info(3, 500),
        ]
        counts = [(1, "SYNTHETIC", 3), (1, "HUMAN", 1), (2, "SYNTHETIC", 4)]
        return analyze_run(7, 2, products, counts, {1: {800: 3, 1000: 1}})

    def test_totals(self, analysis):
        assert analysis.run_id == 7
        assert analysis.shelf_id == 2
        assert analysis.total_responses == 8
        assert analysis.by_respondent_type == {"SYNTHETIC": 7, "HUMAN": 1}

    def test_per_product_metrics(self, analysis):
        first, second, third = analysis.by_product
        assert first.responses == {"SYNTHETIC": 3, "HUMAN": 1}
        assert first.total_responses == 4
        assert first.share == pytest.approx(0.5)
        assert first.optimal_price == 1000
        assert first.revenue_forecast == 5_000_000
        assert first.demand_elasticity is not None
        assert second.share == pytest.approx(0.5)
        assert second.demand_elasticity is None

    def test_product_without_responses_keeps_list_price(self, analysis):
        third = analysis.by_product[2]
        assert third.share == 0.0
        assert third.optimal_price == 500
        assert third.elasticity == 0.0
        assert third.revenue_forecast == 0

    def test_missing_respondent_type(self):
        analysis = analyze_run(1, 1, [_info(1, 100)], [(1, None, 2)])
        assert analysis.by_respondent_type == {"UNKNOWN": 2}

    def test_json_export(self, analysis):
        data = json.loads(analysis.to_json())
        assert data["run_id"] == 7
        assert [p["product_id"] for p in data["by_product"]] == [1, 2, 3]

    def test_csv_export(self, analysis):
        rows = list(csv.reader(io.StringIO(analysis.to_csv())))
        assert rows[0][:3] == ["product_id", "brand_name", "product_name"]
        assert len(rows) == 4
        assert rows[1][3] == "4"
        assert rows[3][-1] == ""


def test_format_dollars():
    assert format_dollars(123456) == "$1,234.56"
    assert format_dollars(None) == "-"
