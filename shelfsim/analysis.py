"""
Preference and price analysis for shelf survey runs.

Two entry points, both working on plain counts so they can be fed from the
database, from a simulation in memory, or from tests:

1. ``summarize_simulation`` - what a synthetic run returns immediately:
   mean chosen price and preference share per product.
2. ``analyze_run`` - the run report: responses per respondent type,
   a share-driven optimal price, arc price elasticity against a 50% share
   baseline, a revenue forecast for a 10,000 shopper market, a plain-text
   conclusion and, where a product was chosen at several prices, a
   log-log demand elasticity.

scipy is imported lazily inside ``demand_elasticity``; do not add a
top-level scipy import.
"""

# Import modules
from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from shelfsim.design import cents_to_dollars, round_half_up
from shelfsim.schemas import ShelfProductInfo

BASELINE_SHARE = 0.5
BASELINE_MARKET = 10_000
PRICE_ADJUSTMENT_THRESHOLD = 15.0  # percent

# =====================================================================
# Result containers
# =====================================================================

@dataclass
class SimulatedProduct:
    """Per-product outcome of a synthetic survey run (prices in dollars)."""

    product_id: int
    brand: str
    name: str
    description: Optional[str]
    image_url: Optional[str]
    optimal_price: float
    preference_share: float
    selections: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "brand": self.brand,
            "name": self.name,
            "description": self.description,
            "image_url": self.image_url,
            "optimal_price": self.optimal_price,
            "preference_share": self.preference_share,
            "selections": self.selections,
        }


@dataclass
class ProductAnalysis:
    """Run-level metrics for one product (prices in cents)."""

    product_id: int
    brand_name: str
    product_name: str
    description: Optional[str]
    image_url: Optional[str]
    list_price: int
    low_price: Optional[int]
    high_price: Optional[int]
    responses: dict[str, int]
    share: float
    optimal_price: int
    elasticity: float
    revenue_forecast: int
    conclusion: str
    demand_elasticity: Optional[float] = None

    @property
    def total_responses(self) -> int:
        return sum(self.responses.values())


@dataclass
class RunAnalysis:
    """Full analysis output for a survey run."""

    run_id: int
    shelf_id: int
    total_responses: int
    by_respondent_type: dict[str, int]
    by_product: list[ProductAnalysis] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Export helpers
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "shelf_id": self.shelf_id,
            "total_responses": self.total_responses,
            "by_respondent_type": dict(self.by_respondent_type),
            "by_product": [
                {
                    "product_id": p.product_id,
                    "brand_name": p.brand_name,
                    "product_name": p.product_name,
                    "description": p.description,
                    "image_url": p.image_url,
                    "list_price": p.list_price,
                    "low_price": p.low_price,
                    "high_price": p.high_price,
                    "responses": dict(p.responses),
                    "share": p.share,
                    "optimal_price": p.optimal_price,
                    "elasticity": p.elasticity,
                    "revenue_forecast": p.revenue_forecast,
                    "demand_elasticity": p.demand_elasticity,
                    "conclusion": p.conclusion,
                }
                for p in self.by_product
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_csv(self) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf)
        writer.writerow([
            "product_id", "brand_name", "product_name", "responses", "share",
            "list_price", "optimal_price", "elasticity", "revenue_forecast",
            "demand_elasticity",
        ])
        for p in self.by_product:
            writer.writerow([
                p.product_id,
                p.brand_name,
                p.product_name,
                p.total_responses,
                f"{p.share:.4f}",
                p.list_price,
                p.optimal_price,
                f"{p.elasticity:.4f}",
                p.revenue_forecast,
                "" if p.demand_elasticity is None else f"{p.demand_elasticity:.4f}",
            ])
        return buf.getvalue()


# =====================================================================
# Synthetic run summary
# =====================================================================

def summarize_simulation(
    products: Sequence[ShelfProductInfo],
    chosen_prices: Mapping[int, Sequence[int]],
) -> list[SimulatedProduct]:
    """
    Summarize a synthetic run.

    Parameters
    ----------
    products : sequence of ShelfProductInfo
        The shelf products, in display order.
    chosen_prices : mapping product_id -> prices (cents)
        Every price at which the product was picked.

    Optimal price is the mean chosen price (list price if never chosen).
    Preference share is selections over all selections, or an equal split
    when nothing was chosen at all.
    """
    if not products:
        return []

    counts = np.array([len(chosen_prices.get(p.id, ())) for p in products], dtype=float)
    total = counts.sum()
    if total > 0:
        shares = counts / total
    else:
        shares = np.full(len(products), 1.0 / len(products))

    results: list[SimulatedProduct] = []
    for product, share, n in zip(products, shares, counts):
        prices = chosen_prices.get(product.id, ())
        mean_price = float(np.mean(prices)) if len(prices) else float(product.list_price)
        results.append(
            SimulatedProduct(
                product_id=product.id,
                brand=product.brand_name,
                name=product.product_name,
                description=product.description,
                image_url=product.image_url,
                optimal_price=mean_price / 100,
                preference_share=float(share),
                selections=int(n),
            )
        )
    return results


# =====================================================================
# Price metrics
# =====================================================================

def optimal_price(
    list_price: int,
    share: float,
    low_price: Optional[int] = None,
    high_price: Optional[int] = None,
) -> int:
    """
    Move the list price toward the high end for shares above 50% and toward
    the low end below it, proportionally to the distance from 50%.
    """
    low = low_price or round_half_up(list_price * 0.8)
    high = high_price or round_half_up(list_price * 1.2)
    if share > BASELINE_SHARE:
        return list_price + round_half_up((high - list_price) * (share - BASELINE_SHARE) * 2)
    return list_price + round_half_up((low - list_price) * (1 - share * 2))


def price_elasticity(list_price: int, optimal: int, share: float) -> float:
    """|%change in quantity / %change in price| against a 50% share baseline."""
    if list_price == 0:
        return 0.0
    price_change = (optimal - list_price) / list_price
    if price_change == 0:
        return 0.0
    quantity_change = (share - BASELINE_SHARE) / BASELINE_SHARE
    return abs(quantity_change / price_change)


def revenue_forecast(share: float, optimal: int, market_size: int = BASELINE_MARKET) -> int:
    """Monthly revenue in cents for *market_size* shoppers."""
    return round_half_up(market_size * share * optimal)


def build_conclusion(elasticity: float, share: float, list_price: int, optimal: int) -> str:
    parts: list[str] = []

    if elasticity < 1:
        parts.append("Price insensitive: Consider premium positioning.")
    elif elasticity > 2:
        parts.append("Highly price sensitive: Focus on cost optimization.")
    else:
        parts.append("Moderate price sensitivity: Balance value and premium positioning.")

    if share > 0.4:
        parts.append("Strong market performance with high preference share.")
    elif share < 0.2:
        parts.append("Limited market traction, consider product improvements or repositioning.")
    else:
        parts.append("Moderate market acceptance with room for growth.")

    if list_price:
        price_diff = (optimal - list_price) / list_price * 100
        if abs(price_diff) > PRICE_ADJUSTMENT_THRESHOLD:
            parts.append(f"Price adjustment of {price_diff:.1f}% recommended.")

    return " ".join(parts)


def demand_elasticity(price_counts: Mapping[int, int]) -> Optional[float]:
    """
    Slope of log(selections) on log(price).

    Returns None unless the product was chosen at two or more distinct
    positive prices.
    """
    points = [(p, c) for p, c in price_counts.items() if p > 0 and c > 0]
    if len(points) < 2:
        return None

    from scipy.stats import linregress

    prices = np.log(np.array([p for p, _ in points], dtype=float))
    counts = np.log(np.array([c for _, c in points], dtype=float))
    return float(linregress(prices, counts).slope)


# =====================================================================
# Run analysis
# =====================================================================

def analyze_run(
    run_id: int,
    shelf_id: int,
    products: Sequence[ShelfProductInfo],
    counts: Sequence[tuple[int, str, int]],
    price_counts: Optional[Mapping[int, Mapping[int, int]]] = None,
) -> RunAnalysis:
    """
    Analyze the responses of one survey run.

    Parameters
    ----------
    products : sequence of ShelfProductInfo
        Every product that appeared in the run's lineups.
    counts : sequence of (product_id, respondent_type, count)
        Grouped response counts.
    price_counts : mapping product_id -> {price: count}, optional
        Selections broken down by the price the product was shown at.
    """
    price_counts = price_counts or {}
    total = sum(c for _, _, c in counts)

    by_type: dict[str, int] = {}
    by_product_type: dict[int, dict[str, int]] = {}
    for product_id, respondent_type, count in counts:
        key = respondent_type or "UNKNOWN"
        by_type[key] = by_type.get(key, 0) + count
        per_product = by_product_type.setdefault(product_id, {})
        per_product[key] = per_product.get(key, 0) + count

    analyses: list[ProductAnalysis] = []
    for product in products:
        responses = by_product_type.get(product.id, {})
        n = sum(responses.values())
        share = n / total if total else 0.0
        opt = (
            optimal_price(product.list_price, share, product.low_price, product.high_price)
            if n
            else product.list_price
        )
        elasticity = price_elasticity(product.list_price, opt, share)
        analyses.append(
            ProductAnalysis(
                product_id=product.id,
                brand_name=product.brand_name,
                product_name=product.product_name,
                description=product.description,
                image_url=product.image_url,
                list_price=product.list_price,
                low_price=product.low_price,
                high_price=product.high_price,
                responses=responses,
                share=share,
                optimal_price=opt,
                elasticity=elasticity,
                revenue_forecast=revenue_forecast(share, opt),
                conclusion=build_conclusion(elasticity, share, product.list_price, opt),
                demand_elasticity=demand_elasticity(price_counts.get(product.id, {})),
            )
        )

    return RunAnalysis(
        run_id=run_id,
        shelf_id=shelf_id,
        total_responses=total,
        by_respondent_type=by_type,
        by_product=analyses,
    )


def format_dollars(cents: Optional[int]) -> str:
    dollars = cents_to_dollars(cents)
    return "-" if dollars is None else f"${dollars:,.2f}"
