"""
Conjoint design generation for shelf surveys.

Responsibilities:
- Derive the tested price points of each product from its list price and
  optional low/high range (2 to 5 levels).
- Enumerate the full-factorial conjoint matrix across shelf products, with an
  optional seeded sample when the factorial is too large to simulate.
- Build the randomized choice cards shown to human respondents.
- Shelf-level sizing metrics (combinations, minimum sample size, duration).
"""

# Import modules
from __future__ import annotations

import itertools
import math
import random
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence

from shelfsim.errors import InvalidConfigurationError
from shelfsim.schemas import PricedOption, ProductCard, ShelfProductInfo

MIN_PRICE_LEVELS = 2
MAX_PRICE_LEVELS = 5
DEFAULT_PRICE_LEVELS = 3
SECONDS_PER_COMBINATION = 30
RESPONSES_PER_COMBINATION = 30
MAX_SAMPLE_SIZE = 1000
MAX_PRODUCTS_PER_CARD = 6
MIN_SURVEY_CARDS = 5

# ------------------------------------------------------------------
# Money helpers
# ------------------------------------------------------------------

def round_half_up(value: float) -> int:
    """Round halves toward +inf like JavaScript ``Math.round`` (``round`` rounds half to even)."""
    return math.floor(value + 0.5)


def dollars_to_cents(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return int(Decimal(str(value)).scaleb(2).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def cents_to_dollars(value: Optional[int]) -> Optional[float]:
    if value is None:
        return None
    return value / 100


def format_price(cents: int) -> str:
    return f"${cents / 100:.2f}"


# ------------------------------------------------------------------
# Price levels
# ------------------------------------------------------------------

def validate_price_levels(price_levels: Any) -> int:
    """Return *price_levels* as an int or raise if it is outside 2..5."""
    if (
        isinstance(price_levels, bool)
        or not isinstance(price_levels, int)
        or not MIN_PRICE_LEVELS <= price_levels <= MAX_PRICE_LEVELS
    ):
        raise InvalidConfigurationError(
            f"Price levels must be between {MIN_PRICE_LEVELS} and {MAX_PRICE_LEVELS}"
        )
    return price_levels


def generate_price_matrix(
    list_price: int,
    low_price: Optional[int] = None,
    high_price: Optional[int] = None,
    price_levels: int = DEFAULT_PRICE_LEVELS,
) -> list[int]:
    """
    Price points (cents) to test for one product, ascending.

    Parameters
    ----------
    list_price : int
        Regular shelf price.
    low_price, high_price : int | None
        Ends of the tested range.  Missing ends default to 80% / 120% of
        the list price.
    price_levels : int
        Number of points, 2 to 5.  Any other value falls back to 3.

    The interior points are midpoints between the list price and the range
    ends, so the list price itself is tested for odd level counts.
    """
    low = low_price if low_price else round_half_up(list_price * 0.8)
    high = high_price if high_price else round_half_up(list_price * 1.2)
    lower_mid = round_half_up(low + (list_price - low) / 2)
    upper_mid = round_half_up(list_price + (high - list_price) / 2)

    if price_levels == 2:
        return [low, high]
    if price_levels == 4:
        return [low, lower_mid, upper_mid, high]
    if price_levels == 5:
        return [low, lower_mid, list_price, upper_mid, high]
    return [low, list_price, high]


def variant_price_points(
    list_price: int,
    min_percent: float,
    max_percent: float,
    steps: int = 5,
) -> list[int]:
    """Evenly spaced prices between list*(1+min%) and list*(1+max%)."""
    if steps < 2:
        raise InvalidConfigurationError("At least two price steps are required")
    step = (max_percent - min_percent) / (steps - 1)
    return [
        round_half_up(list_price * (1 + (min_percent + step * i) / 100))
        for i in range(steps)
    ]


# ------------------------------------------------------------------
# Conjoint matrix
# ------------------------------------------------------------------

def priced_option(product: ShelfProductInfo, price: int) -> PricedOption:
    return PricedOption(
        product_id=product.id,
        brand_name=product.brand_name,
        product_name=product.product_name,
        description=product.description,
        benefits=product.benefits,
        image_url=product.image_url,
        price=price,
    )


def _decode_combination(index: int, radices: list[int]) -> list[int]:
    """Mixed-radix decode of a factorial row number (last position fastest)."""
    digits = [0] * len(radices)
    for pos in range(len(radices) - 1, -1, -1):
        index, digits[pos] = divmod(index, radices[pos])
    return digits


def generate_conjoint_matrix(
    products: Sequence[ShelfProductInfo],
    price_levels: int = DEFAULT_PRICE_LEVELS,
    *,
    max_tasks: Optional[int] = None,
    seed: Optional[int] = None,
) -> list[list[PricedOption]]:
    """
    Full-factorial choice cards: every product on every card, each at one of
    its tested prices.

    With *max_tasks* set and a factorial larger than it, a seeded random
    subset of rows is returned in factorial order.
    """
    if not products:
        return []

    price_lists = [
        generate_price_matrix(p.list_price, p.low_price, p.high_price, price_levels)
        for p in products
    ]
    radices = [len(prices) for prices in price_lists]
    total = math.prod(radices)

    if max_tasks and total > max_tasks:
        rng = random.Random(seed)
        rows = sorted(rng.sample(range(total), max_tasks))
        combos = (_decode_combination(row, radices) for row in rows)
        return [
            [priced_option(p, prices[d]) for p, prices, d in zip(products, price_lists, digits)]
            for digits in combos
        ]

    return [
        [priced_option(p, price) for p, price in zip(products, combo)]
        for combo in itertools.product(*price_lists)
    ]


def conjoint_configuration_metrics(price_levels: Any, n_products: int) -> tuple[int, int]:
    """
    Return ``(combination_count, estimated_duration_seconds)`` for a shelf.

    Raises ``InvalidConfigurationError`` for out-of-range price levels or an
    empty shelf.
    """
    levels = validate_price_levels(price_levels)
    if n_products < 1:
        raise InvalidConfigurationError(
            "Shelf must have at least one product to configure conjoint analysis"
        )
    count = levels ** n_products
    return count, count * SECONDS_PER_COMBINATION


# ------------------------------------------------------------------
# Shelf sizing
# ------------------------------------------------------------------

def calculate_total_combinations(products: Sequence[Any]) -> int:
    """Product over shelf products of their price level count.

    Products without explicit levels count 5 when a low/high range is set,
    otherwise 1.
    """
    total = 1
    for product in products:
        levels = product.price_levels or (5 if product.low_price and product.high_price else 1)
        total *= levels
    return total


def calculate_minimum_sample_size(total_combinations: int) -> int:
    return min(total_combinations * RESPONSES_PER_COMBINATION, MAX_SAMPLE_SIZE)


# ------------------------------------------------------------------
# Human survey cards
# ------------------------------------------------------------------

def generate_survey_cards(
    products: Sequence[ShelfProductInfo],
    price_levels: int = DEFAULT_PRICE_LEVELS,
    *,
    seed: Optional[int] = None,
) -> list[ProductCard]:
    """
    Randomized choice cards for a human respondent.

    At least 5 cards (more for large shelves); each card shows up to 6
    shuffled products, each at a randomly drawn tested price.
    """
    if not products:
        return []

    rng = random.Random(seed)
    options = [
        [priced_option(p, price) for price in generate_price_matrix(
            p.list_price, p.low_price, p.high_price, price_levels
        )]
        for p in products
    ]
    per_card = min(MAX_PRODUCTS_PER_CARD, len(products))
    n_cards = max(MIN_SURVEY_CARDS, math.ceil(len(products) / 2))

    cards: list[ProductCard] = []
    for i in range(n_cards):
        shown = rng.sample(options, per_card)
        cards.append(
            ProductCard(id=i + 1, options=[rng.choice(price_opts) for price_opts in shown])
        )
    return cards
