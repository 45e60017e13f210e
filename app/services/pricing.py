"""Per-model pricing for AI token usage."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

# USD per 1K total tokens
MODEL_RATES_PER_1K: Dict[str, Decimal] = {
    "gpt-4o": Decimal("0.005"),
    "gpt-4o-mini": Decimal("0.0005"),
}

# Models missing from the table are billed at this rate instead of rejected
DEFAULT_RATE_PER_1K = Decimal("0.0005")

COST_PRECISION = Decimal("0.000001")


def rate_per_1k(model: str) -> Decimal:
    """Return the per-1K-token rate for a model, or the default rate."""
    return MODEL_RATES_PER_1K.get(model, DEFAULT_RATE_PER_1K)


def calculate_cost(model: str, total_tokens: int) -> Decimal:
    """Cost of `total_tokens` on `model`, rounded to six decimal places."""
    if total_tokens < 0:
        raise ValueError("total_tokens cannot be negative")

    cost = (Decimal(total_tokens) / Decimal("1000")) * rate_per_1k(model)
    return cost.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)
