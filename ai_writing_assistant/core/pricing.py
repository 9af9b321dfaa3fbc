"""
Model pricing and cost calculation.

Prices are USD per 1K tokens. The table is plain data and can be replaced
from configuration.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_UP
from typing import Dict

from .token_counter import TokenUsage


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    input_cost_per_1k: Decimal
    output_cost_per_1k: Decimal


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Raises:
            ValueError: If model is not supported
        """
        if model not in self.prices:
            raise ValueError(f"Unsupported model: {model}")
        return self.prices[model]

    def supports(self, model: str) -> bool:
        return model in self.prices

    def with_overrides(self, overrides: Dict[str, ModelPricing]) -> "PricingTable":
        prices = dict(self.prices)
        prices.update(overrides)
        return PricingTable(prices)


PRICING_TABLE = PricingTable({
    "gpt-3.5-turbo": ModelPricing(
        input_cost_per_1k=Decimal("0.0005"),
        output_cost_per_1k=Decimal("0.0015")
    ),
    "gpt-4o-mini": ModelPricing(
        input_cost_per_1k=Decimal("0.00015"),
        output_cost_per_1k=Decimal("0.0006")
    ),
    "gpt-4o": ModelPricing(
        input_cost_per_1k=Decimal("0.0025"),
        output_cost_per_1k=Decimal("0.01")
    ),
    "gpt-4": ModelPricing(
        input_cost_per_1k=Decimal("0.03"),
        output_cost_per_1k=Decimal("0.06")
    ),
})

COST_QUANTUM = Decimal("0.000001")


def calculate_cost(model: str, usage: TokenUsage, table: PricingTable = PRICING_TABLE) -> Decimal:
    """Calculate the cost of one invocation, rounded up to a millionth of a dollar.

    Raises:
        ValueError: If model is not supported
    """
    pricing = table.get_pricing(model)
    input_cost = (Decimal(usage.input_tokens) / Decimal("1000")) * pricing.input_cost_per_1k
    output_cost = (Decimal(usage.output_tokens) / Decimal("1000")) * pricing.output_cost_per_1k
    return (input_cost + output_cost).quantize(COST_QUANTUM, rounding=ROUND_UP)
