"""
Unit tests for pricing calculations.

Tests cost accuracy, rounding behavior, and error handling.
"""

import pytest
from decimal import Decimal

from ai_writing_assistant.core.pricing import (
    PRICING_TABLE,
    ModelPricing,
    calculate_cost,
)
from ai_writing_assistant.core.token_counter import TokenUsage


class TestTokenUsage:
    """Test TokenUsage dataclass."""

    def test_total_tokens_calculation(self):
        """Verify total_tokens is computed correctly."""
        usage = TokenUsage(input_tokens=100, output_tokens=50)
        assert usage.total_tokens == 150

    def test_zero_tokens(self):
        usage = TokenUsage(input_tokens=0, output_tokens=0)
        assert usage.total_tokens == 0


class TestPricingTable:
    """Test pricing table functionality."""

    def test_get_supported_model(self):
        pricing = PRICING_TABLE.get_pricing("gpt-4")
        assert pricing.input_cost_per_1k == Decimal("0.03")
        assert pricing.output_cost_per_1k == Decimal("0.06")

    def test_unsupported_model_raises_error(self):
        with pytest.raises(ValueError, match="Unsupported model: unknown-model"):
            PRICING_TABLE.get_pricing("unknown-model")

    def test_overrides_add_models_without_mutating_default(self):
        table = PRICING_TABLE.with_overrides({
            "deepseek-chat": ModelPricing(Decimal("0.00027"), Decimal("0.0011")),
        })
        assert table.supports("deepseek-chat")
        assert table.supports("gpt-4")
        assert not PRICING_TABLE.supports("deepseek-chat")


class TestCostCalculation:
    """Test cost calculation accuracy and rounding."""

    def test_exact_cost_gpt4(self):
        usage = TokenUsage(input_tokens=1000, output_tokens=500)
        # 1000/1000 * 0.03 + 500/1000 * 0.06 = 0.06
        assert calculate_cost("gpt-4", usage) == Decimal("0.06")

    def test_exact_cost_gpt35_turbo(self):
        usage = TokenUsage(input_tokens=2000, output_tokens=1000)
        # 2 * 0.0005 + 1 * 0.0015 = 0.0025
        assert calculate_cost("gpt-3.5-turbo", usage) == Decimal("0.0025")

    def test_rounding_up_behavior(self):
        """Costs round UP to the nearest millionth of a dollar."""
        usage = TokenUsage(input_tokens=1, output_tokens=0)
        # 1/1000 * 0.00015 = 0.00000015 -> 0.000001
        assert calculate_cost("gpt-4o-mini", usage) == Decimal("0.000001")

    def test_zero_tokens_cost(self):
        usage = TokenUsage(input_tokens=0, output_tokens=0)
        assert calculate_cost("gpt-4", usage) == Decimal("0")

    def test_custom_table(self):
        table = PRICING_TABLE.with_overrides({
            "house-model": ModelPricing(Decimal("1"), Decimal("2")),
        })
        usage = TokenUsage(input_tokens=500, output_tokens=500)
        assert calculate_cost("house-model", usage, table) == Decimal("1.5")

    def test_unknown_model_error(self):
        usage = TokenUsage(input_tokens=100, output_tokens=50)
        with pytest.raises(ValueError, match="Unsupported model: unknown-model"):
            calculate_cost("unknown-model", usage)
