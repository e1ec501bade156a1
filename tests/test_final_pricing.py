import pytest

from trip_pricing.engine.final_pricing import (
    FinalPricingInput,
    calculate_final_pricing,
    final_pricing_for,
)
from trip_pricing.engine.models import PricingResult


def test_adjustments_compound_in_order():
    result = calculate_final_pricing(FinalPricingInput(
        base_total=10000,
        travelers=4,
        contingency_pct=10,
        agent_commission_pct=5,
        profit_pct=20,
    ))

    assert result.contingency_amount == pytest.approx(1000)
    assert result.subtotal_after_contingency == pytest.approx(11000)
    # Commission is taken on the contingency-adjusted subtotal, not the base
    assert result.agent_commission_amount == pytest.approx(550)
    assert result.subtotal_after_agent == pytest.approx(11550)
    assert result.profit_amount == pytest.approx(2310)
    assert result.final_total == pytest.approx(13860)
    assert result.final_per_person == pytest.approx(3465)


def test_no_adjustments_is_identity():
    result = calculate_final_pricing(FinalPricingInput(base_total=3782, travelers=2))
    assert result.final_total == 3782
    assert result.final_per_person == 1891


def test_zero_travelers_per_person_is_zero():
    result = calculate_final_pricing(FinalPricingInput(base_total=500, travelers=0, profit_pct=10))
    assert result.final_total == pytest.approx(550)
    assert result.final_per_person == 0


def test_final_pricing_for_uses_settings(settings):
    settings.contingency_pct = 10
    settings.profit_pct = 10
    pricing = PricingResult(travelers=2, grand_total=1000)

    final = final_pricing_for(pricing, settings)

    assert final.final_total == pytest.approx(1210)
    assert final.to_dict()["finalPerPerson"] == pytest.approx(605)
