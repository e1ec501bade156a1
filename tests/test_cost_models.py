"""
Cost model evaluation tests.

The golden table in golden_cost_models.csv pins the total and the exact
explanation text for every model, including legacy aliases and an
unknown tag.
"""
import csv
import os

import pytest

from trip_pricing.engine.cost_models import (
    evaluate,
    evaluate_allocations,
    evaluate_item,
    format_amount,
    per_person_share,
)
from trip_pricing.engine.models import Allocation, CostModel, PriceBasis


def load_golden_cases():
    """Load golden cost model cases from CSV."""
    cases_path = os.path.join(os.path.dirname(__file__), 'golden_cost_models.csv')
    with open(cases_path, 'r', newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))


@pytest.mark.parametrize(
    "case",
    load_golden_cases(),
    ids=lambda c: f"{c['model']}-q{c['quantity']}-{'split' if c['split'] == 'true' else 'plain'}",
)
def test_golden_cost_model(case):
    """Totals and explanations match the golden table."""
    evaluation = evaluate(
        case['model'],
        float(case['base_price']),
        travelers=int(case['travelers']),
        days=int(case['days']),
        nights=int(case['nights']),
        split_across_travelers=case['split'] == 'true',
        quantity=int(case['quantity']),
    )

    assert evaluation.total == float(case['expected_total']), \
        f"Total mismatch for {case['model']}: expected {case['expected_total']}, got {evaluation.total}"
    assert evaluation.explanation == case['expected_explanation']


def test_per_person_explanation_contains_total():
    evaluation = evaluate(CostModel.PER_PERSON, 80, travelers=4, days=1, nights=0)
    assert evaluation.total == 320
    assert "320" in evaluation.explanation


def test_fixed_split_shows_per_person_share():
    evaluation = evaluate(CostModel.FIXED, 1200, travelers=6, days=1, nights=0, split_across_travelers=True)
    assert evaluation.total == 1200
    assert evaluation.per_person == 200


def test_fixed_without_split_has_no_per_person_display():
    evaluation = evaluate(CostModel.FIXED, 1200, travelers=6, days=1, nights=0)
    assert evaluation.per_person is None


def test_split_with_zero_travelers_is_zero():
    """Division guard: no travelers means a zero per-person display, not a crash."""
    evaluation = evaluate(CostModel.FIXED, 1200, travelers=0, days=1, nights=0, split_across_travelers=True)
    assert evaluation.total == 1200
    assert evaluation.per_person == 0


def test_unknown_model_never_raises():
    for tag in ("per_galaxy", "", None, "PER PERSON!!"):
        evaluation = evaluate(tag, 500, travelers=2, days=1, nights=0)
        assert evaluation.total == 0
        assert evaluation.explanation == "unknown pricing model"
        assert evaluation.known is False


def test_quantity_multiplies_traveler_scaled_models():
    evaluation = evaluate(CostModel.PER_NIGHT_PER_PERSON, 100, travelers=2, days=1, nights=1, quantity=4)
    assert evaluation.total == 800
    assert evaluation.explanation == "100 × 1 nights × 2 travelers = 200 × 4 units = 800"


@pytest.mark.parametrize("quantity", [0, -3, None, "two"])
def test_quantity_below_one_prices_a_single_unit(quantity):
    evaluation = evaluate(CostModel.PER_PERSON, 50, travelers=4, days=1, nights=0, quantity=quantity)
    assert evaluation.total == 200
    assert "units" not in evaluation.explanation


def test_hierarchical_lodging_sums_allocations():
    allocations = [
        Allocation("deluxe", "high", "double", 2582, PriceBasis.PER_ROOM, quantity=1, guests=2,
                   room_type_name="Deluxe Banda", season_name="High Season"),
        Allocation("deluxe", "low", "single", 1200, PriceBasis.PER_PERSON, quantity=1, guests=1),
    ]
    evaluation = evaluate(CostModel.HIERARCHICAL_LODGING, 0, travelers=3, days=1, nights=1,
                          allocations=allocations)

    assert evaluation.total == 3782
    assert "Deluxe Banda – High Season – double: 2582 × 1 rooms = 2582" in evaluation.explanation
    assert "1200 × 1 guests = 1200" in evaluation.explanation
    assert evaluation.explanation.endswith("(total 3782)")


def test_villa_allocation_priced_per_unit():
    villa = Allocation("villa", "high", "villa", 5200, PriceBasis.PER_VILLA, quantity=2, guests=8)
    evaluation = evaluate_allocations([villa])
    assert evaluation.total == 10400
    assert "2 villas" in evaluation.explanation


def test_no_allocations_prices_zero():
    evaluation = evaluate_allocations([])
    assert evaluation.total == 0
    assert evaluation.explanation == "no room allocations"


def test_evaluate_item_uses_item_split_flag(catalog):
    heli = catalog.find_by_id("heli-charter")
    evaluation = evaluate_item(heli, travelers=2, days=1, nights=1)
    assert evaluation.per_person == 600
    assert evaluation.explanation == "1200 (fixed) ÷ 2 travelers = 600 per person"


def test_format_amount():
    assert format_amount(320.0) == "320"
    assert format_amount(2.5) == "2.50"
    assert format_amount(0) == "0"


def test_per_person_share_guard():
    assert per_person_share(100, 4) == 25
    assert per_person_share(100, 0) == 0
