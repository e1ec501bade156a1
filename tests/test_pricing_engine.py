"""
Pricing aggregator tests.

The end-to-end scenario builds its draft through the reducer, exactly as
an editing session would, then prices it.
"""
import pytest

from trip_pricing.engine import PricingEngine, TripDraft, TripStore, calculate
from trip_pricing.engine.models import FreeHandLine, TripDay
from trip_pricing.engine.reducer import (
    AddFreeHandLine,
    AddLodgingAllocation,
    SelectArrival,
    SelectPark,
    SetActivities,
    SetExtras,
    SetLodging,
    SetParkFeeExcluded,
    SetQuantity,
    SetVehicle,
)


@pytest.fixture
def engine(catalog, settings):
    return PricingEngine(catalog=catalog, settings=settings)


def line_for(result, item_id):
    matches = [line for line in result.lines if line.item_id == item_id]
    assert matches, f"No line for {item_id}"
    return matches[0]


def test_end_to_end_helicopter_and_hierarchical_lodging(engine, catalog):
    store = TripStore(TripDraft.create(travelers=2, days=5), catalog)
    store.dispatch_all([
        SelectPark(1, "KIBALE"),
        SelectArrival(1, "heli-charter"),
        SetLodging(1, "lodge-clouds"),
        AddLodgingAllocation(1, "deluxe", "double", season_id="high", quantity=1, guests=2),
    ])

    landing = store.draft.get_day(1).find_park_fee("heli-landing")
    assert landing is not None and landing.excluded is False

    result = engine.calculate(store.draft)

    arrival = line_for(result, "heli-charter")
    assert arrival.calculated_total == 1200
    assert arrival.per_person == 600
    assert arrival.calculation_explanation == "1200 (fixed) ÷ 2 travelers = 600 per person"

    lodging = line_for(result, "lodge-clouds")
    assert lodging.calculated_total == 2582
    assert "Deluxe Banda" in lodging.calculation_explanation

    assert line_for(result, "heli-landing").calculated_total == 0

    assert result.grand_total == 3782
    assert result.per_person_total == 1891
    assert len(result.lines) == 3
    assert result.warnings == []


def test_grand_total_is_sum_of_lines(engine, catalog, draft):
    store = TripStore(draft, catalog)
    store.dispatch_all([
        SelectPark(1, "BWINDI"),
        SelectArrival(1, "fw-flight"),
        SetLodging(1, "lodge-safari"),
        SetActivities(1, ("gorilla-trek", "game-drive")),
        SetExtras(2, ("sundowner",)),
        SetVehicle(2, "road-transfer"),
        AddFreeHandLine(3, "Porter tips", 120),
    ])
    result = engine.calculate(store.draft)

    assert result.grand_total == pytest.approx(sum(line.calculated_total for line in result.lines))
    assert sum(result.subtotals.values()) == pytest.approx(result.grand_total)
    assert result.subtotals["Activities"] == (800 + 60) * 4
    assert result.subtotals["Park Fees"] == (40 + 10) * 4 + 50
    assert result.subtotals["Free Hand"] == 120


def test_per_person_with_zero_travelers_is_zero(engine):
    draft = TripDraft(
        travelers=0,
        days=1,
        trip_days=(TripDay(day_number=1, free_hand_lines=(FreeHandLine("Visa", 100),)),),
    )
    result = engine.calculate(draft)
    assert result.grand_total == 100
    assert result.per_person_total == 0


def test_missing_reference_is_skipped(engine, draft):
    day = TripDay(day_number=1, activities=("game-drive", "deleted-id"))
    result = engine.calculate(TripDraft(travelers=4, days=3, trip_days=(day,)))

    assert [line.item_id for line in result.lines] == ["game-drive"]
    assert result.grand_total == 240
    assert any("deleted-id" in w for w in result.warnings)


def test_inactive_item_is_skipped(engine):
    day = TripDay(day_number=1, activities=("old-walk", "game-drive"))
    result = engine.calculate(TripDraft(travelers=2, days=1, trip_days=(day,)))

    assert [line.item_id for line in result.lines] == ["game-drive"]
    assert any("inactive" in w for w in result.warnings)


def test_excluded_park_fee_is_not_priced(engine, catalog, draft):
    store = TripStore(draft, catalog)
    store.dispatch_all([SelectPark(1, "BWINDI"), SetParkFeeExcluded(1, "bwindi-community")])
    result = engine.calculate(store.draft)
    assert [line.item_id for line in result.lines] == ["bwindi-entry"]


def test_unknown_cost_model_prices_zero_with_warning(engine):
    day = TripDay(day_number=1, extras=("mystery",))
    result = engine.calculate(TripDraft(travelers=2, days=1, trip_days=(day,)))

    line = line_for(result, "mystery")
    assert line.calculated_total == 0
    assert line.calculation_explanation == "unknown pricing model"
    assert any("per_galaxy" in w for w in result.warnings)


def test_trip_prices_days_minus_one_nights(engine):
    """Nightly lodging on every day of a 3 day trip is charged for 2 nights."""
    days = tuple(TripDay(day_number=n, lodging="lodge-basic") for n in (1, 2, 3))
    result = engine.calculate(TripDraft(travelers=2, days=3, trip_days=days))

    assert [line.calculated_total for line in result.lines] == [300, 300, 0]
    assert result.grand_total == 150 * 2 * 2


def test_quantity_multiplies_fixed_price_items(engine, catalog, draft):
    store = TripStore(draft, catalog)
    store.dispatch_all([SelectArrival(1, "heli-charter"), SetQuantity("heli-charter", 2)])
    result = engine.calculate(store.draft)

    line = line_for(result, "heli-charter")
    assert line.quantity == 2
    assert line.calculated_total == 2400
    assert "× 2 units" in line.calculation_explanation


def test_quantity_multiplies_per_person_activities(engine, catalog, draft):
    store = TripStore(draft, catalog)
    store.dispatch_all([SetActivities(1, ("game-drive",)), SetQuantity("game-drive", 2)])
    result = engine.calculate(store.draft)

    line = line_for(result, "game-drive")
    assert line.quantity == 2
    assert line.calculated_total == 480
    assert line.calculation_explanation == "60 × 4 travelers = 240 × 2 units = 480"


def test_non_positive_quantity_prices_one_unit(engine):
    day = TripDay(day_number=1, activities=("game-drive",))
    draft = TripDraft(travelers=4, days=1, trip_days=(day,), item_quantities={"game-drive": -5})
    line = line_for(engine.calculate(draft), "game-drive")

    assert line.quantity == 1
    assert line.calculated_total == 240


def test_hierarchical_lodging_without_allocations_is_skipped(engine):
    day = TripDay(day_number=1, lodging="lodge-clouds")
    result = engine.calculate(TripDraft(travelers=2, days=2, trip_days=(day,)))

    assert result.lines == []
    assert any("no room allocations" in w for w in result.warnings)


def test_free_hand_lines_bypass_catalog(engine):
    day = TripDay(day_number=1, park_id="BWINDI", free_hand_lines=(FreeHandLine("Birthday cake", 45),))
    result = engine.calculate(TripDraft(travelers=3, days=1, trip_days=(day,)))

    line = result.lines[0]
    assert line.item_id is None
    assert line.category == "Free Hand"
    assert line.item_name == "Birthday cake"
    assert line.calculated_total == 45
    assert line.park_name == "Bwindi Impenetrable National Park"


def test_flat_tax(catalog, settings):
    day = TripDay(day_number=1, activities=("game-drive",))
    draft = TripDraft(travelers=5, days=1, trip_days=(day,))
    result = PricingEngine(catalog=catalog, settings=settings, tax_rate=0.18).calculate(draft)

    assert result.grand_total == 300
    assert result.tax_total == pytest.approx(54)
    assert result.total_with_tax == pytest.approx(354)


def test_calculate_is_pure(engine, catalog, draft):
    store = TripStore(draft, catalog)
    store.dispatch_all([SelectPark(1, "BWINDI"), SetActivities(1, ("gorilla-trek",))])
    before = store.draft.to_dict()

    first = engine.calculate(store.draft)
    second = engine.calculate(store.draft)

    assert store.draft.to_dict() == before
    assert first.to_dict() == second.to_dict()


def test_module_calculate(catalog, settings):
    day = TripDay(day_number=1, activities=("game-drive",))
    result = calculate(TripDraft(travelers=2, days=1, trip_days=(day,)), catalog, settings=settings)
    assert result.grand_total == 120


def test_traces_record_resolution_steps(engine):
    day = TripDay(day_number=1, activities=("game-drive",))
    result = engine.calculate(TripDraft(travelers=2, days=1, trip_days=(day,)))

    assert "Catalog Lookup" in result.lines[0].get_trace_text()
    assert "Grand Total" in result.get_trace_text()


def test_engine_without_catalog_file_fails_clearly(settings):
    with pytest.raises(FileNotFoundError):
        PricingEngine(settings=settings)
