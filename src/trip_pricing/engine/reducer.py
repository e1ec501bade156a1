"""
Day-State Reducer - the single mutation path for a TripDraft.

Every user intent maps to one whole-draft transition:

    new_draft = reduce(draft, intent, catalog)

The transition applies the edit and re-derives dependent state (auto park
fees, auto landing fees, default quantities) in the same step, so no
caller ever observes a draft whose derived state lags its selections.

Derived state carries a provenance tag (Source.AUTO / Source.MANUAL):
    - auto entries may be added, retracted or dropped by the reducer
    - manual entries are never altered by derivation
    - an excluded fee entry is never flipped back to included by re-sync
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Union

from .catalog import Catalog
from .exceptions import InvalidIntentError
from .lodging import LodgingMetadata, add_allocation, remove_allocation, resolve_season
from .models import (
    CatalogItem,
    Category,
    CostModel,
    FeeKind,
    FreeHandLine,
    ParkFeeRef,
    Source,
    Tier,
    TripDay,
    TripDraft,
    unique_ids,
)
from .scoring import get_best_for_tier, transport_type

logger = logging.getLogger(__name__)

AIRCRAFT_TYPES = ('helicopter', 'fixed-wing')


# ============================================================================
# INTENTS
# ============================================================================

@dataclass(frozen=True)
class SelectPark:
    day_number: int
    park_id: Optional[str]


@dataclass(frozen=True)
class SelectArrival:
    day_number: int
    item_id: Optional[str]


@dataclass(frozen=True)
class ToggleArrivalNA:
    """Set (or flip, when value is None) the arrival not-applicable flag."""
    day_number: int
    value: Optional[bool] = None


@dataclass(frozen=True)
class ToggleActivitiesNA:
    """Set (or flip, when value is None) the activities not-applicable flag."""
    day_number: int
    value: Optional[bool] = None


@dataclass(frozen=True)
class SetLodging:
    day_number: int
    item_id: Optional[str]


@dataclass(frozen=True)
class SetActivities:
    day_number: int
    item_ids: tuple[str, ...]


@dataclass(frozen=True)
class SetExtras:
    day_number: int
    item_ids: tuple[str, ...]


@dataclass(frozen=True)
class SetVehicle:
    day_number: int
    item_id: Optional[str]


@dataclass(frozen=True)
class SetInternalMovements:
    day_number: int
    item_ids: tuple[str, ...]


@dataclass(frozen=True)
class SetLogisticsNotes:
    day_number: int
    notes: str


@dataclass(frozen=True)
class SetQuantity:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class SetTravelers:
    travelers: int


@dataclass(frozen=True)
class SetDays:
    days: int


@dataclass(frozen=True)
class SetTier:
    tier: Union[Tier, str]


@dataclass(frozen=True)
class AddFreeHandLine:
    day_number: int
    description: str = ""
    amount: float = 0.0


@dataclass(frozen=True)
class UpdateFreeHandLine:
    day_number: int
    index: int
    description: Optional[str] = None
    amount: Optional[float] = None


@dataclass(frozen=True)
class RemoveFreeHandLine:
    day_number: int
    index: int


@dataclass(frozen=True)
class AddLodgingAllocation:
    """Add a room allocation; season defaults to the one covering the travel date."""
    day_number: int
    room_type_id: str
    occupancy_key: str
    season_id: Optional[str] = None
    quantity: int = 1
    guests: Optional[int] = None


@dataclass(frozen=True)
class RemoveLodgingAllocation:
    day_number: int
    index: int


@dataclass(frozen=True)
class SetParkFeeExcluded:
    day_number: int
    item_id: str
    excluded: bool = True


@dataclass(frozen=True)
class AddManualParkFee:
    day_number: int
    item_id: str


@dataclass(frozen=True)
class RemoveParkFee:
    day_number: int
    item_id: str


@dataclass(frozen=True)
class SuggestLodging:
    """Fill the day's lodging with the best match for the trip tier."""
    day_number: int


# ============================================================================
# DERIVATION HELPERS
# ============================================================================

def default_quantity(item: CatalogItem, travelers: int) -> int:
    """Units needed to carry every traveler: ceil(travelers / capacity), else 1."""
    if item.capacity and item.capacity > 0:
        return max(math.ceil(travelers / item.capacity), 1)
    return 1


def is_landing_fee(item: CatalogItem) -> bool:
    return 'landing' in item.name.lower()


def aircraft_type(item: Optional[CatalogItem]) -> Optional[str]:
    """'helicopter' or 'fixed-wing' for aviation items, None for anything else."""
    if item is None or item.category != Category.AVIATION:
        return None
    kind = transport_type(item.name)
    return kind if kind in AIRCRAFT_TYPES else None


def find_landing_fee(catalog: Catalog, aircraft: str, park_id: Optional[str]) -> Optional[CatalogItem]:
    """The landing-fee item matching an aircraft type; park-scoped items win over global ones."""
    candidates = []
    for category in (Category.PARK_FEES, Category.AVIATION):
        for item in catalog.applicable_to_park(category, park_id):
            if is_landing_fee(item) and transport_type(item.name) == aircraft:
                candidates.append(item)
    candidates.sort(key=lambda i: i.park_id is None)
    return candidates[0] if candidates else None


def park_fee_items(catalog: Catalog, park_id: Optional[str]) -> list[CatalogItem]:
    """Active park-fee items scoped to a park, landing fees excluded."""
    if not park_id:
        return []
    return [
        item for item in catalog.find_by_category_and_park(Category.PARK_FEES, park_id)
        if item.active and not is_landing_fee(item)
    ]


def _add_fee(fees: tuple[ParkFeeRef, ...], item_id: str, kind: FeeKind) -> tuple[ParkFeeRef, ...]:
    # Existing entries (manual, auto, excluded) are kept verbatim
    if any(f.item_id == item_id for f in fees):
        return fees
    return fees + (ParkFeeRef(item_id=item_id, source=Source.AUTO, excluded=False, kind=kind),)


def _retract_auto(
    fees: tuple[ParkFeeRef, ...],
    kind: FeeKind,
    keep: Iterable[str] = (),
) -> tuple[ParkFeeRef, ...]:
    keep = set(keep)
    # Excluded entries record a user decision and survive re-sync
    return tuple(
        f for f in fees
        if f.excluded or not (f.source == Source.AUTO and f.kind == kind and f.item_id not in keep)
    )


def _sync_landing_fee(day: TripDay, catalog: Catalog) -> TripDay:
    """Make the auto landing fee match the day's current arrival."""
    arrival = catalog.find_active(day.arrival)
    aircraft = aircraft_type(arrival)
    landing = find_landing_fee(catalog, aircraft, day.park_id) if aircraft else None

    keep = [landing.id] if landing else []
    fees = _retract_auto(day.park_fees, FeeKind.LANDING, keep)
    if landing:
        fees = _add_fee(fees, landing.id, FeeKind.LANDING)
    return replace(day, park_fees=fees)


def _sync_park_fees(day: TripDay, catalog: Catalog) -> TripDay:
    """Add the park's auto fees and retract auto fees of any other park."""
    targets = [item.id for item in park_fee_items(catalog, day.park_id)]
    fees = _retract_auto(day.park_fees, FeeKind.PARK, targets)
    for item_id in targets:
        fees = _add_fee(fees, item_id, FeeKind.PARK)
    return replace(day, park_fees=fees)


def _seed_quantity(draft: TripDraft, item_id: str, quantity: int) -> TripDraft:
    """Record an auto quantity unless one (auto or manual) already exists."""
    if item_id in draft.item_quantities:
        return draft
    return replace(
        draft,
        item_quantities={**draft.item_quantities, item_id: quantity},
        item_quantity_source={**draft.item_quantity_source, item_id: Source.AUTO},
    )


def _seed_ids(draft: TripDraft, item_ids: Iterable[str]) -> TripDraft:
    for item_id in item_ids:
        draft = _seed_quantity(draft, item_id, 1)
    return draft


def _seed_capacity_item(draft: TripDraft, item_id: Optional[str], catalog: Catalog) -> TripDraft:
    item = catalog.find_by_id(item_id)
    if item is None:
        return draft
    return _seed_quantity(draft, item.id, default_quantity(item, draft.travelers))


def _check_index(sequence, index, what: str) -> int:
    index = _as_count(index, "Index")
    if not 0 <= index < len(sequence):
        raise InvalidIntentError(f"No {what} at index {index}")
    return index


def _as_count(value, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidIntentError(f"{what} must be a whole number, got {value!r}") from e


def _as_amount(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise InvalidIntentError(f"Amount must be a number, got {value!r}") from e


# ============================================================================
# TRANSITIONS
# ============================================================================

def _select_park(draft: TripDraft, intent: SelectPark, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    # Arrival options are park specific
    day = replace(day, park_id=intent.park_id or None, arrival=None)
    day = _sync_landing_fee(day, catalog)
    day = _sync_park_fees(day, catalog)
    return draft.with_day(day)


def _select_arrival(draft: TripDraft, intent: SelectArrival, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    item_id = intent.item_id or None
    day = replace(
        day,
        arrival=item_id,
        arrival_not_applicable=False if item_id else day.arrival_not_applicable,
    )
    day = _sync_landing_fee(day, catalog)
    draft = draft.with_day(day)
    return _seed_capacity_item(draft, item_id, catalog)


def _toggle_arrival_na(draft: TripDraft, intent: ToggleArrivalNA, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    value = (not day.arrival_not_applicable) if intent.value is None else bool(intent.value)
    if value:
        day = replace(day, arrival_not_applicable=True, arrival=None)
        day = _sync_landing_fee(day, catalog)
    else:
        day = replace(day, arrival_not_applicable=False)
    return draft.with_day(day)


def _toggle_activities_na(draft: TripDraft, intent: ToggleActivitiesNA, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    value = (not day.activities_not_applicable) if intent.value is None else bool(intent.value)
    if value:
        day = replace(day, activities_not_applicable=True, activities=())
    else:
        day = replace(day, activities_not_applicable=False)
    return draft.with_day(day)


def _set_lodging(draft: TripDraft, intent: SetLodging, catalog: Catalog) -> TripDraft:
    # Allocations are only changed by the allocation intents
    day = draft.get_day(intent.day_number)
    return draft.with_day(replace(day, lodging=intent.item_id or None))


def _set_activities(draft: TripDraft, intent: SetActivities, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    ids = unique_ids(intent.item_ids)
    day = replace(
        day,
        activities=ids,
        activities_not_applicable=False if ids else day.activities_not_applicable,
    )
    return _seed_ids(draft.with_day(day), ids)


def _set_extras(draft: TripDraft, intent: SetExtras, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    ids = unique_ids(intent.item_ids)
    return _seed_ids(draft.with_day(replace(day, extras=ids)), ids)


def _set_vehicle(draft: TripDraft, intent: SetVehicle, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    item_id = intent.item_id or None
    day = replace(day, logistics=replace(day.logistics, vehicle=item_id))
    return _seed_capacity_item(draft.with_day(day), item_id, catalog)


def _set_internal_movements(draft: TripDraft, intent: SetInternalMovements, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    ids = unique_ids(intent.item_ids)
    day = replace(day, logistics=replace(day.logistics, internal_movements=ids))
    return _seed_ids(draft.with_day(day), ids)


def _set_logistics_notes(draft: TripDraft, intent: SetLogisticsNotes, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    return draft.with_day(replace(day, logistics=replace(day.logistics, notes=intent.notes or "")))


def _set_quantity(draft: TripDraft, intent: SetQuantity, catalog: Catalog) -> TripDraft:
    quantity = _as_count(intent.quantity, "Quantity")
    if quantity < 0:
        raise InvalidIntentError(f"Quantity cannot be negative, got {quantity}")
    return replace(
        draft,
        item_quantities={**draft.item_quantities, intent.item_id: quantity},
        item_quantity_source={**draft.item_quantity_source, intent.item_id: Source.MANUAL},
    )


def _set_travelers(draft: TripDraft, intent: SetTravelers, catalog: Catalog) -> TripDraft:
    travelers = _as_count(intent.travelers, "Travelers")
    if travelers < 1:
        raise InvalidIntentError(f"Travelers must be at least 1, got {travelers}")
    if travelers >= draft.travelers:
        return replace(draft, travelers=travelers)

    # Fewer travelers: auto quantities are stale and get re-derived on next touch
    auto_ids = {
        item_id for item_id in draft.item_quantities
        if draft.item_quantity_source.get(item_id, Source.AUTO) == Source.AUTO
    }
    if auto_ids:
        logger.debug("Dropping %d auto quantities after traveler decrease", len(auto_ids))
    return replace(
        draft,
        travelers=travelers,
        item_quantities={k: v for k, v in draft.item_quantities.items() if k not in auto_ids},
        item_quantity_source={
            k: v for k, v in draft.item_quantity_source.items() if k not in auto_ids
        },
    )


def _set_days(draft: TripDraft, intent: SetDays, catalog: Catalog) -> TripDraft:
    days = _as_count(intent.days, "Days")
    if days < 1:
        raise InvalidIntentError(f"Days must be at least 1, got {days}")
    kept = tuple(d for d in draft.trip_days if d.day_number <= days)
    existing = {d.day_number for d in kept}
    added = tuple(TripDay(day_number=n) for n in range(1, days + 1) if n not in existing)
    trip_days = tuple(sorted(kept + added, key=lambda d: d.day_number))
    return replace(draft, days=days, trip_days=trip_days)


def _set_tier(draft: TripDraft, intent: SetTier, catalog: Catalog) -> TripDraft:
    try:
        tier = Tier.parse(intent.tier)
    except ValueError as e:
        raise InvalidIntentError(str(e)) from e
    return replace(draft, tier=tier)


def _add_free_hand_line(draft: TripDraft, intent: AddFreeHandLine, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    line = FreeHandLine(description=intent.description or "", amount=_as_amount(intent.amount or 0))
    return draft.with_day(replace(day, free_hand_lines=day.free_hand_lines + (line,)))


def _update_free_hand_line(draft: TripDraft, intent: UpdateFreeHandLine, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    index = _check_index(day.free_hand_lines, intent.index, "free-hand line")
    lines = list(day.free_hand_lines)
    line = lines[index]
    lines[index] = FreeHandLine(
        description=line.description if intent.description is None else intent.description,
        amount=line.amount if intent.amount is None else _as_amount(intent.amount),
    )
    return draft.with_day(replace(day, free_hand_lines=tuple(lines)))


def _remove_free_hand_line(draft: TripDraft, intent: RemoveFreeHandLine, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    index = _check_index(day.free_hand_lines, intent.index, "free-hand line")
    lines = tuple(l for i, l in enumerate(day.free_hand_lines) if i != index)
    return draft.with_day(replace(day, free_hand_lines=lines))


def _add_lodging_allocation(draft: TripDraft, intent: AddLodgingAllocation, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    item = catalog.find_by_id(day.lodging)
    if item is None or item.model != CostModel.HIERARCHICAL_LODGING:
        raise InvalidIntentError(
            f"Day {day.day_number} has no hierarchical lodging selected"
        )
    metadata = LodgingMetadata.from_dict(item.metadata)
    season_id = intent.season_id or resolve_season(metadata, draft.travel_date)
    allocations = add_allocation(
        day.lodging_allocations,
        metadata,
        intent.room_type_id,
        season_id,
        intent.occupancy_key,
        quantity=_as_count(intent.quantity, "Quantity"),
        guests=None if intent.guests is None else _as_count(intent.guests, "Guests"),
    )
    return draft.with_day(replace(day, lodging_allocations=allocations))


def _remove_lodging_allocation(draft: TripDraft, intent: RemoveLodgingAllocation, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    index = _check_index(day.lodging_allocations, intent.index, "lodging allocation")
    allocations = remove_allocation(day.lodging_allocations, index)
    return draft.with_day(replace(day, lodging_allocations=allocations))


def _set_park_fee_excluded(draft: TripDraft, intent: SetParkFeeExcluded, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    if day.find_park_fee(intent.item_id) is None:
        raise InvalidIntentError(f"Day {day.day_number} has no park fee '{intent.item_id}'")
    fees = tuple(
        replace(f, excluded=bool(intent.excluded)) if f.item_id == intent.item_id else f
        for f in day.park_fees
    )
    return draft.with_day(replace(day, park_fees=fees))


def _add_manual_park_fee(draft: TripDraft, intent: AddManualParkFee, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    if day.find_park_fee(intent.item_id) is not None:
        # Explicitly adding an existing fee re-includes it; provenance is kept
        fees = tuple(
            replace(f, excluded=False) if f.item_id == intent.item_id else f
            for f in day.park_fees
        )
    else:
        item = catalog.find_by_id(intent.item_id)
        kind = FeeKind.LANDING if item is not None and is_landing_fee(item) else FeeKind.PARK
        fees = day.park_fees + (
            ParkFeeRef(item_id=intent.item_id, source=Source.MANUAL, excluded=False, kind=kind),
        )
    return draft.with_day(replace(day, park_fees=fees))


def _remove_park_fee(draft: TripDraft, intent: RemoveParkFee, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    fees = tuple(f for f in day.park_fees if f.item_id != intent.item_id)
    return draft.with_day(replace(day, park_fees=fees))


def _suggest_lodging(draft: TripDraft, intent: SuggestLodging, catalog: Catalog) -> TripDraft:
    day = draft.get_day(intent.day_number)
    candidates = catalog.applicable_to_park(Category.LODGING, day.park_id)
    best = get_best_for_tier(candidates, draft.tier)
    if best is None:
        return draft
    return draft.with_day(replace(day, lodging=best.id))


_HANDLERS: dict[type, Callable[[TripDraft, object, Catalog], TripDraft]] = {
    SelectPark: _select_park,
    SelectArrival: _select_arrival,
    ToggleArrivalNA: _toggle_arrival_na,
    ToggleActivitiesNA: _toggle_activities_na,
    SetLodging: _set_lodging,
    SetActivities: _set_activities,
    SetExtras: _set_extras,
    SetVehicle: _set_vehicle,
    SetInternalMovements: _set_internal_movements,
    SetLogisticsNotes: _set_logistics_notes,
    SetQuantity: _set_quantity,
    SetTravelers: _set_travelers,
    SetDays: _set_days,
    SetTier: _set_tier,
    AddFreeHandLine: _add_free_hand_line,
    UpdateFreeHandLine: _update_free_hand_line,
    RemoveFreeHandLine: _remove_free_hand_line,
    AddLodgingAllocation: _add_lodging_allocation,
    RemoveLodgingAllocation: _remove_lodging_allocation,
    SetParkFeeExcluded: _set_park_fee_excluded,
    AddManualParkFee: _add_manual_park_fee,
    RemoveParkFee: _remove_park_fee,
    SuggestLodging: _suggest_lodging,
}

INTENT_TYPES: dict[str, type] = {cls.__name__: cls for cls in _HANDLERS}


def reduce(draft: TripDraft, intent: object, catalog: Catalog) -> TripDraft:
    """
    Apply one intent to a draft and return the new draft.

    Raises:
        UnknownDayError: The intent names a day that does not exist
        InvalidIntentError: The intent is structurally invalid
    """
    handler = _HANDLERS.get(type(intent))
    if handler is None:
        raise InvalidIntentError(f"Unknown intent type {type(intent).__name__}")
    return handler(draft, intent, catalog)


def intent_from_dict(data: dict) -> object:
    """Build an intent from {"type": "SelectPark", ...field values}."""
    payload = dict(data)
    name = payload.pop("type", None)
    cls = INTENT_TYPES.get(name)
    if cls is None:
        raise InvalidIntentError(f"Unknown intent type '{name}'")
    for key in ("item_ids",):
        if key in payload and payload[key] is not None:
            payload[key] = tuple(payload[key])
    try:
        return cls(**payload)
    except TypeError as e:
        raise InvalidIntentError(f"Bad fields for {name}: {e}") from e


class TripStore:
    """
    Holds the current draft of one editing session and applies intents.

    All mutation goes through dispatch(), which swaps in the new draft only
    after the whole transition succeeded.
    """

    def __init__(self, draft: TripDraft, catalog: Catalog):
        self._draft = draft
        self.catalog = catalog
        self.history: list[object] = []

    @property
    def draft(self) -> TripDraft:
        return self._draft

    def dispatch(self, intent: object) -> TripDraft:
        new_draft = reduce(self._draft, intent, self.catalog)
        self._draft = new_draft
        self.history.append(intent)
        logger.debug("Applied %s", type(intent).__name__)
        return new_draft

    def dispatch_all(self, intents: Iterable[object]) -> TripDraft:
        for intent in intents:
            self.dispatch(intent)
        return self._draft
