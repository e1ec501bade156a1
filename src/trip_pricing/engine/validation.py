"""
Trip validation - non-blocking checks over a draft.

Nothing here raises or mutates: every finding is returned as a
ValidationWarning for the caller to display.
"""
import math
from dataclasses import dataclass
from typing import Optional

from .catalog import Catalog
from .cost_models import effective_quantity
from .lodging import allocated_guests
from .models import CatalogItem, Category, CostModel, TripDraft

CAPACITY_CATEGORIES = frozenset({Category.VEHICLE, Category.AVIATION, Category.LOGISTICS})
CAPACITY_MODELS = frozenset({CostModel.FIXED, CostModel.PER_DAY_FIXED})
INSUFFICIENT_CAPACITY_MESSAGE = "The selected item capacity is insufficient for the number of travelers."


@dataclass(frozen=True)
class ValidationWarning:
    code: str
    severity: str  # error | warning | info
    message: str
    day_number: Optional[int] = None
    item_id: Optional[str] = None
    actions: tuple = ()

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
            "dayNumber": self.day_number,
            "itemId": self.item_id,
            "actions": list(self.actions),
        }


def validate_structure(draft: TripDraft) -> list[ValidationWarning]:
    """Day numbers must be unique, contiguous from 1, and not exceed the trip length."""
    warnings = []
    numbers = [d.day_number for d in draft.trip_days]

    if len(numbers) > draft.days:
        warnings.append(ValidationWarning(
            "too_many_days", "error",
            f"Trip has {len(numbers)} day entries but only {draft.days} days",
        ))
    if len(set(numbers)) != len(numbers):
        warnings.append(ValidationWarning("duplicate_days", "error", "Day numbers must be unique"))
    if sorted(set(numbers)) != list(range(1, len(set(numbers)) + 1)):
        warnings.append(ValidationWarning(
            "non_contiguous_days", "error",
            "Day numbers must be contiguous starting at 1",
        ))
    return warnings


def validate_nights(draft: TripDraft) -> ValidationWarning:
    """An N day trip has N - 1 nights; report how many lodging nights are covered."""
    expected = draft.nights
    covered = sum(1 for d in draft.trip_days if d.lodging and d.day_number < draft.days)
    if covered == expected:
        return ValidationWarning(
            "nights", "info",
            f"All {expected} nights have lodging ({draft.days} days trip)",
        )
    return ValidationWarning(
        "nights", "warning",
        f"Lodging set for {covered} of {expected} nights ({draft.days} days trip)",
    )


def seat_capacity(item: CatalogItem) -> Optional[float]:
    """Capacity of a fixed-price vehicle, aircraft or logistics item; None when unconstrained."""
    if item.category not in CAPACITY_CATEGORIES or item.model not in CAPACITY_MODELS:
        return None
    if not isinstance(item.capacity, (int, float)) or not math.isfinite(item.capacity):
        return None
    return item.capacity


def selected_item_ids(draft: TripDraft) -> list[str]:
    """Every catalog id the days reference, first appearance first."""
    seen = []
    for day in sorted(draft.trip_days, key=lambda d: d.day_number):
        ids = [day.arrival, day.logistics.vehicle, *day.logistics.internal_movements]
        ids += list(day.activities) + list(day.extras)
        for item_id in ids:
            if item_id and item_id not in seen:
                seen.append(item_id)
    return seen


def validate_capacity(draft: TripDraft, catalog: Catalog) -> list[ValidationWarning]:
    """
    Check fixed-price vehicles, aircraft and logistics can carry every traveler.

    A shortfall suggests booking ceil(travelers / capacity) units or swapping
    to a same-category, same-model item that seats everyone (smallest first).
    An item whose capacity is zero or negative is reported without suggestions.
    """
    travelers = draft.travelers
    if travelers < 1:
        return []

    warnings = []
    for item_id in selected_item_ids(draft):
        item = catalog.find_active(item_id)
        capacity = seat_capacity(item) if item is not None else None
        if capacity is None:
            continue

        if capacity <= 0:
            warnings.append(ValidationWarning(
                "capacity", "warning",
                f"{INSUFFICIENT_CAPACITY_MESSAGE} '{item.name}' has no usable capacity",
                item_id=item.id,
            ))
            continue

        quantity = effective_quantity(draft.item_quantities.get(item.id))
        if travelers <= capacity * quantity:
            continue

        alternatives = []
        for alt in catalog:
            if alt.id == item.id or not alt.active:
                continue
            if alt.category != item.category or alt.model != item.model:
                continue
            alt_capacity = seat_capacity(alt)
            if alt_capacity is not None and alt_capacity >= travelers:
                alternatives.append({"itemId": alt.id, "capacity": alt_capacity})
        alternatives.sort(key=lambda alt: alt["capacity"])

        warnings.append(ValidationWarning(
            "capacity", "warning",
            f"{INSUFFICIENT_CAPACITY_MESSAGE} '{item.name}' seats "
            f"{capacity * quantity:g} of {travelers} travelers",
            item_id=item.id,
            actions=(
                {
                    "type": "increase_quantity",
                    "itemId": item.id,
                    "requiredQuantity": math.ceil(travelers / capacity),
                },
                {"type": "replace_item", "itemId": item.id, "alternatives": alternatives},
            ),
        ))
    return warnings


def validate_trip(draft: TripDraft, catalog: Catalog) -> list[ValidationWarning]:
    """Run every check: day-ordered findings first, then trip-wide capacity findings."""
    warnings = validate_structure(draft)
    warnings.append(validate_nights(draft))

    for day in sorted(draft.trip_days, key=lambda d: d.day_number):
        n = day.day_number
        if not day.park_id:
            warnings.append(ValidationWarning("no_park", "info", f"Day {n} has no park selected", n))
        if not day.arrival and not day.arrival_not_applicable:
            warnings.append(ValidationWarning(
                "no_arrival", "warning",
                f"Day {n}: choose an arrival or mark it not applicable", n,
            ))
        if not day.activities and not day.activities_not_applicable:
            warnings.append(ValidationWarning(
                "no_activities", "warning",
                f"Day {n}: choose activities or mark them not applicable", n,
            ))

        referenced = [day.arrival, day.lodging, day.logistics.vehicle]
        referenced += list(day.activities) + list(day.extras) + list(day.logistics.internal_movements)
        referenced += [f.item_id for f in day.park_fees if not f.excluded]
        for item_id in referenced:
            if item_id and catalog.find_active(item_id) is None:
                warnings.append(ValidationWarning(
                    "missing_reference", "warning",
                    f"Day {n}: item '{item_id}' is missing or inactive and will not be priced", n,
                ))

        lodging = catalog.find_active(day.lodging)
        if lodging is not None and lodging.model == CostModel.HIERARCHICAL_LODGING:
            guests = allocated_guests(day.lodging_allocations)
            if guests < draft.travelers:
                warnings.append(ValidationWarning(
                    "room_allocation", "info",
                    f"Day {n}: rooms allocated for {guests} of {draft.travelers} travelers", n,
                ))

    warnings.extend(validate_capacity(draft, catalog))
    return warnings
