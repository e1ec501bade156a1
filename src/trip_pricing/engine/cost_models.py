"""
Cost Model Evaluator - turns a catalog item's pricing rule into a total.

Pure functions, no state. An unrecognized cost model evaluates to zero
with an explanation instead of raising, so one malformed legacy item can
never abort a whole trip calculation.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .models import Allocation, CatalogItem, CostModel, PriceBasis

logger = logging.getLogger(__name__)

UNKNOWN_MODEL_EXPLANATION = "unknown pricing model"


@dataclass(frozen=True)
class CostEvaluation:
    """Result of evaluating one cost model."""
    total: float
    explanation: str
    per_person: Optional[float] = None
    known: bool = True


def format_amount(value: float) -> str:
    """Format a money amount: whole numbers without decimals, otherwise 2 places."""
    value = float(value)
    if value.is_integer():
        return f"{int(value)}"
    return f"{value:.2f}"


def per_person_share(total: float, travelers: int) -> float:
    """total / travelers, 0 when there are no travelers."""
    return total / travelers if travelers > 0 else 0.0


def effective_quantity(quantity) -> int:
    """Units to price: the booked quantity, or 1 when it is missing, zero or negative."""
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        return 1
    return quantity if quantity > 0 else 1


def evaluate(
    cost_model: Union[CostModel, str, None],
    base_price: float,
    travelers: int,
    days: int,
    nights: int,
    split_across_travelers: bool = False,
    allocations: Iterable[Allocation] = (),
    quantity: int = 1,
) -> CostEvaluation:
    """
    Evaluate a cost model for the given trip cardinalities.

    Args:
        cost_model: CostModel or raw tag (unknown tags price at zero)
        base_price: Catalog base price
        travelers, days, nights: Cardinalities to scale by
        split_across_travelers: Show a per-person share for fixed prices
        allocations: Room allocations (hierarchical lodging only)
        quantity: Units booked; values below 1 price as a single unit

    Returns:
        CostEvaluation with total and human-readable explanation
    """
    model = CostModel.parse(cost_model)
    p = format_amount(base_price)
    per_person = None

    if model is None:
        logger.debug("Unknown cost model %r priced at zero", cost_model)
        return CostEvaluation(total=0.0, explanation=UNKNOWN_MODEL_EXPLANATION, known=False)

    if model == CostModel.PER_PERSON:
        total = base_price * travelers
        explanation = f"{p} × {travelers} travelers = {format_amount(total)}"

    elif model == CostModel.FIXED:
        total = base_price
        explanation = f"{p} (fixed)"

    elif model == CostModel.PER_DAY_FIXED:
        total = base_price * days
        explanation = f"{p} × {days} days = {format_amount(total)}"

    elif model == CostModel.PER_PERSON_PER_DAY:
        total = base_price * travelers * days
        explanation = f"{p} × {travelers} travelers × {days} days = {format_amount(total)}"

    elif model == CostModel.PER_NIGHT_PER_PERSON:
        total = base_price * nights * travelers
        explanation = f"{p} × {nights} nights × {travelers} travelers = {format_amount(total)}"

    elif model == CostModel.PER_NIGHT_FIXED:
        total = base_price * nights
        explanation = f"{p} × {nights} nights = {format_amount(total)}"

    elif model == CostModel.HIERARCHICAL_LODGING:
        return evaluate_allocations(allocations)

    else:
        raise AssertionError(f"Unhandled cost model {model!r}")

    quantity = effective_quantity(quantity)
    if quantity > 1:
        total = total * quantity
        explanation = f"{explanation} × {quantity} units = {format_amount(total)}"

    if model == CostModel.FIXED and split_across_travelers:
        per_person = per_person_share(total, travelers)
        explanation = (
            f"{explanation} ÷ {travelers} travelers = "
            f"{format_amount(per_person)} per person"
        )

    return CostEvaluation(total=total, explanation=explanation, per_person=per_person)


def evaluate_allocations(allocations: Iterable[Allocation]) -> CostEvaluation:
    """Sum hierarchical lodging allocations with a per-allocation breakdown."""
    parts = []
    total = 0.0
    for alloc in allocations:
        label = " – ".join(
            x for x in (alloc.room_type_name or alloc.room_type_id,
                        alloc.season_name or alloc.season_id,
                        alloc.occupancy_key) if x
        )
        if alloc.price_basis in (PriceBasis.PER_ROOM, PriceBasis.PER_VILLA):
            unit = "villas" if alloc.price_basis == PriceBasis.PER_VILLA else "rooms"
            parts.append(
                f"{label}: {format_amount(alloc.unit_price)} × {alloc.quantity} {unit}"
                f" = {format_amount(alloc.total)}"
            )
        else:
            parts.append(
                f"{label}: {format_amount(alloc.unit_price)} × {alloc.guests} guests"
                f" = {format_amount(alloc.total)}"
            )
        total += alloc.total

    if not parts:
        return CostEvaluation(total=0.0, explanation="no room allocations")

    explanation = "; ".join(parts)
    if len(parts) > 1:
        explanation = f"{explanation} (total {format_amount(total)})"
    return CostEvaluation(total=total, explanation=explanation)


def evaluate_item(
    item: CatalogItem,
    travelers: int,
    days: int,
    nights: int,
    allocations: Iterable[Allocation] = (),
    quantity: int = 1,
) -> CostEvaluation:
    """Evaluate a catalog item's own cost model."""
    return evaluate(
        item.cost_model,
        item.base_price,
        travelers=travelers,
        days=days,
        nights=nights,
        split_across_travelers=item.split_across_travelers,
        allocations=allocations,
        quantity=quantity,
    )
