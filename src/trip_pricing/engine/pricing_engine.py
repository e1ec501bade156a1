"""
Pricing Engine - walks a TripDraft day by day and prices every populated slot.

Each line carries:
- The cost model explanation ("80 × 4 travelers = 320")
- An execution trace for every resolution step
- Warnings for skipped references and unknown cost models

The engine is read-only over its inputs: calculate() may be called
speculatively on any draft without persisting anything.
"""
import logging
from pathlib import Path
from typing import Iterator, Optional, Union

from ..config.settings import get_settings, Settings
from .catalog import Catalog
from .cost_models import (
    effective_quantity,
    evaluate,
    evaluate_allocations,
    evaluate_item,
    format_amount,
    per_person_share,
)
from .models import (
    CostModel,
    PricingLineItem,
    PricingResult,
    TripDay,
    TripDraft,
)
from .parks import park_label

logger = logging.getLogger(__name__)

FREE_HAND_CATEGORY = "Free Hand"


class PricingEngine:
    """
    Core pricing engine that turns a TripDraft into a PricingResult.

    Slot order per day:
    1. Arrival
    2. Lodging (room allocations for hierarchical lodging)
    3. Activities
    4. Extras
    5. Park fees that are not excluded
    6. Logistics vehicle, then internal movements
    7. Free-hand lines (bypass the catalog)

    Every catalog slot is evaluated with the day's own cardinalities:
    days = 1 and nights = 1 unless it is the final trip day, so a full trip
    prices days - 1 nights.
    """

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        settings: Optional[Settings] = None,
        tax_rate: Optional[float] = None,
    ):
        """Initialize engine with a catalog snapshot and tax rate."""
        self.settings = settings or get_settings()

        if catalog is None:
            catalog = self._load_catalog(self.settings.catalog_path)
        self.catalog = catalog

        self.tax_rate = self.settings.tax_rate if tax_rate is None else tax_rate

    @staticmethod
    def _load_catalog(path: Path) -> Catalog:
        from ..data.build_catalog import load_catalog

        if not path.exists():
            raise FileNotFoundError(
                f"Catalog snapshot not found at {path}. "
                "Set TRIP_PRICING_CATALOG or execute build_catalog.py first."
            )
        return load_catalog(path)

    def reload_catalog(self, catalog: Optional[Catalog] = None):
        """Swap in a new catalog snapshot (or re-read the configured one)."""
        self.catalog = catalog if catalog is not None else self._load_catalog(self.settings.catalog_path)

    def calculate(self, draft: TripDraft) -> PricingResult:
        """
        Price a trip draft with full traceability.

        Args:
            draft: TripDraft to price (never modified)

        Returns:
            PricingResult with lines, subtotals, totals, trace and warnings
        """
        result = PricingResult(travelers=draft.travelers, tax_rate=self.tax_rate)
        result.add_trace(
            "Trip",
            f"{draft.travelers} travelers, {draft.days} days, {draft.nights} nights",
            draft.tier.value,
        )

        for day in sorted(draft.trip_days, key=lambda d: d.day_number):
            nights = 1 if day.day_number < draft.days else 0
            for line in self._calculate_day(draft, day, nights, result):
                result.lines.append(line)
                result.grand_total += line.calculated_total
                result.subtotals[line.category] = (
                    result.subtotals.get(line.category, 0.0) + line.calculated_total
                )

        result.per_person_total = per_person_share(result.grand_total, draft.travelers)
        result.tax_total = result.grand_total * self.tax_rate

        result.add_trace("Lines", f"{len(result.lines)} priced lines")
        result.add_trace("Grand Total", "Sum of all line totals", format_amount(result.grand_total))
        result.add_trace(
            "Per Person",
            f"Grand total ÷ {draft.travelers} travelers",
            format_amount(result.per_person_total),
        )
        if self.tax_rate:
            result.add_trace(
                "Tax",
                f"Grand total × {self.tax_rate}",
                format_amount(result.tax_total),
            )
        return result

    def _calculate_day(
        self,
        draft: TripDraft,
        day: TripDay,
        nights: int,
        result: PricingResult,
    ) -> Iterator[PricingLineItem]:
        """Yield the priced lines of one day in slot order."""
        slots: list[tuple[str, Optional[str]]] = [("arrival", day.arrival)]
        slots.append(("lodging", day.lodging))
        slots += [("activity", item_id) for item_id in day.activities]
        slots += [("extra", item_id) for item_id in day.extras]
        slots += [("park fee", fee.item_id) for fee in day.park_fees if not fee.excluded]
        slots.append(("vehicle", day.logistics.vehicle))
        slots += [("internal movement", item_id) for item_id in day.logistics.internal_movements]

        for slot, item_id in slots:
            if not item_id:
                continue
            line = self._calculate_line(draft, day, slot, item_id, nights, result)
            if line:
                yield line

        for line in day.free_hand_lines:
            yield self._free_hand_line(draft, day, line.description, line.amount)

    def _calculate_line(
        self,
        draft: TripDraft,
        day: TripDay,
        slot: str,
        item_id: str,
        nights: int,
        result: PricingResult,
    ) -> Optional[PricingLineItem]:
        """Calculate a single catalog line with trace. None when the line is skipped."""
        item = self.catalog.find_by_id(item_id)
        if item is None:
            self._skip(result, f"Day {day.day_number}: {slot} item '{item_id}' not found in catalog, skipped")
            return None
        if not item.active:
            self._skip(result, f"Day {day.day_number}: {slot} item '{item.name}' is inactive, skipped")
            return None

        quantity = effective_quantity(draft.quantity_for(item.id))
        line = PricingLineItem(
            day_number=day.day_number,
            park_name=park_label(day.park_id),
            category=item.category.value,
            item_id=item.id,
            item_name=item.name,
            cost_model=item.cost_model_name,
            base_price=item.base_price,
            calculation_explanation="",
            calculated_total=0.0,
            quantity=quantity,
        )
        line.add_trace("Catalog Lookup", f"Found {slot} item in catalog", item.id)

        if item.model == CostModel.HIERARCHICAL_LODGING:
            if not day.lodging_allocations:
                self._skip(
                    result,
                    f"Day {day.day_number}: lodging '{item.name}' has no room allocations, skipped",
                )
                return None
            evaluation = evaluate_allocations(day.lodging_allocations)
            line.add_trace(
                "Allocations",
                f"{len(day.lodging_allocations)} room allocations",
                format_amount(evaluation.total),
            )
        else:
            evaluation = evaluate_item(
                item,
                travelers=draft.travelers,
                days=1,
                nights=nights,
                quantity=quantity,
            )
            line.add_trace(
                "Cost Model",
                f"{item.cost_model_name} for {draft.travelers} travelers, 1 day, {nights} nights",
            )

        if not evaluation.known:
            result.add_warning(
                f"Day {day.day_number}: '{item.name}' has unknown cost model "
                f"'{item.cost_model_name}', priced at 0"
            )

        line.calculation_explanation = evaluation.explanation
        line.calculated_total = evaluation.total
        line.per_person = (
            evaluation.per_person
            if evaluation.per_person is not None
            else per_person_share(evaluation.total, draft.travelers)
        )
        line.add_trace("Line Total", evaluation.explanation, format_amount(line.calculated_total))
        return line

    def _free_hand_line(self, draft: TripDraft, day: TripDay, description: str, amount: float) -> PricingLineItem:
        amount = float(amount or 0)
        explanation = evaluate(CostModel.FIXED, amount, draft.travelers, 1, 0).explanation
        line = PricingLineItem(
            day_number=day.day_number,
            park_name=park_label(day.park_id),
            category=FREE_HAND_CATEGORY,
            item_id=None,
            item_name=description or "Free-hand line",
            cost_model=CostModel.FIXED.value,
            base_price=amount,
            calculation_explanation=explanation,
            calculated_total=amount,
            per_person=per_person_share(amount, draft.travelers),
        )
        line.add_trace("Free Hand", "Literal amount, no catalog lookup", format_amount(amount))
        return line

    @staticmethod
    def _skip(result: PricingResult, message: str):
        logger.debug(message)
        result.add_warning(message)


def calculate(
    draft: TripDraft,
    catalog: Catalog,
    tax_rate: Union[float, None] = None,
    settings: Optional[Settings] = None,
) -> PricingResult:
    """Price a draft against a catalog snapshot."""
    return PricingEngine(catalog=catalog, settings=settings, tax_rate=tax_rate).calculate(draft)
