"""
Data models for the trip pricing engine.

Uses dataclasses for structured, type-safe data representation.
Draft state (TripDraft, TripDay and their parts) is frozen: every
mutation produces a new value through dataclasses.replace, so a reader
never sees a half-applied transition.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Optional, Union

from .exceptions import UnknownDayError


def _normalize_key(value: str) -> str:
    return "".join(ch for ch in str(value).lower() if ch.isalnum())


class Category(str, Enum):
    """Catalog item category."""
    AVIATION = "Aviation"
    LODGING = "Lodging"
    VEHICLE = "Vehicle"
    ACTIVITIES = "Activities"
    PARK_FEES = "Park Fees"
    PERMITS = "Permits"
    EXTRAS = "Extras"
    LOGISTICS = "Logistics"

    @classmethod
    def parse(cls, raw: Union["Category", str, None]) -> Optional["Category"]:
        """Parse a category name, tolerating spacing/case variants."""
        if raw is None:
            return None
        if isinstance(raw, cls):
            return raw
        key = _normalize_key(raw)
        for member in cls:
            if _normalize_key(member.value) == key or _normalize_key(member.name) == key:
                return member
        return None


class CostModel(str, Enum):
    """Closed set of pricing rules for a catalog item."""
    PER_PERSON = "per_person"
    FIXED = "fixed"
    PER_DAY_FIXED = "per_day_fixed"
    PER_PERSON_PER_DAY = "per_person_per_day"
    PER_NIGHT_PER_PERSON = "per_night_per_person"
    PER_NIGHT_FIXED = "per_night_fixed"
    HIERARCHICAL_LODGING = "hierarchical_lodging"

    @classmethod
    def parse(cls, raw: Union["CostModel", str, None]) -> Optional["CostModel"]:
        """Parse a cost model tag. Returns None for unknown tags."""
        if raw is None:
            return None
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return LEGACY_COST_MODELS.get(key)


# Tags written by older catalog imports
LEGACY_COST_MODELS = {
    "fixed_group": CostModel.FIXED,
    "fixed_per_day": CostModel.PER_DAY_FIXED,
    "per_night": CostModel.PER_NIGHT_FIXED,
    "hierarchical": CostModel.HIERARCHICAL_LODGING,
}


class Tier(str, Enum):
    """Budget classification of a trip."""
    BUDGET = "budget"
    STANDARD = "standard"
    LUXURY = "luxury"
    ULTRA_LUXURY = "ultra-luxury"

    @classmethod
    def parse(cls, raw: Union["Tier", str]) -> "Tier":
        if isinstance(raw, cls):
            return raw
        key = _normalize_key(raw)
        for member in cls:
            if _normalize_key(member.value) == key:
                return member
        raise ValueError(f"Unknown tier '{raw}'")


class Source(str, Enum):
    """Provenance of a derived value: system default or explicit user choice."""
    AUTO = "auto"
    MANUAL = "manual"


class FeeKind(str, Enum):
    """Which derivation produced a park-fee entry."""
    PARK = "park"
    LANDING = "landing"


class PriceBasis(str, Enum):
    PER_ROOM = "perRoom"
    PER_PERSON = "perPerson"
    PER_VILLA = "perVilla"


@dataclass(frozen=True)
class CatalogItem:
    """One priced SKU from the catalog snapshot."""
    id: str
    name: str
    category: Category
    base_price: float
    cost_model: Union[CostModel, str]
    park_id: Optional[str] = None
    capacity: Optional[int] = None
    active: bool = True
    split_across_travelers: bool = False
    notes: str = ""
    sku: Optional[str] = None
    metadata: Optional[dict] = None

    def __post_init__(self):
        # Unrecognized tags are kept verbatim; the evaluator prices them at zero
        parsed = CostModel.parse(self.cost_model)
        if parsed is not None:
            object.__setattr__(self, "cost_model", parsed)

    @property
    def applies_to(self) -> str:
        return "Park" if self.park_id else "Global"

    @property
    def model(self) -> Optional[CostModel]:
        return CostModel.parse(self.cost_model)

    @property
    def cost_model_name(self) -> str:
        if isinstance(self.cost_model, CostModel):
            return self.cost_model.value
        return str(self.cost_model)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "parkId": self.park_id,
            "appliesTo": self.applies_to,
            "basePrice": self.base_price,
            "costModel": self.cost_model_name,
            "capacity": self.capacity,
            "active": self.active,
            "splitAcrossTravelers": self.split_across_travelers,
            "notes": self.notes,
            "sku": self.sku,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class ParkFeeRef:
    """Whether a park-fee catalog item applies to a day."""
    item_id: str
    source: Source = Source.AUTO
    excluded: bool = False
    kind: FeeKind = FeeKind.PARK

    def to_dict(self) -> dict:
        return {
            "itemId": self.item_id,
            "source": self.source.value,
            "excluded": self.excluded,
            "kind": self.kind.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ParkFeeRef":
        return cls(
            item_id=data["itemId"],
            source=Source(data.get("source", "auto")),
            excluded=bool(data.get("excluded", False)),
            kind=FeeKind(data.get("kind", "park")),
        )


@dataclass(frozen=True)
class Allocation:
    """One concrete room/season/occupancy booking line."""
    room_type_id: str
    season_id: str
    occupancy_key: str
    unit_price: float
    price_basis: PriceBasis
    quantity: int = 1
    guests: int = 1
    room_type_name: str = ""
    season_name: str = ""

    @property
    def total(self) -> float:
        if self.price_basis in (PriceBasis.PER_ROOM, PriceBasis.PER_VILLA):
            return self.unit_price * self.quantity
        return self.unit_price * self.guests

    def to_dict(self) -> dict:
        return {
            "roomTypeId": self.room_type_id,
            "seasonId": self.season_id,
            "occupancyKey": self.occupancy_key,
            "unitPrice": self.unit_price,
            "priceBasis": self.price_basis.value,
            "quantity": self.quantity,
            "guests": self.guests,
            "roomTypeName": self.room_type_name,
            "seasonName": self.season_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Allocation":
        return cls(
            room_type_id=data["roomTypeId"],
            season_id=data["seasonId"],
            occupancy_key=data["occupancyKey"],
            unit_price=float(data["unitPrice"]),
            price_basis=PriceBasis(data["priceBasis"]),
            quantity=int(data.get("quantity", 1)),
            guests=int(data.get("guests", 1)),
            room_type_name=data.get("roomTypeName", ""),
            season_name=data.get("seasonName", ""),
        )


@dataclass(frozen=True)
class Logistics:
    vehicle: Optional[str] = None
    internal_movements: tuple[str, ...] = ()
    notes: str = ""


@dataclass(frozen=True)
class FreeHandLine:
    """A one-off priced line typed in by the user; bypasses the catalog."""
    description: str = ""
    amount: float = 0.0


@dataclass(frozen=True)
class TripDay:
    """One calendar day of the trip."""
    day_number: int
    park_id: Optional[str] = None
    arrival: Optional[str] = None
    arrival_not_applicable: bool = False
    lodging: Optional[str] = None
    lodging_allocations: tuple[Allocation, ...] = ()
    activities: tuple[str, ...] = ()
    activities_not_applicable: bool = False
    extras: tuple[str, ...] = ()
    park_fees: tuple[ParkFeeRef, ...] = ()
    logistics: Logistics = field(default_factory=Logistics)
    free_hand_lines: tuple[FreeHandLine, ...] = ()

    def find_park_fee(self, item_id: str) -> Optional[ParkFeeRef]:
        for fee in self.park_fees:
            if fee.item_id == item_id:
                return fee
        return None

    def to_dict(self) -> dict:
        return {
            "dayNumber": self.day_number,
            "parkId": self.park_id,
            "arrival": self.arrival,
            "arrivalNotApplicable": self.arrival_not_applicable,
            "lodging": self.lodging,
            "lodgingAllocations": [a.to_dict() for a in self.lodging_allocations],
            "activities": list(self.activities),
            "activitiesNotApplicable": self.activities_not_applicable,
            "extras": list(self.extras),
            "parkFees": [f.to_dict() for f in self.park_fees],
            "logistics": {
                "vehicle": self.logistics.vehicle,
                "internalMovements": list(self.logistics.internal_movements),
                "notes": self.logistics.notes,
            },
            "freeHandLines": [
                {"description": line.description, "amount": line.amount}
                for line in self.free_hand_lines
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TripDay":
        logistics = data.get("logistics") or {}
        return cls(
            day_number=int(data["dayNumber"]),
            park_id=data.get("parkId"),
            arrival=data.get("arrival"),
            arrival_not_applicable=bool(data.get("arrivalNotApplicable", False)),
            lodging=data.get("lodging"),
            lodging_allocations=tuple(
                Allocation.from_dict(a) for a in data.get("lodgingAllocations", [])
            ),
            activities=unique_ids(data.get("activities", [])),
            activities_not_applicable=bool(data.get("activitiesNotApplicable", False)),
            extras=unique_ids(data.get("extras", [])),
            park_fees=tuple(ParkFeeRef.from_dict(f) for f in data.get("parkFees", [])),
            logistics=Logistics(
                vehicle=logistics.get("vehicle"),
                internal_movements=unique_ids(logistics.get("internalMovements", [])),
                notes=logistics.get("notes", ""),
            ),
            free_hand_lines=tuple(
                FreeHandLine(
                    description=line.get("description", ""),
                    amount=float(line.get("amount", 0) or 0),
                )
                for line in data.get("freeHandLines", [])
            ),
        )


@dataclass(frozen=True)
class TripDraft:
    """The in-progress, editable itinerary being priced."""
    travelers: int
    days: int
    tier: Tier = Tier.STANDARD
    trip_days: tuple[TripDay, ...] = ()
    item_quantities: dict[str, int] = field(default_factory=dict)
    item_quantity_source: dict[str, Source] = field(default_factory=dict)
    name: str = ""
    travel_date: Optional[date] = None

    @classmethod
    def create(
        cls,
        travelers: int,
        days: int,
        tier: Tier = Tier.STANDARD,
        name: str = "",
        travel_date: Optional[date] = None,
    ) -> "TripDraft":
        """Create a draft with one empty TripDay per calendar day."""
        return cls(
            travelers=travelers,
            days=days,
            tier=tier,
            trip_days=tuple(TripDay(day_number=n) for n in range(1, days + 1)),
            name=name,
            travel_date=travel_date,
        )

    @property
    def nights(self) -> int:
        return max(self.days - 1, 0)

    def get_day(self, day_number: int) -> TripDay:
        for day in self.trip_days:
            if day.day_number == day_number:
                return day
        raise UnknownDayError(day_number)

    def with_day(self, day: TripDay) -> "TripDraft":
        """Return a copy of the draft with one day replaced."""
        self.get_day(day.day_number)
        return replace(
            self,
            trip_days=tuple(day if d.day_number == day.day_number else d for d in self.trip_days),
        )

    def quantity_for(self, item_id: str, default: int = 1) -> int:
        return self.item_quantities.get(item_id, default)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "travelers": self.travelers,
            "days": self.days,
            "tier": self.tier.value,
            "travelDate": self.travel_date.isoformat() if self.travel_date else None,
            "tripDays": [d.to_dict() for d in self.trip_days],
            "itemQuantities": dict(self.item_quantities),
            "itemQuantitySource": {k: v.value for k, v in self.item_quantity_source.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TripDraft":
        travel_date = data.get("travelDate")
        return cls(
            name=data.get("name", ""),
            travelers=int(data["travelers"]),
            days=int(data["days"]),
            tier=Tier.parse(data.get("tier", "standard")),
            travel_date=date.fromisoformat(travel_date) if travel_date else None,
            trip_days=tuple(TripDay.from_dict(d) for d in data.get("tripDays", [])),
            item_quantities={k: int(v) for k, v in (data.get("itemQuantities") or {}).items()},
            item_quantity_source={
                k: Source(v) for k, v in (data.get("itemQuantitySource") or {}).items()
            },
        )


def unique_ids(ids) -> tuple[str, ...]:
    """Deduplicate ids while keeping first-seen order."""
    return tuple(dict.fromkeys(i for i in ids if i))


@dataclass
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class PricingLineItem:
    """A single priced line in a trip breakdown."""
    day_number: Optional[int]
    park_name: str
    category: str
    item_id: Optional[str]
    item_name: str
    cost_model: str
    base_price: float
    calculation_explanation: str
    calculated_total: float
    quantity: int = 1
    per_person: float = 0.0
    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this line item."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "dayNumber": self.day_number,
            "parkName": self.park_name,
            "category": self.category,
            "itemId": self.item_id,
            "itemName": self.item_name,
            "costModel": self.cost_model,
            "basePrice": self.base_price,
            "quantity": self.quantity,
            "calculationExplanation": self.calculation_explanation,
            "calculatedTotal": self.calculated_total,
            "perPerson": self.per_person,
        }


@dataclass
class PricingResult:
    """Complete result of a trip pricing calculation."""
    travelers: int
    lines: list[PricingLineItem] = field(default_factory=list)
    grand_total: float = 0.0
    per_person_total: float = 0.0
    subtotals: dict[str, float] = field(default_factory=dict)
    tax_rate: float = 0.0
    tax_total: float = 0.0
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def total_with_tax(self) -> float:
        return self.grand_total + self.tax_total

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the result-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a result-level warning."""
        if warning not in self.warnings:
            self.warnings.append(warning)

    def get_trace_text(self) -> str:
        """Get human-readable result trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "grandTotal": self.grand_total,
            "perPersonTotal": self.per_person_total,
            "subtotals": dict(self.subtotals),
            "taxRate": self.tax_rate,
            "taxTotal": self.tax_total,
            "totalWithTax": self.total_with_tax,
            "warnings": list(self.warnings),
        }
