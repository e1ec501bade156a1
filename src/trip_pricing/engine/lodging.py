"""
Hierarchical Lodging Allocator.

Resolves a lodging item's nested {room x season x occupancy} price table
into concrete per-stay allocations. Metadata shape:

    {
        "rooms": [
            {"id": "deluxe", "name": "Deluxe Banda",
             "pricing": {"high": {"double": {"perRoom": 2582}, "single": 1400}}}
        ],
        "seasons": {
            "high": {"name": "High Season",
                     "periods": [{"start": "12-15", "end": "12-31"},
                                 {"start": "01-01", "end": "02-28"}]}
        }
    }

A bare number as the occupancy value is a per-person price.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Sequence, Union

from .exceptions import AllocationError
from .models import Allocation, PriceBasis

# Guests one unit sleeps for each occupancy key; None means the unit has no fixed size
OCCUPANCY_GUESTS: dict[str, Optional[int]] = {
    'single': 1,
    'sharing': 2,
    'double': 2,
    'twin': 2,
    'twoSingles': 2,
    'triple': 3,
    'threePax': 3,
    'fourPax': 4,
    'family': 4,
    'suite': 2,
    'villa': None,
}

# Month-based fallback for metadata whose seasons declare no periods
MONTH_SEASON_FALLBACK = {
    6: 'peak', 7: 'peak', 8: 'peak', 9: 'peak', 12: 'peak', 1: 'peak', 2: 'peak',
    3: 'high', 4: 'high', 5: 'high',
    10: 'low', 11: 'low',
}

_BASIS_ORDER = (PriceBasis.PER_ROOM, PriceBasis.PER_PERSON, PriceBasis.PER_VILLA)


def _parse_month_day(value: str) -> tuple[int, int]:
    month, day = str(value).strip().split("-")[-2:]
    return int(month), int(day)


@dataclass(frozen=True)
class SeasonPeriod:
    """A MM-DD to MM-DD range. A start after the end wraps the year boundary."""
    start: tuple[int, int]
    end: tuple[int, int]

    @classmethod
    def from_dict(cls, data: dict) -> "SeasonPeriod":
        return cls(start=_parse_month_day(data["start"]), end=_parse_month_day(data["end"]))

    def contains(self, month: int, day: int) -> bool:
        point = (month, day)
        if self.start <= self.end:
            return self.start <= point <= self.end
        return point >= self.start or point <= self.end

    def overlaps_month(self, month: int) -> bool:
        first, last = (month, 1), (month, 31)
        if self.start <= self.end:
            return self.start <= last and self.end >= first
        return last >= self.start or first <= self.end


@dataclass(frozen=True)
class Season:
    season_id: str
    name: str
    periods: tuple[SeasonPeriod, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class RoomType:
    room_id: str
    name: str
    pricing: dict = field(default_factory=dict)
    description: str = ""


@dataclass(frozen=True)
class LodgingMetadata:
    """Parsed hierarchical price table of one lodging item."""
    rooms: tuple[RoomType, ...]
    seasons: tuple[Season, ...]

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "LodgingMetadata":
        data = data or {}
        rooms = tuple(
            RoomType(
                room_id=str(r["id"]),
                name=r.get("name", str(r["id"])),
                pricing=r.get("pricing") or {},
                description=r.get("description", ""),
            )
            for r in data.get("rooms", [])
        )
        seasons = tuple(
            Season(
                season_id=str(season_id),
                name=(info or {}).get("name", str(season_id)),
                periods=tuple(SeasonPeriod.from_dict(p) for p in (info or {}).get("periods", [])),
                description=(info or {}).get("description", ""),
            )
            for season_id, info in (data.get("seasons") or {}).items()
        )
        return cls(rooms=rooms, seasons=seasons)

    def room(self, room_id: str) -> Optional[RoomType]:
        for room in self.rooms:
            if room.room_id == room_id:
                return room
        return None

    def season(self, season_id: str) -> Optional[Season]:
        for season in self.seasons:
            if season.season_id == season_id:
                return season
        return None

    def occupancies(self, room_id: str, season_id: str) -> list[str]:
        """Occupancy keys priced for a room in a season."""
        room = self.room(room_id)
        if room is None:
            return []
        return list((room.pricing.get(season_id) or {}).keys())


def _coerce_when(when) -> Optional[tuple[Optional[int], Optional[int]]]:
    """Normalize a travel date/month into (month, day); day is None for month-only input."""
    if when is None:
        return None
    if isinstance(when, date):
        return when.month, when.day
    if isinstance(when, int):
        if not 1 <= when <= 12:
            raise ValueError(f"Month must be 1-12, got {when}")
        return when, None
    text = str(when).strip()
    if not text:
        return None
    if len(text) >= 10:
        parsed = date.fromisoformat(text[:10])
        return parsed.month, parsed.day
    return _parse_month_day(text)


def resolve_season(
    metadata: LodgingMetadata,
    when: Union[date, datetime, int, str, None] = None,
) -> Optional[str]:
    """
    Resolve the season id for a travel date or month.

    Every period of every season is checked on its own, so a season made of
    Dec 15-31 plus Jan 1-Feb 28 matches both December and January dates.
    Undated input, or a date no period covers, resolves to the first
    declared season. Returns None only when no seasons are declared.
    """
    if not metadata.seasons:
        return None
    first = metadata.seasons[0].season_id

    point = _coerce_when(when)
    if point is None:
        return first
    month, day = point

    for season in metadata.seasons:
        for period in season.periods:
            if day is None:
                if period.overlaps_month(month):
                    return season.season_id
            elif period.contains(month, day):
                return season.season_id

    if not any(season.periods for season in metadata.seasons):
        fallback = MONTH_SEASON_FALLBACK.get(month)
        if fallback and metadata.season(fallback):
            return fallback

    return first


def resolve_price(
    metadata: LodgingMetadata,
    room_id: str,
    season_id: str,
    occupancy_key: str,
) -> tuple[float, PriceBasis]:
    """Look up the unit price and price basis for a room/season/occupancy."""
    room = metadata.room(room_id)
    if room is None:
        raise AllocationError(f"Unknown room type '{room_id}'")

    price_data = (room.pricing.get(season_id) or {}).get(occupancy_key)
    if price_data is None:
        raise AllocationError(
            f"No price for room '{room_id}', season '{season_id}', occupancy '{occupancy_key}'"
        )

    if isinstance(price_data, (int, float)):
        return float(price_data), PriceBasis.PER_PERSON

    for basis in _BASIS_ORDER:
        price = price_data.get(basis.value)
        if price:
            return float(price), basis

    raise AllocationError(
        f"Price entry for room '{room_id}', season '{season_id}', "
        f"occupancy '{occupancy_key}' has no perRoom/perPerson/perVilla value"
    )


def build_allocation(
    metadata: LodgingMetadata,
    room_id: str,
    season_id: str,
    occupancy_key: str,
    quantity: int = 1,
    guests: Optional[int] = None,
) -> Allocation:
    """Create one allocation priced from the metadata table."""
    if quantity < 1:
        raise AllocationError(f"Quantity must be at least 1, got {quantity}")
    unit_price, basis = resolve_price(metadata, room_id, season_id, occupancy_key)
    if guests is None:
        per_unit = OCCUPANCY_GUESTS.get(occupancy_key) or 1
        guests = per_unit * quantity

    room = metadata.room(room_id)
    season = metadata.season(season_id)
    return Allocation(
        room_type_id=room_id,
        season_id=season_id,
        occupancy_key=occupancy_key,
        unit_price=unit_price,
        price_basis=basis,
        quantity=quantity,
        guests=guests,
        room_type_name=room.name if room else room_id,
        season_name=season.name if season else season_id,
    )


def add_allocation(
    existing: Sequence[Allocation],
    metadata: LodgingMetadata,
    room_id: str,
    season_id: str,
    occupancy_key: str,
    quantity: int = 1,
    guests: Optional[int] = None,
) -> tuple[Allocation, ...]:
    """
    Append a new allocation. Existing entries are never merged: two separate
    double rooms stay two entries so per-unit pricing displays correctly.
    """
    new = build_allocation(metadata, room_id, season_id, occupancy_key, quantity, guests)
    return tuple(existing) + (new,)


def remove_allocation(allocations: Sequence[Allocation], index: int) -> tuple[Allocation, ...]:
    """Remove one allocation by position."""
    if not 0 <= index < len(allocations):
        raise AllocationError(f"No allocation at index {index}")
    return tuple(a for i, a in enumerate(allocations) if i != index)


def allocated_guests(allocations: Sequence[Allocation]) -> int:
    return sum(a.guests for a in allocations)


def remaining_guests(allocations: Sequence[Allocation], travelers: int) -> int:
    """Travelers not yet covered by any allocation (display hint only)."""
    return max(travelers - allocated_guests(allocations), 0)


def required_rooms(travelers: int, occupancy_key: str) -> int:
    """Rooms of one occupancy needed to sleep every traveler."""
    per_unit = OCCUPANCY_GUESTS.get(occupancy_key)
    if not per_unit or travelers <= 0:
        return 1
    return math.ceil(travelers / per_unit)
