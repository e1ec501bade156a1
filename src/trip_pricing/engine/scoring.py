"""
Tier Recommendation Scorer - ranks catalog items against a trip tier.

Price-band and keyword heuristics used for one-click suggestions.
Nothing here mutates its inputs or raises on empty input.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import CatalogItem, Category, Tier


@dataclass(frozen=True)
class TierTemplate:
    """Preferences for one budget tier."""
    lodging_price_range: tuple[float, float]
    transport_types: tuple[str, ...]
    activity_price_range: tuple[float, float]
    include_extras: bool
    preferred_lodging_keywords: tuple[str, ...]
    excluded_lodging_keywords: tuple[str, ...]


TIER_TEMPLATES: dict[Tier, TierTemplate] = {
    Tier.BUDGET: TierTemplate(
        lodging_price_range=(0, 300),
        transport_types=('vehicle',),
        activity_price_range=(0, 50),
        include_extras=False,
        preferred_lodging_keywords=('budget', 'basic', 'standard'),
        excluded_lodging_keywords=('luxury', 'premium', 'exclusive', 'sanctuary'),
    ),
    Tier.STANDARD: TierTemplate(
        lodging_price_range=(200, 800),
        transport_types=('vehicle', 'fixed-wing'),
        activity_price_range=(0, 150),
        include_extras=True,
        preferred_lodging_keywords=('lodge', 'camp', 'safari'),
        excluded_lodging_keywords=('ultra', 'exclusive'),
    ),
    Tier.LUXURY: TierTemplate(
        lodging_price_range=(500, 2000),
        transport_types=('fixed-wing', 'helicopter'),
        activity_price_range=(0, 500),
        include_extras=True,
        preferred_lodging_keywords=('luxury', 'premium', 'clouds', 'sanctuary'),
        excluded_lodging_keywords=('budget', 'basic'),
    ),
    Tier.ULTRA_LUXURY: TierTemplate(
        lodging_price_range=(1500, 10000),
        transport_types=('helicopter',),
        activity_price_range=(0, 2000),
        include_extras=True,
        preferred_lodging_keywords=('ultra', 'exclusive', 'sanctuary', 'premium', 'luxury'),
        excluded_lodging_keywords=('budget', 'basic', 'standard'),
    ),
}

TIER_INFO = {
    Tier.BUDGET: ('Budget', 'Essential experiences with comfortable accommodations'),
    Tier.STANDARD: ('Standard', 'Balanced mix of comfort and adventure'),
    Tier.LUXURY: ('Luxury', 'Premium lodges and exclusive experiences'),
    Tier.ULTRA_LUXURY: ('Ultra Luxury', 'The finest accommodations and private experiences'),
}

PREMIUM_ACTIVITY_KEYWORDS = ('gorilla', 'lion tracking', 'exclusive')
CLASSIC_ACTIVITY_KEYWORDS = ('game drive', 'boat')
LUXURY_TIERS = (Tier.LUXURY, Tier.ULTRA_LUXURY)


def _text(item: CatalogItem) -> str:
    return f"{item.name.lower()} {(item.notes or '').lower()}"


def score_lodging(item: CatalogItem, tier: Tier) -> float:
    """Price-band fit (0-50, peak at band midpoint) plus keyword bonuses and penalties."""
    prefs = TIER_TEMPLATES[tier]
    low, high = prefs.lodging_price_range
    price = item.base_price
    score = 0.0

    if low <= price <= high:
        mid = (low + high) / 2
        max_distance = (high - low) / 2
        score += 50 * (1 - abs(price - mid) / max_distance) if max_distance else 50
    elif price < low:
        score -= 20
    else:
        score -= 30 if tier == Tier.BUDGET else 10

    text = _text(item)
    for keyword in prefs.preferred_lodging_keywords:
        if keyword in text:
            score += 10
    for keyword in prefs.excluded_lodging_keywords:
        if keyword in text:
            score -= 15

    return score


def score_activity(item: CatalogItem, tier: Tier) -> float:
    """Price-direction bonus by tier plus premium/classic activity adjustments."""
    price = item.base_price
    name = item.name.lower()

    if tier in LUXURY_TIERS:
        score = price / 10
    elif tier == Tier.BUDGET:
        score = (100 - price) / 10
    else:
        score = 50.0

    if any(k in name for k in PREMIUM_ACTIVITY_KEYWORDS):
        score += 30 if tier in LUXURY_TIERS else -10

    if any(k in name for k in CLASSIC_ACTIVITY_KEYWORDS):
        score += 20

    return score


def resolve_tier(tier) -> Optional[Tier]:
    """Tier for a Tier or tier name; None when the name is not a known tier."""
    try:
        return Tier.parse(tier)
    except ValueError:
        return None


def score(item: CatalogItem, tier: Tier) -> float:
    """Score any catalog item for a tier. Unknown tiers and categories without heuristics score 0."""
    tier = resolve_tier(tier)
    if tier is None:
        return 0.0
    if item.category == Category.LODGING:
        return score_lodging(item, tier)
    if item.category == Category.ACTIVITIES:
        return score_activity(item, tier)
    return 0.0


def get_recommended(items: Sequence[CatalogItem], tier: Tier) -> list[CatalogItem]:
    """All items sorted by descending score; ties keep their original order. Empty for an unknown tier."""
    tier = resolve_tier(tier)
    if tier is None:
        return []
    scored = [(score(item, tier), item) for item in items]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in scored]


def get_best_for_tier(items: Sequence[CatalogItem], tier: Tier) -> Optional[CatalogItem]:
    """The single highest-scoring item, or None for empty input or an unknown tier."""
    ranked = get_recommended(items, tier)
    return ranked[0] if ranked else None


def transport_type(name: str) -> Optional[str]:
    """Classify a transport item name as helicopter, fixed-wing or vehicle."""
    lowered = name.lower()
    if 'helicopter' in lowered:
        return 'helicopter'
    if 'fixed wing' in lowered or 'fixed-wing' in lowered:
        return 'fixed-wing'
    if 'vehicle' in lowered or 'car' in lowered or 'transfer' in lowered:
        return 'vehicle'
    return None


def is_transport_suitable_for_tier(name: str, tier: Tier) -> bool:
    tier = resolve_tier(tier)
    if tier is None:
        return False
    kind = transport_type(name)
    if kind is None:
        return tier != Tier.BUDGET
    return kind in TIER_TEMPLATES[tier].transport_types


def get_preferred_transport_for_tier(items: Sequence[CatalogItem], tier: Tier) -> list[CatalogItem]:
    tier = resolve_tier(tier)
    if tier is None:
        return []
    prefs = TIER_TEMPLATES[tier]
    return [item for item in items if transport_type(item.name) in prefs.transport_types]


def tier_info(tier: Tier) -> dict:
    label, description = TIER_INFO.get(resolve_tier(tier), TIER_INFO[Tier.STANDARD])
    return {"label": label, "description": description}
