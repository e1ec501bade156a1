"""Engine subpackage - catalog lookup, day-state reducer and pricing."""
from .catalog import Catalog
from .exceptions import (
    AllocationError,
    CatalogLoadError,
    InvalidIntentError,
    TripPricingError,
    UnknownDayError,
)
from .models import CatalogItem, Category, CostModel, PricingLineItem, PricingResult, Tier, TripDay, TripDraft
from .pricing_engine import PricingEngine, calculate
from .reducer import TripStore, reduce

__all__ = [
    'Catalog', 'CatalogItem', 'Category', 'CostModel', 'Tier',
    'TripDay', 'TripDraft', 'PricingLineItem', 'PricingResult',
    'PricingEngine', 'calculate', 'TripStore', 'reduce',
    'TripPricingError', 'UnknownDayError', 'InvalidIntentError', 'AllocationError', 'CatalogLoadError',
]
