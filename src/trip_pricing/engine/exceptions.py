"""Exceptions raised by the trip pricing engine."""


class TripPricingError(Exception):
    """Base exception for trip pricing engine errors."""
    pass


class UnknownDayError(TripPricingError, KeyError):
    """An intent referenced a day number that is not part of the draft."""

    def __init__(self, day_number: int):
        self.day_number = day_number
        super().__init__(f"Day {day_number} does not exist in this trip")

    def __str__(self) -> str:
        return self.args[0]


class InvalidIntentError(TripPricingError, ValueError):
    """An intent was structurally invalid (bad index, bad count, unknown type)."""
    pass


class AllocationError(TripPricingError, ValueError):
    """A lodging allocation referenced a room/season/occupancy with no price."""
    pass


class CatalogLoadError(TripPricingError):
    """A catalog snapshot could not be read."""
    pass
