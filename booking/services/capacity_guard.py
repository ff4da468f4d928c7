"""Capacity reduction checks used by theater management.

Reads are unlocked; a reduction racing a purchase is left to the caller.
"""

from booking.domain.errors import CapacityExceededError
from booking.services.validation import parse_capacity, parse_theater_id
from booking.stores.interfaces import ShowtimeStore


class CapacityChangeGuard:
    """Decides whether a theater may shrink to a proposed capacity."""

    def __init__(self, showtimes: ShowtimeStore) -> None:
        self._showtimes = showtimes

    def exceeds_capacity(self, theater_id: str, proposed_capacity: int) -> bool:
        """Check if any showtime of the theater sold more than ``proposed_capacity``.

        Raises:
            InvalidIdError: If the theater_id is not a valid UUID.
            InvalidCapacityError: If the proposed capacity is negative.
        """
        parsed_id = parse_theater_id(theater_id)
        capacity = parse_capacity(proposed_capacity)
        return self._showtimes.theater_has_showtime_above(parsed_id, capacity.value)

    def theater_capacity_reduction_allowed(
        self, theater_id: str, proposed_capacity: int
    ) -> bool:
        return not self.exceeds_capacity(theater_id, proposed_capacity)

    def ensure_capacity_reduction_allowed(
        self, theater_id: str, proposed_capacity: int
    ) -> None:
        """Raise CapacityExceededError if the reduction would strand sold tickets."""
        if self.exceeds_capacity(theater_id, proposed_capacity):
            raise CapacityExceededError(theater_id, int(proposed_capacity))
