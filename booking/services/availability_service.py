"""Read-only seat projections for display.

Nothing here takes a lock: figures may lag behind purchases in flight and
must never be used to decide whether a sale may proceed.
"""

from booking.domain import Availability, SeatNumber, Showtime, ShowtimeId, Ticket
from booking.domain.errors import NotFoundError
from booking.services.validation import parse_showtime_id
from booking.stores.interfaces import ShowtimeStore, TicketStore


class AvailabilityService:
    """Service for availability and occupied-seat queries."""

    def __init__(self, showtimes: ShowtimeStore, tickets: TicketStore) -> None:
        self._showtimes = showtimes
        self._tickets = tickets

    def availability(self, showtime_id: str) -> Availability:
        """Return capacity, sold and remaining seats of a showtime."""
        return Availability.of(self._require_showtime(showtime_id))

    def occupied_seats(self, showtime_id: str) -> list[SeatNumber]:
        """Return the seats held by purchased tickets."""
        showtime = self._require_showtime(showtime_id)
        return self._tickets.occupied_seats(showtime.id)

    def tickets_for_showtime(self, showtime_id: str) -> list[Ticket]:
        showtime = self._require_showtime(showtime_id)
        return self._tickets.list_tickets_for_showtime(showtime.id)

    def _require_showtime(self, showtime_id: str) -> Showtime:
        parsed_id: ShowtimeId = parse_showtime_id(showtime_id)
        showtime = self._showtimes.get_showtime(parsed_id)
        if showtime is None:
            raise NotFoundError("Showtime", showtime_id)
        return showtime
