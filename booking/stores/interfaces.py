"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime

from booking.domain import (
    CustomerEmail,
    Movie,
    MovieId,
    Money,
    SeatNumber,
    Showtime,
    ShowtimeId,
    Theater,
    TheaterId,
    Ticket,
    TicketId,
    TimeSlot,
)


class CatalogStore(ABC):
    """Read-only access to movies and theaters owned by the catalog."""

    @abstractmethod
    def get_movie(self, movie_id: MovieId) -> Movie | None:
        """Return a movie by ID, or None if not found."""
        ...

    @abstractmethod
    def get_theater(self, theater_id: TheaterId) -> Theater | None:
        """Return a theater by ID, or None if not found."""
        ...


class ShowtimeStore(ABC):
    """Interface for showtime persistence operations."""

    @abstractmethod
    def get_showtime(self, showtime_id: ShowtimeId) -> Showtime | None:
        """Return a showtime by ID, or None if not found."""
        ...

    @abstractmethod
    def lock_theater_schedule(
        self, theater_id: TheaterId
    ) -> AbstractContextManager[None]:
        """Hold the theater's schedule exclusively for the duration of the block.

        Conflict checks and writes made inside the block see no concurrent
        scheduling change for the same theater. Raises LockTimeoutError when
        the lock cannot be obtained in time.
        """
        ...

    @abstractmethod
    def lock_showtime_for_change(
        self, showtime_id: ShowtimeId
    ) -> AbstractContextManager[Showtime | None]:
        """Lock the showtime against sales and yield it, or None if it does not exist.

        Takes the same lock as TicketStore.lock_showtime, so the yielded
        ``sold_tickets`` cannot change until the block exits. Raises
        LockTimeoutError when the lock cannot be obtained in time.
        """
        ...

    @abstractmethod
    def find_conflicting_showtime(
        self,
        theater_id: TheaterId,
        slot: TimeSlot,
        exclude_showtime_id: ShowtimeId | None = None,
    ) -> Showtime | None:
        """Return a showtime of the theater whose slot overlaps ``slot``."""
        ...

    @abstractmethod
    def create_showtime(
        self, movie_id: MovieId, theater_id: TheaterId, slot: TimeSlot, price: Money
    ) -> Showtime:
        """Persist a new showtime with zero sold tickets."""
        ...

    @abstractmethod
    def update_showtime(
        self,
        showtime_id: ShowtimeId,
        movie_id: MovieId,
        theater_id: TheaterId,
        slot: TimeSlot,
        price: Money,
    ) -> Showtime | None:
        """Overwrite the schedule fields, leaving ``sold_tickets`` untouched.

        Returns None if the showtime no longer exists.
        """
        ...

    @abstractmethod
    def delete_showtime(self, showtime_id: ShowtimeId) -> bool:
        """Delete the showtime and its tickets if it has no sold tickets.

        Call it inside ``lock_showtime_for_change``. Returns True if deleted.
        """
        ...

    @abstractmethod
    def list_upcoming_showtimes(self, now: datetime, limit: int) -> list[Showtime]:
        """Return showtimes starting after ``now``, ordered by starts_at ascending."""
        ...

    @abstractmethod
    def list_showtimes_for_theater(self, theater_id: TheaterId) -> list[Showtime]:
        """Return all showtimes of a theater, ordered by starts_at ascending."""
        ...

    @abstractmethod
    def list_showtimes_for_movie(self, movie_id: MovieId) -> list[Showtime]:
        """Return all showtimes of a movie, ordered by starts_at ascending."""
        ...

    @abstractmethod
    def theater_has_showtime_above(self, theater_id: TheaterId, sold: int) -> bool:
        """Check if any showtime of the theater has more than ``sold`` tickets sold."""
        ...


class SaleSession(ABC):
    """Exclusive handle on one showtime, obtained from TicketStore.lock_showtime.

    Every read reflects the latest committed state. Writes become visible to
    others only when the locked block exits without an exception.
    """

    @property
    @abstractmethod
    def showtime(self) -> Showtime:
        """The locked showtime, including writes made in this session."""
        ...

    @abstractmethod
    def is_seat_taken(self, seat_number: SeatNumber) -> bool:
        """Check if a purchased ticket already holds the seat."""
        ...

    @abstractmethod
    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        """Return a ticket of the locked showtime, or None if not found."""
        ...

    @abstractmethod
    def record_purchase(
        self, seat_number: SeatNumber, customer_name: str, customer_email: CustomerEmail
    ) -> Ticket:
        """Insert a purchased ticket at the showtime's price and count it as sold."""
        ...

    @abstractmethod
    def record_cancellation(self, ticket: Ticket) -> Ticket:
        """Mark a purchased ticket cancelled and release its seat from the count."""
        ...


class TicketStore(ABC):
    """Interface for ticket persistence operations."""

    @abstractmethod
    def lock_showtime(
        self, showtime_id: ShowtimeId
    ) -> AbstractContextManager[SaleSession | None]:
        """Lock the showtime and yield a SaleSession, or None if it does not exist.

        Raises LockTimeoutError when the lock cannot be obtained in time.
        """
        ...

    @abstractmethod
    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        """Return a ticket by ID, or None if not found."""
        ...

    @abstractmethod
    def list_tickets_for_showtime(self, showtime_id: ShowtimeId) -> list[Ticket]:
        """Return all tickets of a showtime, newest first."""
        ...

    @abstractmethod
    def list_tickets_for_customer(self, email: CustomerEmail) -> list[Ticket]:
        """Return all tickets bought with this email, newest first."""
        ...

    @abstractmethod
    def occupied_seats(self, showtime_id: ShowtimeId) -> list[SeatNumber]:
        """Return seats held by purchased tickets, sorted by seat label."""
        ...

    @abstractmethod
    def delete_ticket(self, ticket_id: TicketId) -> bool:
        """Delete a ticket that is no longer purchased; return True if deleted."""
        ...
