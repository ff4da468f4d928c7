"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in booking/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Self

from booking.domain.value_objects import (
    Capacity,
    CustomerEmail,
    MovieId,
    Money,
    SeatNumber,
    ShowtimeId,
    TheaterId,
    TicketId,
    TimeSlot,
)


class TicketStatus(Enum):
    """Lifecycle of a ticket: PURCHASED -> CANCELLED, never back."""

    # No operation creates or consumes RESERVED tickets yet.
    RESERVED = "reserved"
    PURCHASED = "purchased"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Movie:
    """Read-only view of a catalog movie."""

    id: MovieId
    title: str
    duration_minutes: int


@dataclass(frozen=True)
class Theater:
    """Read-only view of a catalog theater."""

    id: TheaterId
    name: str
    capacity: Capacity
    is_active: bool


@dataclass(frozen=True)
class Showtime:
    """Domain representation of a Showtime.

    ``capacity`` is the theater capacity as read together with the showtime.
    """

    id: ShowtimeId
    movie_id: MovieId
    theater_id: TheaterId
    starts_at: datetime
    ends_at: datetime
    price: Money
    sold_tickets: int
    capacity: Capacity
    created_at: datetime

    @property
    def slot(self) -> TimeSlot:
        return TimeSlot(starts_at=self.starts_at, ends_at=self.ends_at)

    @property
    def available_seats(self) -> int:
        return self.capacity.value - self.sold_tickets

    def has_started(self, now: datetime) -> bool:
        return self.starts_at <= now


@dataclass(frozen=True)
class Ticket:
    """Domain representation of a Ticket."""

    id: TicketId
    showtime_id: ShowtimeId
    seat_number: SeatNumber
    customer_name: str
    customer_email: CustomerEmail
    status: TicketStatus
    price: Money
    created_at: datetime

    @property
    def is_purchased(self) -> bool:
        return self.status is TicketStatus.PURCHASED


@dataclass(frozen=True)
class Availability:
    """Seat availability snapshot for one showtime."""

    showtime_id: ShowtimeId
    capacity: int
    sold: int
    available: int
    sold_out: bool

    @classmethod
    def of(cls, showtime: Showtime) -> Self:
        available = showtime.available_seats
        return cls(
            showtime_id=showtime.id,
            capacity=showtime.capacity.value,
            sold=showtime.sold_tickets,
            available=available,
            sold_out=available <= 0,
        )
