from booking.domain.models import (
    Availability,
    Movie,
    Showtime,
    Theater,
    Ticket,
    TicketStatus,
)
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

__all__ = [
    "Availability",
    "Movie",
    "Showtime",
    "Theater",
    "Ticket",
    "TicketStatus",
    "MovieId",
    "TheaterId",
    "ShowtimeId",
    "TicketId",
    "Money",
    "Capacity",
    "SeatNumber",
    "CustomerEmail",
    "TimeSlot",
]
