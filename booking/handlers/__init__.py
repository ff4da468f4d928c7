from booking.handlers.views import (
    CustomerTicketsView,
    MovieShowtimesView,
    OccupiedSeatsView,
    ShowtimeAvailabilityView,
    ShowtimeDetailView,
    ShowtimeListView,
    ShowtimeTicketsView,
    TheaterCapacityCheckView,
    TheaterShowtimesView,
    TicketCancelView,
    TicketDetailView,
)

__all__ = [
    "CustomerTicketsView",
    "MovieShowtimesView",
    "OccupiedSeatsView",
    "ShowtimeAvailabilityView",
    "ShowtimeDetailView",
    "ShowtimeListView",
    "ShowtimeTicketsView",
    "TheaterCapacityCheckView",
    "TheaterShowtimesView",
    "TicketCancelView",
    "TicketDetailView",
]
