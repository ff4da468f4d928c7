from django.urls import path

from booking.handlers import (
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

urlpatterns = [
    path("showtimes", ShowtimeListView.as_view(), name="showtime-list"),
    path(
        "showtimes/<str:showtime_id>",
        ShowtimeDetailView.as_view(),
        name="showtime-detail",
    ),
    path(
        "showtimes/<str:showtime_id>/availability",
        ShowtimeAvailabilityView.as_view(),
        name="showtime-availability",
    ),
    path(
        "showtimes/<str:showtime_id>/occupied-seats",
        OccupiedSeatsView.as_view(),
        name="showtime-occupied-seats",
    ),
    path(
        "showtimes/<str:showtime_id>/tickets",
        ShowtimeTicketsView.as_view(),
        name="showtime-tickets",
    ),
    path(
        "theaters/<str:theater_id>/showtimes",
        TheaterShowtimesView.as_view(),
        name="theater-showtimes",
    ),
    path(
        "theaters/<str:theater_id>/capacity-check",
        TheaterCapacityCheckView.as_view(),
        name="theater-capacity-check",
    ),
    path(
        "movies/<str:movie_id>/showtimes",
        MovieShowtimesView.as_view(),
        name="movie-showtimes",
    ),
    path("tickets", CustomerTicketsView.as_view(), name="ticket-list"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path(
        "tickets/<str:ticket_id>/cancel",
        TicketCancelView.as_view(),
        name="ticket-cancel",
    ),
]
