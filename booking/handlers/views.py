"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from booking.conf import booking_settings
from booking.domain.errors import DomainError, ErrorCode
from booking.handlers.serializers import (
    AvailabilitySerializer,
    CapacityCheckQuerySerializer,
    ShowtimeCreateSerializer,
    ShowtimeSerializer,
    ShowtimeUpdateSerializer,
    TicketPurchaseSerializer,
    TicketSerializer,
)
from booking.services import (
    AvailabilityService,
    CapacityChangeGuard,
    ShowtimeSchedulingService,
    TicketSalesService,
)
from booking.stores.django_store import (
    DjangoCatalogStore,
    DjangoShowtimeStore,
    DjangoTicketStore,
)

ERROR_STATUS = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SEAT_NUMBER: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_CUSTOMER_NAME: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_PRICE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_CAPACITY: status.HTTP_400_BAD_REQUEST,
    ErrorCode.PAST_DATE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.THEATER_INACTIVE: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_STARTED: status.HTTP_409_CONFLICT,
    ErrorCode.SCHEDULING_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.SHOWTIME_HAS_SOLD_TICKETS: status.HTTP_409_CONFLICT,
    ErrorCode.PAST_OR_ONGOING_SHOWTIME: status.HTTP_409_CONFLICT,
    ErrorCode.SOLD_OUT: status.HTTP_409_CONFLICT,
    ErrorCode.SEAT_TAKEN: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_TICKET_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.LOCK_TIMEOUT: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def domain_error_response(error: DomainError) -> Response:
    response = Response(
        {"error": {"code": error.code.value, "message": error.message}},
        status=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
    )
    if error.retryable:
        response["Retry-After"] = str(booking_settings.LOCK_RETRY_AFTER_SECONDS)
    return response


def scheduling_service() -> ShowtimeSchedulingService:
    return ShowtimeSchedulingService(DjangoShowtimeStore(), DjangoCatalogStore())


def ticket_sales_service() -> TicketSalesService:
    return TicketSalesService(DjangoTicketStore())


def availability_service() -> AvailabilityService:
    return AvailabilityService(DjangoShowtimeStore(), DjangoTicketStore())


class BookingAPIView(APIView):
    """Base view that renders domain errors as JSON error bodies."""

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, DomainError):
            return domain_error_response(exc)
        return super().handle_exception(exc)


class ShowtimeListView(BookingAPIView):
    """Handler for GET/POST /api/showtimes"""

    def get(self, request: Request) -> Response:
        showtimes = scheduling_service().list_upcoming_showtimes()
        return Response(ShowtimeSerializer(showtimes, many=True).data)

    def post(self, request: Request) -> Response:
        serializer = ShowtimeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        showtime = scheduling_service().create_showtime(**serializer.validated_data)
        return Response(ShowtimeSerializer(showtime).data, status=status.HTTP_201_CREATED)


class ShowtimeDetailView(BookingAPIView):
    """Handler for GET/PATCH/DELETE /api/showtimes/{showtime_id}"""

    def get(self, request: Request, showtime_id: str) -> Response:
        showtime = scheduling_service().get_showtime(showtime_id)
        return Response(ShowtimeSerializer(showtime).data)

    def patch(self, request: Request, showtime_id: str) -> Response:
        serializer = ShowtimeUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        showtime = scheduling_service().update_showtime(
            showtime_id, **serializer.validated_data
        )
        return Response(ShowtimeSerializer(showtime).data)

    def delete(self, request: Request, showtime_id: str) -> Response:
        scheduling_service().delete_showtime(showtime_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ShowtimeAvailabilityView(BookingAPIView):
    """Handler for GET /api/showtimes/{showtime_id}/availability"""

    def get(self, request: Request, showtime_id: str) -> Response:
        availability = availability_service().availability(showtime_id)
        return Response(AvailabilitySerializer(availability).data)


class OccupiedSeatsView(BookingAPIView):
    """Handler for GET /api/showtimes/{showtime_id}/occupied-seats"""

    def get(self, request: Request, showtime_id: str) -> Response:
        seats = availability_service().occupied_seats(showtime_id)
        return Response(
            {"showtime_id": showtime_id, "seats": [seat.value for seat in seats]}
        )


class ShowtimeTicketsView(BookingAPIView):
    """Handler for GET/POST /api/showtimes/{showtime_id}/tickets"""

    def get(self, request: Request, showtime_id: str) -> Response:
        tickets = availability_service().tickets_for_showtime(showtime_id)
        return Response(TicketSerializer(tickets, many=True).data)

    def post(self, request: Request, showtime_id: str) -> Response:
        serializer = TicketPurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = ticket_sales_service().purchase(
            showtime_id, **serializer.validated_data
        )
        return Response(TicketSerializer(ticket).data, status=status.HTTP_201_CREATED)


class TheaterShowtimesView(BookingAPIView):
    """Handler for GET /api/theaters/{theater_id}/showtimes"""

    def get(self, request: Request, theater_id: str) -> Response:
        showtimes = scheduling_service().list_showtimes_for_theater(theater_id)
        return Response(ShowtimeSerializer(showtimes, many=True).data)


class TheaterCapacityCheckView(BookingAPIView):
    """Handler for GET /api/theaters/{theater_id}/capacity-check?capacity=N"""

    def get(self, request: Request, theater_id: str) -> Response:
        query = CapacityCheckQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        capacity = query.validated_data["capacity"]
        guard = CapacityChangeGuard(DjangoShowtimeStore())
        allowed = guard.theater_capacity_reduction_allowed(theater_id, capacity)
        return Response(
            {"theater_id": theater_id, "proposed_capacity": capacity, "allowed": allowed}
        )


class MovieShowtimesView(BookingAPIView):
    """Handler for GET /api/movies/{movie_id}/showtimes"""

    def get(self, request: Request, movie_id: str) -> Response:
        showtimes = scheduling_service().list_showtimes_for_movie(movie_id)
        return Response(ShowtimeSerializer(showtimes, many=True).data)


class CustomerTicketsView(BookingAPIView):
    """Handler for GET /api/tickets?email=..."""

    def get(self, request: Request) -> Response:
        email = request.query_params.get("email", "")
        tickets = ticket_sales_service().tickets_for_customer(email)
        return Response(TicketSerializer(tickets, many=True).data)


class TicketDetailView(BookingAPIView):
    """Handler for GET/DELETE /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        ticket = ticket_sales_service().get_ticket(ticket_id)
        return Response(TicketSerializer(ticket).data)

    def delete(self, request: Request, ticket_id: str) -> Response:
        ticket_sales_service().remove_ticket(ticket_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class TicketCancelView(BookingAPIView):
    """Handler for POST /api/tickets/{ticket_id}/cancel"""

    def post(self, request: Request, ticket_id: str) -> Response:
        ticket = ticket_sales_service().cancel(ticket_id)
        return Response(TicketSerializer(ticket).data)
