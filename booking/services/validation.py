"""Input parsing shared by the services.

Everything here runs before a store is touched and maps value-object
ValueErrors to domain errors.
"""

from decimal import Decimal, InvalidOperation

from booking.conf import booking_settings
from booking.domain import (
    Capacity,
    CustomerEmail,
    MovieId,
    Money,
    SeatNumber,
    ShowtimeId,
    TheaterId,
    TicketId,
)
from booking.domain.errors import (
    InvalidCapacityError,
    InvalidCustomerNameError,
    InvalidEmailError,
    InvalidIdError,
    InvalidPriceError,
    InvalidSeatNumberError,
)


def parse_movie_id(value: str) -> MovieId:
    try:
        return MovieId.from_string(str(value))
    except ValueError as exc:
        raise InvalidIdError("movie") from exc


def parse_theater_id(value: str) -> TheaterId:
    try:
        return TheaterId.from_string(str(value))
    except ValueError as exc:
        raise InvalidIdError("theater") from exc


def parse_showtime_id(value: str) -> ShowtimeId:
    try:
        return ShowtimeId.from_string(str(value))
    except ValueError as exc:
        raise InvalidIdError("showtime") from exc


def parse_ticket_id(value: str) -> TicketId:
    try:
        return TicketId.from_string(str(value))
    except ValueError as exc:
        raise InvalidIdError("ticket") from exc


def parse_seat_number(value: str) -> SeatNumber:
    try:
        return SeatNumber.parse(value)
    except ValueError as exc:
        raise InvalidSeatNumberError(value) from exc


def parse_email(value: str) -> CustomerEmail:
    try:
        return CustomerEmail.parse(value)
    except ValueError as exc:
        raise InvalidEmailError() from exc


def parse_customer_name(value: str) -> str:
    name = value.strip()
    if not name:
        raise InvalidCustomerNameError()
    return name


def parse_price(value: Decimal | str | int) -> Money:
    maximum = Decimal(booking_settings.MAX_SHOWTIME_PRICE)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise InvalidPriceError(maximum) from exc
    if not amount.is_finite() or amount > maximum:
        raise InvalidPriceError(maximum)
    try:
        return Money(amount)
    except ValueError as exc:
        raise InvalidPriceError(maximum) from exc


def parse_capacity(value: int) -> Capacity:
    try:
        return Capacity(int(value))
    except (TypeError, ValueError) as exc:
        raise InvalidCapacityError() from exc
