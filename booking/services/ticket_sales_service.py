"""Ticket sales service - admission control for showtime seats.

Purchase and cancel run entirely inside ``TicketStore.lock_showtime``: the
showtime's sold count, its capacity and the occupied seats are read only
after the lock is held, and the ticket write plus the counter change commit
together.

Syntactic checks (ids, seat label, email, name) run first and never touch a
store.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from django.utils import timezone

from booking.domain import Ticket
from booking.domain.errors import (
    InvalidTicketStateError,
    NotFoundError,
    PastOrOngoingShowtimeError,
    SeatTakenError,
    SoldOutError,
)
from booking.services.validation import (
    parse_customer_name,
    parse_email,
    parse_seat_number,
    parse_showtime_id,
    parse_ticket_id,
)
from booking.stores.interfaces import TicketStore

logger = logging.getLogger(__name__)


class TicketSalesService:
    """Service for buying and cancelling tickets."""

    def __init__(
        self,
        tickets: TicketStore,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._tickets = tickets
        self._clock = clock

    def purchase(
        self,
        showtime_id: str,
        seat_number: str,
        customer_name: str,
        customer_email: str,
    ) -> Ticket:
        """Sell one seat of a showtime.

        Raises:
            InvalidIdError, InvalidSeatNumberError, InvalidEmailError,
            InvalidCustomerNameError: On malformed input.
            NotFoundError: If the showtime does not exist.
            PastOrOngoingShowtimeError: If the showtime has started.
            SoldOutError: If every seat is sold.
            SeatTakenError: If the seat already has a purchased ticket.
            LockTimeoutError: If the showtime could not be locked in time.
        """
        parsed_id = parse_showtime_id(showtime_id)
        seat = parse_seat_number(seat_number)
        email = parse_email(customer_email)
        name = parse_customer_name(customer_name)

        with self._tickets.lock_showtime(parsed_id) as sale:
            if sale is None:
                raise NotFoundError("Showtime", showtime_id)
            showtime = sale.showtime
            if showtime.has_started(self._clock()):
                raise PastOrOngoingShowtimeError(showtime_id)
            if showtime.sold_tickets >= showtime.capacity.value:
                raise SoldOutError(showtime_id)
            if sale.is_seat_taken(seat):
                raise SeatTakenError(seat.value)
            ticket = sale.record_purchase(seat, name, email)

        logger.info(
            "Sold seat %s of showtime %s (ticket %s)",
            seat.value,
            parsed_id.value,
            ticket.id.value,
        )
        return ticket

    def cancel(self, ticket_id: str) -> Ticket:
        """Cancel a purchased ticket and free its seat.

        Raises:
            InvalidIdError: If the ticket_id is not a valid UUID.
            NotFoundError: If the ticket does not exist.
            InvalidTicketStateError: If the ticket is not purchased.
            PastOrOngoingShowtimeError: If the showtime has started.
            LockTimeoutError: If the showtime could not be locked in time.
        """
        parsed_id = parse_ticket_id(ticket_id)
        # Unlocked read, only to learn which showtime to lock.
        ticket = self._tickets.get_ticket(parsed_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)

        with self._tickets.lock_showtime(ticket.showtime_id) as sale:
            current = None if sale is None else sale.get_ticket(parsed_id)
            if current is None:
                raise NotFoundError("Ticket", ticket_id)
            if not current.is_purchased:
                raise InvalidTicketStateError(ticket_id, current.status.value)
            if sale.showtime.has_started(self._clock()):
                raise PastOrOngoingShowtimeError(str(ticket.showtime_id.value))
            cancelled = sale.record_cancellation(current)

        logger.info(
            "Cancelled ticket %s (seat %s of showtime %s)",
            parsed_id.value,
            cancelled.seat_number.value,
            cancelled.showtime_id.value,
        )
        return cancelled

    def remove_ticket(self, ticket_id: str) -> None:
        """Delete a ticket, cancelling it first if it is still purchased.

        Raises:
            NotFoundError: If the ticket does not exist.
            PastOrOngoingShowtimeError: If a purchased ticket's showtime started.
        """
        ticket = self.get_ticket(ticket_id)
        if ticket.is_purchased:
            self.cancel(ticket_id)
        if not self._tickets.delete_ticket(ticket.id):
            raise NotFoundError("Ticket", ticket_id)
        logger.info("Deleted ticket %s", ticket.id.value)

    def get_ticket(self, ticket_id: str) -> Ticket:
        """Return a ticket by ID.

        Raises:
            InvalidIdError: If the ticket_id is not a valid UUID.
            NotFoundError: If the ticket does not exist.
        """
        parsed_id = parse_ticket_id(ticket_id)
        ticket = self._tickets.get_ticket(parsed_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    def tickets_for_customer(self, customer_email: str) -> list[Ticket]:
        """Return a customer's tickets, newest first."""
        return self._tickets.list_tickets_for_customer(parse_email(customer_email))
