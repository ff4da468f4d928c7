"""Django ORM implementation of the booking stores.

Exclusive access uses row locks (``select_for_update``) held for the
lifetime of a ``transaction.atomic`` block. On PostgreSQL the wait is bounded
by ``lock_timeout``; lock timeouts and deadlocks surface as LockTimeoutError.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from django.db import IntegrityError, OperationalError, connection, transaction
from django.db.models import F, QuerySet
from django.utils import timezone

from booking import models
from booking.conf import booking_settings
from booking.domain import (
    Capacity,
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
    TicketStatus,
    TimeSlot,
)
from booking.domain.errors import LockTimeoutError, SeatTakenError
from booking.stores.interfaces import CatalogStore, SaleSession, ShowtimeStore, TicketStore

logger = logging.getLogger(__name__)

# lock_not_available, deadlock_detected
LOCK_FAILURE_SQLSTATES = frozenset({"55P03", "40P01"})


def is_lock_failure(exc: OperationalError) -> bool:
    """Tell lock timeouts and deadlocks apart from other operational errors."""
    cause = exc.__cause__
    sqlstate = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if sqlstate in LOCK_FAILURE_SQLSTATES:
        return True
    return "database is locked" in str(exc)


@contextmanager
def _translate_lock_errors(resource: str) -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        if not is_lock_failure(exc):
            raise
        logger.warning("Could not lock %s: %s", resource, exc)
        raise LockTimeoutError(resource) from exc


def _apply_lock_timeout() -> None:
    # Other backends fall back to their own lock wait limits.
    if connection.vendor != "postgresql":
        return
    timeout_ms = int(booking_settings.LOCK_TIMEOUT_MS)
    with connection.cursor() as cursor:
        cursor.execute(f"SET LOCAL lock_timeout = {timeout_ms}")


def _select_showtime_for_update(showtime_id: ShowtimeId) -> models.Showtime | None:
    return (
        models.Showtime.objects.select_for_update(of=("self",))
        .select_related("theater")
        .filter(pk=showtime_id.value)
        .first()
    )


def _to_movie(row: models.Movie) -> Movie:
    return Movie(
        id=MovieId(row.id),
        title=row.title,
        duration_minutes=row.duration_minutes,
    )


def _to_theater(row: models.Theater) -> Theater:
    return Theater(
        id=TheaterId(row.id),
        name=row.name,
        capacity=Capacity(row.capacity),
        is_active=row.is_active,
    )


def _to_showtime(row: models.Showtime) -> Showtime:
    return Showtime(
        id=ShowtimeId(row.id),
        movie_id=MovieId(row.movie_id),
        theater_id=TheaterId(row.theater_id),
        starts_at=row.starts_at,
        ends_at=row.ends_at,
        price=Money(row.price),
        sold_tickets=row.sold_tickets,
        capacity=Capacity(row.theater.capacity),
        created_at=row.created_at,
    )


def _to_ticket(row: models.Ticket) -> Ticket:
    return Ticket(
        id=TicketId(row.id),
        showtime_id=ShowtimeId(row.showtime_id),
        seat_number=SeatNumber(row.seat_number),
        customer_name=row.customer_name,
        customer_email=CustomerEmail(row.customer_email),
        status=TicketStatus(row.status),
        price=Money(row.price),
        created_at=row.created_at,
    )


class DjangoCatalogStore(CatalogStore):
    """Catalog lookups backed by the Movie and Theater tables."""

    def get_movie(self, movie_id: MovieId) -> Movie | None:
        row = models.Movie.objects.filter(pk=movie_id.value).first()
        return None if row is None else _to_movie(row)

    def get_theater(self, theater_id: TheaterId) -> Theater | None:
        row = models.Theater.objects.filter(pk=theater_id.value).first()
        return None if row is None else _to_theater(row)


class DjangoShowtimeStore(ShowtimeStore):
    """PostgreSQL-backed showtime store using Django ORM."""

    def _showtimes(self) -> QuerySet[models.Showtime]:
        return models.Showtime.objects.select_related("theater")

    def get_showtime(self, showtime_id: ShowtimeId) -> Showtime | None:
        row = self._showtimes().filter(pk=showtime_id.value).first()
        return None if row is None else _to_showtime(row)

    @contextmanager
    def lock_theater_schedule(self, theater_id: TheaterId) -> Iterator[None]:
        with _translate_lock_errors(f"theater {theater_id.value}"), transaction.atomic():
            _apply_lock_timeout()
            # Evaluated for the FOR UPDATE side effect only.
            list(
                models.Theater.objects.select_for_update()
                .filter(pk=theater_id.value)
                .values_list("pk", flat=True)
            )
            yield

    @contextmanager
    def lock_showtime_for_change(self, showtime_id: ShowtimeId) -> Iterator[Showtime | None]:
        with _translate_lock_errors(f"showtime {showtime_id.value}"), transaction.atomic():
            _apply_lock_timeout()
            row = _select_showtime_for_update(showtime_id)
            yield None if row is None else _to_showtime(row)

    def find_conflicting_showtime(
        self,
        theater_id: TheaterId,
        slot: TimeSlot,
        exclude_showtime_id: ShowtimeId | None = None,
    ) -> Showtime | None:
        queryset = self._showtimes().filter(
            theater_id=theater_id.value,
            starts_at__lt=slot.ends_at,
            ends_at__gt=slot.starts_at,
        )
        if exclude_showtime_id is not None:
            queryset = queryset.exclude(pk=exclude_showtime_id.value)
        row = queryset.order_by("starts_at").first()
        return None if row is None else _to_showtime(row)

    def create_showtime(
        self, movie_id: MovieId, theater_id: TheaterId, slot: TimeSlot, price: Money
    ) -> Showtime:
        row = models.Showtime.objects.create(
            movie_id=movie_id.value,
            theater_id=theater_id.value,
            starts_at=slot.starts_at,
            ends_at=slot.ends_at,
            price=price.amount,
        )
        return self.get_showtime(ShowtimeId(row.id))

    def update_showtime(
        self,
        showtime_id: ShowtimeId,
        movie_id: MovieId,
        theater_id: TheaterId,
        slot: TimeSlot,
        price: Money,
    ) -> Showtime | None:
        row = models.Showtime.objects.filter(pk=showtime_id.value).first()
        if row is None:
            return None
        row.movie_id = movie_id.value
        row.theater_id = theater_id.value
        row.starts_at = slot.starts_at
        row.ends_at = slot.ends_at
        row.price = price.amount
        # sold_tickets is excluded so a concurrent sale is never overwritten.
        row.save(
            update_fields=["movie", "theater", "starts_at", "ends_at", "price", "updated_at"]
        )
        return self.get_showtime(showtime_id)

    def delete_showtime(self, showtime_id: ShowtimeId) -> bool:
        deleted, _ = models.Showtime.objects.filter(
            pk=showtime_id.value, sold_tickets=0
        ).delete()
        return deleted > 0

    def list_upcoming_showtimes(self, now: datetime, limit: int) -> list[Showtime]:
        rows = self._showtimes().filter(starts_at__gt=now).order_by("starts_at")[:limit]
        return [_to_showtime(row) for row in rows]

    def list_showtimes_for_theater(self, theater_id: TheaterId) -> list[Showtime]:
        rows = self._showtimes().filter(theater_id=theater_id.value).order_by("starts_at")
        return [_to_showtime(row) for row in rows]

    def list_showtimes_for_movie(self, movie_id: MovieId) -> list[Showtime]:
        rows = self._showtimes().filter(movie_id=movie_id.value).order_by("starts_at")
        return [_to_showtime(row) for row in rows]

    def theater_has_showtime_above(self, theater_id: TheaterId, sold: int) -> bool:
        return models.Showtime.objects.filter(
            theater_id=theater_id.value, sold_tickets__gt=sold
        ).exists()


class _DjangoSaleSession(SaleSession):
    def __init__(self, row: models.Showtime) -> None:
        self._row = row

    @property
    def showtime(self) -> Showtime:
        return _to_showtime(self._row)

    def is_seat_taken(self, seat_number: SeatNumber) -> bool:
        return models.Ticket.objects.filter(
            showtime_id=self._row.pk,
            seat_number=seat_number.value,
            status=models.TicketStatus.PURCHASED,
        ).exists()

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        row = models.Ticket.objects.filter(
            pk=ticket_id.value, showtime_id=self._row.pk
        ).first()
        return None if row is None else _to_ticket(row)

    def record_purchase(
        self, seat_number: SeatNumber, customer_name: str, customer_email: CustomerEmail
    ) -> Ticket:
        try:
            with transaction.atomic():
                row = models.Ticket.objects.create(
                    showtime_id=self._row.pk,
                    seat_number=seat_number.value,
                    customer_name=customer_name,
                    customer_email=customer_email.value,
                    status=models.TicketStatus.PURCHASED,
                    price=self._row.price,
                )
        except IntegrityError as exc:
            # Partial unique index on purchased seats.
            raise SeatTakenError(seat_number.value) from exc
        self._adjust_sold(1)
        return _to_ticket(row)

    def record_cancellation(self, ticket: Ticket) -> Ticket:
        models.Ticket.objects.filter(
            pk=ticket.id.value, status=models.TicketStatus.PURCHASED
        ).update(status=models.TicketStatus.CANCELLED, updated_at=timezone.now())
        self._adjust_sold(-1)
        return replace(ticket, status=TicketStatus.CANCELLED)

    def _adjust_sold(self, delta: int) -> None:
        models.Showtime.objects.filter(pk=self._row.pk).update(
            sold_tickets=F("sold_tickets") + delta
        )
        self._row.sold_tickets += delta


class DjangoTicketStore(TicketStore):
    """PostgreSQL-backed ticket store using Django ORM."""

    @contextmanager
    def lock_showtime(self, showtime_id: ShowtimeId) -> Iterator[SaleSession | None]:
        with _translate_lock_errors(f"showtime {showtime_id.value}"), transaction.atomic():
            _apply_lock_timeout()
            row = _select_showtime_for_update(showtime_id)
            yield None if row is None else _DjangoSaleSession(row)

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        row = models.Ticket.objects.filter(pk=ticket_id.value).first()
        return None if row is None else _to_ticket(row)

    def list_tickets_for_showtime(self, showtime_id: ShowtimeId) -> list[Ticket]:
        rows = models.Ticket.objects.filter(showtime_id=showtime_id.value).order_by(
            "-created_at"
        )
        return [_to_ticket(row) for row in rows]

    def list_tickets_for_customer(self, email: CustomerEmail) -> list[Ticket]:
        rows = models.Ticket.objects.filter(customer_email=email.value).order_by(
            "-created_at"
        )
        return [_to_ticket(row) for row in rows]

    def occupied_seats(self, showtime_id: ShowtimeId) -> list[SeatNumber]:
        seats = (
            models.Ticket.objects.filter(
                showtime_id=showtime_id.value, status=models.TicketStatus.PURCHASED
            )
            .order_by("seat_number")
            .values_list("seat_number", flat=True)
        )
        return [SeatNumber(seat) for seat in seats]

    def delete_ticket(self, ticket_id: TicketId) -> bool:
        deleted, _ = (
            models.Ticket.objects.filter(pk=ticket_id.value)
            .exclude(status=models.TicketStatus.PURCHASED)
            .delete()
        )
        return deleted > 0
