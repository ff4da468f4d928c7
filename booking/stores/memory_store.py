"""In-process implementation of the booking stores.

Mutual exclusion is a ``threading.Lock`` per showtime (and per theater for
scheduling), so it is only correct while a single process serves all
requests. Writes made through a SaleSession are staged and applied when the
locked block exits cleanly; an exception discards them.
"""

import logging
import threading
import uuid
import weakref
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from decimal import Decimal

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
from booking.domain.errors import LockTimeoutError
from booking.stores.interfaces import CatalogStore, SaleSession, ShowtimeStore, TicketStore

logger = logging.getLogger(__name__)


@dataclass
class _ShowtimeRecord:
    id: ShowtimeId
    movie_id: MovieId
    theater_id: TheaterId
    starts_at: datetime
    ends_at: datetime
    price: Money
    sold_tickets: int
    created_at: datetime


class _KeyedLocks:
    """One lock per key, created on first use.

    Entries are weak, so a key's lock is dropped once no thread holds or
    waits on it.
    """

    def __init__(self, timeout: float | None) -> None:
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[uuid.UUID, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, key: uuid.UUID, resource: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        acquired = lock.acquire() if self._timeout is None else lock.acquire(
            timeout=self._timeout
        )
        if not acquired:
            logger.warning("Could not lock %s within %ss", resource, self._timeout)
            raise LockTimeoutError(resource)
        try:
            yield
        finally:
            lock.release()


class _InMemorySaleSession(SaleSession):
    def __init__(self, store: "InMemoryStore", showtime: Showtime) -> None:
        self._store = store
        self._showtime = showtime
        self._sold_delta = 0
        self._staged: dict[TicketId, Ticket] = {}

    @property
    def showtime(self) -> Showtime:
        return replace(
            self._showtime, sold_tickets=self._showtime.sold_tickets + self._sold_delta
        )

    def _tickets(self) -> list[Ticket]:
        committed = {
            ticket.id: ticket
            for ticket in self._store.list_tickets_for_showtime(self._showtime.id)
        }
        committed.update(self._staged)
        return list(committed.values())

    def is_seat_taken(self, seat_number: SeatNumber) -> bool:
        return any(
            ticket.is_purchased and ticket.seat_number == seat_number
            for ticket in self._tickets()
        )

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        for ticket in self._tickets():
            if ticket.id == ticket_id:
                return ticket
        return None

    def record_purchase(
        self, seat_number: SeatNumber, customer_name: str, customer_email: CustomerEmail
    ) -> Ticket:
        ticket = Ticket(
            id=TicketId(uuid.uuid4()),
            showtime_id=self._showtime.id,
            seat_number=seat_number,
            customer_name=customer_name,
            customer_email=customer_email,
            status=TicketStatus.PURCHASED,
            price=self._showtime.price,
            created_at=self._store.now(),
        )
        self._staged[ticket.id] = ticket
        self._sold_delta += 1
        return ticket

    def record_cancellation(self, ticket: Ticket) -> Ticket:
        cancelled = replace(ticket, status=TicketStatus.CANCELLED)
        self._staged[ticket.id] = cancelled
        self._sold_delta -= 1
        return cancelled

    def commit(self) -> None:
        self._store._apply(self._showtime.id, self._staged, self._sold_delta)


class InMemoryStore(CatalogStore, ShowtimeStore, TicketStore):
    """Single-process store implementing every booking store interface.

    ``lock_timeout`` is in seconds; None waits forever.
    """

    def __init__(self, lock_timeout: float | None = 5.0) -> None:
        self._state = threading.RLock()
        self._showtime_locks = _KeyedLocks(lock_timeout)
        self._theater_locks = _KeyedLocks(lock_timeout)
        self._movies: dict[MovieId, Movie] = {}
        self._theaters: dict[TheaterId, Theater] = {}
        self._showtimes: dict[ShowtimeId, _ShowtimeRecord] = {}
        self._tickets: dict[TicketId, Ticket] = {}

    def now(self) -> datetime:
        return datetime.now(UTC)

    # Catalog seeding

    def add_movie(self, title: str, duration_minutes: int) -> Movie:
        movie = Movie(
            id=MovieId(uuid.uuid4()), title=title, duration_minutes=duration_minutes
        )
        with self._state:
            self._movies[movie.id] = movie
        return movie

    def add_theater(self, name: str, capacity: int, is_active: bool = True) -> Theater:
        theater = Theater(
            id=TheaterId(uuid.uuid4()),
            name=name,
            capacity=Capacity(capacity),
            is_active=is_active,
        )
        with self._state:
            self._theaters[theater.id] = theater
        return theater

    def add_showtime(
        self,
        movie: Movie,
        theater: Theater,
        starts_at: datetime,
        price: Decimal = Decimal("10.00"),
    ) -> Showtime:
        """Insert a showtime without any scheduling checks (e.g. one in the past)."""
        slot = TimeSlot.for_duration(starts_at, movie.duration_minutes)
        return self.create_showtime(movie.id, theater.id, slot, Money(price))

    # CatalogStore

    def get_movie(self, movie_id: MovieId) -> Movie | None:
        with self._state:
            return self._movies.get(movie_id)

    def get_theater(self, theater_id: TheaterId) -> Theater | None:
        with self._state:
            return self._theaters.get(theater_id)

    # ShowtimeStore

    def _to_showtime(self, record: _ShowtimeRecord) -> Showtime:
        theater = self._theaters[record.theater_id]
        return Showtime(
            id=record.id,
            movie_id=record.movie_id,
            theater_id=record.theater_id,
            starts_at=record.starts_at,
            ends_at=record.ends_at,
            price=record.price,
            sold_tickets=record.sold_tickets,
            capacity=theater.capacity,
            created_at=record.created_at,
        )

    def _select(self, predicate: Callable[[_ShowtimeRecord], bool]) -> list[Showtime]:
        with self._state:
            records = sorted(
                (record for record in self._showtimes.values() if predicate(record)),
                key=lambda record: record.starts_at,
            )
            return [self._to_showtime(record) for record in records]

    def get_showtime(self, showtime_id: ShowtimeId) -> Showtime | None:
        with self._state:
            record = self._showtimes.get(showtime_id)
            return None if record is None else self._to_showtime(record)

    def lock_theater_schedule(
        self, theater_id: TheaterId
    ) -> AbstractContextManager[None]:
        return self._theater_locks.hold(theater_id.value, f"theater {theater_id.value}")

    @contextmanager
    def lock_showtime_for_change(self, showtime_id: ShowtimeId) -> Iterator[Showtime | None]:
        with self._showtime_locks.hold(showtime_id.value, f"showtime {showtime_id.value}"):
            yield self.get_showtime(showtime_id)

    def find_conflicting_showtime(
        self,
        theater_id: TheaterId,
        slot: TimeSlot,
        exclude_showtime_id: ShowtimeId | None = None,
    ) -> Showtime | None:
        conflicts = self._select(
            lambda record: record.theater_id == theater_id
            and record.id != exclude_showtime_id
            and slot.overlaps(TimeSlot(record.starts_at, record.ends_at))
        )
        return conflicts[0] if conflicts else None

    def create_showtime(
        self, movie_id: MovieId, theater_id: TheaterId, slot: TimeSlot, price: Money
    ) -> Showtime:
        record = _ShowtimeRecord(
            id=ShowtimeId(uuid.uuid4()),
            movie_id=movie_id,
            theater_id=theater_id,
            starts_at=slot.starts_at,
            ends_at=slot.ends_at,
            price=price,
            sold_tickets=0,
            created_at=self.now(),
        )
        with self._state:
            self._showtimes[record.id] = record
            return self._to_showtime(record)

    def update_showtime(
        self,
        showtime_id: ShowtimeId,
        movie_id: MovieId,
        theater_id: TheaterId,
        slot: TimeSlot,
        price: Money,
    ) -> Showtime | None:
        with self._state:
            record = self._showtimes.get(showtime_id)
            if record is None:
                return None
            record.movie_id = movie_id
            record.theater_id = theater_id
            record.starts_at = slot.starts_at
            record.ends_at = slot.ends_at
            record.price = price
            return self._to_showtime(record)

    def delete_showtime(self, showtime_id: ShowtimeId) -> bool:
        with self._state:
            record = self._showtimes.get(showtime_id)
            if record is None or record.sold_tickets > 0:
                return False
            del self._showtimes[showtime_id]
            for ticket_id in [
                t.id for t in self._tickets.values() if t.showtime_id == showtime_id
            ]:
                del self._tickets[ticket_id]
            return True

    def list_upcoming_showtimes(self, now: datetime, limit: int) -> list[Showtime]:
        return self._select(lambda record: record.starts_at > now)[:limit]

    def list_showtimes_for_theater(self, theater_id: TheaterId) -> list[Showtime]:
        return self._select(lambda record: record.theater_id == theater_id)

    def list_showtimes_for_movie(self, movie_id: MovieId) -> list[Showtime]:
        return self._select(lambda record: record.movie_id == movie_id)

    def theater_has_showtime_above(self, theater_id: TheaterId, sold: int) -> bool:
        return bool(
            self._select(
                lambda record: record.theater_id == theater_id
                and record.sold_tickets > sold
            )
        )

    # TicketStore

    @contextmanager
    def lock_showtime(self, showtime_id: ShowtimeId) -> Iterator[SaleSession | None]:
        with self._showtime_locks.hold(showtime_id.value, f"showtime {showtime_id.value}"):
            # Read only once the lock is held.
            showtime = self.get_showtime(showtime_id)
            if showtime is None:
                yield None
                return
            session = _InMemorySaleSession(self, showtime)
            yield session
            session.commit()

    def _apply(
        self, showtime_id: ShowtimeId, tickets: dict[TicketId, Ticket], sold_delta: int
    ) -> None:
        with self._state:
            self._tickets.update(tickets)
            self._showtimes[showtime_id].sold_tickets += sold_delta

    def get_ticket(self, ticket_id: TicketId) -> Ticket | None:
        with self._state:
            return self._tickets.get(ticket_id)

    def _select_tickets(self, predicate: Callable[[Ticket], bool]) -> list[Ticket]:
        with self._state:
            return sorted(
                (ticket for ticket in self._tickets.values() if predicate(ticket)),
                key=lambda ticket: ticket.created_at,
                reverse=True,
            )

    def list_tickets_for_showtime(self, showtime_id: ShowtimeId) -> list[Ticket]:
        return self._select_tickets(lambda ticket: ticket.showtime_id == showtime_id)

    def list_tickets_for_customer(self, email: CustomerEmail) -> list[Ticket]:
        return self._select_tickets(lambda ticket: ticket.customer_email == email)

    def occupied_seats(self, showtime_id: ShowtimeId) -> list[SeatNumber]:
        seats = [
            ticket.seat_number
            for ticket in self._select_tickets(
                lambda ticket: ticket.showtime_id == showtime_id and ticket.is_purchased
            )
        ]
        return sorted(seats, key=lambda seat: seat.value)

    def delete_ticket(self, ticket_id: TicketId) -> bool:
        with self._state:
            ticket = self._tickets.get(ticket_id)
            if ticket is None or ticket.is_purchased:
                return False
            del self._tickets[ticket_id]
            return True
