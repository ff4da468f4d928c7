"""Unit tests for TicketSalesService.

These test admission control, cancellation and behaviour under concurrent
callers, using the in-process store.
Run with: pytest tests/test_ticket_sales_service.py -v
"""

import threading
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from booking.domain import CustomerEmail, SeatNumber, TicketStatus
from booking.domain.errors import (
    DomainError,
    InvalidCustomerNameError,
    InvalidEmailError,
    InvalidIdError,
    InvalidSeatNumberError,
    InvalidTicketStateError,
    LockTimeoutError,
    NotFoundError,
    PastOrOngoingShowtimeError,
    SeatTakenError,
    SoldOutError,
)
from booking.services import ShowtimeSchedulingService, TicketSalesService
from booking.stores.memory_store import InMemoryStore, _KeyedLocks


def _buy(sales, showtime, seat, name="Ana", email="ana@example.com"):
    return sales.purchase(str(showtime.id.value), seat, name, email)


def _purchased_count(store, showtime) -> int:
    return sum(
        1 for ticket in store.list_tickets_for_showtime(showtime.id) if ticket.is_purchased
    )


class TestPurchase:
    """Tests for TicketSalesService.purchase."""

    def test_purchase_creates_ticket_and_counts_it(self, sales, store, showtime):
        """Given a free seat, returns a purchased ticket and counts it."""
        ticket = _buy(sales, showtime, " a-1 ", email=" Ana@Example.com ")

        assert ticket.status is TicketStatus.PURCHASED
        assert ticket.seat_number.value == "A-1"
        assert ticket.customer_email.value == "ana@example.com"
        assert ticket.price == showtime.price
        assert store.get_showtime(showtime.id).sold_tickets == 1

    def test_same_seat_twice_is_rejected(self, sales, store, showtime):
        """Given a sold seat, a second purchase raises SeatTakenError."""
        _buy(sales, showtime, "A-1")

        with pytest.raises(SeatTakenError):
            _buy(sales, showtime, "A-1", name="Ben", email="ben@example.com")
        assert store.get_showtime(showtime.id).sold_tickets == 1

    def test_full_showtime_is_sold_out(self, sales, store, showtime):
        """Given a full showtime, raises SoldOutError."""
        _buy(sales, showtime, "A-1")
        _buy(sales, showtime, "A-2")

        with pytest.raises(SoldOutError):
            _buy(sales, showtime, "A-3")
        assert store.get_showtime(showtime.id).sold_tickets == 2

    def test_started_showtime_rejects_sales(self, sales, store, movie, theater, clock):
        """Given a started showtime, raises PastOrOngoingShowtimeError."""
        started = store.add_showtime(movie, theater, clock.now - timedelta(minutes=5))

        with pytest.raises(PastOrOngoingShowtimeError):
            _buy(sales, started, "A-1")
        assert store.get_showtime(started.id).sold_tickets == 0

    def test_price_is_snapshotted_at_purchase(self, sales, scheduling, store, showtime):
        """Given a later price change, the ticket keeps its purchase price."""
        ticket = _buy(sales, showtime, "A-1")

        scheduling.update_showtime(str(showtime.id.value), price=Decimal("99.00"))

        assert store.get_ticket(ticket.id).price == showtime.price

    def test_unknown_showtime_is_not_found(self, sales):
        """Given an unknown showtime id, raises NotFoundError."""
        with pytest.raises(NotFoundError):
            sales.purchase(str(uuid4()), "A-1", "Ana", "ana@example.com")

    @pytest.mark.parametrize(
        ("showtime_id", "seat", "name", "email", "error"),
        [
            ("bad", "A-1", "Ana", "ana@example.com", InvalidIdError),
            (None, "A1", "Ana", "ana@example.com", InvalidSeatNumberError),
            (None, "A-1", "Ana", "ana.example.com", InvalidEmailError),
            (None, "A-1", "   ", "ana@example.com", InvalidCustomerNameError),
        ],
    )
    def test_malformed_input_is_rejected_without_side_effects(
        self, sales, store, showtime, showtime_id, seat, name, email, error
    ):
        """Given malformed input, raises a validation error and sells nothing."""
        with pytest.raises(error):
            sales.purchase(showtime_id or str(showtime.id.value), seat, name, email)
        assert store.get_showtime(showtime.id).sold_tickets == 0


class TestCancel:
    """Tests for TicketSalesService.cancel."""

    def test_cancel_frees_the_seat(self, sales, store, availability, showtime):
        """Given a purchased ticket, cancelling frees its seat and count."""
        ticket = _buy(sales, showtime, "A-1")

        cancelled = sales.cancel(str(ticket.id.value))

        assert cancelled.status is TicketStatus.CANCELLED
        assert store.get_ticket(ticket.id).status is TicketStatus.CANCELLED
        assert store.get_showtime(showtime.id).sold_tickets == 0
        assert availability.occupied_seats(str(showtime.id.value)) == []

    def test_cancelled_seat_can_be_bought_again(self, sales, store, showtime):
        """Given a cancelled seat, a new purchase succeeds."""
        first = _buy(sales, showtime, "A-1")
        sales.cancel(str(first.id.value))

        second = _buy(sales, showtime, "A-1", name="Ben", email="ben@example.com")

        assert second.id != first.id
        assert store.get_showtime(showtime.id).sold_tickets == 1

    def test_second_cancel_is_rejected_without_effect(self, sales, store, showtime):
        """Given a cancelled ticket, cancelling again raises InvalidTicketStateError."""
        ticket = _buy(sales, showtime, "A-1")
        _buy(sales, showtime, "A-2")
        sales.cancel(str(ticket.id.value))

        with pytest.raises(InvalidTicketStateError):
            sales.cancel(str(ticket.id.value))
        assert store.get_showtime(showtime.id).sold_tickets == 1

    def test_cancel_after_start_is_rejected(self, sales, store, showtime, clock):
        """Given a started showtime, cancelling raises PastOrOngoingShowtimeError."""
        ticket = _buy(sales, showtime, "A-1")
        clock.advance(days=2)

        with pytest.raises(PastOrOngoingShowtimeError):
            sales.cancel(str(ticket.id.value))
        assert store.get_ticket(ticket.id).is_purchased

    def test_unknown_ticket_is_not_found(self, sales):
        """Given an unknown ticket id, raises NotFoundError."""
        with pytest.raises(NotFoundError):
            sales.cancel(str(uuid4()))


class TestRemoveTicket:
    """Tests for ticket removal."""

    def test_purchased_ticket_is_cancelled_then_deleted(self, sales, store, showtime):
        """Given a purchased ticket, removal frees the seat and deletes it."""
        ticket = _buy(sales, showtime, "A-1")

        sales.remove_ticket(str(ticket.id.value))

        assert store.get_ticket(ticket.id) is None
        assert store.get_showtime(showtime.id).sold_tickets == 0

    def test_ticket_of_started_showtime_cannot_be_removed(
        self, sales, store, showtime, clock
    ):
        """Given a started showtime, removal raises PastOrOngoingShowtimeError."""
        ticket = _buy(sales, showtime, "A-1")
        clock.advance(days=2)

        with pytest.raises(PastOrOngoingShowtimeError):
            sales.remove_ticket(str(ticket.id.value))
        assert store.get_ticket(ticket.id) is not None


class TestCustomerTickets:
    """Tests for per-customer listings."""

    def test_lookup_is_case_insensitive(self, sales, showtime):
        """Given an email in another case, returns the customer's tickets."""
        ticket = _buy(sales, showtime, "A-1", email="Ana@Example.com")

        assert sales.tickets_for_customer("ANA@example.com") == [ticket]

    def test_malformed_email_is_rejected(self, sales):
        """Given a malformed email, raises InvalidEmailError."""
        with pytest.raises(InvalidEmailError):
            sales.tickets_for_customer("nobody")


def _race(count: int, attempt) -> list[object]:
    """Run ``attempt(i)`` on ``count`` threads released at the same instant."""
    barrier = threading.Barrier(count)

    def run(i: int):
        barrier.wait()
        try:
            return attempt(i)
        except DomainError as exc:
            return exc

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(run, range(count)))


class TestConcurrentSales:
    """Admission control under concurrent callers."""

    def test_capacity_two_admits_exactly_two(self, sales, store, showtime):
        """Given three buyers for two seats, exactly one is sold out."""
        seats = ["A-1", "A-2", "A-3"]

        results = _race(3, lambda i: _buy(sales, showtime, seats[i]))

        sold_out = [r for r in results if isinstance(r, SoldOutError)]
        assert len(sold_out) == 1
        assert store.get_showtime(showtime.id).sold_tickets == 2
        assert _purchased_count(store, showtime) == 2

    def test_many_buyers_never_oversell(self, store, movie, clock):
        """Given forty buyers for ten seats, exactly ten are sold."""
        theater = store.add_theater("Big", capacity=10)
        showtime = store.add_showtime(movie, theater, clock.now + timedelta(days=1))
        sales = TicketSalesService(store, clock=clock)

        results = _race(40, lambda i: _buy(sales, showtime, f"B-{i + 1}"))

        sold = [r for r in results if not isinstance(r, DomainError)]
        assert len(sold) == 10
        assert all(isinstance(r, SoldOutError) for r in results if r not in sold)
        assert store.get_showtime(showtime.id).sold_tickets == 10
        assert _purchased_count(store, showtime) == 10

    def test_one_seat_goes_to_exactly_one_buyer(self, store, movie, clock):
        """Given twenty buyers for one seat, exactly one gets it."""
        theater = store.add_theater("Big", capacity=100)
        showtime = store.add_showtime(movie, theater, clock.now + timedelta(days=1))
        sales = TicketSalesService(store, clock=clock)

        results = _race(
            20, lambda i: _buy(sales, showtime, "C-7", email=f"u{i}@example.com")
        )

        assert sum(1 for r in results if not isinstance(r, DomainError)) == 1
        assert sum(1 for r in results if isinstance(r, SeatTakenError)) == 19
        assert [s.value for s in store.occupied_seats(showtime.id)] == ["C-7"]

    def test_interleaved_purchases_and_cancels_keep_counter_consistent(
        self, store, movie, clock
    ):
        """Given racing purchases and cancels, the counter matches the tickets."""
        theater = store.add_theater("Big", capacity=50)
        showtime = store.add_showtime(movie, theater, clock.now + timedelta(days=1))
        sales = TicketSalesService(store, clock=clock)
        bought = [_buy(sales, showtime, f"D-{i + 1}") for i in range(10)]

        def attempt(i: int):
            if i < 10:
                return sales.cancel(str(bought[i].id.value))
            return _buy(sales, showtime, f"E-{i}")

        _race(30, attempt)

        assert store.get_showtime(showtime.id).sold_tickets == _purchased_count(
            store, showtime
        )
        assert _purchased_count(store, showtime) == 20

    def test_busy_showtime_times_out_as_retryable_error(self, movie, clock):
        """Given a held showtime lock, a purchase raises a retryable LockTimeoutError."""
        store = InMemoryStore(lock_timeout=0.05)
        theater = store.add_theater("Hall", capacity=5)
        showtime = store.add_showtime(movie, theater, clock.now + timedelta(days=1))
        sales = TicketSalesService(store, clock=clock)

        with store.lock_showtime(showtime.id):
            result = _race(1, lambda i: _buy(sales, showtime, "A-1"))[0]

        assert isinstance(result, LockTimeoutError)
        assert result.retryable
        assert store.get_showtime(showtime.id).sold_tickets == 0

    def test_other_showtimes_are_not_blocked(self, movie, clock):
        """Given one held showtime lock, another showtime still sells."""
        store = InMemoryStore(lock_timeout=0.05)
        theater = store.add_theater("Hall", capacity=5)
        busy = store.add_showtime(movie, theater, clock.now + timedelta(days=1))
        free = store.add_showtime(movie, theater, clock.now + timedelta(days=2))
        sales = TicketSalesService(store, clock=clock)

        with store.lock_showtime(busy.id):
            result = _race(1, lambda i: _buy(sales, free, "A-1"))[0]

        assert not isinstance(result, DomainError)

    def test_failed_check_rolls_back_staged_writes(self, store, showtime):
        """Given an error inside the lock, staged writes are discarded."""
        with pytest.raises(SeatTakenError):
            with store.lock_showtime(showtime.id) as sale:
                sale.record_purchase(
                    SeatNumber("A-1"), "Ana", CustomerEmail("ana@example.com")
                )
                raise SeatTakenError("A-1")

        assert store.get_showtime(showtime.id).sold_tickets == 0
        assert store.list_tickets_for_showtime(showtime.id) == []


class TestKeyedLocks:
    """Tests for the in-process per-key locks."""

    def test_lock_is_dropped_after_release(self):
        """Given a released key, no lock entry remains."""
        locks = _KeyedLocks(timeout=1)
        key = uuid4()

        with locks.hold(key, "showtime x"):
            assert len(locks) == 1

        assert len(locks) == 0

    def test_waiter_keeps_the_lock_alive(self):
        """Given a thread waiting on a held key, both share one lock."""
        locks = _KeyedLocks(timeout=5)
        key = uuid4()
        order = []

        def wait_for_key():
            with locks.hold(key, "showtime x"):
                order.append("waiter")

        with ThreadPoolExecutor(max_workers=1) as pool:
            with locks.hold(key, "showtime x"):
                waiting = pool.submit(wait_for_key)
                done, _ = wait([waiting], timeout=0.1)
                assert not done
                order.append("holder")
            waiting.result(timeout=5)

        assert order == ["holder", "waiter"]
        assert len(locks) == 0

    def test_many_showtimes_leave_no_locks_behind(self, store, movie, theater, clock):
        """Given sales on many showtimes, the store keeps no lock entries."""
        sales = TicketSalesService(store, clock=clock)
        for day in range(1, 21):
            showtime = store.add_showtime(movie, theater, clock.now + timedelta(days=day))
            _buy(sales, showtime, "A-1")

        assert len(store._showtime_locks) == 0


class TestConcurrentScheduling:
    """Scheduling under concurrent callers."""

    def test_only_one_of_two_overlapping_creations_succeeds(
        self, store, movie, theater, clock
    ):
        """Given racing overlapping creates, exactly one succeeds."""
        scheduling = ShowtimeSchedulingService(store, store, clock=clock)
        starts_at = clock.now + timedelta(days=1)

        results = _race(
            8,
            lambda i: scheduling.create_showtime(
                str(movie.id.value),
                str(theater.id.value),
                starts_at + timedelta(minutes=i),
                Decimal("10"),
            ),
        )

        assert sum(1 for r in results if not isinstance(r, DomainError)) == 1
        assert len(store.list_showtimes_for_theater(theater.id)) == 1
