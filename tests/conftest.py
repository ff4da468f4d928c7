"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from booking import models
from booking.services import (
    AvailabilityService,
    CapacityChangeGuard,
    ShowtimeSchedulingService,
    TicketSalesService,
)
from booking.stores.memory_store import InMemoryStore


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2030, 6, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(lock_timeout=5.0)


@pytest.fixture
def scheduling(store: InMemoryStore, clock: FrozenClock) -> ShowtimeSchedulingService:
    return ShowtimeSchedulingService(store, store, clock=clock)


@pytest.fixture
def sales(store: InMemoryStore, clock: FrozenClock) -> TicketSalesService:
    return TicketSalesService(store, clock=clock)


@pytest.fixture
def availability(store: InMemoryStore) -> AvailabilityService:
    return AvailabilityService(store, store)


@pytest.fixture
def capacity_guard(store: InMemoryStore) -> CapacityChangeGuard:
    return CapacityChangeGuard(store)


@pytest.fixture
def movie(store: InMemoryStore):
    return store.add_movie("Arrival", duration_minutes=120)


@pytest.fixture
def theater(store: InMemoryStore):
    return store.add_theater("Hall 1", capacity=2)


@pytest.fixture
def showtime(store: InMemoryStore, movie, theater, clock: FrozenClock):
    return store.add_showtime(movie, theater, clock.now + timedelta(days=1))


# ORM fixtures for store and HTTP tests.


@pytest.fixture
def db_movie(db) -> models.Movie:
    return models.Movie.objects.create(title="Arrival", duration_minutes=120)


@pytest.fixture
def db_theater(db) -> models.Theater:
    return models.Theater.objects.create(name="Hall 1", capacity=2)


@pytest.fixture
def db_showtime(db_movie: models.Movie, db_theater: models.Theater) -> models.Showtime:
    starts_at = timezone.now() + timedelta(days=1)
    return models.Showtime.objects.create(
        movie=db_movie,
        theater=db_theater,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(minutes=db_movie.duration_minutes),
        price=Decimal("12.50"),
    )
