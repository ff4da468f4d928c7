"""Showtime scheduling service - all scheduling rules live here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

A showtime occupies the half-open interval ``[starts_at, ends_at)`` of its
theater, where ``ends_at`` is always derived from the movie duration. The
conflict check and the write run under the theater's schedule lock so two
concurrent schedulers cannot both claim the same interval. Update and delete
also hold the showtime's sale lock, so their sold-ticket checks cannot be
overturned by a purchase in flight.
"""

import logging
from collections.abc import Callable
from contextlib import nullcontext
from datetime import datetime
from decimal import Decimal

from django.utils import timezone

from booking.conf import booking_settings
from booking.domain import (
    Movie,
    MovieId,
    Showtime,
    ShowtimeId,
    Theater,
    TheaterId,
    TimeSlot,
)
from booking.domain.errors import (
    AlreadyStartedError,
    NotFoundError,
    PastDateError,
    SchedulingConflictError,
    ShowtimeHasSoldTicketsError,
    TheaterInactiveError,
)
from booking.services.validation import (
    parse_movie_id,
    parse_price,
    parse_showtime_id,
    parse_theater_id,
)
from booking.stores.interfaces import CatalogStore, ShowtimeStore

logger = logging.getLogger(__name__)


class ShowtimeSchedulingService:
    """Service for creating, moving and removing showtimes."""

    def __init__(
        self,
        showtimes: ShowtimeStore,
        catalog: CatalogStore,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._showtimes = showtimes
        self._catalog = catalog
        self._clock = clock

    def find_conflict(
        self,
        theater_id: TheaterId,
        starts_at: datetime,
        ends_at: datetime,
        exclude_showtime_id: ShowtimeId | None = None,
    ) -> Showtime | None:
        """Return a showtime of the theater overlapping ``[starts_at, ends_at)``.

        Back-to-back showtimes do not conflict.
        """
        slot = TimeSlot(starts_at=starts_at, ends_at=ends_at)
        return self._showtimes.find_conflicting_showtime(
            theater_id, slot, exclude_showtime_id
        )

    def get_showtime(self, showtime_id: str) -> Showtime:
        """Return a showtime by ID.

        Raises:
            InvalidIdError: If the showtime_id is not a valid UUID.
            NotFoundError: If the showtime does not exist.
        """
        parsed_id = parse_showtime_id(showtime_id)
        showtime = self._showtimes.get_showtime(parsed_id)
        if showtime is None:
            raise NotFoundError("Showtime", showtime_id)
        return showtime

    def create_showtime(
        self,
        movie_id: str,
        theater_id: str,
        starts_at: datetime,
        price: Decimal,
    ) -> Showtime:
        """Schedule a new showtime.

        Raises:
            InvalidIdError: If an ID is not a valid UUID.
            InvalidPriceError: If the price is outside the accepted range.
            PastDateError: If ``starts_at`` is not in the future.
            NotFoundError: If the movie or theater does not exist.
            TheaterInactiveError: If the theater is not active.
            SchedulingConflictError: If the theater is busy during the slot.
        """
        parsed_movie_id = parse_movie_id(movie_id)
        parsed_theater_id = parse_theater_id(theater_id)
        money = parse_price(price)
        if starts_at <= self._clock():
            raise PastDateError()

        movie = self._require_movie(parsed_movie_id)
        theater = self._require_active_theater(parsed_theater_id)
        slot = TimeSlot.for_duration(starts_at, movie.duration_minutes)

        with self._showtimes.lock_theater_schedule(theater.id):
            self._ensure_no_conflict(theater.id, slot)
            showtime = self._showtimes.create_showtime(movie.id, theater.id, slot, money)

        logger.info(
            "Scheduled showtime %s in theater %s for %s",
            showtime.id.value,
            theater.id.value,
            slot.starts_at.isoformat(),
        )
        return showtime

    def update_showtime(
        self,
        showtime_id: str,
        *,
        movie_id: str | None = None,
        theater_id: str | None = None,
        starts_at: datetime | None = None,
        price: Decimal | None = None,
    ) -> Showtime:
        """Change a showtime that has not started yet.

        ``ends_at`` is recomputed whenever the movie or the start changes, and
        the conflict check is repeated whenever the slot or the theater does.
        Once tickets are sold only the price may change.

        Raises:
            NotFoundError: If the showtime, movie or theater does not exist.
            AlreadyStartedError: If the showtime has already started.
            PastDateError: If the new ``starts_at`` is not in the future.
            ShowtimeHasSoldTicketsError: If the schedule of a sold showtime would change.
            TheaterInactiveError: If moving to an inactive theater.
            SchedulingConflictError: If the new slot is busy.
        """
        parsed_id = parse_showtime_id(showtime_id)
        new_movie_id = None if movie_id is None else parse_movie_id(movie_id)
        new_theater_id = None if theater_id is None else parse_theater_id(theater_id)
        new_price = None if price is None else parse_price(price)

        with self._showtimes.lock_showtime_for_change(parsed_id) as existing:
            if existing is None:
                raise NotFoundError("Showtime", showtime_id)
            now = self._clock()
            if existing.has_started(now):
                raise AlreadyStartedError(showtime_id)
            if starts_at is not None and starts_at <= now:
                raise PastDateError()

            movie_changed = new_movie_id is not None and new_movie_id != existing.movie_id
            theater_changed = (
                new_theater_id is not None and new_theater_id != existing.theater_id
            )
            start_changed = starts_at is not None and starts_at != existing.starts_at
            schedule_changed = movie_changed or theater_changed or start_changed
            if schedule_changed and existing.sold_tickets > 0:
                raise ShowtimeHasSoldTicketsError(showtime_id)

            target_movie_id = new_movie_id if movie_changed else existing.movie_id
            slot = existing.slot
            if movie_changed or start_changed:
                movie = self._require_movie(target_movie_id)
                slot = TimeSlot.for_duration(
                    starts_at if start_changed else existing.starts_at,
                    movie.duration_minutes,
                )
            target_theater_id = existing.theater_id
            if theater_changed:
                target_theater_id = self._require_active_theater(new_theater_id).id

            schedule_lock = (
                self._showtimes.lock_theater_schedule(target_theater_id)
                if schedule_changed
                else nullcontext()
            )
            with schedule_lock:
                if schedule_changed:
                    self._ensure_no_conflict(target_theater_id, slot, existing.id)
                updated = self._showtimes.update_showtime(
                    existing.id,
                    target_movie_id,
                    target_theater_id,
                    slot,
                    existing.price if new_price is None else new_price,
                )
        if updated is None:
            raise NotFoundError("Showtime", showtime_id)

        logger.info("Updated showtime %s", existing.id.value)
        return updated

    def delete_showtime(self, showtime_id: str) -> None:
        """Delete a showtime that has neither started nor sold any ticket.

        Raises:
            NotFoundError: If the showtime does not exist.
            AlreadyStartedError: If the showtime has already started.
            ShowtimeHasSoldTicketsError: If tickets were sold for it.
        """
        parsed_id = parse_showtime_id(showtime_id)
        with self._showtimes.lock_showtime_for_change(parsed_id) as showtime:
            if showtime is None:
                raise NotFoundError("Showtime", showtime_id)
            if showtime.has_started(self._clock()):
                raise AlreadyStartedError(showtime_id)
            if showtime.sold_tickets > 0:
                raise ShowtimeHasSoldTicketsError(showtime_id)
            if not self._showtimes.delete_showtime(showtime.id):
                raise NotFoundError("Showtime", showtime_id)

        logger.info("Deleted showtime %s", showtime.id.value)

    def list_upcoming_showtimes(self) -> list[Showtime]:
        """Return the next showtimes that have not started yet."""
        return self._showtimes.list_upcoming_showtimes(
            self._clock(), int(booking_settings.UPCOMING_SHOWTIMES_LIMIT)
        )

    def list_showtimes_for_theater(self, theater_id: str) -> list[Showtime]:
        parsed_id = parse_theater_id(theater_id)
        if self._catalog.get_theater(parsed_id) is None:
            raise NotFoundError("Theater", theater_id)
        return self._showtimes.list_showtimes_for_theater(parsed_id)

    def list_showtimes_for_movie(self, movie_id: str) -> list[Showtime]:
        parsed_id = parse_movie_id(movie_id)
        if self._catalog.get_movie(parsed_id) is None:
            raise NotFoundError("Movie", movie_id)
        return self._showtimes.list_showtimes_for_movie(parsed_id)

    def _require_movie(self, movie_id: MovieId) -> Movie:
        movie = self._catalog.get_movie(movie_id)
        if movie is None:
            raise NotFoundError("Movie", str(movie_id.value))
        return movie

    def _require_active_theater(self, theater_id: TheaterId) -> Theater:
        theater = self._catalog.get_theater(theater_id)
        if theater is None:
            raise NotFoundError("Theater", str(theater_id.value))
        if not theater.is_active:
            raise TheaterInactiveError(str(theater_id.value))
        return theater

    def _ensure_no_conflict(
        self,
        theater_id: TheaterId,
        slot: TimeSlot,
        exclude_showtime_id: ShowtimeId | None = None,
    ) -> None:
        conflict = self._showtimes.find_conflicting_showtime(
            theater_id, slot, exclude_showtime_id
        )
        if conflict is not None:
            logger.info(
                "Showtime slot %s-%s in theater %s conflicts with %s",
                slot.starts_at.isoformat(),
                slot.ends_at.isoformat(),
                theater_id.value,
                conflict.id.value,
            )
            raise SchedulingConflictError(str(conflict.id.value))
