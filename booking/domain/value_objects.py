"""Domain primitives that enforce validity at creation time."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Self
from uuid import UUID

SEAT_NUMBER_PATTERN = re.compile(r"[A-Z]{1,2}-\d{1,3}")
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")


@dataclass(frozen=True)
class MovieId:
    """Unique identifier for a Movie."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class TheaterId:
    """Unique identifier for a Theater."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class ShowtimeId:
    """Unique identifier for a Showtime."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class TicketId:
    """Unique identifier for a Ticket."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


@dataclass(frozen=True)
class SeatNumber:
    """Seat label: one or two letters, a hyphen, one to three digits (``BB-123``)."""

    value: str

    def __post_init__(self) -> None:
        if not SEAT_NUMBER_PATTERN.fullmatch(self.value):
            raise ValueError(f"Invalid seat number: {self.value!r}")

    @classmethod
    def parse(cls, raw: str) -> Self:
        return cls(value=raw.strip().upper())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CustomerEmail:
    """Normalized (trimmed, lower-cased) customer email address."""

    value: str

    def __post_init__(self) -> None:
        if not EMAIL_PATTERN.fullmatch(self.value):
            raise ValueError("Invalid email address")

    @classmethod
    def parse(cls, raw: str) -> Self:
        return cls(value=raw.strip().lower())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TimeSlot:
    """Half-open screening interval ``[starts_at, ends_at)``.

    Two slots that merely touch (one ends exactly when the other starts)
    do not overlap.
    """

    starts_at: datetime
    ends_at: datetime

    def __post_init__(self) -> None:
        if self.ends_at <= self.starts_at:
            raise ValueError("Time slot must end after it starts")

    @classmethod
    def for_duration(cls, starts_at: datetime, duration_minutes: int) -> Self:
        """Derive the slot of a screening from its start and the movie length."""
        return cls(
            starts_at=starts_at,
            ends_at=starts_at + timedelta(minutes=duration_minutes),
        )

    def overlaps(self, other: "TimeSlot") -> bool:
        return self.starts_at < other.ends_at and other.starts_at < self.ends_at
