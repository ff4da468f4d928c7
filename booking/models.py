"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models
from django.db.models import F, Q


class Movie(models.Model):
    """Persistence model for catalog movies."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    duration_minutes = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title"]

    def __str__(self) -> str:
        return self.title


class Theater(models.Model):
    """Persistence model for catalog theaters."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    capacity = models.PositiveIntegerField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Showtime(models.Model):
    """Persistence model for scheduled screenings.

    ``sold_tickets`` is only ever written inside the locked purchase/cancel
    transaction, together with the matching Ticket row.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    movie = models.ForeignKey(Movie, on_delete=models.PROTECT, related_name="showtimes")
    theater = models.ForeignKey(
        Theater, on_delete=models.PROTECT, related_name="showtimes"
    )
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    sold_tickets = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["theater", "starts_at"]),
            models.Index(fields=["movie", "starts_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(ends_at__gt=F("starts_at")),
                name="showtime_ends_after_start",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.movie.title} @ {self.theater.name} - {self.starts_at}"


class TicketStatus(models.TextChoices):
    RESERVED = "reserved", "Reserved"
    PURCHASED = "purchased", "Purchased"
    CANCELLED = "cancelled", "Cancelled"


class Ticket(models.Model):
    """Persistence model for sold seats."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    showtime = models.ForeignKey(
        Showtime, on_delete=models.CASCADE, related_name="tickets"
    )
    seat_number = models.CharField(max_length=6)
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField()
    status = models.CharField(
        max_length=16, choices=TicketStatus.choices, default=TicketStatus.PURCHASED
    )
    price = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["showtime", "status"]),
            models.Index(fields=["customer_email"]),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["showtime", "seat_number"],
                condition=Q(status="purchased"),
                name="unique_purchased_seat_per_showtime",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.seat_number} ({self.status})"
