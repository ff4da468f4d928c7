"""HTTP tests for the booking API.

These go through the URL conf, the views and the Django stores, and check
status codes and error bodies.
Run with: pytest tests/test_booking_api.py -v
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from django.urls import reverse

from booking import models


def _purchase(api_client, showtime_id, seat, email="ana@example.com"):
    return api_client.post(
        reverse("showtime-tickets", args=[showtime_id]),
        {"seat_number": seat, "customer_name": "Ana", "customer_email": email},
    )


@pytest.mark.django_db
class TestShowtimeEndpoints:
    """Tests for /api/showtimes."""

    def test_create_showtime(self, api_client, db_movie, db_theater, db_showtime):
        """Given a free slot, returns 201 with the new showtime."""
        starts_at = db_showtime.ends_at + timedelta(hours=1)

        response = api_client.post(
            reverse("showtime-list"),
            {
                "movie_id": str(db_movie.pk),
                "theater_id": str(db_theater.pk),
                "starts_at": starts_at.isoformat(),
                "price": "11.00",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["price"] == "11.00"
        assert data["sold_tickets"] == 0
        assert data["capacity"] == 2
        assert models.Showtime.objects.count() == 2

    def test_overlapping_showtime_is_a_conflict(
        self, api_client, db_movie, db_theater, db_showtime
    ):
        """Given an overlapping slot, returns 409 SCHEDULING_CONFLICT."""
        response = api_client.post(
            reverse("showtime-list"),
            {
                "movie_id": str(db_movie.pk),
                "theater_id": str(db_theater.pk),
                "starts_at": (db_showtime.starts_at + timedelta(minutes=30)).isoformat(),
                "price": "11.00",
            },
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SCHEDULING_CONFLICT"

    def test_ends_at_cannot_be_set(self, api_client, db_showtime):
        """Given an ends_at field, returns 400."""
        response = api_client.patch(
            reverse("showtime-detail", args=[db_showtime.pk]),
            {"ends_at": (db_showtime.ends_at + timedelta(hours=1)).isoformat()},
        )

        assert response.status_code == 400

    def test_patch_price(self, api_client, db_showtime):
        """Given a new price, returns 200 with it."""
        response = api_client.patch(
            reverse("showtime-detail", args=[db_showtime.pk]), {"price": "14.00"}
        )

        assert response.status_code == 200
        assert response.json()["price"] == "14.00"

    def test_sold_showtime_cannot_move(self, api_client, db_showtime):
        """Given a sold ticket, moving the start returns 409 SHOWTIME_HAS_SOLD_TICKETS."""
        _purchase(api_client, db_showtime.pk, "A-1")

        response = api_client.patch(
            reverse("showtime-detail", args=[db_showtime.pk]),
            {"starts_at": (db_showtime.starts_at + timedelta(days=1)).isoformat()},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SHOWTIME_HAS_SOLD_TICKETS"

    def test_list_upcoming(self, api_client, db_showtime):
        """Given one future showtime, lists it."""
        response = api_client.get(reverse("showtime-list"))

        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [str(db_showtime.pk)]

    def test_delete_unsold_showtime(self, api_client, db_showtime):
        """Given an unsold showtime, returns 204 and removes it."""
        response = api_client.delete(reverse("showtime-detail", args=[db_showtime.pk]))

        assert response.status_code == 204
        assert not models.Showtime.objects.filter(pk=db_showtime.pk).exists()

    def test_unknown_showtime_is_404(self, api_client):
        """Given an unknown id, returns 404 NOT_FOUND."""
        response = api_client.get(reverse("showtime-detail", args=[uuid4()]))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_malformed_id_is_400(self, api_client):
        """Given a malformed id, returns 400 INVALID_ID."""
        response = api_client.get(reverse("showtime-detail", args=["nope"]))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ID"

    def test_theater_and_movie_listings(self, api_client, db_movie, db_theater, db_showtime):
        """Given one showtime, both listings return it."""
        by_theater = api_client.get(reverse("theater-showtimes", args=[db_theater.pk]))
        by_movie = api_client.get(reverse("movie-showtimes", args=[db_movie.pk]))

        assert [s["id"] for s in by_theater.json()] == [str(db_showtime.pk)]
        assert [s["id"] for s in by_movie.json()] == [str(db_showtime.pk)]


@pytest.mark.django_db
class TestTicketEndpoints:
    """Tests for purchase, cancel and ticket lookups."""

    def test_purchase(self, api_client, db_showtime):
        """Given a free seat, returns 201 with the normalized seat."""
        response = _purchase(api_client, db_showtime.pk, "a-1")

        assert response.status_code == 201
        data = response.json()
        assert data["seat_number"] == "A-1"
        assert data["status"] == "purchased"
        assert data["price"] == "12.50"

    def test_seat_taken_is_409(self, api_client, db_showtime):
        """Given a sold seat, returns 409 SEAT_TAKEN."""
        _purchase(api_client, db_showtime.pk, "A-1")

        response = _purchase(api_client, db_showtime.pk, "A-1", email="ben@example.com")

        assert response.status_code == 409
        assert response.json()["error"] == {
            "code": "SEAT_TAKEN",
            "message": "Seat A-1 is already occupied",
        }

    def test_sold_out_is_409(self, api_client, db_showtime):
        """Given a full showtime, returns 409 SOLD_OUT."""
        _purchase(api_client, db_showtime.pk, "A-1")
        _purchase(api_client, db_showtime.pk, "A-2")

        response = _purchase(api_client, db_showtime.pk, "A-3")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SOLD_OUT"

    @pytest.mark.parametrize(
        ("seat", "email", "code"),
        [("A1", "ana@example.com", "INVALID_SEAT_NUMBER"), ("A-1", "ana", "INVALID_EMAIL")],
    )
    def test_malformed_purchase_is_400(self, api_client, db_showtime, seat, email, code):
        """Given a malformed seat or email, returns 400 with its code."""
        response = _purchase(api_client, db_showtime.pk, seat, email=email)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == code

    def test_cancel_then_cancel_again(self, api_client, db_showtime):
        """Given a cancelled ticket, a second cancel returns 409."""
        ticket_id = _purchase(api_client, db_showtime.pk, "A-1").json()["id"]

        first = api_client.post(reverse("ticket-cancel", args=[ticket_id]))
        second = api_client.post(reverse("ticket-cancel", args=[ticket_id]))

        assert first.status_code == 200
        assert first.json()["status"] == "cancelled"
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "INVALID_TICKET_STATE"

    def test_ticket_detail_and_delete(self, api_client, db_showtime):
        """Given a ticket, it can be read and then deleted."""
        ticket_id = _purchase(api_client, db_showtime.pk, "A-1").json()["id"]

        assert api_client.get(reverse("ticket-detail", args=[ticket_id])).status_code == 200
        assert api_client.delete(reverse("ticket-detail", args=[ticket_id])).status_code == 204
        assert api_client.get(reverse("ticket-detail", args=[ticket_id])).status_code == 404

    def test_customer_tickets(self, api_client, db_showtime):
        """Given an email in another case, lists the customer's tickets."""
        _purchase(api_client, db_showtime.pk, "A-1")

        response = api_client.get(reverse("ticket-list"), {"email": "ANA@example.com"})

        assert response.status_code == 200
        assert [t["seat_number"] for t in response.json()] == ["A-1"]

    def test_showtime_ticket_listing(self, api_client, db_showtime):
        """Given one sale, lists one ticket."""
        _purchase(api_client, db_showtime.pk, "A-1")

        response = api_client.get(reverse("showtime-tickets", args=[db_showtime.pk]))

        assert len(response.json()) == 1


@pytest.mark.django_db
class TestAvailabilityEndpoints:
    """Tests for availability, occupied seats and capacity checks."""

    def test_availability(self, api_client, db_showtime):
        """Given one sale, returns the availability body."""
        _purchase(api_client, db_showtime.pk, "A-1")

        response = api_client.get(reverse("showtime-availability", args=[db_showtime.pk]))

        assert response.status_code == 200
        assert response.json() == {
            "showtime_id": str(db_showtime.pk),
            "total_capacity": 2,
            "sold_tickets": 1,
            "available_seats": 1,
            "is_sold_out": False,
        }

    def test_occupied_seats(self, api_client, db_showtime):
        """Given two sales, returns seats in label order."""
        _purchase(api_client, db_showtime.pk, "B-2")
        _purchase(api_client, db_showtime.pk, "A-4")

        response = api_client.get(
            reverse("showtime-occupied-seats", args=[db_showtime.pk])
        )

        assert response.json()["seats"] == ["A-4", "B-2"]

    def test_capacity_check(self, api_client, db_theater, db_showtime):
        """Given two sales, capacity 1 is refused and 2 allowed."""
        _purchase(api_client, db_showtime.pk, "A-1")
        _purchase(api_client, db_showtime.pk, "A-2")
        url = reverse("theater-capacity-check", args=[db_theater.pk])

        refused = api_client.get(url, {"capacity": 1})
        allowed = api_client.get(url, {"capacity": 2})

        assert refused.json()["allowed"] is False
        assert allowed.json() == {
            "theater_id": str(db_theater.pk),
            "proposed_capacity": 2,
            "allowed": True,
        }

    def test_capacity_check_requires_capacity(self, api_client, db_theater):
        """Given no capacity parameter, returns 400."""
        response = api_client.get(reverse("theater-capacity-check", args=[db_theater.pk]))

        assert response.status_code == 400
