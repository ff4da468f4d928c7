"""Serializers for request parsing and for rendering domain models.

Request serializers only check shape and types. Seat, email and price rules
belong to the services so every caller gets the same domain errors.
"""

from rest_framework import serializers


class ShowtimeCreateSerializer(serializers.Serializer):
    movie_id = serializers.CharField()
    theater_id = serializers.CharField()
    starts_at = serializers.DateTimeField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)


class ShowtimeUpdateSerializer(serializers.Serializer):
    movie_id = serializers.CharField(required=False)
    theater_id = serializers.CharField(required=False)
    starts_at = serializers.DateTimeField(required=False)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False)

    def validate(self, attrs):
        if "ends_at" in self.initial_data:
            raise serializers.ValidationError(
                {"ends_at": "End time is derived from the movie duration."}
            )
        return attrs


class TicketPurchaseSerializer(serializers.Serializer):
    seat_number = serializers.CharField(max_length=16)
    customer_name = serializers.CharField(max_length=255)
    customer_email = serializers.CharField(max_length=254)


class ShowtimeSerializer(serializers.Serializer):
    """Serializer for Showtime domain model."""

    id = serializers.UUIDField(source="id.value")
    movie_id = serializers.UUIDField(source="movie_id.value")
    theater_id = serializers.UUIDField(source="theater_id.value")
    starts_at = serializers.DateTimeField()
    ends_at = serializers.DateTimeField()
    price = serializers.DecimalField(
        source="price.amount", max_digits=10, decimal_places=2
    )
    sold_tickets = serializers.IntegerField()
    capacity = serializers.IntegerField(source="capacity.value")


class TicketSerializer(serializers.Serializer):
    """Serializer for Ticket domain model."""

    id = serializers.UUIDField(source="id.value")
    showtime_id = serializers.UUIDField(source="showtime_id.value")
    seat_number = serializers.CharField(source="seat_number.value")
    customer_name = serializers.CharField()
    customer_email = serializers.CharField(source="customer_email.value")
    status = serializers.CharField(source="status.value")
    price = serializers.DecimalField(
        source="price.amount", max_digits=10, decimal_places=2
    )
    created_at = serializers.DateTimeField()


class AvailabilitySerializer(serializers.Serializer):
    """Serializer for Availability domain model."""

    showtime_id = serializers.UUIDField(source="showtime_id.value")
    total_capacity = serializers.IntegerField(source="capacity")
    sold_tickets = serializers.IntegerField(source="sold")
    available_seats = serializers.IntegerField(source="available")
    is_sold_out = serializers.BooleanField(source="sold_out")


class CapacityCheckQuerySerializer(serializers.Serializer):
    capacity = serializers.IntegerField()
