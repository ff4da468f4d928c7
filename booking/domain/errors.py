"""Domain error codes for the booking module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_ID = "INVALID_ID"
    INVALID_SEAT_NUMBER = "INVALID_SEAT_NUMBER"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_CUSTOMER_NAME = "INVALID_CUSTOMER_NAME"
    INVALID_PRICE = "INVALID_PRICE"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    THEATER_INACTIVE = "THEATER_INACTIVE"
    PAST_DATE = "PAST_DATE"
    ALREADY_STARTED = "ALREADY_STARTED"
    SCHEDULING_CONFLICT = "SCHEDULING_CONFLICT"
    SHOWTIME_HAS_SOLD_TICKETS = "SHOWTIME_HAS_SOLD_TICKETS"
    PAST_OR_ONGOING_SHOWTIME = "PAST_OR_ONGOING_SHOWTIME"
    SOLD_OUT = "SOLD_OUT"
    SEAT_TAKEN = "SEAT_TAKEN"
    INVALID_TICKET_STATE = "INVALID_TICKET_STATE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @property
    def retryable(self) -> bool:
        """Only lock contention may succeed when retried with the same input."""
        return self.code is ErrorCode.LOCK_TIMEOUT


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"{entity} not found",
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, entity: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {entity} ID format",
        )
        self.entity = entity


class InvalidSeatNumberError(DomainError):
    """Raised when a seat number does not look like ``A-1`` or ``BB-123``."""

    def __init__(self, seat_number: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SEAT_NUMBER,
            message="Invalid seat number format. Use format like: A-1, B-15",
        )
        self.seat_number = seat_number


class InvalidEmailError(DomainError):
    """Raised when a customer email is malformed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_EMAIL,
            message="Invalid email format",
        )


class InvalidCustomerNameError(DomainError):
    """Raised when the customer name is blank."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_CUSTOMER_NAME,
            message="Customer name is required",
        )


class InvalidPriceError(DomainError):
    """Raised when a showtime price is outside the accepted range."""

    def __init__(self, maximum: object) -> None:
        super().__init__(
            code=ErrorCode.INVALID_PRICE,
            message=f"Price must be between 0 and {maximum}",
        )


class InvalidCapacityError(DomainError):
    """Raised when a proposed theater capacity is negative."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_CAPACITY,
            message="Capacity cannot be negative",
        )


class TheaterInactiveError(DomainError):
    """Raised when scheduling into a theater that is not active."""

    def __init__(self, theater_id: str) -> None:
        super().__init__(
            code=ErrorCode.THEATER_INACTIVE,
            message="Theater is not active",
        )
        self.theater_id = theater_id


class PastDateError(DomainError):
    """Raised when a showtime would start at or before the current time."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PAST_DATE,
            message="Cannot schedule showtime in the past",
        )


class AlreadyStartedError(DomainError):
    """Raised when changing or deleting a showtime that has already started."""

    def __init__(self, showtime_id: str) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_STARTED,
            message="Showtime has already started",
        )
        self.showtime_id = showtime_id


class SchedulingConflictError(DomainError):
    """Raised when a showtime overlaps another one in the same theater."""

    def __init__(self, conflicting_showtime_id: str) -> None:
        super().__init__(
            code=ErrorCode.SCHEDULING_CONFLICT,
            message="Theater already has a showtime during this period",
        )
        self.conflicting_showtime_id = conflicting_showtime_id


class ShowtimeHasSoldTicketsError(DomainError):
    """Raised when deleting a showtime that still has sold tickets."""

    def __init__(self, showtime_id: str) -> None:
        super().__init__(
            code=ErrorCode.SHOWTIME_HAS_SOLD_TICKETS,
            message="Cannot delete showtime with sold tickets",
        )
        self.showtime_id = showtime_id


class PastOrOngoingShowtimeError(DomainError):
    """Raised when selling or cancelling tickets for a started showtime."""

    def __init__(self, showtime_id: str) -> None:
        super().__init__(
            code=ErrorCode.PAST_OR_ONGOING_SHOWTIME,
            message="Showtime is past or ongoing",
        )
        self.showtime_id = showtime_id


class SoldOutError(DomainError):
    """Raised when a showtime has no seats left."""

    def __init__(self, showtime_id: str) -> None:
        super().__init__(
            code=ErrorCode.SOLD_OUT,
            message="Showtime is sold out",
        )
        self.showtime_id = showtime_id


class SeatTakenError(DomainError):
    """Raised when the requested seat already has a purchased ticket."""

    def __init__(self, seat_number: str) -> None:
        super().__init__(
            code=ErrorCode.SEAT_TAKEN,
            message=f"Seat {seat_number} is already occupied",
        )
        self.seat_number = seat_number


class InvalidTicketStateError(DomainError):
    """Raised when a ticket is not in a state that allows the operation."""

    def __init__(self, ticket_id: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TICKET_STATE,
            message="Only purchased tickets can be cancelled",
        )
        self.ticket_id = ticket_id
        self.status = status


class CapacityExceededError(DomainError):
    """Raised when a capacity would drop below tickets already sold."""

    def __init__(self, theater_id: str, capacity: int) -> None:
        super().__init__(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message="Capacity is below the number of sold tickets",
        )
        self.theater_id = theater_id
        self.capacity = capacity


class LockTimeoutError(DomainError):
    """Raised when exclusive access could not be obtained in time."""

    def __init__(self, resource: str) -> None:
        super().__init__(
            code=ErrorCode.LOCK_TIMEOUT,
            message="Too much contention, please retry",
        )
        self.resource = resource
