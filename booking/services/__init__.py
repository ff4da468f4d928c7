from booking.services.availability_service import AvailabilityService
from booking.services.capacity_guard import CapacityChangeGuard
from booking.services.scheduling_service import ShowtimeSchedulingService
from booking.services.ticket_sales_service import TicketSalesService

__all__ = [
    "AvailabilityService",
    "CapacityChangeGuard",
    "ShowtimeSchedulingService",
    "TicketSalesService",
]
