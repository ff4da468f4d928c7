from booking.stores.interfaces import CatalogStore, SaleSession, ShowtimeStore, TicketStore

__all__ = [
    "CatalogStore",
    "SaleSession",
    "ShowtimeStore",
    "TicketStore",
]
