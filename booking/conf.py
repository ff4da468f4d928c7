"""Settings for the booking app, read from ``settings.BOOKING``.

Example::

    BOOKING = {
        "LOCK_TIMEOUT_MS": 2000,
        "MAX_SHOWTIME_PRICE": Decimal("500.00"),
    }
"""

from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.signals import setting_changed

DEFAULTS: dict[str, Any] = {
    # How long purchase/cancel/scheduling waits for its lock.
    "LOCK_TIMEOUT_MS": 5000,
    "MAX_SHOWTIME_PRICE": Decimal("1000.00"),
    "UPCOMING_SHOWTIMES_LIMIT": 20,
    "LOCK_RETRY_AFTER_SECONDS": 1,
}


class BookingSettings:
    """Attribute access to ``BOOKING`` with fallbacks to DEFAULTS."""

    def __init__(self, defaults: dict[str, Any] | None = None) -> None:
        self.defaults = defaults or DEFAULTS
        self._cached: set[str] = set()

    @property
    def user_settings(self) -> dict[str, Any]:
        if not hasattr(self, "_user_settings"):
            self._user_settings = getattr(settings, "BOOKING", {})
        return self._user_settings

    def __getattr__(self, attr: str) -> Any:
        if attr not in self.defaults:
            raise AttributeError(f"Invalid booking setting: '{attr}'")
        try:
            value = self.user_settings[attr]
        except KeyError:
            value = self.defaults[attr]
        self._cached.add(attr)
        setattr(self, attr, value)
        return value

    def reload(self) -> None:
        for attr in self._cached:
            delattr(self, attr)
        self._cached.clear()
        if hasattr(self, "_user_settings"):
            delattr(self, "_user_settings")


booking_settings = BookingSettings(DEFAULTS)


def reload_booking_settings(*args, **kwargs) -> None:
    if kwargs["setting"] == "BOOKING":
        booking_settings.reload()


setting_changed.connect(reload_booking_settings)
