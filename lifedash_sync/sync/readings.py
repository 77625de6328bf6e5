"""Day-scoped device readings attached to the hour-0 record."""

import logging
from typing import Optional

import psutil

__all__ = ["SystemReadings", "FixedReadings"]

logger = logging.getLogger(__name__)


class SystemReadings:
    """Reads device state from the host system."""

    def notification_count(self) -> Optional[int]:
        # Not observable from a desktop agent
        return None

    def battery_level(self) -> Optional[int]:
        """Battery charge in percent, or None without a battery."""
        try:
            battery = psutil.sensors_battery()
        except (AttributeError, NotImplementedError, OSError) as e:
            logger.debug(f"Battery sensor unavailable: {e}")
            return None
        if battery is None:
            return None
        return int(battery.percent)


class FixedReadings:
    """Readings with fixed values, for replays and tests."""

    def __init__(self, notifications: Optional[int] = None, battery: Optional[int] = None):
        self._notifications = notifications
        self._battery = battery

    def notification_count(self) -> Optional[int]:
        return self._notifications

    def battery_level(self) -> Optional[int]:
        return self._battery
