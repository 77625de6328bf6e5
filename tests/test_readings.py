"""Tests for device readings."""

from unittest.mock import Mock, patch

from lifedash_sync.sync.readings import FixedReadings, SystemReadings


class TestSystemReadings:
    """Tests for SystemReadings."""

    def test_notifications_unavailable_on_desktop(self):
        assert SystemReadings().notification_count() is None

    @patch("lifedash_sync.sync.readings.psutil")
    def test_battery_percent(self, mock_psutil):
        mock_psutil.sensors_battery.return_value = Mock(percent=57.6)

        assert SystemReadings().battery_level() == 57

    @patch("lifedash_sync.sync.readings.psutil")
    def test_no_battery(self, mock_psutil):
        mock_psutil.sensors_battery.return_value = None

        assert SystemReadings().battery_level() is None

    @patch("lifedash_sync.sync.readings.psutil")
    def test_sensor_not_supported(self, mock_psutil):
        mock_psutil.sensors_battery.side_effect = NotImplementedError

        assert SystemReadings().battery_level() is None


def test_fixed_readings():
    readings = FixedReadings(notifications=3, battery=90)

    assert readings.notification_count() == 3
    assert readings.battery_level() == 90
