"""
Unit tests for AlertRefresher.
"""

import datetime as dt
import threading
from unittest.mock import Mock

import pytest

from flowdesk.errors import StorageError
from flowdesk.models.alerts import DashboardAlerts
from flowdesk.services.alert_refresher import AlertRefresher


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_alerts(urgent=0):
    return DashboardAlerts(urgent=urgent, generated_at=dt.datetime(2024, 3, 15, 9, 0))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service():
    service = Mock()
    service.dashboard_alerts.side_effect = [make_alerts(urgent=i) for i in range(1, 10)]
    return service


class TestAlertRefresher:
    """Test cache behaviour."""

    def test_invalid_interval(self, service):
        with pytest.raises(ValueError, match="must be positive"):
            AlertRefresher(service, interval_seconds=0)

    def test_first_call_computes(self, service, clock):
        refresher = AlertRefresher(service, interval_seconds=60, clock=clock)

        assert refresher.latest().urgent == 1
        assert service.dashboard_alerts.call_count == 1

    def test_cached_within_interval(self, service, clock):
        refresher = AlertRefresher(service, interval_seconds=60, clock=clock)
        refresher.latest()

        clock.advance(59)

        assert refresher.latest().urgent == 1
        assert service.dashboard_alerts.call_count == 1
        assert refresher.get_statistics()["hits"] == 1

    def test_recomputed_when_stale(self, service, clock):
        refresher = AlertRefresher(service, interval_seconds=60, clock=clock)
        refresher.latest()

        clock.advance(60)

        assert refresher.latest().urgent == 2
        assert refresher.get_statistics()["refreshes"] == 2

    def test_refresh_forces_recompute(self, service, clock):
        refresher = AlertRefresher(service, interval_seconds=60, clock=clock)
        refresher.latest()

        assert refresher.refresh().urgent == 2
        assert refresher.latest().urgent == 2

    def test_statistics(self, service, clock):
        refresher = AlertRefresher(service, interval_seconds=60, clock=clock)

        stats = refresher.get_statistics()

        assert stats == {
            "hits": 0,
            "refreshes": 0,
            "failures": 0,
            "running": False,
            "cached": False,
            "interval_seconds": 60,
        }


class TestBackgroundRefresh:
    """Test the background thread."""

    def test_start_and_stop(self):
        refreshed = threading.Event()
        service = Mock()

        def dashboard_alerts():
            refreshed.set()
            return make_alerts()

        service.dashboard_alerts.side_effect = dashboard_alerts
        refresher = AlertRefresher(service, interval_seconds=30)

        with refresher:
            assert refreshed.wait(5)
            assert refresher.is_running

        assert not refresher.is_running
        assert refresher.get_statistics()["cached"] is True

    def test_storage_errors_counted(self):
        failed = threading.Event()
        service = Mock()

        def dashboard_alerts():
            failed.set()
            raise StorageError("database is locked", retryable=True)

        service.dashboard_alerts.side_effect = dashboard_alerts
        refresher = AlertRefresher(service, interval_seconds=30)

        refresher.start()
        assert failed.wait(5)
        refresher.stop(timeout=5)

        assert refresher.get_statistics()["failures"] == 1
        assert refresher.get_statistics()["cached"] is False
