"""
Periodic refresh of dashboard alerts.

Alerts are cheap to recompute but read on every dashboard view, so the
refresher keeps the latest result and recomputes it once it is older than
the refresh interval. A background thread can keep the cache warm.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from flowdesk.errors import StorageError
from flowdesk.models.alerts import DashboardAlerts
from flowdesk.services.alert_service import AlertService

logger = logging.getLogger(__name__)


class AlertRefresher:
    """
    TTL cache around ``AlertService.dashboard_alerts``.

    Features:
    - ``latest()`` serves cached alerts while younger than the interval
    - ``refresh()`` forces recomputation
    - ``start()`` / ``stop()`` run a daemon thread refreshing every interval
    - Thread-safe with lock protection

    Example:
        >>> refresher = AlertRefresher(alert_service, interval_seconds=300)
        >>> refresher.start()
        >>> refresher.latest().urgent
        3
        >>> refresher.stop()
    """

    def __init__(
        self,
        alert_service: AlertService,
        interval_seconds: float = 300.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the refresher.

        Args:
            alert_service: Service computing the alerts
            interval_seconds: Maximum age of cached alerts
            clock: Monotonic clock in seconds (defaults to time.monotonic)
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self.alert_service = alert_service
        self.interval_seconds = interval_seconds
        self._clock = clock or time.monotonic

        self._lock = threading.Lock()
        self._cached: Optional[DashboardAlerts] = None
        self._cached_at: Optional[float] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._stats = {"hits": 0, "refreshes": 0, "failures": 0}

    def latest(self) -> DashboardAlerts:
        """
        Return cached alerts, recomputing them when stale.

        Returns:
            Alerts no older than the refresh interval
        """
        with self._lock:
            if self._cached is not None and not self._is_stale():
                self._stats["hits"] += 1
                return self._cached
        return self.refresh()

    def refresh(self) -> DashboardAlerts:
        """Recompute the alerts and replace the cached value."""
        alerts = self.alert_service.dashboard_alerts()
        with self._lock:
            self._cached = alerts
            self._cached_at = self._clock()
            self._stats["refreshes"] += 1
        return alerts

    def _is_stale(self) -> bool:
        return (
            self._cached_at is None
            or self._clock() - self._cached_at >= self.interval_seconds
        )

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start refreshing in a daemon thread; no-op if already running."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="alert-refresher", daemon=True
        )
        self._thread.start()
        logger.info(f"Alert refresher started (interval={self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the background thread and wait for it to exit."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Alert refresher stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.refresh()
            except StorageError as e:
                # Keep serving the previous alerts until the store recovers
                self._stats["failures"] += 1
                logger.warning(f"Alert refresh failed (retryable={e.retryable}): {e}")
            self._stop_event.wait(self.interval_seconds)

    def get_statistics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                **self._stats,
                "running": self.is_running,
                "cached": self._cached is not None,
                "interval_seconds": self.interval_seconds,
            }

    def __enter__(self) -> "AlertRefresher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
