"""
Global pytest configuration and fixtures.
"""
import datetime as dt
from decimal import Decimal
from typing import Dict

import pytest

from flowdesk.config import FlowDeskConfig, reload_config
from flowdesk.config.logging_config import reset_logging
from flowdesk.db.store import PersistenceStore
from flowdesk.models.billing import BillingSettings, HourlyRates
from flowdesk.models.entities import (
    ClientCreate,
    ProjectCreate,
    TaskCreate,
    TimeEntryCreate,
)
from flowdesk.services.billing_engine import BillingEngine

TODAY = dt.date(2024, 3, 15)


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        "DATABASE_URL": "sqlite://",
        "DEFAULT_HOURLY_RATE": "85.00",
        "INVOICE_DUE_DAYS": "30",
        "ENVIRONMENT": "testing",
        "DEBUG": "false",
        "LOG_LEVEL": "DEBUG",
        "LOG_CONSOLE": "false",
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)

    # Clear the global config to force reload with test values
    import flowdesk.config.settings
    flowdesk.config.settings._config = None

    yield test_env_vars

    flowdesk.config.settings._config = None


@pytest.fixture
def test_config(mock_env) -> FlowDeskConfig:
    """Test configuration instance."""
    return reload_config()


@pytest.fixture
def today() -> dt.date:
    """Fixed reference date used by engine and alert clocks."""
    return TODAY


@pytest.fixture
def store():
    """Empty in-memory store with the schema created."""
    store = PersistenceStore("sqlite://")
    store.create_schema()
    yield store
    store.dispose()


@pytest.fixture
def billing_settings() -> BillingSettings:
    return BillingSettings(rates=HourlyRates(default_rate=Decimal("85.00")))


@pytest.fixture
def engine(store, billing_settings, today) -> BillingEngine:
    """Billing engine over the in-memory store with a fixed clock."""
    return BillingEngine(store, billing_settings, today=lambda: today)


@pytest.fixture
def make_client(store):
    """Factory inserting clients."""

    def _make(name: str = "Empresa ABC", **kwargs):
        return store.create(ClientCreate(name=name, **kwargs))

    return _make


@pytest.fixture
def make_project(store, make_client, today):
    """Factory inserting projects; creates a client when none is given."""

    def _make(client_id=None, name: str = "Website Corporativo", **kwargs):
        if client_id is None:
            client_id = make_client().id
        kwargs.setdefault("start_date", today - dt.timedelta(days=30))
        kwargs.setdefault("deadline", today + dt.timedelta(days=60))
        return store.create(ProjectCreate(name=name, client_id=client_id, **kwargs))

    return _make


@pytest.fixture
def make_task(store, today):
    """Factory inserting tasks."""

    def _make(project_id: int, title: str = "Revisar layout", **kwargs):
        return store.create(TaskCreate(title=title, project_id=project_id, **kwargs))

    return _make


@pytest.fixture
def make_entry(store, today):
    """Factory inserting time entries (billable and unbilled by default)."""

    def _make(project_id: int, hours="1.00", **kwargs):
        kwargs.setdefault("user_name", "Ana")
        kwargs.setdefault("date", today)
        return store.create(TimeEntryCreate(project_id=project_id, hours=hours, **kwargs))

    return _make


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Remove handlers installed by configure_logging during a test."""
    yield
    reset_logging()


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
