"""Tests for sample data seeding."""

from decimal import Decimal

from flowdesk.db.seed import seed_sample_data
from flowdesk.db.tables import Client, Contract, Project, Task, TimeEntry


def test_seed_counts(store, today):
    counts = seed_sample_data(store, today=today)

    assert counts == {
        "clients": 2,
        "projects": 2,
        "tasks": 3,
        "time_entries": 4,
        "contracts": 1,
    }
    assert len(store.list(Client)) == 2
    assert len(store.list(Project)) == 2
    assert len(store.list(Task)) == 3
    assert len(store.list(Contract, status="active")) == 1


def test_seeded_entries_are_unbilled(store, today):
    seed_sample_data(store, today=today)

    entries = store.list(TimeEntry)

    assert all(e.invoice_id is None and e.billable for e in entries)
    assert sum(e.hours for e in entries) == Decimal("14.50")


def test_seeded_dates_relative_to_today(store, today):
    seed_sample_data(store, today=today)

    website = store.list(Project, name="Website Corporativo")[0]

    assert website.deadline < today
    assert all(e.date < today for e in store.list(TimeEntry))
