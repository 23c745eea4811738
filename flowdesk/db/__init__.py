"""Relational persistence for FlowDesk.

- tables: SQLAlchemy ORM tables for every back-office entity
- store: PersistenceStore with CRUD, billing queries and transactional scope
- error_classifier: Retryable vs fatal database failures
- seed: Sample data for local development
"""

from flowdesk.db.error_classifier import ErrorClassifier, ErrorType
from flowdesk.db.store import PersistenceStore
from flowdesk.db.tables import (
    AutomationRule,
    Base,
    Client,
    Contact,
    Contract,
    Expense,
    Invoice,
    Notification,
    Project,
    Sequence,
    Task,
    TimeEntry,
)

__all__ = [
    "PersistenceStore",
    "ErrorClassifier",
    "ErrorType",
    "Base",
    "Client",
    "Contact",
    "Project",
    "Task",
    "TimeEntry",
    "Expense",
    "Contract",
    "Invoice",
    "AutomationRule",
    "Notification",
    "Sequence",
]
