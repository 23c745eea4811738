"""Data models for FlowDesk.

This package contains Pydantic models for:
- BaseDataModel / ResponseModel: Base classes with common configuration
- Entity create schemas (ClientCreate, ProjectCreate, ...) validated
  before anything reaches the database
- Billing settings and billing operation results
- Alert settings, dashboard alerts and derived notifications
"""

from flowdesk.models.alerts import AlertSettings, DashboardAlerts, Notification
from flowdesk.models.base import BaseDataModel, ResponseModel
from flowdesk.models.billing import (
    AutomaticBillingResult,
    BillingGroupFailure,
    BillingSettings,
    BillingStats,
    HourlyRates,
    InvoiceSummary,
    SkippedBillingGroup,
    UnbilledEntry,
)
from flowdesk.models.entities import (
    AutomationRuleCreate,
    ClientCreate,
    ContactCreate,
    ContractCreate,
    ExpenseCreate,
    InvoiceCreate,
    NotificationCreate,
    ProjectCreate,
    TaskCreate,
    TimeEntryCreate,
)

__all__ = [
    "BaseDataModel",
    "ResponseModel",
    "ClientCreate",
    "ContactCreate",
    "ProjectCreate",
    "TaskCreate",
    "TimeEntryCreate",
    "ExpenseCreate",
    "ContractCreate",
    "InvoiceCreate",
    "AutomationRuleCreate",
    "NotificationCreate",
    "HourlyRates",
    "BillingSettings",
    "UnbilledEntry",
    "BillingStats",
    "InvoiceSummary",
    "BillingGroupFailure",
    "SkippedBillingGroup",
    "AutomaticBillingResult",
    "AlertSettings",
    "DashboardAlerts",
    "Notification",
]
