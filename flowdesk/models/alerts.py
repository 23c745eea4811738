"""Alert settings, dashboard alerts and derived notifications."""

import datetime as dt
from typing import FrozenSet, List, Literal

from pydantic import Field, field_validator

from flowdesk.models.base import BaseDataModel, ResponseModel

NotificationType = Literal["task_due", "contract_expiring", "project_overdue", "invoice_due"]
NotificationPriority = Literal["low", "medium", "high"]

SUGGESTION_RULES = frozenset(
    {
        "attention",
        "reprioritize",
        "overdue_projects",
        "inactive_projects",
        "expiring_contracts",
        "unbilled_time",
    }
)


class AlertSettings(BaseDataModel):
    """Windows and rule selection for the alert surface.

    Attributes:
        upcoming_days: Items due within this many days count as upcoming
        task_reminder_days: Tasks due within this many days raise a notification
        inactivity_days: Projects without time logged for this long are
            reported as inactive
        contract_expiry_days: Active contracts ending within this many days
            are reported as expiring
        reprioritize_threshold: Suggest reprioritising when more items than
            this are upcoming
        enabled_rules: Suggestion rules to evaluate
    """

    upcoming_days: int = Field(7, ge=0)
    task_reminder_days: int = Field(3, ge=0)
    inactivity_days: int = Field(14, ge=1)
    contract_expiry_days: int = Field(30, ge=0)
    reprioritize_threshold: int = Field(3, ge=0)
    enabled_rules: FrozenSet[str] = SUGGESTION_RULES

    @field_validator("enabled_rules")
    @classmethod
    def validate_rules(cls, v: FrozenSet[str]) -> FrozenSet[str]:
        unknown = set(v) - SUGGESTION_RULES
        if unknown:
            raise ValueError(
                f"Unknown suggestion rules: {sorted(unknown)}. "
                f"Valid rules: {sorted(SUGGESTION_RULES)}"
            )
        return frozenset(v)


class DashboardAlerts(ResponseModel):
    """Counts and suggestions shown on the dashboard alert widget."""

    urgent: int = 0
    upcoming: int = 0
    overdue: int = 0
    suggestions: List[str] = Field(default_factory=list)
    generated_at: dt.datetime


class Notification(ResponseModel):
    """A notification derived from the current state of an entity."""

    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    entity_id: int
    entity_type: str
    date: dt.date
