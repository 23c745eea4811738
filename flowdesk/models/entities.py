"""Create/update payload schemas for the back-office entities.

Each schema mirrors one table of ``flowdesk.db.tables`` and carries the
invariants that must hold for a record before it reaches the database:
status vocabularies, progress bounds, date ordering and the invoice total
rule. The persistence store validates every create and update through
these schemas.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field, field_validator, model_validator

from flowdesk.models.base import BaseDataModel

ProjectStatus = Literal["planning", "in_progress", "on_hold", "completed"]
TaskStatus = Literal["pending", "in_progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]
InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]
ContractStatus = Literal["draft", "active", "completed", "expired"]

CENTS = Decimal("0.01")


def _to_decimal(v: Union[str, int, float, Decimal, None]) -> Optional[Decimal]:
    """Convert numeric input to Decimal through ``str`` to avoid float noise."""
    if v is None or isinstance(v, Decimal):
        return v
    try:
        return Decimal(str(v))
    except (ValueError, TypeError, ArithmeticError) as e:
        raise ValueError(f"Cannot convert {v} to Decimal: {e}")


def _strip_required(v: str, field_name: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{field_name} cannot be empty or whitespace")
    return v.strip()


class ClientCreate(BaseDataModel):
    """A client of the business.

    Example:
        >>> client = ClientCreate(name="Empresa ABC", tags=["vip", "vip", "recorrente"])
        >>> client.tags
        ['vip', 'recorrente']
    """

    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if "@" not in v:
            raise ValueError(f"Invalid email address: {v}")
        return v

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        """Tags form a set; keep first-seen order for stable storage."""
        seen: List[str] = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class ContactCreate(BaseDataModel):
    """A person at a client company."""

    client_id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    is_primary: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)


class ProjectCreate(BaseDataModel):
    """A project delivered for exactly one client.

    Example:
        >>> project = ProjectCreate(
        ...     name="Website Corporativo",
        ...     client_id=1,
        ...     status="in_progress",
        ...     start_date=dt.date(2024, 1, 15),
        ...     deadline=dt.date(2024, 3, 1),
        ...     progress=65,
        ...     budget="15000.00",
        ... )
        >>> project.budget
        Decimal('15000.00')
    """

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    client_id: int = Field(..., gt=0)
    status: ProjectStatus = "planning"
    start_date: dt.date
    deadline: dt.date
    progress: int = Field(0, ge=0, le=100)
    budget: Optional[Decimal] = Field(None, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)

    @field_validator("budget", mode="before")
    @classmethod
    def convert_budget(cls, v):
        return _to_decimal(v)

    @model_validator(mode="after")
    def validate_schedule(self) -> "ProjectCreate":
        if self.deadline < self.start_date:
            raise ValueError(
                f"deadline ({self.deadline}) must not be before "
                f"start_date ({self.start_date})"
            )
        return self


class TaskCreate(BaseDataModel):
    """A unit of work inside a project."""

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    project_id: int = Field(..., gt=0)
    assignee: Optional[str] = None
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: Optional[dt.date] = None
    completed: bool = False

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)

    @model_validator(mode="after")
    def sync_completion(self) -> "TaskCreate":
        """Keep the completed flag and the completed status in agreement."""
        if self.status == "completed" and not self.completed:
            self.__dict__["completed"] = True
        elif self.completed and self.status != "completed":
            self.__dict__["status"] = "completed"
        return self


class TimeEntryCreate(BaseDataModel):
    """Hours worked on a project, optionally against a task.

    Entries are created unbilled; ``invoice_id`` is only ever set by the
    billing engine when the entry is consumed by an invoice.
    """

    project_id: int = Field(..., gt=0)
    task_id: Optional[int] = Field(None, gt=0)
    user_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    hours: Decimal = Field(..., gt=0, le=24)
    date: dt.date
    billable: bool = True
    invoice_id: Optional[int] = Field(None, gt=0)

    @field_validator("user_name")
    @classmethod
    def validate_user(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)

    @field_validator("hours", mode="before")
    @classmethod
    def convert_hours(cls, v):
        return _to_decimal(v)

    @field_validator("hours")
    @classmethod
    def validate_precision(cls, v: Decimal) -> Decimal:
        if v != v.quantize(CENTS):
            raise ValueError(f"hours must have at most two decimal places, got {v}")
        return v


class ExpenseCreate(BaseDataModel):
    """An expense, optionally attributed to a project."""

    project_id: Optional[int] = Field(None, gt=0)
    category: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    date: dt.date
    receipt_path: Optional[str] = None
    approved: bool = False

    @field_validator("amount", mode="before")
    @classmethod
    def convert_amount(cls, v):
        return _to_decimal(v)


class ContractCreate(BaseDataModel):
    """A contract with a client, optionally tied to a project."""

    name: str = Field(..., min_length=1)
    client_id: int = Field(..., gt=0)
    project_id: Optional[int] = Field(None, gt=0)
    file_path: Optional[str] = None
    status: ContractStatus = "draft"
    value: Optional[Decimal] = Field(None, ge=0)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str, info) -> str:
        return _strip_required(v, info.field_name)

    @field_validator("value", mode="before")
    @classmethod
    def convert_value(cls, v):
        return _to_decimal(v)

    @model_validator(mode="after")
    def validate_period(self) -> "ContractCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(
                f"end_date ({self.end_date}) must not be before "
                f"start_date ({self.start_date})"
            )
        return self


class InvoiceCreate(BaseDataModel):
    """An invoice issued to a client.

    ``total_amount`` defaults to ``amount + tax_amount``; when given it must
    match that sum exactly.

    Example:
        >>> invoice = InvoiceCreate(
        ...     client_id=1,
        ...     amount="1000.00",
        ...     tax_amount="150.00",
        ...     due_date=dt.date(2024, 2, 15),
        ... )
        >>> invoice.total_amount
        Decimal('1150.00')
    """

    invoice_number: Optional[str] = None
    client_id: int = Field(..., gt=0)
    project_id: Optional[int] = Field(None, gt=0)
    amount: Decimal = Field(..., ge=0)
    tax_amount: Decimal = Field(Decimal("0.00"), ge=0)
    total_amount: Optional[Decimal] = None
    status: InvoiceStatus = "draft"
    issue_date: Optional[dt.date] = None
    due_date: dt.date
    paid_date: Optional[dt.date] = None
    description: Optional[str] = None
    is_auto_generated: bool = False

    @field_validator("invoice_number")
    @classmethod
    def validate_number(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("invoice_number cannot be empty or whitespace")
        return v

    @field_validator("amount", "tax_amount", "total_amount", mode="before")
    @classmethod
    def convert_money(cls, v):
        return _to_decimal(v)

    @field_validator("amount", "tax_amount", "total_amount")
    @classmethod
    def round_money(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return None
        return v.quantize(CENTS)

    @model_validator(mode="after")
    def validate_totals_and_dates(self) -> "InvoiceCreate":
        expected = (self.amount + self.tax_amount).quantize(CENTS)
        if self.total_amount is None:
            self.__dict__["total_amount"] = expected
        elif self.total_amount != expected:
            raise ValueError(
                f"total_amount ({self.total_amount}) must equal amount + "
                f"tax_amount ({expected})"
            )

        if self.issue_date and self.due_date < self.issue_date:
            raise ValueError(
                f"due_date ({self.due_date}) must not be before "
                f"issue_date ({self.issue_date})"
            )
        if self.status == "paid" and self.paid_date is None:
            raise ValueError("paid invoices require a paid_date")
        return self


class AutomationRuleCreate(BaseDataModel):
    """A stored trigger/action rule. Rules are kept, not executed."""

    name: str = Field(..., min_length=1)
    trigger_type: str = Field(..., min_length=1)
    trigger_condition: Optional[Dict[str, Any]] = None
    action_type: str = Field(..., min_length=1)
    action_config: Optional[Dict[str, Any]] = None
    active: bool = True


class NotificationCreate(BaseDataModel):
    """A stored notification for the notification centre."""

    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = "info"
    read: bool = False
    user_id: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
