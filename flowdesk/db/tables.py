"""SQLAlchemy ORM tables for the back office.

One class per table. Relationships are declared for navigation inside a
session; the store hands detached instances to callers, so code outside
the store only reads column attributes.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

MONEY = Numeric(12, 2)


class Base(DeclarativeBase):
    """Declarative base shared by every table."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={getattr(self, 'id', None)}>"


class TimestampMixin:
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class Client(TimestampMixin, Base):
    """A client of the business."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    company: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    projects: Mapped[List["Project"]] = relationship(back_populates="client")
    contacts: Mapped[List["Contact"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )


class Contact(TimestampMixin, Base):
    """A person at a client company."""

    __tablename__ = "client_contacts"

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    position: Mapped[Optional[str]] = mapped_column(String(255))
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    client: Mapped["Client"] = relationship(back_populates="contacts")


class Project(TimestampMixin, Base):
    """A project delivered for one client."""

    __tablename__ = "projects"
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_projects_progress"),
        Index("idx_projects_client_id", "client_id"),
        Index("idx_projects_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="planning", nullable=False)
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    deadline: Mapped[dt.date] = mapped_column(Date, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    budget: Mapped[Optional[Decimal]] = mapped_column(MONEY)

    client: Mapped["Client"] = relationship(back_populates="projects")
    tasks: Mapped[List["Task"]] = relationship(back_populates="project")
    time_entries: Mapped[List["TimeEntry"]] = relationship(back_populates="project")


class Task(TimestampMixin, Base):
    """A unit of work inside a project."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_project_id", "project_id"),
        Index("idx_tasks_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False)
    assignee: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    priority: Mapped[str] = mapped_column(String(10), default="medium", nullable=False)
    due_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    project: Mapped["Project"] = relationship(back_populates="tasks")


class TimeEntry(TimestampMixin, Base):
    """Hours worked on a project.

    ``invoice_id`` is NULL while the entry is unbilled and is set exactly
    once, by the billing engine, in the transaction that creates the invoice.
    """

    __tablename__ = "time_entries"
    __table_args__ = (
        Index("idx_time_entries_project_id", "project_id"),
        Index("idx_time_entries_date", "date"),
        Index("idx_time_entries_invoice_id", "invoice_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[int] = mapped_column(ForeignKey("projects.id"), nullable=False)
    task_id: Mapped[Optional[int]] = mapped_column(ForeignKey("tasks.id"))
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    billable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    invoice_id: Mapped[Optional[int]] = mapped_column(ForeignKey("invoices.id"))

    project: Mapped["Project"] = relationship(back_populates="time_entries")
    invoice: Mapped[Optional["Invoice"]] = relationship(back_populates="time_entries")


class Expense(TimestampMixin, Base):
    """An expense, optionally attributed to a project."""

    __tablename__ = "expenses"
    __table_args__ = (Index("idx_expenses_project_id", "project_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id"))
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    receipt_path: Mapped[Optional[str]] = mapped_column(String(500))
    approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Contract(TimestampMixin, Base):
    """A contract with a client."""

    __tablename__ = "contracts"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False)
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id"))
    file_path: Mapped[Optional[str]] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)
    value: Mapped[Optional[Decimal]] = mapped_column(MONEY)
    start_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    end_date: Mapped[Optional[dt.date]] = mapped_column(Date)


class Invoice(TimestampMixin, Base):
    """An invoice issued to a client."""

    __tablename__ = "invoices"
    __table_args__ = (
        Index("idx_invoices_client_id", "client_id"),
        Index("idx_invoices_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False)
    project_id: Mapped[Optional[int]] = mapped_column(ForeignKey("projects.id"))
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0.00"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False)
    issue_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    due_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    paid_date: Mapped[Optional[dt.date]] = mapped_column(Date)
    description: Mapped[Optional[str]] = mapped_column(Text)
    is_auto_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    time_entries: Mapped[List["TimeEntry"]] = relationship(back_populates="invoice")


class AutomationRule(TimestampMixin, Base):
    """A stored trigger/action rule."""

    __tablename__ = "automation_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_type: Mapped[str] = mapped_column(String(100), nullable=False)
    trigger_condition: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    action_config: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Notification(TimestampMixin, Base):
    """A stored notification."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_user_id", "user_id"),
        Index("idx_notifications_read", "read"),
        Index("idx_notifications_entity", "entity_type", "entity_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), default="info", nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(255))
    entity_type: Mapped[Optional[str]] = mapped_column(String(50))
    entity_id: Mapped[Optional[int]] = mapped_column(Integer)


class Sequence(Base):
    """A named counter; backs invoice numbering."""

    __tablename__ = "sequences"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Sequence {self.name}={self.value}>"
