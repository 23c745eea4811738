"""
Alert surface: dashboard counts, suggestions and notifications.

Everything here is derived from the current state of the store on each
call. Stored notifications are a convenience inbox; nothing reads them back
for business decisions.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from flowdesk.db.store import PersistenceStore
from flowdesk.db.tables import Contract, Invoice, Project, Task, TimeEntry
from flowdesk.db.tables import Notification as NotificationRecord
from flowdesk.models.alerts import AlertSettings, DashboardAlerts, Notification
from flowdesk.models.entities import NotificationCreate
from flowdesk.utils.logging_utils import log_function_call

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

# Invoices that have been sent and can therefore fall due
DUE_INVOICE_STATUSES = ("sent", "overdue")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _inbox_key(notification) -> Tuple:
    # Day counts in messages change daily; the entity reference does not
    if notification.entity_id is not None:
        return (notification.type, notification.entity_type, notification.entity_id)
    return (notification.type, notification.message)


class AlertService:
    """
    Computes alert counts, suggestions and notifications from the store.

    Example:
        >>> alerts = AlertService(store, AlertSettings(upcoming_days=7))
        >>> summary = alerts.dashboard_alerts()
        >>> summary.urgent, summary.upcoming, summary.overdue
        (1, 2, 1)
    """

    def __init__(
        self,
        store: PersistenceStore,
        settings: Optional[AlertSettings] = None,
        now: Optional[Callable[[], dt.datetime]] = None,
    ):
        """
        Initialize the alert service.

        Args:
            store: Persistence store to read from
            settings: Windows and enabled suggestion rules
            now: Clock returning the current datetime
        """
        self.store = store
        self.settings = settings or AlertSettings()
        self._now = now or dt.datetime.now

    @classmethod
    def from_config(cls, store: PersistenceStore, config, now=None) -> "AlertService":
        """Build an alert service from a ``FlowDeskConfig``."""
        settings = AlertSettings(
            upcoming_days=config.alert_upcoming_days,
            inactivity_days=config.alert_inactivity_days,
            contract_expiry_days=config.alert_contract_expiry_days,
        )
        return cls(store, settings, now=now)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    @log_function_call
    def dashboard_alerts(self) -> DashboardAlerts:
        """
        Count urgent, upcoming and overdue items and collect suggestions.

        - urgent: open tasks and unpaid invoices past their due date
        - upcoming: open tasks and unpaid invoices due within
          ``upcoming_days`` (today included)
        - overdue: unpaid invoices past their due date

        Returns:
            DashboardAlerts stamped with the computation time
        """
        generated_at = self._now()
        today = generated_at.date()
        horizon = today + dt.timedelta(days=self.settings.upcoming_days)

        with self.store.session_scope() as session:
            task_due_dates = self._open_task_due_dates(session)
            invoice_due_dates = [
                due_date for _, due_date in self._unpaid_invoice_due_dates(session)
            ]

            due_dates = task_due_dates + invoice_due_dates
            urgent = sum(1 for d in due_dates if d < today)
            upcoming = sum(1 for d in due_dates if today <= d <= horizon)
            overdue = sum(1 for d in invoice_due_dates if d < today)

            suggestions = self._suggestions(session, today, urgent, upcoming)

        logger.debug(
            f"Dashboard alerts: urgent={urgent}, upcoming={upcoming}, "
            f"overdue={overdue}, suggestions={len(suggestions)}"
        )
        return DashboardAlerts(
            urgent=urgent,
            upcoming=upcoming,
            overdue=overdue,
            suggestions=suggestions,
            generated_at=generated_at,
        )

    def _open_task_due_dates(self, session: Session) -> List[dt.date]:
        stmt = select(Task.due_date).where(
            Task.due_date.is_not(None),
            Task.completed.is_(False),
            Task.status != "completed",
        )
        return list(session.scalars(stmt).all())

    def _unpaid_invoice_due_dates(self, session: Session) -> List[Tuple[int, dt.date]]:
        stmt = select(Invoice.id, Invoice.due_date).where(Invoice.status != "paid")
        return [tuple(row) for row in session.execute(stmt).all()]

    def _suggestions(
        self, session: Session, today: dt.date, urgent: int, upcoming: int
    ) -> List[str]:
        rules = self.settings.enabled_rules
        suggestions: List[str] = []

        if "attention" in rules and urgent > 0:
            verb = "needs" if urgent == 1 else "need"
            suggestions.append(f"{_plural(urgent, 'item')} {verb} immediate attention")

        if "reprioritize" in rules and upcoming > self.settings.reprioritize_threshold:
            suggestions.append(
                f"Consider reprioritising tasks: {_plural(upcoming, 'item')} due in the "
                f"next {_plural(self.settings.upcoming_days, 'day')}"
            )

        if "overdue_projects" in rules:
            late = [p for p in self._open_projects(session) if p.deadline < today]
            if late:
                names = ", ".join(p.name for p in late)
                suggestions.append(
                    f"Review the deadlines of {_plural(len(late), 'overdue project')}: {names}"
                )

        if "inactive_projects" in rules:
            for project, idle_days in self._inactive_projects(session, today):
                suggestions.append(
                    f'Project "{project.name}" has no activity in {_plural(idle_days, "day")}'
                )

        if "expiring_contracts" in rules:
            for contract, days_left in self._expiring_contracts(session, today):
                suggestions.append(
                    f'Contract "{contract.name}" expires in {_plural(days_left, "day")}'
                )

        if "unbilled_time" in rules:
            hours = sum(
                session.scalars(
                    select(TimeEntry.hours).where(
                        TimeEntry.billable.is_(True), TimeEntry.invoice_id.is_(None)
                    )
                ).all(),
                Decimal("0"),
            )
            if hours > 0:
                suggestions.append(f"{hours} unbilled hours are ready to invoice")

        return suggestions

    def _open_projects(self, session: Session) -> List[Project]:
        stmt = select(Project).where(Project.status != "completed").order_by(Project.id)
        return list(session.scalars(stmt).all())

    def _inactive_projects(self, session: Session, today: dt.date) -> List[Tuple[Project, int]]:
        """Open projects whose latest time entry (or start) is too old."""
        last_activity: Dict[int, dt.date] = dict(
            session.execute(
                select(TimeEntry.project_id, func.max(TimeEntry.date)).group_by(
                    TimeEntry.project_id
                )
            ).all()
        )

        inactive = []
        for project in self._open_projects(session):
            latest = last_activity.get(project.id, project.start_date)
            idle_days = (today - latest).days
            if idle_days > self.settings.inactivity_days:
                inactive.append((project, idle_days))
        return inactive

    def _expiring_contracts(
        self, session: Session, today: dt.date
    ) -> List[Tuple[Contract, int]]:
        horizon = today + dt.timedelta(days=self.settings.contract_expiry_days)
        stmt = (
            select(Contract)
            .where(
                Contract.status == "active",
                Contract.end_date.is_not(None),
                Contract.end_date >= today,
                Contract.end_date <= horizon,
            )
            .order_by(Contract.end_date, Contract.id)
        )
        return [(c, (c.end_date - today).days) for c in session.scalars(stmt).all()]

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @log_function_call
    def generate_notifications(self) -> List[Notification]:
        """
        Derive notifications for tasks, contracts, projects and invoices.

        - task_due: open tasks due within ``task_reminder_days``
          (high at 1 day or less, medium at 2, low otherwise)
        - contract_expiring: active contracts ending within
          ``contract_expiry_days`` (high within 7 days, medium within 15)
        - project_overdue: open projects past their deadline (high)
        - invoice_due: sent invoices past their due date (medium for the
          first week, high after)

        Returns:
            Notifications ordered by priority, then entity type and id
        """
        today = self._now().date()
        notifications: List[Notification] = []

        with self.store.session_scope() as session:
            tasks = session.scalars(
                select(Task).where(
                    Task.due_date.is_not(None),
                    Task.completed.is_(False),
                    Task.status != "completed",
                )
            ).all()
            for task in tasks:
                days = (task.due_date - today).days
                if 0 <= days <= self.settings.task_reminder_days:
                    priority = "high" if days <= 1 else "medium" if days <= 2 else "low"
                    notifications.append(
                        Notification(
                            type="task_due",
                            title="Task due soon",
                            message=f'"{task.title}" is due in {_plural(days, "day")}',
                            priority=priority,
                            entity_id=task.id,
                            entity_type="task",
                            date=today,
                        )
                    )

            for contract, days in self._expiring_contracts(session, today):
                priority = "high" if days <= 7 else "medium" if days <= 15 else "low"
                notifications.append(
                    Notification(
                        type="contract_expiring",
                        title="Contract expiring",
                        message=f'Contract "{contract.name}" expires in {_plural(days, "day")}',
                        priority=priority,
                        entity_id=contract.id,
                        entity_type="contract",
                        date=today,
                    )
                )

            for project in self._open_projects(session):
                days = (today - project.deadline).days
                if days > 0:
                    notifications.append(
                        Notification(
                            type="project_overdue",
                            title="Project overdue",
                            message=f'Project "{project.name}" is {_plural(days, "day")} late',
                            priority="high",
                            entity_id=project.id,
                            entity_type="project",
                            date=today,
                        )
                    )

            invoices = session.scalars(
                select(Invoice).where(
                    Invoice.status.in_(DUE_INVOICE_STATUSES), Invoice.due_date < today
                )
            ).all()
            for invoice in invoices:
                days = (today - invoice.due_date).days
                notifications.append(
                    Notification(
                        type="invoice_due",
                        title="Invoice overdue",
                        message=(
                            f"Invoice {invoice.invoice_number} is "
                            f"{_plural(days, 'day')} past due"
                        ),
                        priority="medium" if days <= 7 else "high",
                        entity_id=invoice.id,
                        entity_type="invoice",
                        date=today,
                    )
                )

        notifications.sort(
            key=lambda n: (PRIORITY_ORDER[n.priority], n.entity_type, n.entity_id)
        )
        return notifications

    def sync_notifications(self, user_id: Optional[str] = None) -> int:
        """
        Store derived notifications that are not already waiting unread.

        A notification is already waiting when an unread one of the same
        type refers to the same task, contract, project or invoice, even if
        its day count has changed since.

        Args:
            user_id: Recipient recorded on new notifications

        Returns:
            Number of notifications stored
        """
        derived = self.generate_notifications()
        pending = {_inbox_key(n) for n in self.unread_notifications(user_id)}

        created = 0
        for notification in derived:
            key = _inbox_key(notification)
            if key in pending:
                continue
            self.store.create(
                NotificationCreate(
                    title=notification.title,
                    message=notification.message,
                    type=notification.type,
                    user_id=user_id,
                    entity_type=notification.entity_type,
                    entity_id=notification.entity_id,
                )
            )
            pending.add(key)
            created += 1

        logger.info(f"Stored {created} new notifications ({len(derived)} derived)")
        return created

    def unread_notifications(self, user_id: Optional[str] = None) -> List[NotificationRecord]:
        """
        List unread stored notifications, oldest first.

        Args:
            user_id: Also include notifications addressed to this user;
                notifications without a recipient are always included
        """
        stmt = select(NotificationRecord).where(NotificationRecord.read.is_(False))
        if user_id is None:
            stmt = stmt.where(NotificationRecord.user_id.is_(None))
        else:
            stmt = stmt.where(
                or_(NotificationRecord.user_id.is_(None), NotificationRecord.user_id == user_id)
            )

        with self.store.session_scope() as session:
            return list(session.scalars(stmt.order_by(NotificationRecord.id)).all())

    def mark_as_read(self, notification_id: int) -> NotificationRecord:
        """
        Mark one stored notification as read.

        Raises:
            NotFoundError: If the notification does not exist
        """
        return self.store.update(NotificationRecord, notification_id, read=True)

    def mark_all_as_read(self, user_id: Optional[str] = None) -> int:
        """Mark every unread notification visible to ``user_id`` as read."""
        stmt = update(NotificationRecord).where(NotificationRecord.read.is_(False))
        if user_id is not None:
            stmt = stmt.where(
                or_(NotificationRecord.user_id.is_(None), NotificationRecord.user_id == user_id)
            )
        else:
            stmt = stmt.where(NotificationRecord.user_id.is_(None))

        with self.store.session_scope() as session:
            result = session.execute(
                stmt.values(read=True).execution_options(synchronize_session=False)
            )
            return result.rowcount
