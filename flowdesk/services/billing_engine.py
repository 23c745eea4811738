"""
Billing engine: unbilled time, billing statistics and invoice generation.

Every operation opens its own transaction through the persistence store.
Invoice generation inserts the invoice and claims its time entries in the
same transaction; the claim only succeeds for entries that are still
unbilled, so each entry ends up on at most one invoice even when requests
race.
"""

import calendar
import datetime as dt
import logging
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from flowdesk.calculators.billing_calculator import (
    aggregate_unbilled,
    calculate_entry_cost,
    calculate_invoice_amount,
    group_entries_by_project,
    money,
)
from flowdesk.db.store import PersistenceStore
from flowdesk.db.tables import Client, Invoice, Project
from flowdesk.errors import ConflictError, NotFoundError, ValidationError
from flowdesk.models.billing import (
    AutomaticBillingResult,
    BillingGroupFailure,
    BillingSettings,
    BillingStats,
    FailurePolicy,
    HourlyRates,
    InvoiceSummary,
    SkippedBillingGroup,
    UnbilledEntry,
)
from flowdesk.models.entities import InvoiceCreate
from flowdesk.services.invoice_numbering import InvoiceNumberGenerator
from flowdesk.utils.logging_utils import LogContext, generate_correlation_id, log_function_call
from flowdesk.validators.billing_validators import BillingRuleValidators
from flowdesk.validators.validation_report import ValidationReport

logger = logging.getLogger(__name__)

# Failures that affect a single project group; anything else ends the run
GROUP_FAILURES = (ValidationError, ConflictError, NotFoundError)


def _invoice_summary(invoice: Invoice, entry_ids: Iterable[int]) -> InvoiceSummary:
    return InvoiceSummary(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        client_id=invoice.client_id,
        project_id=invoice.project_id,
        amount=invoice.amount,
        tax_amount=invoice.tax_amount,
        total_amount=invoice.total_amount,
        status=invoice.status,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        paid_date=invoice.paid_date,
        description=invoice.description,
        is_auto_generated=invoice.is_auto_generated,
        time_entry_ids=sorted(entry_ids),
    )


class BillingEngine:
    """
    Turns unbilled time entries into invoices.

    Features:
    - Unbilled entry listing with resolved rates and costs
    - Dashboard billing statistics
    - Invoice generation with at-most-once entry consumption
    - Automatic billing of every project with unbilled time
    - Manual invoice creation

    Example:
        >>> engine = BillingEngine.from_config(store, get_config())
        >>> result = engine.run_automatic_billing()
        >>> result.invoices_generated
        2
    """

    def __init__(
        self,
        store: PersistenceStore,
        settings: BillingSettings,
        today: Optional[Callable[[], dt.date]] = None,
    ):
        """
        Initialize the billing engine.

        Args:
            store: Persistence store holding projects, entries and invoices
            settings: Rates, due days, numbering and failure policy
            today: Clock returning the current date (defaults to date.today)
        """
        self.store = store
        self._settings = settings
        self._today = today or dt.date.today
        self.numbering = InvoiceNumberGenerator(store, settings.invoice_number_prefix)

        logger.info(
            f"BillingEngine initialized (default_rate={settings.rates.default_rate}, "
            f"due_days={settings.invoice_due_days}, policy={settings.failure_policy})"
        )

    @classmethod
    def from_config(
        cls,
        store: PersistenceStore,
        config,
        today: Optional[Callable[[], dt.date]] = None,
    ) -> "BillingEngine":
        """Build an engine from a ``FlowDeskConfig``."""
        settings = BillingSettings(
            rates=HourlyRates(
                default_rate=config.default_hourly_rate,
                project_rates=config.project_hourly_rates,
            ),
            invoice_due_days=config.invoice_due_days,
            invoice_number_prefix=config.invoice_number_prefix,
            failure_policy=config.billing_failure_policy,
            minimum_invoice_amount=config.minimum_invoice_amount,
        )
        return cls(store, settings, today=today)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> BillingSettings:
        return self._settings.model_copy(deep=True)

    def update_settings(self, **changes: Any) -> BillingSettings:
        """
        Replace billing settings, re-validating the merged result.

        Args:
            **changes: BillingSettings fields to change; ``rates`` may be a
                HourlyRates or a dict

        Returns:
            The new settings

        Raises:
            ValidationError: If the merged settings are invalid
        """
        merged = {**self._settings.model_dump(), **changes}
        if isinstance(merged["rates"], HourlyRates):
            merged["rates"] = merged["rates"].model_dump()

        try:
            settings = BillingSettings.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid billing settings: {e}") from e

        self._settings = settings
        self.numbering.prefix = settings.invoice_number_prefix
        logger.info(f"Billing settings updated: {sorted(changes)}")
        return self.get_settings()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @log_function_call
    def list_unbilled_entries(self, project_id: Optional[int] = None) -> List[UnbilledEntry]:
        """
        List billable entries that are not on any invoice.

        Args:
            project_id: Restrict the listing to one project

        Returns:
            Entries with project/client names, hourly rate and cost, ordered
            by date then id
        """
        rates = self._settings.rates
        with self.store.session_scope() as session:
            rows = self.store.unbilled_entries(session, project_id=project_id)

            unbilled = []
            for entry, project_name, client_id, client_name in rows:
                rate = rates.rate_for(entry.project_id)
                unbilled.append(
                    UnbilledEntry(
                        id=entry.id,
                        project_id=entry.project_id,
                        project_name=project_name,
                        client_id=client_id,
                        client_name=client_name,
                        task_id=entry.task_id,
                        user_name=entry.user_name,
                        description=entry.description,
                        hours=entry.hours,
                        hourly_rate=rate,
                        total_cost=calculate_entry_cost(entry.hours, rate),
                        date=entry.date,
                    )
                )

        logger.debug(f"Found {len(unbilled)} unbilled time entries")
        return unbilled

    @log_function_call
    def compute_billing_stats(self) -> BillingStats:
        """
        Aggregate unbilled time and this month's invoicing.

        Returns:
            BillingStats; every figure is 0 when there is nothing to report
        """
        today = self._today()
        month_start = today.replace(day=1)
        month_end = today.replace(day=calendar.monthrange(today.year, today.month)[1])

        with self.store.session_scope() as session:
            rows = self.store.unbilled_entries(session)
            invoices = self.store.invoices_issued_between(session, month_start, month_end)

            totals = aggregate_unbilled((row[0] for row in rows), self._settings.rates)
            billed = sum((invoice.amount for invoice in invoices), Decimal("0"))

        return BillingStats(
            total_unbilled_hours=totals.total_hours,
            total_unbilled_amount=totals.total_amount,
            total_billed_this_month=money(billed),
            average_hourly_rate=totals.average_hourly_rate,
        )

    def get_invoice(self, invoice_id: int) -> InvoiceSummary:
        """
        Fetch an invoice with the ids of the time entries it bills.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        with self.store.session_scope() as session:
            invoice = session.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError("Invoice", invoice_id)
            entry_ids = self.store.entry_ids_for_invoice(session, invoice_id)
            return _invoice_summary(invoice, entry_ids)

    # ------------------------------------------------------------------
    # Invoice generation
    # ------------------------------------------------------------------

    @log_function_call(include_args=True, level="INFO")
    def generate_invoice(self, project_id: int, time_entry_ids: Iterable[int]) -> InvoiceSummary:
        """
        Bill the given time entries of a project on a new invoice.

        The invoice is a draft issued today, due after the configured number
        of days, for Σ hours × rate rounded to cents with no tax.

        Args:
            project_id: Project being invoiced
            time_entry_ids: Entries to bill; all must belong to the project

        Returns:
            The created invoice

        Raises:
            NotFoundError: If the project does not exist
            ValidationError: If the id set is empty, or an id is missing,
                belongs to another project, is not billable or is already
                billed (lowest offending id is reported)
            ConflictError: If a concurrent request billed some of the
                entries first; nothing is written
            StorageError: If the database fails
        """
        entry_ids = list(time_entry_ids)
        with LogContext(project_id=project_id):
            with self.store.session_scope() as session:
                summary = self._generate_in_session(session, project_id, entry_ids)

            logger.info(
                f"Generated invoice {summary.invoice_number} for project {project_id}: "
                f"{summary.amount} ({len(summary.time_entry_ids)} time entries)"
            )
            return summary

    def _generate_in_session(
        self, session: Session, project_id: int, entry_ids: List[int]
    ) -> InvoiceSummary:
        project = session.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)

        entries = self.store.load_time_entries(session, set(entry_ids))

        report = ValidationReport()
        BillingRuleValidators.validate_entry_selection(project_id, entry_ids, entries, report)
        if not report.is_valid():
            logger.debug(
                f"Entry selection for project {project_id}: {report.summary()}, "
                f"offending ids {report.offending_ids()}"
            )
        report.raise_if_invalid()

        unique_ids = sorted(set(entry_ids))
        amount = calculate_invoice_amount(
            (entries[entry_id] for entry_id in unique_ids), self._settings.rates
        )
        BillingRuleValidators.validate_invoice_amount(amount, report)
        for warning in report.get_warnings():
            logger.warning(str(warning))

        issue_date = self._today()
        invoice = Invoice(
            invoice_number=self.numbering.next_number(session, issue_date),
            client_id=project.client_id,
            project_id=project_id,
            amount=amount,
            tax_amount=Decimal("0.00"),
            total_amount=amount,
            status="draft",
            issue_date=issue_date,
            due_date=issue_date + dt.timedelta(days=self._settings.invoice_due_days),
            description=f"Time entries for {project.name} ({len(unique_ids)} entries)",
            is_auto_generated=True,
        )
        session.add(invoice)
        session.flush()

        claimed = self.store.claim_time_entries(session, unique_ids, invoice.id)
        if claimed != len(unique_ids):
            taken = set(unique_ids) - set(self.store.entry_ids_for_invoice(session, invoice.id))
            raise ConflictError(
                f"{len(unique_ids) - claimed} of {len(unique_ids)} time entries were "
                f"billed by a concurrent request; refresh the unbilled list and retry",
                entity_ids=taken,
            )

        return _invoice_summary(invoice, unique_ids)

    @log_function_call(level="INFO")
    def run_automatic_billing(
        self, failure_policy: Optional[FailurePolicy] = None
    ) -> AutomaticBillingResult:
        """
        Invoice every project that has unbilled time, one invoice per project.

        Projects are processed in ascending id order. With the ``skip``
        policy each project is billed in its own transaction and a project
        that fails validation or loses a race is reported in ``failures``
        while the others proceed. With ``abort`` all projects share one
        transaction and the first failure is raised, leaving no invoice.

        Args:
            failure_policy: Overrides the configured policy for this run

        Returns:
            AutomaticBillingResult; zero invoices and 0.00 when nothing is
            unbilled

        Raises:
            StorageError: If the database fails (under either policy)
            ValidationError, ConflictError, NotFoundError: Under ``abort``
        """
        policy = failure_policy or self._settings.failure_policy
        rates = self._settings.rates
        minimum = self._settings.minimum_invoice_amount

        with LogContext(correlation_id=generate_correlation_id(), billing_policy=policy):
            with self.store.session_scope() as session:
                rows = self.store.unbilled_entries(session)
            groups = group_entries_by_project(row[0] for row in rows)

            if not groups:
                logger.info("Automatic billing: no unbilled time entries")
                return AutomaticBillingResult()

            invoices: List[InvoiceSummary] = []
            failures: List[BillingGroupFailure] = []
            skipped: List[SkippedBillingGroup] = []

            billable_groups: Dict[int, List[int]] = {}
            for project_id, entries in groups.items():
                entry_ids = [entry.id for entry in entries]
                amount = calculate_invoice_amount(entries, rates)
                if minimum is not None and amount < minimum:
                    logger.info(
                        f"Project {project_id}: {amount} is below the minimum "
                        f"invoice amount {minimum}, leaving unbilled"
                    )
                    skipped.append(
                        SkippedBillingGroup(
                            project_id=project_id, time_entry_ids=entry_ids, amount=amount
                        )
                    )
                    continue
                billable_groups[project_id] = entry_ids

            if policy == "abort":
                with self.store.session_scope() as session:
                    for project_id, entry_ids in billable_groups.items():
                        with LogContext(project_id=project_id):
                            invoices.append(
                                self._generate_in_session(session, project_id, entry_ids)
                            )
            else:
                for project_id, entry_ids in billable_groups.items():
                    with LogContext(project_id=project_id):
                        try:
                            with self.store.session_scope() as session:
                                invoices.append(
                                    self._generate_in_session(session, project_id, entry_ids)
                                )
                        except GROUP_FAILURES as e:
                            logger.warning(
                                f"Automatic billing skipped project {project_id}: "
                                f"{type(e).__name__}: {e}"
                            )
                            failures.append(
                                BillingGroupFailure(
                                    project_id=project_id,
                                    time_entry_ids=entry_ids,
                                    error_type=type(e).__name__,
                                    message=str(e),
                                )
                            )

            total = money(sum((invoice.amount for invoice in invoices), Decimal("0")))
            logger.info(
                f"Automatic billing complete: {len(invoices)} invoices, total {total}, "
                f"{len(failures)} failed, {len(skipped)} skipped"
            )
            return AutomaticBillingResult(
                invoices_generated=len(invoices),
                total_amount=total,
                invoices=invoices,
                failures=failures,
                skipped=skipped,
            )

    def create_invoice(self, payload: Union[InvoiceCreate, Dict[str, Any]]) -> InvoiceSummary:
        """
        Create a manual invoice.

        A number is allocated when the payload has none; the issue date
        defaults to today.

        Args:
            payload: InvoiceCreate or a dict of its fields

        Returns:
            The created invoice

        Raises:
            ValidationError: If the payload is invalid, the number is taken,
                or the project belongs to another client
            NotFoundError: If the client or project does not exist
        """
        if not isinstance(payload, InvoiceCreate):
            try:
                payload = InvoiceCreate.model_validate(payload)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid invoice: {e}") from e

        with self.store.session_scope() as session:
            if session.get(Client, payload.client_id) is None:
                raise NotFoundError("Client", payload.client_id)
            if payload.project_id is not None:
                project = session.get(Project, payload.project_id)
                if project is None:
                    raise NotFoundError("Project", payload.project_id)
                if project.client_id != payload.client_id:
                    raise ValidationError(
                        f"Project {project.id} belongs to client {project.client_id}, "
                        f"not client {payload.client_id}",
                        entity_id=project.id,
                    )

            issue_date = payload.issue_date or self._today()
            if payload.due_date < issue_date:
                raise ValidationError(
                    f"due_date ({payload.due_date}) must not be before "
                    f"issue_date ({issue_date})"
                )

            if payload.invoice_number is None:
                number = self.numbering.next_number(session, issue_date)
            elif self.store.invoice_number_exists(session, payload.invoice_number):
                raise ValidationError(f"Invoice number {payload.invoice_number} already exists")
            else:
                number = payload.invoice_number

            values = payload.model_dump(exclude={"invoice_number", "issue_date"})
            invoice = Invoice(invoice_number=number, issue_date=issue_date, **values)
            session.add(invoice)
            session.flush()
            summary = _invoice_summary(invoice, [])

        logger.info(f"Created invoice {summary.invoice_number} for client {summary.client_id}")
        return summary
