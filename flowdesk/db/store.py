"""Persistence store backed by SQLAlchemy.

The store is the only component that talks to the database. It offers:

- a transactional ``session_scope()`` that commits on success, rolls back
  on any exception and re-raises database failures as ``StorageError``;
- generic create/read/update/delete for every entity, with payloads
  validated through the pydantic schemas of ``flowdesk.models.entities``;
- the billing queries the engine composes inside a single transaction.
"""

import datetime as dt
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import create_engine, event, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from flowdesk.db.error_classifier import ErrorClassifier
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
from flowdesk.errors import NotFoundError, StorageError, ValidationError
from flowdesk.models.base import BaseDataModel
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
from flowdesk.utils.logging_utils import redact_database_url

logger = logging.getLogger(__name__)

RowT = TypeVar("RowT", bound=Base)

SCHEMA_TABLES: Dict[Type[BaseDataModel], Type[Base]] = {
    ClientCreate: Client,
    ContactCreate: Contact,
    ProjectCreate: Project,
    TaskCreate: Task,
    TimeEntryCreate: TimeEntry,
    ExpenseCreate: Expense,
    ContractCreate: Contract,
    InvoiceCreate: Invoice,
    AutomationRuleCreate: AutomationRule,
    NotificationCreate: Notification,
}
TABLE_SCHEMAS: Dict[Type[Base], Type[BaseDataModel]] = {
    table: schema for schema, table in SCHEMA_TABLES.items()
}

# Foreign-key fields checked before insert/update so that a dangling
# reference is reported as NotFoundError instead of a constraint failure
REFERENCE_FIELDS: Dict[str, Type[Base]] = {
    "client_id": Client,
    "project_id": Project,
    "task_id": Task,
    "invoice_id": Invoice,
}

UnbilledRow = Tuple[TimeEntry, str, int, str]


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Engine keyword arguments for the given URL.

    SQLite connections are shared with the alert refresher thread, and an
    in-memory database must live on a single connection to persist at all.
    """
    if not database_url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return options


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _format_pydantic_error(schema: Type[BaseDataModel], error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(loc) for loc in item["loc"]) or schema.__name__
        parts.append(f"{location}: {item['msg']}")
    return f"Invalid {schema.__name__}: " + "; ".join(parts)


class PersistenceStore:
    """Relational store for every back-office entity.

    Instances returned by the store are detached from their session with
    all column attributes loaded; relationships are not loaded.

    Example:
        >>> store = PersistenceStore("sqlite://")
        >>> store.create_schema()
        >>> client = store.create(ClientCreate(name="Empresa ABC"))
        >>> store.get(Client, client.id).name
        'Empresa ABC'
    """

    def __init__(
        self,
        database_url: str = "sqlite:///flowdesk.db",
        echo: bool = False,
        engine: Optional[Engine] = None,
        classifier: Optional[ErrorClassifier] = None,
    ):
        """
        Initialize the store.

        Args:
            database_url: SQLAlchemy database URL
            echo: Log every SQL statement
            engine: Pre-built engine (overrides database_url/echo)
            classifier: Classifier used to flag retryable failures
        """
        if engine is None:
            engine = create_engine(database_url, echo=echo, **_engine_options(database_url))
        self.engine = engine
        if self.engine.dialect.name == "sqlite":
            _enable_sqlite_foreign_keys(self.engine)

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.classifier = classifier or ErrorClassifier()

        logger.info(
            f"PersistenceStore initialized "
            f"(url={redact_database_url(str(self.engine.url))})"
        )

    @classmethod
    def from_config(cls, config) -> "PersistenceStore":
        """Build a store from a ``FlowDeskConfig``."""
        return cls(database_url=config.database_url, echo=config.database_echo)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_schema(self) -> None:
        """Create all tables that do not exist yet."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise self._storage_error(e) from e

    def drop_schema(self) -> None:
        """Drop all tables."""
        try:
            Base.metadata.drop_all(self.engine)
        except SQLAlchemyError as e:
            raise self._storage_error(e) from e

    def dispose(self) -> None:
        """Close all pooled connections."""
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits when the block exits normally. Any exception rolls the
        transaction back; SQLAlchemy errors are re-raised as StorageError,
        everything else is re-raised unchanged.

        Yields:
            Session bound to a fresh transaction

        Raises:
            StorageError: If the database reports a failure
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise self._storage_error(e) from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def _storage_error(self, error: SQLAlchemyError) -> StorageError:
        retryable = self.classifier.is_retryable(error)
        description = self.classifier.get_error_description(error)
        logger.error(f"Storage failure: {description}")
        return StorageError(description, retryable=retryable)

    # ------------------------------------------------------------------
    # Generic CRUD
    # ------------------------------------------------------------------

    def create(self, payload: BaseDataModel) -> Base:
        """
        Insert a new record.

        Args:
            payload: A validated create schema (ClientCreate, ProjectCreate, ...)

        Returns:
            The inserted row, with its generated id

        Raises:
            ValidationError: If the payload type is unknown or incomplete
            NotFoundError: If a referenced client/project/task/invoice is missing
            StorageError: If the database rejects the insert
        """
        table = SCHEMA_TABLES.get(type(payload))
        if table is None:
            raise ValidationError(f"No table accepts {type(payload).__name__} payloads")

        values = payload.model_dump()
        if table is Invoice:
            if not values.get("invoice_number") or values.get("issue_date") is None:
                raise ValidationError(
                    "Invoices need an invoice_number and issue_date; "
                    "use BillingEngine.create_invoice to allocate them"
                )
        if table is TimeEntry and values.get("invoice_id") is not None:
            raise ValidationError("Time entries are created unbilled")

        with self.session_scope() as session:
            self._check_references(session, values)
            row = table(**values)
            session.add(row)
            session.flush()
            session.refresh(row)

        logger.debug(f"Created {table.__name__} {row.id}")
        return row

    def get(self, model: Type[RowT], entity_id: int) -> RowT:
        """
        Fetch one record by primary key.

        Raises:
            NotFoundError: If no such record exists
        """
        with self.session_scope() as session:
            row = session.get(model, entity_id)
            if row is None:
                raise NotFoundError(model.__name__, entity_id)
            return row

    def list(self, model: Type[RowT], **filters: Any) -> List[RowT]:
        """
        List records of a table, optionally filtered by column equality.

        Args:
            model: Table class
            **filters: column=value pairs

        Returns:
            Matching rows ordered by id

        Raises:
            ValidationError: If a filter names an unknown column
        """
        columns = model.__table__.columns
        stmt = select(model)
        for name, value in filters.items():
            if name not in columns:
                raise ValidationError(f"{model.__name__} has no column '{name}'")
            stmt = stmt.where(columns[name] == value)
        stmt = stmt.order_by(columns["id"] if "id" in columns else columns[0])

        with self.session_scope() as session:
            return list(session.scalars(stmt).all())

    def update(self, model: Type[RowT], entity_id: int, **changes: Any) -> RowT:
        """
        Update a record, re-validating the merged result through its schema.

        Invoices recompute ``total_amount`` when the amount or tax changes
        without an explicit total. Billed time entries are immutable and
        ``invoice_id`` can only be set by the billing engine.

        Raises:
            NotFoundError: If the record or a new reference does not exist
            ValidationError: If the merged record violates its schema
        """
        schema = TABLE_SCHEMAS.get(model)
        if schema is None:
            raise ValidationError(f"{model.__name__} records cannot be updated")

        with self.session_scope() as session:
            row = session.get(model, entity_id)
            if row is None:
                raise NotFoundError(model.__name__, entity_id)

            if model is TimeEntry:
                if "invoice_id" in changes:
                    raise ValidationError(
                        "invoice_id is assigned by invoice generation only",
                        entity_id=entity_id,
                    )
                if row.invoice_id is not None:
                    raise ValidationError(
                        f"Time entry {entity_id} is billed on invoice "
                        f"{row.invoice_id} and can no longer change",
                        entity_id=entity_id,
                    )

            current = {name: getattr(row, name) for name in schema.model_fields}
            merged = {**current, **changes}
            if model is Invoice and "total_amount" not in changes and (
                "amount" in changes or "tax_amount" in changes
            ):
                merged["total_amount"] = None

            validated = self._validate(schema, merged)
            values = validated.model_dump()
            self._check_references(session, values)

            # Validators may derive fields (invoice total, task completion)
            for name, value in values.items():
                if getattr(row, name) != value:
                    setattr(row, name, value)
            session.flush()
            return row

    def delete(self, model: Type[Base], entity_id: int) -> None:
        """
        Delete a record.

        Raises:
            NotFoundError: If the record does not exist
            ValidationError: If the record is a billed time entry
            StorageError: If other records still reference it
        """
        with self.session_scope() as session:
            row = session.get(model, entity_id)
            if row is None:
                raise NotFoundError(model.__name__, entity_id)
            if isinstance(row, TimeEntry) and row.invoice_id is not None:
                raise ValidationError(
                    f"Time entry {entity_id} is billed and cannot be deleted",
                    entity_id=entity_id,
                )
            session.delete(row)

        logger.debug(f"Deleted {model.__name__} {entity_id}")

    def _validate(self, schema: Type[BaseDataModel], data: Dict[str, Any]) -> BaseDataModel:
        try:
            return schema.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(_format_pydantic_error(schema, e)) from e

    def _check_references(self, session: Session, values: Dict[str, Any]) -> None:
        for field, table in REFERENCE_FIELDS.items():
            ref_id = values.get(field)
            if ref_id is not None and session.get(table, ref_id) is None:
                raise NotFoundError(table.__name__, ref_id)

        task_id = values.get("task_id")
        project_id = values.get("project_id")
        if task_id is not None and project_id is not None:
            task = session.get(Task, task_id)
            if task.project_id != project_id:
                raise ValidationError(
                    f"Task {task_id} belongs to project {task.project_id}, "
                    f"not project {project_id}",
                    entity_id=task_id,
                )

    # ------------------------------------------------------------------
    # Billing queries (run inside the caller's session)
    # ------------------------------------------------------------------

    def unbilled_entries(
        self, session: Session, project_id: Optional[int] = None
    ) -> List[UnbilledRow]:
        """
        Select billable entries not attached to any invoice.

        Returns:
            (entry, project name, client id, client name) tuples ordered by
            entry date, then id
        """
        stmt = (
            select(TimeEntry, Project.name, Client.id, Client.name)
            .join(Project, TimeEntry.project_id == Project.id)
            .join(Client, Project.client_id == Client.id)
            .where(TimeEntry.billable.is_(True), TimeEntry.invoice_id.is_(None))
            .order_by(TimeEntry.date, TimeEntry.id)
        )
        if project_id is not None:
            stmt = stmt.where(TimeEntry.project_id == project_id)

        return [tuple(row) for row in session.execute(stmt).all()]

    def load_time_entries(self, session: Session, entry_ids: Iterable[int]) -> Dict[int, TimeEntry]:
        """Load time entries by id; missing ids are simply absent."""
        ids = list(entry_ids)
        if not ids:
            return {}
        rows = session.scalars(select(TimeEntry).where(TimeEntry.id.in_(ids))).all()
        return {row.id: row for row in rows}

    def claim_time_entries(
        self, session: Session, entry_ids: Iterable[int], invoice_id: int
    ) -> int:
        """
        Attach still-unbilled entries to an invoice.

        The update only touches rows whose ``invoice_id`` is NULL, so when
        two transactions race for the same entries the loser sees a short
        row count.

        Returns:
            Number of entries claimed
        """
        ids = list(entry_ids)
        result = session.execute(
            update(TimeEntry)
            .where(TimeEntry.id.in_(ids), TimeEntry.invoice_id.is_(None))
            .values(invoice_id=invoice_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def entry_ids_for_invoice(self, session: Session, invoice_id: int) -> List[int]:
        stmt = (
            select(TimeEntry.id)
            .where(TimeEntry.invoice_id == invoice_id)
            .order_by(TimeEntry.id)
        )
        return list(session.scalars(stmt).all())

    def invoices_issued_between(
        self, session: Session, start: dt.date, end: dt.date
    ) -> List[Invoice]:
        """Invoices whose issue date lies in [start, end]."""
        stmt = (
            select(Invoice)
            .where(Invoice.issue_date >= start, Invoice.issue_date <= end)
            .order_by(Invoice.id)
        )
        return list(session.scalars(stmt).all())

    def invoice_number_exists(self, session: Session, invoice_number: str) -> bool:
        stmt = select(Invoice.id).where(Invoice.invoice_number == invoice_number)
        return session.execute(stmt).first() is not None

    def next_sequence_value(self, session: Session, name: str) -> int:
        """
        Increment and return a named counter inside the caller's transaction.

        The increment is a single UPDATE, so the row stays write-locked
        until the caller commits and concurrent callers queue behind it.
        A missing row is inserted inside a savepoint; when a concurrent
        transaction inserts it first, the increment is applied to theirs.
        A rolled back transaction gives its number back.
        """
        if self._increment_sequence(session, name):
            return self._sequence_value(session, name)

        try:
            with session.begin_nested():
                session.execute(insert(Sequence).values(name=name, value=1))
        except IntegrityError:
            logger.debug(f"Sequence {name} created concurrently, incrementing it")
            self._increment_sequence(session, name)
        return self._sequence_value(session, name)

    def _increment_sequence(self, session: Session, name: str) -> bool:
        result = session.execute(
            update(Sequence)
            .where(Sequence.name == name)
            .values(value=Sequence.value + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _sequence_value(self, session: Session, name: str) -> int:
        return session.scalar(select(Sequence.value).where(Sequence.name == name))
