"""
Invoice number allocation.

Numbers have the form ``{prefix}-{year}-{number:04d}`` (e.g. INV-2024-0007)
and come from a per-year counter stored in the ``sequences`` table. The
counter is incremented inside the caller's transaction, so a rolled back
invoice gives its number back and two processes never share a counter.
"""

import datetime as dt
import logging

from sqlalchemy.orm import Session

from flowdesk.db.store import PersistenceStore
from flowdesk.errors import StorageError

logger = logging.getLogger(__name__)

NUMBER_FORMAT = "{prefix}-{year}-{number:04d}"

# Upper bound on numbers skipped because they were already taken by
# manually numbered invoices
MAX_COLLISIONS = 100


class InvoiceNumberGenerator:
    """
    Allocates unique invoice numbers from a store-backed sequence.

    Example:
        >>> generator = InvoiceNumberGenerator(store, prefix="INV")
        >>> with store.session_scope() as session:
        ...     generator.next_number(session, dt.date(2024, 3, 1))
        'INV-2024-0001'
    """

    def __init__(self, store: PersistenceStore, prefix: str = "INV"):
        self.store = store
        self.prefix = prefix

    def sequence_name(self, year: int) -> str:
        return f"invoice:{self.prefix}:{year}"

    def format_number(self, year: int, number: int) -> str:
        return NUMBER_FORMAT.format(prefix=self.prefix, year=year, number=number)

    def next_number(self, session: Session, issue_date: dt.date) -> str:
        """
        Allocate the next free invoice number for the issue date's year.

        Numbers already used by existing invoices (typically entered by
        hand) are skipped.

        Args:
            session: Session of the transaction creating the invoice
            issue_date: Issue date of the invoice

        Returns:
            A number not used by any invoice visible to this transaction

        Raises:
            StorageError: If MAX_COLLISIONS consecutive numbers are taken
        """
        name = self.sequence_name(issue_date.year)

        for _ in range(MAX_COLLISIONS):
            value = self.store.next_sequence_value(session, name)
            number = self.format_number(issue_date.year, value)
            if not self.store.invoice_number_exists(session, number):
                logger.debug(f"Allocated invoice number {number}")
                return number
            logger.warning(f"Invoice number {number} already in use, skipping")

        raise StorageError(
            f"Could not allocate an invoice number for {issue_date.year}: "
            f"{MAX_COLLISIONS} consecutive numbers are taken"
        )
