"""Exceptions raised by the billing engine, alert surface and store."""

from typing import Iterable, List, Optional


class FlowDeskError(Exception):
    """Base class for all FlowDesk errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(FlowDeskError):
    """Invalid or cross-entity-inconsistent input.

    Attributes:
        entity_id: Id of the offending record (e.g. a time entry), if any
    """

    def __init__(self, message: str, entity_id: Optional[int] = None):
        self.entity_id = entity_id
        super().__init__(message)


class ConflictError(FlowDeskError):
    """A concurrent request already consumed some of the referenced records.

    The caller should refresh the unbilled list and retry.

    Attributes:
        entity_ids: Ids that could not be claimed
    """

    def __init__(self, message: str, entity_ids: Iterable[int] = ()):
        self.entity_ids: List[int] = sorted(entity_ids)
        super().__init__(message)


class NotFoundError(FlowDeskError):
    """A referenced record does not exist."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} does not exist")


class StorageError(FlowDeskError):
    """Failure reported by the persistence store.

    Attributes:
        retryable: Whether the underlying failure is transient
    """

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)
