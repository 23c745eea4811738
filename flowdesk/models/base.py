"""Base models for all FlowDesk data models.

Two flavours are provided:

- ``BaseDataModel`` for validated input payloads (entity create schemas,
  settings objects). Unknown fields are rejected.
- ``ResponseModel`` for operation results. Fields are snake_case in Python
  and serialise to the camelCase names used by the front end when dumped
  with ``by_alias=True``.
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseDataModel(BaseModel):
    """Base class for all data models.

    Example:
        >>> class Tag(BaseDataModel):
        ...     name: str
        >>> Tag(name="vip").model_dump()
        {'name': 'vip'}
    """

    model_config = ConfigDict(
        # Allow arbitrary types like Decimal, date
        arbitrary_types_allowed=True,
        # Validate on assignment to catch errors early
        validate_assignment=True,
        strict=False,
        extra="forbid",
        frozen=False,
    )


class ResponseModel(BaseDataModel):
    """Base class for operation results.

    Example:
        >>> class Totals(ResponseModel):
        ...     invoices_generated: int
        >>> Totals(invoices_generated=2).to_api()
        {'invoicesGenerated': 2}
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_api(self) -> Dict[str, Any]:
        """Dump the model with camelCase keys and JSON-safe values."""
        return self.model_dump(mode="json", by_alias=True)
