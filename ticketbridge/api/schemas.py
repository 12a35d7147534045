"""
Request bodies for the print endpoints.

POS clients are loose about shapes: a printer may arrive as a plain name or
as the printer object from their own catalog, and ``data`` is sometimes
wrapped in a one-element list. Both are normalized here so nothing past the
request layer has to care.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ticketbridge.errors import ValidationError


class TicketRequest(BaseModel):
    ticket_type: Optional[str] = None
    printer_name: Any = None
    data: Any = None
    translations: Optional[dict[str, Any]] = None


class BatchItemRequest(BaseModel):
    printer_name: Any = None
    data: Any = None


class BatchRequest(BaseModel):
    items: list[BatchItemRequest] = Field(default_factory=list)
    ticket_type: Optional[str] = None
    translations: Optional[dict[str, Any]] = None


class PrintTestRequest(BaseModel):
    printer_name: Any = None
    translations: Optional[dict[str, Any]] = None


def resolve_printer_name(value: Any) -> str:
    """Accept ``"Cocina"`` or ``{"nombre": "Cocina", ...}``. Anything else is no name."""
    if isinstance(value, dict):
        value = value.get("nombre")
    if isinstance(value, str):
        return value.strip()
    return ""


def resolve_data(value: Any) -> dict:
    """Unwrap the ticket data object, taking the first element of a list."""
    if isinstance(value, list):
        if not value:
            raise ValidationError("Ticket data list is empty", "EMPTY_DATA")
        value = value[0]
    if value is None:
        raise ValidationError("Ticket data is required", "MISSING_DATA")
    if not isinstance(value, dict):
        raise ValidationError("Ticket data must be an object", "INVALID_PAYLOAD")
    return value
