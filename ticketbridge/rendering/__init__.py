from .escpos import encode_document
from .ops import (
    Alignment,
    Cut,
    DrawerPulse,
    Feed,
    RenderOp,
    SetAlignment,
    SetStyle,
    Text,
    TextStyle,
    TicketDocument,
)
from .templates import build_document


def render_ticket(ticket_type, payload, translations=None) -> bytes:
    """Lay out and encode a ticket in one step."""
    return encode_document(build_document(ticket_type, payload, translations))


__all__ = [
    "Alignment",
    "Cut",
    "DrawerPulse",
    "Feed",
    "RenderOp",
    "SetAlignment",
    "SetStyle",
    "Text",
    "TextStyle",
    "TicketDocument",
    "build_document",
    "encode_document",
    "render_ticket",
]
