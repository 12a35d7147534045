from .models import (
    FullTicket,
    OrderSlip,
    PreBill,
    ClosingReport,
    SimpleTicket,
    TicketPayload,
    TicketType,
    parse_payload,
    priority_tier,
)
from .translations import DEFAULT_TRANSLATIONS, resolve_translations

__all__ = [
    "ClosingReport",
    "FullTicket",
    "OrderSlip",
    "PreBill",
    "SimpleTicket",
    "TicketPayload",
    "TicketType",
    "parse_payload",
    "priority_tier",
    "DEFAULT_TRANSLATIONS",
    "resolve_translations",
]
