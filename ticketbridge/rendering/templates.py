"""
Ticket layouts.

``build_document`` maps (ticket type, payload, labels) to a TicketDocument.
Layouts are pure: no clock, no locale, no I/O, so the same input always
produces the same ops. Column widths are those of the printers already in
service and must not drift.
"""

from typing import Callable, Mapping

from ticketbridge.errors import RenderError
from ticketbridge.rendering.layout import (
    LINE_SEPARATOR,
    SEPARATOR,
    STAR_SEPARATOR,
    item_rows,
    money,
    summary_row,
    wrap_text,
)
from ticketbridge.rendering.ops import Alignment, DocumentBuilder, TicketDocument
from ticketbridge.tickets.models import (
    CLOSING_ACTIVITY_FIELDS,
    CLOSING_DISCOUNT_FIELDS,
    CLOSING_MOVEMENT_FIELDS,
    CLOSING_SUMMARY_FIELDS,
    DEFAULT_CURRENCY_SYMBOL,
    ClosingReport,
    FullTicket,
    OrderSlip,
    PreBill,
    SimpleTicket,
    TicketPayload,
    TicketType,
    Venue,
)
from ticketbridge.tickets.translations import resolve_translations

FINAL_FEED_LINES = 6
CASH_DRAWER_CHANNEL = 0

# Column budgets per layout
ORDER_QTY_WIDTH = 8
ORDER_NAME_WIDTH = 40
ORDER_MODIFIER_PREFIX_WIDTH = 16
ORDER_MODIFIER_WIDTH = 30
ORDER_NOTE_WIDTH = 40

SIMPLE_QTY_WIDTH = 5
SIMPLE_NAME_WIDTH = 20
SIMPLE_PRICE_WIDTH = 6

PRE_BILL_QTY_WIDTH = 5
PRE_BILL_NAME_WIDTH = 26
PRE_BILL_PRICE_WIDTH = 8

FULL_QTY_WIDTH = 6
FULL_NAME_WIDTH = 22
FULL_PRICE_WIDTH = 10

CLOSING_QTY_WIDTH = 6
CLOSING_NAME_WIDTH = 20
CLOSING_PRICE_WIDTH = 8


def _finish(doc: DocumentBuilder) -> None:
    doc.feed(FINAL_FEED_LINES)
    doc.cut()


def _venue_lines(doc: DocumentBuilder, venue: Venue) -> None:
    for value in (venue.name, venue.phone):
        if value:
            doc.line(value)


def _order_slip(slip: OrderSlip, t: Mapping[str, str]) -> TicketDocument:
    doc = DocumentBuilder()
    doc.feed(1)
    doc.align(Alignment.CENTER)
    doc.line(STAR_SEPARATOR)
    doc.emphasized(t["order_slip"])
    doc.line(SEPARATOR)

    doc.align(Alignment.LEFT)
    if slip.number:
        doc.emphasized(f"N: {slip.number}")
    doc.line(f"{t['area']}: {slip.area}")
    doc.line(f"{t['table']}: {slip.table or t['unassigned']}")
    doc.line(f"{t['waiter']}: {slip.waiter}")
    doc.line(f"{t['date']}: {slip.date}")
    doc.line(SEPARATOR)

    doc.line(f"{t['qty'].ljust(ORDER_QTY_WIDTH)}{t['product']}")
    doc.line(LINE_SEPARATOR)

    for item in slip.items:
        for row in item_rows(item.quantity, item.name, ORDER_QTY_WIDTH, ORDER_NAME_WIDTH):
            doc.line(row)

        for modifier in item.modifiers:
            prefix = " " + f"{modifier.quantity}x ".rjust(ORDER_MODIFIER_PREFIX_WIDTH - 1)
            name_lines = wrap_text(modifier.name, ORDER_MODIFIER_WIDTH)
            doc.line(f"{prefix}{name_lines[0]} *")
            for extra in name_lines[1:]:
                doc.line(f"{' ' * ORDER_MODIFIER_PREFIX_WIDTH}{extra}")

        if item.note:
            doc.line(f"  - {t['note']}:")
            for note_line in wrap_text(item.note, ORDER_NOTE_WIDTH):
                doc.line(f"    {note_line}")

    doc.line(STAR_SEPARATOR)
    _finish(doc)
    return doc.build()


def _simple_ticket(ticket: SimpleTicket, t: Mapping[str, str], title: str) -> TicketDocument:
    symbol = DEFAULT_CURRENCY_SYMBOL
    doc = DocumentBuilder()
    doc.feed(1)
    doc.align(Alignment.CENTER)
    doc.emphasized(title)
    doc.line(SEPARATOR)
    _venue_lines(doc, ticket.venue)
    doc.line(SEPARATOR)

    doc.align(Alignment.LEFT)
    doc.line(f"{t['table']}: {ticket.table}")
    doc.line(SEPARATOR)

    doc.line(f"{t['qty']}   {t['product']}                 {t['unit_price']}    {t['product_total']}")
    doc.line(LINE_SEPARATOR)
    for item in ticket.items:
        columns = (
            f"     {money(item.unit_price, symbol).rjust(SIMPLE_PRICE_WIDTH)}"
            f"    {money(item.total, symbol).rjust(SIMPLE_PRICE_WIDTH)}"
        )
        for row in item_rows(item.quantity, item.name, SIMPLE_QTY_WIDTH, SIMPLE_NAME_WIDTH, columns):
            doc.line(row)
    doc.line(LINE_SEPARATOR)

    doc.align(Alignment.RIGHT)
    if ticket.subtotal is not None:
        doc.line(f"{t['subtotal']}: {money(ticket.subtotal, symbol)}")
    if ticket.total is not None:
        doc.line(f"{t['total']}: {money(ticket.total, symbol)}")

    doc.align(Alignment.CENTER)
    doc.line(SEPARATOR)
    doc.line(t["thank_you"])
    doc.line(t["come_again"])
    _finish(doc)
    return doc.build()


def _pre_bill(bill: PreBill, t: Mapping[str, str]) -> TicketDocument:
    symbol = bill.currency
    doc = DocumentBuilder()
    doc.feed(1)
    doc.align(Alignment.CENTER)
    doc.emphasized(t["pre_bill"])
    doc.line(SEPARATOR)

    _venue_lines(doc, bill.venue)
    doc.line(f"{t['table']}: {bill.table}")
    if bill.printed_at:
        doc.line(bill.printed_at)
    doc.line(SEPARATOR)

    doc.align(Alignment.LEFT)
    doc.line(
        f"{t['qty'].ljust(PRE_BILL_QTY_WIDTH)}{t['product'].ljust(PRE_BILL_NAME_WIDTH)}"
        f"{t['unit_price'].rjust(PRE_BILL_PRICE_WIDTH)}{t['product_total'].rjust(PRE_BILL_PRICE_WIDTH)}"
    )
    doc.line(LINE_SEPARATOR)
    for item in bill.items:
        columns = (
            f"{money(item.unit_price, symbol).rjust(PRE_BILL_PRICE_WIDTH)}"
            f"{money(item.total, symbol).rjust(PRE_BILL_PRICE_WIDTH)}"
        )
        for row in item_rows(item.quantity, item.name, PRE_BILL_QTY_WIDTH, PRE_BILL_NAME_WIDTH, columns):
            doc.line(row)
    doc.line(LINE_SEPARATOR)

    doc.align(Alignment.RIGHT)
    doc.line(f"{t['subtotal']}: {money(bill.subtotal, symbol)}")
    for tax in bill.taxes:
        doc.line(f"  {tax.name}: {money(tax.amount, symbol)}")
    if bill.tip is not None:
        doc.line(f"{t['tip']}: {money(bill.tip, symbol)}")
    doc.emphasized(f"{t['total']}: {money(bill.total, symbol)}")

    doc.align(Alignment.CENTER)
    doc.line(SEPARATOR)
    if bill.header_text:
        doc.line(bill.header_text)
    if bill.footer_text:
        doc.line(bill.footer_text)
    _finish(doc)
    return doc.build()


def _full_ticket(ticket: FullTicket, t: Mapping[str, str]) -> TicketDocument:
    symbol = ticket.currency
    doc = DocumentBuilder()
    doc.feed(1)
    doc.align(Alignment.CENTER)
    doc.emphasized(t["full_ticket"])
    doc.line(SEPARATOR)

    _venue_lines(doc, ticket.venue)
    if ticket.venue.tax_id:
        doc.line(f"{t['tax_id']}: {ticket.venue.tax_id}")
    if ticket.receipt_number:
        doc.line(f"{t['number']}: {ticket.receipt_number}")
    doc.line(SEPARATOR)

    doc.align(Alignment.LEFT)
    if ticket.client_name:
        doc.line(f"{t['client']}: {ticket.client_name}")
    doc.line(f"{t['table']}: {ticket.table}")
    doc.line(f"{t['seller']}: {ticket.seller}")
    doc.line(f"{t['date']}: {ticket.closed_at}")
    doc.line(SEPARATOR)

    doc.line(
        f"{t['qty'].ljust(FULL_QTY_WIDTH)}{t['product'].ljust(FULL_NAME_WIDTH)}"
        f"{t['unit_price'].rjust(FULL_PRICE_WIDTH)}{t['product_total'].rjust(FULL_PRICE_WIDTH)}"
    )
    doc.line(LINE_SEPARATOR)
    for item in ticket.items:
        columns = (
            f"{money(item.unit_price, symbol).rjust(FULL_PRICE_WIDTH)}"
            f"{money(item.total, symbol).rjust(FULL_PRICE_WIDTH)}"
        )
        for row in item_rows(item.quantity, item.name, FULL_QTY_WIDTH, FULL_NAME_WIDTH, columns):
            doc.line(row)
    doc.line(LINE_SEPARATOR)

    doc.align(Alignment.RIGHT)
    doc.line(f"{t['subtotal']}: {money(ticket.subtotal, symbol)}")
    if ticket.discount:
        doc.line(f"{t['discount']}: {money(ticket.discount, symbol)}")
    for tax in ticket.taxes:
        doc.line(f"  {tax.name}: {money(tax.amount, symbol)}")
    if ticket.tip is not None:
        doc.line(f"{t['tip']}: {money(ticket.tip, symbol)}")
    doc.emphasized(f"{t['total']}: {money(ticket.total, symbol)}")

    if ticket.payments:
        doc.line(SEPARATOR)
        doc.line(t["payments"])
        for payment in ticket.payments:
            card = f" ({payment.card})" if payment.card else ""
            doc.line(f"{payment.type_name}: {money(payment.amount, symbol)}{card}")

    if ticket.credit:
        doc.line(SEPARATOR)
        doc.line(f"{t['credit']}: {money(ticket.credit.total, symbol)}")
        doc.line(f"{t['num_installments']}: {ticket.credit.installments}")

    doc.align(Alignment.CENTER)
    doc.line(SEPARATOR)
    if ticket.venue.footer:
        doc.line(ticket.venue.footer)
    doc.line(t["thank_you"])
    doc.line(t["come_again"])
    _finish(doc)

    if ticket.has_cash_payment:
        doc.drawer(CASH_DRAWER_CHANNEL)
    return doc.build()


def _closing_report(report: ClosingReport, t: Mapping[str, str]) -> TicketDocument:
    doc = DocumentBuilder()

    def section(title_key: str, fields) -> None:
        rows = [(key, report.amount(key)) for key, _ in fields if report.amount(key) is not None]
        if not rows:
            return
        doc.align(Alignment.CENTER)
        doc.line(t[title_key])
        doc.line(SEPARATOR)
        doc.align(Alignment.LEFT)
        for key, value in rows:
            doc.line(summary_row(t[key], value))
        doc.line(SEPARATOR)

    doc.feed(1)
    doc.align(Alignment.CENTER)
    doc.line(t["closing_report"])
    doc.line(SEPARATOR)

    doc.align(Alignment.LEFT)
    doc.line(f"{t['register']}: {report.register_name}")
    doc.line(f"{t['opened_by']}: {report.opened_by}")
    doc.line(f"{t['closed_by']}: {report.closed_by}")
    doc.line(f"{t['opened_at']}: {report.opened_at}")
    doc.line(f"{t['closed_at']}: {report.closed_at}")
    doc.line(SEPARATOR)

    section("register_summary", CLOSING_SUMMARY_FIELDS)
    section("movements", CLOSING_MOVEMENT_FIELDS)
    section("discounts_applied", CLOSING_DISCOUNT_FIELDS)

    if report.items:
        doc.align(Alignment.CENTER)
        doc.line(t["products_sold"])
        doc.line(LINE_SEPARATOR)
        doc.align(Alignment.LEFT)
        doc.line(
            f"{t['qty'].ljust(CLOSING_QTY_WIDTH)}{t['product'].ljust(CLOSING_NAME_WIDTH)}"
            f"{t['unit_price'].rjust(CLOSING_PRICE_WIDTH)}{t['product_total'].rjust(CLOSING_PRICE_WIDTH)}"
        )
        doc.line(LINE_SEPARATOR)
        for item in report.items:
            columns = f"{item.unit_price.rjust(CLOSING_PRICE_WIDTH)}{item.total.rjust(CLOSING_PRICE_WIDTH)}"
            for row in item_rows(item.quantity, item.name, CLOSING_QTY_WIDTH, CLOSING_NAME_WIDTH, columns):
                doc.line(row)
        doc.line(LINE_SEPARATOR)

    section("activity", CLOSING_ACTIVITY_FIELDS)
    _finish(doc)
    return doc.build()


_LAYOUTS: dict[TicketType, tuple[type, Callable[..., TicketDocument]]] = {
    TicketType.ORDER_SLIP: (OrderSlip, _order_slip),
    TicketType.SIMPLE_TICKET: (SimpleTicket, lambda p, t: _simple_ticket(p, t, t["ticket"])),
    TicketType.TEST_PRINT: (SimpleTicket, lambda p, t: _simple_ticket(p, t, t["test_ticket"])),
    TicketType.PRE_BILL: (PreBill, _pre_bill),
    TicketType.FULL_TICKET: (FullTicket, _full_ticket),
    TicketType.CLOSING_REPORT: (ClosingReport, _closing_report),
}


def build_document(
    ticket_type: TicketType,
    payload: TicketPayload,
    translations: Mapping[str, str] = None,
) -> TicketDocument:
    """Lay out ``payload`` as a ticket of ``ticket_type``."""
    if ticket_type not in _LAYOUTS:
        raise RenderError(f"No layout for ticket type {ticket_type!r}")

    payload_type, layout = _LAYOUTS[ticket_type]
    if not isinstance(payload, payload_type):
        raise RenderError(
            f"{ticket_type.value} expects {payload_type.__name__}, got {type(payload).__name__}"
        )
    return layout(payload, resolve_translations(translations))
