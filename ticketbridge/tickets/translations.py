"""
Label tables for printed tickets.

Callers pass the labels for their locale; anything they leave out falls
back to the English defaults below so a partial table never breaks a print.
"""

from types import MappingProxyType
from typing import Any, Mapping, Optional

DEFAULT_TRANSLATIONS = {
    # headers
    "order_slip": "ORDER",
    "pre_bill": "PRE-BILL",
    "full_ticket": "SALES TICKET",
    "ticket": "TICKET",
    "test_ticket": "TEST TICKET",
    "closing_report": "CASH REGISTER CLOSING",
    # item table
    "qty": "Qty",
    "product": "Product",
    "unit_price": "Price",
    "product_total": "Total",
    # totals
    "subtotal": "Subtotal",
    "discount": "Discount",
    "tip": "Tip",
    "total": "Total",
    "payments": "Payments",
    "credit": "Credit",
    "num_installments": "Installments",
    # sale info
    "client": "Client",
    "table": "Table",
    "seller": "Seller",
    "date": "Date",
    "number": "Number",
    "tax_id": "Tax ID",
    "thank_you": "Thank you for your visit!",
    "come_again": "Please come again",
    # order slip
    "area": "Area",
    "waiter": "Waiter",
    "note": "Note",
    "unassigned": "Unassigned",
    # closing report
    "register": "Register",
    "opened_by": "Opened by",
    "closed_by": "Closed by",
    "opened_at": "Opened at",
    "closed_at": "Closed at",
    "register_summary": "REGISTER SUMMARY",
    "opening_total": "Opening total:",
    "cash_sales": "Cash sales:",
    "card_sales": "Card sales:",
    "cash_in_register": "Cash in register:",
    "register_total": "Register total:",
    "movements": "CASH IN AND OUT",
    "income": "Income:",
    "expenses": "Expenses:",
    "cash_tips": "Cash tips:",
    "card_tips": "Card tips:",
    "cash_credits_collected": "Credits collected (cash):",
    "card_credits_collected": "Credits collected (card):",
    "discounts_applied": "DISCOUNTS APPLIED",
    "order_discounts": "Order discounts:",
    "consumption_discounts": "Consumption discounts:",
    "sale_discounts": "Sale discounts:",
    "products_sold": "PRODUCTS SOLD",
    "activity": "ACTIVITY",
    "subtotals": "Subtotals:",
    "totals": "Totals:",
}


def resolve_translations(overrides: Optional[Mapping[str, Any]] = None) -> Mapping[str, str]:
    """Layer ``overrides`` over the defaults and return a read-only table."""
    table = dict(DEFAULT_TRANSLATIONS)
    for key, value in (overrides or {}).items():
        if value is None or isinstance(value, (dict, list)):
            continue
        table[str(key)] = str(value)
    return MappingProxyType(table)
