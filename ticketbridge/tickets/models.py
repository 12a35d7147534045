"""
Typed ticket payloads.

POS terminals post ticket data in their own wire format (Spanish field
names, loosely typed). Each payload class parses that format once with
``from_dict`` so the scheduler and the renderer only ever see typed,
immutable records. Missing required fields raise ValidationError; missing
optional fields fall back to empty values and their sections are simply
not printed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from ticketbridge.errors import ValidationError

# tipo_pago.id used by the POS for cash tenders
CASH_PAYMENT_TYPE_ID = 1

DEFAULT_CURRENCY_SYMBOL = "$"


class TicketType(Enum):
    ORDER_SLIP = "order_slip"
    SIMPLE_TICKET = "simple_ticket"
    PRE_BILL = "pre_bill"
    FULL_TICKET = "full_ticket"
    CLOSING_REPORT = "closing_report"
    TEST_PRINT = "test_print"

    @classmethod
    def parse(cls, value: Union[str, "TicketType"]) -> "TicketType":
        """Resolve an enum value, enum name or legacy POS label to a TicketType."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("ticket_type must be a non-empty string", "INVALID_TICKET_TYPE")

        key = value.strip()
        if key in _LEGACY_TICKET_LABELS:
            return _LEGACY_TICKET_LABELS[key]
        for ticket_type in cls:
            if key.lower() in (ticket_type.value, ticket_type.name.lower()):
                return ticket_type
        raise ValidationError(f"Unknown ticket type: {value}", "INVALID_TICKET_TYPE")


# Labels still sent by older POS clients
_LEGACY_TICKET_LABELS = {
    "Comanda": TicketType.ORDER_SLIP,
    "Ticket": TicketType.SIMPLE_TICKET,
    "Precuenta": TicketType.PRE_BILL,
    "Cierre": TicketType.CLOSING_REPORT,
    "full": TicketType.FULL_TICKET,
    "test": TicketType.TEST_PRINT,
}

PRIORITY_TIERS = {
    TicketType.ORDER_SLIP: 1,
    TicketType.SIMPLE_TICKET: 2,
    TicketType.PRE_BILL: 3,
    TicketType.CLOSING_REPORT: 4,
}
DEFAULT_PRIORITY_TIER = 5


def priority_tier(ticket_type: TicketType) -> int:
    """Lower tiers are printed first."""
    return PRIORITY_TIERS.get(ticket_type, DEFAULT_PRIORITY_TIER)


# --- parsing helpers -------------------------------------------------------


def _mapping(value: Any, field_name: str, required: bool = True) -> Mapping[str, Any]:
    if value is None and not required:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"'{field_name}' must be an object")
    return value


def _require(data: Mapping[str, Any], key: str, context: str) -> Any:
    value = data.get(key)
    if value is None:
        raise ValidationError(f"Missing required field '{context}{key}'")
    return value


def _number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"'{field_name}' must be a number")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"'{field_name}' must be a number, got {value!r}")


def _optional_number(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    return _number(value, field_name)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def _items(data: Mapping[str, Any], key: str = "pedidos") -> list:
    items = _require(data, key, "")
    if not isinstance(items, list):
        raise ValidationError(f"'{key}' must be a list")
    return items


def _amount_text(value: Any) -> Optional[str]:
    """Closing reports carry pre-formatted amounts; numbers get 2 decimals."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.2f}"
    return str(value).strip()


# --- shared records --------------------------------------------------------


@dataclass(frozen=True)
class Venue:
    name: str = ""
    phone: str = ""
    tax_id: Optional[str] = None
    footer: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Venue":
        local = _mapping(data, "local", required=False)
        return cls(
            name=_text(local.get("nombre")),
            phone=_text(local.get("telefono")),
            tax_id=_optional_text(local.get("nit")),
            footer=_optional_text(local.get("pie_pagina_ticket")),
        )


@dataclass(frozen=True)
class LineItem:
    quantity: str
    name: str
    unit_price: float
    total: float

    @classmethod
    def from_dict(cls, data: Any, index: int) -> "LineItem":
        item = _mapping(data, f"pedidos[{index}]")
        context = f"pedidos[{index}]."
        presentation = _mapping(_require(item, "producto_presentacion", context), f"{context}producto_presentacion")
        return cls(
            quantity=_text(_require(item, "cantidad", context)),
            name=_text(_require(presentation, "nombre", f"{context}producto_presentacion.")),
            unit_price=_number(_require(item, "precio_unitario", context), f"{context}precio_unitario"),
            total=_number(_require(item, "precio_total", context), f"{context}precio_total"),
        )


@dataclass(frozen=True)
class TaxLine:
    name: str
    amount: float


def _taxes(value: Any) -> tuple[TaxLine, ...]:
    if not isinstance(value, list):
        return ()
    taxes = []
    for i, raw in enumerate(value):
        tax = _mapping(raw, f"impuestos[{i}]")
        taxes.append(TaxLine(
            name=_text(tax.get("impuesto")),
            amount=_number(_require(tax, "total", f"impuestos[{i}]."), f"impuestos[{i}].total"),
        ))
    return tuple(taxes)


@dataclass(frozen=True)
class Payment:
    type_id: Optional[int]
    type_name: str
    amount: float
    card: Optional[str] = None

    @property
    def is_cash(self) -> bool:
        return self.type_id == CASH_PAYMENT_TYPE_ID

    @classmethod
    def from_dict(cls, data: Any, index: int) -> "Payment":
        payment = _mapping(data, f"pagos[{index}]")
        context = f"pagos[{index}]."
        payment_type = _mapping(payment.get("tipo_pago"), f"{context}tipo_pago", required=False)
        type_id = payment_type.get("id")
        try:
            type_id = int(type_id) if type_id is not None else None
        except (TypeError, ValueError):
            raise ValidationError(f"'{context}tipo_pago.id' must be an integer")
        return cls(
            type_id=type_id,
            type_name=_text(payment_type.get("nombre")),
            amount=_number(_require(payment, "monto", context), f"{context}monto"),
            card=_optional_text(payment.get("tarjeta")),
        )


@dataclass(frozen=True)
class Credit:
    total: float
    installments: str


# --- ticket payloads -------------------------------------------------------


@dataclass(frozen=True)
class Modifier:
    quantity: str
    name: str


@dataclass(frozen=True)
class OrderItem:
    quantity: str
    name: str
    modifiers: tuple[Modifier, ...] = ()
    note: Optional[str] = None


@dataclass(frozen=True)
class OrderSlip:
    """Kitchen/bar order sent to a station printer."""

    items: tuple[OrderItem, ...]
    number: Optional[str] = None
    area: str = ""
    table: Optional[str] = None
    waiter: str = ""
    date: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "OrderSlip":
        data = _mapping(data, "data")
        items = []
        for i, raw in enumerate(_items(data)):
            item = _mapping(raw, f"pedidos[{i}]")
            name = item.get("presentacion") or item.get("producto")
            if not name:
                raise ValidationError(f"Missing required field 'pedidos[{i}].producto'")
            modifiers = []
            for j, raw_mod in enumerate(item.get("modificadores") or []):
                mod = _mapping(raw_mod, f"pedidos[{i}].modificadores[{j}]")
                modifiers.append(Modifier(quantity=_text(mod.get("cantidad", 1)), name=_text(mod.get("nombre"))))
            items.append(OrderItem(
                quantity=_text(_require(item, "cantidad", f"pedidos[{i}].")),
                name=_text(name),
                modifiers=tuple(modifiers),
                note=_optional_text(item.get("notaPedido")),
            ))
        return cls(
            items=tuple(items),
            number=_optional_text(data.get("numero_comanda")),
            area=_text(data.get("area")),
            table=_optional_text(data.get("mesa")),
            waiter=_text(data.get("mesero")),
            date=_text(data.get("fecha")),
        )


@dataclass(frozen=True)
class SimpleTicket:
    """Plain sale ticket; also the layout of the test print."""

    items: tuple[LineItem, ...]
    venue: Venue = Venue()
    table: str = ""
    subtotal: Optional[float] = None
    total: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Any) -> "SimpleTicket":
        data = _mapping(data, "data")
        sale = _mapping(data.get("venta"), "venta", required=False)
        account = _mapping(data.get("cuenta_venta"), "cuenta_venta", required=False)
        return cls(
            items=tuple(LineItem.from_dict(raw, i) for i, raw in enumerate(_items(data))),
            venue=Venue.from_dict(data.get("local")),
            table=_text(sale.get("mesa", data.get("mesa"))),
            subtotal=_optional_number(account.get("subtotal", data.get("subtotal")), "subtotal"),
            total=_optional_number(account.get("total", data.get("total")), "total"),
        )


@dataclass(frozen=True)
class PreBill:
    items: tuple[LineItem, ...]
    subtotal: float
    total: float
    venue: Venue = Venue()
    table: str = ""
    printed_at: str = ""
    taxes: tuple[TaxLine, ...] = ()
    tip: Optional[float] = None
    header_text: Optional[str] = None
    footer_text: Optional[str] = None
    currency: str = DEFAULT_CURRENCY_SYMBOL

    @classmethod
    def from_dict(cls, data: Any) -> "PreBill":
        data = _mapping(data, "data")
        return cls(
            items=tuple(LineItem.from_dict(raw, i) for i, raw in enumerate(_items(data))),
            subtotal=_number(_require(data, "subtotal", ""), "subtotal"),
            total=_number(_require(data, "total", ""), "total"),
            venue=Venue.from_dict(data.get("local")),
            table=_text(data.get("mesa")),
            printed_at=_text(data.get("fecha_actual")),
            taxes=_taxes(data.get("impuestos")),
            tip=_optional_number(data.get("propina_predeterminada"), "propina_predeterminada"),
            header_text=_optional_text(data.get("encabezado_ticket")),
            footer_text=_optional_text(data.get("pie_pagina_ticket")),
            currency=_text(data.get("simbolo_moneda")) or DEFAULT_CURRENCY_SYMBOL,
        )


@dataclass(frozen=True)
class FullTicket:
    """Final sale receipt, with payments and an optional credit plan."""

    items: tuple[LineItem, ...]
    subtotal: float
    total: float
    venue: Venue = Venue()
    receipt_number: Optional[str] = None
    client_name: Optional[str] = None
    table: str = ""
    seller: str = ""
    closed_at: str = ""
    discount: Optional[float] = None
    taxes: tuple[TaxLine, ...] = ()
    tip: Optional[float] = None
    payments: tuple[Payment, ...] = ()
    credit: Optional[Credit] = None
    currency: str = DEFAULT_CURRENCY_SYMBOL

    @property
    def has_cash_payment(self) -> bool:
        return any(payment.is_cash for payment in self.payments)

    @classmethod
    def from_dict(cls, data: Any) -> "FullTicket":
        data = _mapping(data, "data")
        account = _mapping(_require(data, "cuenta_venta", ""), "cuenta_venta")
        sale = _mapping(data.get("venta"), "venta", required=False)
        user = _mapping(data.get("usuario"), "usuario", required=False)

        credit = None
        raw_credit = data.get("credito")
        if raw_credit:
            raw_credit = _mapping(raw_credit, "credito")
            credit = Credit(
                total=_number(_require(raw_credit, "total_credito", "credito."), "credito.total_credito"),
                installments=_text(raw_credit.get("num_cuotas")),
            )

        seller = " ".join(part for part in (_text(user.get("nombre")), _text(user.get("apellidos"))) if part)

        return cls(
            items=tuple(LineItem.from_dict(raw, i) for i, raw in enumerate(_items(data))),
            subtotal=_number(_require(account, "subtotal", "cuenta_venta."), "cuenta_venta.subtotal"),
            total=_number(_require(account, "total", "cuenta_venta."), "cuenta_venta.total"),
            venue=Venue.from_dict(data.get("local")),
            receipt_number=_optional_text(data.get("numero_comprobante")),
            client_name=_optional_text(account.get("nombre_cliente_generico")),
            table=_text(sale.get("mesa")),
            seller=seller,
            closed_at=_text(sale.get("fin_venta")),
            discount=_optional_number(account.get("descuento"), "cuenta_venta.descuento"),
            taxes=_taxes(account.get("impuestos")),
            tip=_optional_number(account.get("propina_predeterminada"), "cuenta_venta.propina_predeterminada"),
            payments=tuple(Payment.from_dict(raw, i) for i, raw in enumerate(data.get("pagos") or [])),
            credit=credit,
            currency=_text(data.get("simbolo_moneda")) or DEFAULT_CURRENCY_SYMBOL,
        )


@dataclass(frozen=True)
class ClosingItem:
    quantity: str
    name: str
    unit_price: str
    total: str


# (translation key, wire field) pairs for the closing report summary blocks
CLOSING_SUMMARY_FIELDS = (
    ("opening_total", "total_apertura"),
    ("cash_sales", "total_venta_efectivo"),
    ("card_sales", "total_venta_tarjeta"),
    ("cash_in_register", "total_caja_efectivo"),
    ("register_total", "total_caja_general"),
)
CLOSING_MOVEMENT_FIELDS = (
    ("income", "total_ingresos"),
    ("expenses", "total_gastos"),
    ("cash_tips", "total_propina_predeterminada_efectivo"),
    ("card_tips", "total_propina_predeterminada_tarjeta"),
    ("cash_credits_collected", "total_creditos_cobrados_efectivo"),
    ("card_credits_collected", "total_creditos_cobrados_tarjeta"),
)
CLOSING_DISCOUNT_FIELDS = (
    ("order_discounts", "total_descuento_pedido"),
    ("consumption_discounts", "total_descuento_consumo"),
    ("sale_discounts", "total_descuento_venta"),
)
CLOSING_ACTIVITY_FIELDS = (
    ("subtotals", "subtotales"),
    ("totals", "totales"),
)


@dataclass(frozen=True)
class ClosingReport:
    """End-of-shift cash register summary.

    Amounts are kept as the POS formatted them. ``amounts`` maps the
    translation key of each summary row to its value; rows the POS did not
    send are absent.
    """

    register_name: str
    opened_by: str = ""
    closed_by: str = ""
    opened_at: str = ""
    closed_at: str = ""
    amounts: tuple[tuple[str, str], ...] = ()
    items: tuple[ClosingItem, ...] = ()

    def amount(self, key: str) -> Optional[str]:
        return dict(self.amounts).get(key)

    @classmethod
    def from_dict(cls, data: Any) -> "ClosingReport":
        data = _mapping(data, "data")
        amounts = []
        for fields in (CLOSING_SUMMARY_FIELDS, CLOSING_MOVEMENT_FIELDS,
                       CLOSING_DISCOUNT_FIELDS, CLOSING_ACTIVITY_FIELDS):
            for key, wire_field in fields:
                value = _amount_text(data.get(wire_field))
                if value is not None:
                    amounts.append((key, value))

        items = []
        for i, raw in enumerate(data.get("pedidos") or []):
            item = _mapping(raw, f"pedidos[{i}]")
            items.append(ClosingItem(
                quantity=_text(item.get("cantidad")),
                name=_text(item.get("nombre")) or "-",
                unit_price=_amount_text(item.get("precio_unitario")) or "",
                total=_amount_text(item.get("total")) or "",
            ))

        return cls(
            register_name=_text(_require(data, "nombre_caja_aperturada", "")),
            opened_by=_text(data.get("usuario_apertura")),
            closed_by=_text(data.get("usuario_cierre")),
            opened_at=_text(data.get("fecha_apertura")),
            closed_at=_text(data.get("fecha_cierre")),
            amounts=tuple(amounts),
            items=tuple(items),
        )


TicketPayload = Union[OrderSlip, SimpleTicket, PreBill, FullTicket, ClosingReport]

PAYLOAD_TYPES = {
    TicketType.ORDER_SLIP: OrderSlip,
    TicketType.SIMPLE_TICKET: SimpleTicket,
    TicketType.PRE_BILL: PreBill,
    TicketType.FULL_TICKET: FullTicket,
    TicketType.CLOSING_REPORT: ClosingReport,
    TicketType.TEST_PRINT: SimpleTicket,
}


def parse_payload(ticket_type: TicketType, data: Any) -> TicketPayload:
    """Parse raw POS data into the payload class for ``ticket_type``."""
    if not data:
        raise ValidationError("Ticket data is empty", "EMPTY_DATA")
    return PAYLOAD_TYPES[ticket_type].from_dict(data)


# Printed by the test-print endpoint
SAMPLE_TEST_DATA = {
    "local": {"nombre": "Test", "telefono": "000-000-0000"},
    "venta": {"mesa": "0"},
    "pedidos": [
        {
            "cantidad": 1,
            "producto_presentacion": {"nombre": "Test product"},
            "precio_unitario": 1.0,
            "precio_total": 1.0,
        },
    ],
    "cuenta_venta": {"subtotal": 1.0, "total": 1.0},
}
