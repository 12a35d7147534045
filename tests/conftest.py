"""Shared POS payloads and printer fixtures."""

import copy

import pytest

from ticketbridge.printers.mock import MockPrinterBackend
from ticketbridge.tickets.models import TicketType

VENUE = {
    "nombre": "La Esquina",
    "telefono": "555-1234",
    "nit": "900123456",
    "pie_pagina_ticket": "Gracias por su compra",
}

LINE_ITEMS = [
    {
        "cantidad": 2,
        "producto_presentacion": {"nombre": "Hamburguesa"},
        "precio_unitario": 8.0,
        "precio_total": 16.0,
    },
    {
        "cantidad": 1,
        "producto_presentacion": {"nombre": "Limonada"},
        "precio_unitario": 4.0,
        "precio_total": 4.0,
    },
]

ORDER_SLIP_DATA = {
    "numero_comanda": "15",
    "area": "Salon",
    "mesa": "4",
    "mesero": "Ana",
    "fecha": "2024-05-01 12:30",
    "pedidos": [
        {
            "cantidad": 2,
            "producto": "Hamburguesa doble",
            "modificadores": [{"cantidad": 1, "nombre": "Sin cebolla"}],
            "notaPedido": "Bien cocida",
        },
        {"cantidad": 1, "presentacion": "Limonada 500ml"},
    ],
}

SIMPLE_TICKET_DATA = {
    "local": VENUE,
    "venta": {"mesa": "4"},
    "pedidos": LINE_ITEMS,
    "cuenta_venta": {"subtotal": 20.0, "total": 20.0},
}

PRE_BILL_DATA = {
    "local": VENUE,
    "mesa": "4",
    "fecha_actual": "2024-05-01 13:00",
    "pedidos": LINE_ITEMS,
    "subtotal": 20.0,
    "total": 24.4,
    "impuestos": [{"impuesto": "IVA 12%", "total": 2.4}],
    "propina_predeterminada": 2.0,
}

FULL_TICKET_DATA = {
    "local": VENUE,
    "numero_comprobante": "F-0001",
    "venta": {"mesa": "4", "fin_venta": "2024-05-01 13:10"},
    "usuario": {"nombre": "Ana", "apellidos": "Perez"},
    "pedidos": LINE_ITEMS,
    "cuenta_venta": {
        "subtotal": 20.0,
        "total": 22.4,
        "impuestos": [{"impuesto": "IVA 12%", "total": 2.4}],
    },
    "pagos": [{"tipo_pago": {"id": 1, "nombre": "Efectivo"}, "monto": 22.4}],
}

CLOSING_REPORT_DATA = {
    "nombre_caja_aperturada": "Caja 1",
    "usuario_apertura": "Ana",
    "usuario_cierre": "Luis",
    "fecha_apertura": "2024-05-01 08:00",
    "fecha_cierre": "2024-05-01 22:00",
    "total_apertura": 100,
    "total_venta_efectivo": "250.00",
    "total_venta_tarjeta": "180.50",
    "pedidos": [{"cantidad": 3, "nombre": "Hamburguesa", "precio_unitario": 8, "total": 24}],
}

SAMPLE_DATA = {
    TicketType.ORDER_SLIP: ORDER_SLIP_DATA,
    TicketType.SIMPLE_TICKET: SIMPLE_TICKET_DATA,
    TicketType.TEST_PRINT: SIMPLE_TICKET_DATA,
    TicketType.PRE_BILL: PRE_BILL_DATA,
    TicketType.FULL_TICKET: FULL_TICKET_DATA,
    TicketType.CLOSING_REPORT: CLOSING_REPORT_DATA,
}


@pytest.fixture
def sample_data():
    """Return a fresh copy of realistic POS data for a ticket type."""
    def factory(ticket_type: TicketType) -> dict:
        return copy.deepcopy(SAMPLE_DATA[ticket_type])
    return factory


@pytest.fixture
def mock_backend():
    """Three station printers, instant dispatch."""
    return MockPrinterBackend({
        "printers": [
            {"name": "Cocina", "default": True, "port": "USB001"},
            {"name": "Barra", "port": "USB002"},
            {"name": "Caja", "port": "USB003"},
        ],
        "print_delay": 0,
    })
