#!/usr/bin/env python3
"""
Render a ticket without a printer.

Reads POS ticket data from a JSON file (or uses the built-in test ticket)
and either previews the text layout or writes the raw ESC/POS bytes.

Usage:
    python scripts/render_ticket.py                                  # Preview the test ticket
    python scripts/render_ticket.py --type order_slip order.json     # Preview an order slip
    python scripts/render_ticket.py --type full_ticket sale.json -o ticket.bin
    python scripts/render_ticket.py --translations es.json order.json
"""

import argparse
import json
from pathlib import Path

from ticketbridge.rendering import build_document, encode_document
from ticketbridge.rendering.layout import PAPER_WIDTH
from ticketbridge.rendering.ops import Cut, DrawerPulse
from ticketbridge.tickets.models import SAMPLE_TEST_DATA, TicketType, parse_payload


def load_json(path: str) -> dict:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    # POS clients often wrap the ticket in a list
    if isinstance(data, list) and data:
        data = data[0]
    return data


def preview(document) -> None:
    """Print the ticket text inside a paper-width frame."""
    print("+" + "-" * PAPER_WIDTH + "+")
    for line in document.text_lines():
        print(f"|{line.ljust(PAPER_WIDTH)}|")
    print("+" + "-" * PAPER_WIDTH + "+")
    print(f"  Ops:          {len(document)}")
    print(f"  Cuts:         {document.count(Cut)}")
    print(f"  Drawer pulse: {'yes' if document.count(DrawerPulse) else 'no'}")


def main():
    parser = argparse.ArgumentParser(description="Render a ticket without printing it")
    parser.add_argument("data", nargs="?", help="JSON file with the POS ticket data")
    parser.add_argument("--type", "-t", default="test_print", help="Ticket type (default: test_print)")
    parser.add_argument("--translations", help="JSON file with label overrides")
    parser.add_argument("--output", "-o", help="Write ESC/POS bytes to this file instead of previewing")

    args = parser.parse_args()

    ticket_type = TicketType.parse(args.type)
    data = load_json(args.data) if args.data else SAMPLE_TEST_DATA
    translations = load_json(args.translations) if args.translations else None

    document = build_document(ticket_type, parse_payload(ticket_type, data), translations)

    if args.output:
        output_path = Path(args.output)
        output_path.write_bytes(encode_document(document))
        print(f"Created: {output_path} ({output_path.stat().st_size} bytes)")
    else:
        preview(document)


if __name__ == "__main__":
    main()
