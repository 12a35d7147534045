"""
ESC/POS serialization of a TicketDocument.

The control sequences below are what the deployed receipt and kitchen
printers expect; changing them changes what comes out of every printer.
"""

from ticketbridge.rendering.ops import (
    Cut,
    DrawerPulse,
    Feed,
    SetAlignment,
    SetStyle,
    Text,
    TicketDocument,
)

ESC = b"\x1b"
GS = b"\x1d"

INITIALIZE = ESC + b"@"
# ESC t 19 selects PC858 (Latin-1 + euro) for accented labels
SELECT_CODE_PAGE = ESC + b"t" + bytes([19])
TEXT_ENCODING = "cp858"

FULL_CUT = GS + b"V" + b"\x00"

# Drawer kick: ESC p m t1 t2 (pulse on/off times in 2 ms units)
DRAWER_PULSE_ON = 0x19
DRAWER_PULSE_OFF = 0xFA


def select_alignment(alignment) -> bytes:
    return ESC + b"a" + bytes([alignment.value])


def select_style(style) -> bytes:
    return ESC + b"!" + bytes([style.value])


def feed_lines(lines: int) -> bytes:
    lines = max(0, min(int(lines), 255))
    return ESC + b"d" + bytes([lines])


def drawer_pulse(channel: int) -> bytes:
    if channel not in (0, 1):
        raise ValueError(f"Cash drawer channel must be 0 or 1, got {channel}")
    return ESC + b"p" + bytes([channel, DRAWER_PULSE_ON, DRAWER_PULSE_OFF])


def encode_text(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, errors="replace")


def encode_document(document: TicketDocument) -> bytes:
    """Serialize ``document`` into a printer-ready byte stream."""
    chunks = [INITIALIZE, SELECT_CODE_PAGE]

    for op in document:
        if isinstance(op, Text):
            chunks.append(encode_text(op.content))
        elif isinstance(op, SetAlignment):
            chunks.append(select_alignment(op.alignment))
        elif isinstance(op, SetStyle):
            chunks.append(select_style(op.style))
        elif isinstance(op, Feed):
            chunks.append(feed_lines(op.lines))
        elif isinstance(op, Cut):
            chunks.append(FULL_CUT)
        elif isinstance(op, DrawerPulse):
            chunks.append(drawer_pulse(op.channel))
        else:
            raise TypeError(f"Unknown render op: {op!r}")

    return b"".join(chunks)
