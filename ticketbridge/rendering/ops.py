"""
Render operations: the printer-independent form of a ticket.

A TicketDocument is an immutable sequence of these ops, fully built
before anything is encoded or sent to a printer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Union


class Alignment(Enum):
    LEFT = 0
    CENTER = 1
    RIGHT = 2


class TextStyle(Enum):
    NORMAL = 0x00
    EMPHASIZED = 0x30  # bold, double height and width


@dataclass(frozen=True)
class Text:
    content: str


@dataclass(frozen=True)
class SetAlignment:
    alignment: Alignment


@dataclass(frozen=True)
class SetStyle:
    style: TextStyle


@dataclass(frozen=True)
class Feed:
    lines: int


@dataclass(frozen=True)
class Cut:
    pass


@dataclass(frozen=True)
class DrawerPulse:
    channel: int = 0


RenderOp = Union[Text, SetAlignment, SetStyle, Feed, Cut, DrawerPulse]


@dataclass(frozen=True)
class TicketDocument:
    ops: tuple[RenderOp, ...]

    def __iter__(self) -> Iterator[RenderOp]:
        return iter(self.ops)

    def __len__(self) -> int:
        return len(self.ops)

    def count(self, op_type: type) -> int:
        return sum(1 for op in self.ops if isinstance(op, op_type))

    def text_lines(self) -> list[str]:
        """Printed text split into lines, without control ops."""
        text = "".join(op.content for op in self.ops if isinstance(op, Text))
        return text.splitlines()


class DocumentBuilder:
    """Accumulates ops for one ticket."""

    def __init__(self):
        self._ops: list[RenderOp] = []

    def line(self, text: str = "") -> "DocumentBuilder":
        self._ops.append(Text(f"{text}\n"))
        return self

    def align(self, alignment: Alignment) -> "DocumentBuilder":
        self._ops.append(SetAlignment(alignment))
        return self

    def style(self, style: TextStyle) -> "DocumentBuilder":
        self._ops.append(SetStyle(style))
        return self

    def emphasized(self, text: str) -> "DocumentBuilder":
        """One emphasized line, then back to normal text."""
        return self.style(TextStyle.EMPHASIZED).line(text).style(TextStyle.NORMAL)

    def feed(self, lines: int) -> "DocumentBuilder":
        self._ops.append(Feed(lines))
        return self

    def cut(self) -> "DocumentBuilder":
        self._ops.append(Cut())
        return self

    def drawer(self, channel: int = 0) -> "DocumentBuilder":
        self._ops.append(DrawerPulse(channel))
        return self

    def build(self) -> TicketDocument:
        return TicketDocument(ops=tuple(self._ops))
