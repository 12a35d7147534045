"""
Fixed-width text helpers for 48-column thermal paper.
"""

from typing import Optional

PAPER_WIDTH = 48

SEPARATOR = "=" * PAPER_WIDTH
LINE_SEPARATOR = "-" * PAPER_WIDTH
STAR_SEPARATOR = "*" * PAPER_WIDTH


def wrap_text(text: str, width: int) -> list[str]:
    """
    Greedy word wrap that never splits a word across lines.

    A single word longer than ``width`` is the only exception: it goes on
    its own line(s) cut at ``width`` so no line ever exceeds the budget.
    Always returns at least one (possibly empty) line.
    """
    lines: list[str] = []
    current = ""

    for word in text.split():
        while len(word) > width:
            if current:
                lines.append(current)
                current = ""
            lines.append(word[:width])
            word = word[width:]
        if not word:
            continue
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= width:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current or not lines:
        lines.append(current)
    return lines


def money(amount: float, symbol: str = "$") -> str:
    return f"{symbol}{amount:.2f}"


def summary_row(label: str, value: Optional[str], label_width: int = 30, value_width: int = 18) -> str:
    return f"{label.ljust(label_width)}{(value or '').rjust(value_width)}"


def item_rows(
    quantity: str,
    name: str,
    qty_width: int,
    name_width: int,
    columns: str = "",
) -> list[str]:
    """
    Lay out one product row: quantity, wrapped name, then the pre-padded
    numeric ``columns`` on the first line. Continuation lines of the name
    are indented to start under the name column.
    """
    name_lines = wrap_text(name, name_width)
    rows = [f"{quantity.ljust(qty_width)}{name_lines[0].ljust(name_width) if columns else name_lines[0]}{columns}"]
    indent = " " * qty_width
    rows.extend(f"{indent}{line}" for line in name_lines[1:])
    return rows
