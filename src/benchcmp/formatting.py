"""Plain-text helpers shared by the runner and the report renderers."""

from __future__ import annotations

import signal


def format_duration(seconds: float) -> str:
    """Render *seconds* as ``8s``, ``1m 23s`` or ``1h 12m 34s``.

    Fractions of a second are dropped.
    """
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:2d}m {secs:2d}s"
    if minutes:
        return f"{minutes}m {secs:2d}s"
    return f"{secs}s"


def format_table(
    headers: list[str],
    rows: list[list[str]],
    *,
    alignments: list[str] | None = None,
    indent: int = 0,
    separator: str = "  ",
) -> list[str]:
    """Lay out *headers* and *rows* as column-aligned lines.

    Each column is as wide as its widest cell. A column whose entry in
    *alignments* is ``'r'`` is right-justified; anything else, including a
    missing entry, is left-justified. Rows shorter than *headers* get empty
    cells and extra cells are dropped. Lines carry no trailing whitespace.

    Returns the header line followed by one line per row, or an empty list
    when there are no headers.
    """
    if not headers:
        return []

    ncols = len(headers)
    justify_right = [False] * ncols
    for i, align in enumerate((alignments or [])[:ncols]):
        justify_right[i] = align == "r"

    grid = [list(headers)]
    for row in rows:
        cells = list(row[:ncols])
        grid.append(cells + [""] * (ncols - len(cells)))

    widths = [max(len(line[col]) for line in grid) for col in range(ncols)]
    prefix = " " * indent

    lines = []
    for cells in grid:
        padded = (
            cell.rjust(width) if right else cell.ljust(width)
            for cell, width, right in zip(cells, widths, justify_right)
        )
        lines.append((prefix + separator.join(padded)).rstrip())
    return lines


def format_signal_name(signum: int | None) -> str:
    """Name of signal *signum* (``11`` gives ``SIGSEGV``).

    Numbers the platform does not know come back as ``SIG<n>``; ``None``
    gives an empty string.
    """
    if signum is None:
        return ""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"SIG{signum}"
