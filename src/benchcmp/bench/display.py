"""Terminal display formatting for comparison tables.

Output mirrors the familiar benchstat layout::

    name     old time/op    new time/op    delta
    pkg: github.com/acme/kv
    Get-8    1.20µs ± 2%    1.10µs ± 1%   -8.33%  (p=0.000 n=10+10)
"""

from __future__ import annotations

from benchcmp.bench.benchstat import Row, Table
from benchcmp.formatting import format_table


def _row_cells(row: Row, with_delta: bool, *, spread: bool = True) -> list[str]:
    cells = [row.benchmark, *row.cells(spread=spread)]
    if with_delta:
        cells.extend([row.delta, row.note])
    return cells


def table_headers(table: Table) -> list[str]:
    headers = ["name"] + [f"{config} {table.metric}" for config in table.configs]
    if len(table.configs) == 2:
        headers.extend(["delta", ""])
    return headers


def table_rows(table: Table) -> list[list[str]]:
    """All rows of *table* as display strings, geometric mean last."""
    with_delta = len(table.configs) == 2
    rows = [_row_cells(row, with_delta) for row in table.rows]
    if table.geomean is not None:
        rows.append(_row_cells(table.geomean, with_delta, spread=False))
    return rows


def format_table_text(table: Table) -> str:
    """Format one table, inserting a ``pkg:`` line whenever the package changes."""
    headers = table_headers(table)
    alignments = ["l"] * len(headers)
    if len(table.configs) == 2:
        alignments[-2] = "r"

    lines = format_table(headers, table_rows(table), alignments=alignments)
    groups = [row.group for row in table.rows]
    if table.geomean is not None:
        groups.append("")

    out = [lines[0]]
    prev = None
    for line, group in zip(lines[1:], groups):
        if group and group != prev:
            out.append(f"pkg: {group}")
        prev = group
        out.append(line)
    return "\n".join(out)


def format_text(tables: list[Table]) -> str:
    """Format all tables, separated by blank lines."""
    if not tables:
        return "no benchmark results"
    return "\n\n".join(format_table_text(t) for t in tables)
