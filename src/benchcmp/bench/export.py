"""Export comparison tables to Markdown and CSV.

Markdown: one section per metric, suitable for pull requests and issue
reports. CSV: one block of rows per metric with a ``metric`` column, for
spreadsheets and pandas.
"""

from __future__ import annotations

import csv
import io

from benchcmp.bench.benchstat import Table
from benchcmp.bench.display import table_headers, table_rows

EXPORT_FORMATS = ("markdown", "csv")


def _md_escape(text: str) -> str:
    return text.replace("|", "\\|")


def export_markdown(title: str, tables: list[Table]) -> str:
    """Render *tables* as a Markdown document headed by *title*."""
    lines = [f"# {title}", ""]
    if not tables:
        lines.append("No benchmark results.")
        return "\n".join(lines) + "\n"

    for table in tables:
        lines.append(f"## {table.metric}")
        lines.append("")
        headers = [h or "note" for h in table_headers(table)]
        lines.append("| " + " | ".join(headers) + " |")
        lines.append("|" + "|".join("---" for _ in headers) + "|")
        for row in table_rows(table):
            lines.append("| " + " | ".join(_md_escape(cell) for cell in row) + " |")
        lines.append("")
    return "\n".join(lines)


def export_csv(tables: list[Table]) -> str:
    """Render *tables* as CSV with a leading ``metric`` column."""
    output = io.StringIO()
    writer = csv.writer(output)
    header_written = False
    for table in tables:
        headers = ["metric", "pkg", "name", *table.configs]
        if len(table.configs) == 2:
            headers.extend(["delta", "note"])
        if not header_written:
            writer.writerow(headers)
            header_written = True
        groups = [row.group for row in table.rows]
        if table.geomean is not None:
            groups.append("")
        for group, row in zip(groups, table_rows(table)):
            writer.writerow([table.metric, group, *row])
    return output.getvalue()


def export_text(title: str, tables: list[Table], fmt: str) -> str:
    """Dispatch to the exporter for *fmt*."""
    if fmt == "markdown":
        return export_markdown(title, tables)
    if fmt == "csv":
        return export_csv(tables)
    raise ValueError(f"unknown export format {fmt!r}; expected one of {EXPORT_FORMATS}")
