"""Turn the accumulated benchmark output of both suites into a report."""

from __future__ import annotations

import io
from typing import TextIO

import click

from benchcmp.bench.benchstat import Collection, Table, by_delta, reverse
from benchcmp.bench.display import format_text
from benchcmp.bench.suite import BenchSuite
from benchcmp.errors import BenchcmpError, ReportError
from benchcmp.logging import get_logger
from benchcmp.sinks import ReportSink

log = get_logger("report")

ALPHA = 0.05


def report_title(packages: list[str] | tuple[str, ...], old_ref: str, new_ref: str) -> str:
    return f"benchcmp: {' '.join(packages)} ({old_ref} -> {new_ref})"


def compute_tables(
    old: BenchSuite,
    new: BenchSuite,
    *,
    alpha: float = ALPHA,
    delta_test: str = "utest",
) -> list[Table]:
    """Rewind both output files and compare them, best delta first."""
    if old.out_file is None or new.out_file is None:
        raise ReportError("benchmark output files are not open")
    try:
        old.out_file.seek(0, io.SEEK_SET)
        new.out_file.seek(0, io.SEEK_SET)
        c = Collection(alpha=alpha, delta_test=delta_test, order=reverse(by_delta))
        c.add_file("old", old.out_file)
        c.add_file("new", new.out_file)
        return c.tables()
    except (OSError, ValueError, ArithmeticError) as exc:
        raise ReportError(f"computing benchmark statistics: {exc}") from exc


def process_bench_output(
    old: BenchSuite,
    new: BenchSuite,
    packages: list[str] | tuple[str, ...],
    sink: ReportSink | None = None,
    *,
    alpha: float = ALPHA,
    delta_test: str = "utest",
    out: TextIO | None = None,
) -> None:
    """Compare both suites' output and print it or hand it to *sink*.

    Raises:
        ReportError: If the statistics cannot be computed or the sink
            fails to publish.
    """
    tables = compute_tables(old, new, alpha=alpha, delta_test=delta_test)
    log.debug("Computed %d comparison tables", len(tables))

    if sink is None:
        click.echo(format_text(tables), file=out)
        return

    title = report_title(packages, old.ref, new.ref)
    try:
        locator = sink.publish(title, tables)
    except ReportError:
        raise
    except BenchcmpError as exc:
        raise ReportError(str(exc)) from exc
    click.echo(f"generated report: {locator}", file=out)
