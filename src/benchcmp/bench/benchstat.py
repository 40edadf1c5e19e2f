"""Comparison tables for Go benchmark output.

A :class:`Collection` accumulates the raw output of each configuration
(here ``old`` and ``new``) and turns it into one :class:`Table` per
measured unit. Each row holds the per-configuration summary of one
benchmark, and, when there are exactly two configurations, the percent
change between them along with the p-value of the delta test.

Samples are summarised after removing IQR outliers. A change is only
reported when the delta test finds it significant at level ``alpha``;
otherwise the delta column shows ``~``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import BinaryIO, Callable

from benchcmp.bench.benchfmt import BenchResult, parse_bench_output, read_bench_file
from benchcmp.bench.stats import describe, mann_whitney_u, remove_outliers, welch_ttest

METRIC_NAMES = {
    "ns/op": "time/op",
    "B/op": "alloc/op",
    "allocs/op": "allocs/op",
    "MB/s": "speed",
}
# Units for which a larger value is an improvement.
HIGHER_IS_BETTER = {"MB/s"}

DELTA_TESTS = ("utest", "ttest")
GEOMEAN_LABEL = "[Geo mean]"


# ---------------------------------------------------------------------------
# Value formatting
# ---------------------------------------------------------------------------


def _significant(x: float) -> str:
    if x >= 99.5:
        return f"{x:.0f}"
    if x >= 9.95:
        return f"{x:.1f}"
    return f"{x:.2f}"


_TIME_SCALES = ((1e9, "s"), (1e6, "ms"), (1e3, "µs"), (1.0, "ns"))
_BYTE_SCALES = ((1e9, "GB"), (1e6, "MB"), (1e3, "kB"), (1.0, "B"))
_SPEED_SCALES = ((1e9, "GB/s"), (1e6, "MB/s"), (1e3, "kB/s"), (1.0, "B/s"))
_COUNT_SCALES = ((1e9, "G"), (1e6, "M"), (1e3, "k"), (1.0, ""))


def scaler_for(value: float, unit: str) -> Callable[[float], str]:
    """Choose a display scale from *value* and return a formatter for *unit*.

    Every value in a row is formatted with the same scaler so the old and
    new columns share units.
    """
    if unit == "ns/op":
        scales = _TIME_SCALES
    elif unit == "B/op":
        scales = _BYTE_SCALES
    elif unit == "MB/s":
        scales = _SPEED_SCALES
        value *= 1e6
    else:
        scales = _COUNT_SCALES

    factor, suffix = scales[-1]
    for f, s in scales:
        if abs(value) >= f * 0.9995:
            factor, suffix = f, s
            break

    pre = 1e6 if unit == "MB/s" else 1.0

    def fmt(v: float) -> str:
        return _significant(v * pre / factor) + suffix

    return fmt


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


@dataclass
class Metrics:
    """One configuration's sample for one benchmark and unit."""

    unit: str
    values: list[float] = field(default_factory=list)
    rvalues: list[float] = field(default_factory=list)  # outliers removed
    mean: float = float("nan")
    min: float = float("nan")
    max: float = float("nan")

    def compute(self) -> None:
        self.rvalues = remove_outliers(self.values)
        summary = describe(self.rvalues)
        self.mean, self.min, self.max = summary.mean, summary.min, summary.max

    @property
    def spread_pct(self) -> float:
        """Largest deviation from the mean, as a percentage of the mean."""
        if not self.rvalues or self.mean == 0:
            return 0.0
        diff = max(self.max - self.mean, self.mean - self.min)
        return diff / abs(self.mean) * 100

    def format(self, scaler: Callable[[float], str]) -> str:
        return f"{scaler(self.mean)} ± {self.spread_pct:.0f}%"


@dataclass
class Row:
    """One benchmark's comparison across configurations."""

    group: str  # package
    benchmark: str
    metrics: list[Metrics | None]
    pct_delta: float = 0.0
    delta: str = ""
    note: str = ""
    change: int = 0  # +1 better, -1 worse, 0 no significant change
    p_value: float = float("nan")

    def cells(self, *, spread: bool = True) -> list[str]:
        """Formatted per-configuration summaries, empty where missing."""
        first = next((m for m in self.metrics if m is not None), None)
        if first is None:
            return ["" for _ in self.metrics]
        scaler = scaler_for(first.mean, first.unit)
        cells = []
        for m in self.metrics:
            if m is None:
                cells.append("")
            elif spread:
                cells.append(m.format(scaler))
            else:
                cells.append(scaler(m.mean))
        return cells


@dataclass
class Table:
    """All rows for one unit."""

    metric: str
    unit: str
    configs: list[str]
    rows: list[Row] = field(default_factory=list)
    geomean: Row | None = None


# ---------------------------------------------------------------------------
# Row orders
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Order:
    """A sort key over rows, optionally reversed. Sorting is stable."""

    key: Callable[[Row], object]
    reverse: bool = False


by_name = Order(key=lambda row: (row.group, row.benchmark))

# Ascending puts the largest regressions first.
by_delta = Order(key=lambda row: abs(row.pct_delta) * row.change)


def reverse(order: Order) -> Order:
    return Order(key=order.key, reverse=not order.reverse)


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


class Collection:
    """Accumulates benchmark output per configuration label.

    Usage::

        c = Collection(alpha=0.05, order=reverse(by_delta))
        c.add_file("old", old_file)
        c.add_file("new", new_file)
        tables = c.tables()
    """

    def __init__(
        self,
        *,
        alpha: float = 0.05,
        delta_test: str = "utest",
        order: Order | None = None,
    ) -> None:
        if delta_test not in DELTA_TESTS:
            raise ValueError(f"unknown delta test {delta_test!r}; expected one of {DELTA_TESTS}")
        self.alpha = alpha
        self.delta_test = delta_test
        self.order = order
        self.configs: list[str] = []
        self._units: list[str] = []
        self._keys: list[tuple[str, str]] = []
        self._seen_keys: set[tuple[str, str]] = set()
        self._values: dict[tuple[str, str, str], dict[str, list[float]]] = {}

    def add_text(self, label: str, text: str) -> None:
        """Add benchmark output *text* under configuration *label*."""
        self._add_results(label, parse_bench_output(text))

    def add_file(self, label: str, f: BinaryIO) -> None:
        """Add the benchmark output read from *f* under *label*."""
        self._add_results(label, read_bench_file(f))

    def _add_results(self, label: str, results: list[BenchResult]) -> None:
        if label not in self.configs:
            self.configs.append(label)
        for r in results:
            key = (r.pkg, r.name)
            if key not in self._seen_keys:
                self._seen_keys.add(key)
                self._keys.append(key)
            for unit, value in r.measurements.items():
                if unit not in self._units:
                    self._units.append(unit)
                per_config = self._values.setdefault((r.pkg, r.name, unit), {})
                per_config.setdefault(label, []).append(value)

    def tables(self) -> list[Table]:
        """Build one table per unit, in the order units were first seen."""
        tables: list[Table] = []
        for unit in self._units:
            table = Table(
                metric=METRIC_NAMES.get(unit, unit),
                unit=unit,
                configs=list(self.configs),
            )
            for group, bench in self._keys:
                per_config = self._values.get((group, bench, unit))
                if not per_config:
                    continue
                metrics: list[Metrics | None] = []
                for config in self.configs:
                    values = per_config.get(config)
                    if not values:
                        metrics.append(None)
                        continue
                    m = Metrics(unit=unit, values=list(values))
                    m.compute()
                    metrics.append(m)
                row = Row(group=group, benchmark=bench, metrics=metrics)
                if len(metrics) == 2 and metrics[0] is not None and metrics[1] is not None:
                    self._compare(row, metrics[0], metrics[1], unit)
                table.rows.append(row)

            if self.order is not None:
                table.rows.sort(key=self.order.key, reverse=self.order.reverse)
            table.geomean = self._geomean(table)
            tables.append(table)
        return tables

    def _p_value(self, old: list[float], new: list[float]) -> float:
        if self.delta_test == "ttest":
            return welch_ttest(old, new).p_value
        return mann_whitney_u(old, new).p_value

    def _compare(self, row: Row, old: Metrics, new: Metrics, unit: str) -> None:
        row.delta = "~"
        if len(set(old.rvalues) | set(new.rvalues)) == 1:
            row.note = "(all equal)"
            return

        p = self._p_value(old.rvalues, new.rvalues)
        row.p_value = p
        if math.isnan(p):
            row.note = "(too few samples)"
            return

        row.note = f"(p={p:.3f} n={len(old.rvalues)}+{len(new.rvalues)})"
        if p >= self.alpha:
            return
        if old.mean == 0:
            pct = math.inf if new.mean > 0 else -math.inf
        else:
            pct = (new.mean / old.mean - 1) * 100
        row.pct_delta = pct
        row.delta = f"{pct:+.2f}%"
        if pct != 0:
            improved = pct > 0 if unit in HIGHER_IS_BETTER else pct < 0
            row.change = 1 if improved else -1

    def _geomean(self, table: Table) -> Row | None:
        """Geometric mean row over benchmarks present in every configuration."""
        complete = [r for r in table.rows if all(m is not None for m in r.metrics)]
        if len(complete) < 2:
            return None
        means: list[Metrics | None] = []
        for i in range(len(table.configs)):
            col = [r.metrics[i].mean for r in complete]  # type: ignore[union-attr]
            if any(v <= 0 for v in col):
                return None
            gm = math.exp(sum(math.log(v) for v in col) / len(col))
            means.append(
                Metrics(unit=table.unit, values=[gm], rvalues=[gm], mean=gm, min=gm, max=gm)
            )

        row = Row(group="", benchmark=GEOMEAN_LABEL, metrics=means)
        if len(means) == 2:
            old_gm = means[0].mean  # type: ignore[union-attr]
            new_gm = means[1].mean  # type: ignore[union-attr]
            row.pct_delta = (new_gm / old_gm - 1) * 100
            row.delta = f"{row.pct_delta:+.2f}%"
        return row
