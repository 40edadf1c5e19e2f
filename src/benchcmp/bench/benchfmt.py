"""Parser for the Go benchmark output format.

A benchmark result line looks like::

    BenchmarkGet/small-8    1000000    1234 ns/op    128 B/op    2 allocs/op

Configuration lines such as ``pkg: github.com/acme/kv`` apply to the
result lines that follow them. Everything else (``PASS``, ``ok``, test
log output) is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import BinaryIO

_CONFIG_RE = re.compile(r"^([a-z][^\s:]*):\s*(.*)$")
_BENCH_PREFIX = "Benchmark"


@dataclass
class BenchResult:
    """One benchmark result line."""

    pkg: str
    name: str  # without the "Benchmark" prefix
    iterations: int
    measurements: dict[str, float] = field(default_factory=dict)  # unit -> value


def _is_bench_name(word: str) -> bool:
    if not word.startswith(_BENCH_PREFIX):
        return False
    rest = word[len(_BENCH_PREFIX) :]
    return rest == "" or not rest[0].islower()


def parse_line(line: str, pkg: str = "") -> BenchResult | None:
    """Parse a single result line, or return None if it is not one."""
    fields = line.split()
    if len(fields) < 4 or len(fields) % 2 != 0:
        return None
    if not _is_bench_name(fields[0]):
        return None
    try:
        iterations = int(fields[1])
    except ValueError:
        return None

    measurements: dict[str, float] = {}
    for i in range(2, len(fields), 2):
        try:
            value = float(fields[i])
        except ValueError:
            return None
        measurements[fields[i + 1]] = value

    name = fields[0][len(_BENCH_PREFIX) :] or fields[0]
    return BenchResult(pkg=pkg, name=name, iterations=iterations, measurements=measurements)


def parse_bench_output(text: str) -> list[BenchResult]:
    """Parse all result lines in *text*, tagging each with its ``pkg``."""
    results: list[BenchResult] = []
    pkg = ""
    for raw in text.splitlines():
        line = raw.rstrip()
        config = _CONFIG_RE.match(line)
        if config:
            if config.group(1) == "pkg":
                pkg = config.group(2).strip()
            continue
        result = parse_line(line, pkg)
        if result is not None:
            results.append(result)
    return results


def read_bench_file(f: BinaryIO) -> list[BenchResult]:
    """Parse an open output file from its current position."""
    return parse_bench_output(f.read().decode("utf-8", errors="replace"))
