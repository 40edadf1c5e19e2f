"""Error types raised by benchcmp.

Every error that should stop a comparison derives from
:class:`BenchcmpError`. The CLI prints these with a ``fatal:`` prefix
and exits with status 1. Conditions that are handled locally (a cache
hit, a benchmark binary reporting failed benchmarks) never raise.
"""

from __future__ import annotations


class BenchcmpError(Exception):
    """Base class for all fatal benchcmp errors."""


class ConfigError(BenchcmpError):
    """Invalid configuration file, option value, or missing credentials."""


class RevisionControlError(BenchcmpError):
    """A git query or checkout failed."""


class InvalidRefError(BenchcmpError):
    """A revision does not name a commit in the repository."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"invalid git ref '{ref}'")
        self.ref = ref


class BuildError(BenchcmpError):
    """Checking out, expanding, or compiling a suite failed."""


class UnexpectedDirectoryError(BenchcmpError):
    """A binary cache directory contains a subdirectory."""

    def __init__(self, path: str) -> None:
        super().__init__(f"unexpected directory '{path}'")
        self.path = path


class SuiteAlreadyBuiltError(BenchcmpError):
    """``BenchSuite.build`` was called on a suite that already has binaries."""


class RunError(BenchcmpError):
    """A benchmark binary terminated abnormally."""


class ReportError(BenchcmpError):
    """Computing statistics or publishing the report failed."""
