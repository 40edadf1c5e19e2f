"""Benchmark suites: one revision's binaries and accumulated output.

Layout under the benchcmp root directory::

    <root>/<ref>/artifacts/out.<timestamp>    raw benchmark output, one per run
    <root>/<ref>/bin/<scope-hash>/<binary>    cached test binaries

The binary directory is keyed by the revision and a hash of the sorted
package patterns, so a second comparison of the same revision and
packages skips checkout and compilation entirely.
"""

from __future__ import annotations

import hashlib
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator

from benchcmp.errors import (
    BenchcmpError,
    BuildError,
    SuiteAlreadyBuiltError,
    UnexpectedDirectoryError,
)
from benchcmp.git import GitRepo
from benchcmp.gotool import GoToolchain
from benchcmp.logging import get_logger

log = get_logger("suite")


# ---------------------------------------------------------------------------
# Cache keys and paths
# ---------------------------------------------------------------------------


def scope_hash(packages: Iterable[str]) -> str:
    """Hash a package scope independently of pattern order."""
    serialized = "\n".join(sorted(packages))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:16]


def artifacts_dir_for(root: Path, ref: str) -> Path:
    return root / ref / "artifacts"


def bin_dir_for(root: Path, ref: str, packages: Iterable[str]) -> Path:
    return root / ref / "bin" / scope_hash(packages)


def format_timestamp(t: datetime) -> str:
    """Format *t* for an output file name.

    RFC 3339 with underscores between the time fields, e.g.
    ``2026-10-19T14_03_59Z`` or ``2026-10-19T14_03_59-04:00``.
    """
    offset = t.utcoffset()
    if offset is None or offset == timedelta(0):
        zone = "Z"
    else:
        minutes = int(offset.total_seconds() // 60)
        sign = "+" if minutes >= 0 else "-"
        minutes = abs(minutes)
        zone = f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"
    return t.strftime("%Y-%m-%dT%H_%M_%S") + zone


# ---------------------------------------------------------------------------
# TestSet
# ---------------------------------------------------------------------------


class TestSet:
    """A set of test binary names with deterministic iteration order."""

    __test__ = False  # not a pytest test class

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: set[str] = set(names)

    def add(self, name: str) -> None:
        self._names.add(name)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self.sorted())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TestSet):
            return NotImplemented
        return self._names == other._names

    def __repr__(self) -> str:
        return f"TestSet({self.sorted()!r})"

    def intersect(self, other: TestSet) -> TestSet:
        """Names present in both sets."""
        return TestSet(self._names & other._names)

    def sorted(self) -> list[str]:
        """Names in lexicographic order."""
        return sorted(self._names)


# ---------------------------------------------------------------------------
# BenchSuite
# ---------------------------------------------------------------------------


@dataclass
class BenchSuite:
    """Build-and-run state for one revision."""

    ref: str
    root: Path
    art_dir: Path | None = None
    out_file: BinaryIO | None = None
    bin_dir: Path | None = None
    test_files: TestSet = field(default_factory=TestSet)

    def output_path(self, t: datetime) -> Path:
        assert self.art_dir is not None
        return self.art_dir / f"out.{format_timestamp(t)}"

    def test_binary(self, name: str) -> Path:
        assert self.bin_dir is not None
        return self.bin_dir / name

    def intersect_tests(self, other: BenchSuite) -> TestSet:
        return self.test_files.intersect(other.test_files)

    def close(self) -> None:
        """Close the output file. Safe to call on an unbuilt suite."""
        if self.out_file is not None and not self.out_file.closed:
            self.out_file.close()

    def build(
        self,
        packages: list[str] | tuple[str, ...],
        post_checkout: str | None,
        t: datetime,
        *,
        repo: GitRepo,
        toolchain: GoToolchain,
    ) -> None:
        """Populate the suite with test binaries for *packages*.

        Reuses the cached binary directory when it exists. Otherwise checks
        out the suite's revision and compiles every package; on failure the
        partially filled binary directory is removed so the next run does
        not mistake it for a complete cache entry.

        Raises:
            SuiteAlreadyBuiltError: If the suite already has binaries.
            UnexpectedDirectoryError: If the cache holds a subdirectory.
            BuildError: If creating directories, checkout, package
                expansion, or compilation fails.
        """
        if len(self.test_files) != 0:
            raise SuiteAlreadyBuiltError(f"suite for '{self.ref}' already built")

        self.art_dir = artifacts_dir_for(self.root, self.ref)
        try:
            self.art_dir.mkdir(parents=True, exist_ok=True)
            self.out_file = open(self.output_path(t), "a+b")  # noqa: SIM115
        except OSError as exc:
            raise BuildError(f"creating artifacts for '{self.ref}': {exc}") from exc

        self.bin_dir = bin_dir_for(self.root, self.ref, packages)
        if self.bin_dir.exists():
            log.info("test binaries already exist for '%s'; skipping build", self.ref)
            self._load_cached()
            return

        try:
            self.bin_dir.mkdir(parents=True)
        except OSError as exc:
            raise BuildError(f"creating binary directory for '{self.ref}': {exc}") from exc

        built = False
        try:
            self._compile(packages, post_checkout, repo, toolchain)
            built = True
        finally:
            if not built:
                log.debug("Removing incomplete binary directory %s", self.bin_dir)
                shutil.rmtree(self.bin_dir, ignore_errors=True)

    def _load_cached(self) -> None:
        assert self.bin_dir is not None
        try:
            entries = sorted(os.scandir(self.bin_dir), key=lambda e: e.name)
        except OSError as exc:
            raise BuildError(f"looking for test directory: {exc}") from exc
        for entry in entries:
            if entry.is_dir():
                raise UnexpectedDirectoryError(entry.name)
            self.test_files.add(entry.name)

    def _compile(
        self,
        packages: list[str] | tuple[str, ...],
        post_checkout: str | None,
        repo: GitRepo,
        toolchain: GoToolchain,
    ) -> None:
        assert self.bin_dir is not None
        log.info("checking out '%s'", self.ref)
        try:
            repo.checkout(self.ref, post_checkout)
        except BenchcmpError as exc:
            raise BuildError(str(exc)) from exc

        pkgs = toolchain.expand_packages(packages)

        log.info("building benchmark binaries for '%s'", self.ref)
        for i, pkg in enumerate(pkgs):
            name = toolchain.build_test_binary(pkg, self.bin_dir)
            if name is not None:
                self.test_files.add(name)
            log.info("  [%d/%d] %s%s", i + 1, len(pkgs), pkg, "" if name else " (no tests)")
