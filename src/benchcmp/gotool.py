"""Go toolchain wrappers: package pattern expansion and test binary builds."""

from __future__ import annotations

import subprocess
from pathlib import Path

from benchcmp.errors import BuildError
from benchcmp.logging import get_logger

log = get_logger("gotool")

TEST_BINARY_SUFFIX = ".test"


def pkg_to_test_binary(pkg: str) -> str:
    """Map an import path to the file name of its test binary.

    ``github.com/acme/kv`` becomes ``github.com_acme_kv.test``.
    """
    return pkg.replace("/", "_") + TEST_BINARY_SUFFIX


def binary_label(binary: str) -> str:
    """A short display label for a test binary name."""
    if binary.endswith(TEST_BINARY_SUFFIX):
        return binary[: -len(TEST_BINARY_SUFFIX)]
    return binary


class GoToolchain:
    """Runs ``go`` commands inside the checked-out working tree."""

    def __init__(self, repo_dir: Path, go: str = "go") -> None:
        self.repo_dir = repo_dir
        self.go = go

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        cmd = [self.go, *args]
        log.debug("Running: %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=str(self.repo_dir),
                check=False,
            )
        except OSError as exc:
            raise BuildError(f"error running {' '.join(cmd)}: {exc}") from exc

    def expand_packages(self, patterns: list[str] | tuple[str, ...]) -> list[str]:
        """Expand package patterns such as ``./pkg/...`` into import paths."""
        proc = self._run(["list", *patterns])
        if proc.returncode != 0:
            raise BuildError(f"go list {' '.join(patterns)} failed: {proc.stderr.strip()}")
        return [line.strip() for line in proc.stdout.splitlines() if line.strip()]

    def build_test_binary(self, pkg: str, bin_dir: Path) -> str | None:
        """Compile the test binary for *pkg* into *bin_dir*.

        Returns:
            The binary's file name, or None if the package has no tests
            (``go test -c`` then succeeds without writing a file).

        Raises:
            BuildError: If compilation fails.
        """
        name = pkg_to_test_binary(pkg)
        dest = bin_dir.absolute() / name
        proc = self._run(["test", "-c", "-o", str(dest), pkg])
        if proc.returncode != 0:
            stderr_tail = proc.stderr.strip()[-2000:]
            raise BuildError(f"building test binary for {pkg} failed:\n{stderr_tail}")
        if not dest.exists():
            log.debug("No test files in %s", pkg)
            return None
        return name
