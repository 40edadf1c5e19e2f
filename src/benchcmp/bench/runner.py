"""Interleaved execution of benchmark binaries.

For every test binary common to both revisions, each iteration runs the
old revision's binary and then the new one's::

    old(x) new(x) old(x) new(x) ... old(y) new(y) ...

instead of running all old iterations before all new ones. Slow drift in
machine conditions (thermal throttling, background load) then affects
both revisions alike rather than showing up as a difference between
them. Executions never overlap: concurrent benchmarks would compete for
the same CPUs and caches.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Any, Callable

from benchcmp.bench.suite import BenchSuite
from benchcmp.errors import RunError
from benchcmp.formatting import format_signal_name
from benchcmp.gotool import binary_label
from benchcmp.logging import get_logger

log = get_logger("runner")

BENCH_ARGS = ("-test.run", "-", "-test.bench", ".", "-test.benchmem")
LOG_FLAG = "logtostderr"
QUIET_LOG_ARGS = ("--logtostderr", "NONE")
DEFAULT_FAILURE_EXIT_CODE = 1


# ---------------------------------------------------------------------------
# Single execution
# ---------------------------------------------------------------------------


def supports_log_flag(binary: str) -> bool:
    """Probe whether *binary* accepts ``--logtostderr``.

    ``--help`` exits non-zero for Go test binaries, so only the output is
    inspected. A binary that cannot even start fails properly on the real
    run.
    """
    try:
        proc = subprocess.run(
            [binary, "--help"],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError:
        return False
    return LOG_FLAG.encode() in proc.stdout


def run_single_bench(
    suite: BenchSuite,
    test: str,
    *,
    failure_exit_code: int = DEFAULT_FAILURE_EXIT_CODE,
) -> None:
    """Run one test binary's benchmarks, appending output to the suite's file.

    Raises:
        RunError: If the binary cannot be started, is killed by a signal,
            or exits with a status other than 0 and *failure_exit_code*.
    """
    binary = str(suite.test_binary(test))
    args = [binary, *BENCH_ARGS]
    if supports_log_flag(binary):
        args.extend(QUIET_LOG_ARGS)

    log.debug("Running: %s", " ".join(args))
    try:
        proc = subprocess.run(
            args,
            stdout=suite.out_file,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        raise RunError(f"error running {args}: {exc}") from exc

    if proc.returncode == 0:
        return
    if proc.returncode == failure_exit_code:
        log.warning("  saw one or more benchmark failures in %s", binary_label(test))
        return
    if proc.returncode < 0:
        signame = format_signal_name(-proc.returncode)
        raise RunError(f"error running {args}: killed by {signame}")
    raise RunError(f"error running {args}: exit status {proc.returncode}")


# ---------------------------------------------------------------------------
# InterleavedRunner
# ---------------------------------------------------------------------------


@dataclass
class RunProgress:
    """Progress info passed to the callback before each execution."""

    test: str
    test_index: int  # 1-based
    tests_total: int
    iteration: int  # 1-based
    iterations_total: int
    ref: str


ProgressCallback = Callable[[RunProgress], Any]


class InterleavedRunner:
    """Runs the tests of two suites, alternating old and new per iteration.

    Usage::

        runner = InterleavedRunner(old_suite, new_suite)
        runner.run(["a.test", "b.test"], iters_per_test=10)
    """

    def __init__(
        self,
        old: BenchSuite,
        new: BenchSuite,
        *,
        failure_exit_code: int = DEFAULT_FAILURE_EXIT_CODE,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.old = old
        self.new = new
        self.failure_exit_code = failure_exit_code
        self.progress: ProgressCallback = progress_callback or self._default_progress

    def run(self, tests: list[str], iters_per_test: int) -> None:
        """Execute every test *iters_per_test* times under both suites.

        The first :class:`RunError` aborts the whole run.
        """
        log.info("running benchmarks:")
        for i, test in enumerate(tests):
            for j in range(iters_per_test):
                for suite in (self.old, self.new):
                    self.progress(
                        RunProgress(
                            test=test,
                            test_index=i + 1,
                            tests_total=len(tests),
                            iteration=j + 1,
                            iterations_total=iters_per_test,
                            ref=suite.ref,
                        )
                    )
                    self.run_single(suite, test)

    def run_single(self, suite: BenchSuite, test: str) -> None:
        run_single_bench(suite, test, failure_exit_code=self.failure_exit_code)

    @staticmethod
    def _default_progress(progress: RunProgress) -> None:
        log.info(
            "  pkg=%d/%d iter=%d/%d %-10s %s",
            progress.test_index,
            progress.tests_total,
            progress.iteration,
            progress.iterations_total,
            progress.ref,
            binary_label(progress.test),
        )
