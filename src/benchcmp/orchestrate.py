"""Top-level comparison flow: resolve, build, intersect, run, report.

Builds check out other revisions in the user's working tree, so the
whole build phase runs inside :func:`restore_checkout`, which puts the
original branch back exactly once however the builds end.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from benchcmp.bench.report import process_bench_output
from benchcmp.bench.runner import InterleavedRunner, ProgressCallback
from benchcmp.bench.suite import BenchSuite
from benchcmp.config import CompareConfig
from benchcmp.errors import BenchcmpError
from benchcmp.formatting import format_duration
from benchcmp.git import GitRepo
from benchcmp.gotool import GoToolchain
from benchcmp.logging import get_logger
from benchcmp.refs import resolve_refs
from benchcmp.sinks import ReportSink

log = get_logger("orchestrate")


@contextmanager
def restore_checkout(repo: GitRepo) -> Iterator[str | None]:
    """Restore the checked-out branch when the block exits.

    Yields the branch name, or None when HEAD is detached (nothing is
    restored then). A failed restore is logged and never replaces an
    exception raised inside the block.
    """
    branch = repo.symbolic_ref()
    try:
        yield branch
    finally:
        if branch is not None:
            log.debug("Restoring checkout of '%s'", branch)
            try:
                repo.checkout(branch)
            except BenchcmpError as exc:
                log.warning("failed to restore checkout of '%s': %s", branch, exc)


def build_suites(
    config: CompareConfig,
    suites: tuple[BenchSuite, BenchSuite],
    repo: GitRepo,
    toolchain: GoToolchain,
) -> None:
    """Build both suites with one shared timestamp and one restore."""
    t = datetime.now().astimezone()
    with restore_checkout(repo):
        for suite in suites:
            suite.build(
                config.sorted_packages,
                config.post_checkout,
                t,
                repo=repo,
                toolchain=toolchain,
            )


def run_comparison(
    config: CompareConfig,
    sink: ReportSink | None = None,
    *,
    repo: GitRepo | None = None,
    toolchain: GoToolchain | None = None,
    progress_callback: ProgressCallback | None = None,
) -> tuple[str, str]:
    """Run a complete old-versus-new comparison.

    Args:
        config: The resolved comparison configuration.
        sink: Where to publish the report; None prints it to stdout.
        repo: Git wrapper, defaults to one rooted at ``config.repo_dir``.
        toolchain: Go wrapper, defaults to one rooted at ``config.repo_dir``.
        progress_callback: Called before each benchmark execution.

    Returns:
        The ``(old, new)`` revisions that were compared.

    Raises:
        BenchcmpError: On any failure; output files are closed first.
    """
    repo = repo or GitRepo(config.repo_dir)
    toolchain = toolchain or GoToolchain(config.repo_dir)

    old_ref, new_ref = resolve_refs(repo, config.old_ref, config.new_ref)
    log.info("comparing %s (old) with %s (new)", old_ref, new_ref)

    old = BenchSuite(ref=old_ref, root=config.root_dir)
    new = BenchSuite(ref=new_ref, root=config.root_dir)
    start = time.monotonic()
    try:
        build_suites(config, (old, new), repo, toolchain)

        tests = old.intersect_tests(new).sorted()
        if not tests:
            log.warning("no test binaries common to '%s' and '%s'", old_ref, new_ref)
        else:
            log.debug("Common test binaries: %s", ", ".join(tests))

        runner = InterleavedRunner(
            old,
            new,
            failure_exit_code=config.failure_exit_code,
            progress_callback=progress_callback,
        )
        runner.run(tests, config.count)

        process_bench_output(
            old,
            new,
            config.sorted_packages,
            sink,
            alpha=config.alpha,
            delta_test=config.delta_test,
        )
    finally:
        old.close()
        new.close()
    log.debug("Comparison finished in %s", format_duration(time.monotonic() - start))
    return old_ref, new_ref
