"""Command-line interface for benchcmp.

Usage::

    benchcmp [OPTIONS] PACKAGES...

Compares the Go benchmarks of PACKAGES between two git revisions of the
repository in the current directory. Without ``--old``/``--new`` the
checked-out commit is compared against its parent.
"""

from __future__ import annotations

from pathlib import Path

import click

from benchcmp import __version__
from benchcmp.bench.benchstat import DELTA_TESTS
from benchcmp.bench.export import EXPORT_FORMATS
from benchcmp.config import build_config, check_config, load_config_file
from benchcmp.errors import BenchcmpError
from benchcmp.logging import setup_logging
from benchcmp.orchestrate import run_comparison
from benchcmp.sinks import FileSink, GoogleSheetsSink, ReportSink


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("packages", nargs=-1)
@click.option(
    "-o",
    "--old",
    "old_ref",
    type=str,
    default=None,
    help="Old revision (default: parent of --new).",
)
@click.option(
    "-n", "--new", "new_ref", type=str, default=None, help="New revision (default: HEAD)."
)
@click.option(
    "-c",
    "--count",
    type=int,
    default=None,
    help="Runs of each benchmark binary per revision (default: 10).",
)
@click.option(
    "--post-checkout",
    type=str,
    default=None,
    help="Shell command run in the repository after each checkout, before building.",
)
@click.option("--sheets", "use_sheets", is_flag=True, help="Upload results to Google Sheets.")
@click.option(
    "--export",
    "export_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Write results to this file instead of stdout.",
)
@click.option(
    "--export-format",
    type=click.Choice(EXPORT_FORMATS),
    default=None,
    help="Format for --export (default: markdown).",
)
@click.option(
    "--root",
    "root_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for cached binaries and raw output (default: benchcmp).",
)
@click.option(
    "--repo-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Git repository to benchmark (default: current directory).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with default option values.",
)
@click.option(
    "--failure-exit-code",
    type=int,
    default=None,
    help="Exit status a test binary uses for failed benchmarks (default: 1).",
)
@click.option(
    "--delta-test",
    type=click.Choice(DELTA_TESTS),
    default=None,
    help="Significance test for deltas (default: utest).",
)
@click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
@click.option("-q", "--quiet", is_flag=True, help="Only show warnings and results.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a DEBUG log to this file.",
)
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    packages: tuple[str, ...],
    old_ref: str | None,
    new_ref: str | None,
    count: int | None,
    post_checkout: str | None,
    use_sheets: bool,
    export_path: Path | None,
    export_format: str | None,
    root_dir: Path | None,
    repo_dir: Path | None,
    config_path: Path | None,
    failure_exit_code: int | None,
    delta_test: str | None,
    verbose: bool,
    quiet: bool,
    log_file: Path | None,
) -> None:
    """Compare Go benchmarks between two git revisions."""
    if not packages:
        click.echo(ctx.get_help())
        return

    setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)

    try:
        file_values = load_config_file(config_path) if config_path else {}
        config = build_config(
            packages,
            file_values=file_values,
            cli_overrides={
                "old_ref": old_ref,
                "new_ref": new_ref,
                "count": count,
                "post_checkout": post_checkout,
                "use_sheets": use_sheets,
                "export_path": export_path,
                "export_format": export_format,
                "root_dir": root_dir,
                "repo_dir": repo_dir,
                "failure_exit_code": failure_exit_code,
                "delta_test": delta_test,
            },
        )
        check_config(config)

        # Credentials are checked before anything is built.
        sink: ReportSink | None = None
        if config.use_sheets:
            sink = GoogleSheetsSink.from_environment()
        elif config.export_path is not None:
            sink = FileSink(config.export_path, config.export_format)

        run_comparison(config, sink)
    except BenchcmpError as exc:
        click.echo(f"fatal: {exc}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\ninterrupted", err=True)
        raise SystemExit(130)  # noqa: B904
