"""Comparison configuration.

Handles:
- The immutable :class:`CompareConfig` built once per invocation.
- Loading defaults from a YAML file.
- Merging CLI options over file values over built-in defaults.
- Validating the final configuration before anything is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from benchcmp.bench.benchstat import DELTA_TESTS
from benchcmp.bench.export import EXPORT_FORMATS
from benchcmp.errors import ConfigError
from benchcmp.logging import get_logger

log = get_logger("config")

DEFAULT_COUNT = 10
DEFAULT_ROOT = Path("benchcmp")


# ---------------------------------------------------------------------------
# CompareConfig
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompareConfig:
    """Resolved configuration for one comparison."""

    packages: tuple[str, ...]
    old_ref: str = ""
    new_ref: str = ""

    # Iteration control
    count: int = DEFAULT_COUNT  # runs of each test binary per revision

    # Build
    post_checkout: str | None = None

    # Reporting
    use_sheets: bool = False
    export_path: Path | None = None
    export_format: str = "markdown"
    delta_test: str = "utest"
    alpha: float = 0.05

    # Paths
    root_dir: Path = field(default_factory=lambda: DEFAULT_ROOT)
    repo_dir: Path = field(default_factory=lambda: Path("."))

    # Exit status a test binary uses to report failed benchmarks.
    failure_exit_code: int = 1

    @property
    def sorted_packages(self) -> tuple[str, ...]:
        return tuple(sorted(self.packages))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: CompareConfig) -> list[ValidationError]:
    """Validate a comparison configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not config.packages:
        errors.append(ValidationError(field="packages", message="No package patterns given."))

    if config.count < 1:
        errors.append(
            ValidationError(
                field="count", message=f"Count must be at least 1 (got {config.count})."
            )
        )
    elif config.count < 3:
        errors.append(
            ValidationError(
                field="count",
                message=(
                    f"Only {config.count} run(s) per revision; significance tests "
                    "need more samples to detect changes."
                ),
                severity="warning",
            )
        )

    if config.failure_exit_code < 1:
        errors.append(
            ValidationError(
                field="failure_exit_code",
                message=(
                    "Failure exit code must be a positive exit status "
                    f"(got {config.failure_exit_code})."
                ),
            )
        )

    if config.delta_test not in DELTA_TESTS:
        errors.append(
            ValidationError(
                field="delta_test",
                message=(
                    f"Unknown delta test '{config.delta_test}'. "
                    f"Valid: {', '.join(DELTA_TESTS)}"
                ),
            )
        )

    if config.export_format not in EXPORT_FORMATS:
        errors.append(
            ValidationError(
                field="export_format",
                message=(
                    f"Unknown export format '{config.export_format}'. "
                    f"Valid: {', '.join(EXPORT_FORMATS)}"
                ),
            )
        )

    if config.use_sheets and config.export_path is not None:
        errors.append(
            ValidationError(
                field="export_path",
                message="--sheets and --export are mutually exclusive.",
            )
        )

    if not 0 < config.alpha < 1:
        errors.append(
            ValidationError(field="alpha", message=f"Alpha must be in (0, 1) (got {config.alpha}).")
        )

    if not config.repo_dir.is_dir():
        errors.append(
            ValidationError(
                field="repo_dir",
                message=f"Repository directory does not exist: {config.repo_dir}",
            )
        )

    return errors


def check_config(config: CompareConfig) -> None:
    """Log warnings and raise :class:`ConfigError` on any error."""
    problems = validate_config(config)
    for w in problems:
        if w.severity == "warning":
            log.warning("Config warning: %s: %s", w.field, w.message)
    fatal = [e for e in problems if e.severity == "error"]
    if fatal:
        messages = [f"  {e.field}: {e.message}" for e in fatal]
        raise ConfigError("invalid configuration:\n" + "\n".join(messages))


# ---------------------------------------------------------------------------
# YAML defaults file
# ---------------------------------------------------------------------------

# key -> accepted Python types
_FILE_KEYS: dict[str, tuple[type, ...]] = {
    "count": (int,),
    "post_checkout": (str,),
    "root": (str,),
    "failure_exit_code": (int,),
    "delta_test": (str,),
    "export_format": (str,),
}


def load_config_file(path: Path) -> dict[str, Any]:
    """Load comparison defaults from a YAML file.

    File format::

        count: 20
        post_checkout: "make buildshort"
        root: /var/tmp/benchcmp
        failure_exit_code: 1
        delta_test: utest
        export_format: markdown

    Returns:
        The parsed mapping.

    Raises:
        ConfigError: If the file is missing, malformed, or contains
            unknown keys or values of the wrong type.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"reading config file {path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"parsing config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file must be a YAML mapping, got {type(data).__name__}")

    for key, value in data.items():
        if key not in _FILE_KEYS:
            raise ConfigError(
                f"unknown config key '{key}' in {path}. Valid keys: {', '.join(_FILE_KEYS)}"
            )
        expected = _FILE_KEYS[key]
        # bool is an int subclass; reject `count: true`.
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(
                f"config key '{key}' must be {expected[0].__name__}, got {type(value).__name__}"
            )
    return data


def build_config(
    packages: tuple[str, ...] | list[str],
    *,
    file_values: dict[str, Any] | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> CompareConfig:
    """Build a :class:`CompareConfig` from file values and CLI overrides.

    CLI values of ``None`` mean "not given" and fall through to the file,
    then to the built-in defaults.
    Directories are made absolute against the current directory: go
    commands run inside the repository, not here.
    """
    file_data = file_values or {}
    cli = {k: v for k, v in (cli_overrides or {}).items() if v is not None}

    def pick(cli_key: str, file_key: str, default: Any) -> Any:
        if cli_key in cli:
            return cli[cli_key]
        return file_data.get(file_key, default)

    root = pick("root_dir", "root", DEFAULT_ROOT)
    export_path = cli.get("export_path")
    return CompareConfig(
        packages=tuple(packages),
        old_ref=cli.get("old_ref", ""),
        new_ref=cli.get("new_ref", ""),
        count=pick("count", "count", DEFAULT_COUNT),
        post_checkout=pick("post_checkout", "post_checkout", None) or None,
        use_sheets=bool(cli.get("use_sheets", False)),
        export_path=Path(export_path) if export_path else None,
        export_format=pick("export_format", "export_format", "markdown"),
        delta_test=pick("delta_test", "delta_test", "utest"),
        root_dir=Path(root).absolute(),
        repo_dir=Path(cli.get("repo_dir", ".")).absolute(),
        failure_exit_code=pick("failure_exit_code", "failure_exit_code", 1),
    )
