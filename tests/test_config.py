"""Tests for benchcmp.config — configuration loading and validation."""

from __future__ import annotations

import dataclasses
import tempfile
import unittest
from pathlib import Path

from benchcmp.config import (
    CompareConfig,
    build_config,
    check_config,
    load_config_file,
    validate_config,
)
from benchcmp.errors import ConfigError


class TestCompareConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = CompareConfig(packages=("./...",))
        self.assertEqual(config.count, 10)
        self.assertEqual(config.failure_exit_code, 1)
        self.assertEqual(config.delta_test, "utest")
        self.assertEqual(config.export_format, "markdown")
        self.assertEqual(config.root_dir, Path("benchcmp"))
        self.assertAlmostEqual(config.alpha, 0.05)

    def test_frozen(self) -> None:
        config = CompareConfig(packages=("./...",))
        with self.assertRaises(dataclasses.FrozenInstanceError):
            config.count = 3  # type: ignore[misc]

    def test_sorted_packages(self) -> None:
        config = CompareConfig(packages=("./b", "./a"))
        self.assertEqual(config.sorted_packages, ("./a", "./b"))


class TestValidateConfig(unittest.TestCase):
    def _fields(self, config: CompareConfig, severity: str = "error") -> list[str]:
        return [e.field for e in validate_config(config) if e.severity == severity]

    def test_valid(self) -> None:
        self.assertEqual(validate_config(CompareConfig(packages=("./...",))), [])

    def test_no_packages(self) -> None:
        self.assertIn("packages", self._fields(CompareConfig(packages=())))

    def test_count_zero_is_error(self) -> None:
        self.assertIn("count", self._fields(CompareConfig(packages=("./...",), count=0)))

    def test_low_count_is_warning(self) -> None:
        config = CompareConfig(packages=("./...",), count=2)
        self.assertEqual(self._fields(config), [])
        self.assertEqual(self._fields(config, "warning"), ["count"])

    def test_bad_delta_test(self) -> None:
        config = CompareConfig(packages=("./...",), delta_test="ztest")
        self.assertIn("delta_test", self._fields(config))

    def test_failure_exit_code_zero_is_error(self) -> None:
        config = CompareConfig(packages=("./...",), failure_exit_code=0)
        self.assertIn("failure_exit_code", self._fields(config))

    def test_negative_failure_exit_code_is_error(self) -> None:
        config = CompareConfig(packages=("./...",), failure_exit_code=-9)
        self.assertIn("failure_exit_code", self._fields(config))

    def test_bad_export_format(self) -> None:
        config = CompareConfig(packages=("./...",), export_format="html")
        self.assertIn("export_format", self._fields(config))

    def test_sheets_and_export_conflict(self) -> None:
        config = CompareConfig(packages=("./...",), use_sheets=True, export_path=Path("r.md"))
        self.assertIn("export_path", self._fields(config))

    def test_missing_repo_dir(self) -> None:
        config = CompareConfig(packages=("./...",), repo_dir=Path("/nonexistent/repo"))
        self.assertIn("repo_dir", self._fields(config))

    def test_check_config_raises_on_error(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            check_config(CompareConfig(packages=("./...",), count=0))
        self.assertIn("count", str(ctx.exception))

    def test_check_config_logs_warnings(self) -> None:
        with self.assertLogs("benchcmp.config", level="WARNING") as logs:
            check_config(CompareConfig(packages=("./...",), count=1))
        self.assertIn("count", logs.output[0])


class TestLoadConfigFile(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, text: str) -> Path:
        path = self.dir / "benchcmp.yaml"
        path.write_text(text, encoding="utf-8")
        return path

    def test_valid_file(self) -> None:
        path = self._write(
            "count: 20\n"
            "post_checkout: make buildshort\n"
            "root: /var/tmp/benchcmp\n"
            "failure_exit_code: 3\n"
            "delta_test: ttest\n"
            "export_format: csv\n"
        )
        data = load_config_file(path)
        self.assertEqual(data["count"], 20)
        self.assertEqual(data["post_checkout"], "make buildshort")

    def test_empty_file(self) -> None:
        self.assertEqual(load_config_file(self._write("")), {})

    def test_not_a_mapping(self) -> None:
        with self.assertRaises(ConfigError):
            load_config_file(self._write("- count\n- 10\n"))

    def test_unknown_key(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            load_config_file(self._write("iterations: 5\n"))
        self.assertIn("iterations", str(ctx.exception))

    def test_wrong_type(self) -> None:
        with self.assertRaises(ConfigError):
            load_config_file(self._write("count: ten\n"))

    def test_bool_is_not_int(self) -> None:
        with self.assertRaises(ConfigError):
            load_config_file(self._write("count: true\n"))

    def test_malformed_yaml(self) -> None:
        with self.assertRaises(ConfigError):
            load_config_file(self._write("count: [1, 2\n"))

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config_file(self.dir / "missing.yaml")


class TestBuildConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = build_config(["./..."])
        expected = CompareConfig(
            packages=("./...",),
            root_dir=Path.cwd() / "benchcmp",
            repo_dir=Path.cwd(),
        )
        self.assertEqual(config, expected)

    def test_relative_dirs_are_made_absolute(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config = build_config(
                ["./..."], cli_overrides={"root_dir": "cache", "repo_dir": tmpdir}
            )
        self.assertTrue(config.root_dir.is_absolute())
        self.assertEqual(config.root_dir, Path.cwd() / "cache")
        self.assertEqual(config.repo_dir, Path(tmpdir))

    def test_relative_root_from_file_is_made_absolute(self) -> None:
        config = build_config(["./..."], file_values={"root": "var/bc"})
        self.assertEqual(config.root_dir, Path.cwd() / "var" / "bc")

    def test_file_values_apply(self) -> None:
        config = build_config(
            ["./..."],
            file_values={"count": 20, "root": "/var/tmp/bc", "post_checkout": "make gen"},
        )
        self.assertEqual(config.count, 20)
        self.assertEqual(config.root_dir, Path("/var/tmp/bc"))
        self.assertEqual(config.post_checkout, "make gen")

    def test_cli_overrides_file(self) -> None:
        config = build_config(
            ["./..."],
            file_values={"count": 20, "delta_test": "ttest"},
            cli_overrides={"count": 5, "delta_test": None, "old_ref": "v1.0"},
        )
        self.assertEqual(config.count, 5)
        self.assertEqual(config.delta_test, "ttest")
        self.assertEqual(config.old_ref, "v1.0")
        self.assertEqual(config.new_ref, "")

    def test_export_path(self) -> None:
        config = build_config(["./..."], cli_overrides={"export_path": "out/report.csv"})
        self.assertEqual(config.export_path, Path("out/report.csv"))


if __name__ == "__main__":
    unittest.main()
