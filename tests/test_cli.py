"""Tests for benchcmp.cli — the command-line interface."""

from __future__ import annotations

import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from benchcmp import __version__
from benchcmp.cli import main
from benchcmp.config import CompareConfig
from benchcmp.errors import BuildError, ConfigError
from benchcmp.sinks import FileSink


class TestCliBasics(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()

    def test_help(self) -> None:
        result = self.runner.invoke(main, ["-h"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--post-checkout", result.output)
        self.assertIn("--failure-exit-code", result.output)

    def test_version(self) -> None:
        result = self.runner.invoke(main, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    @patch("benchcmp.cli.run_comparison")
    def test_no_packages_prints_help(self, mock_run: MagicMock) -> None:
        result = self.runner.invoke(main, [])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("Usage:", result.output)
        mock_run.assert_not_called()


class TestCliRun(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        logger = logging.getLogger("benchcmp")
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        self._tmp.cleanup()

    @patch("benchcmp.cli.run_comparison")
    def test_options_become_config(self, mock_run: MagicMock) -> None:
        result = self.runner.invoke(
            main,
            [
                "./pkg/a",
                "./pkg/b/...",
                "-o",
                "v1.0",
                "-n",
                "main",
                "-c",
                "5",
                "--post-checkout",
                "make gen",
                "--root",
                str(self.dir / "cache"),
                "--repo-dir",
                str(self.dir),
                "--failure-exit-code",
                "3",
                "--delta-test",
                "ttest",
            ],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        config, sink = mock_run.call_args.args
        self.assertIsInstance(config, CompareConfig)
        self.assertEqual(config.packages, ("./pkg/a", "./pkg/b/..."))
        self.assertEqual(config.old_ref, "v1.0")
        self.assertEqual(config.new_ref, "main")
        self.assertEqual(config.count, 5)
        self.assertEqual(config.post_checkout, "make gen")
        self.assertEqual(config.root_dir, self.dir / "cache")
        self.assertEqual(config.failure_exit_code, 3)
        self.assertEqual(config.delta_test, "ttest")
        self.assertIsNone(sink)

    @patch("benchcmp.cli.run_comparison")
    def test_config_file_defaults(self, mock_run: MagicMock) -> None:
        cfg = self.dir / "benchcmp.yaml"
        cfg.write_text("count: 20\npost_checkout: make gen\n", encoding="utf-8")
        result = self.runner.invoke(
            main, ["./...", "--config", str(cfg), "-c", "7", "--repo-dir", str(self.dir)]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        config = mock_run.call_args.args[0]
        self.assertEqual(config.count, 7)
        self.assertEqual(config.post_checkout, "make gen")

    @patch("benchcmp.cli.run_comparison")
    def test_bad_config_file_is_fatal(self, mock_run: MagicMock) -> None:
        cfg = self.dir / "benchcmp.yaml"
        cfg.write_text("bogus: 1\n", encoding="utf-8")
        result = self.runner.invoke(main, ["./...", "--config", str(cfg)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("fatal: unknown config key 'bogus'", result.output)
        mock_run.assert_not_called()

    @patch("benchcmp.cli.run_comparison")
    def test_export_builds_file_sink(self, mock_run: MagicMock) -> None:
        out = self.dir / "report.csv"
        result = self.runner.invoke(
            main,
            ["./...", "--export", str(out), "--export-format", "csv", "--repo-dir", str(self.dir)],
        )
        self.assertEqual(result.exit_code, 0, result.output)
        sink = mock_run.call_args.args[1]
        self.assertIsInstance(sink, FileSink)
        self.assertEqual(sink.path, out)
        self.assertEqual(sink.fmt, "csv")

    @patch("benchcmp.cli.run_comparison")
    def test_sheets_without_credentials_fails_before_build(self, mock_run: MagicMock) -> None:
        with patch.dict("os.environ", {}, clear=True):
            result = self.runner.invoke(main, ["./...", "--sheets", "--repo-dir", str(self.dir)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("fatal: GOOGLE_APPLICATION_CREDENTIALS", result.output)
        mock_run.assert_not_called()

    @patch("benchcmp.cli.GoogleSheetsSink.from_environment")
    @patch("benchcmp.cli.run_comparison")
    def test_sheets_sink(self, mock_run: MagicMock, mock_from_env: MagicMock) -> None:
        result = self.runner.invoke(main, ["./...", "--sheets", "--repo-dir", str(self.dir)])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIs(mock_run.call_args.args[1], mock_from_env.return_value)

    @patch("benchcmp.cli.run_comparison")
    def test_invalid_count_is_fatal(self, mock_run: MagicMock) -> None:
        result = self.runner.invoke(main, ["./...", "-c", "0", "--repo-dir", str(self.dir)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("fatal: invalid configuration", result.output)
        mock_run.assert_not_called()

    @patch("benchcmp.cli.run_comparison")
    def test_bad_delta_test_choice(self, mock_run: MagicMock) -> None:
        result = self.runner.invoke(main, ["./...", "--delta-test", "ztest"])
        self.assertEqual(result.exit_code, 2)
        mock_run.assert_not_called()

    @patch("benchcmp.cli.run_comparison")
    def test_benchcmp_error_is_fatal(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = BuildError("building test binary for example.com/a failed")
        result = self.runner.invoke(main, ["./...", "--repo-dir", str(self.dir)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("fatal: building test binary for example.com/a failed", result.output)

    @patch("benchcmp.cli.run_comparison")
    def test_config_error_from_run_is_fatal(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = ConfigError("bad")
        result = self.runner.invoke(main, ["./...", "--repo-dir", str(self.dir)])
        self.assertEqual(result.exit_code, 1)

    @patch("benchcmp.cli.run_comparison")
    def test_interrupt(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = KeyboardInterrupt
        result = self.runner.invoke(main, ["./...", "--repo-dir", str(self.dir)])
        self.assertEqual(result.exit_code, 130)
        self.assertIn("interrupted", result.output)

    @patch("benchcmp.cli.run_comparison")
    def test_log_file(self, mock_run: MagicMock) -> None:
        log_file = self.dir / "benchcmp.log"
        result = self.runner.invoke(
            main, ["./...", "--repo-dir", str(self.dir), "--log-file", str(log_file), "-v"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(log_file.exists())


if __name__ == "__main__":
    unittest.main()
