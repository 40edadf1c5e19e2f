"""Tests for benchcmp.bench.report — turning suite output into a report."""

from __future__ import annotations

import io
import unittest
from unittest.mock import MagicMock

from bench_test_helpers import bench_output, make_suite

from benchcmp.bench.report import compute_tables, process_bench_output, report_title
from benchcmp.errors import ConfigError, ReportError

PKG = "example.com/kv"


def _suites() -> tuple:
    old = make_suite("abc1234", bench_output(PKG, {"Get": [100.0, 101.0, 102.0, 103.0, 104.0]}))
    new = make_suite("def5678", bench_output(PKG, {"Get": [200.0, 201.0, 202.0, 203.0, 204.0]}))
    return old, new


class TestReportTitle(unittest.TestCase):
    def test_title(self) -> None:
        self.assertEqual(
            report_title(["./pkg/a", "./pkg/b/..."], "abc1234", "def5678"),
            "benchcmp: ./pkg/a ./pkg/b/... (abc1234 -> def5678)",
        )


class TestComputeTables(unittest.TestCase):
    def test_rewinds_output_files(self) -> None:
        old, new = _suites()
        # make_suite leaves the position at the end, as after the runs.
        self.assertNotEqual(old.out_file.tell(), 0)
        tables = compute_tables(old, new)
        self.assertEqual(len(tables), 1)
        self.assertEqual(tables[0].configs, ["old", "new"])
        self.assertEqual(tables[0].rows[0].change, -1)

    def test_unopened_suite(self) -> None:
        old, new = _suites()
        new.out_file = None
        with self.assertRaises(ReportError):
            compute_tables(old, new)

    def test_closed_file(self) -> None:
        old, new = _suites()
        old.out_file.close()
        with self.assertRaises(ReportError):
            compute_tables(old, new)

    def test_bad_delta_test(self) -> None:
        old, new = _suites()
        with self.assertRaises(ReportError):
            compute_tables(old, new, delta_test="nope")


class TestProcessBenchOutput(unittest.TestCase):
    def test_prints_text_without_sink(self) -> None:
        old, new = _suites()
        out = io.StringIO()
        process_bench_output(old, new, ["./..."], out=out)
        text = out.getvalue()
        self.assertIn("old time/op", text)
        self.assertIn("pkg: example.com/kv", text)
        self.assertIn("+98.04%", text)

    def test_publishes_to_sink(self) -> None:
        old, new = _suites()
        sink = MagicMock()
        sink.publish.return_value = "https://example.invalid/sheet"
        out = io.StringIO()
        process_bench_output(old, new, ["./a", "./b"], sink, out=out)

        title, tables = sink.publish.call_args.args
        self.assertEqual(title, "benchcmp: ./a ./b (abc1234 -> def5678)")
        self.assertEqual(tables[0].metric, "time/op")
        self.assertEqual(out.getvalue(), "generated report: https://example.invalid/sheet\n")

    def test_sink_failure_is_report_error(self) -> None:
        old, new = _suites()
        sink = MagicMock()
        sink.publish.side_effect = ConfigError("no credentials")
        with self.assertRaises(ReportError) as ctx:
            process_bench_output(old, new, ["./..."], sink, out=io.StringIO())
        self.assertIn("no credentials", str(ctx.exception))

    def test_report_error_propagates_unchanged(self) -> None:
        old, new = _suites()
        sink = MagicMock()
        err = ReportError("upload failed")
        sink.publish.side_effect = err
        with self.assertRaises(ReportError) as ctx:
            process_bench_output(old, new, ["./..."], sink, out=io.StringIO())
        self.assertIs(ctx.exception, err)


if __name__ == "__main__":
    unittest.main()
