import json
import math
import subprocess
from datetime import datetime
from unittest.mock import patch

import pytest

from aibscleaner.comparator import (
    BenchmarkComparator,
    BenchmarkError,
    BenchmarkResult,
    ComparisonReport,
    compare_benchmarks,
    current_commit,
    generate_markdown_report,
    generate_report,
    parse_benchmark_output,
)

VALID_OUTPUT = """goos: darwin
goarch: amd64
pkg: github.com/test/pkg
BenchmarkStringConcat-8    \t1000000\t      1050 ns/op\t     512 B/op\t      10 allocs/op
BenchmarkStringBuilder-8   \t5000000\t       300 ns/op\t     128 B/op\t       2 allocs/op
PASS
ok  \tgithub.com/test/pkg\t3.456s"""

SUB_OUTPUT = """BenchmarkMap/small-8         \t10000000\t       105 ns/op\t      16 B/op\t       1 allocs/op
BenchmarkMap/medium-8        \t 5000000\t       350 ns/op\t      64 B/op\t       2 allocs/op
BenchmarkMap/large-8         \t 1000000\t      1200 ns/op\t     256 B/op\t       8 allocs/op"""


def _r(name, ns, b, allocs, runs=1000000):
    return BenchmarkResult(name=name, runs=runs, ns_per_op=ns, bytes_per_op=b, allocs_per_op=allocs)


@pytest.mark.parametrize(
    "output, expected",
    [
        (
            VALID_OUTPUT,
            [
                ("BenchmarkStringConcat-8", 1000000, 1050.0, 512, 10),
                ("BenchmarkStringBuilder-8", 5000000, 300.0, 128, 2),
            ],
        ),
        (
            SUB_OUTPUT,
            [
                ("BenchmarkMap/small-8", 10000000, 105.0, 16, 1),
                ("BenchmarkMap/medium-8", 5000000, 350.0, 64, 2),
                ("BenchmarkMap/large-8", 1000000, 1200.0, 256, 8),
            ],
        ),
        ("", []),
        ("PASS\nok  \tgithub.com/test/pkg\t0.001s", []),
        ("BenchmarkSimple-8    \t1000000\t      1050 ns/op\nPASS", [("BenchmarkSimple-8", 1000000, 1050.0, 0, 0)]),
    ],
)
def test_parse_benchmark_output(output, expected):
    results = parse_benchmark_output(output)
    got = [(r.name, r.runs, r.ns_per_op, r.bytes_per_op, r.allocs_per_op) for r in results.values()]
    assert got == expected
    assert list(results) == [e[0] for e in expected]


def test_parse_attached_units_and_mb_per_sec():
    results = parse_benchmark_output("BenchmarkIO-4 200 5000ns/op 12.5 MB/s 64B/op")
    result = results["BenchmarkIO-4"]
    assert result.ns_per_op == 5000.0
    assert result.mb_per_sec == 12.5
    assert result.bytes_per_op == 64


def test_parse_skips_short_lines():
    assert parse_benchmark_output("BenchmarkX 10\nBenchmark") == {}


def test_compare_improvement():
    comp = compare_benchmarks(
        _r("BenchmarkStringConcat", 1000, 512, 10), _r("BenchmarkStringConcat", 500, 256, 5, 2000000)
    )
    assert comp.name == "BenchmarkStringConcat"
    assert comp.speedup_percent == 50.0
    assert comp.alloc_change == -50.0
    assert comp.bytes_change == -50.0
    assert comp.improved is True


def test_compare_regression():
    comp = compare_benchmarks(_r("BenchmarkMap", 100, 64, 2), _r("BenchmarkMap", 200, 128, 4, 500000))
    assert comp.speedup_percent == -100.0
    assert comp.alloc_change == 100.0
    assert comp.bytes_change == 100.0
    assert comp.improved is False


def test_compare_zero_baseline():
    comp = compare_benchmarks(_r("B", 100, 0, 0), _r("B", 100, 0, 3))
    assert math.isinf(comp.alloc_change) and comp.alloc_change > 0
    assert math.isnan(comp.bytes_change)
    assert comp.improved is False


def test_generate_report_mixed():
    before = {"BenchmarkA": _r("BenchmarkA", 1000, 512, 10), "BenchmarkB": _r("BenchmarkB", 100, 64, 2)}
    after = {"BenchmarkA": _r("BenchmarkA", 500, 256, 5), "BenchmarkB": _r("BenchmarkB", 200, 128, 4)}
    report = generate_report(before, after, "aaaaaaaaaa", "bbbbbbbbbb")
    assert [c.name for c in report.comparisons] == ["BenchmarkA", "BenchmarkB"]
    assert report.summary.total_benchmarks == 2
    assert report.summary.improved_count == 1
    assert report.summary.regressed_count == 1
    assert report.summary.unchanged_count == 0
    assert report.summary.avg_speedup == -25.0
    assert report.summary.avg_memory_reduction == 25.0
    assert report.overall_improved is False
    assert report.commit_before == "aaaaaaaaaa"


def test_generate_report_new_benchmark_added():
    before = {"BenchmarkExisting": _r("BenchmarkExisting", 100, 64, 2)}
    after = {
        "BenchmarkExisting": _r("BenchmarkExisting", 100, 64, 2),
        "BenchmarkNew": _r("BenchmarkNew", 50, 32, 1),
    }
    report = generate_report(before, after, "", "")
    assert [c.name for c in report.comparisons] == ["BenchmarkExisting"]
    assert report.summary.unchanged_count == 1
    assert report.summary.improved_count == 0
    assert report.summary.regressed_count == 0


def test_generate_report_benchmark_removed():
    before = {"BenchmarkOld": _r("BenchmarkOld", 100, 64, 2), "BenchmarkKeep": _r("BenchmarkKeep", 200, 128, 4)}
    after = {"BenchmarkKeep": _r("BenchmarkKeep", 200, 128, 4)}
    report = generate_report(before, after, "", "")
    assert [c.name for c in report.comparisons] == ["BenchmarkKeep"]
    assert report.summary.total_benchmarks == 1
    assert report.overall_improved is False


def test_generate_report_improvement_only():
    report = generate_report({"X": _r("X", 1000, 512, 10)}, {"X": _r("X", 500, 256, 5)}, "", "")
    assert report.overall_improved is True
    assert report.summary.avg_speedup == 50.0


def _sample_report():
    before = {"BenchmarkStringConcat": _r("BenchmarkStringConcat", 1000, 512, 10),
              "BenchmarkMap": _r("BenchmarkMap", 100, 64, 2)}
    after = {"BenchmarkStringConcat": _r("BenchmarkStringConcat", 500, 256, 5),
             "BenchmarkMap": _r("BenchmarkMap", 200, 128, 4)}
    report = generate_report(before, after, "0123456789abcdef", "fedcba9876543210")
    report.timestamp = datetime(2024, 1, 2, 3, 4, 5)
    return report


def test_markdown_report():
    text = generate_markdown_report(_sample_report())
    assert text.startswith("# Benchmark Comparison Report\n\n")
    assert "**Date:** 2024-01-02 03:04:05\n" in text
    assert "**Before:** `01234567`\n" in text
    assert "**After:** `fedcba98`\n\n" in text
    assert "⚠️ **Performance Regression Detected**" in text
    assert "- Total Benchmarks: 2\n" in text
    assert "| ✅ BenchmarkStringConcat | 1000.00 | 500.00 | +50.00% | -50.00% |\n" in text
    assert "| ❌ BenchmarkMap | 100.00 | 200.00 | -100.00% | +100.00% |\n" in text
    assert "| BenchmarkMap | 2 | 4 | 64 B | 128 B |\n" in text


def test_markdown_without_comparisons_has_no_memory_section():
    text = generate_markdown_report(ComparisonReport(commit_before="a" * 8, commit_after="b" * 8))
    assert "## Memory Analysis" not in text
    assert "- Total Benchmarks: 0\n" in text


def test_to_dict_keys():
    data = _sample_report().to_dict()
    assert data["summary"]["total_benchmarks"] == 2
    assert data["comparisons"][0]["speedup_percent"] == 50.0
    assert data["comparisons"][0]["before"]["ns_per_op"] == 1000
    assert "mb_per_sec" not in data["comparisons"][0]["before"]
    assert data["commit_before"] == "0123456789abcdef"


def test_save_report_json(tmp_path):
    path = BenchmarkComparator(tmp_path).save_report(_sample_report(), "json")
    assert path.parent == tmp_path
    assert path.name.startswith("benchmark_report_") and path.suffix == ".json"
    assert json.loads(path.read_text(encoding="utf-8"))["summary"]["improved_count"] == 1


def test_save_report_markdown(tmp_path):
    path = BenchmarkComparator(tmp_path).save_report(_sample_report(), "md")
    assert path.read_text(encoding="utf-8").startswith("# Benchmark Comparison Report")


def test_save_report_unsupported(tmp_path):
    with pytest.raises(BenchmarkError, match="unsupported format: xml"):
        BenchmarkComparator(tmp_path).save_report(_sample_report(), "xml")


def test_save_report_json_rejects_infinite(tmp_path):
    report = generate_report({"B": _r("B", 100, 0, 0)}, {"B": _r("B", 100, 8, 1)}, "", "")
    with pytest.raises(BenchmarkError):
        BenchmarkComparator(tmp_path).save_report(report, "json")


def _fake_runner(go_results):
    outputs = iter(go_results)

    def fake(args, **kwargs):
        if args[0] == "git":
            return subprocess.CompletedProcess(args, 0, stdout="0123456789abcdef\n", stderr="")
        code, out, err = next(outputs)
        return subprocess.CompletedProcess(args, code, stdout=out, stderr=err)

    return fake


def test_compare_before_after_success(tmp_path):
    before = "BenchmarkX-8 100 1000 ns/op 512 B/op 10 allocs/op\n"
    after = "BenchmarkX-8 100 500 ns/op 256 B/op 5 allocs/op\n"
    applied = []
    with patch("subprocess.run", side_effect=_fake_runner([(0, before, ""), (0, after, "")])):
        report = BenchmarkComparator(tmp_path).compare_before_after(tmp_path, lambda: applied.append(1))
    assert applied == [1]
    assert report.repo_url == str(tmp_path)
    assert report.commit_before == "0123456789abcdef"
    assert report.summary.improved_count == 1
    assert report.comparisons[0].speedup_percent == 50.0
    assert len(list(tmp_path.glob("bench_before_*.txt"))) == 1
    assert len(list(tmp_path.glob("bench_after_*.txt"))) == 1


def test_compare_before_after_changes_error(tmp_path):
    def changes():
        raise ValueError("simulated error")

    with patch("subprocess.run", side_effect=_fake_runner([(0, "", "")])):
        with pytest.raises(BenchmarkError, match="failed to apply changes"):
            BenchmarkComparator(tmp_path).compare_before_after(tmp_path, changes)


def test_compare_before_after_benchmark_failure(tmp_path):
    with patch("subprocess.run", side_effect=_fake_runner([(1, "", "boom")])):
        with pytest.raises(BenchmarkError, match="failed to run before benchmarks") as info:
            BenchmarkComparator(tmp_path).compare_before_after(tmp_path, lambda: None)
    assert "boom" in str(info.value)


def test_compare_before_after_invalid_repo(tmp_path):
    with pytest.raises(BenchmarkError):
        BenchmarkComparator(tmp_path).compare_before_after(tmp_path / "nonexistent", lambda: None)


def test_current_commit_invalid_path(tmp_path):
    with pytest.raises(BenchmarkError):
        current_commit(tmp_path / "missing")


def test_current_commit_returns_stripped_hash(tmp_path):
    with patch("subprocess.run", side_effect=_fake_runner([])):
        assert current_commit(tmp_path) == "0123456789abcdef"