"""Run Go benchmarks before and after a change and compare the results."""

from __future__ import annotations

import json
import math
import re
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

REGRESSION_THRESHOLD = -5.0
IMPROVEMENT_THRESHOLD = 5.0

_BENCH_COMMAND = (
    "go",
    "test",
    "-bench=.",
    "-benchmem",
    "-benchtime=10s",
    "-count=3",
    "-cpu=1,2,4",
    "-timeout=30m",
    "./...",
)

_INT_PREFIX = re.compile(r"[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class BenchmarkError(Exception):
    """Raised when benchmarks cannot be run, compared or saved."""


@dataclass
class BenchmarkResult:
    """One line of benchmark output."""

    name: str
    runs: int = 0
    ns_per_op: float = 0.0
    allocs_per_op: int = 0
    bytes_per_op: int = 0
    mb_per_sec: float = 0.0
    custom_metrics: dict[str, float] = field(default_factory=dict)


@dataclass
class Comparison:
    """The same benchmark measured before and after a change."""

    name: str
    before: BenchmarkResult
    after: BenchmarkResult
    speedup_percent: float
    alloc_change: float
    bytes_change: float
    improved: bool


@dataclass
class Summary:
    """Overall statistics of a comparison."""

    total_benchmarks: int = 0
    improved_count: int = 0
    regressed_count: int = 0
    unchanged_count: int = 0
    avg_speedup: float = 0.0
    avg_memory_reduction: float = 0.0


@dataclass
class ComparisonReport:
    """Full before/after benchmark comparison."""

    timestamp: datetime = field(default_factory=lambda: datetime.now().astimezone())
    repo_url: str = ""
    branch: str = ""
    commit_before: str = ""
    commit_after: str = ""
    comparisons: list[Comparison] = field(default_factory=list)
    overall_improved: bool = False
    summary: Summary = field(default_factory=Summary)

    def to_dict(self) -> dict[str, Any]:
        """Return the report as a JSON-ready mapping."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "repo_url": self.repo_url,
            "branch": self.branch,
            "commit_before": self.commit_before,
            "commit_after": self.commit_after,
            "comparisons": [_comparison_dict(c) for c in self.comparisons],
            "overall_improved": self.overall_improved,
            "summary": {
                "total_benchmarks": self.summary.total_benchmarks,
                "improved_count": self.summary.improved_count,
                "regressed_count": self.summary.regressed_count,
                "unchanged_count": self.summary.unchanged_count,
                "avg_speedup_percent": self.summary.avg_speedup,
                "avg_memory_reduction_percent": self.summary.avg_memory_reduction,
            },
        }


def _result_dict(result: BenchmarkResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": result.name,
        "runs": result.runs,
        "ns_per_op": result.ns_per_op,
        "allocs_per_op": result.allocs_per_op,
        "bytes_per_op": result.bytes_per_op,
    }
    if result.mb_per_sec:
        data["mb_per_sec"] = result.mb_per_sec
    if result.custom_metrics:
        data["custom_metrics"] = dict(result.custom_metrics)
    return data


def _comparison_dict(comparison: Comparison) -> dict[str, Any]:
    return {
        "name": comparison.name,
        "before": _result_dict(comparison.before),
        "after": _result_dict(comparison.after),
        "speedup_percent": comparison.speedup_percent,
        "alloc_change_percent": comparison.alloc_change,
        "bytes_change_percent": comparison.bytes_change,
        "improved": comparison.improved,
    }


def _leading_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    return int(match.group()) if match else 0


def _leading_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    return float(match.group()) if match else 0.0


def parse_benchmark_output(output: str) -> dict[str, BenchmarkResult]:
    """Parse the text printed by a benchmark run into results keyed by name."""
    results: dict[str, BenchmarkResult] = {}
    for line in output.split("\n"):
        if not line.startswith("Benchmark"):
            continue
        fields_ = line.split()
        if len(fields_) < 3:
            continue

        result = BenchmarkResult(name=fields_[0], runs=_leading_int(fields_[1]))
        for previous, item in zip([""] + fields_, fields_):
            if item.endswith("ns/op"):
                result.ns_per_op = _leading_float(item[: -len("ns/op")] or previous)
            elif item.endswith("B/op"):
                result.bytes_per_op = _leading_int(item[: -len("B/op")] or previous)
            elif item.endswith("allocs/op"):
                result.allocs_per_op = _leading_int(item[: -len("allocs/op")] or previous)
            elif item.endswith("MB/s"):
                result.mb_per_sec = _leading_float(item[: -len("MB/s")] or previous)
        results[result.name] = result
    return results


def _ratio(diff: float, base: float) -> float:
    """Divide like floating-point hardware: a zero base gives infinity or NaN."""
    if base == 0:
        if diff == 0 or math.isnan(diff):
            return math.nan
        return math.copysign(math.inf, diff)
    return diff / base


def compare_benchmarks(before: BenchmarkResult, after: BenchmarkResult) -> Comparison:
    """Compare two measurements of the same benchmark."""
    speedup = _ratio(before.ns_per_op - after.ns_per_op, before.ns_per_op) * 100
    alloc_change = _ratio(float(after.allocs_per_op - before.allocs_per_op), float(before.allocs_per_op)) * 100
    bytes_change = _ratio(float(after.bytes_per_op - before.bytes_per_op), float(before.bytes_per_op)) * 100
    return Comparison(
        name=before.name,
        before=before,
        after=after,
        speedup_percent=speedup,
        alloc_change=alloc_change,
        bytes_change=bytes_change,
        improved=speedup > IMPROVEMENT_THRESHOLD or bytes_change < -IMPROVEMENT_THRESHOLD,
    )


def generate_report(
    before: Mapping[str, BenchmarkResult],
    after: Mapping[str, BenchmarkResult],
    commit_before: str,
    commit_after: str,
) -> ComparisonReport:
    """Compare every benchmark present in both runs and summarise the outcome."""
    report = ComparisonReport(commit_before=commit_before, commit_after=commit_after)
    summary = Summary()

    for name, before_result in before.items():
        after_result = after.get(name)
        if after_result is None:
            continue
        comparison = compare_benchmarks(before_result, after_result)
        report.comparisons.append(comparison)

        summary.total_benchmarks += 1
        if comparison.improved:
            summary.improved_count += 1
        elif comparison.speedup_percent < REGRESSION_THRESHOLD:
            summary.regressed_count += 1
        else:
            summary.unchanged_count += 1
        summary.avg_speedup += comparison.speedup_percent
        summary.avg_memory_reduction += comparison.bytes_change

    if summary.total_benchmarks:
        summary.avg_speedup /= summary.total_benchmarks
        summary.avg_memory_reduction /= summary.total_benchmarks

    report.summary = summary
    report.overall_improved = summary.improved_count > summary.regressed_count
    return report


def generate_markdown_report(report: ComparisonReport) -> str:
    """Render the report as Markdown."""
    lines = [
        "# Benchmark Comparison Report\n\n",
        f"**Date:** {report.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n",
        f"**Before:** `{report.commit_before[:8]}`\n",
        f"**After:** `{report.commit_after[:8]}`\n\n",
        "## Summary\n\n",
    ]
    if report.overall_improved:
        lines.append("✅ **Overall Performance Improved**\n\n")
    else:
        lines.append("⚠️ **Performance Regression Detected**\n\n")

    summary = report.summary
    lines += [
        f"- Total Benchmarks: {summary.total_benchmarks}\n",
        f"- Improved: {summary.improved_count}\n",
        f"- Regressed: {summary.regressed_count}\n",
        f"- Unchanged: {summary.unchanged_count}\n",
        f"- Average Speedup: {summary.avg_speedup:.2f}%\n",
        f"- Average Memory Change: {summary.avg_memory_reduction:.2f}%\n\n",
        "## Detailed Results\n\n",
        "| Benchmark | Before (ns/op) | After (ns/op) | Speedup | Memory Change |\n",
        "|-----------|---------------|--------------|---------|---------------|\n",
    ]
    for comp in report.comparisons:
        if comp.improved:
            mark = "✅"
        elif comp.speedup_percent < REGRESSION_THRESHOLD:
            mark = "❌"
        else:
            mark = "➖"
        lines.append(
            f"| {mark} {comp.name} | {comp.before.ns_per_op:.2f} | {comp.after.ns_per_op:.2f} "
            f"| {comp.speedup_percent:+.2f}% | {comp.bytes_change:+.2f}% |\n"
        )

    if report.comparisons:
        lines += [
            "\n## Memory Analysis\n\n",
            "| Benchmark | Allocs Before | Allocs After | Bytes Before | Bytes After |\n",
            "|-----------|--------------|--------------|--------------|-------------|\n",
        ]
        for comp in report.comparisons:
            lines.append(
                f"| {comp.name} | {comp.before.allocs_per_op} | {comp.after.allocs_per_op} "
                f"| {comp.before.bytes_per_op} B | {comp.after.bytes_per_op} B |\n"
            )
    return "".join(lines)


def current_commit(repo_path: str | Path) -> str:
    """Return the hash of the commit checked out in repo_path."""
    try:
        completed = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise BenchmarkError(f"cannot run git: {exc}") from exc
    if completed.returncode != 0:
        raise BenchmarkError(
            f"git rev-parse failed with exit status {completed.returncode}: {completed.stderr.strip()}"
        )
    return completed.stdout.strip()


def _stamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


class BenchmarkComparator:
    """Runs benchmarks in a repository and keeps raw output and reports in work_dir."""

    def __init__(self, work_dir: str | Path = ".") -> None:
        self.work_dir = Path(work_dir)

    def compare_before_after(
        self, repo_path: str | Path, changes: Callable[[], Any]
    ) -> ComparisonReport:
        """Benchmark, apply changes, benchmark again and compare."""
        try:
            before, commit_before = self.run_benchmarks(repo_path, "before")
        except BenchmarkError as exc:
            raise BenchmarkError(f"failed to run before benchmarks: {exc}") from exc

        try:
            changes()
        except Exception as exc:
            raise BenchmarkError(f"failed to apply changes: {exc}") from exc

        try:
            after, commit_after = self.run_benchmarks(repo_path, "after")
        except BenchmarkError as exc:
            raise BenchmarkError(f"failed to run after benchmarks: {exc}") from exc

        report = generate_report(before, after, commit_before, commit_after)
        report.repo_url = str(repo_path)
        return report

    def run_benchmarks(
        self, repo_path: str | Path, tag: str
    ) -> tuple[dict[str, BenchmarkResult], str]:
        """Run every benchmark in repo_path; return the results and the commit hash."""
        commit = current_commit(repo_path)
        output_file = self.work_dir / f"bench_{tag}_{_stamp()}.txt"

        try:
            completed = subprocess.run(
                list(_BENCH_COMMAND),
                cwd=repo_path,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise BenchmarkError(f"benchmark failed: {exc}") from exc
        if completed.returncode != 0:
            raise BenchmarkError(
                f"benchmark failed: exit status {completed.returncode}\nstderr: {completed.stderr}"
            )

        try:
            output_file.write_text(completed.stdout, encoding="utf-8")
        except OSError as exc:
            raise BenchmarkError(f"cannot save benchmark output: {exc}") from exc

        return parse_benchmark_output(completed.stdout), commit

    def save_report(self, report: ComparisonReport, format: str) -> Path:
        """Write the report as "json", "md" or "markdown" and return the file's path."""
        filename = self.work_dir / f"benchmark_report_{_stamp()}.{format}"
        if format == "json":
            try:
                data = json.dumps(report.to_dict(), indent=2, ensure_ascii=False, allow_nan=False)
            except ValueError as exc:
                raise BenchmarkError(f"cannot encode report as JSON: {exc}") from exc
        elif format in ("md", "markdown"):
            data = generate_markdown_report(report)
        else:
            raise BenchmarkError(f"unsupported format: {format}")

        try:
            filename.write_text(data, encoding="utf-8")
        except OSError as exc:
            raise BenchmarkError(f"cannot write report: {exc}") from exc
        return filename