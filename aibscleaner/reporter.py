"""Text and JSON reporters for analysis results."""

from __future__ import annotations

import json
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TextIO

from aibscleaner.issues import Issue, Severity

_SEVERITY_ORDER = (Severity.HIGH, Severity.MEDIUM, Severity.LOW)

_WEIGHTS = {Severity.HIGH: 3, Severity.MEDIUM: 2, Severity.LOW: 1}

_ICONS = {Severity.HIGH: "🔴", Severity.MEDIUM: "🟡", Severity.LOW: "🔵"}

_COLUMN_PADDING = 2


def severity_weight(severity: Severity | str) -> int:
    """Return the sort weight of a severity; unknown severities weigh 0."""
    return _WEIGHTS.get(severity, 0)


def _severity_icon(severity: Severity | str) -> str:
    return _ICONS.get(severity, "⚪")


def count_by_severity(issues: Iterable[Issue], severity: Severity | str) -> int:
    """Count the issues that have the given severity."""
    return sum(1 for issue in issues if issue.severity == severity)


def _aligned_block(rows: Sequence[tuple[str, str]]) -> str:
    """Lay out two-column rows so the second column lines up."""
    width = max(len(first) for first, _ in rows) + _COLUMN_PADDING
    return "".join(f"{first.ljust(width)}{second}\n" for first, second in rows)


class Reporter(ABC):
    """Writes a list of issues to a stream."""

    @abstractmethod
    def write(self, issues: Sequence[Issue], stream: TextIO | None = None) -> None:
        """Write the report for the issues to the stream (standard output by default)."""


class TextReporter(Reporter):
    """Human-readable report grouped by severity."""

    def write(self, issues: Sequence[Issue], stream: TextIO | None = None) -> None:
        out = stream if stream is not None else sys.stdout
        ordered = sorted(
            issues,
            key=lambda issue: (-severity_weight(issue.severity), issue.file, issue.line),
        )

        out.write("\n🔍 Performance Analysis Results\n")
        out.write("================================\n\n")
        out.write(f"Found {len(ordered)} performance issues:\n\n")

        by_severity: dict[Severity, list[Issue]] = {severity: [] for severity in _SEVERITY_ORDER}
        for issue in ordered:
            if issue.severity in by_severity:
                by_severity[Severity(issue.severity)].append(issue)

        for severity in _SEVERITY_ORDER:
            group = by_severity[severity]
            if not group:
                continue
            out.write(f"{_severity_icon(severity)} {severity.value} SEVERITY ISSUES ({len(group)})\n")
            out.write("----------------------------------------\n")
            for issue in group:
                rows = [
                    (f"{issue.file}:{issue.line}:{issue.column}", issue.type),
                    ("", f"└─ {issue.message}"),
                ]
                if issue.suggestion:
                    rows.append(("", f"   💡 {issue.suggestion}"))
                out.write(_aligned_block(rows))
                out.write("\n")

        out.write("\n📊 Summary:\n")
        out.write(f"   High:   {len(by_severity[Severity.HIGH])} issues\n")
        out.write(f"   Medium: {len(by_severity[Severity.MEDIUM])} issues\n")
        out.write(f"   Low:    {len(by_severity[Severity.LOW])} issues\n")


class JSONReporter(Reporter):
    """Machine-readable JSON report."""

    def write(self, issues: Sequence[Issue], stream: TextIO | None = None) -> None:
        out = stream if stream is not None else sys.stdout
        document = {
            "total_issues": len(issues),
            "issues": [issue.to_dict() for issue in issues],
            "summary": {
                "high": count_by_severity(issues, Severity.HIGH),
                "medium": count_by_severity(issues, Severity.MEDIUM),
                "low": count_by_severity(issues, Severity.LOW),
            },
        }
        out.write(json.dumps(document, indent=2, ensure_ascii=False))
        out.write("\n")


def new_reporter(format: str) -> Reporter:
    """Return the reporter for a format name: "json" or anything else for text."""
    if format == "json":
        return JSONReporter()
    return TextReporter()