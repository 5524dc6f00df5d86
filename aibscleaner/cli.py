"""Command-line interface: walk a target, run the analyzers and print the results."""

from __future__ import annotations

import argparse
import json
import logging
import os
import stat
import sys
from collections import Counter
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

import yaml

from aibscleaner.config import Config, ConfigError, default_config, load_config
from aibscleaner.issues import Analyzer, Issue, Severity

VERSION = "1.0.0"
DEFAULT_CONFIG_FILE = ".aibscleaner.yaml"
COMPACT_ENV = "AIBSCLEANER_COMPACT"

log = logging.getLogger(__name__)

# Analyzers run by the command; each receives a file's path and its source text.
_ANALYZERS: tuple[Analyzer, ...] = ()

_ICONS = {Severity.HIGH: "🔴", Severity.MEDIUM: "🟡", Severity.LOW: "🟢"}


@dataclass(frozen=True)
class AnalyzerGroup:
    """A category of issue types shown together in human-readable output."""

    name: str
    icon: str
    types: tuple[str, ...] = ()


ANALYZER_GROUPS: tuple[AnalyzerGroup, ...] = (
    AnalyzerGroup(
        "AI Bullshit Detection",
        "🤖",
        (
            "AI_BULLSHIT_CONCURRENCY", "AI_REFLECTION_OVERKILL", "AI_PATTERN_ABUSE",
            "AI_ENTERPRISE_HELLO_WORLD", "AI_CAPTAIN_OBVIOUS", "AI_OVERENGINEERED_SIMPLE",
            "AI_COMMENT", "AI_COMPLEXITY", "AI_VARIABLE", "AI_ERROR_HANDLING",
            "AI_STRUCTURE", "AI_REPETITION", "AI_FACTORY_SIMPLE", "AI_REDUNDANT_ELSE",
        ),
    ),
    AnalyzerGroup(
        "Memory & GC",
        "💾",
        (
            "MEMORY_LEAK", "GLOBAL_VAR", "LARGE_ALLOCATION", "HIGH_GC_PRESSURE",
            "FREQUENT_ALLOCATION", "LARGE_HEAP_ALLOC", "POINTER_HEAVY_STRUCT",
            "SLICE_CAPACITY", "SLICE_COPY", "SLICE_APPEND", "SLICE_RANGE_COPY",
            "MAP_CAPACITY", "MAP_CLEAR", "INTERFACE_ALLOCATION", "EMPTY_INTERFACE",
        ),
    ),
    AnalyzerGroup(
        "Concurrency & Race Conditions",
        "🔄",
        (
            "RACE_CONDITION", "RACE_CONDITION_GLOBAL", "UNSYNC_MAP_ACCESS", "RACE_CLOSURE",
            "GOROUTINE_LEAK", "UNBUFFERED_CHANNEL", "GOROUTINE_OVERHEAD", "SYNC_MUTEX_VALUE",
            "WAITGROUP_MISUSE", "RACE_IN_DEFER", "ATOMIC_MISUSE", "GOROUTINE_PER_REQUEST",
            "NO_WORKER_POOL", "UNBUFFERED_SIGNAL_CHAN", "SELECT_DEFAULT", "CHANNEL_SIZE",
            "RANGE_OVER_CHANNEL",
        ),
    ),
    AnalyzerGroup(
        "Performance Hotspots",
        "🔥",
        (
            "ALLOC_IN_LOOP", "NESTED_LOOP", "STRING_CONCAT_IN_LOOP", "APPEND_IN_LOOP",
            "DEFER_IN_LOOP", "REGEX_IN_LOOP", "TIME_IN_LOOP", "SQL_IN_LOOP", "DNS_IN_LOOP",
            "REFLECTION_IN_LOOP", "CPU_INTENSIVE_LOOP", "UNNECESSARY_COPY",
            "BOUNDS_CHECK_ELIMINATION", "INEFFICIENT_ALGORITHM", "CACHE_UNFRIENDLY",
        ),
    ),
    AnalyzerGroup(
        "Defer Optimization",
        "⏰",
        (
            "DEFER_IN_SHORT_FUNC", "DEFER_OVERHEAD", "UNNECESSARY_DEFER", "DEFER_AT_END",
            "MULTIPLE_DEFERS", "DEFER_IN_HOT_PATH", "DEFER_LARGE_CAPTURE",
            "UNNECESSARY_MUTEX_DEFER", "MISSING_DEFER_UNLOCK", "MISSING_DEFER_CLOSE",
        ),
    ),
    AnalyzerGroup("String Operations", "📝", ("STRING_CONCAT", "STRING_BUILDER")),
    AnalyzerGroup("Reflection & Interfaces", "🔍", ("REFLECTION", "INTERFACE_POLLUTION")),
    AnalyzerGroup("Time & Regex", "⏱️", ("TIME_AFTER_LEAK", "TIME_FORMAT", "REGEX_COMPILE")),
    AnalyzerGroup(
        "Network & HTTP",
        "🌐",
        (
            "HTTP_NO_TIMEOUT", "HTTP_NO_CLOSE", "HTTP_DEFAULT_CLIENT", "HTTP_NO_CONTEXT",
            "KEEPALIVE_MISSING", "CONNECTION_POOL", "NO_REUSE_CONNECTION",
        ),
    ),
    AnalyzerGroup("Database", "🗄️", ("NO_PREPARED_STMT", "MISSING_DB_CLOSE")),
    AnalyzerGroup(
        "Error Handling",
        "⚠️",
        (
            "ERROR_IGNORED", "ERROR_CHECK_MISSING", "PANIC_RECOVER", "ERROR_STRING_FORMAT",
            "NIL_CHECK", "PANIC_RISK", "NIL_RETURN", "PANIC_IN_LIBRARY",
        ),
    ),
    AnalyzerGroup(
        "Code Quality",
        "🎯",
        (
            "HIGH_COMPLEXITY", "LONG_FUNCTION", "TOO_MANY_PARAMS", "DUPLICATE_CODE",
            "UNUSED_PARAM", "TODO_FIXME", "SINGLE_LETTER_VAR", "MAGIC_NUMBER",
        ),
    ),
    AnalyzerGroup(
        "Context & API",
        "⚡",
        (
            "CONTEXT_BACKGROUND", "CONTEXT_VALUE", "MISSING_CONTEXT_CANCEL", "CONTEXT_LEAK",
            "CONTEXT_IN_STRUCT", "CONTEXT_NOT_FIRST", "SYNC_POOL_MISUSE", "CONTEXT_MISUSE",
            "WG_MISUSE",
        ),
    ),
    AnalyzerGroup(
        "Optimization Opportunities",
        "💡",
        ("SYNCPOOL_OPPORTUNITY", "SYNCPOOL_PUT_MISSING", "SYNCPOOL_TYPE_ASSERT"),
    ),
    AnalyzerGroup(
        "Test Coverage",
        "🧪",
        (
            "MISSING_TEST", "MISSING_EXAMPLE", "MISSING_BENCHMARK", "UNTESTED_EXPORT",
            "UNTESTED_TYPE", "UNTESTED_ERROR", "UNTESTED_CONCURRENCY", "UNTESTED_IO_FUNCTION",
        ),
    ),
    AnalyzerGroup("Other", "📌", ()),
)

_OTHER_GROUP = "Other"

_ANALYZER_DESCRIPTIONS: tuple[tuple[str, str], ...] = (
    ("LoopAnalyzer", "Detects inefficient loops and allocations"),
    ("StringConcatAnalyzer", "Finds inefficient string concatenations"),
    ("DeferAnalyzer", "Identifies defer misuse and overhead"),
    ("SliceAnalyzer", "Detects slice capacity and append issues"),
    ("MapAnalyzer", "Finds map initialization problems"),
    ("ReflectionAnalyzer", "Warns about reflection performance impact"),
    ("GoroutineAnalyzer", "Detects goroutine leaks and misuse"),
    ("InterfaceAnalyzer", "Finds unnecessary interface allocations"),
    ("RegexAnalyzer", "Identifies regex compilation in hot paths"),
    ("TimeAnalyzer", "Detects time.After leaks and inefficiencies"),
    ("ComplexityAnalyzer", "Measures cyclomatic complexity"),
    ("MemoryLeakAnalyzer", "Finds potential memory leaks"),
    ("DatabaseAnalyzer", "Detects database performance issues"),
    ("AIBullshitDetector", "Identifies AI-generated anti-patterns"),
    ("ContextAnalyzer", "Finds context misuse and leaks"),
    ("ChannelAnalyzer", "Detects channel deadlocks and inefficiencies"),
    ("RaceConditionAnalyzer", "Identifies potential race conditions"),
    ("ErrorHandlingAnalyzer", "Finds error handling issues"),
    ("HTTPClientAnalyzer", "Detects HTTP client problems"),
    ("GCPressureAnalyzer", "Identifies high GC pressure patterns"),
    ("ConcurrencyPatternsAnalyzer", "Finds concurrency anti-patterns"),
    ("CPUOptimizationAnalyzer", "Detects CPU-intensive operations"),
    ("NetworkPatternsAnalyzer", "Finds network performance issues"),
    ("SyncPoolAnalyzer", "Suggests sync.Pool optimizations"),
)


def severity_icon(severity: Severity | str) -> str:
    """Return the icon shown next to an issue of this severity."""
    return _ICONS.get(severity, "⚪")


def analyzer_group(issue_type: str) -> str:
    """Return the name of the group an issue type is shown under."""
    for group in ANALYZER_GROUPS:
        if issue_type in group.types:
            return group.name
    return _OTHER_GROUP


def tally_severities(issues: Iterable[Issue]) -> tuple[int, int, int]:
    """Count issues as (high, medium, low)."""
    counts = Counter(issue.severity for issue in issues)
    return counts[Severity.HIGH], counts[Severity.MEDIUM], counts[Severity.LOW]


def _is_excluded(path: str, is_dir: bool, excludes: Sequence[str]) -> bool:
    for exclude in excludes:
        if exclude.endswith(".go"):
            if not is_dir and path.endswith(exclude):
                return True
        elif is_dir:
            if os.path.basename(path) == exclude:
                return True
        elif f"{os.sep}{exclude}{os.sep}" in path:
            return True
    return False


def _walk(path: str, mode: int, excludes: Sequence[str]) -> Iterator[str]:
    is_dir = stat.S_ISDIR(mode)
    if _is_excluded(path, is_dir, excludes):
        return
    if not is_dir:
        if path.endswith(".go"):
            yield path
        return
    with os.scandir(path) as scan:
        entries = sorted(scan, key=lambda entry: entry.name)
    for entry in entries:
        child = os.path.normpath(os.path.join(path, entry.name))
        yield from _walk(child, entry.stat(follow_symlinks=False).st_mode, excludes)


def collect_go_files(target: str | os.PathLike[str], config: Config) -> list[str]:
    """List the Go files under target in lexical walk order, honouring path exclusions."""
    root = os.fspath(target)
    return list(_walk(root, os.lstat(root).st_mode, config.paths.exclude))


def _analyze_file(path: str, config: Config, analyzers: Sequence[Analyzer]) -> list[Issue]:
    try:
        source = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.error("Error parsing %s: %s", path, exc)
        return []
    return [
        issue
        for analyzer in analyzers
        for issue in analyzer.analyze(path, source)
        if config.should_analyze(issue.type)
    ]


def _analyze_target(target: str, config: Config, analyzers: Sequence[Analyzer]) -> list[Issue]:
    return [
        issue
        for path in collect_go_files(target, config)
        for issue in _analyze_file(path, config, analyzers)
    ]


def format_json(target: str, issues: Sequence[Issue]) -> str:
    """Render the results as the JSON document printed by --json."""
    issues = list(issues)
    high, medium, low = tally_severities(issues)
    file_stats = Counter(issue.file for issue in issues)
    document = {
        "target": target,
        "summary": {
            "total_issues": len(issues),
            "high": high,
            "medium": medium,
            "low": low,
        },
        "issues": [issue.to_dict() for issue in issues] or None,
        "file_stats": dict(sorted(file_stats.items())),
    }
    return json.dumps(document, indent=2, ensure_ascii=False)


def format_human(issues: Sequence[Issue], compact: bool = False) -> str:
    """Render the results for people: grouped by category, or one line per issue."""
    if not issues:
        return "✅ No performance issues found!\n"

    parts = [f"\n🚨 Found {len(issues)} performance issues:\n\n"]
    if compact:
        parts.extend(
            f"{issue.file}:{issue.line}:{issue.column}: {severity_icon(issue.severity)} "
            f"[{issue.type}] {issue.message} - {issue.suggestion}\n"
            for issue in issues
        )
    else:
        grouped: dict[str, list[Issue]] = {}
        for issue in issues:
            grouped.setdefault(analyzer_group(issue.type), []).append(issue)
        for group in ANALYZER_GROUPS:
            members = grouped.get(group.name)
            if not members:
                continue
            parts.append(f"{group.icon} {group.name} ({len(members)} issues):\n")
            parts.append("─" * 50 + "\n")
            for issue in members:
                parts.append(
                    f"  {severity_icon(issue.severity)} {issue.file}:{issue.line}:{issue.column} "
                    f"[{issue.type}]\n"
                )
                parts.append(f"     {issue.message}\n")
                if issue.suggestion:
                    parts.append(f"     💡 {issue.suggestion}\n")
            parts.append("\n")

    high, medium, low = tally_severities(issues)
    parts.append(f"📊 Summary: {high} HIGH, {medium} MEDIUM, {low} LOW\n")
    return "".join(parts)


def create_default_config(path: str | os.PathLike[str] = DEFAULT_CONFIG_FILE) -> Path:
    """Write the default configuration as YAML and return where it went."""
    destination = Path(path)
    data = yaml.safe_dump(default_config().to_dict(), sort_keys=False, allow_unicode=True)
    destination.write_text(data, encoding="utf-8")
    return destination


def list_analyzers() -> str:
    """Return the listing of every analyzer and what it detects."""
    lines = ["Available Analyzers:\n", "====================\n"]
    lines.extend(f"• {name:<30} {description}\n" for name, description in _ANALYZER_DESCRIPTIONS)
    return "".join(lines)


def _cmd_init(args: argparse.Namespace) -> int:
    try:
        path = create_default_config(DEFAULT_CONFIG_FILE)
    except OSError as exc:
        print(f"Failed to write config file: {exc}", file=sys.stderr)
        return 1
    print(f"✅ Created default configuration file: {path}")
    print("📝 Edit this file to customize your analysis settings")
    print("")
    print("Example usage:")
    print(f"  aibscleaner --config={DEFAULT_CONFIG_FILE} .")
    return 0


def _cmd_version(args: argparse.Namespace) -> int:
    print(f"AiBsCleaner version {VERSION}")
    print("Stop AI bullshit, write performant Go!")
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    sys.stdout.write(list_analyzers())
    return 0


_COMMANDS: dict[str, Callable[[argparse.Namespace], int]] = {
    "init": _cmd_init,
    "version": _cmd_version,
    "list-analyzers": _cmd_list,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aibscleaner",
        description=(
            "AiBsCleaner - Stop AI bullshit, write performant Go. "
            "Detects performance issues, anti-patterns and AI-generated bullshit code."
        ),
        epilog=(
            "commands: init (create default configuration file), "
            "version (print version information), list-analyzers (list all available analyzers)"
        ),
    )
    parser.add_argument("args", nargs="*", metavar="path", help="file or directory to analyze")
    parser.add_argument("-j", "--json", action="store_true", help="Output results in JSON format")
    parser.add_argument("-c", "--config", default="", help="Path to configuration file")
    parser.add_argument("--compact", action="store_true", help="Compact IDE-friendly output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    parser = _build_parser()
    args = parser.parse_intermixed_args(argv)

    if args.args and args.args[0] in _COMMANDS:
        return _COMMANDS[args.args[0]](args)
    if len(args.args) > 1:
        parser.error(f"accepts at most 1 arg(s), received {len(args.args)}")

    target = args.args[0] if args.args else "."
    if not os.path.exists(target):
        print(f"Path {target} does not exist", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Failed to load config: {exc}", file=sys.stderr)
        return 1

    if not args.json and args.verbose:
        print(f"🔍 Analyzing Go code in {target} for performance issues...")

    try:
        issues = _analyze_target(target, config, _ANALYZERS)
    except OSError as exc:
        print(f"Error analyzing target: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(format_json(target, issues))
    else:
        compact = args.compact or os.environ.get(COMPACT_ENV) == "1"
        sys.stdout.write(format_human(issues, compact))

    high, _, _ = tally_severities(issues)
    return 1 if high > 0 else 0


if __name__ == "__main__":
    sys.exit(main())