# aibscleaner

Tools around performance checking of Go code:

- `aibscleaner.issues` – the `Issue` record, the `Severity` enum
  (`HIGH`, `MEDIUM`, `LOW`) and the abstract `Analyzer` interface.
- `aibscleaner.config` – the configuration: built-in defaults, loading from
  YAML or JSON, and deciding which issue types are reported.
- `aibscleaner.reporter` – text and JSON reports of a list of issues.
- `aibscleaner.fixer` – which issue types count as auto-fixable, and code
  snippets that show the fix.
- `aibscleaner.profiler` – measuring a Python callable (time, traced memory,
  garbage collections) and checking the running interpreter.
- `aibscleaner.comparator` – running `go test -bench` before and after a
  change and comparing the results.
- `aibscleaner.cli` – the `aibscleaner` command.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Command line

```
aibscleaner .                  # analyze the current directory
aibscleaner ./src              # analyze a directory
aibscleaner main.go            # analyze a single file
aibscleaner --json .           # JSON output
aibscleaner --compact .        # one line per issue: file:line:col: ...
aibscleaner --config my.yaml . # use a specific configuration file
aibscleaner -v .               # say what is being analyzed
aibscleaner init               # write .aibscleaner.yaml with the defaults
aibscleaner version            # print the version
aibscleaner list-analyzers     # list the analyzer names and descriptions
```

Compact output is also chosen when the environment variable
`AIBSCLEANER_COMPACT` is `1`. The command exits with status 1 when any HIGH
severity issue is found, when the target does not exist, or when the
configuration cannot be loaded.

The walk visits files in sorted order and skips what `paths.exclude` names:
entries ending in `.go` are file suffixes (such as `_test.go`), all others
are directory names.

## What the package does not do

The package ships no analyzers. The command walks the target, collects the
`.go` files and reads them, but no checks run on them, so it always reports
that no issues were found. `list-analyzers` prints names and descriptions
only. The `Analyzer` base class (`name` property, `analyze(filename, node)`)
is there for writing checks, but the command has no way to load them.

Nor does the fixer change any file: it only tells which issue types are
marked auto-fixable and returns suggested code.

## Configuration

Without `--config`, the tool looks for `.aibscleaner.yaml`,
`.aibscleaner.yml`, `.aibscleaner.json`, `aibscleaner.yaml`,
`aibscleaner.yml` or `aibscleaner.json` in the current directory, then in
`~/.config/aibscleaner/`. If none is found, `default_config()` is used.
Files ending in `.json` are read as JSON, `.yaml`/`.yml` as YAML, and any
other file is tried as YAML and then JSON. Malformed files raise
`ConfigError`.

```python
from aibscleaner.config import default_config, load_config

config = load_config("")                    # search the usual locations
config.should_analyze("NESTED_LOOP")        # True: loop checks are on by default
config.should_analyze("MAGIC_NUMBER")       # always False
config.analyzer_config("syncpool").enabled  # names are matched case-insensitively
data = default_config().to_dict()           # plain mapping, as written by `init`
```

By default the nil-pointer, race-condition, error-handling,
CPU-optimization and test-coverage groups are off; issue types that belong
to no group are always reported.

## Reporting

```python
import sys
from aibscleaner.issues import Issue, Severity
from aibscleaner.reporter import count_by_severity, new_reporter

issues = [Issue(file="main.go", line=3, column=1, type="NESTED_LOOP",
                severity=Severity.HIGH, message="Nested loop")]
new_reporter("text").write(issues, sys.stdout)  # grouped by severity
new_reporter("json").write(issues)              # standard output by default
count_by_severity(issues, Severity.HIGH)        # 1
```

`aibscleaner.cli` also offers `format_human(issues, compact)`,
`format_json(target, issues)`, `tally_severities(issues)` and
`analyzer_group(issue_type)`.

## Benchmark comparison

Needs `git` and `go` on the path.

```python
from aibscleaner.comparator import BenchmarkComparator, generate_markdown_report

comparator = BenchmarkComparator("/tmp/bench")   # raw output and reports go here
report = comparator.compare_before_after("path/to/repo", apply_changes)
print(generate_markdown_report(report))
comparator.save_report(report, "json")           # or "md" / "markdown"
```

A benchmark counts as improved when it is more than 5% faster or uses more
than 5% fewer bytes per operation, and as regressed when it is more than 5%
slower. `parse_benchmark_output`, `compare_benchmarks` and `generate_report`
work on their own with text captured from `go test -bench`. Failures raise
`BenchmarkError`.

## Fix hints

```python
from aibscleaner.fixer import can_auto_fix, get_fix_suggestion, get_fixable_count

can_auto_fix("DEFER_IN_LOOP")   # True
get_fixable_count(issues)
get_fix_suggestion(issue)       # snippet, or the issue's own suggestion
```

## Runtime profiling

```python
import sys
from aibscleaner.profiler import Profiler

profiler = Profiler()
metrics = profiler.profile_func("work", work)
for issue in metrics.issues():       # SLOW_FUNCTION, HIGH_MEMORY_ALLOCATION, ...
    print(issue.type, issue.message)

profiler.start_cpu_profile()
work()
profiler.stop_cpu_profile(sys.stdout)  # call counts and cumulative times
```

`Profiler.analyze_runtime()` checks the interpreter as a whole, and
`monitor_runtime(interval, callback, stop_event)` repeats that check every
`interval` seconds until the event is set.