import gc
import io
import threading

import pytest

from aibscleaner.issues import Severity
from aibscleaner.profiler import Profiler, RuntimeMetrics, monitor_runtime


def test_quiet_metrics_have_no_issues():
    metrics = RuntimeMetrics(function_name="fast", duration=0.01, memory_allocated=1024, gc_runs=0)
    assert metrics.issues() == []


def test_slow_function_issue():
    metrics = RuntimeMetrics(function_name="slow", duration=0.15)
    issues = metrics.issues()
    assert [i.type for i in issues] == ["SLOW_FUNCTION"]
    assert issues[0].severity is Severity.MEDIUM
    assert issues[0].message == "Function slow took 150ms to execute"


def test_high_memory_issue():
    metrics = RuntimeMetrics(function_name="hungry", memory_allocated=10 * 1024 * 1024 + 1)
    issues = metrics.issues()
    assert [i.type for i in issues] == ["HIGH_MEMORY_ALLOCATION"]
    assert issues[0].message == f"Function hungry allocated {10 * 1024 * 1024 + 1} bytes"


def test_memory_at_threshold_is_fine():
    metrics = RuntimeMetrics(function_name="edge", memory_allocated=10 * 1024 * 1024)
    assert metrics.issues() == []


def test_gc_runs_issue():
    metrics = RuntimeMetrics(function_name="churn", gc_runs=2)
    issues = metrics.issues()
    assert [i.type for i in issues] == ["GC_DURING_EXECUTION"]
    assert issues[0].severity is Severity.LOW
    assert issues[0].message == "Function churn triggered 2 GC runs"


def test_all_issues_in_order():
    metrics = RuntimeMetrics(function_name="bad", duration=2.0, memory_allocated=20 * 1024 * 1024, gc_runs=1)
    assert [i.type for i in metrics.issues()] == [
        "SLOW_FUNCTION",
        "HIGH_MEMORY_ALLOCATION",
        "GC_DURING_EXECUTION",
    ]


def test_profile_func_calls_once_and_measures():
    calls = []
    metrics = Profiler(1.0).profile_func("work", lambda: calls.append(1))
    assert calls == [1]
    assert metrics.function_name == "work"
    assert metrics.duration >= 0
    assert metrics.goroutines >= 1
    assert metrics.heap_objects > 0


def test_profile_func_counts_collections():
    metrics = Profiler(1.0).profile_func("collect", gc.collect)
    assert metrics.gc_runs >= 1


def test_profile_func_propagates_errors():
    def boom():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        Profiler(1.0).profile_func("boom", boom)


def test_analyze_runtime_reports_known_types():
    issues = Profiler(1.0).analyze_runtime()
    known = {"HIGH_ALLOCATION_RATE", "HIGH_HEAP_USAGE", "EXCESSIVE_GOROUTINES", "HIGH_GC_PRESSURE"}
    assert all(issue.type in known for issue in issues)


def test_cpu_profile_writes_stats():
    profiler = Profiler(1.0)
    profiler.start_cpu_profile()
    sum(range(1000))
    out = io.StringIO()
    profiler.stop_cpu_profile(out)
    assert "function calls" in out.getvalue()


def test_cpu_profile_cannot_start_twice():
    profiler = Profiler(1.0)
    profiler.start_cpu_profile()
    try:
        with pytest.raises(RuntimeError):
            profiler.start_cpu_profile()
    finally:
        profiler.stop_cpu_profile(io.StringIO())


def test_stop_without_start_writes_nothing():
    out = io.StringIO()
    Profiler(1.0).stop_cpu_profile(out)
    assert out.getvalue() == ""


def test_monitor_stops_when_event_set():
    received = []
    stop = threading.Event()
    stop.set()
    monitor_runtime(0.01, received.append, stop)
    assert received == []


def test_monitor_without_callback_returns():
    stop = threading.Event()
    assert monitor_runtime(0.01, None, stop) is None
    assert not stop.is_set()