"""Runtime profiling of the current interpreter and of single function calls."""

from __future__ import annotations

import gc
import sys
import threading
import time
import tracemalloc
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TextIO

from aibscleaner.issues import Issue, Severity

_SLOW_FUNCTION_SECONDS = 0.1
_HIGH_MEMORY_BYTES = 10 * 1024 * 1024
_HIGH_ALLOCATION_COUNT = 1_000_000
_HIGH_HEAP_PERCENT = 80
_EXCESSIVE_THREADS = 10_000
_GC_COUNT_THRESHOLD = 100
_GC_PAUSE_NS_THRESHOLD = 1_000_000


def _format_fraction(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{str(rest).rjust(digits, '0').rstrip('0')}"


def _format_duration(seconds: float) -> str:
    """Format a duration the way human-friendly runtime tools do (e.g. 150ms, 1m2.5s)."""
    ns = round(seconds * 1e9)
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns == 0:
        return "0s"
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_format_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_format_fraction(ns, 1_000_000)}ms"
    hours, ns = divmod(ns, 3_600 * 1_000_000_000)
    minutes, ns = divmod(ns, 60 * 1_000_000_000)
    text = f"{_format_fraction(ns, 1_000_000_000)}s"
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text


class _GcPauseTracker:
    """Records how many collections ran and how long they paused the interpreter."""

    def __init__(self) -> None:
        self.count = 0
        self.total_ns = 0
        self._started: int | None = None
        self._installed = False
        self._lock = threading.Lock()

    def install(self) -> None:
        with self._lock:
            if not self._installed:
                gc.callbacks.append(self._callback)
                self._installed = True

    def _callback(self, phase: str, info: dict[str, Any]) -> None:
        if phase == "start":
            self._started = time.perf_counter_ns()
        elif phase == "stop" and self._started is not None:
            self.total_ns += time.perf_counter_ns() - self._started
            self.count += 1
            self._started = None


_gc_tracker = _GcPauseTracker()


def _gc_totals() -> tuple[int, int]:
    stats = gc.get_stats()
    return sum(s["collections"] for s in stats), sum(s["collected"] for s in stats)


class _CallProfiler:
    """Counts calls and cumulative time per function through the interpreter's profile hook."""

    def __init__(self) -> None:
        self.stats: dict[tuple[str, int, str], list[int]] = {}
        self._stack: list[tuple[tuple[str, int, str], int]] = []
        self._previous: Any = None

    @staticmethod
    def _key(frame: Any, event: str, arg: Any) -> tuple[str, int, str]:
        if event == "c_call":
            name = getattr(arg, "__qualname__", None) or getattr(arg, "__name__", repr(arg))
            return ("~", 0, f"<built-in {name}>")
        code = frame.f_code
        return (code.co_filename, code.co_firstlineno, code.co_name)

    def _hook(self, frame: Any, event: str, arg: Any) -> None:
        if event in ("call", "c_call"):
            self._stack.append((self._key(frame, event, arg), time.perf_counter_ns()))
        elif event in ("return", "c_return", "c_exception") and self._stack:
            key, started = self._stack.pop()
            entry = self.stats.setdefault(key, [0, 0])
            entry[0] += 1
            entry[1] += time.perf_counter_ns() - started

    def enable(self) -> None:
        self._previous = sys.getprofile()
        sys.setprofile(self._hook)

    def disable(self) -> None:
        sys.setprofile(self._previous)
        self._previous = None
        self._stack.clear()

    def write(self, stream: TextIO) -> None:
        total_calls = sum(calls for calls, _ in self.stats.values())
        stream.write(f"{total_calls} function calls\n\n")
        stream.write(f"{'ncalls':>10}  {'cumtime':>10}  {'percall':>10}  function\n")
        ordered = sorted(self.stats.items(), key=lambda item: item[1][1], reverse=True)
        for (filename, line, name), (calls, total_ns) in ordered:
            cumulative = total_ns / 1e9
            per_call = cumulative / calls if calls else 0.0
            location = name if filename == "~" else f"{filename}:{line}({name})"
            stream.write(f"{calls:>10}  {cumulative:>10.6f}  {per_call:>10.6f}  {location}\n")


@dataclass
class RuntimeMetrics:
    """Measurements taken around one function call; durations are in seconds."""

    function_name: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    duration: float = 0.0
    memory_allocated: int = 0
    memory_freed: int = 0
    gc_runs: int = 0
    heap_alloc: int = 0
    heap_objects: int = 0
    goroutines: int = 0

    def issues(self) -> list[Issue]:
        """Turn the measurements into issues when they cross the thresholds."""
        found: list[Issue] = []
        if self.duration > _SLOW_FUNCTION_SECONDS:
            found.append(
                Issue(
                    type="SLOW_FUNCTION",
                    severity=Severity.MEDIUM,
                    message=f"Function {self.function_name} took {_format_duration(self.duration)} to execute",
                    suggestion="Profile the function to identify bottlenecks",
                )
            )
        if self.memory_allocated > _HIGH_MEMORY_BYTES:
            found.append(
                Issue(
                    type="HIGH_MEMORY_ALLOCATION",
                    severity=Severity.MEDIUM,
                    message=f"Function {self.function_name} allocated {self.memory_allocated} bytes",
                    suggestion="Consider pre-allocating memory or using object pools",
                )
            )
        if self.gc_runs > 0:
            found.append(
                Issue(
                    type="GC_DURING_EXECUTION",
                    severity=Severity.LOW,
                    message=f"Function {self.function_name} triggered {self.gc_runs} GC runs",
                    suggestion="Reduce allocations to minimize GC overhead",
                )
            )
        return found


class Profiler:
    """Measures function calls and inspects the interpreter's runtime state."""

    def __init__(self, duration: float = 1.0) -> None:
        self.duration = duration
        self.sample_rate = 100
        self._cpu_profile: _CallProfiler | None = None
        _gc_tracker.install()

    def profile_func(self, name: str, fn: Callable[[], Any]) -> RuntimeMetrics:
        """Call fn once and return what it cost."""
        metrics = RuntimeMetrics(function_name=name, start_time=datetime.now())
        started_tracing = not tracemalloc.is_tracing()
        if started_tracing:
            tracemalloc.start()
        try:
            memory_before = tracemalloc.get_traced_memory()[0]
            collections_before, collected_before = _gc_totals()

            start = time.perf_counter()
            fn()
            metrics.duration = time.perf_counter() - start

            memory_after = tracemalloc.get_traced_memory()[0]
            collections_after, collected_after = _gc_totals()
        finally:
            if started_tracing:
                tracemalloc.stop()

        metrics.memory_allocated = max(0, memory_after - memory_before)
        metrics.memory_freed = max(0, collected_after - collected_before)
        metrics.gc_runs = max(0, collections_after - collections_before)
        metrics.heap_alloc = memory_after
        metrics.heap_objects = len(gc.get_objects())
        metrics.goroutines = threading.active_count()
        return metrics

    def analyze_runtime(self) -> list[Issue]:
        """Inspect the running interpreter and report anything worrying."""
        found: list[Issue] = []

        allocated_blocks = sys.getallocatedblocks()
        if allocated_blocks > _HIGH_ALLOCATION_COUNT:
            found.append(
                Issue(
                    type="HIGH_ALLOCATION_RATE",
                    severity=Severity.HIGH,
                    message=f"High memory allocation rate: {allocated_blocks} allocations",
                    suggestion="Consider object pooling or reducing allocations",
                )
            )

        if tracemalloc.is_tracing():
            current, peak = tracemalloc.get_traced_memory()
            if peak > 0:
                usage = current / peak * 100
                if usage > _HIGH_HEAP_PERCENT:
                    found.append(
                        Issue(
                            type="HIGH_HEAP_USAGE",
                            severity=Severity.HIGH,
                            message=f"Heap usage at {usage:.1f}%",
                            suggestion="Memory usage is high, consider optimizing memory consumption",
                        )
                    )

        threads = threading.active_count()
        if threads > _EXCESSIVE_THREADS:
            found.append(
                Issue(
                    type="EXCESSIVE_GOROUTINES",
                    severity=Severity.HIGH,
                    message=f"Excessive threads: {threads}",
                    suggestion="Use worker pools to limit thread creation",
                )
            )

        count, total_ns = _gc_tracker.count, _gc_tracker.total_ns
        if count > _GC_COUNT_THRESHOLD and total_ns // count > _GC_PAUSE_NS_THRESHOLD:
            average_ms = total_ns // count // 1_000_000
            found.append(
                Issue(
                    type="HIGH_GC_PRESSURE",
                    severity=Severity.MEDIUM,
                    message=f"High GC pause time: {average_ms}ms average",
                    suggestion="Reduce allocations and consider tuning gc thresholds",
                )
            )
        return found

    def start_cpu_profile(self) -> None:
        """Start CPU profiling; raises RuntimeError if it is already running."""
        if self._cpu_profile is not None:
            raise RuntimeError("cpu profiling already in use")
        profile = _CallProfiler()
        profile.enable()
        self._cpu_profile = profile

    def stop_cpu_profile(self, stream: TextIO) -> None:
        """Stop CPU profiling and write the statistics to stream; no-op if not running."""
        profile = self._cpu_profile
        if profile is None:
            return
        profile.disable()
        self._cpu_profile = None
        profile.write(stream)


def monitor_runtime(
    interval: float,
    callback: Callable[[list[Issue]], Any] | None,
    stop_event: threading.Event | None = None,
) -> None:
    """Check the runtime every interval seconds, passing any issues to callback, until stopped."""
    if callback is None:
        return
    stop = stop_event if stop_event is not None else threading.Event()
    profiler = Profiler(interval)
    while not stop.wait(interval):
        issues = profiler.analyze_runtime()
        if issues:
            callback(issues)