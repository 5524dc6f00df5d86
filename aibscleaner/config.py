"""Analyzer configuration: defaults, loading from YAML or JSON, and issue filtering."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

CONFIG_LOCATIONS = (
    ".aibscleaner.yaml",
    ".aibscleaner.yml",
    ".aibscleaner.json",
    "aibscleaner.yaml",
    "aibscleaner.yml",
    "aibscleaner.json",
)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""


@dataclass
class AnalyzerConfig:
    """Settings for a single analyzer."""

    enabled: bool = False
    severity: str = ""
    exclude: list[str] = field(default_factory=list)


@dataclass
class AnalyzersConfig:
    """Per-analyzer settings."""

    loop: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    string_concat: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    defer: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    defer_optimization: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    slice: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    map: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    reflection: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    goroutine: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    interface: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    regex: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    time: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    complexity: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    memory_leak: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    database: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    nil_ptr: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    code_smell: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    api_misuse: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    ai_bullshit: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    context: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    channel: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    race_condition: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    error_handling: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    http_client: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    gc_pressure: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    concurrency_patterns: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    cpu_optimization: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    network_patterns: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    sync_pool: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    test_coverage: AnalyzerConfig = field(default_factory=AnalyzerConfig)


@dataclass
class Thresholds:
    """Numeric limits used by various checks."""

    max_loop_depth: int = 0
    max_complexity: int = 0
    max_function_length: int = 0
    max_parameters: int = 0
    max_return_values: int = 0


@dataclass
class PathsConfig:
    """Paths to exclude from, or restrict, the analysis."""

    exclude: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    """How results are reported."""

    format: str = ""
    show_context: bool = False
    max_issues: int = 0


_ANALYZER_ISSUE_TYPES: dict[str, tuple[str, ...]] = {
    "loop": ("ALLOC_IN_LOOP", "NESTED_LOOP", "STRING_CONCAT_IN_LOOP", "APPEND_IN_LOOP"),
    "string_concat": ("STRING_CONCAT", "STRING_BUILDER"),
    "defer": ("DEFER_IN_LOOP", "DEFER_IN_SHORT_FUNC", "DEFER_OVERHEAD"),
    "defer_optimization": (
        "UNNECESSARY_DEFER", "DEFER_AT_END", "MULTIPLE_DEFERS", "DEFER_IN_HOT_PATH",
        "DEFER_LARGE_CAPTURE", "UNNECESSARY_MUTEX_DEFER", "MISSING_DEFER_UNLOCK",
        "MISSING_DEFER_CLOSE",
    ),
    "slice": ("SLICE_CAPACITY", "SLICE_COPY", "SLICE_APPEND", "SLICE_RANGE_COPY"),
    "map": ("MAP_CAPACITY", "MAP_CLEAR", "MAP_WITHOUT_SIZE_HINT"),
    "reflection": ("REFLECTION", "REFLECTION_IN_LOOP"),
    "goroutine": (
        "GOROUTINE_LEAK", "UNBUFFERED_CHANNEL", "GOROUTINE_OVERHEAD",
        "UNBUFFERED_CHANNEL_IN_GOROUTINE", "GOROUTINE_WITHOUT_RECOVER",
    ),
    "interface": ("INTERFACE_ALLOCATION", "EMPTY_INTERFACE", "INTERFACE_POLLUTION"),
    "regex": ("REGEX_IN_LOOP", "REGEX_COMPILE"),
    "time": ("TIME_AFTER_LEAK", "TIME_FORMAT", "TIME_IN_LOOP"),
    "complexity": ("HIGH_COMPLEXITY",),
    "memory_leak": ("MEMORY_LEAK", "GLOBAL_VAR", "LARGE_ALLOCATION"),
    "database": ("SQL_IN_LOOP", "NO_PREPARED_STMT", "MISSING_DB_CLOSE"),
    "nil_ptr": (
        "NIL_CHECK", "PANIC_RISK", "NIL_RETURN", "PANIC_IN_LIBRARY",
        "POTENTIAL_NIL_DEREF", "POTENTIAL_NIL_INDEX", "RANGE_OVER_NIL", "NIL_METHOD_CALL",
        "UNCHECKED_PARAM",
    ),
    "code_smell": (
        "LONG_FUNCTION", "TOO_MANY_PARAMS", "DUPLICATE_CODE", "UNUSED_PARAM", "TODO_FIXME",
        "SINGLE_LETTER_VAR", "ARROW_ANTIPATTERN", "HARDCODED_CONFIG",
        "CONSOLE_LOG_DEBUGGING", "UNTESTED_COMPLEX_FUNCTION",
    ),
    "api_misuse": ("SYNC_POOL_MISUSE", "CONTEXT_MISUSE", "WG_MISUSE"),
    "ai_bullshit": (
        "AI_BULLSHIT_CONCURRENCY", "AI_REFLECTION_OVERKILL", "AI_PATTERN_ABUSE",
        "AI_ENTERPRISE_HELLO_WORLD", "AI_CAPTAIN_OBVIOUS", "AI_OVERENGINEERED_SIMPLE",
    ),
    "context": (
        "CONTEXT_BACKGROUND", "CONTEXT_VALUE", "MISSING_CONTEXT_CANCEL", "CONTEXT_LEAK",
        "CONTEXT_IN_STRUCT", "CONTEXT_NOT_FIRST",
    ),
    "channel": ("UNBUFFERED_SIGNAL_CHAN", "SELECT_DEFAULT", "CHANNEL_SIZE", "RANGE_OVER_CHANNEL"),
    "race_condition": ("RACE_CONDITION", "RACE_CONDITION_GLOBAL", "UNSYNC_MAP_ACCESS", "RACE_CLOSURE"),
    "error_handling": ("ERROR_IGNORED", "ERROR_CHECK_MISSING", "PANIC_RECOVER", "ERROR_STRING_FORMAT"),
    "http_client": ("HTTP_NO_TIMEOUT", "HTTP_NO_CLOSE", "HTTP_DEFAULT_CLIENT", "HTTP_NO_CONTEXT"),
    "gc_pressure": ("HIGH_GC_PRESSURE", "FREQUENT_ALLOCATION", "LARGE_HEAP_ALLOC", "POINTER_HEAVY_STRUCT"),
    "concurrency_patterns": (
        "SYNC_MUTEX_VALUE", "WAITGROUP_MISUSE", "RACE_IN_DEFER", "ATOMIC_MISUSE",
        "GOROUTINE_PER_REQUEST", "NO_WORKER_POOL",
    ),
    "cpu_optimization": (
        "CPU_INTENSIVE_LOOP", "UNNECESSARY_COPY", "BOUNDS_CHECK_ELIMINATION",
        "INEFFICIENT_ALGORITHM", "CACHE_UNFRIENDLY", "HIGH_COMPLEXITY_O2_EXPENSIVE",
        "PREVENTS_INLINING", "EXPENSIVE_OP_IN_HOT_PATH", "MODULO_POWER_OF_TWO",
    ),
    "network_patterns": ("KEEPALIVE_MISSING", "CONNECTION_POOL", "DNS_IN_LOOP", "NO_REUSE_CONNECTION"),
    "sync_pool": ("SYNCPOOL_OPPORTUNITY", "SYNCPOOL_PUT_MISSING", "SYNCPOOL_TYPE_ASSERT"),
    "test_coverage": (
        "MISSING_TEST", "MISSING_EXAMPLE", "MISSING_BENCHMARK", "UNTESTED_EXPORT",
        "UNTESTED_TYPE", "UNTESTED_ERROR", "UNTESTED_CONCURRENCY", "UNTESTED_IO_FUNCTION",
    ),
}

_ISSUE_TYPE_TO_ANALYZER: dict[str, str] = {
    issue_type: analyzer
    for analyzer, issue_types in _ANALYZER_ISSUE_TYPES.items()
    for issue_type in issue_types
}

# Issue types that are always suppressed as too noisy.
_ALWAYS_DISABLED = frozenset({"MAGIC_NUMBER"})

_DISABLED_BY_DEFAULT = frozenset(
    {"nil_ptr", "race_condition", "error_handling", "cpu_optimization", "test_coverage"}
)

_DEFAULT_EXCLUDES = (
    "examples",
    "vendor",
    ".git",
    "node_modules",
    "testdata",
    "test_data",
    "mocks",
    "_test.go",
)


@dataclass
class Config:
    """Full analyzer configuration."""

    analyzers: AnalyzersConfig = field(default_factory=AnalyzersConfig)
    thresholds: Thresholds = field(default_factory=Thresholds)
    paths: PathsConfig = field(default_factory=PathsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def should_analyze(self, issue_type: str) -> bool:
        """Tell whether issues of this type are to be reported."""
        if issue_type in _ALWAYS_DISABLED:
            return False
        analyzer = _ISSUE_TYPE_TO_ANALYZER.get(issue_type)
        if analyzer is None:
            return True
        return getattr(self.analyzers, analyzer).enabled

    def analyzer_config(self, analyzer_name: str) -> AnalyzerConfig:
        """Return a copy of the settings for the named analyzer (case-insensitive)."""
        wanted = analyzer_name.lower()
        for f in fields(AnalyzersConfig):
            if f.name.replace("_", "") == wanted:
                current = getattr(self.analyzers, f.name)
                return replace(current, exclude=list(current.exclude))
        return AnalyzerConfig(enabled=True)

    def to_dict(self) -> dict[str, Any]:
        """Return the configuration as a plain mapping for YAML or JSON output."""
        analyzers = {}
        for f in fields(AnalyzersConfig):
            cfg: AnalyzerConfig = getattr(self.analyzers, f.name)
            entry: dict[str, Any] = {"enabled": cfg.enabled}
            if cfg.severity:
                entry["severity"] = cfg.severity
            if cfg.exclude:
                entry["exclude"] = list(cfg.exclude)
            analyzers[f.name] = entry
        return {
            "analyzers": analyzers,
            "thresholds": {f.name: getattr(self.thresholds, f.name) for f in fields(Thresholds)},
            "paths": {"exclude": list(self.paths.exclude), "include": list(self.paths.include)},
            "output": {
                "format": self.output.format,
                "show_context": self.output.show_context,
                "max_issues": self.output.max_issues,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Build a configuration from a mapping; missing keys keep zero values."""
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be a mapping")
        config = cls()

        analyzers = _section(data, "analyzers")
        for f in fields(AnalyzersConfig):
            if f.name in analyzers:
                setattr(config.analyzers, f.name, _analyzer_from(analyzers[f.name], f.name))

        thresholds = _section(data, "thresholds")
        for f in fields(Thresholds):
            if f.name in thresholds:
                setattr(config.thresholds, f.name, _int(thresholds[f.name], f"thresholds.{f.name}"))

        paths = _section(data, "paths")
        if "exclude" in paths:
            config.paths.exclude = _str_list(paths["exclude"], "paths.exclude")
        if "include" in paths:
            config.paths.include = _str_list(paths["include"], "paths.include")

        output = _section(data, "output")
        if "format" in output:
            config.output.format = _str(output["format"], "output.format")
        if "show_context" in output:
            config.output.show_context = _bool(output["show_context"], "output.show_context")
        if "max_issues" in output:
            config.output.max_issues = _int(output["max_issues"], "output.max_issues")
        return config


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key} must be a mapping")
    return value


def _bool(value: Any, where: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"{where} must be a boolean")
    return value


def _int(value: Any, where: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{where} must be an integer")
    return value


def _str(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"{where} must be a string")
    return value


def _str_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{where} must be a list")
    return [_str(item, where) for item in value]


def _analyzer_from(value: Any, name: str) -> AnalyzerConfig:
    if value is None:
        return AnalyzerConfig()
    if not isinstance(value, Mapping):
        raise ConfigError(f"analyzers.{name} must be a mapping")
    return AnalyzerConfig(
        enabled=_bool(value.get("enabled"), f"analyzers.{name}.enabled"),
        severity=_str(value.get("severity"), f"analyzers.{name}.severity"),
        exclude=_str_list(value.get("exclude"), f"analyzers.{name}.exclude"),
    )


def default_config() -> Config:
    """Return the built-in default configuration."""
    config = Config()
    for f in fields(AnalyzersConfig):
        getattr(config.analyzers, f.name).enabled = f.name not in _DISABLED_BY_DEFAULT
    config.thresholds = Thresholds(
        max_loop_depth=3,
        max_complexity=10,
        max_function_length=50,
        max_parameters=5,
        max_return_values=3,
    )
    config.paths.exclude = list(_DEFAULT_EXCLUDES)
    config.output = OutputConfig(format="text", show_context=False, max_issues=0)
    return config


def _find_config_file() -> Path | None:
    for location in CONFIG_LOCATIONS:
        candidate = Path(location)
        if candidate.exists():
            return candidate
    try:
        home = Path.home()
    except RuntimeError:
        return None
    for location in CONFIG_LOCATIONS:
        candidate = home / ".config" / "aibscleaner" / location
        if candidate.exists():
            return candidate
    return None


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"failed to parse JSON config: {exc}") from exc


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse YAML config: {exc}") from exc


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a file, searching the usual places when no path is given.

    Falls back to the defaults when no file is found.
    """
    if not path:
        found = _find_config_file()
        if found is None:
            return default_config()
        path = found
    path = Path(path)

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default_config()
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {exc}") from exc

    suffix = path.suffix
    if suffix == ".json":
        return Config.from_dict(_parse_json(text))
    if suffix in (".yaml", ".yml"):
        return Config.from_dict(_parse_yaml(text))

    try:
        return Config.from_dict(_parse_yaml(text))
    except ConfigError:
        try:
            return Config.from_dict(_parse_json(text))
        except ConfigError as exc:
            raise ConfigError(f"failed to parse config (tried YAML and JSON): {exc}") from exc