"""Knowledge of which issues can be fixed automatically and how to fix them."""

from __future__ import annotations

from collections.abc import Iterable

from aibscleaner.issues import Issue

_AUTO_FIXABLE: dict[str, bool] = {
    "AI_GOROUTINE_OVERKILL": True,
    "AI_UNNECESSARY_REFLECTION": True,
    "AI_OVER_ENGINEERING": False,  # needs manual refactoring
    "AI_UNNECESSARY_INTERFACE": False,  # needs a design decision
    "STRING_CONCAT_IN_LOOP": True,
    "DEFER_IN_LOOP": True,
    "APPEND_WITHOUT_CAPACITY": True,
    "TIME_NOW_IN_LOOP": True,
    "JSON_MARSHAL_IN_LOOP": True,
    "REGEX_COMPILE_IN_LOOP": True,
    "UNCHECKED_ERROR": True,
    "MISSING_DEFER": True,
    "INEFFICIENT_RANGE": True,
}

_SUGGESTIONS: dict[str, str] = {
    "AI_GOROUTINE_OVERKILL": """// Remove goroutine and channel:
result := performOperation()""",
    "AI_UNNECESSARY_REFLECTION": """// Replace reflection with direct operation:
value := x // instead of reflect.ValueOf(x).Interface()""",
    "STRING_CONCAT_IN_LOOP": """// Use strings.Builder:
var builder strings.Builder
for _, item := range items {
    builder.WriteString(item)
}
result := builder.String()""",
    "DEFER_IN_LOOP": """// Wrap in anonymous function:
for _, item := range items {
    func() {
        file := open(item)
        defer file.Close()
        // process
    }()
}""",
    "TIME_NOW_IN_LOOP": """// Move outside loop:
start := time.Now()
for i := 0; i < n; i++ {
    // use start instead of time.Now()
}""",
}


def can_auto_fix(issue_type: str) -> bool:
    """Tell whether issues of this type can be fixed automatically."""
    return _AUTO_FIXABLE.get(issue_type, False)


def get_fixable_count(issues: Iterable[Issue]) -> int:
    """Count the issues that can be fixed automatically."""
    return sum(1 for issue in issues if can_auto_fix(issue.type))


def get_fix_suggestion(issue: Issue) -> str:
    """Return a code snippet showing the fix, or the issue's own suggestion."""
    return _SUGGESTIONS.get(issue.type, issue.suggestion)