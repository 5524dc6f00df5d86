"""Core types shared by all analyzers: severities, issues and the analyzer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """How serious a reported issue is."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass
class Issue:
    """A single problem found in a source file."""

    file: str = ""
    line: int = 0
    column: int = 0
    type: str = ""
    severity: Severity | str = ""
    message: str = ""
    suggestion: str = ""
    code: str = ""
    offset: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the issue as a JSON-ready mapping."""
        severity = self.severity.value if isinstance(self.severity, Severity) else self.severity
        return {
            "File": self.file,
            "Line": self.line,
            "Column": self.column,
            "Position": {
                "Filename": self.file,
                "Offset": self.offset,
                "Line": self.line,
                "Column": self.column,
            },
            "Type": self.type,
            "Severity": severity,
            "Message": self.message,
            "Suggestion": self.suggestion,
            "Code": self.code,
        }


class Analyzer(ABC):
    """Interface every analyzer implements."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The analyzer's display name."""

    @abstractmethod
    def analyze(self, filename: str, node: Any) -> list[Issue]:
        """Inspect a parsed file and return the issues found in it."""