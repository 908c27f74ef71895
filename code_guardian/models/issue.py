"""Data models for quality issues and security findings."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class Severity(Enum):
    """Finding severity levels."""
    CRITICAL = "Critical"   # Security findings only
    HIGH = "High"           # Nested loops, syntax errors
    MEDIUM = "Medium"       # Complexity, slow lookups
    LOW = "Low"             # Length, style


@dataclass(frozen=True)
class Issue:
    """A code quality finding."""
    title: str
    detail: str
    severity: Severity

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "detail": self.detail,
            "severity": self.severity.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Issue":
        return cls(
            title=data["title"],
            detail=data["detail"],
            severity=Severity(data["severity"]),
        )


@dataclass(frozen=True)
class SecurityVulnerability:
    """A security finding tagged with a CWE identifier."""
    title: str
    detail: str
    severity: Severity
    cwe: str

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "detail": self.detail,
            "severity": self.severity.value,
            "cwe": self.cwe,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SecurityVulnerability":
        return cls(
            title=data["title"],
            detail=data["detail"],
            severity=Severity(data["severity"]),
            cwe=data["cwe"],
        )


@dataclass(frozen=True)
class ScoreReport:
    """Heuristic scorer output.

    ``score`` is in [0, 100]; 100 means nothing was found. ``vulnerabilities``
    holds the security findings the scorer can see locally, kept apart from
    the quality ``issues``.
    """
    score: int
    issues: Tuple[Issue, ...] = ()
    vulnerabilities: Tuple[SecurityVulnerability, ...] = ()
    syntax_error: bool = False

    # Raw metrics behind the score
    line_count: int = 0
    keyword_count: int = 0
    nested_loops: int = 0

    @property
    def is_clean(self) -> bool:
        """True when no issue or vulnerability was found."""
        return not self.issues and not self.vulnerabilities

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "issues": [issue.to_dict() for issue in self.issues],
            "securityVulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "syntaxError": self.syntax_error,
            "metrics": {
                "lines": self.line_count,
                "keywords": self.keyword_count,
                "nestedLoops": self.nested_loops,
            },
        }


def score_band(score: int) -> str:
    """Classify a debt score: >= 80 good, >= 50 fair, anything lower poor."""
    if score >= 80:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


def severity_counts(findings: List) -> dict:
    """Count findings per severity value."""
    counts = {severity.value: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity.value] += 1
    return counts
