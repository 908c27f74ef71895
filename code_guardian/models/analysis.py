"""Data models for AI task outputs and assembled analyses."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .issue import Issue, SecurityVulnerability


# --- AI task outputs (one per response shape) ---

@dataclass(frozen=True)
class QualityAssessment:
    """The model's own quality verdict. Its score never replaces the heuristic one."""
    score: int
    issues: Tuple[Issue, ...] = ()


@dataclass(frozen=True)
class Explanation:
    explanation: str


@dataclass(frozen=True)
class RefactorResult:
    refactored_code: str
    explanation: str


@dataclass(frozen=True)
class PerfectCodeResult:
    perfect_code: str
    explanation: str


@dataclass(frozen=True)
class DocumentationResult:
    documented_code: str
    explanation: str


@dataclass(frozen=True)
class SecurityReport:
    vulnerabilities: Tuple[SecurityVulnerability, ...] = ()


@dataclass
class TaskOutcome:
    """Result of one AI task: a value on success, a failure description otherwise."""
    task: str
    status: str = "success"          # success, error
    value: Any = None
    error: Optional[str] = None
    failure_kind: Optional[str] = None  # transport, decode

    @property
    def ok(self) -> bool:
        return self.status == "success"


# --- Assembled analysis ---

@dataclass(frozen=True)
class AnalysisResult:
    """Everything produced for one submission. Built once, never mutated."""
    score: int
    issues: Tuple[Issue, ...]
    explanation: str
    security_vulnerabilities: Tuple[SecurityVulnerability, ...] = ()
    syntax_error: bool = False
    ai_score: Optional[int] = None
    ai_issues: Tuple[Issue, ...] = ()
    perfect_code: Optional[str] = None
    perfect_code_explanation: Optional[str] = None
    refactored_code: Optional[str] = None
    failures: Dict[str, str] = field(default_factory=dict)  # task -> reason
    analysis_id: Optional[str] = None

    @property
    def is_partial(self) -> bool:
        """True when at least one AI sub-call failed."""
        return bool(self.failures)

    def to_dict(self) -> dict:
        data = {
            "score": self.score,
            "issues": [issue.to_dict() for issue in self.issues],
            "explanation": self.explanation,
            "securityVulnerabilities": [v.to_dict() for v in self.security_vulnerabilities],
            "syntaxError": self.syntax_error,
        }
        optional = {
            "aiScore": self.ai_score,
            "perfectCode": self.perfect_code,
            "perfectCodeExplanation": self.perfect_code_explanation,
            "refactoredCode": self.refactored_code,
            "analysisId": self.analysis_id,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        if self.ai_issues:
            data["aiIssues"] = [issue.to_dict() for issue in self.ai_issues]
        if self.failures:
            data["failures"] = dict(self.failures)
        return data


@dataclass(frozen=True)
class AnalysisRecord:
    """A persisted analysis as stored in the history."""
    analysis_id: str
    user_id: str
    timestamp: datetime
    technical_debt_score: int
    issues: Tuple[Issue, ...]
    explanation: str
    security_vulnerabilities: Tuple[SecurityVulnerability, ...]
    code: str

    def to_dict(self) -> dict:
        return {
            "analysisId": self.analysis_id,
            "userId": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "technicalDebtScore": self.technical_debt_score,
            "issues": [issue.to_dict() for issue in self.issues],
            "explanation": self.explanation,
            "securityVulnerabilities": [v.to_dict() for v in self.security_vulnerabilities],
            "code": self.code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisRecord":
        return cls(
            analysis_id=data["analysisId"],
            user_id=data["userId"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            technical_debt_score=int(data["technicalDebtScore"]),
            issues=tuple(Issue.from_dict(i) for i in data.get("issues", [])),
            explanation=data.get("explanation", ""),
            security_vulnerabilities=tuple(
                SecurityVulnerability.from_dict(v)
                for v in data.get("securityVulnerabilities", [])
            ),
            code=data.get("code", ""),
        )


@dataclass
class GateDecision:
    """Decision on whether a commit may go through."""
    approved: bool
    reason: str
    score: int
    threshold: int
    source: str = "<stdin>"
    blocking_issues: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Generate human-readable summary."""
        status = "✅ ACCEPTED" if self.approved else "❌ REJECTED"
        lines = [
            f"## Commit Gate: {status}",
            "",
            f"- Source: {self.source}",
            f"- Technical Debt Score: {self.score} (threshold {self.threshold})",
            "",
            self.reason,
        ]

        if self.blocking_issues:
            lines.append("")
            lines.append("### Blocking Issues")
            for issue in self.blocking_issues:
                lines.append(f"- {issue}")

        return "\n".join(lines)
