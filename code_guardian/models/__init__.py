"""Data models for code analysis."""

from .issue import (
    Severity,
    Issue,
    SecurityVulnerability,
    ScoreReport,
    score_band,
    severity_counts,
)
from .analysis import (
    QualityAssessment,
    Explanation,
    RefactorResult,
    PerfectCodeResult,
    DocumentationResult,
    SecurityReport,
    TaskOutcome,
    AnalysisResult,
    AnalysisRecord,
    GateDecision,
)
from .responses import (
    IssueSeverity,
    VulnerabilitySeverity,
    AIResponse,
    IssuePayload,
    VulnerabilityPayload,
    QualityResponse,
    ExplanationResponse,
    RefactorResponse,
    PerfectCodeResponse,
    DocumentationResponse,
    SecurityResponse,
    RESPONSE_MODELS,
)

__all__ = [
    "Severity",
    "Issue",
    "SecurityVulnerability",
    "ScoreReport",
    "score_band",
    "severity_counts",
    "QualityAssessment",
    "Explanation",
    "RefactorResult",
    "PerfectCodeResult",
    "DocumentationResult",
    "SecurityReport",
    "TaskOutcome",
    "AnalysisResult",
    "AnalysisRecord",
    "GateDecision",
    "IssueSeverity",
    "VulnerabilitySeverity",
    "AIResponse",
    "IssuePayload",
    "VulnerabilityPayload",
    "QualityResponse",
    "ExplanationResponse",
    "RefactorResponse",
    "PerfectCodeResponse",
    "DocumentationResponse",
    "SecurityResponse",
    "RESPONSE_MODELS",
]
