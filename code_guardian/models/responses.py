"""Response schemas for the JSON answers the AI service returns.

Each schema validates the untrusted object and converts it into the frozen
task output types of ``models.analysis`` via ``to_value()``.
"""

import json
import math
from typing import Any, ClassVar, List, Literal, get_args, get_origin

from pydantic import BaseModel, Field, field_validator

from .analysis import (
    QualityAssessment,
    Explanation,
    RefactorResult,
    PerfectCodeResult,
    DocumentationResult,
    SecurityReport,
)
from .issue import Issue, SecurityVulnerability, Severity


IssueSeverity = Literal["High", "Medium", "Low"]
VulnerabilitySeverity = Literal["Critical", "High", "Medium", "Low"]


class AIResponse(BaseModel):
    """Base schema: a named JSON object that renders its own format hint."""

    shape_name: ClassVar[str] = "response"

    def to_value(self) -> Any:
        return self

    @classmethod
    def describe(cls) -> str:
        """Render the JSON skeleton used as a format hint in prompts."""
        return json.dumps(_skeleton(cls), indent=2).replace('"<', "").replace('>"', "")


class IssuePayload(BaseModel):
    title: str
    detail: str
    severity: IssueSeverity

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be empty")
        return v

    def to_issue(self) -> Issue:
        return Issue(title=self.title, detail=self.detail, severity=Severity(self.severity))


class VulnerabilityPayload(BaseModel):
    title: str
    detail: str
    severity: VulnerabilitySeverity
    cwe: str

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be empty")
        return v

    def to_vulnerability(self) -> SecurityVulnerability:
        return SecurityVulnerability(
            title=self.title,
            detail=self.detail,
            severity=Severity(self.severity),
            cwe=self.cwe,
        )


class QualityResponse(AIResponse):
    shape_name: ClassVar[str] = "quality"

    score: int = Field(..., description="integer 0-100")
    issues: List[IssuePayload]

    @field_validator("score", mode="before")
    @classmethod
    def round_and_clamp(cls, v: Any) -> int:
        # bool is an int subclass; reject it explicitly
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("score must be a number")
        if isinstance(v, float) and not math.isfinite(v):
            raise ValueError("score must be a finite number")
        return max(0, min(100, int(round(v))))

    def to_value(self) -> QualityAssessment:
        return QualityAssessment(
            score=self.score,
            issues=tuple(issue.to_issue() for issue in self.issues),
        )


class ExplanationResponse(AIResponse):
    shape_name: ClassVar[str] = "explanation"

    explanation: str

    def to_value(self) -> Explanation:
        return Explanation(explanation=self.explanation)


class RefactorResponse(AIResponse):
    shape_name: ClassVar[str] = "refactor"

    refactored_code: str = Field(..., alias="refactoredCode")
    explanation: str

    def to_value(self) -> RefactorResult:
        return RefactorResult(refactored_code=self.refactored_code, explanation=self.explanation)


class PerfectCodeResponse(AIResponse):
    shape_name: ClassVar[str] = "perfect_code"

    perfect_code: str = Field(..., alias="perfectCode")
    explanation: str

    def to_value(self) -> PerfectCodeResult:
        return PerfectCodeResult(perfect_code=self.perfect_code, explanation=self.explanation)


class DocumentationResponse(AIResponse):
    shape_name: ClassVar[str] = "documentation"

    documented_code: str = Field(..., alias="documentedCode")
    explanation: str

    def to_value(self) -> DocumentationResult:
        return DocumentationResult(documented_code=self.documented_code, explanation=self.explanation)


class SecurityResponse(AIResponse):
    shape_name: ClassVar[str] = "security"

    vulnerabilities: List[VulnerabilityPayload]

    def to_value(self) -> SecurityReport:
        return SecurityReport(
            vulnerabilities=tuple(v.to_vulnerability() for v in self.vulnerabilities)
        )


RESPONSE_MODELS = {
    model.shape_name: model
    for model in (
        QualityResponse,
        ExplanationResponse,
        RefactorResponse,
        SecurityResponse,
        DocumentationResponse,
        PerfectCodeResponse,
    )
}


def _skeleton(model) -> dict:
    skeleton = {}
    for name, info in model.model_fields.items():
        key = info.alias or name
        annotation = info.annotation
        origin = get_origin(annotation)
        if origin is list:
            skeleton[key] = [_skeleton(get_args(annotation)[0])]
        elif origin is Literal:
            skeleton[key] = " | ".join(get_args(annotation))
        elif info.description:
            skeleton[key] = f"<{info.description}>"
        elif annotation is int:
            skeleton[key] = "<integer>"
        else:
            skeleton[key] = "string"
    return skeleton
