"""Commit gate: reject code whose technical debt score is below a threshold."""

from pathlib import Path
from typing import List, Optional

from ..config import ScoringPolicy, DEFAULT_POLICY
from ..models import GateDecision, ScoreReport, Severity
from ..utils import get_logger
from .scorer import score_code


class CommitGate:
    """
    Local-only gate run before a commit.

    The decision uses the heuristic score alone, so it needs no AI service
    and always gives the same answer for the same code.
    """

    def __init__(self, threshold: int = 70, policy: Optional[ScoringPolicy] = None):
        self.threshold = threshold
        self.policy = policy or DEFAULT_POLICY
        self.logger = get_logger()

    def evaluate(self, code: str, source: str = "<stdin>") -> GateDecision:
        """Score ``code`` and decide."""
        return self.evaluate_report(score_code(code, self.policy), source)

    def evaluate_report(self, report: ScoreReport, source: str = "<stdin>") -> GateDecision:
        """Decide from an existing score report."""
        blocking = [
            f"{issue.title} ({issue.severity.value})"
            for issue in report.issues
            if issue.severity == Severity.HIGH
        ]
        blocking.extend(
            f"{vuln.title} ({vuln.cwe}, {vuln.severity.value})"
            for vuln in report.vulnerabilities
            if vuln.severity in (Severity.CRITICAL, Severity.HIGH)
        )

        if report.score >= self.threshold:
            approved = True
            reason = "Code quality meets the standards."
        else:
            approved = False
            reason = f"Score of {report.score} is below threshold of {self.threshold}."

        self.logger.debug(f"Gate {source}: score={report.score} approved={approved}")

        return GateDecision(
            approved=approved,
            reason=reason,
            score=report.score,
            threshold=self.threshold,
            source=source,
            blocking_issues=blocking if not approved else [],
        )

    def evaluate_files(self, paths: List[Path]) -> List[GateDecision]:
        """Evaluate each file; unreadable files are reported as rejected."""
        decisions = []
        for path in paths:
            try:
                code = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self.logger.warning(f"Cannot read {path}: {e}")
                decisions.append(GateDecision(
                    approved=False,
                    reason=f"Could not read file: {e}",
                    score=0,
                    threshold=self.threshold,
                    source=str(path),
                ))
                continue
            decisions.append(self.evaluate(code, source=str(path)))
        return decisions
