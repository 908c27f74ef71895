"""Metrics calculation utilities for analysis history."""

from dataclasses import dataclass
from typing import List, Optional

from ..models import AnalysisRecord, score_band, severity_counts


@dataclass
class HistoryMetrics:
    """Statistics over a user's past analyses."""

    # Basic counts
    total_analyses: int = 0
    total_issues: int = 0
    total_vulnerabilities: int = 0

    # Score stats
    avg_score: float = 0.0
    min_score: int = 100
    max_score: int = 0
    latest_score: Optional[int] = None

    # Severity breakdown (issues and vulnerabilities together)
    critical_count: int = 0
    high_count: int = 0
    medium_count: int = 0
    low_count: int = 0

    # Score bands
    good_count: int = 0
    fair_count: int = 0
    poor_count: int = 0

    # Share of analyses that would pass the commit gate
    pass_rate: float = 0.0


def calculate_metrics(
    records: List[AnalysisRecord],
    commit_threshold: int = 70,
) -> HistoryMetrics:
    """
    Calculate history metrics.

    Args:
        records: Analyses, newest first (as returned by the history store)
        commit_threshold: Score needed to pass the commit gate

    Returns:
        HistoryMetrics object with calculated statistics
    """
    if not records:
        return HistoryMetrics()

    scores = [r.technical_debt_score for r in records]

    findings = []
    total_issues = 0
    total_vulns = 0
    for record in records:
        total_issues += len(record.issues)
        total_vulns += len(record.security_vulnerabilities)
        findings.extend(record.issues)
        findings.extend(record.security_vulnerabilities)
    severity = severity_counts(findings)

    bands = {"good": 0, "fair": 0, "poor": 0}
    for score in scores:
        bands[score_band(score)] += 1

    passed = len([s for s in scores if s >= commit_threshold])

    return HistoryMetrics(
        total_analyses=len(records),
        total_issues=total_issues,
        total_vulnerabilities=total_vulns,
        avg_score=sum(scores) / len(scores),
        min_score=min(scores),
        max_score=max(scores),
        latest_score=scores[0],
        critical_count=severity["Critical"],
        high_count=severity["High"],
        medium_count=severity["Medium"],
        low_count=severity["Low"],
        good_count=bands["good"],
        fair_count=bands["fair"],
        poor_count=bands["poor"],
        pass_rate=passed / len(scores),
    )


def format_metrics_report(metrics: HistoryMetrics) -> str:
    """
    Format metrics as a human-readable report.

    Args:
        metrics: HistoryMetrics object

    Returns:
        Formatted report string
    """
    if metrics.total_analyses == 0:
        return "## Analysis History\n\nNo analyses recorded yet."

    lines = [
        "## Analysis History",
        "",
        "### Summary",
        f"- Analyses: {metrics.total_analyses}",
        f"- Issues found: {metrics.total_issues}",
        f"- Security vulnerabilities: {metrics.total_vulnerabilities}",
        "",
        "### Technical Debt Score",
        f"- Latest: {metrics.latest_score}",
        f"- Average: {metrics.avg_score:.1f}",
        f"- Range: {metrics.min_score} - {metrics.max_score}",
        f"- Commit gate pass rate: {metrics.pass_rate:.1%}",
        "",
        "### Score Bands",
        f"- Good (80+): {metrics.good_count}",
        f"- Fair (50-79): {metrics.fair_count}",
        f"- Poor (<50): {metrics.poor_count}",
        "",
        "### Severity Breakdown",
        f"- Critical: {metrics.critical_count}",
        f"- High: {metrics.high_count}",
        f"- Medium: {metrics.medium_count}",
        f"- Low: {metrics.low_count}",
    ]

    return "\n".join(lines)
