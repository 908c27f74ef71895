"""Analysis orchestration: local scoring plus AI-generated findings."""

import asyncio
import dataclasses
from typing import Dict, List, Optional, Tuple, Type

from ..config import GuardianConfig, ScoringPolicy, DEFAULT_CONFIG, DEFAULT_POLICY
from ..errors import DecodeFailure, TransportFailure, ValidationFailure
from ..models import (
    AIResponse,
    AnalysisRecord,
    AnalysisResult,
    ExplanationResponse,
    ScoreReport,
    SecurityVulnerability,
    TaskOutcome,
)
from ..tools import HistoryStore
from ..utils import get_logger
from .decoder import DecodeResult, decode_ai_response
from .scorer import score_code, summarize_report
from .tasks import TASKS, get_task


CLEAN_EXPLANATION = "Excellent work! The code appears to be clean and secure."
PLACEHOLDER_EXPLANATION = (
    "Could not generate an AI explanation. Please review the issues manually."
)
SYNTAX_ERROR_NOTE = "This code cannot execute as written: its braces are unbalanced."


class Guardian:
    """
    Runs the analysis pipeline for one snippet at a time.

    The AI client and history store are created by the host and passed in.
    The client only needs an async ``complete(prompt, system_prompt=None,
    task=None) -> str`` method that raises TransportFailure on service errors.

    Failure policy: the local score, issues and vulnerabilities are always
    kept. A failed AI security call leaves only the local vulnerabilities; a
    failed explanation call falls back to a placeholder text. Every failed
    sub-call is named in ``AnalysisResult.failures``.
    """

    def __init__(
        self,
        client,
        store: Optional[HistoryStore] = None,
        config: Optional[GuardianConfig] = None,
        policy: Optional[ScoringPolicy] = None,
    ):
        self.client = client
        self.store = store
        self.config = config or DEFAULT_CONFIG
        self.policy = policy or DEFAULT_POLICY
        self.logger = get_logger()

    # --- Building blocks ---

    def validate_code(self, code: str) -> str:
        """Reject snippets shorter than the configured minimum."""
        if not isinstance(code, str) or len(code) < self.config.min_code_length:
            raise ValidationFailure(
                f"Code must be at least {self.config.min_code_length} characters long."
            )
        return code

    def score_code(self, code: str) -> ScoreReport:
        """Validate and score locally. No AI call."""
        self.validate_code(code)
        return score_code(code, self.policy)

    async def request_explanation(self, code: str, analysis_summary: str) -> str:
        """Ask the AI service to explain the findings. Returns its raw text."""
        task = TASKS["explanation"]
        return await self.client.complete(
            task.render(code, analysis_summary),
            system_prompt=task.system_prompt,
            task=task.name,
        )

    def decode(self, raw_text: str, response_model: Type[AIResponse]) -> DecodeResult:
        return decode_ai_response(raw_text, response_model)

    async def run_task(self, name: str, code: str, analysis: str = "") -> TaskOutcome:
        """
        Run one AI task from the task table.

        Tasks that work from an analysis get the local summary when none is
        given. Transport and decode failures are returned as error outcomes.
        """
        task = get_task(name)
        if task.needs_analysis and not analysis:
            analysis = summarize_report(score_code(code, self.policy))
        try:
            raw = await self.client.complete(
                task.render(code, analysis),
                system_prompt=task.system_prompt,
                task=task.name,
            )
        except TransportFailure as e:
            self.logger.warning(f"[{name}] AI service failed: {e}")
            return TaskOutcome(task=name, status="error", error=str(e), failure_kind="transport")

        result = self.decode(raw, task.response_model)
        if not result.ok:
            self._log_decode_failure(name, result.error)
            return TaskOutcome(
                task=name,
                status="error",
                error=f"Could not read the AI response: {result.error.reason}",
                failure_kind="decode",
            )

        return TaskOutcome(task=name, value=result.value)

    # --- Entry points ---

    async def analyze(self, code: str, user_id: Optional[str] = None) -> AnalysisResult:
        """
        Full analysis of one snippet.

        Steps:
        1. Validate and score locally
        2. AI security audit (and AI quality review if enabled), concurrently
        3. AI explanation of all findings, skipped for clean code
        4. Append to history when a store and user id are given

        Raises:
            ValidationFailure: Code is too short; nothing else runs
        """
        report = self.score_code(code)
        self.logger.info(
            f"Local score: {report.score} ({len(report.issues)} issues, "
            f"{len(report.vulnerabilities)} vulnerabilities)"
        )

        failures: Dict[str, str] = {}

        calls = ["security"]
        if self.config.ai_quality_review:
            calls.append("quality")
        outcomes = await self._run_tasks(calls, code)

        vulnerabilities = list(report.vulnerabilities)
        security = outcomes["security"]
        if security.ok:
            vulnerabilities = _merge_vulnerabilities(vulnerabilities, security.value.vulnerabilities)
        else:
            failures["security"] = security.error

        ai_score = None
        ai_issues: Tuple = ()
        quality = outcomes.get("quality")
        if quality is not None:
            if quality.ok:
                ai_score = quality.value.score
                ai_issues = quality.value.issues
            else:
                failures["quality"] = quality.error

        if report.issues or vulnerabilities:
            summary = summarize_report(report, vulnerabilities=vulnerabilities)
            explanation = await self._explain(code, summary, failures)
        else:
            explanation = CLEAN_EXPLANATION

        if report.syntax_error:
            explanation = f"{SYNTAX_ERROR_NOTE}\n\n{explanation}"

        result = AnalysisResult(
            score=report.score,
            issues=report.issues,
            explanation=explanation,
            security_vulnerabilities=tuple(vulnerabilities),
            syntax_error=report.syntax_error,
            ai_score=ai_score,
            ai_issues=ai_issues,
            failures=failures,
        )

        if self.store is not None and user_id:
            result = self._persist(user_id, code, result)

        if result.failures:
            self.logger.warning(f"Analysis finished with failed steps: {', '.join(result.failures)}")
        return result

    async def refactor(self, code: str, analysis: Optional[str] = None) -> TaskOutcome:
        """Refactor code against an analysis; the local summary is used when none is given."""
        self.validate_code(code)
        return await self.run_task("refactor", code, analysis or "")

    async def perfect_code(self, code: str) -> TaskOutcome:
        self.validate_code(code)
        return await self.run_task("perfect_code", code)

    async def document(self, code: str) -> TaskOutcome:
        self.validate_code(code)
        return await self.run_task("documentation", code)

    async def security_scan(self, code: str) -> TaskOutcome:
        self.validate_code(code)
        return await self.run_task("security", code)

    def history(self, user_id: str) -> List[AnalysisRecord]:
        """Past analyses of a user, newest first."""
        if self.store is None:
            return []
        return self.store.list_for_user(user_id)

    def report(self, user_id: str, analysis_id: str) -> Optional[AnalysisRecord]:
        """One past analysis, only if it belongs to ``user_id``."""
        if self.store is None:
            return None
        return self.store.get(user_id, analysis_id)

    def analyze_sync(self, code: str, user_id: Optional[str] = None) -> AnalysisResult:
        """Synchronous wrapper for analyze."""
        return asyncio.run(self.analyze(code, user_id))

    # --- Internals ---

    async def _run_tasks(self, names: List[str], code: str) -> Dict[str, TaskOutcome]:
        if self.config.concurrent_calls and len(names) > 1:
            results = await asyncio.gather(
                *(self.run_task(name, code) for name in names),
                return_exceptions=True,
            )
        else:
            results = []
            for name in names:
                try:
                    results.append(await self.run_task(name, code))
                except Exception as e:
                    results.append(e)

        outcomes = {}
        for name, result in zip(names, results):
            # Cancellation and interrupts are not task failures
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                self.logger.error(f"[{name}] task crashed: {result}")
                result = TaskOutcome(task=name, status="error", error=str(result))
            outcomes[name] = result
        return outcomes

    async def _explain(self, code: str, summary: str, failures: Dict[str, str]) -> str:
        try:
            raw = await self.request_explanation(code, summary)
        except TransportFailure as e:
            self.logger.warning(f"[explanation] AI service failed: {e}")
            failures["explanation"] = str(e)
            return PLACEHOLDER_EXPLANATION
        except Exception as e:
            self.logger.exception(f"[explanation] AI call crashed: {e}")
            failures["explanation"] = str(e) or type(e).__name__
            return PLACEHOLDER_EXPLANATION

        try:
            return self.decode(raw, ExplanationResponse).unwrap().explanation
        except DecodeFailure as e:
            self._log_decode_failure("explanation", e)
            failures["explanation"] = f"Could not read the AI response: {e.reason}"
            return PLACEHOLDER_EXPLANATION

    def _persist(self, user_id: str, code: str, result: AnalysisResult) -> AnalysisResult:
        try:
            record = self.store.record_analysis(user_id, code, result)
        except OSError as e:
            self.logger.error(f"Failed to save analysis history: {e}")
            failures = dict(result.failures)
            failures["history"] = str(e)
            return dataclasses.replace(result, failures=failures)

        self.logger.info(f"Saved analysis {record.analysis_id} for user {user_id}")
        return dataclasses.replace(result, analysis_id=record.analysis_id)

    def _log_decode_failure(self, task: str, error: DecodeFailure):
        self.logger.warning(f"[{task}] could not decode AI response: {error.reason}")
        self.logger.debug(f"[{task}] raw AI response:\n{error.raw_text}")


def _merge_vulnerabilities(
    local: List[SecurityVulnerability],
    remote,
) -> List[SecurityVulnerability]:
    """Local findings first, then AI findings whose CWE the local scan did not report."""
    seen = {v.cwe.strip().upper() for v in local}
    merged = list(local)
    for vuln in remote:
        key = vuln.cwe.strip().upper()
        if key and key in seen:
            continue
        merged.append(vuln)
    return merged
