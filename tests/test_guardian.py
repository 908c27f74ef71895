"""Tests for analysis orchestration.

- Client-perspective behavior verification
- Given-When-Then structure
- Minimal mocking (only the AI service)
"""

import asyncio
import json

import pytest

from code_guardian.config import GuardianConfig
from code_guardian.errors import TransportFailure, ValidationFailure
from code_guardian.models import Severity
from code_guardian.pipeline import (
    Guardian,
    CLEAN_EXPLANATION,
    PLACEHOLDER_EXPLANATION,
    SYNTAX_ERROR_NOTE,
)
from code_guardian.tools import HistoryStore


NESTED_JS = """function overlap(a, b) {
  for (const x of a) {
    for (const y of b) {
      if (x === y) { count++; }
    }
  }
}"""

XSS_JS = "const out = document.getElementById('out');\nout.innerHTML = comment;"

CLEAN_JS = "const total = price * quantity;"

NO_VULNERABILITIES = '{"vulnerabilities": []}'


class FakeClient:
    """Scripted stand-in for the AI service, keyed by task name."""

    def __init__(self, responses=None, failures=(), errors=None):
        self.responses = responses or {}
        self.failures = set(failures)
        self.errors = errors or {}  # task name -> exception raised as-is
        self.calls = []
        self.prompts = {}

    async def complete(self, prompt, system_prompt=None, task=None):
        self.calls.append(task)
        self.prompts[task] = prompt
        if task in self.failures:
            raise TransportFailure("service unavailable", task=task)
        if task in self.errors:
            raise self.errors[task]
        return self.responses.get(task, "")


def explanation_reply(text):
    return "```json\n" + json.dumps({"explanation": text}) + "\n```"


class FailingStore(HistoryStore):
    def record_analysis(self, user_id, code, result, timestamp=None):
        raise OSError("disk full")


class TestValidation:
    """Short input is rejected before anything runs."""

    def test_short_code_raises_without_ai_call(self):
        """Given code under 10 characters, should raise and never call the AI service."""
        # Given
        client = FakeClient()
        guardian = Guardian(client)

        # When/Then
        with pytest.raises(ValidationFailure, match="at least 10 characters"):
            asyncio.run(guardian.analyze("x = 1"))
        assert client.calls == []

    def test_minimum_length_is_configurable(self):
        """Given a custom minimum, should validate against it."""
        # Given
        guardian = Guardian(FakeClient(), config=GuardianConfig(min_code_length=50))

        # When/Then
        with pytest.raises(ValidationFailure):
            guardian.score_code(CLEAN_JS)

    def test_task_entry_points_validate_too(self):
        """Given short code, refactor should raise before calling the AI service."""
        # Given
        client = FakeClient()
        guardian = Guardian(client)

        # When/Then
        with pytest.raises(ValidationFailure):
            asyncio.run(guardian.refactor("a"))
        assert client.calls == []


class TestAnalyze:
    """Full analysis: local score, AI security audit, AI explanation."""

    def test_clean_code_skips_explanation_call(self):
        """Given clean code, should use the fixed message without asking for an explanation."""
        # Given
        client = FakeClient({"security": NO_VULNERABILITIES})
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(CLEAN_JS))

        # Then
        assert result.score == 100
        assert result.issues == ()
        assert result.explanation == CLEAN_EXPLANATION
        assert client.calls == ["security"]
        assert not result.is_partial

    def test_issues_get_ai_explanation(self):
        """Given nested loops, should return the local score and the decoded explanation."""
        # Given
        client = FakeClient({
            "security": NO_VULNERABILITIES,
            "explanation": explanation_reply("Use a Set."),
        })
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert result.score == 75
        assert result.issues[0].title == "Nested Loops Detected"
        assert result.explanation == "Use a Set."
        assert client.calls == ["security", "explanation"]
        assert "Nested Loops Detected" in client.prompts["explanation"]

    def test_ai_vulnerabilities_are_merged_after_local_ones(self):
        """Given local XSS and AI findings, should keep local first and drop the duplicate CWE."""
        # Given
        security = json.dumps({"vulnerabilities": [
            {"title": "XSS", "detail": "innerHTML sink", "severity": "High", "cwe": "CWE-79"},
            {"title": "SQL Injection", "detail": "raw query", "severity": "Critical", "cwe": "CWE-89"},
        ]})
        client = FakeClient({"security": security, "explanation": explanation_reply("Escape it.")})
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(XSS_JS))

        # Then
        assert [v.cwe for v in result.security_vulnerabilities] == ["CWE-79", "CWE-89"]
        assert result.security_vulnerabilities[0].title == "Cross-Site Scripting (XSS)"
        assert result.security_vulnerabilities[1].severity == Severity.CRITICAL
        assert result.score == 80

    def test_ai_findings_alone_trigger_explanation(self):
        """Given locally clean code with an AI finding, should ask for an explanation."""
        # Given
        security = json.dumps({"vulnerabilities": [
            {"title": "Hard-coded secret", "detail": "API key", "severity": "Medium", "cwe": "CWE-798"},
        ]})
        client = FakeClient({"security": security, "explanation": explanation_reply("Move it.")})
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze("const apiKey = 'sk-123456';"))

        # Then
        assert result.score == 100
        assert result.explanation == "Move it."

    def test_syntax_error_note_leads_explanation(self):
        """Given unbalanced braces, should state the code cannot execute."""
        # Given
        client = FakeClient({
            "security": NO_VULNERABILITIES,
            "explanation": explanation_reply("Close the function body."),
        })
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze("function f() { return 1;"))

        # Then
        assert result.syntax_error is True
        assert result.score == 10
        assert result.explanation.startswith(SYNTAX_ERROR_NOTE)
        assert result.explanation.endswith("Close the function body.")

    def test_ai_quality_score_is_kept_separate(self):
        """Given AI quality review enabled, should keep the heuristic score as the score."""
        # Given
        quality = json.dumps({"score": 40, "issues": [
            {"title": "Naming", "detail": "Short names", "severity": "Low"},
        ]})
        client = FakeClient({
            "security": NO_VULNERABILITIES,
            "quality": quality,
            "explanation": explanation_reply("Use a Set."),
        })
        guardian = Guardian(client, config=GuardianConfig(ai_quality_review=True))

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert result.score == 75
        assert result.ai_score == 40
        assert result.ai_issues[0].title == "Naming"
        assert set(client.calls) == {"security", "quality", "explanation"}
        assert result.to_dict()["aiScore"] == 40

    def test_sequential_calls_give_same_result(self):
        """Given concurrency disabled, should still run every task."""
        # Given
        client = FakeClient({
            "security": NO_VULNERABILITIES,
            "quality": '{"score": 70, "issues": []}',
            "explanation": explanation_reply("Use a Set."),
        })
        config = GuardianConfig(ai_quality_review=True, concurrent_calls=False)
        guardian = Guardian(client, config=config)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert client.calls == ["security", "quality", "explanation"]
        assert result.ai_score == 70


class TestPartialFailures:
    """Local results survive any AI failure."""

    def test_security_transport_failure_keeps_local_findings(self):
        """Given the security call fails, should keep local vulnerabilities and record the failure."""
        # Given
        client = FakeClient(
            {"explanation": explanation_reply("Escape the comment.")},
            failures={"security"},
        )
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(XSS_JS))

        # Then
        assert [v.cwe for v in result.security_vulnerabilities] == ["CWE-79"]
        assert result.explanation == "Escape the comment."
        assert result.is_partial
        assert "security" in result.failures

    def test_explanation_transport_failure_uses_placeholder(self):
        """Given the explanation call fails, should fall back to the placeholder text."""
        # Given
        client = FakeClient({"security": NO_VULNERABILITIES}, failures={"explanation"})
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert result.score == 75
        assert result.explanation == PLACEHOLDER_EXPLANATION
        assert result.failures["explanation"] == "service unavailable"

    def test_undecodable_explanation_uses_placeholder(self):
        """Given prose without JSON, should fall back to the placeholder text."""
        # Given
        client = FakeClient({
            "security": NO_VULNERABILITIES,
            "explanation": "Sorry, I can't do that.",
        })
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert result.explanation == PLACEHOLDER_EXPLANATION
        assert result.failures["explanation"].startswith("Could not read the AI response")

    def test_every_ai_call_failing_still_returns_local_result(self):
        """Given a service that is down, should return the local analysis with failures listed."""
        # Given
        client = FakeClient(failures={"security", "explanation"})
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert result.score == 75
        assert set(result.failures) == {"security", "explanation"}
        assert result.to_dict()["failures"]["security"] == "service unavailable"

    def test_explanation_crash_uses_placeholder(self):
        """Given an explanation call that raises an unexpected error, should keep the local result."""
        # Given
        client = FakeClient(
            {"security": NO_VULNERABILITIES},
            errors={"explanation": RuntimeError("sdk blew up")},
        )
        guardian = Guardian(client)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS))

        # Then
        assert result.score == 75
        assert result.explanation == PLACEHOLDER_EXPLANATION
        assert result.failures == {"explanation": "sdk blew up"}

    @pytest.mark.parametrize("concurrent", [True, False])
    def test_cancellation_is_not_turned_into_a_failure(self, concurrent):
        """Given a cancelled AI call, should propagate the cancellation instead of reporting it."""
        # Given
        client = FakeClient(
            {"security": NO_VULNERABILITIES},
            errors={"quality": asyncio.CancelledError()},
        )
        config = GuardianConfig(ai_quality_review=True, concurrent_calls=concurrent)
        guardian = Guardian(client, config=config)

        # When/Then
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(guardian.analyze(NESTED_JS))
        assert "explanation" not in client.calls


class TestHistory:
    """Persisting analyses per user."""

    def test_analysis_is_saved_for_user(self):
        """Given a store and user id, should persist the analysis and return its id."""
        # Given
        store = HistoryStore()
        client = FakeClient({
            "security": NO_VULNERABILITIES,
            "explanation": explanation_reply("Use a Set."),
        })
        guardian = Guardian(client, store=store)

        # When
        result = asyncio.run(guardian.analyze(NESTED_JS, user_id="alice"))

        # Then
        records = guardian.history("alice")
        assert len(records) == 1
        assert records[0].analysis_id == result.analysis_id
        assert records[0].technical_debt_score == 75
        assert records[0].code == NESTED_JS

    def test_report_is_scoped_to_owner(self):
        """Given another user's analysis id, report should return nothing."""
        # Given
        store = HistoryStore()
        guardian = Guardian(FakeClient({"security": NO_VULNERABILITIES}), store=store)
        result = asyncio.run(guardian.analyze(CLEAN_JS, user_id="alice"))

        # When
        own = guardian.report("alice", result.analysis_id)
        other = guardian.report("bob", result.analysis_id)

        # Then
        assert own is not None
        assert other is None

    def test_anonymous_analysis_is_not_saved(self):
        """Given no user id, should not persist anything."""
        # Given
        store = HistoryStore()
        guardian = Guardian(FakeClient({"security": NO_VULNERABILITIES}), store=store)

        # When
        result = asyncio.run(guardian.analyze(CLEAN_JS))

        # Then
        assert result.analysis_id is None
        assert len(store) == 0

    def test_storage_failure_is_reported_not_raised(self):
        """Given a store that cannot write, should return the result with a history failure."""
        # Given
        guardian = Guardian(FakeClient({"security": NO_VULNERABILITIES}), store=FailingStore())

        # When
        result = asyncio.run(guardian.analyze(CLEAN_JS, user_id="alice"))

        # Then
        assert result.analysis_id is None
        assert result.failures == {"history": "disk full"}

    def test_unwritable_history_file_keeps_history_empty(self, tmp_path):
        """Given a history path that cannot be created, should report the failure and keep nothing."""
        # Given
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = HistoryStore(blocker / "history.json")
        guardian = Guardian(FakeClient({"security": NO_VULNERABILITIES}), store=store)

        # When
        result = asyncio.run(guardian.analyze(CLEAN_JS, user_id="alice"))

        # Then
        assert "history" in result.failures
        assert result.analysis_id is None
        assert guardian.history("alice") == []

    def test_history_without_store_is_empty(self):
        """Given no store, history should be empty."""
        guardian = Guardian(FakeClient())
        assert guardian.history("alice") == []
        assert guardian.report("alice", "abc") is None


class TestTasks:
    """Standalone AI tasks."""

    def test_refactor_defaults_to_local_analysis(self):
        """Given no analysis text, should send the local summary with the code."""
        # Given
        reply = json.dumps({"refactoredCode": "const s = new Set(b);", "explanation": "Set lookup."})
        client = FakeClient({"refactor": reply})
        guardian = Guardian(client)

        # When
        outcome = asyncio.run(guardian.refactor(NESTED_JS))

        # Then
        assert outcome.ok
        assert outcome.value.refactored_code == "const s = new Set(b);"
        assert "Nested Loops Detected" in client.prompts["refactor"]
        assert "refactoredCode" in client.prompts["refactor"]

    def test_refactor_uses_given_analysis(self):
        """Given an analysis text, should send it instead of the local summary."""
        # Given
        reply = json.dumps({"refactoredCode": "x", "explanation": "y"})
        client = FakeClient({"refactor": reply})
        guardian = Guardian(client)

        # When
        asyncio.run(guardian.refactor(NESTED_JS, "Rename variables."))

        # Then
        assert "Rename variables." in client.prompts["refactor"]

    def test_explanation_task_defaults_to_local_analysis(self):
        """Given no analysis text, the explanation task should send the local summary."""
        # Given
        client = FakeClient({"explanation": explanation_reply("Use a Set.")})
        guardian = Guardian(client)

        # When
        outcome = asyncio.run(guardian.run_task("explanation", NESTED_JS))

        # Then
        assert outcome.value.explanation == "Use a Set."
        assert "Nested Loops Detected" in client.prompts["explanation"]

    def test_documentation_task_sends_no_analysis(self):
        """Given a task that does not work from an analysis, should not score the code for it."""
        # Given
        reply = json.dumps({"documentedCode": "/** doc */", "explanation": "Added docs."})
        client = FakeClient({"documentation": reply})
        guardian = Guardian(client)

        # When
        asyncio.run(guardian.document(NESTED_JS))

        # Then
        assert "Nested Loops Detected" not in client.prompts["documentation"]

    def test_decode_failure_outcome(self):
        """Given an answer missing a field, should return a decode error outcome."""
        # Given
        client = FakeClient({"perfect_code": '{"perfectCode": "x"}'})
        guardian = Guardian(client)

        # When
        outcome = asyncio.run(guardian.perfect_code(NESTED_JS))

        # Then
        assert not outcome.ok
        assert outcome.failure_kind == "decode"
        assert "explanation" in outcome.error

    def test_transport_failure_outcome(self):
        """Given the service is down, should return a transport error outcome."""
        # Given
        guardian = Guardian(FakeClient(failures={"documentation"}))

        # When
        outcome = asyncio.run(guardian.document(NESTED_JS))

        # Then
        assert not outcome.ok
        assert outcome.failure_kind == "transport"

    def test_security_scan(self):
        """Given a security answer, should return typed vulnerabilities."""
        # Given
        reply = json.dumps({"vulnerabilities": [
            {"title": "XSS", "detail": "sink", "severity": "High", "cwe": "CWE-79"},
        ]})
        guardian = Guardian(FakeClient({"security": reply}))

        # When
        outcome = asyncio.run(guardian.security_scan(XSS_JS))

        # Then
        assert outcome.value.vulnerabilities[0].cwe == "CWE-79"

    def test_unknown_task_name(self):
        """Given an unknown task, should raise ValueError."""
        guardian = Guardian(FakeClient())
        with pytest.raises(ValueError, match="Unknown task"):
            asyncio.run(guardian.run_task("translate", NESTED_JS))
