"""Tests for the commit gate.

- Client-perspective behavior verification
- Given-When-Then structure
- Local scoring only
"""

from code_guardian.pipeline import CommitGate, score_code


NESTED_JS = """function overlap(a, b) {
  for (const x of a) {
    for (const y of b) {
      if (x === y) { count++; }
    }
  }
}"""

TRIPLE_NESTED_JS = """function cube(a) {
  for (const x of a) {
    for (const y of a) {
      for (const z of a) { total += x * y * z; }
    }
  }
}"""


class TestCommitGate:
    """Accept or reject code by its technical debt score."""

    def test_clean_code_is_accepted(self):
        """Given clean code, should accept it."""
        # When
        decision = CommitGate().evaluate("const total = price * quantity;")

        # Then
        assert decision.approved is True
        assert decision.score == 100
        assert decision.reason == "Code quality meets the standards."
        assert decision.blocking_issues == []

    def test_low_score_is_rejected_with_blocking_issues(self):
        """Given deeply nested loops, should reject and list the High issue."""
        # When
        decision = CommitGate(threshold=70).evaluate(TRIPLE_NESTED_JS, source="cube.js")

        # Then
        assert decision.approved is False
        assert decision.score == 50
        assert decision.reason == "Score of 50 is below threshold of 70."
        assert decision.blocking_issues == ["Nested Loops Detected (High)"]

    def test_score_equal_to_threshold_passes(self):
        """Given a score exactly at the threshold, should accept."""
        # When
        decision = CommitGate(threshold=75).evaluate(NESTED_JS)

        # Then
        assert decision.score == 75
        assert decision.approved is True

    def test_syntax_error_is_always_rejected_by_default(self):
        """Given unbalanced braces, should reject at the default threshold."""
        # When
        decision = CommitGate().evaluate("function f() {")

        # Then
        assert decision.approved is False
        assert "Syntax Error: Unmatched Braces (High)" in decision.blocking_issues

    def test_vulnerabilities_block_when_rejected(self):
        """Given XSS in code below the threshold, should list the vulnerability."""
        # Given
        code = "el.innerHTML = userInput;"
        gate = CommitGate(threshold=90)

        # When
        decision = gate.evaluate_report(score_code(code))

        # Then
        assert decision.approved is False
        assert decision.blocking_issues == ["Cross-Site Scripting (XSS) (CWE-79, High)"]

    def test_summary_shows_status(self):
        """Given a rejected decision, summary should show the status and issues."""
        # When
        summary = CommitGate().evaluate(TRIPLE_NESTED_JS, source="cube.js").summary()

        # Then
        assert "## Commit Gate: ❌ REJECTED" in summary
        assert "- Source: cube.js" in summary
        assert "### Blocking Issues" in summary

    def test_evaluate_files(self, tmp_path):
        """Given files on disk, should decide per file and reject unreadable ones."""
        # Given
        good = tmp_path / "good.js"
        good.write_text("const total = price * quantity;")
        bad = tmp_path / "bad.js"
        bad.write_text(TRIPLE_NESTED_JS)
        missing = tmp_path / "missing.js"

        # When
        decisions = CommitGate().evaluate_files([good, bad, missing])

        # Then
        assert [d.approved for d in decisions] == [True, False, False]
        assert decisions[0].source == str(good)
        assert decisions[2].reason.startswith("Could not read file")
