"""Tests for the command line interface and configuration.

- Given-When-Then structure
- Only commands that need no AI service
"""

import json
import logging
import sys

import pytest

from code_guardian import main as cli
from code_guardian.config import GuardianConfig
from code_guardian.utils import setup_logging


TRIPLE_NESTED_JS = """function cube(a) {
  for (const x of a) {
    for (const y of a) {
      for (const z of a) { total += x * y * z; }
    }
  }
}"""


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["code-guardian", *argv])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    return exc.value.code


class TestScoreCommand:
    """code-guardian score"""

    def test_score_file_as_json(self, monkeypatch, capsys, tmp_path):
        """Given a source file, should print the score report as JSON."""
        # Given
        source = tmp_path / "cube.js"
        source.write_text(TRIPLE_NESTED_JS)

        # When
        code = run_cli(monkeypatch, "score", str(source), "--json")

        # Then
        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["score"] == 50
        assert report["issues"][0]["title"] == "Nested Loops Detected"
        assert report["metrics"]["nestedLoops"] == 2

    def test_score_rejects_short_input(self, monkeypatch, tmp_path):
        """Given input below the minimum length, should exit with an error."""
        # Given
        source = tmp_path / "tiny.js"
        source.write_text("x")

        # When
        code = run_cli(monkeypatch, "score", str(source))

        # Then
        assert code == 1


class TestGateCommand:
    """code-guardian gate"""

    def test_gate_rejects_low_scoring_file(self, monkeypatch, capsys, tmp_path):
        """Given one file below the threshold, should exit 1 and print the decision."""
        # Given
        good = tmp_path / "good.js"
        good.write_text("const total = price * quantity;")
        bad = tmp_path / "bad.js"
        bad.write_text(TRIPLE_NESTED_JS)

        # When
        code = run_cli(monkeypatch, "gate", str(good), str(bad), "--threshold", "70")

        # Then
        out = capsys.readouterr().out
        assert code == 1
        assert "ACCEPTED" in out
        assert "REJECTED" in out
        assert "1/2 file(s) below 70" in out

    def test_gate_accepts_clean_files(self, monkeypatch, tmp_path):
        """Given only clean files, should exit 0."""
        # Given
        good = tmp_path / "good.js"
        good.write_text("const total = price * quantity;")

        # When
        code = run_cli(monkeypatch, "gate", str(good))

        # Then
        assert code == 0


class TestHistoryCommand:
    """code-guardian history"""

    def test_empty_history_stats(self, monkeypatch, capsys, tmp_path):
        """Given no recorded analyses, stats should say so."""
        # When
        code = run_cli(
            monkeypatch, "history", "stats", "--history-file", str(tmp_path / "h.json")
        )

        # Then
        assert code == 0
        assert "No analyses recorded yet." in capsys.readouterr().out

    def test_show_unknown_id(self, monkeypatch, tmp_path):
        """Given an unknown analysis id, should exit with an error."""
        # When
        code = run_cli(
            monkeypatch, "history", "show", "missing", "--history-file", str(tmp_path / "h.json")
        )

        # Then
        assert code == 1


class TestConfig:
    """Environment-based configuration."""

    def test_defaults(self, monkeypatch):
        """Given no environment variables, should use the defaults."""
        # Given
        for name in ("CODE_GUARDIAN_MIN_CODE_LENGTH", "CODE_GUARDIAN_COMMIT_THRESHOLD",
                     "CODE_GUARDIAN_AI_QUALITY", "CODE_GUARDIAN_HISTORY", "CODE_GUARDIAN_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        # When
        config = GuardianConfig.from_env()

        # Then
        assert config.min_code_length == 10
        assert config.commit_threshold == 70
        assert config.ai_quality_review is False
        assert config.history_path is None
        assert config.timeout_seconds == 120.0

    def test_environment_overrides(self, monkeypatch):
        """Given environment variables, should read them."""
        # Given
        monkeypatch.setenv("CODE_GUARDIAN_COMMIT_THRESHOLD", "85")
        monkeypatch.setenv("CODE_GUARDIAN_AI_QUALITY", "true")
        monkeypatch.setenv("CODE_GUARDIAN_TIMEOUT", "0")
        monkeypatch.setenv("CODE_GUARDIAN_USER", "alice")

        # When
        config = GuardianConfig.from_env()

        # Then
        assert config.commit_threshold == 85
        assert config.ai_quality_review is True
        assert config.timeout_seconds is None
        assert config.user_id == "alice"


class TestLogging:
    """CLI logging setup."""

    @pytest.mark.parametrize("level,sdk_level", [
        (logging.INFO, logging.WARNING),
        (logging.DEBUG, logging.DEBUG),
    ])
    def test_sdk_logger_follows_debug_flag(self, level, sdk_level):
        """Given a CLI level, SDK logs should only pass through in debug mode."""
        # When
        logger = setup_logging(level=level)

        # Then
        assert logger.name == "code_guardian"
        assert logger.level == level
        assert logging.getLogger("claude_agent_sdk").level == sdk_level
