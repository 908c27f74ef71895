"""Configuration for CodeGuardian."""

from dataclasses import dataclass
from typing import Optional
import os


@dataclass
class GuardianConfig:
    """Configuration for the analysis pipeline."""

    # AI collaborator
    model: Optional[str] = None        # None lets the SDK pick its default
    max_turns: int = 1
    timeout_seconds: Optional[float] = 120.0

    # Input validation
    min_code_length: int = 10

    # Analysis behavior
    ai_quality_review: bool = False    # Also ask the model for its own score
    concurrent_calls: bool = True      # Run security/quality AI calls together

    # Commit gate
    commit_threshold: int = 70

    # History
    history_path: Optional[str] = None  # None keeps history in memory
    user_id: str = "local"

    @classmethod
    def from_env(cls) -> "GuardianConfig":
        """Create config from environment variables."""
        timeout = os.environ.get("CODE_GUARDIAN_TIMEOUT", "120")
        return cls(
            model=os.environ.get("CODE_GUARDIAN_MODEL") or None,
            max_turns=int(os.environ.get("CODE_GUARDIAN_MAX_TURNS", "1")),
            timeout_seconds=float(timeout) if float(timeout) > 0 else None,
            min_code_length=int(os.environ.get("CODE_GUARDIAN_MIN_CODE_LENGTH", "10")),
            ai_quality_review=os.environ.get("CODE_GUARDIAN_AI_QUALITY", "false").lower() == "true",
            concurrent_calls=os.environ.get("CODE_GUARDIAN_CONCURRENT", "true").lower() == "true",
            commit_threshold=int(os.environ.get("CODE_GUARDIAN_COMMIT_THRESHOLD", "70")),
            history_path=os.environ.get("CODE_GUARDIAN_HISTORY") or None,
            user_id=os.environ.get("CODE_GUARDIAN_USER", "local"),
        )


@dataclass
class ScoringPolicy:
    """Penalty table for the heuristic scorer."""

    # Line count
    max_lines: int = 30
    line_penalty_per_line: float = 0.8
    max_line_penalty: float = 20.0

    # Branch/loop keyword count
    max_keywords: int = 4
    keyword_penalty_per_match: float = 3.0
    max_keyword_penalty: float = 30.0

    # Fixed penalties
    nested_loop_penalty: float = 25.0   # Per nested loop found
    inefficient_lookup_penalty: float = 10.0
    unsafe_html_penalty: float = 20.0

    # Unbalanced braces force the score to this value
    syntax_error_score: int = 10


# Default configurations
DEFAULT_CONFIG = GuardianConfig()
DEFAULT_POLICY = ScoringPolicy()
