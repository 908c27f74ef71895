"""CodeGuardian: technical debt scoring and AI code review for snippets."""

from .config import GuardianConfig, ScoringPolicy, DEFAULT_CONFIG, DEFAULT_POLICY
from .errors import GuardianError, ValidationFailure, TransportFailure, DecodeFailure
from .pipeline import (
    score_code,
    decode_ai_response,
    Guardian,
    CommitGate,
)

__version__ = "0.1.0"

__all__ = [
    "GuardianConfig",
    "ScoringPolicy",
    "DEFAULT_CONFIG",
    "DEFAULT_POLICY",
    "GuardianError",
    "ValidationFailure",
    "TransportFailure",
    "DecodeFailure",
    "score_code",
    "decode_ai_response",
    "Guardian",
    "CommitGate",
]
