"""Analysis pipeline: heuristic scorer, AI response decoder and orchestration."""

from .scorer import score_code, summarize_report, SYNTAX_ERROR_TITLE
from .decoder import DecodeResult, decode_ai_response, strip_code_fence
from .tasks import TaskSpec, TASKS, get_task
from .guardian import (
    Guardian,
    CLEAN_EXPLANATION,
    PLACEHOLDER_EXPLANATION,
    SYNTAX_ERROR_NOTE,
)
from .commit_gate import CommitGate

__all__ = [
    "score_code",
    "summarize_report",
    "SYNTAX_ERROR_TITLE",
    "DecodeResult",
    "decode_ai_response",
    "strip_code_fence",
    "TaskSpec",
    "TASKS",
    "get_task",
    "Guardian",
    "CLEAN_EXPLANATION",
    "PLACEHOLDER_EXPLANATION",
    "SYNTAX_ERROR_NOTE",
    "CommitGate",
]
