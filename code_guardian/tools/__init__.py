"""Collaborators for CodeGuardian: AI completion and analysis history."""

from .completion_client import CompletionClient
from .history_store import HistoryStore

__all__ = [
    "CompletionClient",
    "HistoryStore",
]
