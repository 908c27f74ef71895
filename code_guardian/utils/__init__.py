"""Utility functions."""

from .logging import setup_logging, get_logger
from .metrics import (
    HistoryMetrics,
    calculate_metrics,
    format_metrics_report,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "HistoryMetrics",
    "calculate_metrics",
    "format_metrics_report",
]
