#!/usr/bin/env python3
"""
CodeGuardian - Main Entry Point

Scores a code snippet locally (Technical Debt Score) and uses the Claude
Agent SDK for explanations, refactoring, documentation and security audits.

Usage:
    code-guardian analyze path/to/file.js
    cat snippet.py | code-guardian score -
    code-guardian gate $(git diff --cached --name-only)
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import GuardianConfig
from .errors import GuardianError
from .models import AnalysisRecord, AnalysisResult, ScoreReport, TaskOutcome, score_band
from .pipeline import Guardian, CommitGate, score_code
from .tools import CompletionClient, HistoryStore
from .utils import setup_logging, get_logger, calculate_metrics, format_metrics_report


DEFAULT_HISTORY_PATH = Path.home() / ".code_guardian" / "history.json"


def build_guardian(config: GuardianConfig, with_history: bool = True) -> Guardian:
    """Wire the AI client and history store for a CLI run."""
    client = CompletionClient.from_config(config)
    store = HistoryStore(config.history_path or DEFAULT_HISTORY_PATH) if with_history else None
    return Guardian(client=client, store=store, config=config)


def read_code(source: Optional[str]) -> str:
    """Read code from a file path, or stdin for '-' / no path."""
    if not source or source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _load_config(args) -> GuardianConfig:
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO)
    config = GuardianConfig.from_env()
    if getattr(args, "model", None):
        config.model = args.model
    if getattr(args, "user", None):
        config.user_id = args.user
    if getattr(args, "history_file", None):
        config.history_path = args.history_file
    return config


# --- Output formatting ---

def format_score_report(report: ScoreReport) -> str:
    lines = [
        f"Technical Debt Score: {report.score}/100 ({score_band(report.score)})",
        f"Lines: {report.line_count}  Branches/loops: {report.keyword_count}  "
        f"Nested loops: {report.nested_loops}",
    ]
    if report.is_clean:
        lines.append("")
        lines.append("No issues found!")
    for issue in report.issues:
        lines.append(f"  [{issue.severity.value}] {issue.title}")
        lines.append(f"      {issue.detail}")
    for vuln in report.vulnerabilities:
        lines.append(f"  [{vuln.severity.value}] {vuln.title} ({vuln.cwe})")
        lines.append(f"      {vuln.detail}")
    return "\n".join(lines)


def format_analysis(result: AnalysisResult) -> str:
    count = len(result.issues)
    lines = [
        f"Technical Debt Score: {result.score}/100 ({score_band(result.score)})",
    ]
    if result.ai_score is not None:
        lines.append(f"AI quality score: {result.ai_score}/100")
    lines.append("")
    lines.append(f"Identified Issues ({count} {'issue' if count == 1 else 'issues'})")
    for issue in result.issues:
        lines.append(f"  [{issue.severity.value}] {issue.title}: {issue.detail}")
    if not result.issues:
        lines.append("  No issues found!")

    lines.append("")
    lines.append(f"Security Vulnerabilities ({len(result.security_vulnerabilities)})")
    for vuln in result.security_vulnerabilities:
        lines.append(f"  [{vuln.severity.value}] {vuln.title} ({vuln.cwe}): {vuln.detail}")

    lines.append("")
    lines.append("Explanation")
    lines.append(result.explanation)

    if result.failures:
        lines.append("")
        lines.append("Incomplete steps")
        for task, reason in result.failures.items():
            lines.append(f"  {task}: {reason}")
    if result.analysis_id:
        lines.append("")
        lines.append(f"Saved as {result.analysis_id}")
    return "\n".join(lines)


def format_task(outcome: TaskOutcome) -> str:
    value = outcome.value
    code_attr = next(
        (a for a in ("refactored_code", "perfect_code", "documented_code") if hasattr(value, a)),
        None,
    )
    if code_attr:
        return f"{getattr(value, code_attr)}\n\n---\n{value.explanation}"
    if hasattr(value, "vulnerabilities"):
        if not value.vulnerabilities:
            return "No vulnerabilities found."
        return "\n".join(
            f"[{v.severity.value}] {v.title} ({v.cwe}): {v.detail}" for v in value.vulnerabilities
        )
    return str(value)


def _task_to_dict(outcome: TaskOutcome) -> dict:
    data = {"task": outcome.task, "status": outcome.status}
    if outcome.ok:
        value = outcome.value
        if hasattr(value, "vulnerabilities"):
            data["vulnerabilities"] = [v.to_dict() for v in value.vulnerabilities]
        else:
            data.update({
                "".join(w.capitalize() if i else w for i, w in enumerate(k.split("_"))): v
                for k, v in vars(value).items()
            })
    else:
        data["error"] = outcome.error
        data["failureKind"] = outcome.failure_kind
    return data


def format_record(record: AnalysisRecord) -> str:
    lines = [
        f"Analysis {record.analysis_id}",
        f"Date: {record.timestamp.astimezone().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Technical Debt Score: {record.technical_debt_score}/100",
        "",
        "Code:",
        record.code,
        "",
        f"Issues ({len(record.issues)}):",
    ]
    for issue in record.issues:
        lines.append(f"  [{issue.severity.value}] {issue.title}: {issue.detail}")
    if record.security_vulnerabilities:
        lines.append(f"Security Vulnerabilities ({len(record.security_vulnerabilities)}):")
        for vuln in record.security_vulnerabilities:
            lines.append(f"  [{vuln.severity.value}] {vuln.title} ({vuln.cwe}): {vuln.detail}")
    lines.append("")
    lines.append("Explanation:")
    lines.append(record.explanation)
    return "\n".join(lines)


# --- Subcommands ---

def cmd_init(args):
    """Handle 'init' subcommand."""
    from .cli import init_repository

    target = Path(args.path) if args.path else Path.cwd()
    success = init_repository(target, threshold=args.threshold, force=args.force)
    sys.exit(0 if success else 1)


def cmd_score(args):
    """Handle 'score' subcommand (local only, no AI call)."""
    config = _load_config(args)
    logger = get_logger()

    code = read_code(args.file)
    if len(code) < config.min_code_length:
        logger.error(f"Code must be at least {config.min_code_length} characters long.")
        sys.exit(1)

    report = score_code(code)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(format_score_report(report))
    sys.exit(0)


def cmd_analyze(args):
    """Handle 'analyze' subcommand."""
    config = _load_config(args)
    logger = get_logger()

    if args.ai_quality:
        config.ai_quality_review = True
    if args.sequential:
        config.concurrent_calls = False

    try:
        code = read_code(args.file)
        guardian = build_guardian(config, with_history=not args.no_history)
        result = asyncio.run(guardian.analyze(code, user_id=config.user_id))
    except GuardianError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Analysis failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_analysis(result))
    sys.exit(0)


def cmd_task(args):
    """Handle 'refactor', 'perfect', 'document' and 'security' subcommands."""
    config = _load_config(args)
    logger = get_logger()

    try:
        code = read_code(args.file)
        guardian = build_guardian(config, with_history=False)

        if args.command == "refactor":
            analysis = Path(args.analysis_file).read_text(encoding="utf-8") if args.analysis_file else None
            outcome = asyncio.run(guardian.refactor(code, analysis))
        elif args.command == "perfect":
            outcome = asyncio.run(guardian.perfect_code(code))
        elif args.command == "document":
            outcome = asyncio.run(guardian.document(code))
        else:
            outcome = asyncio.run(guardian.security_scan(code))
    except GuardianError as e:
        logger.error(str(e))
        sys.exit(1)
    except Exception as e:
        logger.exception(f"{args.command} failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps(_task_to_dict(outcome), indent=2))
    elif outcome.ok:
        print(format_task(outcome))
    else:
        logger.error(f"{args.command} failed: {outcome.error}")
    sys.exit(0 if outcome.ok else 1)


def cmd_gate(args):
    """Handle 'gate' subcommand."""
    config = _load_config(args)
    threshold = args.threshold if args.threshold is not None else config.commit_threshold
    gate = CommitGate(threshold=threshold)

    if args.files:
        decisions = gate.evaluate_files([Path(f) for f in args.files])
    else:
        decisions = [gate.evaluate(read_code("-"))]

    for decision in decisions:
        print(decision.summary())
        print()

    rejected = [d for d in decisions if not d.approved]
    if rejected:
        print(f"Commit rejected: {len(rejected)}/{len(decisions)} file(s) below {threshold}.")
        sys.exit(1)
    sys.exit(0)


def cmd_history(args):
    """Handle 'history' subcommand."""
    config = _load_config(args)
    logger = get_logger()

    store = HistoryStore(config.history_path or DEFAULT_HISTORY_PATH)
    records = store.list_for_user(config.user_id)

    if args.action == "list":
        if not records:
            print("No analyses recorded yet.")
        for record in records:
            when = record.timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
            print(
                f"{record.analysis_id}  {when}  score {record.technical_debt_score:>3}  "
                f"{len(record.issues)} issues"
            )
    elif args.action == "show":
        if not args.analysis_id:
            logger.error("Analysis id required: code-guardian history show <id>")
            sys.exit(1)
        record = store.get(config.user_id, args.analysis_id)
        if record is None:
            logger.error(f"Analysis {args.analysis_id} not found")
            sys.exit(1)
        if args.json:
            print(json.dumps(record.to_dict(), indent=2))
        else:
            print(format_record(record))
    elif args.action == "stats":
        metrics = calculate_metrics(records, commit_threshold=config.commit_threshold)
        print(format_metrics_report(metrics))
    elif args.action == "plot":
        from .utils.charts import plot_score_history

        if not records:
            logger.error("No analyses to plot")
            sys.exit(1)
        output = plot_score_history(records, args.output, commit_threshold=config.commit_threshold)
        print(f"Chart saved: {output}")
    sys.exit(0)


def _add_common(parser: argparse.ArgumentParser, json_output: bool = True):
    if json_output:
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print machine-readable JSON"
        )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CodeGuardian: technical debt score and AI code review"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Install the commit gate as a git pre-commit hook")
    init_parser.add_argument(
        "path",
        nargs="?",
        help="Target repository path (default: current directory)"
    )
    init_parser.add_argument(
        "--threshold",
        type=int,
        default=70,
        help="Minimum score to accept a commit (default: 70)"
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing pre-commit hook"
    )

    # score command
    score_parser = subparsers.add_parser("score", help="Local Technical Debt Score (no AI)")
    score_parser.add_argument("file", nargs="?", help="Source file, '-' for stdin")
    _add_common(score_parser)

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Full analysis with AI explanation")
    analyze_parser.add_argument("file", nargs="?", help="Source file, '-' for stdin")
    analyze_parser.add_argument("--user", type=str, help="User id for history")
    analyze_parser.add_argument("--model", type=str, help="Model name for the AI service")
    analyze_parser.add_argument("--history-file", type=str, help="History JSON file")
    analyze_parser.add_argument(
        "--no-history",
        action="store_true",
        help="Don't save the analysis"
    )
    analyze_parser.add_argument(
        "--ai-quality",
        action="store_true",
        help="Also ask the AI for its own quality score"
    )
    analyze_parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run AI calls one after another"
    )
    _add_common(analyze_parser)

    # AI task commands
    task_help = {
        "refactor": "AI refactoring guided by the analysis",
        "perfect": "AI rewrite into optimized, secure, clean code",
        "document": "AI-generated documentation comments",
        "security": "AI security audit with CWE ids",
    }
    for name, help_text in task_help.items():
        task_parser = subparsers.add_parser(name, help=help_text)
        task_parser.add_argument("file", nargs="?", help="Source file, '-' for stdin")
        task_parser.add_argument("--model", type=str, help="Model name for the AI service")
        if name == "refactor":
            task_parser.add_argument(
                "--analysis-file",
                type=str,
                help="Analysis text to refactor against (default: local analysis)"
            )
        _add_common(task_parser)

    # gate command
    gate_parser = subparsers.add_parser("gate", help="Reject code below the score threshold")
    gate_parser.add_argument("files", nargs="*", help="Files to check (default: stdin)")
    gate_parser.add_argument(
        "--threshold",
        type=int,
        default=None,
        help="Minimum score (default: 70 or CODE_GUARDIAN_COMMIT_THRESHOLD)"
    )
    _add_common(gate_parser, json_output=False)

    # history command
    history_parser = subparsers.add_parser("history", help="Past analyses")
    history_parser.add_argument(
        "action",
        choices=["list", "show", "stats", "plot"],
        help="What to show"
    )
    history_parser.add_argument("analysis_id", nargs="?", help="Analysis id (for 'show')")
    history_parser.add_argument("--user", type=str, help="User id")
    history_parser.add_argument("--history-file", type=str, help="History JSON file")
    history_parser.add_argument(
        "--output",
        type=str,
        default="score_history.png",
        help="Chart file (for 'plot', default: score_history.png)"
    )
    _add_common(history_parser)

    args = parser.parse_args()

    # Route to subcommand
    if args.command == "init":
        cmd_init(args)
    elif args.command == "score":
        cmd_score(args)
    elif args.command == "analyze":
        cmd_analyze(args)
    elif args.command in task_help:
        cmd_task(args)
    elif args.command == "gate":
        cmd_gate(args)
    elif args.command == "history":
        cmd_history(args)
    else:
        # No subcommand - show help
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
