"""Heuristic scorer: a local, free technical-debt score for a code snippet.

The scorer never parses the code. It looks at raw text with a handful of
regexes and a single linear scan that tracks open loop bodies, using a brace
stack when the snippet contains braces and an indentation stack otherwise.
"""

import math
import re
from typing import List, Optional, Sequence, Tuple

from ..config import ScoringPolicy, DEFAULT_POLICY
from ..models import Issue, SecurityVulnerability, ScoreReport, Severity


SYNTAX_ERROR_TITLE = "Syntax Error: Unmatched Braces"

_KEYWORD_RE = re.compile(r"\b(?:if|for|while|switch|case)\b")

# Comments and string literals are consumed first so words inside them never
# count as loops. Unterminated ones run to the end of the line (or text), which
# keeps every alternative matching in one pass.
_C_NOISE = (
    r"//[^\n]*"
    r"|/\*[\s\S]*?(?:\*/|\Z)"
    r"|'(?:\\.|[^'\\\n])*'?"
    r"|\"(?:\\.|[^\"\\\n])*\"?"
    r"|`(?:\\[\s\S]|[^`\\])*`?"
)

# Loop headers, linear membership calls, and the punctuation the brace scan needs
_BRACE_TOKEN_RE = re.compile(
    rf"(?P<skip>{_C_NOISE})"
    r"|\b(?:for|while|do)\b"
    r"|\.(?:includes|indexOf|contains|index)\s*\("
    r"|[{}();]"
)

# Python comments and strings, triple-quoted first
_PY_NOISE_RE = re.compile(
    r"#[^\n]*"
    r"|'''[\s\S]*?(?:'''|\Z)"
    r"|\"\"\"[\s\S]*?(?:\"\"\"|\Z)"
    r"|'(?:\\.|[^'\\\n])*'?"
    r"|\"(?:\\.|[^\"\\\n])*\"?"
)

_MEMBERSHIP_RE = re.compile(r"\.(?:includes|indexOf|contains|index)\s*\(")
_INDENT_LOOP_RE = re.compile(r"(?:async\s+)?(?:for|while)\b")

_UNSAFE_HTML_RE = re.compile(
    r"dangerouslySetInnerHTML"
    r"|\.(?:innerHTML|outerHTML)\s*\+?=(?!=)"
    r"|insertAdjacentHTML"
    r"|document\.write(?:ln)?\s*\("
)


def score_code(code: str, policy: ScoringPolicy = DEFAULT_POLICY) -> ScoreReport:
    """
    Compute the technical debt score of a snippet.

    Never raises. Empty or very short text simply produces no findings.

    Args:
        code: Source text, any language
        policy: Penalty table

    Returns:
        ScoreReport with score in [0, 100], issues in detection order and
        locally detected security findings
    """
    code = code or ""

    line_count = len(code.split("\n"))
    keyword_count = len(_KEYWORD_RE.findall(code))
    nested_loops, lookup_in_loop = _scan_loops(code)

    issues: List[Issue] = []
    vulnerabilities: List[SecurityVulnerability] = []
    penalty = 0.0

    if line_count > policy.max_lines:
        penalty += min(
            (line_count - policy.max_lines) * policy.line_penalty_per_line,
            policy.max_line_penalty,
        )
        issues.append(Issue(
            title="Long Function",
            detail=(
                f"The snippet spans {line_count} lines. Blocks longer than "
                f"{policy.max_lines} lines are harder to read, test and reuse; "
                "consider splitting it into smaller functions."
            ),
            severity=Severity.LOW,
        ))

    if keyword_count > policy.max_keywords:
        penalty += min(
            (keyword_count - policy.max_keywords) * policy.keyword_penalty_per_match,
            policy.max_keyword_penalty,
        )
        issues.append(Issue(
            title="High Cyclomatic Complexity",
            detail=(
                f"Found {keyword_count} branching or looping statements. "
                "Many decision points make the code hard to follow and to cover "
                "with tests; extract helpers or use early returns."
            ),
            severity=Severity.MEDIUM,
        ))

    if nested_loops:
        penalty += policy.nested_loop_penalty * nested_loops
        plural = "loop" if nested_loops == 1 else "loops"
        issues.append(Issue(
            title="Nested Loops Detected",
            detail=(
                f"Found {nested_loops} nested {plural}. Nested iteration grows "
                "quadratically (or worse) with input size; a Set or Map lookup "
                "usually removes the inner loop."
            ),
            severity=Severity.HIGH,
        ))

    if lookup_in_loop and (nested_loops or keyword_count > policy.max_keywords):
        penalty += policy.inefficient_lookup_penalty
        issues.append(Issue(
            title="Inefficient Lookup in Loop",
            detail=(
                "A linear membership check (includes/indexOf/contains/index) "
                "runs inside a loop. Build a Set once before the loop and test "
                "membership against it instead."
            ),
            severity=Severity.MEDIUM,
        ))

    if _UNSAFE_HTML_RE.search(code):
        penalty += policy.unsafe_html_penalty
        vulnerabilities.append(SecurityVulnerability(
            title="Cross-Site Scripting (XSS)",
            detail=(
                "Raw HTML is injected into the page. Unsanitized input reaching "
                "this sink lets an attacker run script in the user's browser; "
                "render text content or sanitize the markup first."
            ),
            severity=Severity.HIGH,
            cwe="CWE-79",
        ))

    syntax_error = code.count("{") != code.count("}")
    if syntax_error:
        issues.insert(0, Issue(
            title=SYNTAX_ERROR_TITLE,
            detail=(
                f"Found {code.count('{')} opening and {code.count('}')} closing "
                "braces. The code cannot execute until the braces are balanced."
            ),
            severity=Severity.HIGH,
        ))
        score = policy.syntax_error_score
    else:
        score = _clamp(_round_half_up(100 - penalty))

    return ScoreReport(
        score=score,
        issues=tuple(issues),
        vulnerabilities=tuple(vulnerabilities),
        syntax_error=syntax_error,
        line_count=line_count,
        keyword_count=keyword_count,
        nested_loops=nested_loops,
    )


def summarize_report(
    report: ScoreReport,
    vulnerabilities: Optional[Sequence[SecurityVulnerability]] = None,
) -> str:
    """Build the plain-text analysis summary handed to the AI service.

    ``vulnerabilities`` replaces the report's own list, e.g. once AI findings
    have been merged in.
    """
    if vulnerabilities is None:
        vulnerabilities = report.vulnerabilities
    if not report.issues and not vulnerabilities:
        return "Static analysis found no issues."

    lines = [f"Technical Debt Score: {report.score}/100"]
    if report.syntax_error:
        lines.append(
            "IMPORTANT: the braces are unbalanced, so this code cannot execute as written."
        )
    if report.issues:
        lines.append("")
        lines.append("Issues:")
        for issue in report.issues:
            lines.append(f"- [{issue.severity.value}] {issue.title}: {issue.detail}")
    if vulnerabilities:
        lines.append("")
        lines.append("Security vulnerabilities:")
        for vuln in vulnerabilities:
            lines.append(f"- [{vuln.severity.value}] {vuln.title} ({vuln.cwe}): {vuln.detail}")
    return "\n".join(lines)


def _scan_loops(code: str) -> Tuple[int, bool]:
    """Return (nested loop count, membership call inside a loop)."""
    python_text = _blank_python_noise(code)
    if "{" in code and not _has_colon_loop_header(python_text):
        return _scan_brace_loops(code)
    return _scan_indented_loops(python_text)


def _scan_brace_loops(code: str) -> Tuple[int, bool]:
    # One entry per open brace: (loops closed by this brace, opened by `do`)
    stack: List[Tuple[int, bool]] = []
    open_loops = 0
    pending = 0           # Loop headers whose body has not opened yet
    pending_do = False
    paren_depth = 0
    closed_do = False     # Previous token closed a do-block
    nested = 0
    lookup_in_loop = False

    for match in _BRACE_TOKEN_RE.finditer(code):
        if match.group("skip") is not None:
            continue
        token = match.group(0)
        after_do_block = closed_do
        closed_do = False

        if token in ("for", "while", "do"):
            if token == "while" and after_do_block:
                continue  # `} while (...)` tail of a do-while
            if open_loops or pending:
                nested += 1
            pending += 1
            pending_do = token == "do"
        elif token == "{":
            stack.append((pending, pending_do))
            open_loops += pending
            pending = 0
            pending_do = False
        elif token == "}":
            if stack:
                loops, was_do = stack.pop()
                open_loops -= loops
                closed_do = was_do
        elif token == "(":
            paren_depth += 1
        elif token == ")":
            paren_depth = max(paren_depth - 1, 0)
        elif token == ";":
            if paren_depth == 0:
                pending = 0
                pending_do = False
        else:
            # Membership call; the match consumed its opening paren
            if open_loops or (pending and paren_depth == 0):
                lookup_in_loop = True
            paren_depth += 1

    return nested, lookup_in_loop


def _scan_indented_loops(code: str) -> Tuple[int, bool]:
    # Expects comments and strings already blanked out
    # One entry per open block: (indent, is loop)
    stack: List[Tuple[int, bool]] = []
    open_loops = 0
    nested = 0
    lookup_in_loop = False

    for line in code.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        indent = len(line) - len(line.lstrip())
        while stack and stack[-1][0] >= indent:
            _, was_loop = stack.pop()
            if was_loop:
                open_loops -= 1

        header = stripped
        is_loop = _is_colon_loop_header(header)

        if is_loop and open_loops:
            nested += 1
        if open_loops and _MEMBERSHIP_RE.search(line):
            lookup_in_loop = True

        if header.endswith(":"):
            stack.append((indent, is_loop))
            if is_loop:
                open_loops += 1

    return nested, lookup_in_loop


def _blank_python_noise(code: str) -> str:
    """Replace comments with nothing and strings with '""', keeping line breaks."""
    def blank(match):
        text = match.group(0)
        kept = "" if text.startswith("#") else '""'
        return kept + "\n" * text.count("\n")
    return _PY_NOISE_RE.sub(blank, code)


def _is_colon_loop_header(header: str) -> bool:
    return header.endswith(":") and bool(_INDENT_LOOP_RE.match(header))


def _has_colon_loop_header(code: str) -> bool:
    """True when some loop header ends with a colon (blocks delimited by indentation)."""
    return any(
        _is_colon_loop_header(line.strip())
        for line in code.splitlines()
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(score: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, score))
