"""AI task table: task name -> prompt template -> expected response schema."""

from dataclasses import dataclass
from typing import Dict, Type

from ..models import (
    AIResponse,
    QualityResponse,
    ExplanationResponse,
    RefactorResponse,
    SecurityResponse,
    DocumentationResponse,
    PerfectCodeResponse,
)


JSON_INSTRUCTIONS = """
## Response Format
Your response must be a single, valid JSON object matching this structure:
{schema}

Return only the JSON object. Do not add commentary before or after it.
"""


QUALITY_PROMPT = """
You are an expert software architect. Analyze the provided code for quality,
complexity, and maintainability.

## Your Mission
- Calculate a Technical Debt Score (0-100), where 100 is perfect.
- Identify specific issues with clear titles, descriptions, and severity.

## Severity Guidelines
- **High**: Bugs, syntax errors, serious performance problems (nested loops over large inputs)
- **Medium**: Complexity, inefficient lookups, maintainability concerns
- **Low**: Style issues, length, minor suggestions

## Code to Analyze
```
{code}
```
"""

EXPLANATION_PROMPT = """
You are a senior code reviewer. Explain the problems found in this code and how
to resolve them, based on the provided analysis. Be concrete: name the lines or
constructs involved and describe the fix.

If the analysis says the code cannot execute, say so first.

## Code
```
{code}
```

## Analysis
{analysis}
"""

REFACTOR_PROMPT = """
You are an expert software engineer specializing in code refactoring.
Given a code block and an analysis of its issues, refactor the code to address
the problems. Keep the observable behavior unchanged.

## Original Code
```
{code}
```

## Analysis
{analysis}
"""

PERFECT_CODE_PROMPT = """
Rewrite the following code to be optimized, secure, and clean.
Validate inputs, remove nested iteration where a better data structure exists,
and keep the code readable. Explain why the new version is better.

## Original Code
```
{code}
```
"""

DOCUMENTATION_PROMPT = """
You are an AI specialized in technical writing. Add professional documentation
to the code using the idiomatic doc comment style of its language (JSDoc/TSDoc,
docstrings, Javadoc, ...). Do not change the code's behavior.

## Code Block
```
{code}
```
"""

SECURITY_PROMPT = """
Perform a deep security audit on the following code. Identify vulnerabilities
(SQL injection, XSS, command injection, path traversal, unsafe deserialization,
hard-coded secrets, ...) and provide a CWE ID for each (for example "CWE-79").

## Severity Guidelines
- **Critical**: Remote code execution, authentication bypass, data loss
- **High**: Injection flaws reachable from user input
- **Medium**: Weaknesses that need another flaw to exploit
- **Low**: Hardening suggestions

Return an empty list when you find no vulnerabilities.

## Code
```
{code}
```
"""


@dataclass(frozen=True)
class TaskSpec:
    """One AI task: how to prompt for it and what schema to expect back."""
    name: str
    system_prompt: str
    template: str
    response_model: Type[AIResponse]
    needs_analysis: bool = False

    def render(self, code: str, analysis: str = "") -> str:
        """Fill the template and append the JSON format instructions."""
        prompt = self.template.format(code=code, analysis=analysis or "No analysis provided.")
        return prompt + JSON_INSTRUCTIONS.format(schema=self.response_model.describe())


TASKS: Dict[str, TaskSpec] = {
    task.name: task
    for task in (
        TaskSpec(
            name="quality",
            system_prompt="You are an expert software architect who reviews code for technical debt.",
            template=QUALITY_PROMPT,
            response_model=QualityResponse,
        ),
        TaskSpec(
            name="explanation",
            system_prompt="You are a senior code reviewer who explains findings clearly and briefly.",
            template=EXPLANATION_PROMPT,
            response_model=ExplanationResponse,
            needs_analysis=True,
        ),
        TaskSpec(
            name="refactor",
            system_prompt="You are an expert software engineer specializing in code refactoring.",
            template=REFACTOR_PROMPT,
            response_model=RefactorResponse,
            needs_analysis=True,
        ),
        TaskSpec(
            name="perfect_code",
            system_prompt="You are a principal engineer who writes flawless, production-ready code.",
            template=PERFECT_CODE_PROMPT,
            response_model=PerfectCodeResponse,
        ),
        TaskSpec(
            name="documentation",
            system_prompt="You are a technical writer who documents source code.",
            template=DOCUMENTATION_PROMPT,
            response_model=DocumentationResponse,
        ),
        TaskSpec(
            name="security",
            system_prompt="You are a senior application security analyst.",
            template=SECURITY_PROMPT,
            response_model=SecurityResponse,
        ),
    )
}


def get_task(name: str) -> TaskSpec:
    """Look up a task by name."""
    try:
        return TASKS[name]
    except KeyError:
        raise ValueError(f"Unknown task '{name}'. Available: {', '.join(TASKS)}") from None
