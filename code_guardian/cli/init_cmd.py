"""Install the CodeGuardian commit gate in a git repository."""

import stat
from pathlib import Path
from typing import Optional


HOOK_MARKER = "# code-guardian commit gate"

PRE_COMMIT_TEMPLATE = '''#!/bin/sh
{marker}
# Rejects the commit when a staged source file scores below the threshold.

files=$(git diff --cached --name-only --diff-filter=ACM | grep -E '\\.({extensions})$')
[ -z "$files" ] && exit 0

exec code-guardian gate --threshold {threshold} $files
'''

DEFAULT_EXTENSIONS = ("py", "js", "jsx", "ts", "tsx", "java", "go", "c", "cpp", "cs", "rb", "php")


def init_repository(
    target_dir: Optional[Path] = None,
    threshold: int = 70,
    force: bool = False,
) -> bool:
    """
    Install CodeGuardian in a repository.

    Creates:
      - .git/hooks/pre-commit
    """
    target = target_dir or Path.cwd()

    # Check if git repo
    if not (target / ".git").is_dir():
        print(f"Error: {target} is not a git repository")
        return False

    hooks_dir = target / ".git" / "hooks"
    hooks_dir.mkdir(parents=True, exist_ok=True)
    hook_file = hooks_dir / "pre-commit"

    if hook_file.exists() and not force:
        if HOOK_MARKER in hook_file.read_text(encoding="utf-8", errors="replace"):
            print(f"Already installed: {hook_file}")
            print("\nAlready configured. No changes needed.")
            return True
        print(f"Error: {hook_file} exists and was not created by code-guardian (use --force)")
        return False

    hook_file.write_text(PRE_COMMIT_TEMPLATE.format(
        marker=HOOK_MARKER,
        threshold=threshold,
        extensions="|".join(DEFAULT_EXTENSIONS),
    ))
    hook_file.chmod(hook_file.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    print(f"Created: {hook_file}")

    print("\nNext steps:")
    print("  1. Make sure `code-guardian` is on PATH for git hooks")
    print(f"  2. Commits with a Technical Debt Score below {threshold} will be rejected")

    return True
