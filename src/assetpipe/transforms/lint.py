# transforms/lint.py
from __future__ import annotations

import shutil
import subprocess
from typing import List, Optional, Sequence

from .. import globs
from ..context import BuildContext
from ..errors import TOOL_HINTS, LintFailure, ToolUnavailable


# ---------------------------------------------------------------------
# Tool discovery
# ---------------------------------------------------------------------

def eslint_command(ctx: BuildContext) -> List[str]:
    """
    Prefer a project-local eslint (node_modules/.bin), then one on PATH,
    then `npx --no-install eslint`.
    """
    local = ctx.config.src.parent / "node_modules" / ".bin" / "eslint"
    if local.exists():
        return [str(local)]
    found = shutil.which("eslint")
    if found:
        return [found]
    if shutil.which("npx"):
        return ["npx", "--no-install", "eslint"]
    raise ToolUnavailable(tool="eslint", hint=TOOL_HINTS["eslint"])


# ---------------------------------------------------------------------
# Lint run
# ---------------------------------------------------------------------

def lint(ctx: BuildContext, *, fix: bool = False, patterns: Optional[Sequence[str]] = None) -> List[str]:
    """
    Run eslint over the script sources. With `fix`, eslint rewrites fixable
    problems in place; anything left over still fails the run.

    Returns the linted files. Raises LintFailure on violations.
    """
    config = ctx.config
    files = [p.as_posix() for p in globs.expand(config.src, list(patterns or config.lint_patterns))]
    if not files:
        ctx.console.print_info("No script sources to lint.")
        return []

    cmd = eslint_command(ctx)
    if fix:
        cmd.append("--fix")
    cmd.extend(files)

    ctx.console.print_debug(f"lint: {cmd[0]} over {len(files)} file(s)")
    proc = subprocess.run(cmd, shell=False, text=True, capture_output=True)

    output = (proc.stdout or "") + (proc.stderr or "")
    if output.strip():
        ctx.console.print_info(output.rstrip())

    if proc.returncode != 0:
        raise LintFailure(exit_code=proc.returncode, files=files)
    return files
