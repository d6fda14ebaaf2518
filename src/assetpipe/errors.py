# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List


class ConfigError(Exception):
    """Raised when configuration is missing or invalid. Always raised before side effects."""
    pass


@dataclass
class TransformError(Exception):
    """
    A single transform invocation failed.

    Carries enough context for:
      - clean CLI output
      - identifying the failing transform inside a nested step tree
    """
    pipeline: str
    transform: str
    message: str
    details: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"[{self.pipeline}] transform '{self.transform}' failed: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class PipelineFailed(Exception):
    """Terminal failure signal for one pipeline run."""
    pipeline: str
    error: TransformError
    results: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"pipeline '{self.pipeline}' failed\n{self.error}"


@dataclass
class UploadError(Exception):
    key: str
    message: str

    def __str__(self) -> str:
        return f"upload of '{self.key}' failed: {self.message}"


@dataclass
class LintFailure(Exception):
    exit_code: int
    files: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"lint failed (exit={self.exit_code}) over {len(self.files)} file(s)"


@dataclass
class ToolUnavailable(Exception):
    tool: str
    hint: str

    def __str__(self) -> str:
        return f"{self.tool} is not available. {self.hint}"


@dataclass
class ServiceStartError(Exception):
    """A long-running service did not come up."""
    service: str
    message: str

    def __str__(self) -> str:
        return f"{self.service} failed to start: {self.message}"


TOOL_HINTS = {
    "eslint": "Install ESLint (npm install --save-dev eslint) or fix PATH.",
    "npx": "Install Node.js (includes npx) or fix PATH.",
    "node": "Install Node.js or fix PATH.",
}
