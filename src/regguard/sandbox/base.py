"""Sandbox protocol and execution result types."""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class SandboxLogs:
    """Captured output streams, one entry per emitted chunk."""

    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)


@dataclass
class SandboxExecution:
    """Result of running code in a sandbox."""

    logs: SandboxLogs = field(default_factory=SandboxLogs)
    results: list[Any] = field(default_factory=list)
    exit_code: int | None = None
    error: str | None = None


class CodeSandbox(Protocol):
    """A remote code sandbox bound to one conversation/session."""

    @property
    def sandbox_id(self) -> str: ...

    async def run_code(
        self,
        code: str,
        language: str = "python",
        timeout_ms: int | None = None,
    ) -> SandboxExecution:
        """Run code and capture its output.

        Args:
            code: Source code
            language: Language identifier ("python", "javascript", ...)
            timeout_ms: Per-execution timeout

        Returns:
            Captured logs, rich results, exit code and error
        """
        ...

    async def kill(self) -> None:
        """Tear down the sandbox."""
        ...
