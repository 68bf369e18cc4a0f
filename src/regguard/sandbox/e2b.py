"""E2B code interpreter sandbox adapter.

Wraps ``e2b_code_interpreter.AsyncSandbox`` in the :class:`CodeSandbox`
protocol so tools and the sandbox manager never touch the SDK directly.
"""

import logging
from typing import Any

from e2b_code_interpreter import AsyncSandbox

from regguard.errors import SandboxError

from .base import SandboxExecution, SandboxLogs

logger = logging.getLogger(__name__)

DEFAULT_SANDBOX_TIMEOUT_MS = 30 * 60 * 1000

# Tool-facing language names -> E2B kernel names
LANGUAGE_ALIASES = {
    "python": "python",
    "javascript": "js",
    "typescript": "ts",
    "bash": "bash",
    "sh": "bash",
}

_RESULT_FIELDS = ("text", "markdown", "html", "json", "data", "latex")


def _result_to_dict(result: Any) -> dict[str, Any]:
    """Keep the textual representations of an E2B rich result."""
    data: dict[str, Any] = {}
    for name in _RESULT_FIELDS:
        value = getattr(result, name, None)
        if value is not None:
            data[name] = value
    return data


class E2BCodeSandbox:
    """CodeSandbox backed by an E2B code interpreter sandbox."""

    def __init__(self, sandbox: AsyncSandbox) -> None:
        self._sandbox = sandbox

    @classmethod
    async def create(
        cls,
        api_key: str,
        timeout_ms: int = DEFAULT_SANDBOX_TIMEOUT_MS,
        template: str | None = None,
    ) -> "E2BCodeSandbox":
        """Create a new E2B sandbox.

        Args:
            api_key: E2B API key
            timeout_ms: Sandbox lifetime in milliseconds
            template: Custom sandbox template id

        Returns:
            Connected sandbox

        Raises:
            SandboxError: If the API key is missing or creation fails
        """
        if not api_key:
            raise SandboxError("E2B API key not configured. Set E2B_API_KEY environment variable.")

        sandbox_kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": max(1, timeout_ms // 1000),
        }
        if template:
            sandbox_kwargs["template"] = template

        try:
            sandbox = await AsyncSandbox.create(**sandbox_kwargs)
        except Exception as e:
            raise SandboxError(f"Failed to create E2B sandbox: {e}") from e

        logger.info("Created E2B sandbox %s", sandbox.sandbox_id)
        return cls(sandbox)

    @property
    def sandbox_id(self) -> str:
        return self._sandbox.sandbox_id

    async def run_code(
        self,
        code: str,
        language: str = "python",
        timeout_ms: int | None = None,
    ) -> SandboxExecution:
        kwargs: dict[str, Any] = {"language": LANGUAGE_ALIASES.get(language, language)}
        if timeout_ms is not None:
            kwargs["timeout"] = timeout_ms / 1000

        execution = await self._sandbox.run_code(code, **kwargs)

        error = None
        if execution.error is not None:
            error = f"{execution.error.name}: {execution.error.value}"

        return SandboxExecution(
            logs=SandboxLogs(
                stdout=list(execution.logs.stdout),
                stderr=list(execution.logs.stderr),
            ),
            results=[_result_to_dict(r) for r in execution.results],
            exit_code=1 if error else 0,
            error=error,
        )

    async def kill(self) -> None:
        await self._sandbox.kill()
        logger.info("Killed E2B sandbox %s", self.sandbox_id)
