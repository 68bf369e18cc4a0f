"""Registry of tools exposed to the model.

Code execution tools are only registered while a sandbox is attached. The
registry is rebuilt whenever the sandbox changes, so tool closures never hold
a stale sandbox handle.
"""

import logging
from functools import partial
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from regguard.egress.sanitizer import EgressSanitizer
from regguard.sandbox.base import CodeSandbox

from .base import RegisteredTool
from .code_execution import (
    CodeExecutionOptions,
    RunAnalysisInput,
    RunCodeInput,
    execute_analysis,
    execute_code,
)

if TYPE_CHECKING:
    from regguard.config.schema import RegGuardConfig

logger = logging.getLogger(__name__)

RUN_CODE = "run_code"
RUN_ANALYSIS = "run_analysis"


class ToolRegistry:
    """Named tools available to the model for one session."""

    def __init__(
        self,
        sandbox: CodeSandbox | None = None,
        enable_code_execution: bool = True,
        sanitizer: EgressSanitizer | None = None,
        execution_options: CodeExecutionOptions | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            sandbox: Sandbox for code execution tools; none are registered without one
            enable_code_execution: Set False to never register code execution tools
            sanitizer: Sanitizer applied to sandbox output
            execution_options: Sandbox output sanitization settings
        """
        self.sandbox = sandbox
        self.enable_code_execution = enable_code_execution
        self.sanitizer = sanitizer
        self.execution_options = execution_options
        self._tools: dict[str, RegisteredTool] = {}
        self._register_default_tools()

    def _register_default_tools(self) -> None:
        if self.sandbox is not None and self.enable_code_execution:
            self._register_code_execution_tools(self.sandbox)
            logger.info("Code execution tools registered for sandbox %s", self.sandbox.sandbox_id)
        else:
            logger.info(
                "Code execution tools not registered (sandbox=%s, enabled=%s)",
                self.sandbox is not None,
                self.enable_code_execution,
            )

    def _register_code_execution_tools(self, sandbox: CodeSandbox) -> None:
        kwargs = {
            "sandbox": sandbox,
            "options": self.execution_options,
            "sanitizer": self.sanitizer,
        }
        self.register(
            RegisteredTool(
                name=RUN_CODE,
                description=(
                    "Execute code in an isolated sandbox environment. "
                    "Supports Python, JavaScript, TypeScript, and Bash."
                ),
                input_model=RunCodeInput,
                fn=partial(execute_code, **kwargs),
            )
        )
        self.register(
            RegisteredTool(
                name=RUN_ANALYSIS,
                description=(
                    "Execute predefined or custom analysis code (tax calculations, "
                    "compliance checks, data analysis). Returns structured results."
                ),
                input_model=RunAnalysisInput,
                fn=partial(execute_analysis, **kwargs),
            )
        )

    def register(self, tool: RegisteredTool) -> None:
        self._tools[tool.name] = tool

    def get_tools(self) -> list[dict[str, Any]]:
        """All registered tools in OpenAI function calling format."""
        return [tool.to_openai_format() for tool in self._tools.values()]

    def get_tool(self, name: str) -> RegisteredTool | None:
        return self._tools.get(name)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get_tool_names(self) -> list[str]:
        return list(self._tools)

    async def execute_tool(self, name: str, args: dict[str, Any] | BaseModel) -> Any:
        """Validate arguments and execute a tool by name.

        Args:
            name: Registered tool name
            args: Raw arguments from the model, or an input model instance

        Returns:
            The tool's result

        Raises:
            KeyError: If no tool is registered under ``name``
            pydantic.ValidationError: If the arguments are invalid
        """
        tool = self._tools.get(name)
        if tool is None:
            raise KeyError(f"Tool not found: {name}")

        logger.info("Executing tool %s", name)
        try:
            result = await tool.execute(args)
        except Exception as e:
            logger.error("Tool %s failed: %s", name, e)
            raise
        logger.info("Tool %s completed", name)
        return result

    def update_sandbox(self, sandbox: CodeSandbox | None) -> None:
        """Attach a new sandbox (or detach with None) and rebuild the tools."""
        had_tools = bool(self._tools)
        self._tools.clear()
        self.sandbox = sandbox
        self._register_default_tools()
        logger.info(
            "Sandbox updated to %s (had_tools=%s, has_tools=%s)",
            sandbox.sandbox_id if sandbox is not None else None,
            had_tools,
            bool(self._tools),
        )


def create_tool_registry(
    sandbox: CodeSandbox | None = None,
    enable_code_execution: bool = True,
    **kwargs: Any,
) -> ToolRegistry:
    return ToolRegistry(sandbox=sandbox, enable_code_execution=enable_code_execution, **kwargs)


def create_tool_registry_from_config(
    config: "RegGuardConfig",
    sandbox: CodeSandbox | None = None,
    sanitizer: EgressSanitizer | None = None,
) -> ToolRegistry:
    """Create a tool registry from ``config.sandbox`` and ``config.sanitization``.

    Sandbox output is sanitized under ``sanitization.sandbox_context`` with the
    configured label exclusions.

    Args:
        config: regguard configuration
        sandbox: Active sandbox, if any
        sanitizer: Sanitizer applied to sandbox output

    Returns:
        Configured ToolRegistry
    """
    san_cfg = config.sanitization
    return ToolRegistry(
        sandbox=sandbox,
        enable_code_execution=config.sandbox.enable_code_execution,
        sanitizer=sanitizer,
        execution_options=CodeExecutionOptions(
            sanitization=san_cfg.sandbox_context,
            use_ml_detection=san_cfg.use_ml_detection,
            exclude_patterns=list(san_cfg.exclude_patterns),
        ),
    )
