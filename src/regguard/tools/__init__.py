"""LLM-callable tools."""

from .base import RegisteredTool
from .code_execution import (
    AnalysisExecutionResult,
    AnalysisType,
    CodeExecutionOptions,
    CodeExecutionResult,
    RunAnalysisInput,
    RunCodeInput,
    execute_analysis,
    execute_code,
    generate_analysis_code,
)
from .registry import ToolRegistry, create_tool_registry, create_tool_registry_from_config

__all__ = [
    "AnalysisExecutionResult",
    "AnalysisType",
    "CodeExecutionOptions",
    "CodeExecutionResult",
    "RegisteredTool",
    "RunAnalysisInput",
    "RunCodeInput",
    "ToolRegistry",
    "create_tool_registry",
    "create_tool_registry_from_config",
    "execute_analysis",
    "execute_code",
    "generate_analysis_code",
]
