"""Code sandboxes: protocol, E2B adapter and session lifecycle."""

from .base import CodeSandbox, SandboxExecution, SandboxLogs
from .e2b import E2BCodeSandbox
from .manager import SandboxManager, create_sandbox_manager

__all__ = [
    "CodeSandbox",
    "E2BCodeSandbox",
    "SandboxExecution",
    "SandboxLogs",
    "SandboxManager",
    "create_sandbox_manager",
]
