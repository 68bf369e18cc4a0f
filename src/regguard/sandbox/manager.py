"""Lifecycle of the active code sandbox.

One sandbox is kept per session. Creation is serialized behind an
``asyncio.Lock`` so concurrent callers converge on a single instance and no
sandbox is leaked.
"""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING

from .base import CodeSandbox
from .e2b import DEFAULT_SANDBOX_TIMEOUT_MS, E2BCodeSandbox

if TYPE_CHECKING:
    from regguard.config.schema import SandboxConfig

logger = logging.getLogger(__name__)

SandboxFactory = Callable[[int], Awaitable[CodeSandbox]]


class SandboxManager:
    """Owns the active sandbox handle for a session."""

    def __init__(
        self,
        factory: SandboxFactory,
        timeout_ms: int = DEFAULT_SANDBOX_TIMEOUT_MS,
    ) -> None:
        """Initialize the manager.

        Args:
            factory: Coroutine function creating a sandbox from a timeout in ms
            timeout_ms: Lifetime passed to the factory
        """
        self._factory = factory
        self.timeout_ms = timeout_ms
        self._active: CodeSandbox | None = None
        self._lock = asyncio.Lock()

    @property
    def has_active_sandbox(self) -> bool:
        return self._active is not None

    @property
    def active_sandbox_id(self) -> str | None:
        return self._active.sandbox_id if self._active is not None else None

    async def get_or_create_active_sandbox(self) -> CodeSandbox:
        """Return the active sandbox, creating it on first use."""
        if self._active is not None:
            return self._active

        async with self._lock:
            # Another caller may have created it while we waited
            if self._active is None:
                self._active = await self._factory(self.timeout_ms)
                logger.info("Active sandbox %s created", self._active.sandbox_id)
            return self._active

    async def reset_active_sandbox(self) -> None:
        """Tear down the active sandbox.

        Safe to call repeatedly. Teardown failures are logged, never raised,
        and the reference is always cleared.
        """
        async with self._lock:
            sandbox = self._active
            if sandbox is None:
                return
            try:
                await sandbox.kill()
            except Exception as e:
                logger.warning("Failed to kill sandbox %s: %s", sandbox.sandbox_id, e)
            finally:
                self._active = None


def create_sandbox_manager(
    config: "SandboxConfig",
    env: Mapping[str, str] | None = None,
) -> SandboxManager:
    """Create a manager whose sandboxes are E2B code interpreters.

    The API key is read when the first sandbox is created, so a missing key
    surfaces as a ``SandboxError`` from ``get_or_create_active_sandbox``.
    """
    env = os.environ if env is None else env

    async def factory(timeout_ms: int) -> CodeSandbox:
        return await E2BCodeSandbox.create(
            api_key=env.get(config.api_key_env, ""),
            timeout_ms=timeout_ms,
            template=config.template,
        )

    return SandboxManager(factory, timeout_ms=config.timeout_ms)
