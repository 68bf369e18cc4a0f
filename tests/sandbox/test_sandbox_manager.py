"""Tests for the active sandbox lifecycle."""

import asyncio
import logging
from unittest.mock import AsyncMock, patch

import pytest

from regguard.config.schema import SandboxConfig
from regguard.errors import SandboxError
from regguard.sandbox.manager import SandboxManager, create_sandbox_manager


class FakeSandbox:
    def __init__(self, sandbox_id: str, kill_error: Exception | None = None):
        self.sandbox_id = sandbox_id
        self.kill_error = kill_error
        self.kills = 0

    async def run_code(self, code, language="python", timeout_ms=None):
        raise NotImplementedError

    async def kill(self):
        self.kills += 1
        if self.kill_error:
            raise self.kill_error


def make_factory(kill_error: Exception | None = None):
    created: list[FakeSandbox] = []

    async def factory(timeout_ms: int) -> FakeSandbox:
        # Yield so concurrent callers interleave while creation is in flight
        await asyncio.sleep(0.01)
        sandbox = FakeSandbox(f"sbx-{len(created) + 1}", kill_error)
        created.append(sandbox)
        return sandbox

    return factory, created


class TestSandboxManager:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_sandbox(self):
        factory, created = make_factory()
        manager = SandboxManager(factory)

        results = await asyncio.gather(*(manager.get_or_create_active_sandbox() for _ in range(3)))

        assert len(created) == 1
        assert all(sandbox is created[0] for sandbox in results)
        assert manager.active_sandbox_id == "sbx-1"

    @pytest.mark.asyncio
    async def test_factory_receives_timeout(self):
        factory = AsyncMock(return_value=FakeSandbox("sbx"))
        manager = SandboxManager(factory, timeout_ms=60_000)

        await manager.get_or_create_active_sandbox()
        await manager.get_or_create_active_sandbox()

        factory.assert_awaited_once_with(60_000)

    @pytest.mark.asyncio
    async def test_reset_without_sandbox_is_noop(self):
        factory, created = make_factory()
        manager = SandboxManager(factory)

        await manager.reset_active_sandbox()

        assert not manager.has_active_sandbox
        assert created == []

    @pytest.mark.asyncio
    async def test_double_reset_kills_once(self):
        factory, created = make_factory()
        manager = SandboxManager(factory)
        await manager.get_or_create_active_sandbox()

        await manager.reset_active_sandbox()
        await manager.reset_active_sandbox()

        assert created[0].kills == 1
        assert manager.active_sandbox_id is None

    @pytest.mark.asyncio
    async def test_kill_failure_is_logged_and_cleared(self, caplog):
        factory, _ = make_factory(kill_error=RuntimeError("already gone"))
        manager = SandboxManager(factory)
        await manager.get_or_create_active_sandbox()

        with caplog.at_level(logging.WARNING, logger="regguard.sandbox.manager"):
            await manager.reset_active_sandbox()

        assert not manager.has_active_sandbox
        assert "already gone" in caplog.text

    @pytest.mark.asyncio
    async def test_new_sandbox_after_reset(self):
        factory, created = make_factory()
        manager = SandboxManager(factory)

        first = await manager.get_or_create_active_sandbox()
        await manager.reset_active_sandbox()
        second = await manager.get_or_create_active_sandbox()

        assert first is not second
        assert len(created) == 2

    @pytest.mark.asyncio
    async def test_factory_failure_leaves_no_sandbox(self):
        manager = SandboxManager(AsyncMock(side_effect=SandboxError("quota exceeded")))

        with pytest.raises(SandboxError, match="quota exceeded"):
            await manager.get_or_create_active_sandbox()

        assert not manager.has_active_sandbox


class TestCreateSandboxManager:
    @pytest.mark.asyncio
    async def test_uses_config_and_env(self):
        config = SandboxConfig(timeout_ms=120_000, template="tax-analysis")
        manager = create_sandbox_manager(config, env={"E2B_API_KEY": "e2b_test"})

        with patch(
            "regguard.sandbox.manager.E2BCodeSandbox.create",
            new=AsyncMock(return_value=FakeSandbox("sbx")),
        ) as create:
            await manager.get_or_create_active_sandbox()

        create.assert_awaited_once_with(
            api_key="e2b_test", timeout_ms=120_000, template="tax-analysis"
        )

    @pytest.mark.asyncio
    async def test_missing_key_surfaces_on_first_use(self):
        manager = create_sandbox_manager(SandboxConfig(), env={})

        with pytest.raises(SandboxError, match="E2B API key not configured"):
            await manager.get_or_create_active_sandbox()
