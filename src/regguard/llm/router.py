"""Tenant-aware LLM router.

Per request the router:

1. reads the tenant policy (tenant ``default`` when none is given)
2. resolves provider, model and sampling options, forcing the ``local``
   provider when the tenant disallows remote egress
3. resolves the egress mode (base, tenant, user, per-call)
4. runs the provider call through the egress client, so the provider sees
   the sanitized messages under ``enforce``

Only the messages (tool-call arguments included) go through the egress
guard. Model id and provider options are routing data and reach the
provider unchanged.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

from regguard.egress.client import EgressClient
from regguard.egress.mode_resolver import resolve_effective_egress_mode
from regguard.egress.models import EgressGuardContext, EgressMode, EgressModeResolution
from regguard.errors import LlmError
from regguard.llm.client import (
    LlmCompletionOptions,
    LlmProviderClient,
    LlmStreamChunk,
    Message,
    ProviderChatOptions,
)
from regguard.llm.policy import TenantLlmPolicy
from regguard.llm.policy_stores import LlmPolicyStore

logger = logging.getLogger(__name__)

DEFAULT_TENANT_ID = "default"
LOCAL_PROVIDER = "local"


@dataclass
class ResolvedRoute:
    """Provider, model and sampling options chosen for one call."""

    provider: str
    model: str
    task_options: ProviderChatOptions
    policy: TenantLlmPolicy | None = None


class LlmRouter:
    """Routes chat calls to providers according to tenant policy."""

    def __init__(
        self,
        providers: Mapping[str, LlmProviderClient],
        policy_store: LlmPolicyStore,
        default_provider: str,
        default_model: str,
        egress_client: EgressClient | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            providers: Provider registry keyed by provider id
            policy_store: Source of tenant policies
            default_provider: Provider used when the tenant has no policy
            default_model: Model used when the tenant has no policy
            egress_client: Egress gate (a default enforcing client when None)
        """
        self.providers = dict(providers)
        self.policy_store = policy_store
        self.default_provider = default_provider
        self.default_model = default_model
        self.egress_client = egress_client or EgressClient()

    def _get_provider(self, provider: str) -> LlmProviderClient:
        client = self.providers.get(provider)
        if client is None:
            raise LlmError(f"Unknown provider: {provider}")
        return client

    async def resolve_route(self, options: LlmCompletionOptions | None = None) -> ResolvedRoute:
        """Resolve provider, model and task options from tenant policy.

        Args:
            options: Call options

        Returns:
            ResolvedRoute for the call
        """
        options = options or LlmCompletionOptions()
        tenant_id = options.tenant_id or DEFAULT_TENANT_ID

        policy = await self.policy_store.get_policy(tenant_id)

        provider = self.default_provider
        model = self.default_model
        task_options = ProviderChatOptions(
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            tools=options.tools,
            tool_choice=options.tool_choice,
        )

        if policy is not None:
            provider = policy.default_provider
            model = policy.default_model

            task_policy = policy.task_policy(options.task)
            if task_policy is not None:
                if policy.allow_remote_egress or task_policy.provider == LOCAL_PROVIDER:
                    provider = task_policy.provider
                    model = task_policy.model
                if task_policy.temperature is not None:
                    task_options.temperature = task_policy.temperature
                if task_policy.max_tokens is not None:
                    task_options.max_tokens = task_policy.max_tokens

            if not policy.allow_remote_egress and provider != LOCAL_PROVIDER:
                logger.debug(
                    "Tenant %s disallows remote egress; routing %s to local", tenant_id, provider
                )
                provider = LOCAL_PROVIDER

        if options.model:
            model = options.model

        return ResolvedRoute(
            provider=provider, model=model, task_options=task_options, policy=policy
        )

    def _resolve_mode(
        self,
        route: ResolvedRoute,
        options: LlmCompletionOptions,
    ) -> EgressModeResolution:
        override = None
        if options.egress_mode_override:
            override = EgressMode(options.egress_mode_override)
        return resolve_effective_egress_mode(
            self.egress_client.default_mode,
            route.policy,
            user_id=options.user_id,
            egress_mode_override=override,
        )

    def _build_context(
        self,
        messages: list[Message],
        route: ResolvedRoute,
        options: LlmCompletionOptions,
    ) -> EgressGuardContext:
        resolution = self._resolve_mode(route, options)
        return EgressGuardContext(
            target="llm",
            provider_id=route.provider,
            request={"messages": messages},
            tenant_id=options.tenant_id or DEFAULT_TENANT_ID,
            user_id=options.user_id,
            task=options.task,
            mode=resolution.requested_mode,
            effective_mode=resolution.effective_mode,
            metadata=dict(options.metadata),
        )

    @staticmethod
    def _messages(ctx: EgressGuardContext) -> list[Message]:
        request: dict[str, Any] = ctx.request
        return request["messages"]

    async def chat(
        self,
        messages: list[Message],
        options: LlmCompletionOptions | None = None,
    ) -> str:
        """Run a chat completion through policy resolution and the egress guard.

        Args:
            messages: Conversation history
            options: Call options (tenant, user, task, overrides)

        Returns:
            Response text

        Raises:
            LlmError: Unknown provider, or the provider is not allow-listed
        """
        options = options or LlmCompletionOptions()
        route = await self.resolve_route(options)
        client = self._get_provider(route.provider)

        async def execute(ctx: EgressGuardContext) -> str:
            return await client.chat(self._messages(ctx), route.model, route.task_options)

        return await self.egress_client.guard_and_execute(
            self._build_context(messages, route, options), execute
        )

    async def stream_chat(
        self,
        messages: list[Message],
        options: LlmCompletionOptions | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Stream a chat completion.

        Failures never escape the generator: they become an ``error`` chunk.
        A single ``done`` chunk always ends the stream.

        Args:
            messages: Conversation history
            options: Call options (tenant, user, task, overrides)

        Yields:
            Text, tool, error and done chunks
        """
        options = options or LlmCompletionOptions()

        try:
            route = await self.resolve_route(options)
            client = self.providers.get(route.provider)
            if client is None:
                raise LlmError(f"Unknown provider: {route.provider}")

            stream_fn = getattr(client, "stream_chat", None)
            if stream_fn is None:
                raise LlmError(f"Provider {route.provider} does not support streaming")

            async def execute(ctx: EgressGuardContext) -> AsyncIterator[LlmStreamChunk]:
                return stream_fn(self._messages(ctx), route.model, route.task_options)

            stream = await self.egress_client.guard_and_execute(
                self._build_context(messages, route, options), execute
            )

            async with aclosing(stream):
                async for chunk in stream:
                    if chunk.type == "done":
                        continue
                    yield chunk
                    if chunk.type == "error":
                        break

        except Exception as e:
            logger.error("Streaming chat failed: %s", e)
            error = e if isinstance(e, LlmError) else LlmError(str(e))
            yield LlmStreamChunk.failure(error)

        yield LlmStreamChunk.done()
