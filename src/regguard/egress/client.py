"""Egress client: the per-call gate in front of every provider call.

The client runs a context through an aspect pipeline:

1. Provider allow-list (fails closed before anything else happens)
2. Request sanitization according to the effective egress mode
3. Any custom aspects supplied by the caller

and then hands the guarded context to an executor.
"""

import dataclasses
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from regguard.aspects import Aspect, Next, apply_aspects
from regguard.errors import EgressPolicyError

from .models import EgressGuardContext, EgressMode, SanitizationContext, ScanType
from .sanitizer import EgressSanitizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

EgressAspect = Aspect[EgressGuardContext, EgressGuardContext]
EgressNext = Next[EgressGuardContext, EgressGuardContext]


def compose_egress_aspects(
    aspects: Sequence[EgressAspect],
    terminal: EgressNext,
) -> EgressNext:
    """Compose egress aspects around a terminal step (first aspect outermost)."""
    return apply_aspects(terminal, aspects)


async def _identity(ctx: EgressGuardContext) -> EgressGuardContext:
    return ctx


def provider_allowlist_aspect(allowed: Sequence[str] | None) -> EgressAspect:
    """Reject contexts whose provider is not allow-listed.

    An empty or missing allow-list permits every provider.
    """
    allowed_set = frozenset(allowed or ())

    async def aspect(ctx: EgressGuardContext, next_: EgressNext) -> EgressGuardContext:
        if allowed_set and ctx.provider_id not in allowed_set:
            logger.warning(
                "Disallowed provider used: provider=%s tenant=%s task=%s",
                ctx.provider_id,
                ctx.tenant_id,
                ctx.task,
            )
            raise EgressPolicyError(
                f"Provider {ctx.provider_id} is not allowed by the current egress policy"
            )
        return await next_(ctx)

    return aspect


def sanitize_request_aspect(
    sanitizer: EgressSanitizer,
    default_mode: EgressMode,
    context: SanitizationContext = SanitizationContext.CHAT,
    preserve_original_request: bool = False,
) -> EgressAspect:
    """Sanitize ``ctx.request`` and select the payload for the effective mode."""

    async def aspect(ctx: EgressGuardContext, next_: EgressNext) -> EgressGuardContext:
        mode = ctx.effective_mode or default_mode

        if mode == EgressMode.OFF:
            return await next_(dataclasses.replace(ctx, effective_mode=mode))

        original = ctx.request
        sanitized = sanitizer.sanitize_object(
            original, context=context, scan_type=ScanType.LLM_REQUEST
        )
        redaction_applied = sanitized != original

        guarded = dataclasses.replace(
            ctx,
            sanitized_request=sanitized,
            effective_mode=mode,
            metadata={
                **ctx.metadata,
                "redaction_applied": redaction_applied,
                "redaction_report_only": mode == EgressMode.REPORT_ONLY,
            },
        )
        if preserve_original_request:
            guarded.original_request = original

        if mode == EgressMode.ENFORCE:
            guarded.request = sanitized
        else:
            guarded.request = original
            if redaction_applied:
                logger.warning(
                    "PII sanitiser changed payload: tenant=%s task=%s mode=report-only",
                    ctx.tenant_id,
                    ctx.task,
                )

        return await next_(guarded)

    return aspect


class EgressClient:
    """Gate for outbound provider calls."""

    def __init__(
        self,
        allowed_providers: Sequence[str] | None = None,
        aspects: Sequence[EgressAspect] = (),
        mode: EgressMode = EgressMode.ENFORCE,
        preserve_original_request: bool = False,
        sanitizer: EgressSanitizer | None = None,
        sanitization_context: SanitizationContext = SanitizationContext.CHAT,
    ) -> None:
        """Initialize the egress client.

        Args:
            allowed_providers: Provider allow-list (empty or None allows all)
            aspects: Custom aspects run after the built-in ones
            mode: Default egress mode when a context doesn't carry one
            preserve_original_request: Keep the unsanitized payload on the context
            sanitizer: Sanitizer to use (regex-only default when None)
            sanitization_context: Context used to sanitize outbound payloads
        """
        self._default_mode = EgressMode(mode)
        self.sanitizer = sanitizer or EgressSanitizer()

        baseline = [
            provider_allowlist_aspect(allowed_providers),
            sanitize_request_aspect(
                self.sanitizer,
                self._default_mode,
                context=sanitization_context,
                preserve_original_request=preserve_original_request,
            ),
        ]
        self._pipeline = compose_egress_aspects([*baseline, *aspects], _identity)

    @property
    def default_mode(self) -> EgressMode:
        return self._default_mode

    async def guard(self, ctx: EgressGuardContext) -> EgressGuardContext:
        """Run a context through the egress pipeline.

        Args:
            ctx: Egress context for one outbound call

        Returns:
            Guarded context with sanitized request and metadata attached

        Raises:
            EgressPolicyError: If the provider is not allow-listed
        """
        effective_mode = ctx.effective_mode or self._default_mode
        mode = ctx.mode or effective_mode
        guarded = dataclasses.replace(ctx, effective_mode=effective_mode, mode=mode)
        return await self._pipeline(guarded)

    async def guard_and_execute(
        self,
        ctx: EgressGuardContext,
        executor: Callable[[EgressGuardContext], Awaitable[T]],
    ) -> T:
        """Guard a context and pass it to ``executor``.

        Under ``enforce`` the executor's ``ctx.request`` is the sanitized
        payload. Under ``report-only`` it is the original payload, with the
        sanitized form and redaction metadata attached for audit.

        Args:
            ctx: Egress context for one outbound call
            executor: Async callable performing the provider call

        Returns:
            Whatever ``executor`` returns

        Raises:
            EgressPolicyError: If the provider is not allow-listed
        """
        guarded = await self.guard(ctx)
        effective_mode = guarded.effective_mode or self._default_mode

        execution_ctx = dataclasses.replace(guarded, effective_mode=effective_mode)
        if effective_mode == EgressMode.ENFORCE and guarded.sanitized_request is not None:
            execution_ctx.request = guarded.sanitized_request

        return await executor(execution_ctx)
