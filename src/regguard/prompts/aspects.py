"""System prompt composition with aspects.

Each aspect awaits the inner builder and appends one section to the system
prompt. Because the first aspect is the outermost, its section is appended
last.
"""

import dataclasses
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from regguard.aspects import Aspect, apply_aspects

NON_ADVICE_DISCLAIMER = (
    "This assistant is a RESEARCH TOOL that explains regulatory rules and how they "
    "interact. It is not a legal or tax advisor, and users should confirm anything "
    "they act on with a qualified professional."
)

PERSONA_DESCRIPTIONS = {
    "single-director": "a single-director company owner",
    "self-employed": "a self-employed individual",
    "investor": "an investor",
    "paye-employee": "a PAYE employee",
    "advisor": "a professional advisor",
}


@dataclass
class PromptProfile:
    persona_type: str | None = None
    jurisdictions: list[str] = field(default_factory=list)


@dataclass
class PromptContext:
    """Inputs flowing through the prompt aspects."""

    base_prompt: str
    jurisdictions: list[str] = field(default_factory=list)
    agent_id: str | None = None
    agent_description: str | None = None
    profile: PromptProfile | None = None
    additional_context: list[str] = field(default_factory=list)


@dataclass
class BuiltPrompt:
    system_prompt: str
    context: PromptContext


PromptAspect = Aspect[PromptContext, BuiltPrompt]
PromptBuilder = Callable[[PromptContext], Awaitable[BuiltPrompt]]


def _append(result: BuiltPrompt, section: str) -> BuiltPrompt:
    return dataclasses.replace(result, system_prompt=f"{result.system_prompt}\n\n{section}")


async def base_prompt_builder(ctx: PromptContext) -> BuiltPrompt:
    return BuiltPrompt(system_prompt=ctx.base_prompt, context=ctx)


async def jurisdiction_aspect(ctx: PromptContext, next_: PromptBuilder) -> BuiltPrompt:
    """Add the jurisdictions the user cares about (explicit first, then profile)."""
    result = await next_(ctx)

    jurisdictions = ctx.jurisdictions or (ctx.profile.jurisdictions if ctx.profile else [])
    if not jurisdictions:
        return result

    if len(jurisdictions) == 1:
        detail = f"The user is primarily interested in rules from: {jurisdictions[0]}"
    else:
        detail = (
            "The user is interested in rules from multiple jurisdictions: "
            f"{', '.join(jurisdictions)}. Pay attention to cross-border interactions "
            "and coordination rules."
        )
    return _append(result, f"Jurisdiction Context: {detail}")


async def agent_context_aspect(ctx: PromptContext, next_: PromptBuilder) -> BuiltPrompt:
    result = await next_(ctx)

    if not ctx.agent_id and not ctx.agent_description:
        return result

    agent_info = ctx.agent_description or f"Agent: {ctx.agent_id}"
    return _append(result, f"Agent Context: {agent_info}")


async def profile_context_aspect(ctx: PromptContext, next_: PromptBuilder) -> BuiltPrompt:
    result = await next_(ctx)

    if ctx.profile is None or not ctx.profile.persona_type:
        return result

    persona = PERSONA_DESCRIPTIONS.get(ctx.profile.persona_type, ctx.profile.persona_type)
    return _append(result, f"User Profile: The user is {persona}.")


async def disclaimer_aspect(ctx: PromptContext, next_: PromptBuilder) -> BuiltPrompt:
    """Ensure the non-advice disclaimer is present exactly once."""
    result = await next_(ctx)

    if "RESEARCH TOOL" in result.system_prompt or "not a legal" in result.system_prompt:
        return result

    return _append(result, f"IMPORTANT: {NON_ADVICE_DISCLAIMER}")


async def additional_context_aspect(ctx: PromptContext, next_: PromptBuilder) -> BuiltPrompt:
    result = await next_(ctx)

    if not ctx.additional_context:
        return result

    return _append(result, "\n\n".join(ctx.additional_context))


# Base prompts carry their own disclaimer, so it is not a default aspect
DEFAULT_PROMPT_ASPECTS: tuple[PromptAspect, ...] = (
    jurisdiction_aspect,
    agent_context_aspect,
    profile_context_aspect,
    additional_context_aspect,
)


def create_prompt_builder(aspects: Sequence[PromptAspect] = ()) -> PromptBuilder:
    return apply_aspects(base_prompt_builder, aspects)


default_prompt_builder = create_prompt_builder(DEFAULT_PROMPT_ASPECTS)


async def build_prompt_with_aspects(base_prompt: str, **context: Any) -> str:
    """Build a system prompt with the default aspects.

    Args:
        base_prompt: Prompt to extend
        **context: Other ``PromptContext`` fields, e.g. ``jurisdictions=["IE"]``

    Returns:
        The composed system prompt
    """
    result = await default_prompt_builder(PromptContext(base_prompt=base_prompt, **context))
    return result.system_prompt


def create_custom_prompt_builder(
    base_prompt: str,
    aspects: Sequence[PromptAspect] = (),
) -> Callable[..., Awaitable[str]]:
    """Bind a base prompt to a custom aspect list."""
    builder = create_prompt_builder(aspects)

    async def build(**context: Any) -> str:
        result = await builder(PromptContext(base_prompt=base_prompt, **context))
        return result.system_prompt

    return build
