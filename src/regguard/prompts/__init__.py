"""System prompt composition."""

from .aspects import (
    NON_ADVICE_DISCLAIMER,
    BuiltPrompt,
    PromptContext,
    PromptProfile,
    additional_context_aspect,
    agent_context_aspect,
    build_prompt_with_aspects,
    create_custom_prompt_builder,
    create_prompt_builder,
    disclaimer_aspect,
    jurisdiction_aspect,
    profile_context_aspect,
)

__all__ = [
    "NON_ADVICE_DISCLAIMER",
    "BuiltPrompt",
    "PromptContext",
    "PromptProfile",
    "additional_context_aspect",
    "agent_context_aspect",
    "build_prompt_with_aspects",
    "create_custom_prompt_builder",
    "create_prompt_builder",
    "disclaimer_aspect",
    "jurisdiction_aspect",
    "profile_context_aspect",
]
