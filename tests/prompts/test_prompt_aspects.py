"""Tests for system prompt aspects."""

import pytest

from regguard.prompts.aspects import (
    NON_ADVICE_DISCLAIMER,
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

BASE = "You are a regulatory research assistant."


async def build(aspects, **context) -> str:
    builder = create_prompt_builder(aspects)
    result = await builder(PromptContext(base_prompt=BASE, **context))
    return result.system_prompt


class TestJurisdictionAspect:
    @pytest.mark.asyncio
    async def test_single(self):
        prompt = await build([jurisdiction_aspect], jurisdictions=["IE"])
        assert prompt == (
            f"{BASE}\n\nJurisdiction Context: The user is primarily interested in rules from: IE"
        )

    @pytest.mark.asyncio
    async def test_multiple(self):
        prompt = await build([jurisdiction_aspect], jurisdictions=["IE", "UK"])

        assert "multiple jurisdictions: IE, UK" in prompt
        assert "cross-border interactions" in prompt

    @pytest.mark.asyncio
    async def test_falls_back_to_profile(self):
        prompt = await build(
            [jurisdiction_aspect], profile=PromptProfile(jurisdictions=["EU"])
        )
        assert prompt.endswith("rules from: EU")

    @pytest.mark.asyncio
    async def test_none(self):
        assert await build([jurisdiction_aspect]) == BASE


class TestContextAspects:
    @pytest.mark.asyncio
    async def test_agent_description(self):
        prompt = await build([agent_context_aspect], agent_description="VAT specialist")
        assert prompt.endswith("Agent Context: VAT specialist")

    @pytest.mark.asyncio
    async def test_agent_id_only(self):
        prompt = await build([agent_context_aspect], agent_id="ie-vat")
        assert prompt.endswith("Agent Context: Agent: ie-vat")

    @pytest.mark.asyncio
    async def test_known_persona(self):
        prompt = await build(
            [profile_context_aspect], profile=PromptProfile(persona_type="self-employed")
        )
        assert prompt.endswith("User Profile: The user is a self-employed individual.")

    @pytest.mark.asyncio
    async def test_unknown_persona_used_verbatim(self):
        prompt = await build(
            [profile_context_aspect], profile=PromptProfile(persona_type="a trustee")
        )
        assert prompt.endswith("User Profile: The user is a trustee.")

    @pytest.mark.asyncio
    async def test_additional_context(self):
        prompt = await build([additional_context_aspect], additional_context=["A", "B"])
        assert prompt == f"{BASE}\n\nA\n\nB"


class TestDisclaimerAspect:
    @pytest.mark.asyncio
    async def test_appended(self):
        prompt = await build([disclaimer_aspect])
        assert prompt == f"{BASE}\n\nIMPORTANT: {NON_ADVICE_DISCLAIMER}"

    @pytest.mark.asyncio
    async def test_idempotent(self):
        prompt = await build([disclaimer_aspect, disclaimer_aspect])
        assert prompt.count("RESEARCH TOOL") == 1

    @pytest.mark.asyncio
    async def test_base_prompt_with_disclaimer(self):
        builder = create_prompt_builder([disclaimer_aspect])
        result = await builder(PromptContext(base_prompt="I am not a legal advisor."))
        assert result.system_prompt == "I am not a legal advisor."


class TestComposition:
    @pytest.mark.asyncio
    async def test_first_aspect_appends_last(self):
        prompt = await build(
            [jurisdiction_aspect, agent_context_aspect],
            jurisdictions=["IE"],
            agent_id="ie-vat",
        )

        assert prompt.index("Agent Context") < prompt.index("Jurisdiction Context")

    @pytest.mark.asyncio
    async def test_build_prompt_with_default_aspects(self):
        prompt = await build_prompt_with_aspects(
            BASE,
            jurisdictions=["IE"],
            profile=PromptProfile(persona_type="investor"),
            additional_context=["Focus on CGT."],
        )

        assert prompt.startswith(BASE)
        assert "The user is an investor." in prompt
        assert "Focus on CGT." in prompt
        assert "rules from: IE" in prompt
        assert "IMPORTANT" not in prompt

    @pytest.mark.asyncio
    async def test_custom_builder(self):
        build_prompt = create_custom_prompt_builder(BASE, [disclaimer_aspect])

        prompt = await build_prompt()

        assert prompt.startswith(BASE)
        assert NON_ADVICE_DISCLAIMER in prompt
