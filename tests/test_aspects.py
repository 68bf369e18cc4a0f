"""Tests for generic aspect composition."""

import pytest

from regguard.aspects import apply_aspects


async def echo(ctx: dict) -> list[str]:
    return [ctx["value"]]


class TestApplyAspects:
    @pytest.mark.asyncio
    async def test_no_aspects_calls_base(self):
        pipeline = apply_aspects(echo, [])
        assert await pipeline({"value": "base"}) == ["base"]

    @pytest.mark.asyncio
    async def test_first_aspect_is_outermost(self):
        async def first(ctx, next_):
            return [*await next_(ctx), "first"]

        async def second(ctx, next_):
            return [*await next_(ctx), "second"]

        pipeline = apply_aspects(echo, [first, second])
        assert await pipeline({"value": "base"}) == ["base", "second", "first"]

    @pytest.mark.asyncio
    async def test_aspect_can_rewrite_context(self):
        async def upper(ctx, next_):
            return await next_({**ctx, "value": ctx["value"].upper()})

        pipeline = apply_aspects(echo, [upper])
        assert await pipeline({"value": "base"}) == ["BASE"]

    @pytest.mark.asyncio
    async def test_aspect_can_short_circuit(self):
        calls = []

        async def base(ctx):
            calls.append("base")
            return ["base"]

        async def cached(ctx, next_):
            return ["cached"]

        pipeline = apply_aspects(base, [cached])
        assert await pipeline({}) == ["cached"]
        assert calls == []

    @pytest.mark.asyncio
    async def test_aspect_can_transform_errors(self):
        async def failing(ctx):
            raise KeyError("missing")

        async def translate(ctx, next_):
            try:
                return await next_(ctx)
            except KeyError as e:
                raise ValueError(f"bad input: {e}") from e

        pipeline = apply_aspects(failing, [translate])
        with pytest.raises(ValueError, match="bad input"):
            await pipeline({})
