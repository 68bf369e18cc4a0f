"""Tests for OpenAI-compatible provider clients."""

import json

import pytest
import respx
from httpx import Response

from regguard.llm.client import Message, ProviderChatOptions, ToolCall
from regguard.llm.openai_compat import OpenAICompatibleProvider
from regguard.llm.providers import (
    GeminiProvider,
    GroqProvider,
    LocalProvider,
    OpenAIProvider,
)

BASE_URL = "http://llm:8000/v1"

SIMPLE_RESPONSE = {
    "id": "chatcmpl-123",
    "object": "chat.completion",
    "created": 1677652288,
    "model": "test-model",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "The threshold is EUR 85,000."},
            "finish_reason": "stop",
        }
    ],
}

RUN_CODE_TOOL = {
    "type": "function",
    "function": {"name": "run_code", "parameters": {"type": "object", "properties": {}}},
}


def sse(*events: dict) -> bytes:
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def stream_chunk(delta: dict) -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1677652288,
        "model": "test-model",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


@pytest.fixture
def provider() -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(api_key="sk-test", base_url=BASE_URL)


# -- Provider defaults ------------------------------------------------------


def test_groq_default_url():
    assert "api.groq.com" in str(GroqProvider(api_key="gsk").client.base_url)


def test_gemini_default_url():
    assert "generativelanguage" in str(GeminiProvider(api_key="g").client.base_url)


def test_local_provider_without_key():
    provider = LocalProvider(base_url="http://gpu:8000/v1")
    assert provider.client.api_key == "none"
    assert "gpu:8000" in str(provider.client.base_url)


def test_provider_ids():
    assert OpenAIProvider(api_key="sk").provider_id == "openai"
    assert GroqProvider(api_key="gsk").provider_id == "groq"
    assert GeminiProvider(api_key="g").provider_id == "google"
    assert LocalProvider().provider_id == "local"


# -- Chat -------------------------------------------------------------------


@pytest.mark.asyncio
@respx.mock
async def test_chat_returns_content(provider: OpenAICompatibleProvider) -> None:
    respx.post(f"{BASE_URL}/chat/completions").mock(
        return_value=Response(200, json=SIMPLE_RESPONSE)
    )

    reply = await provider.chat([Message(role="user", content="Hi")], "test-model")

    assert reply == "The threshold is EUR 85,000."


@pytest.mark.asyncio
@respx.mock
async def test_chat_request_body(provider: OpenAICompatibleProvider) -> None:
    route = respx.post(f"{BASE_URL}/chat/completions").mock(
        return_value=Response(200, json=SIMPLE_RESPONSE)
    )

    await provider.chat(
        [Message(role="user", content="Hi")],
        "gpt-4o",
        ProviderChatOptions(temperature=0.1, max_tokens=256, tools=[RUN_CODE_TOOL]),
    )

    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "gpt-4o"
    assert body["temperature"] == 0.1
    assert body["max_tokens"] == 256
    assert body["tools"] == [RUN_CODE_TOOL]
    assert body["tool_choice"] == "auto"


@pytest.mark.asyncio
@respx.mock
async def test_chat_uses_provider_defaults(provider: OpenAICompatibleProvider) -> None:
    route = respx.post(f"{BASE_URL}/chat/completions").mock(
        return_value=Response(200, json=SIMPLE_RESPONSE)
    )

    await provider.chat([Message(role="user", content="Hi")], "test-model")

    body = json.loads(route.calls.last.request.content)
    assert body["temperature"] == 0.3
    assert body["max_tokens"] == 2048
    assert "tools" not in body


def test_convert_messages_with_tool_calls(provider: OpenAICompatibleProvider) -> None:
    messages = [
        Message(role="user", content="Compute my tax"),
        Message(
            role="assistant",
            content="",
            tool_calls=[ToolCall(id="call_1", name="run_code", arguments={"code": "1+1"})],
        ),
        Message(role="tool", content="2", tool_call_id="call_1", name="run_code"),
    ]

    converted = provider._convert_messages(messages)

    assert converted[1]["tool_calls"][0]["function"] == {
        "name": "run_code",
        "arguments": json.dumps({"code": "1+1"}),
    }
    assert converted[2]["tool_call_id"] == "call_1"
    assert converted[2]["name"] == "run_code"


# -- Streaming --------------------------------------------------------------


@pytest.mark.asyncio
@respx.mock
async def test_stream_text(provider: OpenAICompatibleProvider) -> None:
    body = sse(
        stream_chunk({"role": "assistant", "content": "Hel"}),
        stream_chunk({"content": "lo"}),
    )
    respx.post(f"{BASE_URL}/chat/completions").mock(
        return_value=Response(200, content=body, headers={"content-type": "text/event-stream"})
    )

    chunks = [c async for c in provider.stream_chat([Message(role="user", content="Hi")], "m")]

    assert [c.type for c in chunks] == ["text", "text"]
    assert "".join(c.delta for c in chunks) == "Hello"


@pytest.mark.asyncio
@respx.mock
async def test_stream_accumulates_tool_call_fragments(provider: OpenAICompatibleProvider) -> None:
    body = sse(
        stream_chunk(
            {
                "tool_calls": [
                    {
                        "index": 0,
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "run_code", "arguments": '{"language": '},
                    }
                ]
            }
        ),
        stream_chunk(
            {"tool_calls": [{"index": 0, "function": {"arguments": '"python"}'}}]}
        ),
    )
    respx.post(f"{BASE_URL}/chat/completions").mock(
        return_value=Response(200, content=body, headers={"content-type": "text/event-stream"})
    )

    chunks = [c async for c in provider.stream_chat([Message(role="user", content="Hi")], "m")]

    assert len(chunks) == 1
    assert chunks[0].type == "tool_call"
    assert chunks[0].tool_call_id == "call_1"
    assert chunks[0].name == "run_code"
    assert chunks[0].arguments == {"language": "python"}
