"""Provider client for OpenAI-compatible chat completion APIs."""

import json
from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncOpenAI

from regguard.llm.client import LlmStreamChunk, Message, ProviderChatOptions


class OpenAICompatibleProvider:
    """Provider client for any OpenAI-compatible ``/chat/completions`` endpoint.

    OpenAI itself, Groq, Google's Gemini OpenAI endpoint and local servers
    (vLLM, Ollama, llama.cpp) all speak this protocol. Subclasses only supply
    defaults.
    """

    provider_id = "openai"

    def __init__(
        self,
        api_key: str = "none",
        base_url: str | None = None,
        timeout: int = 120,
        temperature: float = 0.3,
        max_tokens: int | None = 2048,
    ) -> None:
        """Initialise the client.

        Args:
            api_key: API key (local backends ignore this but the SDK requires one).
            base_url: Endpoint override; None uses api.openai.com.
            timeout: Request timeout in seconds.
            temperature: Default sampling temperature.
            max_tokens: Default completion budget.
        """
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout)

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert internal Message format to OpenAI format."""
        openai_messages: list[dict[str, Any]] = []

        for msg in messages:
            message_dict: dict[str, Any] = {
                "role": msg.role,
                "content": msg.content,
            }

            if msg.tool_calls:
                message_dict["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments),
                        },
                    }
                    for tc in msg.tool_calls
                ]

            if msg.tool_call_id:
                message_dict["tool_call_id"] = msg.tool_call_id
            if msg.name:
                message_dict["name"] = msg.name

            openai_messages.append(message_dict)

        return openai_messages

    def _build_params(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None,
    ) -> dict[str, Any]:
        options = options or ProviderChatOptions()

        params: dict[str, Any] = {
            "model": model,
            "messages": self._convert_messages(messages),
            "temperature": (
                options.temperature if options.temperature is not None else self.temperature
            ),
        }

        max_tokens = options.max_tokens or self.max_tokens
        if max_tokens:
            params["max_tokens"] = max_tokens

        if options.tools:
            params["tools"] = options.tools
            params["tool_choice"] = options.tool_choice or "auto"

        return params

    async def chat(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            messages: Conversation history.
            model: Model name.
            options: Sampling and tool options.

        Returns:
            Response text.
        """
        params = self._build_params(messages, model, options)
        response = await self.client.chat.completions.create(**params)
        return response.choices[0].message.content or ""

    async def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Stream a completion.

        Tool-call argument fragments are accumulated per index and emitted as
        one ``tool_call`` chunk each once the stream ends.

        Yields:
            Text and tool-call chunks.
        """
        params = self._build_params(messages, model, options)
        params["stream"] = True

        pending: dict[int, dict[str, Any]] = {}
        stream = await self.client.chat.completions.create(**params)

        async for chunk in stream:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta

            if delta.content:
                yield LlmStreamChunk.text(delta.content)

            for tc in delta.tool_calls or []:
                entry = pending.setdefault(tc.index, {"id": None, "name": "", "arguments": ""})
                if tc.id:
                    entry["id"] = tc.id
                if tc.function is not None:
                    if tc.function.name:
                        entry["name"] += tc.function.name
                    if tc.function.arguments:
                        entry["arguments"] += tc.function.arguments

        for index in sorted(pending):
            entry = pending[index]
            yield LlmStreamChunk.tool_call(entry["id"], entry["name"], entry["arguments"] or "{}")

    async def close(self) -> None:
        await self.client.close()
