"""Anthropic Messages API provider using httpx.

Uses httpx directly (already a project dependency) rather than the
anthropic SDK.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from regguard.errors import LlmError
from regguard.llm.client import LlmStreamChunk, Message, ProviderChatOptions

logger = logging.getLogger(__name__)

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicProvider:
    """Provider client for the Anthropic Messages API."""

    provider_id = "anthropic"

    def __init__(
        self,
        api_key: str,
        base_url: str = ANTHROPIC_BASE_URL,
        max_tokens: int = 2048,
        timeout: int = 120,
        temperature: float = 0.3,
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key
            base_url: API base URL
            max_tokens: Default max tokens for responses
            timeout: Request timeout in seconds
            temperature: Default sampling temperature
        """
        self.max_tokens = max_tokens
        self.temperature = temperature

        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_API_VERSION,
                "content-type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
        )

    def _convert_messages(self, messages: list[Message]) -> tuple[str | None, list[dict[str, Any]]]:
        """Convert internal Message format to Anthropic format.

        Anthropic takes the system prompt separately from the messages array.

        Args:
            messages: List of Message objects

        Returns:
            Tuple of (system_prompt, anthropic_messages)
        """
        system_parts: list[str] = []
        anthropic_messages: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
                continue

            if msg.role == "assistant" and msg.tool_calls:
                content_blocks: list[dict[str, Any]] = []
                if msg.content:
                    content_blocks.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls:
                    content_blocks.append(
                        {
                            "type": "tool_use",
                            "id": tc.id,
                            "name": tc.name,
                            "input": tc.arguments,
                        }
                    )
                anthropic_messages.append({"role": "assistant", "content": content_blocks})

            elif msg.role == "tool":
                anthropic_messages.append(
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": msg.tool_call_id,
                                "content": msg.content,
                            }
                        ],
                    }
                )

            else:
                anthropic_messages.append({"role": msg.role, "content": msg.content})

        system_prompt = "\n\n".join(system_parts) if system_parts else None
        return system_prompt, anthropic_messages

    def _convert_tools(self, tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Convert OpenAI function format to Anthropic tool format."""
        anthropic_tools = []
        for tool in tools:
            func = tool.get("function", tool)
            anthropic_tools.append(
                {
                    "name": func["name"],
                    "description": func.get("description", ""),
                    "input_schema": func.get("parameters", {"type": "object", "properties": {}}),
                }
            )
        return anthropic_tools

    def _build_payload(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None,
    ) -> dict[str, Any]:
        options = options or ProviderChatOptions()
        system_prompt, anthropic_messages = self._convert_messages(messages)

        payload: dict[str, Any] = {
            "model": model,
            "messages": anthropic_messages,
            "max_tokens": options.max_tokens or self.max_tokens,
            "temperature": (
                options.temperature if options.temperature is not None else self.temperature
            ),
        }

        if system_prompt:
            payload["system"] = system_prompt

        if options.tools:
            payload["tools"] = self._convert_tools(options.tools)
            if isinstance(options.tool_choice, str) and options.tool_choice in ("auto", "any"):
                payload["tool_choice"] = {"type": options.tool_choice}

        return payload

    async def chat(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None = None,
    ) -> str:
        """Generate a completion from Anthropic.

        Args:
            messages: Conversation history
            model: Model name (e.g. "claude-3-5-sonnet-20241022")
            options: Sampling and tool options

        Returns:
            Concatenated text blocks of the response
        """
        payload = self._build_payload(messages, model, options)

        response = await self.client.post("/v1/messages", json=payload)
        response.raise_for_status()
        data = response.json()

        text_parts = [block["text"] for block in data.get("content", []) if block["type"] == "text"]
        return "\n".join(text_parts)

    async def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Stream a completion from Anthropic.

        Yields:
            Text chunks, and one tool-call chunk per completed tool_use block
        """
        payload = self._build_payload(messages, model, options)
        payload["stream"] = True

        tool_blocks: dict[int, dict[str, Any]] = {}

        async with self.client.stream("POST", "/v1/messages", json=payload) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                if not line.startswith("data: "):
                    continue
                data = json.loads(line[6:])
                event_type = data.get("type")

                if event_type == "content_block_start":
                    block = data.get("content_block", {})
                    if block.get("type") == "tool_use":
                        tool_blocks[data["index"]] = {
                            "id": block.get("id"),
                            "name": block.get("name", ""),
                            "input": "",
                        }

                elif event_type == "content_block_delta":
                    delta = data.get("delta", {})
                    if delta.get("type") == "text_delta":
                        yield LlmStreamChunk.text(delta["text"])
                    elif delta.get("type") == "input_json_delta":
                        block = tool_blocks.get(data.get("index"))
                        if block is not None:
                            block["input"] += delta.get("partial_json", "")

                elif event_type == "content_block_stop":
                    block = tool_blocks.pop(data.get("index"), None)
                    if block is not None:
                        yield LlmStreamChunk.tool_call(
                            block["id"], block["name"], block["input"] or "{}"
                        )

                elif event_type == "error":
                    error = data.get("error") or {}
                    message = error.get("message") or error.get("type") or "Anthropic stream error"
                    logger.error("Anthropic stream error event: %s", message)
                    raise LlmError(message)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
