"""Provider client protocol and chat data types."""

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable


@dataclass
class Message:
    """A message in the conversation."""

    role: str  # "system", "user", "assistant", "tool"
    content: str
    tool_calls: list["ToolCall"] | None = None
    tool_call_id: str | None = None  # For tool response messages
    name: str | None = None  # Tool name for tool response messages


@dataclass
class ToolCall:
    """A tool call requested by the LLM."""

    id: str
    name: str
    arguments: dict[str, Any]


ChunkType = Literal["text", "tool_call", "tool_result", "error", "done"]


@dataclass
class LlmStreamChunk:
    """One event of a streamed chat response.

    Tool chunks expose ``tool_name``, ``arguments`` and ``payload`` as
    aliases of ``name``, ``args_json`` (parsed) and ``result`` for consumers
    written against the older chunk shape.
    """

    type: ChunkType
    delta: str | None = None
    tool_call_id: str | None = None
    name: str | None = None
    args_json: str | None = None
    result: Any = None
    error: Exception | None = None

    @property
    def tool_name(self) -> str | None:
        return self.name

    @property
    def arguments(self) -> dict[str, Any] | None:
        if self.args_json is None:
            return None
        try:
            parsed = json.loads(self.args_json)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None

    @property
    def payload(self) -> Any:
        if self.type == "tool_result":
            return self.result
        return self.arguments

    @classmethod
    def text(cls, delta: str) -> "LlmStreamChunk":
        return cls(type="text", delta=delta)

    @classmethod
    def tool_call(cls, tool_call_id: str | None, name: str, args_json: str) -> "LlmStreamChunk":
        return cls(type="tool_call", tool_call_id=tool_call_id, name=name, args_json=args_json)

    @classmethod
    def failure(cls, error: Exception) -> "LlmStreamChunk":
        return cls(type="error", error=error)

    @classmethod
    def done(cls) -> "LlmStreamChunk":
        return cls(type="done")

    def to_dict(self) -> dict[str, Any]:
        """Serialize for SSE/JSON consumers, including legacy tool aliases."""
        data: dict[str, Any] = {"type": self.type}
        if self.type == "text":
            data["delta"] = self.delta or ""
        elif self.type in ("tool_call", "tool_result"):
            data.update(
                {
                    "toolCallId": self.tool_call_id,
                    "name": self.name,
                    "argsJson": self.args_json,
                    "toolName": self.tool_name,
                    "arguments": self.arguments,
                    "payload": self.payload,
                }
            )
            if self.type == "tool_result":
                data["result"] = self.result
        elif self.type == "error":
            data["error"] = str(self.error) if self.error else "Unknown error"
        return data


@dataclass
class ProviderChatOptions:
    """Per-call options handed to a provider client."""

    temperature: float | None = None
    max_tokens: int | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None


@dataclass
class LlmCompletionOptions:
    """Caller-facing options for router chat calls."""

    model: str | None = None
    task: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    tenant_id: str | None = None
    user_id: str | None = None
    egress_mode_override: str | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class LlmProviderClient(Protocol):
    """Protocol for provider client implementations."""

    async def chat(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None = None,
    ) -> str:
        """Generate a full response.

        Args:
            messages: Conversation history
            model: Provider model identifier
            options: Sampling and tool options

        Returns:
            Response text
        """
        ...


@runtime_checkable
class StreamingProviderClient(LlmProviderClient, Protocol):
    """Provider client that can also stream."""

    def stream_chat(
        self,
        messages: list[Message],
        model: str,
        options: ProviderChatOptions | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Stream a response as text and tool-call chunks."""
        ...
