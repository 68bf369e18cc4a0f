"""Base types for LLM-callable tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

# Tool function signature: async function taking the validated input model
ToolFunction = Callable[[Any], Awaitable[Any]]


@dataclass
class RegisteredTool:
    """A tool the model can call, described by a pydantic input model."""

    name: str
    description: str
    input_model: type[BaseModel]
    fn: ToolFunction

    def parameters_schema(self) -> dict[str, Any]:
        """JSON Schema of the tool's arguments."""
        return self.input_model.model_json_schema(by_alias=True)

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format.

        Returns:
            Dictionary matching OpenAI's function schema format
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }

    def validate(self, args: dict[str, Any] | BaseModel) -> BaseModel:
        """Validate raw arguments against the input model.

        Raises:
            pydantic.ValidationError: If the arguments don't match the schema
        """
        if isinstance(args, self.input_model):
            return args
        if isinstance(args, BaseModel):
            args = args.model_dump()
        return self.input_model.model_validate(args)

    async def execute(self, args: dict[str, Any] | BaseModel) -> Any:
        """Validate arguments and run the tool."""
        return await self.fn(self.validate(args))
