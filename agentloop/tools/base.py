"""
Tool Base Types
===============

The provider-agnostic shapes every other tools module builds on:
exposed tool metadata, call results and the provider interface.

It imports nothing from the rest of agentloop.tools, so any tools
module can depend on it.
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Protocol, runtime_checkable

# Separator between provider name and tool name in exposed tool names
NAMESPACE_SEPARATOR = "__"


@dataclass(frozen=True)
class ToolDefinition:
    """
    Tool metadata, independent of any provider or model API.

    Attributes:
        name: Tool name (bare, or namespaced once registered)
        description: What the tool does (shown to the model)
        parameters: JSON Schema for the arguments object
    """
    name: str
    description: str
    parameters: dict

    def namespaced(self, provider_name: str) -> "ToolDefinition":
        """Return a copy exposed as "<provider>__<name>"."""
        return replace(self, name=f"{provider_name}{NAMESPACE_SEPARATOR}{self.name}")

    def to_openai_function(self) -> dict:
        """Convert to the OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters or {"type": "object", "properties": {}},
            },
        }


@dataclass
class ToolResult:
    """
    Standardized result of one tool call, as sent back to the model.

    Attributes:
        success: Whether the tool executed successfully
        data: The result data (any JSON-serializable value)
        error: Error message if success is False
    """
    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_message(self) -> str:
        """
        Format as the content of a tool message.

        Success sends the data itself as JSON; failure sends {"error": message}.
        """
        if self.success:
            return json.dumps(self.data, default=str, ensure_ascii=False)
        return json.dumps({"error": self.error}, ensure_ascii=False)


@runtime_checkable
class ToolProvider(Protocol):
    """
    A namespaced source of tools.

    connect() and list_tools() run once at session start; invoke() runs
    for every call the model makes; disconnect() runs once at the end.
    """

    name: str

    async def connect(self) -> None: ...

    async def list_tools(self) -> list[ToolDefinition]: ...

    async def invoke(self, name: str, arguments: dict) -> Any: ...

    async def disconnect(self) -> None: ...
