"""
Tools System
============

Tools are what the model can ask the agent to do. They come from
providers: each provider owns a namespace and exposes a set of tools,
usually by speaking the Model Context Protocol (MCP) to a server process
or HTTP endpoint.

Two providers may both ship a tool called "search", so the model never
sees bare provider tool names. Every tool is exposed as

    <provider>__<tool>        e.g. "calc__add", "fetch__fetch"

and the registry splits the name back apart when the model calls it.
Builtin tools that belong to no provider (the skill reader) keep their
bare name.

How a tool call flows:
1. At session start each provider connects and lists its tools
2. The registry flattens them into one list of OpenAI function tools
3. The model asks for "calc__add" with JSON arguments
4. The registry resolves provider "calc", tool "add" and invokes it
5. The result (or the error) goes back to the model as a tool message

This module provides:
- ToolDefinition for tool metadata in a provider-agnostic shape
- ToolResult for standardized results
- ToolProvider, the interface every provider implements
- FunctionTool and LocalToolProvider for in-process tools
- ToolRegistry for resolution and dispatch
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from agentloop.tools.base import NAMESPACE_SEPARATOR, ToolDefinition, ToolProvider, ToolResult
from agentloop.tools.registry import ResolvedTool, ToolRegistry
from agentloop.utils.logger import Logger

logger = Logger("Tools")


@dataclass
class FunctionTool:
    """
    A tool implemented by an async Python function.

    Example:
        async def add(params: dict) -> dict:
            return {"sum": params["a"] + params["b"]}

        tool = FunctionTool(
            name="add",
            description="Add two numbers",
            parameters={
                "type": "object",
                "properties": {
                    "a": {"type": "number"},
                    "b": {"type": "number"}
                },
                "required": ["a", "b"]
            },
            execute=add
        )
    """
    name: str
    description: str
    parameters: dict
    execute: Callable[[dict], Awaitable[Any]]

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )


class LocalToolProvider:
    """
    A provider whose tools run in-process.

    Useful for small helper tools that do not justify a separate MCP
    server, and for exercising the agent without any subprocesses.

    Example:
        calc = LocalToolProvider("calc", [add_tool, multiply_tool])
        await registry.add_provider(calc)     # exposes calc__add, calc__multiply
    """

    def __init__(self, name: str, tools: list[FunctionTool] | None = None):
        self.name = name
        self._tools: dict[str, FunctionTool] = {}
        for tool in tools or []:
            self.add_tool(tool)

    def add_tool(self, tool: FunctionTool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already defined in provider '{self.name}'")
        self._tools[tool.name] = tool

    async def connect(self) -> None:
        logger.debug(f"Local provider '{self.name}' ready with {len(self._tools)} tools")

    async def list_tools(self) -> list[ToolDefinition]:
        return [tool.definition() for tool in self._tools.values()]

    async def invoke(self, name: str, arguments: dict) -> Any:
        tool = self._tools.get(name)
        if tool is None:
            raise KeyError(f"Provider '{self.name}' has no tool '{name}'")
        return await tool.execute(arguments)

    async def disconnect(self) -> None:
        pass


__all__ = [
    "NAMESPACE_SEPARATOR",
    "ToolDefinition",
    "ToolResult",
    "ToolProvider",
    "FunctionTool",
    "LocalToolProvider",
    "ResolvedTool",
    "ToolRegistry",
]
