"""
MCP Server Provider
===================

A tool provider backed by a Model Context Protocol server.

Two transports are supported:
- stdio: the server is launched as a subprocess (e.g. "uvx mcp-server-fetch")
- http: the server is already running and speaks MCP over server-sent events

Each provider holds one ClientSession for the life of the agent session.
The session and its transport are entered on an AsyncExitStack in
connect() and closed together in disconnect(), which must run in the
same task that connected.

Example:
    provider = MCPServerProvider.stdio("fetch", "uvx", ["mcp-server-fetch"])
    await provider.connect()
    tools = await provider.list_tools()
    result = await provider.invoke("fetch", {"url": "https://example.com"})
    await provider.disconnect()
"""

import asyncio
from contextlib import AsyncExitStack
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client

from agentloop.tools.base import ToolDefinition
from agentloop.utils.config import HttpServerConfig, ServerConfig, StdioServerConfig
from agentloop.utils.logger import Logger

logger = Logger("MCP")


class MCPServerProvider:
    """
    Tool provider talking to one MCP server.

    Attributes:
        name: Provider namespace (the "calc" in "calc__add")
    """

    def __init__(
        self,
        name: str,
        *,
        stdio_params: StdioServerParameters | None = None,
        url: str | None = None,
        init_timeout: float = 30.0
    ):
        if (stdio_params is None) == (url is None):
            raise ValueError("MCPServerProvider needs exactly one of stdio_params or url")

        self.name = name
        self._stdio_params = stdio_params
        self._url = url
        self._init_timeout = init_timeout
        self._stack: AsyncExitStack | None = None
        self._session: ClientSession | None = None
        self._logger = logger.child(name)

    @classmethod
    def stdio(
        cls,
        name: str,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None
    ) -> "MCPServerProvider":
        params = StdioServerParameters(command=command, args=args or [], env=env)
        return cls(name, stdio_params=params)

    @classmethod
    def http(cls, name: str, url: str) -> "MCPServerProvider":
        return cls(name, url=url)

    @property
    def connected(self) -> bool:
        return self._session is not None

    def _describe(self) -> str:
        if self._url:
            return self._url
        return " ".join([self._stdio_params.command, *self._stdio_params.args])

    async def connect(self) -> None:
        """
        Start the transport and perform the MCP handshake.

        On failure everything opened so far is closed again before the
        error propagates.
        """
        if self._session is not None:
            return

        self._logger.info(f"Connecting to {self._describe()}")
        stack = AsyncExitStack()
        try:
            if self._url:
                read_stream, write_stream = await stack.enter_async_context(sse_client(self._url))
            else:
                read_stream, write_stream = await stack.enter_async_context(stdio_client(self._stdio_params))

            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await asyncio.wait_for(session.initialize(), timeout=self._init_timeout)
        except BaseException:
            await stack.aclose()
            raise

        self._stack = stack
        self._session = session

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise RuntimeError(f"MCP provider '{self.name}' is not connected")
        return self._session

    async def list_tools(self) -> list[ToolDefinition]:
        session = self._require_session()
        result = await session.list_tools()

        tools = [
            ToolDefinition(
                name=tool.name,
                description=tool.description or "",
                parameters=dict(tool.inputSchema or {}),
            )
            for tool in result.tools
        ]
        self._logger.debug(f"Listed {len(tools)} tools", {"tools": [t.name for t in tools]})
        return tools

    async def invoke(self, name: str, arguments: dict) -> Any:
        """
        Call a tool on the server.

        Returns:
            The CallToolResult as plain JSON data (content blocks, and
            isError when the server reports a tool-level failure)
        """
        session = self._require_session()
        result = await session.call_tool(name, arguments)
        if result.isError:
            self._logger.warning(f"Tool '{name}' reported an error")
        return result.model_dump(mode="json", exclude_none=True)

    async def disconnect(self) -> None:
        if self._stack is None:
            return

        stack = self._stack
        self._stack = None
        self._session = None
        await stack.aclose()


def provider_from_config(config: ServerConfig) -> MCPServerProvider:
    """Build a provider from a server definition in mcp_servers.json."""
    if isinstance(config, HttpServerConfig):
        return MCPServerProvider.http(config.name, config.url)
    if isinstance(config, StdioServerConfig):
        return MCPServerProvider.stdio(config.name, config.command, config.args, config.env)
    raise TypeError(f"Unsupported server config: {config!r}")
