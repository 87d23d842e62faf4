"""
Tool Registry
=============

Maps exposed tool names to whatever can run them.

The registry is built once during session setup (providers connected,
builtins registered) and then sealed. After that it is only read: the
agent loop resolves names and invokes tools, but nothing is added or
removed until the session ends.

Resolution of an exposed name:
1. A registered builtin name matches verbatim ("read_skill")
2. Otherwise split on the first "__": "calc__add" -> ("calc", "add")
3. No separator or an empty side -> UnknownToolFormat
4. No provider with that name -> UnknownProvider

The registry never retries and never catches invocation errors; the
tool executor decides how a failure is reported to the model.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from agentloop.errors import (
    ProviderConnectFailure,
    RegistryError,
    UnknownProvider,
    UnknownToolFormat,
)
from agentloop.tools.base import NAMESPACE_SEPARATOR, ToolDefinition, ToolProvider
from agentloop.utils.logger import Logger

logger = Logger("ToolRegistry")

BuiltinHandler = Callable[[dict], Awaitable[Any]]


@dataclass(frozen=True)
class ResolvedTool:
    """
    Where a tool call goes.

    Exactly one of provider or handler is set.

    Attributes:
        provider: The provider that owns the tool
        local_name: The tool's name inside its provider (or the builtin name)
        handler: The builtin implementation, for providerless tools
    """
    local_name: str
    provider: ToolProvider | None = None
    handler: BuiltinHandler | None = None

    async def invoke(self, arguments: dict) -> Any:
        if self.handler is not None:
            return await self.handler(arguments)
        return await self.provider.invoke(self.local_name, arguments)


class ToolRegistry:
    """
    Registry of tool providers and builtin tools for one agent session.

    Example:
        registry = ToolRegistry()
        await registry.add_provider(calc_provider)
        registry.register_builtin(skills.tool_definition(), skills.read_skill_tool)
        registry.seal()

        tools = registry.openai_tools()          # for the model
        result = await registry.invoke("calc__add", {"a": 1, "b": 2})

        await registry.disconnect_all()
    """

    def __init__(self):
        self._providers: dict[str, ToolProvider] = {}
        self._builtins: dict[str, BuiltinHandler] = {}
        self._definitions: list[ToolDefinition] = []
        self._unavailable: list[str] = []
        self._sealed = False

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._sealed:
            raise RegistryError("Tool registry is sealed; tools cannot be added mid-session")

    async def add_provider(self, provider: ToolProvider) -> bool:
        """
        Connect a provider and register its tools under its namespace.

        A provider that fails to connect or list its tools is recorded as
        unavailable and left out; the session goes on without it.

        Returns:
            True if the provider was registered
        """
        self._check_open()

        name = provider.name
        if not name or NAMESPACE_SEPARATOR in name:
            raise RegistryError(f"Invalid provider name: '{name}'")
        if name in self._providers:
            raise RegistryError(f"Provider '{name}' is already registered")

        try:
            await provider.connect()
        except Exception as e:
            self._mark_unavailable(ProviderConnectFailure(name, str(e)))
            return False

        try:
            tools = await provider.list_tools()
        except Exception as e:
            # Connected but unusable: close it before leaving it out
            try:
                await provider.disconnect()
            except Exception as close_error:
                logger.error(f"Failed to disconnect provider '{name}'", close_error)
            self._mark_unavailable(ProviderConnectFailure(name, str(e)))
            return False

        self._providers[name] = provider
        for tool in tools:
            self._definitions.append(tool.namespaced(name))

        logger.info(f"Provider '{name}' connected with {len(tools)} tools")
        return True

    def _mark_unavailable(self, failure: ProviderConnectFailure) -> None:
        logger.warning(str(failure))
        self._unavailable.append(failure.provider_name)

    def register_builtin(self, definition: ToolDefinition, handler: BuiltinHandler) -> None:
        """
        Register a providerless tool under its bare name.

        Raises:
            RegistryError: If the name is taken or the registry is sealed
        """
        self._check_open()
        if definition.name in self._builtins:
            raise RegistryError(f"Builtin tool '{definition.name}' is already registered")

        self._builtins[definition.name] = handler
        self._definitions.append(definition)
        logger.debug(f"Registered builtin tool: {definition.name}")

    def seal(self) -> None:
        """Freeze the tool list; the registry is read-only from here on."""
        self._sealed = True
        logger.debug(f"Registry sealed with {len(self._definitions)} tools")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    @property
    def unavailable(self) -> list[str]:
        """Providers that failed to connect during setup."""
        return list(self._unavailable)

    @property
    def definitions(self) -> list[ToolDefinition]:
        """All exposed tools, namespaced, in registration order."""
        return list(self._definitions)

    def list_names(self) -> list[str]:
        return [d.name for d in self._definitions]

    def openai_tools(self) -> list[dict]:
        """All exposed tools in OpenAI function format."""
        return [d.to_openai_function() for d in self._definitions]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def resolve(self, tool_name: str) -> ResolvedTool:
        """
        Work out which provider (or builtin) handles a tool name.

        Raises:
            UnknownToolFormat: Not a builtin and not "<provider>__<tool>"
            UnknownProvider: The provider segment names no registered provider
        """
        handler = self._builtins.get(tool_name)
        if handler is not None:
            return ResolvedTool(local_name=tool_name, handler=handler)

        provider_name, separator, local_name = tool_name.partition(NAMESPACE_SEPARATOR)
        if not separator or not provider_name or not local_name:
            raise UnknownToolFormat(tool_name)

        provider = self._providers.get(provider_name)
        if provider is None:
            raise UnknownProvider(provider_name)

        return ResolvedTool(local_name=local_name, provider=provider)

    async def invoke(self, tool_name: str, arguments: dict) -> Any:
        """Resolve a tool name and run the tool. Errors propagate."""
        resolved = self.resolve(tool_name)
        logger.debug(f"Invoking {tool_name}", {"arguments": arguments})
        return await resolved.invoke(arguments)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def disconnect_all(self) -> None:
        """
        Disconnect every provider. Safe to call more than once.

        A provider that fails to disconnect is logged and skipped so the
        rest still get closed.
        """
        providers = list(self._providers.items())
        self._providers.clear()

        for name, provider in providers:
            try:
                await provider.disconnect()
                logger.info(f"Disconnected provider '{name}'")
            except Exception as e:
                logger.error(f"Failed to disconnect provider '{name}'", e)
