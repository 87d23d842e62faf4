"""
Errors
======

Exception hierarchy for the agent.

Two families matter for the agent loop:

- Failures local to a single tool call (bad arguments, unknown tool,
  unknown provider, missing skill). These never escape the loop: the
  tool executor turns them into a tool message carrying {"error": ...}
  so the model still gets an answer for every call it made.
- Failures of the model call itself (transport errors, empty responses).
  These end the current user turn and propagate to the caller of
  Agent.send_message().
"""


class AgentError(Exception):
    """Base class for every error raised by agentloop."""


class ConfigError(AgentError):
    """Configuration is missing or malformed."""


# ==============================================================================
# Model call failures (loop-fatal)
# ==============================================================================

class TransportFailure(AgentError):
    """The model call itself failed (network, auth, rate limit, ...)."""


class EmptyResponse(AgentError):
    """The model stream produced neither text nor tool calls."""

    def __init__(self, message: str = "No message in completion response"):
        super().__init__(message)


# ==============================================================================
# Tool call failures (isolated to one call)
# ==============================================================================

class MalformedToolArguments(AgentError):
    """A tool call's argument text is not a valid JSON object."""

    def __init__(self, tool_name: str, raw_arguments: str, reason: str):
        self.tool_name = tool_name
        self.raw_arguments = raw_arguments
        super().__init__(f"Invalid arguments for tool '{tool_name}': {reason}")


class ToolDispatchError(AgentError):
    """A tool name could not be routed to something that can run it."""


class UnknownToolFormat(ToolDispatchError):
    """Tool name is not '<provider>__<tool>' and is not a builtin."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Invalid tool name format: '{tool_name}'")


class UnknownProvider(ToolDispatchError):
    """Tool name points at a provider that is not registered."""

    def __init__(self, provider_name: str):
        self.provider_name = provider_name
        super().__init__(f"No tool provider named '{provider_name}'")


class SkillNotFound(ToolDispatchError):
    """read_skill was asked for a skill that is not loaded."""

    def __init__(self, skill_name: str):
        self.skill_name = skill_name
        super().__init__(f"Skill not found: '{skill_name}'")


# ==============================================================================
# Setup and bookkeeping failures
# ==============================================================================

class ProviderConnectFailure(AgentError):
    """A tool provider could not connect or list its tools."""

    def __init__(self, provider_name: str, reason: str):
        self.provider_name = provider_name
        super().__init__(f"Failed to connect tool provider '{provider_name}': {reason}")


class RegistryError(AgentError):
    """Invalid registry operation (duplicate name, registry sealed)."""


class ConversationError(AgentError):
    """An append would break the tool-call ordering rules."""


class SkillParseError(AgentError):
    """A SKILL.md file is malformed."""
