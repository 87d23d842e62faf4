"""
Tool Executor
=============

Runs the tool calls of one assistant turn and reports every outcome.

The model must get exactly one result for every tool call it made, or
the next model request is rejected. So the executor never lets a tool
failure escape. Whatever goes wrong with one call becomes that call's
result:

    bad JSON arguments        -> {"error": "Invalid arguments for tool ..."}
    unknown tool / provider   -> {"error": "No tool provider named ..."}
    tool raised an exception  -> {"error": "<exception message>"}
    unsupported call type     -> {"error": "Unsupported tool call type ..."}

and the loop moves on to the next call.
"""

import json
from dataclasses import dataclass

from agentloop.agent.stream import FUNCTION_KIND, ToolCallRequest
from agentloop.errors import MalformedToolArguments, ToolDispatchError
from agentloop.tools import ToolRegistry, ToolResult
from agentloop.utils.logger import Logger

logger = Logger("ToolExecutor")


@dataclass
class ToolCallResult:
    """
    Result of executing a tool call.

    Attributes:
        tool_call_id: The original tool call ID
        name: The exposed tool name
        result: The tool result
    """
    tool_call_id: str
    name: str
    result: ToolResult

    def to_message(self) -> str:
        """Content of the tool message for this call."""
        return self.result.to_message()


def parse_arguments(request: ToolCallRequest) -> dict:
    """
    Parse a call's streamed argument text.

    Blank text means a call without arguments.

    Raises:
        MalformedToolArguments: Not JSON, or JSON that is not an object
    """
    raw = request.raw_arguments
    if not raw.strip():
        return {}

    try:
        arguments = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedToolArguments(request.tool_name, raw, str(e)) from e

    if not isinstance(arguments, dict):
        raise MalformedToolArguments(
            request.tool_name, raw, f"expected a JSON object, got {type(arguments).__name__}"
        )
    return arguments


class ToolExecutor:
    """
    Executes model tool calls against a registry.

    Example:
        executor = ToolExecutor(registry)
        for request in turn.tool_calls:
            outcome = await executor.execute_one(request)
            conversation.append_tool_result(outcome.tool_call_id, outcome.to_message())
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    async def execute_one(self, request: ToolCallRequest) -> ToolCallResult:
        """Run one tool call. Never raises for tool-level failures."""
        if request.kind != FUNCTION_KIND:
            logger.warning(f"Skipping non-function tool call: {request.kind} ({request.id})")
            return ToolCallResult(
                tool_call_id=request.id,
                name=request.tool_name,
                result=ToolResult.failed(f"Unsupported tool call type: {request.kind}"),
            )

        logger.info(f"Executing tool: {request.tool_name}")

        try:
            arguments = parse_arguments(request)
            data = await self.registry.invoke(request.tool_name, arguments)
            result = ToolResult.ok(data)
            logger.debug(f"Tool {request.tool_name} succeeded")
        except (MalformedToolArguments, ToolDispatchError) as e:
            logger.warning(str(e))
            result = ToolResult.failed(str(e))
        except Exception as e:
            logger.error(f"Tool {request.tool_name} failed", e)
            result = ToolResult.failed(str(e) or type(e).__name__)

        return ToolCallResult(tool_call_id=request.id, name=request.tool_name, result=result)
