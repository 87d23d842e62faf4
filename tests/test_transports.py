"""Model transport and MCP provider, exercised against fake clients."""

from types import SimpleNamespace

import httpx
import openai
import pytest
from mcp import types as mcp_types

from agentloop.agent.llm import OpenAIChatTransport
from agentloop.agent.stream import assemble_stream
from agentloop.errors import TransportFailure
from agentloop.tools.mcp_client import MCPServerProvider


def _chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _call_delta(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        type="function" if call_id else None,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


class FakeCompletions:
    def __init__(self, chunks=(), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.params = None

    async def create(self, **params):
        self.params = params
        if self.error:
            raise self.error

        async def stream():
            for chunk in self.chunks:
                yield chunk

        return stream()


def _transport(completions, on_text=None):
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIChatTransport(api_key="sk-test", model="test-model", on_text=on_text, client=client)


class TestOpenAIChatTransport:
    async def test_streams_text_and_echoes_it(self):
        echoed = []
        completions = FakeCompletions([_chunk("Hel"), _chunk("lo"), SimpleNamespace(choices=[])])
        transport = _transport(completions, on_text=echoed.append)

        turn = await assemble_stream(transport.start_call([{"role": "user", "content": "hi"}], []))

        assert turn.content == "Hello"
        assert echoed == ["Hel", "lo"]
        assert completions.params["stream"] is True
        assert completions.params["model"] == "test-model"
        assert "tools" not in completions.params

    async def test_tools_are_sent_when_present(self):
        tools = [{"type": "function", "function": {"name": "calc__add", "parameters": {}}}]
        completions = FakeCompletions([
            _chunk(tool_calls=[_call_delta(0, "call_1", "calc__add", "")]),
            _chunk(tool_calls=[_call_delta(0, arguments='{"a": 1}')]),
        ])

        turn = await assemble_stream(_transport(completions).start_call([], tools))

        assert completions.params["tools"] == tools
        assert turn.tool_calls[0].id == "call_1"
        assert turn.tool_calls[0].raw_arguments == '{"a": 1}'

    async def test_api_errors_become_transport_failures(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        completions = FakeCompletions(error=openai.APIConnectionError(request=request))

        with pytest.raises(TransportFailure):
            await assemble_stream(_transport(completions).start_call([], []))


class FakeSession:
    def __init__(self, is_error=False):
        self.is_error = is_error
        self.calls = []

    async def list_tools(self):
        return mcp_types.ListToolsResult(tools=[
            mcp_types.Tool(
                name="add",
                description="Add two numbers",
                inputSchema={"type": "object", "properties": {"a": {"type": "number"}}},
            ),
        ])

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        return mcp_types.CallToolResult(
            content=[mcp_types.TextContent(type="text", text="3")],
            isError=self.is_error,
        )


class TestMCPServerProvider:
    def test_needs_exactly_one_transport(self):
        with pytest.raises(ValueError):
            MCPServerProvider("x")

    async def test_calls_before_connect_fail(self):
        provider = MCPServerProvider.http("docs", "http://localhost:3000/sse")
        with pytest.raises(RuntimeError, match="not connected"):
            await provider.list_tools()
        # Disconnecting a provider that never connected is a no-op
        await provider.disconnect()

    async def test_list_tools_and_invoke(self):
        provider = MCPServerProvider.stdio("calc", "calc-server")
        session = FakeSession()
        provider._session = session

        [tool] = await provider.list_tools()
        assert tool.name == "add"
        assert tool.parameters["properties"] == {"a": {"type": "number"}}

        result = await provider.invoke("add", {"a": 1, "b": 2})
        assert session.calls == [("add", {"a": 1, "b": 2})]
        assert result["content"] == [{"type": "text", "text": "3"}]
        assert result["isError"] is False

    async def test_tool_level_errors_are_returned_not_raised(self):
        provider = MCPServerProvider.stdio("calc", "calc-server")
        provider._session = FakeSession(is_error=True)

        result = await provider.invoke("add", {})
        assert result["isError"] is True
