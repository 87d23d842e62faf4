import json

import pytest

from agentloop.agent.stream import ToolCallRequest
from agentloop.agent.tools_executor import ToolExecutor, parse_arguments
from agentloop.errors import MalformedToolArguments
from agentloop.tools import ToolRegistry


def _request(arguments: str, name: str = "calc__add", kind: str = "function") -> ToolCallRequest:
    return ToolCallRequest(id="c1", tool_name=name, raw_arguments=arguments, kind=kind)


@pytest.fixture
async def executor(calc_provider):
    registry = ToolRegistry()
    await registry.add_provider(calc_provider)
    registry.seal()
    return ToolExecutor(registry)


class TestParseArguments:
    def test_object(self):
        assert parse_arguments(_request('{"a": 1}')) == {"a": 1}

    @pytest.mark.parametrize("raw", ["", "  "])
    def test_blank_means_no_arguments(self, raw):
        assert parse_arguments(_request(raw)) == {}

    @pytest.mark.parametrize("raw", ['{"a": 1', "not json", "42", '"text"', "null"])
    def test_malformed(self, raw):
        with pytest.raises(MalformedToolArguments) as excinfo:
            parse_arguments(_request(raw))
        assert excinfo.value.raw_arguments == raw
        assert excinfo.value.tool_name == "calc__add"


class TestToolExecutor:
    async def test_success(self, executor):
        outcome = await executor.execute_one(_request('{"a": 4, "b": 5}'))
        assert outcome.tool_call_id == "c1"
        assert outcome.result.success
        assert json.loads(outcome.to_message()) == {"sum": 9}

    async def test_missing_argument_is_reported(self, executor):
        outcome = await executor.execute_one(_request('{"a": 4}'))
        assert not outcome.result.success
        assert json.loads(outcome.to_message()) == {"error": "'b'"}

    async def test_unknown_local_tool_is_reported(self, executor):
        outcome = await executor.execute_one(_request("{}", name="calc__divide"))
        assert "has no tool 'divide'" in outcome.result.error

    async def test_non_function_kind_is_not_dispatched(self, executor):
        outcome = await executor.execute_one(_request('{"a": 1, "b": 1}', kind="code_interpreter"))
        assert outcome.result.error == "Unsupported tool call type: code_interpreter"

