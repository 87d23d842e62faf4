"""
Shared test fixtures.

Nothing here talks to a real model or spawns a tool server: the model is
a ScriptedTransport that replays canned fragment lists, and tools are
in-process LocalToolProviders.
"""

from typing import Any

import pytest

from agentloop.agent.stream import StreamFragment
from agentloop.errors import TransportFailure
from agentloop.tools import FunctionTool, LocalToolProvider, ToolDefinition


# -----------------------------------------------------------------------------
# Scripted model
# -----------------------------------------------------------------------------

def text_reply(text: str) -> list[StreamFragment]:
    """A model reply that streams text in two pieces."""
    middle = len(text) // 2
    return [StreamFragment(content=text[:middle]), StreamFragment(content=text[middle:])]


def tool_reply(*calls: tuple[str, str, str], content: str | None = None) -> list[StreamFragment]:
    """
    A model reply asking for tools.

    Each call is (id, tool_name, arguments_json). Arguments are streamed in
    two pieces to mimic the real API.
    """
    fragments = [StreamFragment(content=content)] if content else []
    for index, (call_id, name, arguments) in enumerate(calls):
        middle = len(arguments) // 2
        fragments.append(StreamFragment(index=index, call_id=call_id, name=name, kind="function"))
        fragments.append(StreamFragment(index=index, arguments=arguments[:middle]))
        fragments.append(StreamFragment(index=index, arguments=arguments[middle:]))
    return fragments


class ScriptedTransport:
    """
    Replays one fragment list per model call, in order.

    An Exception in the script is raised instead of streaming. Every
    request is recorded so tests can inspect what the model was sent.
    """

    def __init__(self, replies: list):
        self.replies = list(replies)
        self.requests: list[dict[str, Any]] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def start_call(self, messages, tools):
        self.requests.append({"messages": [dict(m) for m in messages], "tools": list(tools)})
        if not self.replies:
            raise TransportFailure("script exhausted")

        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        for fragment in reply:
            yield fragment


# -----------------------------------------------------------------------------
# Tools
# -----------------------------------------------------------------------------

NUMBER_PAIR = {
    "type": "object",
    "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
    "required": ["a", "b"],
}


async def _add(params: dict) -> dict:
    return {"sum": params["a"] + params["b"]}


async def _multiply(params: dict) -> dict:
    return {"product": params["a"] * params["b"]}


async def _explode(params: dict) -> dict:
    raise RuntimeError("calculator on fire")


def make_calc_provider(name: str = "calc") -> LocalToolProvider:
    return LocalToolProvider(name, [
        FunctionTool("add", "Add two numbers", NUMBER_PAIR, _add),
        FunctionTool("multiply", "Multiply two numbers", NUMBER_PAIR, _multiply),
        FunctionTool("explode", "Always fails", {"type": "object", "properties": {}}, _explode),
    ])


class RecordingProvider:
    """Provider that records its lifecycle and can be told to fail."""

    def __init__(
        self,
        name: str,
        fail_connect: bool = False,
        fail_list: bool = False,
        fail_disconnect: bool = False
    ):
        self.name = name
        self.fail_connect = fail_connect
        self.fail_list = fail_list
        self.fail_disconnect = fail_disconnect
        self.connected = False
        self.disconnect_calls = 0
        self.invocations: list[tuple[str, dict]] = []

    async def connect(self) -> None:
        if self.fail_connect:
            raise ConnectionError("server not reachable")
        self.connected = True

    async def list_tools(self) -> list[ToolDefinition]:
        if self.fail_list:
            raise RuntimeError("tools/list timed out")
        return [ToolDefinition("echo", "Echo the arguments back", {"type": "object", "properties": {}})]

    async def invoke(self, name: str, arguments: dict) -> Any:
        self.invocations.append((name, arguments))
        return {"echo": arguments}

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        if self.fail_disconnect:
            raise RuntimeError("disconnect failed")
        self.connected = False


@pytest.fixture
def calc_provider():
    return make_calc_provider()


@pytest.fixture
def recording_provider():
    return RecordingProvider("rec")


# -----------------------------------------------------------------------------
# Skills
# -----------------------------------------------------------------------------

def write_skill(root, directory: str, text: str):
    skill_dir = root / directory
    skill_dir.mkdir(parents=True, exist_ok=True)
    path = skill_dir / "SKILL.md"
    path.write_text(text, encoding="utf-8")
    return path


REVIEW_SKILL = """---
name: code-review
description: Review a diff for bugs and style problems
version: 1.0
triggers:
  - review
  - "pull request"
---
# Code Review

Read the diff twice before commenting.
"""

NOTES_SKILL = """---
name: release-notes
description: Write release notes from a changelog
triggers: changelog, release
---
# Release Notes

Group entries by type.
"""


@pytest.fixture
def skills_dir(tmp_path):
    root = tmp_path / "skills"
    write_skill(root, "code-review", REVIEW_SKILL)
    write_skill(root, "release-notes", NOTES_SKILL)
    return root
