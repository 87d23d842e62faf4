"""
Streaming Response Assembly
===========================

Rebuilds one complete assistant turn out of the incremental deltas of a
streamed chat completion.

With stream=True the API never sends a whole message. Text arrives as
small content deltas, and each tool call arrives in pieces tagged with an
index that says which in-flight call the piece belongs to:

    chunk 1: tool_calls=[{index: 0, id: "call_a", function: {name: "calc__add"}}]
    chunk 2: tool_calls=[{index: 0, function: {arguments: '{"a": 1'}}]
    chunk 3: tool_calls=[{index: 0, function: {arguments: ', "b": 2}'}}]

The assembler keeps one accumulator per index and only hands back the
finished turn once the stream is exhausted. Argument text is
concatenated as it arrives and is never parsed here; a half-received
JSON object is not an error until the stream has ended.

Rules per accumulator:
- id: the first non-empty value is kept
- name: the last non-empty value is kept
- arguments: every delta is appended in arrival order
- kind: the first non-empty value is kept (defaults to "function")

Indices are sparse keys, not positions: they need not start at 0 or be
contiguous.
"""

from collections.abc import AsyncIterable, Iterable
from dataclasses import dataclass, field
from typing import Any

from agentloop.errors import EmptyResponse
from agentloop.utils.logger import Logger

logger = Logger("Stream")

FUNCTION_KIND = "function"


@dataclass(frozen=True)
class StreamFragment:
    """
    One reduced delta from the model stream.

    A fragment with index=None only carries text. A fragment with an
    index carries data for the tool call at that index (and may carry
    text too).
    """
    index: int | None = None
    content: str | None = None
    call_id: str | None = None
    name: str | None = None
    arguments: str | None = None
    kind: str | None = None


@dataclass(frozen=True)
class ToolCallRequest:
    """
    A tool call requested by the model.

    Attributes:
        id: Opaque id assigned by the model provider
        tool_name: "<provider>__<tool>", or a bare builtin name
        raw_arguments: JSON text, exactly as streamed
        kind: Tool call type; only "function" is executable
    """
    id: str
    tool_name: str
    raw_arguments: str
    kind: str = FUNCTION_KIND

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "function": {
                "name": self.tool_name,
                "arguments": self.raw_arguments,
            },
        }


@dataclass(frozen=True)
class AssembledTurn:
    """The assistant turn reduced from all fragments of one model call."""
    content: str | None
    tool_calls: tuple[ToolCallRequest, ...] = ()

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


@dataclass
class _ToolCallAccumulator:
    call_id: str | None = None
    name: str | None = None
    arguments: list[str] = field(default_factory=list)
    kind: str | None = None

    def update(self, fragment: StreamFragment) -> None:
        if fragment.call_id and not self.call_id:
            self.call_id = fragment.call_id
        if fragment.name:
            self.name = fragment.name
        if fragment.arguments:
            self.arguments.append(fragment.arguments)
        if fragment.kind and not self.kind:
            self.kind = fragment.kind

    def to_request(self) -> ToolCallRequest:
        return ToolCallRequest(
            id=self.call_id or "",
            tool_name=self.name or "",
            raw_arguments="".join(self.arguments),
            kind=self.kind or FUNCTION_KIND,
        )


class StreamAssembler:
    """
    Single-pass reducer for the fragments of one model call.

    Example:
        assembler = StreamAssembler()
        async for fragment in transport.start_call(messages, tools):
            assembler.feed(fragment)
        turn = assembler.finish()
    """

    def __init__(self):
        self._text: list[str] = []
        self._calls: dict[int, _ToolCallAccumulator] = {}
        self._fragment_count = 0

    def feed(self, fragment: StreamFragment) -> None:
        """Fold one fragment into the turn being built."""
        self._fragment_count += 1

        if fragment.content:
            self._text.append(fragment.content)

        if fragment.index is None:
            return

        accumulator = self._calls.get(fragment.index)
        if accumulator is None:
            accumulator = _ToolCallAccumulator()
            self._calls[fragment.index] = accumulator
        accumulator.update(fragment)

    def finish(self) -> AssembledTurn:
        """
        Build the assembled turn once the stream has ended.

        Raises:
            EmptyResponse: If the stream held neither text nor tool calls
        """
        content = "".join(self._text)
        tool_calls = tuple(
            self._calls[index].to_request() for index in sorted(self._calls)
        )

        if not content and not tool_calls:
            raise EmptyResponse()

        logger.debug(
            f"Assembled turn from {self._fragment_count} fragments: "
            f"{len(content)} chars, {len(tool_calls)} tool calls"
        )

        if tool_calls:
            return AssembledTurn(content=content or None, tool_calls=tool_calls)
        return AssembledTurn(content=content)


def assemble(fragments: Iterable[StreamFragment]) -> AssembledTurn:
    """Reduce an already-collected fragment sequence into one turn."""
    assembler = StreamAssembler()
    for fragment in fragments:
        assembler.feed(fragment)
    return assembler.finish()


async def assemble_stream(fragments: AsyncIterable[StreamFragment]) -> AssembledTurn:
    """Reduce a live fragment stream into one turn, waiting for it to drain."""
    assembler = StreamAssembler()
    async for fragment in fragments:
        assembler.feed(fragment)
    return assembler.finish()


def fragments_from_chunk(chunk: Any) -> list[StreamFragment]:
    """
    Convert one OpenAI ChatCompletionChunk into fragments.

    Chunks without choices (e.g. a trailing usage chunk) yield nothing.
    """
    if not getattr(chunk, "choices", None):
        return []

    delta = chunk.choices[0].delta
    if delta is None:
        return []

    fragments: list[StreamFragment] = []

    if delta.content:
        fragments.append(StreamFragment(content=delta.content))

    for tc in delta.tool_calls or []:
        function = tc.function
        fragments.append(StreamFragment(
            index=tc.index,
            call_id=tc.id,
            name=function.name if function else None,
            arguments=function.arguments if function else None,
            kind=tc.type,
        ))

    return fragments
