"""
Conversation State
==================

The ordered log of turns that is sent to the model on every call.

The log is append-only. The only way to remove anything is reset(),
which empties it entirely.

Ordering rules enforced here:
- A tool result must answer an id from the most recent assistant turn,
  and each id is answered exactly once.
- While any id from that assistant turn is unanswered, no new user or
  assistant turn may be appended. The chat API rejects a request whose
  history has a tool call without its result.

Example:
    conversation = Conversation(system_prompt="You are helpful.")
    conversation.append_user("What is 2 + 3?")
    conversation.append_assistant(turn)              # turn asks for calc__add
    conversation.append_tool_result(turn.tool_calls[0].id, '{"sum": 5}')
    messages = conversation.to_openai_messages()
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from agentloop.agent.stream import AssembledTurn, ToolCallRequest
from agentloop.errors import ConversationError

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class Turn:
    """
    One entry in the conversation.

    Attributes:
        role: "system", "user", "assistant" or "tool"
        content: Message text (None for an assistant turn with only tool calls)
        tool_calls: Tool calls requested by an assistant turn
        tool_call_id: The call a tool turn answers
        timestamp: When the turn was appended
    """
    role: Role
    content: str | None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    tool_call_id: str | None = None
    timestamp: datetime | None = None

    def to_openai_message(self) -> dict[str, Any]:
        """Convert to the chat completions message format."""
        if self.role == "tool":
            return {
                "role": "tool",
                "tool_call_id": self.tool_call_id,
                "content": self.content or "",
            }

        if self.role == "assistant" and self.tool_calls:
            return {
                "role": "assistant",
                "content": self.content,
                "tool_calls": [tc.to_openai() for tc in self.tool_calls],
            }

        return {"role": self.role, "content": self.content or ""}


class Conversation:
    """
    Append-only conversation log for one agent session.

    Attributes:
        system_prompt: Seeded as the first turn, and seeded again by the
            first append after a reset()
    """

    def __init__(self, system_prompt: str | None = None):
        self.system_prompt = system_prompt or None
        self._turns: list[Turn] = []
        # Ids of the last assistant turn that still need a tool result
        self._pending: list[str] = []
        self._seed_system()

    def _seed_system(self) -> None:
        if self.system_prompt and not self._turns:
            self._turns.append(Turn(role="system", content=self.system_prompt, timestamp=datetime.now()))

    def _append(self, turn: Turn) -> None:
        self._seed_system()
        self._turns.append(turn)

    def _require_no_pending(self, action: str) -> None:
        if self._pending:
            raise ConversationError(
                f"Cannot {action}: tool calls still unanswered: {', '.join(self._pending)}"
            )

    @property
    def pending_tool_call_ids(self) -> tuple[str, ...]:
        """Tool call ids of the last assistant turn that have no result yet."""
        return tuple(self._pending)

    @property
    def turns(self) -> tuple[Turn, ...]:
        """Read-only snapshot of the log, oldest first."""
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def append_user(self, content: str) -> Turn:
        self._require_no_pending("append a user message")
        turn = Turn(role="user", content=content, timestamp=datetime.now())
        self._append(turn)
        return turn

    def append_assistant(self, assembled: AssembledTurn) -> Turn:
        """Append the assembled model output and start waiting for its tool results."""
        self._require_no_pending("append an assistant message")
        turn = Turn(
            role="assistant",
            content=assembled.content,
            tool_calls=assembled.tool_calls,
            timestamp=datetime.now(),
        )
        self._append(turn)
        self._pending = [tc.id for tc in assembled.tool_calls]
        return turn

    def append_tool_result(self, tool_call_id: str, content: str) -> Turn:
        """
        Append the result of one tool call.

        Raises:
            ConversationError: If the id was not requested by the last
                assistant turn or has already been answered
        """
        if tool_call_id not in self._pending:
            raise ConversationError(
                f"Tool result for '{tool_call_id}' does not answer a pending tool call"
            )
        self._pending.remove(tool_call_id)
        turn = Turn(
            role="tool",
            content=content,
            tool_call_id=tool_call_id,
            timestamp=datetime.now(),
        )
        self._turns.append(turn)
        return turn

    def to_openai_messages(self) -> list[dict[str, Any]]:
        """Render the whole log for a chat completions request."""
        return [turn.to_openai_message() for turn in self._turns]

    def reset(self) -> None:
        """Empty the log, including the system turn and any pending ids."""
        self._turns.clear()
        self._pending.clear()
