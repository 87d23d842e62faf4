"""
Agent Core
==========

The session object and its bounded tool-calling loop.

One Agent owns one conversation, one sealed tool registry and one model
transport. Every user message runs the loop below until the model
answers in plain text or the iteration budget runs out:

    User Message
         │
         ▼
    Augment (skills / reference material)
         │
         ▼
    AWAITING_MODEL ◄──────────────────┐
         │                            │
         ▼                            │
    ┌─── Tool Calls? ───┐             │
    │                   │             │
    Yes                 No            │
    │                   │             │
    ▼                   ▼             │
    DISPATCHING_TOOLS   DONE          │
    │                                 │
    ├── iteration < budget ───────────┘
    │
    ▼
    EXHAUSTED

Each iteration makes exactly one model call. Tool calls from one
assistant turn run one after another, in the order the model emitted
them, and every one of them gets exactly one tool message back.

Model failures are not retried: they propagate out of send_message()
and leave the transcript as it was when the failure happened.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from agentloop.agent.context import ContextAugmenter, Retriever
from agentloop.agent.conversation import Conversation, Turn
from agentloop.agent.llm import ModelTransport
from agentloop.agent.stream import AssembledTurn, ToolCallRequest, assemble_stream
from agentloop.agent.tools_executor import ToolExecutor
from agentloop.errors import ConversationError
from agentloop.skills import SkillManager
from agentloop.tools import ToolProvider, ToolRegistry
from agentloop.utils.logger import Logger

logger = Logger("Agent")

DEFAULT_MAX_ITERATIONS = 10


class LoopState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class LoopOutcome:
    """
    How one run of the loop ended.

    Attributes:
        answer: Final text for the user ("" when the budget ran out)
        state: DONE or EXHAUSTED
        iterations: Number of model calls made
    """
    answer: str
    state: LoopState
    iterations: int


class Agent:
    """
    A conversational session with tools.

    Example:
        agent = await Agent.create(transport, providers=[calc], system_prompt="Be brief.")
        try:
            answer = await agent.send_message("What is 2 + 3?")
        finally:
            await agent.end_session()
    """

    def __init__(
        self,
        transport: ModelTransport,
        registry: ToolRegistry | None = None,
        *,
        system_prompt: str | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        augmenter: ContextAugmenter | None = None
    ):
        """
        Args:
            transport: Streams model calls
            registry: Tools offered to the model; sealed here if it is not yet
            system_prompt: Seeds the conversation
            max_iterations: Model calls allowed per user message
            augmenter: Rewrites user messages before the loop (None = as is)
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self.transport = transport
        self.registry = registry or ToolRegistry()
        if not self.registry.sealed:
            self.registry.seal()

        self.conversation = Conversation(system_prompt)
        self.max_iterations = max_iterations
        self.augmenter = augmenter
        self.executor = ToolExecutor(self.registry)
        self.last_outcome: LoopOutcome | None = None
        self._closed = False

        # The tool list never changes during a session
        self._tools = self.registry.openai_tools()

        logger.info(f"Agent ready with {len(self._tools)} tools")

    @classmethod
    async def create(
        cls,
        transport: ModelTransport,
        providers: Sequence[ToolProvider] = (),
        *,
        system_prompt: str | None = None,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        skills: SkillManager | None = None,
        auto_inject_skills: bool = False,
        retriever: Retriever | None = None,
        rag_top_k: int = 3
    ) -> "Agent":
        """
        Connect tool providers and build a ready session.

        Providers that fail to connect are logged and left out; the
        session starts with whatever did connect.

        Args:
            transport: Streams model calls
            providers: Tool providers to connect, in order
            system_prompt: Base system prompt
            max_iterations: Model calls allowed per user message
            skills: Loaded skill manager; adds read_skill and a prompt summary
            auto_inject_skills: Prepend matched skill guides to user messages
            retriever: Source of reference material for user messages
            rag_top_k: Chunks retrieved per message

        Returns:
            The agent, with its tool registry sealed
        """
        registry = ToolRegistry()
        for provider in providers:
            await registry.add_provider(provider)

        prompt = system_prompt or ""
        if skills is not None and skills.count > 0:
            registry.register_builtin(skills.tool_definition(), skills.read_skill_tool)
            prompt = f"{prompt}\n\n{skills.summary_text()}" if prompt else skills.summary_text()
            logger.info(f"Skills available: {', '.join(skills.names())}")

        registry.seal()

        augmenter = None
        if retriever is not None or (skills is not None and auto_inject_skills):
            augmenter = ContextAugmenter(
                retriever=retriever,
                top_k=rag_top_k,
                skills=skills if auto_inject_skills else None,
            )

        return cls(
            transport,
            registry,
            system_prompt=prompt or None,
            max_iterations=max_iterations,
            augmenter=augmenter,
        )

    @property
    def tool_names(self) -> list[str]:
        return self.registry.list_names()

    async def send_message(self, text: str) -> str:
        """
        Answer one user message, calling tools as the model asks.

        Returns:
            The final answer ("" if the model produced no text)

        Raises:
            TransportFailure: If a model call fails
            EmptyResponse: If the model returns neither text nor tool calls
        """
        logger.info(f"User message: {text[:50]}")

        effective = await self.augmenter.augment(text) if self.augmenter else text
        outcome = await self.run(effective)
        self.last_outcome = outcome

        logger.info(
            f"Turn finished: {outcome.state.value} after {outcome.iterations} iterations "
            f"({len(outcome.answer)} chars)"
        )
        return outcome.answer

    async def run(self, effective_text: str) -> LoopOutcome:
        """Run the loop for an already-augmented user message."""
        iteration = 0
        state = LoopState.AWAITING_MODEL

        while True:
            iteration += 1
            logger.debug(f"Iteration {iteration}/{self.max_iterations}")

            if iteration == 1 and effective_text:
                self.conversation.append_user(effective_text)

            turn = await self._call_model()
            self.conversation.append_assistant(turn)

            if turn.has_tool_calls:
                state = LoopState.DISPATCHING_TOOLS
                await self._dispatch_tools(turn.tool_calls)

                if iteration < self.max_iterations:
                    state = LoopState.AWAITING_MODEL
                    continue

                state = LoopState.EXHAUSTED
                logger.warning(f"Reached max iterations ({self.max_iterations}) without a final answer")
                return LoopOutcome(answer="", state=state, iterations=iteration)

            if turn.content:
                return LoopOutcome(answer=turn.content, state=LoopState.DONE, iterations=iteration)

            logger.warning("Model turn had neither text nor tool calls")
            return LoopOutcome(answer="", state=LoopState.DONE, iterations=iteration)

    async def _call_model(self) -> AssembledTurn:
        pending = self.conversation.pending_tool_call_ids
        if pending:
            raise ConversationError(f"Refusing model call with unanswered tool calls: {', '.join(pending)}")

        messages = self.conversation.to_openai_messages()
        return await assemble_stream(self.transport.start_call(messages, self._tools))

    async def _dispatch_tools(self, requests: Sequence[ToolCallRequest]) -> None:
        logger.debug(f"Dispatching {len(requests)} tool calls")

        for request in requests:
            outcome = await self.executor.execute_one(request)
            self.conversation.append_tool_result(outcome.tool_call_id, outcome.to_message())

    def get_transcript(self) -> tuple[Turn, ...]:
        return self.conversation.turns

    def reset_transcript(self) -> None:
        """Forget the conversation. Tools and providers stay connected."""
        self.conversation.reset()
        logger.info("Transcript cleared")

    async def end_session(self) -> None:
        """Disconnect every tool provider. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True

        await self.registry.disconnect_all()
        logger.info("Session ended")

    async def __aenter__(self) -> "Agent":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end_session()
