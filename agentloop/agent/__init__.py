"""
Agent System
============

The agent runs a conversation with a model that can call tools. It:
1. Receives user messages
2. Augments them with skills and reference material
3. Streams each model reply and assembles it
4. Executes the requested tools and feeds the results back
5. Returns the final answer

This module provides:
- Agent: Session object and the bounded tool-calling loop
- Conversation: Append-only transcript with tool-call bookkeeping
- StreamAssembler: Folds streamed fragments into one turn
- ContextAugmenter: Rewrites user messages before the loop
- ToolExecutor: Runs tool calls and reports every outcome
- OpenAIChatTransport: Streams model calls from an OpenAI-compatible API
"""

from agentloop.agent.context import ContextAugmenter
from agentloop.agent.conversation import Conversation, Turn
from agentloop.agent.core import Agent, LoopOutcome, LoopState
from agentloop.agent.llm import ModelTransport, OpenAIChatTransport
from agentloop.agent.stream import AssembledTurn, StreamAssembler, StreamFragment, ToolCallRequest
from agentloop.agent.tools_executor import ToolExecutor

__all__ = [
    "Agent",
    "LoopOutcome",
    "LoopState",
    "Conversation",
    "Turn",
    "StreamAssembler",
    "StreamFragment",
    "AssembledTurn",
    "ToolCallRequest",
    "ContextAugmenter",
    "ToolExecutor",
    "ModelTransport",
    "OpenAIChatTransport",
]
