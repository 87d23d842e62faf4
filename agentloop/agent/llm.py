"""
Model Transport
===============

Starts one streamed chat completion and yields its fragments.

The agent loop never sees raw API chunks. A transport turns each chunk
into StreamFragments, and the loop folds them into one AssembledTurn
before it looks at the result. Any transport with the same start_call()
signature works: the OpenAI client below, or a scripted one in tests.

Errors from the API (connection, timeout, HTTP status) are raised as
TransportFailure; the loop does not try to recover from them.
"""

from collections.abc import AsyncIterator
from typing import Any, Callable, Protocol

import openai
from openai import AsyncOpenAI

from agentloop.agent.stream import StreamFragment, fragments_from_chunk
from agentloop.errors import TransportFailure
from agentloop.utils.config import Config
from agentloop.utils.logger import Logger

logger = Logger("LLM")


class ModelTransport(Protocol):
    """Anything that can stream one model call as fragments."""

    def start_call(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]]
    ) -> AsyncIterator[StreamFragment]: ...


class OpenAIChatTransport:
    """
    Streams chat completions from an OpenAI-compatible endpoint.

    Example:
        transport = OpenAIChatTransport(api_key="sk-...", model="gpt-4o-mini",
                                        on_text=lambda t: print(t, end=""))
        turn = await assemble_stream(transport.start_call(messages, tools))
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        on_text: Callable[[str], None] | None = None,
        client: AsyncOpenAI | None = None
    ):
        """
        Args:
            api_key: API key for the endpoint
            model: Chat model name
            base_url: Alternative OpenAI-compatible endpoint
            on_text: Called with every text delta as it arrives
            client: Preconfigured client (overrides api_key/base_url)
        """
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.on_text = on_text

        logger.info(f"Chat transport initialized with model: {model}")

    @classmethod
    def from_config(
        cls,
        config: Config,
        on_text: Callable[[str], None] | None = None
    ) -> "OpenAIChatTransport":
        return cls(
            api_key=config.openai.api_key,
            model=config.openai.model,
            base_url=config.openai.base_url,
            on_text=on_text,
        )

    async def start_call(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]]
    ) -> AsyncIterator[StreamFragment]:
        """
        Send the conversation and yield fragments as they stream in.

        Raises:
            TransportFailure: If the request or the stream fails
        """
        params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": True,
        }
        if tools:
            params["tools"] = tools

        logger.debug(f"Model call with {len(messages)} messages and {len(tools)} tools")

        try:
            stream = await self.client.chat.completions.create(**params)
            async for chunk in stream:
                for fragment in fragments_from_chunk(chunk):
                    if fragment.content and self.on_text:
                        self.on_text(fragment.content)
                    yield fragment
        except openai.APIError as e:
            logger.error("Model call failed", e)
            raise TransportFailure(str(e)) from e
