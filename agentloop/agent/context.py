"""
Context Augmentation
====================

Rewrites the user's message before the first model call of a turn.

Two optional sources can add to the message:
1. Skills: guides of skills whose trigger words appear in the message
   (only when auto-injection is enabled)
2. Retrieval: reference chunks found for the message by the retriever

When retrieval is the first augmentation, the message is rebuilt as:

    Reference material:

    <retrieved text>

    ---

    User question: <original message>

When skills already changed the message, the retrieved text is appended
as a separate block instead. When neither source has anything, the
message is passed through unchanged.

Augmentation only changes the text handed to the loop; it never writes to
the conversation itself.
"""

from typing import Protocol

from agentloop.skills import SkillManager
from agentloop.utils.logger import Logger

logger = Logger("Context")

REFERENCE_HEADER = "Reference material:"


class Retriever(Protocol):
    async def retrieve_context(self, query: str, top_k: int | None = None) -> str: ...


class ContextAugmenter:
    """
    Builds the effective user message for one turn.

    Example:
        augmenter = ContextAugmenter(retriever=rag, top_k=3)
        text = await augmenter.augment("How do refunds work?")
    """

    def __init__(
        self,
        retriever: Retriever | None = None,
        top_k: int = 3,
        enable_rag: bool = True,
        skills: SkillManager | None = None
    ):
        """
        Args:
            retriever: Source of reference text (None disables retrieval)
            top_k: Number of chunks to retrieve
            enable_rag: Retrieval switch, independent of having a retriever
            skills: Skill manager whose matched guides are injected
        """
        self.retriever = retriever
        self.top_k = top_k
        self._enable_rag = enable_rag
        self.skills = skills

    @property
    def rag_enabled(self) -> bool:
        return self._enable_rag and self.retriever is not None

    def set_retriever(self, retriever: Retriever) -> None:
        self.retriever = retriever
        self._enable_rag = True

    def set_rag_enabled(self, enabled: bool) -> None:
        self._enable_rag = enabled

    async def augment(self, raw_text: str) -> str:
        """Return the message to send to the model for this turn."""
        text = raw_text

        if self.skills is not None:
            matched = self.skills.match_skills(raw_text)
            if matched:
                logger.debug(f"Injecting {len(matched)} matched skills", {"skills": [s.name for s in matched]})
                text = f"{self.skills.skills_context(matched)}\n\n{raw_text}"

        if self.rag_enabled:
            context = await self.retriever.retrieve_context(raw_text, self.top_k)
            if context:
                if text != raw_text:
                    text = f"{text}\n\n{REFERENCE_HEADER}\n\n{context}"
                else:
                    text = f"{REFERENCE_HEADER}\n\n{context}\n\n---\n\nUser question: {raw_text}"
                logger.debug(f"Added {len(context)} chars of reference material")
            else:
                logger.debug("No reference material found; using the message as is")

        return text
