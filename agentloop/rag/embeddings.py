"""
Embedding Generation
====================

Turns text into vectors with an OpenAI-compatible embeddings endpoint.

Texts with similar meaning get vectors pointing in similar directions,
which is what the vector store's cosine ranking relies on.

Embeddings are cached in memory by content hash, so re-indexing the same
documents or repeating a query costs no API calls.
"""

import hashlib
from typing import Sequence

from openai import AsyncOpenAI

from agentloop.utils.logger import Logger

logger = Logger("Embeddings")


class EmbeddingGenerator:
    """
    Generates text embeddings.

    Example:
        generator = EmbeddingGenerator(api_key="sk-...", model="text-embedding-3-small")

        vector = await generator.generate("How do I reset my password?")
        vectors = await generator.generate_batch(["first chunk", "second chunk"])
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        batch_size: int = 64
    ):
        """
        Args:
            api_key: API key for the embeddings endpoint
            model: Embedding model name
            base_url: Alternative OpenAI-compatible endpoint
            batch_size: Maximum texts sent in one request
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model
        self.batch_size = batch_size
        self._cache: dict[str, list[float]] = {}

        logger.info(f"Embedding generator initialized with model: {model}")

    def _hash_text(self, text: str) -> str:
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    async def generate(self, text: str) -> list[float]:
        """Embed one text."""
        cache_key = self._hash_text(text)
        if cache_key in self._cache:
            logger.debug("Embedding cache hit")
            return self._cache[cache_key]

        response = await self.client.embeddings.create(model=self.model, input=text)
        embedding = response.data[0].embedding
        self._cache[cache_key] = embedding

        logger.debug(f"Generated embedding (dim={len(embedding)})")
        return embedding

    async def generate_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        Embed many texts, skipping the ones already cached.

        Returns:
            One vector per input text, in input order
        """
        if not texts:
            return []

        results: list[list[float] | None] = [None] * len(texts)
        missing: list[tuple[int, str]] = []

        for i, text in enumerate(texts):
            cached = self._cache.get(self._hash_text(text))
            if cached is not None:
                results[i] = cached
            else:
                missing.append((i, text))

        for start in range(0, len(missing), self.batch_size):
            batch = missing[start:start + self.batch_size]
            logger.debug(f"Generating {len(batch)} embeddings (batch)")

            response = await self.client.embeddings.create(
                model=self.model,
                input=[text for _, text in batch]
            )
            for (index, text), item in zip(batch, response.data):
                results[index] = item.embedding
                self._cache[self._hash_text(text)] = item.embedding

        return [r for r in results if r is not None]

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Embedding cache cleared")

    def get_cache_size(self) -> int:
        return len(self._cache)
