"""
RAG (Retrieval Augmented Generation)
====================================

Semantic search over a local set of reference documents.

Instead of pasting whole documents into the prompt, documents are cut
into chunks, each chunk is embedded once at indexing time, and for every
user question only the few chunks closest in meaning are retrieved and
prepended to the question (see agentloop.agent.context).

Components:
- documents.py: Load files and split them into chunks
- embeddings.py: Turn text into vectors
- vectorstore.py: Store vectors and rank them by cosine similarity

How it fits the agent:
    retriever = RAGRetriever.from_config(config)
    await retriever.index_path(Path("docs"))
    context = await retriever.retrieve_context("how do I deploy?", top_k=3)
    # "" when nothing is indexed
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from agentloop.rag.documents import Document, DocumentProcessor
from agentloop.rag.embeddings import EmbeddingGenerator
from agentloop.rag.vectorstore import VectorDocument, VectorStore
from agentloop.utils.config import Config
from agentloop.utils.logger import Logger

logger = Logger("RAG")


class Embedder(Protocol):
    async def generate(self, text: str) -> list[float]: ...

    async def generate_batch(self, texts: Sequence[str]) -> list[list[float]]: ...


@dataclass
class RetrievalResult:
    """
    One retrieved chunk.

    Attributes:
        document: The chunk
        score: Cosine similarity to the query (higher is closer)
    """
    document: Document
    score: float


class RAGRetriever:
    """
    Indexes documents and retrieves the chunks relevant to a query.

    Example:
        retriever = RAGRetriever(embeddings, top_k=3)
        await retriever.index_path(Path("docs"))

        results = await retriever.retrieve("What is the refund policy?")
        for r in results:
            print(f"{r.score:.3f} {r.document.metadata['source']}")
    """

    def __init__(
        self,
        embeddings: Embedder,
        top_k: int = 3,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        vectorstore: VectorStore | None = None
    ):
        self.embeddings = embeddings
        self.top_k = top_k
        self.processor = DocumentProcessor(chunk_size, chunk_overlap)
        self.vectorstore = vectorstore or VectorStore()

    @classmethod
    def from_config(cls, config: Config) -> "RAGRetriever":
        embeddings = EmbeddingGenerator(
            api_key=config.openai.api_key,
            model=config.openai.embedding_model,
            base_url=config.openai.base_url,
        )
        retriever = cls(
            embeddings,
            top_k=config.rag.top_k,
            chunk_size=config.rag.chunk_size,
            chunk_overlap=config.rag.chunk_overlap,
        )
        logger.info("RAG system initialized")
        return retriever

    async def index_path(self, source: Path, recursive: bool = True) -> int:
        """
        Load, chunk and embed every document under a path.

        Returns:
            Number of chunks added
        """
        logger.info(f"Indexing documents: {source}")

        documents = self.processor.load_documents(source, recursive=recursive)
        if not documents:
            logger.warning(f"No documents found under {source}")
            return 0

        chunks = self.processor.split_documents(documents)
        logger.info(f"Split {len(documents)} documents into {len(chunks)} chunks")

        await self.add_documents(chunks)
        return len(chunks)

    async def add_documents(self, documents: list[Document]) -> None:
        """Embed and store documents as they are (no chunking)."""
        if not documents:
            return

        vectors = await self.embeddings.generate_batch([d.content for d in documents])
        self.vectorstore.add_batch([
            VectorDocument(id=doc.id, content=doc.content, embedding=vector, metadata=doc.metadata)
            for doc, vector in zip(documents, vectors)
        ])

    async def retrieve(self, query: str, top_k: int | None = None) -> list[RetrievalResult]:
        """The top_k chunks most similar to the query, best first."""
        k = top_k if top_k is not None else self.top_k

        if len(self.vectorstore) == 0:
            logger.warning("Vector store is empty; nothing to retrieve")
            return []

        query_vector = await self.embeddings.generate(query)
        matches = self.vectorstore.search(query_vector, top_k=k)

        logger.debug(
            f"Retrieved {len(matches)} chunks for '{query[:50]}'",
            {"sources": [f"{m.score:.4f} {m.metadata.get('source', '?')}" for m in matches]}
        )

        return [
            RetrievalResult(
                document=Document(id=m.id, content=m.content, metadata=m.metadata),
                score=m.score or 0.0,
            )
            for m in matches
        ]

    async def retrieve_context(self, query: str, top_k: int | None = None) -> str:
        """
        Retrieved chunks formatted as one block of reference text.

        Returns:
            "" when nothing relevant was found
        """
        results = await self.retrieve(query, top_k)
        if not results:
            return ""

        parts = []
        for index, result in enumerate(results, start=1):
            source = result.document.metadata.get("source") or "unknown source"
            parts.append(f"[Document {index}] (source: {source})\n{result.document.content}")

        return "\n\n---\n\n".join(parts)

    def save(self, path: Path) -> None:
        self.vectorstore.save(path)

    def load(self, path: Path) -> int:
        return self.vectorstore.load(path)

    def clear(self) -> None:
        self.vectorstore.clear()

    def stats(self) -> dict:
        return {"document_count": len(self.vectorstore), "top_k": self.top_k}


__all__ = [
    "RAGRetriever",
    "RetrievalResult",
    "Document",
    "DocumentProcessor",
    "EmbeddingGenerator",
    "VectorStore",
    "VectorDocument",
]
