"""
Vector Store
============

An in-memory vector index with cosine similarity search.

Documents live in a dict; their embeddings are stacked in one numpy
matrix so a search is a single matrix-vector product:

    cos(A, B) = (A . B) / (||A|| * ||B||)

1 means same direction (most similar), 0 unrelated, -1 opposite.

The store can be snapshotted to a JSON file and loaded back, so a large
document set does not have to be re-embedded on every start.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np

from agentloop.utils.logger import Logger

logger = Logger("VectorStore")


@dataclass
class VectorDocument:
    """
    A document stored in the vector store.

    Attributes:
        id: Unique identifier
        content: The original text
        embedding: The vector embedding
        metadata: Source path, chunk index, ...
        score: Similarity score (set on search results only)
    """
    id: str
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "embedding": self.embedding,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VectorDocument":
        return cls(
            id=data["id"],
            content=data["content"],
            embedding=list(data["embedding"]),
            metadata=data.get("metadata", {}),
        )


class VectorStore:
    """
    Cosine-similarity vector index.

    Example:
        store = VectorStore()
        store.add_batch([VectorDocument(id="a", content="...", embedding=[...])])
        results = store.search(query_embedding, top_k=3)
        store.save(Path("data/vectors.json"))
    """

    def __init__(self):
        self._documents: dict[str, VectorDocument] = {}
        self._embeddings: np.ndarray | None = None
        self._id_to_index: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._documents)

    def add(self, document: VectorDocument) -> None:
        """Add a document, replacing any document with the same id."""
        embedding = np.asarray(document.embedding, dtype=float)

        if self._embeddings is not None and embedding.shape[0] != self._embeddings.shape[1]:
            raise ValueError(
                f"Embedding dimension {embedding.shape[0]} does not match "
                f"store dimension {self._embeddings.shape[1]}"
            )

        is_update = document.id in self._documents
        self._documents[document.id] = document

        if self._embeddings is None:
            self._embeddings = embedding.reshape(1, -1)
            self._id_to_index[document.id] = 0
        elif is_update:
            self._embeddings[self._id_to_index[document.id]] = embedding
        else:
            self._embeddings = np.vstack([self._embeddings, embedding])
            self._id_to_index[document.id] = len(self._embeddings) - 1

    def add_batch(self, documents: list[VectorDocument]) -> None:
        for doc in documents:
            self.add(doc)
        logger.debug(f"Added batch of {len(documents)} documents")

    def search(
        self,
        query_vector: list[float],
        top_k: int = 5,
        filter_metadata: dict[str, Any] | None = None
    ) -> list[VectorDocument]:
        """
        Most similar documents first.

        Args:
            query_vector: The query embedding
            top_k: Number of results
            filter_metadata: Only consider documents whose metadata matches

        Returns:
            Copies of the stored documents with score set
        """
        if self._embeddings is None or not self._documents or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=float)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            return []

        doc_norms = np.linalg.norm(self._embeddings, axis=1)
        doc_norms = np.where(doc_norms == 0, 1, doc_norms)
        similarities = self._embeddings @ query / (doc_norms * query_norm)

        index_to_id = {index: doc_id for doc_id, index in self._id_to_index.items()}
        results: list[tuple[str, float]] = []
        for index, score in enumerate(similarities):
            doc_id = index_to_id[index]
            if filter_metadata:
                metadata = self._documents[doc_id].metadata
                if not all(metadata.get(k) == v for k, v in filter_metadata.items() if v is not None):
                    continue
            results.append((doc_id, float(score)))

        results.sort(key=lambda pair: pair[1], reverse=True)

        output = []
        for doc_id, score in results[:top_k]:
            doc = self._documents[doc_id]
            output.append(VectorDocument(
                id=doc.id,
                content=doc.content,
                embedding=doc.embedding,
                metadata=doc.metadata,
                score=score,
            ))
        return output

    def get(self, doc_id: str) -> VectorDocument | None:
        return self._documents.get(doc_id)

    def documents(self) -> list[VectorDocument]:
        return list(self._documents.values())

    def clear(self) -> None:
        self._documents.clear()
        self._embeddings = None
        self._id_to_index.clear()
        logger.info("Vector store cleared")

    def save(self, path: Path) -> None:
        """Write every document and its embedding to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([doc.to_dict() for doc in self._documents.values()], f, ensure_ascii=False)
        logger.info(f"Saved {len(self._documents)} documents to {path}")

    def load(self, path: Path) -> int:
        """
        Replace the store's contents with a saved snapshot.

        A missing file leaves the store unchanged.

        Returns:
            Number of documents loaded
        """
        if not path.exists():
            logger.warning(f"Vector store file not found: {path}")
            return 0

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        self.clear()
        self.add_batch([VectorDocument.from_dict(item) for item in data])
        logger.info(f"Loaded {len(self._documents)} documents from {path}")
        return len(self._documents)
