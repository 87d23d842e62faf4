"""
Document Loading and Chunking
=============================

Reads reference documents from disk and cuts them into overlapping
chunks small enough to embed and to paste into a prompt.

Chunks are cut with a sliding window of chunk_size characters. Where
possible a window ends on a sentence boundary rather than mid-word, and
consecutive windows overlap by chunk_overlap characters so a sentence
split across two chunks is still whole in one of them.
"""

import hashlib
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agentloop.utils.logger import Logger

logger = Logger("Documents")

DEFAULT_EXTENSIONS = (".txt", ".md", ".json")
SENTENCE_ENDERS = ("。", "！", "？", ".", "!", "?", "\n\n")


@dataclass
class Document:
    """
    A loaded document or chunk.

    Attributes:
        id: Stable identifier (derived from the source path)
        content: Text content
        metadata: "source" and "timestamp" always; chunks add
            "chunk_index", "total_chunks" and "original_doc_id"
    """
    id: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class DocumentProcessor:
    """
    Loads files and splits them into chunks.

    Example:
        processor = DocumentProcessor(chunk_size=1000, chunk_overlap=200)
        docs = processor.load_documents(Path("docs"))
        chunks = processor.split_documents(docs)
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def load_documents(
        self,
        source: Path,
        recursive: bool = True,
        extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    ) -> list[Document]:
        """
        Load one file, or every matching file under a directory.

        Files that cannot be read are logged and skipped.
        """
        source = Path(source)
        if source.is_file():
            paths = [source]
        elif source.is_dir():
            pattern = "**/*" if recursive else "*"
            paths = sorted(p for p in source.glob(pattern) if p.is_file() and p.suffix in extensions)
        else:
            raise FileNotFoundError(f"No such file or directory: {source}")

        documents = []
        for path in paths:
            doc = self._load_file(path)
            if doc is not None:
                documents.append(doc)

        logger.debug(f"Loaded {len(documents)} documents from {source}")
        return documents

    def _load_file(self, path: Path) -> Document | None:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to load document: {path}", e)
            return None

        if path.suffix == ".json":
            try:
                content = json.dumps(json.loads(content), indent=2, ensure_ascii=False)
            except json.JSONDecodeError:
                pass

        return Document(
            id=self._generate_id(path),
            content=content,
            metadata={
                "source": str(path),
                "timestamp": time.time(),
                "extension": path.suffix,
            },
        )

    def split_documents(self, documents: list[Document]) -> list[Document]:
        chunks: list[Document] = []

        for doc in documents:
            pieces = self.split_text(doc.content)
            for index, piece in enumerate(pieces):
                chunks.append(Document(
                    id=f"{doc.id}_chunk_{index}",
                    content=piece,
                    metadata={
                        **doc.metadata,
                        "chunk_index": index,
                        "total_chunks": len(pieces),
                        "original_doc_id": doc.id,
                    },
                ))

        return chunks

    def split_text(self, text: str) -> list[str]:
        """Cut text into overlapping windows, preferring sentence boundaries."""
        if len(text) <= self.chunk_size:
            return [text] if text.strip() else []

        chunks: list[str] = []
        start = 0

        while start < len(text):
            end = min(start + self.chunk_size, len(text))

            if end < len(text):
                sentence_end = self._find_sentence_end(text, end)
                # Window must still advance past the overlap
                if sentence_end > start + self.chunk_overlap:
                    end = sentence_end

            piece = text[start:end].strip()
            if piece:
                chunks.append(piece)

            if end >= len(text):
                break
            start = end - self.chunk_overlap

        return chunks

    def _find_sentence_end(self, text: str, position: int) -> int:
        """Position just after the sentence ender closest before position."""
        best_pos = position
        best_dist = None

        for ender in SENTENCE_ENDERS:
            pos = text.rfind(ender, 0, position)
            if pos <= 0:
                continue
            dist = position - pos
            if best_dist is None or dist < best_dist:
                best_pos = pos + len(ender)
                best_dist = dist

        return best_pos

    def _generate_id(self, path: Path) -> str:
        return hashlib.md5(str(path).encode("utf-8")).hexdigest()[:16]
