"""
In-memory embedding index over transaction chunks.

Chunks are embedded once at startup into an ephemeral ChromaDB collection and
never persisted. Every failure of the embedding service or the vector store is
surfaced as EmbeddingServiceError.
"""

import logging
import platform
import sys
import uuid
from typing import TypedDict

import chromadb
from langchain_chroma import Chroma
from langchain_core.embeddings import Embeddings
from langchain_huggingface import HuggingFaceEmbeddings

from transaction_agent.config import Settings
from transaction_agent.documents import TransactionChunk
from transaction_agent.errors import EmbeddingServiceError

logger = logging.getLogger(__name__)

ScoredChunk = tuple[TransactionChunk, float]


class IndexStatsDict(TypedDict):
    """Type definition for get_stats() return value."""

    total_chunks: int
    collection_name: str


# ============================================================================
# EMBEDDINGS - Single Responsibility: Pick and configure the embedding model
# ============================================================================


def detect_device(settings: Settings) -> str:
    """
    Auto-detect the best device for embeddings.

    Priority order:
    1. EMBEDDING_DEVICE setting (if set)
    2. Apple Silicon (M1/M2/M3+) Macs → "mps"
    3. All other systems → "cpu"
    """
    if settings.embedding_device:
        logger.info("Using device from EMBEDDING_DEVICE: %s", settings.embedding_device)
        return settings.embedding_device

    if sys.platform == "darwin":
        machine = platform.machine()
        if "arm64" in machine or "aarch64" in machine:
            try:
                import torch

                if torch.backends.mps.is_available():
                    logger.info("Apple Silicon detected, using MPS acceleration")
                    return "mps"
            except (ImportError, AttributeError):
                # PyTorch not available or too old for MPS
                pass

    return "cpu"


def create_embeddings(settings: Settings) -> Embeddings:
    """Create the HuggingFace embedding model (runs locally)."""
    device = detect_device(settings)
    logger.info("Loading embedding model %s on %s", settings.embedding_model, device)
    try:
        return HuggingFaceEmbeddings(
            model_name=settings.embedding_model,
            model_kwargs={"device": device},
            encode_kwargs={"normalize_embeddings": True},
        )
    except Exception as e:
        raise EmbeddingServiceError(
            f"Could not load embedding model {settings.embedding_model}: {e}"
        ) from e


# ============================================================================
# INDEX - Single Responsibility: Store chunk embeddings and search them
# ============================================================================


class EmbeddingIndex:
    """
    Read-only similarity index built once from a fixed set of chunks.

    Attributes:
        collection_name: Name of the ephemeral Chroma collection backing this index
        vectorstore: LangChain Chroma wrapper used for similarity search
    """

    def __init__(self, vectorstore: Chroma, collection_name: str, size: int):
        self.vectorstore = vectorstore
        self.collection_name = collection_name
        self._size = size

    @classmethod
    def build(
        cls, chunks: list[TransactionChunk], embeddings: Embeddings
    ) -> "EmbeddingIndex":
        """
        Embed the chunks into a fresh in-memory collection.

        Args:
            chunks: Chunks to index, in order of appearance
            embeddings: Embedding model used for chunks and queries

        Returns:
            The populated index

        Raises:
            EmbeddingServiceError: If embedding or storing the chunks fails
        """
        # Ephemeral clients share state within a process, so every index gets its own collection
        collection_name = f"transactions-{uuid.uuid4().hex}"

        try:
            vectorstore = Chroma(
                client=chromadb.EphemeralClient(),
                collection_name=collection_name,
                embedding_function=embeddings,
                collection_metadata={"hnsw:space": "cosine"},
            )
            if chunks:
                vectorstore.add_texts(
                    texts=[chunk.text for chunk in chunks],
                    metadatas=[
                        {
                            "position": chunk.position,
                            "start_offset": chunk.start_offset,
                            "source": chunk.source,
                        }
                        for chunk in chunks
                    ],
                    ids=[f"chunk-{chunk.position}" for chunk in chunks],
                )
        except Exception as e:
            raise EmbeddingServiceError(f"Failed to embed {len(chunks)} chunks: {e}") from e

        logger.info("Indexed %d chunks into %s", len(chunks), collection_name)
        return cls(vectorstore, collection_name, len(chunks))

    def __len__(self) -> int:
        return self._size

    def query(self, text: str, k: int) -> list[ScoredChunk]:
        """
        Find the chunks most similar to a free-text query.

        Args:
            text: Query text
            k: Maximum number of results

        Returns:
            At most k (chunk, score) pairs, most similar first

        Raises:
            ValueError: If k is smaller than 1
            EmbeddingServiceError: If embedding the query or searching fails
        """
        if k < 1:
            raise ValueError(f"k must be at least 1, got {k}")
        if self._size == 0:
            return []

        try:
            results = self.vectorstore.similarity_search_with_relevance_scores(
                text, k=min(k, self._size)
            )
        except Exception as e:
            raise EmbeddingServiceError(f"Similarity search failed: {e}") from e

        scored: list[ScoredChunk] = []
        for doc, score in results:
            metadata = doc.metadata or {}
            chunk = TransactionChunk(
                position=int(metadata.get("position", -1)),
                text=doc.page_content,
                start_offset=int(metadata.get("start_offset", -1)),
                source=str(metadata.get("source", "")),
            )
            scored.append((chunk, float(score)))

        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:k]

    def get_stats(self) -> IndexStatsDict:
        """Get statistics about the index."""
        return {"total_chunks": self._size, "collection_name": self.collection_name}
