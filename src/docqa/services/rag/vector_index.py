from __future__ import annotations

import math

from docqa.errors import DimensionMismatchError
from docqa.services.rag.types import Chunk, IndexEntry, RetrievalHit


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class VectorIndex:
    """In-memory index of chunk vectors searched by linear cosine scan.

    One index lives for one request; nothing is shared or persisted.
    """

    def __init__(self, entries: list[IndexEntry]) -> None:
        self._entries = entries
        self._dimensions = len(entries[0].vector) if entries else 0

    @classmethod
    def build(cls, chunks: list[Chunk], vectors: list[list[float]]) -> VectorIndex:
        if len(chunks) != len(vectors):
            raise DimensionMismatchError(
                f"Expected one vector per chunk: {len(chunks)} chunks, {len(vectors)} vectors"
            )

        dimensions = {len(vector) for vector in vectors}
        if len(dimensions) > 1:
            raise DimensionMismatchError(
                f"Embedding vectors have mixed dimensions: {sorted(dimensions)}"
            )

        return cls([IndexEntry(vector=vector, chunk=chunk) for chunk, vector in zip(chunks, vectors)])

    def __len__(self) -> int:
        return len(self._entries)

    def query(self, query_vector: list[float], k: int) -> list[RetrievalHit]:
        if not self._entries or k <= 0:
            return []
        if len(query_vector) != self._dimensions:
            raise DimensionMismatchError(
                f"Query vector has {len(query_vector)} dimensions, index has {self._dimensions}"
            )

        hits = [
            RetrievalHit(chunk=entry.chunk, score=_cosine(query_vector, entry.vector))
            for entry in self._entries
        ]
        # sort() is stable, so equal scores keep insertion order
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[: min(k, len(hits))]
