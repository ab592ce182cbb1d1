from __future__ import annotations

import logging

from docqa.errors import EmbeddingProviderError, MissingQueryError
from docqa.services.rag.embedding_client import EmbeddingClient
from docqa.services.rag.types import RetrievalHit
from docqa.services.rag.vector_index import VectorIndex

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n"


def retrieve(
    index: VectorIndex,
    query_text: str,
    *,
    k: int,
    embedding_client: EmbeddingClient,
) -> list[RetrievalHit]:
    normalized_query = query_text.strip()
    if not normalized_query:
        raise MissingQueryError("query must not be empty")

    if len(index) == 0:
        return []

    vectors = embedding_client.embed_texts([normalized_query])
    if len(vectors) != 1:
        raise EmbeddingProviderError(f"Expected 1 query vector, got {len(vectors)}")

    hits = index.query(vectors[0], k)
    if hits:
        logger.info("Retrieved %d chunk(s), top score %.4f", len(hits), hits[0].score)
    for hit in hits:
        logger.debug("hit score=%.4f chunk=%d preview=%r", hit.score, hit.chunk.chunk_index, hit.chunk.text[:100])
    return hits


def assemble_context(hits: list[RetrievalHit]) -> str:
    return CONTEXT_SEPARATOR.join(hit.chunk.text for hit in hits)
