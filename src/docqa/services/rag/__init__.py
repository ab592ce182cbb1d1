from docqa.services.rag.chunker import split_pages
from docqa.services.rag.query import assemble_context, retrieve
from docqa.services.rag.types import Chunk, Page, RetrievalHit, SourceDocument
from docqa.services.rag.vector_index import VectorIndex

__all__ = [
    "Chunk",
    "Page",
    "RetrievalHit",
    "SourceDocument",
    "VectorIndex",
    "assemble_context",
    "retrieve",
    "split_pages",
]
