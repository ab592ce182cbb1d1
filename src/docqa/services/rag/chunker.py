from __future__ import annotations

from bisect import bisect_right

from docqa.errors import EmptyDocumentError
from docqa.services.rag.types import Chunk, Page

PAGE_SEPARATOR = "\n"


def _window_bounds(text_length: int, *, chunk_size: int, chunk_overlap: int) -> list[tuple[int, int]]:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    if chunk_overlap < 0:
        raise ValueError("chunk_overlap must be >= 0")
    if chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be smaller than chunk_size")

    bounds: list[tuple[int, int]] = []
    cursor = 0

    while True:
        end = min(text_length, cursor + chunk_size)
        bounds.append((cursor, end))
        if end >= text_length:
            break
        cursor = end - chunk_overlap

    return bounds


def split_pages(
    pages: list[Page],
    *,
    chunk_size: int,
    chunk_overlap: int,
) -> list[Chunk]:
    """Flatten page text into one stream and cut it into overlapping windows.

    Windows are not stripped, so the last ``chunk_overlap`` characters of a
    chunk always equal the first ``chunk_overlap`` characters of the next one.
    Each chunk is attributed to the page its first character came from.
    """
    texts = [page.text for page in pages if page.text]
    text = PAGE_SEPARATOR.join(texts)
    if not text.strip():
        raise EmptyDocumentError("Document contains no extractable text")

    page_starts: list[int] = []
    source_indexes: list[int] = []
    offset = 0
    for page in pages:
        if not page.text:
            continue
        page_starts.append(offset)
        source_indexes.append(page.source_index)
        offset += len(page.text) + len(PAGE_SEPARATOR)

    chunks: list[Chunk] = []
    for index, (start, end) in enumerate(
        _window_bounds(len(text), chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    ):
        page_position = bisect_right(page_starts, start) - 1
        chunks.append(
            Chunk(
                text=text[start:end],
                source_index=source_indexes[page_position],
                chunk_index=index,
            )
        )

    return chunks
