"""Per-request retrieval-augmented generation pipeline.

Every call rebuilds the whole index from the source document:
load -> chunk -> embed -> index -> retrieve -> assemble -> prompt.
Nothing is cached between calls, so concurrent requests share no state.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
import logging

from docqa.config import Settings
from docqa.errors import MissingQueryError
from docqa.llm import GenerationClient, GenerationConfig
from docqa.prompts import (
    GROUNDED_ANSWER_TEMPLATE,
    RESUME_RETRIEVAL_QUERY,
    RESUME_REVIEW_REQUEST,
    RESUME_REVIEW_TEMPLATE,
    render_system_instruction,
)
from docqa.services.rag.chunker import split_pages
from docqa.services.rag.embedding_client import EmbeddingClient
from docqa.services.rag.loader import load_pages
from docqa.services.rag.query import assemble_context, retrieve
from docqa.services.rag.types import (
    GenerationChunk,
    GroundedPrompt,
    Page,
    RetrievalHit,
    SourceDocument,
)
from docqa.services.rag.vector_index import VectorIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineProfile:
    """What differs between call sites: prompt template, k and fixed queries.

    ``retrieval_query`` and ``user_query`` override the caller's query when
    set; a profile with both set needs no caller query at all.
    """

    name: str
    top_k: int
    system_template: str
    retrieval_query: str | None = None
    user_query: str | None = None


@dataclass(frozen=True)
class PreparedPrompt:
    prompt: GroundedPrompt
    hits: list[RetrievalHit]


@dataclass(frozen=True)
class Answer:
    answer: str
    hits: list[RetrievalHit]


def chat_profile(settings: Settings) -> PipelineProfile:
    return PipelineProfile(
        name="chat",
        top_k=settings.rag_chat_top_k,
        system_template=GROUNDED_ANSWER_TEMPLATE,
    )


def review_profile(settings: Settings) -> PipelineProfile:
    return PipelineProfile(
        name="review",
        top_k=settings.rag_review_top_k,
        system_template=RESUME_REVIEW_TEMPLATE,
        retrieval_query=RESUME_RETRIEVAL_QUERY,
        user_query=RESUME_REVIEW_REQUEST,
    )


def chat_generation_config(settings: Settings) -> GenerationConfig:
    return GenerationConfig(
        api_key=settings.anthropic_api_key,
        model=settings.chat_model,
        temperature=settings.chat_temperature,
        max_tokens=settings.llm_max_tokens,
    )


def review_generation_config(settings: Settings) -> GenerationConfig:
    return GenerationConfig(
        api_key=settings.anthropic_api_key,
        model=settings.review_model,
        temperature=settings.review_temperature,
        max_tokens=settings.llm_max_tokens,
    )


def _resolve_queries(query: str | None, profile: PipelineProfile) -> tuple[str, str]:
    normalized = (query or "").strip()
    retrieval_query = profile.retrieval_query or normalized
    user_query = profile.user_query or normalized
    if not retrieval_query or not user_query:
        raise MissingQueryError("query must not be empty")
    return retrieval_query, user_query


def build_index(
    pages: list[Page],
    *,
    chunk_size: int,
    chunk_overlap: int,
    embedding_client: EmbeddingClient,
) -> VectorIndex:
    chunks = split_pages(pages, chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    logger.info("Split %d page(s) into %d chunk(s)", len(pages), len(chunks))

    vectors = embedding_client.embed_texts([chunk.text for chunk in chunks])
    return VectorIndex.build(chunks, vectors)


def prepare_from_pages(
    pages: list[Page],
    *,
    query: str | None,
    profile: PipelineProfile,
    chunk_size: int,
    chunk_overlap: int,
    embedding_client: EmbeddingClient,
) -> PreparedPrompt:
    retrieval_query, user_query = _resolve_queries(query, profile)

    index = build_index(
        pages,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        embedding_client=embedding_client,
    )
    hits = retrieve(index, retrieval_query, k=profile.top_k, embedding_client=embedding_client)
    context = assemble_context(hits)
    logger.info("Assembled %s context: %d characters from %d chunk(s)", profile.name, len(context), len(hits))

    return PreparedPrompt(
        prompt=GroundedPrompt(
            system_instruction=render_system_instruction(profile.system_template, context),
            user_query=user_query,
        ),
        hits=hits,
    )


def prepare(
    document: SourceDocument,
    *,
    query: str | None,
    profile: PipelineProfile,
    chunk_size: int,
    chunk_overlap: int,
    embedding_client: EmbeddingClient,
) -> PreparedPrompt:
    # validate before touching the document or any provider
    _resolve_queries(query, profile)

    return prepare_from_pages(
        load_pages(document),
        query=query,
        profile=profile,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        embedding_client=embedding_client,
    )


def generate_answer(prepared: PreparedPrompt, llm_client: GenerationClient) -> Answer:
    answer = llm_client.generate(
        system_instruction=prepared.prompt.system_instruction,
        user_query=prepared.prompt.user_query,
    )
    return Answer(answer=answer, hits=prepared.hits)


def stream_answer(prepared: PreparedPrompt, llm_client: GenerationClient) -> AsyncIterator[GenerationChunk]:
    return llm_client.stream(
        system_instruction=prepared.prompt.system_instruction,
        user_query=prepared.prompt.user_query,
    )


def answer_question(
    document: SourceDocument,
    *,
    query: str | None,
    profile: PipelineProfile,
    chunk_size: int,
    chunk_overlap: int,
    embedding_client: EmbeddingClient,
    llm_client: GenerationClient,
) -> Answer:
    prepared = prepare(
        document,
        query=query,
        profile=profile,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        embedding_client=embedding_client,
    )
    return generate_answer(prepared, llm_client)
