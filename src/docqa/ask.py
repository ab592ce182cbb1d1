from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from pathlib import Path
import sys

from docqa.config import Settings, get_settings
from docqa.errors import DocQAError
from docqa.llm import AnthropicChatClient, GenerationClient
from docqa.logging_config import configure_logging
from docqa.services.rag.embedder import HashEmbeddingClient
from docqa.services.rag.embedding_client import EmbeddingClient, OpenAIEmbeddingClient
from docqa.services.rag.loader import read_document
from docqa.services.rag.pipeline import (
    PreparedPrompt,
    chat_generation_config,
    chat_profile,
    generate_answer,
    prepare,
    review_generation_config,
    review_profile,
    stream_answer,
)


def _build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="docqa-ask",
        description="Answer a question from a single PDF/DOCX document",
    )
    parser.add_argument("document", help="Path to a .pdf or .docx file")
    parser.add_argument(
        "question",
        nargs="?",
        default=None,
        help="Question to ask (omit with --review)",
    )
    parser.add_argument(
        "--review",
        action="store_true",
        help="Run the resume review prompt instead of a question",
    )
    parser.add_argument("--k", type=int, default=None, help="Number of chunks to retrieve")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=settings.rag_chunk_size,
        help="Chunk size in characters",
    )
    parser.add_argument(
        "--chunk-overlap",
        type=int,
        default=settings.rag_chunk_overlap,
        help="Chunk overlap in characters",
    )
    parser.add_argument("--stream", action="store_true", help="Print the answer as it is generated")
    parser.add_argument(
        "--show-sources",
        action="store_true",
        help="Print retrieved chunks with their scores",
    )
    return parser


def _embedding_client(settings: Settings) -> EmbeddingClient:
    if settings.embed_provider == "hash" or not settings.openai_api_key:
        return HashEmbeddingClient(dimensions=settings.embed_hash_dim)
    return OpenAIEmbeddingClient(
        base_url=settings.openai_base_url,
        model=settings.embed_model,
        api_key=settings.openai_api_key,
        batch_size=settings.embed_batch_size,
        timeout_seconds=settings.provider_timeout_seconds,
    )


async def _print_stream(prepared: PreparedPrompt, llm_client: GenerationClient) -> None:
    async for chunk in stream_answer(prepared, llm_client):
        if chunk.text:
            print(chunk.text, end="", flush=True)
    print(flush=True)


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    profile = review_profile(settings) if args.review else chat_profile(settings)
    if args.k is not None:
        profile = replace(profile, top_k=args.k)
    generation_config = (
        review_generation_config(settings) if args.review else chat_generation_config(settings)
    )
    llm_client = AnthropicChatClient(
        generation_config,
        base_url=settings.anthropic_base_url,
        timeout_seconds=settings.provider_timeout_seconds,
    )

    try:
        prepared = prepare(
            read_document(Path(args.document)),
            query=args.question,
            profile=profile,
            chunk_size=args.chunk_size,
            chunk_overlap=args.chunk_overlap,
            embedding_client=_embedding_client(settings),
        )

        if args.show_sources:
            for hit in prepared.hits:
                preview = hit.chunk.text[:120].replace("\n", " ")
                print(f"[{hit.score:.4f}] page={hit.chunk.source_index} {preview}", flush=True)

        if args.stream:
            asyncio.run(_print_stream(prepared, llm_client))
        else:
            print(generate_answer(prepared, llm_client).answer, flush=True)
    except (DocQAError, FileNotFoundError, ValueError) as exc:
        print(f"[docqa-ask] failed: {exc}", file=sys.stderr, flush=True)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
