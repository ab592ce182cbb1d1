from dataclasses import replace
from datetime import datetime, timezone
import logging
from pathlib import Path
import time
from typing import Annotated, Any

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from docqa.config import Settings, get_settings
from docqa.errors import DocQAError, MissingDocumentError, MissingQueryError
from docqa.llm import AnthropicChatClient, GenerationClient
from docqa.logging_config import configure_logging
from docqa.services.rag.embedder import HashEmbeddingClient
from docqa.services.rag.embedding_client import EmbeddingClient, OpenAIEmbeddingClient
from docqa.services.rag.loader import detect_format, fetch_document
from docqa.services.rag.pipeline import (
    PipelineProfile,
    PreparedPrompt,
    chat_generation_config,
    chat_profile,
    generate_answer,
    prepare,
    review_generation_config,
    review_profile,
    stream_answer,
)
from docqa.services.rag.types import RetrievalHit, SourceDocument
from docqa.storage import DocumentStore
from docqa.streaming import relay_events

logger = logging.getLogger(__name__)

app = FastAPI(title="Document QA API", version="0.1.0")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str | None = None
    k: int | None = Field(default=None, ge=1, le=20)
    include_sources: bool = True


@app.on_event("startup")
def startup() -> None:
    configure_logging(get_settings().log_level)


@app.exception_handler(DocQAError)
async def handle_docqa_error(request: Request, exc: DocQAError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    else:
        logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def get_embedding_client() -> EmbeddingClient:
    settings = get_settings()
    if settings.embed_provider == "hash":
        return HashEmbeddingClient(dimensions=settings.embed_hash_dim)
    return OpenAIEmbeddingClient(
        base_url=settings.openai_base_url,
        model=settings.embed_model,
        api_key=settings.openai_api_key,
        batch_size=settings.embed_batch_size,
        timeout_seconds=settings.provider_timeout_seconds,
    )


def get_chat_llm_client() -> GenerationClient:
    settings = get_settings()
    return AnthropicChatClient(
        chat_generation_config(settings),
        base_url=settings.anthropic_base_url,
        timeout_seconds=settings.provider_timeout_seconds,
    )


def get_review_llm_client() -> GenerationClient:
    settings = get_settings()
    return AnthropicChatClient(
        review_generation_config(settings),
        base_url=settings.anthropic_base_url,
        timeout_seconds=settings.provider_timeout_seconds,
    )


def get_document_store() -> DocumentStore:
    return DocumentStore(Path(get_settings().upload_dir))


def _chat_document(store: DocumentStore, settings: Settings) -> SourceDocument:
    if settings.document_url:
        return fetch_document(settings.document_url, timeout_seconds=settings.provider_timeout_seconds)
    return store.current()


def _chat_profile(settings: Settings, k: int | None) -> PipelineProfile:
    profile = chat_profile(settings)
    if k is not None:
        profile = replace(profile, top_k=k)
    return profile


def _require_message(request: ChatRequest) -> str:
    message = (request.message or "").strip()
    if not message:
        raise MissingQueryError("Message is required")
    return message


def _hit_payload(hit: RetrievalHit) -> dict[str, Any]:
    return {
        "text": hit.chunk.text,
        "score": round(hit.score, 6),
        "source_index": hit.chunk.source_index,
        "chunk_index": hit.chunk.chunk_index,
    }


def _prepare_chat(
    message: str,
    k: int | None,
    store: DocumentStore,
    embedding_client: EmbeddingClient,
) -> PreparedPrompt:
    settings = get_settings()
    return prepare(
        _chat_document(store, settings),
        query=message,
        profile=_chat_profile(settings, k),
        chunk_size=settings.rag_chunk_size,
        chunk_overlap=settings.rag_chunk_overlap,
        embedding_client=embedding_client,
    )


def _event_stream(prepared: PreparedPrompt, llm_client: GenerationClient) -> StreamingResponse:
    return StreamingResponse(
        relay_events(
            stream_answer(prepared, llm_client),
            queue_size=get_settings().stream_queue_size,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/upload")
async def upload(
    store: Annotated[DocumentStore, Depends(get_document_store)],
    file: UploadFile | None = File(default=None),
) -> dict[str, Any]:
    if file is None or not file.filename:
        raise MissingDocumentError("No file provided")

    content = await file.read()
    stored = await run_in_threadpool(
        store.save,
        filename=file.filename,
        content_type=file.content_type,
        content=content,
    )

    return {
        "success": True,
        "message": "File uploaded successfully",
        "filename": stored.filename,
        "original_name": stored.original_name,
        "size": stored.size,
        "type": stored.content_type,
        "uploaded_at": stored.uploaded_at,
    }


@app.get("/upload")
def current_upload(
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> dict[str, Any]:
    return {"document": store.describe()}


@app.post("/chat")
def chat(
    request: ChatRequest,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    llm_client: Annotated[GenerationClient, Depends(get_chat_llm_client)],
    embedding_client: Annotated[EmbeddingClient, Depends(get_embedding_client)],
) -> dict[str, Any]:
    message = _require_message(request)

    prepared = _prepare_chat(message, request.k, store, embedding_client)
    result = generate_answer(prepared, llm_client)

    payload: dict[str, Any] = {
        "id": f"chat_{int(time.time() * 1000)}",
        "answer": result.answer,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if request.include_sources:
        payload["retrieved"] = [_hit_payload(hit) for hit in result.hits]
    return payload


@app.post("/chat/stream")
async def chat_stream(
    request: ChatRequest,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    llm_client: Annotated[GenerationClient, Depends(get_chat_llm_client)],
    embedding_client: Annotated[EmbeddingClient, Depends(get_embedding_client)],
) -> StreamingResponse:
    message = _require_message(request)

    # ingestion errors surface as a plain error response before any event is sent
    prepared = await run_in_threadpool(_prepare_chat, message, request.k, store, embedding_client)
    return _event_stream(prepared, llm_client)


@app.post("/review")
async def review(
    llm_client: Annotated[GenerationClient, Depends(get_review_llm_client)],
    embedding_client: Annotated[EmbeddingClient, Depends(get_embedding_client)],
    file: UploadFile | None = File(default=None),
) -> StreamingResponse:
    if file is None or not file.filename:
        raise MissingDocumentError("No file uploaded")

    content = await file.read()
    document = SourceDocument(
        content=content,
        format=detect_format(file.filename, content),
        name=file.filename,
    )

    settings = get_settings()
    prepared = await run_in_threadpool(
        prepare,
        document,
        query=None,
        profile=review_profile(settings),
        chunk_size=settings.rag_chunk_size,
        chunk_overlap=settings.rag_chunk_overlap,
        embedding_client=embedding_client,
    )
    return _event_stream(prepared, llm_client)


def run() -> None:
    import uvicorn

    uvicorn.run("docqa.main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    run()
