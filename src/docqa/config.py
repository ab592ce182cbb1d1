from dataclasses import dataclass
from functools import lru_cache
import os


def _to_int(value: str | None, *, default: int, minimum: int, maximum: int | None = None) -> int:
    parsed = default if value is None else int(value)
    parsed = max(minimum, parsed)
    if maximum is not None:
        parsed = min(maximum, parsed)
    return parsed


def _to_float(value: str | None, *, default: float) -> float:
    if value is None:
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    upload_dir: str
    document_url: str | None
    rag_chunk_size: int
    rag_chunk_overlap: int
    rag_chat_top_k: int
    rag_review_top_k: int
    embed_provider: str
    openai_base_url: str
    openai_api_key: str
    embed_model: str
    embed_batch_size: int
    embed_hash_dim: int
    anthropic_base_url: str
    anthropic_api_key: str
    chat_model: str
    chat_temperature: float
    review_model: str
    review_temperature: float
    llm_max_tokens: int
    provider_timeout_seconds: float
    stream_queue_size: int
    log_level: str


@lru_cache
def get_settings() -> Settings:
    chunk_size = _to_int(os.getenv("RAG_CHUNK_SIZE"), default=1000, minimum=50)
    return Settings(
        upload_dir=os.getenv("DOCQA_UPLOAD_DIR", "data/uploads"),
        document_url=os.getenv("DOCQA_DOCUMENT_URL") or None,
        rag_chunk_size=chunk_size,
        rag_chunk_overlap=_to_int(
            os.getenv("RAG_CHUNK_OVERLAP"), default=200, minimum=0, maximum=chunk_size - 1
        ),
        rag_chat_top_k=_to_int(os.getenv("RAG_CHAT_TOP_K"), default=4, minimum=1),
        rag_review_top_k=_to_int(os.getenv("RAG_REVIEW_TOP_K"), default=5, minimum=1),
        embed_provider=os.getenv("EMBED_PROVIDER", "openai").strip().lower(),
        openai_base_url=os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        embed_model=os.getenv("EMBED_MODEL", "text-embedding-ada-002"),
        embed_batch_size=_to_int(os.getenv("EMBED_BATCH_SIZE"), default=512, minimum=1),
        embed_hash_dim=_to_int(os.getenv("EMBED_HASH_DIM"), default=64, minimum=8),
        anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        chat_model=os.getenv("CHAT_MODEL", "claude-3-5-sonnet-20240620"),
        chat_temperature=_to_float(os.getenv("CHAT_TEMPERATURE"), default=0.0),
        review_model=os.getenv("REVIEW_MODEL", "claude-3-5-sonnet-20241022"),
        review_temperature=_to_float(os.getenv("REVIEW_TEMPERATURE"), default=0.3),
        llm_max_tokens=_to_int(os.getenv("LLM_MAX_TOKENS"), default=1024, minimum=1),
        provider_timeout_seconds=_to_float(os.getenv("PROVIDER_TIMEOUT_SECONDS"), default=60.0),
        stream_queue_size=_to_int(
            os.getenv("STREAM_QUEUE_SIZE"), default=2, minimum=1, maximum=4
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
