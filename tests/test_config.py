import pytest

from docqa.config import get_settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "RAG_CHUNK_SIZE",
        "RAG_CHUNK_OVERLAP",
        "RAG_CHAT_TOP_K",
        "RAG_REVIEW_TOP_K",
        "CHAT_TEMPERATURE",
        "REVIEW_TEMPERATURE",
        "STREAM_QUEUE_SIZE",
        "DOCQA_DOCUMENT_URL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.rag_chunk_size == 1000
    assert settings.rag_chunk_overlap == 200
    assert settings.rag_chat_top_k == 4
    assert settings.rag_review_top_k == 5
    assert settings.chat_temperature == 0.0
    assert settings.review_temperature == 0.3
    assert settings.stream_queue_size == 2
    assert settings.document_url is None


def test_settings_read_explicit_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_CHUNK_SIZE", "400")
    monkeypatch.setenv("RAG_CHAT_TOP_K", "6")
    monkeypatch.setenv("CHAT_MODEL", "claude-test")
    monkeypatch.setenv("EMBED_PROVIDER", " HASH ")
    monkeypatch.setenv("DOCQA_DOCUMENT_URL", "https://files.example.com/doc.pdf")

    settings = get_settings()

    assert settings.rag_chunk_size == 400
    assert settings.rag_chat_top_k == 6
    assert settings.chat_model == "claude-test"
    assert settings.embed_provider == "hash"
    assert settings.document_url == "https://files.example.com/doc.pdf"


def test_settings_clamp_integer_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RAG_CHAT_TOP_K", "0")
    monkeypatch.setenv("STREAM_QUEUE_SIZE", "64")

    settings = get_settings()

    assert settings.rag_chat_top_k == 1
    assert settings.stream_queue_size == 4


@pytest.mark.parametrize(
    ("chunk_size", "chunk_overlap", "expected_overlap"),
    [("100", "200", 99), ("100", "100", 99), ("100", None, 99), ("400", "150", 150)],
)
def test_settings_keep_overlap_below_chunk_size(
    monkeypatch: pytest.MonkeyPatch,
    chunk_size: str,
    chunk_overlap: str | None,
    expected_overlap: int,
) -> None:
    monkeypatch.setenv("RAG_CHUNK_SIZE", chunk_size)
    if chunk_overlap is None:
        monkeypatch.delenv("RAG_CHUNK_OVERLAP", raising=False)
    else:
        monkeypatch.setenv("RAG_CHUNK_OVERLAP", chunk_overlap)

    settings = get_settings()

    assert settings.rag_chunk_overlap == expected_overlap
    assert settings.rag_chunk_overlap < settings.rag_chunk_size
