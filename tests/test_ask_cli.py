from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest

from docqa import ask
from docqa.llm import GenerationConfig
from docqa.services.rag.types import GenerationChunk


class FakeAnthropicChatClient:
    instances: list["FakeAnthropicChatClient"] = []

    def __init__(self, config: GenerationConfig, *, base_url: str, timeout_seconds: float) -> None:
        self.config = config
        self.calls: list[tuple[str, str]] = []
        FakeAnthropicChatClient.instances.append(self)

    def generate(self, *, system_instruction: str, user_query: str) -> str:
        self.calls.append((system_instruction, user_query))
        return "cli answer"

    async def stream(self, *, system_instruction: str, user_query: str) -> AsyncIterator[GenerationChunk]:
        self.calls.append((system_instruction, user_query))
        yield GenerationChunk(text="streamed ")
        yield GenerationChunk(text="answer")
        yield GenerationChunk(text="", done=True)


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch) -> type[FakeAnthropicChatClient]:
    FakeAnthropicChatClient.instances = []
    monkeypatch.setattr(ask, "AnthropicChatClient", FakeAnthropicChatClient)
    monkeypatch.setattr(ask, "configure_logging", lambda level: None)
    monkeypatch.setenv("EMBED_PROVIDER", "hash")
    return FakeAnthropicChatClient


def test_cli_answers_question(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    fake_llm: type[FakeAnthropicChatClient],
    docx_bytes: Callable[[list[str]], bytes],
) -> None:
    document = tmp_path / "notes.docx"
    document.write_bytes(docx_bytes(["The capital of France is Paris."]))

    ask.main([str(document), "What is the capital of France?", "--show-sources"])

    output = capsys.readouterr().out
    assert "cli answer" in output
    assert "The capital of France is Paris." in output
    instance = fake_llm.instances[0]
    assert instance.config.temperature == 0.0
    assert instance.calls[0][1] == "What is the capital of France?"


def test_cli_streams_review(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    fake_llm: type[FakeAnthropicChatClient],
    docx_bytes: Callable[[list[str]], bytes],
) -> None:
    document = tmp_path / "resume.docx"
    document.write_bytes(docx_bytes(["Skills: Python", "Experience: five years"]))

    ask.main([str(document), "--review", "--stream"])

    assert "streamed answer" in capsys.readouterr().out
    assert fake_llm.instances[0].config.temperature == 0.3


def test_cli_reports_failures(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    fake_llm: type[FakeAnthropicChatClient],
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        ask.main([str(tmp_path / "missing.pdf"), "question"])

    assert exc_info.value.code == 1
    assert "[docqa-ask] failed" in capsys.readouterr().err
    assert fake_llm.instances[0].calls == []
