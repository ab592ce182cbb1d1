from dataclasses import dataclass
from typing import Literal

DocumentFormat = Literal["pdf", "docx"]


@dataclass(frozen=True)
class SourceDocument:
    content: bytes
    format: DocumentFormat
    name: str


@dataclass(frozen=True)
class Page:
    source_index: int
    text: str


@dataclass(frozen=True)
class Chunk:
    text: str
    source_index: int
    chunk_index: int


@dataclass(frozen=True)
class IndexEntry:
    vector: list[float]
    chunk: Chunk


@dataclass(frozen=True)
class RetrievalHit:
    chunk: Chunk
    score: float


@dataclass(frozen=True)
class GroundedPrompt:
    system_instruction: str
    user_query: str


@dataclass(frozen=True)
class GenerationChunk:
    text: str
    done: bool = False
