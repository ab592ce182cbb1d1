from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from pathlib import Path

from docqa.errors import DocumentNotFoundError, UnsupportedFormatError
from docqa.services.rag.loader import detect_format
from docqa.services.rag.types import SourceDocument

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}

SLOT_NAME = "document"


@dataclass(frozen=True)
class StoredDocument:
    filename: str
    original_name: str
    size: int
    content_type: str
    uploaded_at: str


class DocumentStore:
    """Single-slot storage: each upload replaces the previous document."""

    def __init__(self, upload_dir: Path) -> None:
        self._upload_dir = upload_dir

    def _slot_files(self) -> list[Path]:
        if not self._upload_dir.is_dir():
            return []
        return sorted(
            path
            for path in self._upload_dir.glob(f"{SLOT_NAME}.*")
            if path.is_file() and path.suffix.lower() in ALLOWED_CONTENT_TYPES.values()
        )

    def save(self, *, filename: str, content_type: str | None, content: bytes) -> StoredDocument:
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedFormatError("Invalid file type. Only PDF and DOC files are allowed")

        extension = Path(filename).suffix.lower() or ALLOWED_CONTENT_TYPES[content_type]
        if extension not in ALLOWED_CONTENT_TYPES.values():
            raise UnsupportedFormatError(f"Invalid file extension '{extension}'")

        self._upload_dir.mkdir(parents=True, exist_ok=True)
        target = self._upload_dir / f"{SLOT_NAME}{extension}"
        for existing in self._slot_files():
            if existing != target:
                existing.unlink()
        target.write_bytes(content)

        logger.info("Stored upload %r as %s (%d bytes)", filename, target.name, len(content))
        return StoredDocument(
            filename=target.name,
            original_name=filename,
            size=len(content),
            content_type=content_type,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
        )

    def describe(self) -> dict[str, object] | None:
        files = self._slot_files()
        if not files:
            return None
        path = files[0]
        stat = path.stat()
        return {
            "filename": path.name,
            "size": stat.st_size,
            "modified_at": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        }

    def current(self) -> SourceDocument:
        files = self._slot_files()
        if not files:
            raise DocumentNotFoundError("No document has been uploaded")

        path = files[0]
        content = path.read_bytes()
        return SourceDocument(content=content, format=detect_format(path.name, content), name=path.name)
