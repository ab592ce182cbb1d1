from __future__ import annotations

from io import BytesIO
import logging
from pathlib import Path
from urllib.parse import urlparse
from zipfile import BadZipFile

import docx
from docx.opc.exceptions import PackageNotFoundError
import httpx
from pypdf import PdfReader
from pypdf.errors import PyPdfError

from docqa.errors import DocumentParseError, ProviderTimeoutError, UnsupportedFormatError
from docqa.services.rag.types import DocumentFormat, Page, SourceDocument

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: dict[str, DocumentFormat] = {".pdf": "pdf", ".docx": "docx"}

_PDF_MAGIC = b"%PDF-"
_ZIP_MAGIC = b"PK\x03\x04"


def detect_format(filename: str | None, content: bytes) -> DocumentFormat:
    """Resolve the document format from its declared suffix, else its magic bytes.

    A declared but unsupported suffix (``.doc``, ``.txt``...) is rejected even
    if the content happens to look like a supported container.
    """
    suffix = Path(filename).suffix.lower() if filename else ""
    if suffix:
        document_format = SUPPORTED_EXTENSIONS.get(suffix)
        if document_format is None:
            raise UnsupportedFormatError(
                f"Unsupported document type '{suffix}'. Supported: {sorted(SUPPORTED_EXTENSIONS)}"
            )
        return document_format

    if content.startswith(_PDF_MAGIC):
        return "pdf"
    if content.startswith(_ZIP_MAGIC):
        return "docx"
    raise UnsupportedFormatError("Could not determine document type from its content")


def read_document(path: Path) -> SourceDocument:
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    content = path.read_bytes()
    return SourceDocument(content=content, format=detect_format(path.name, content), name=path.name)


def fetch_document(url: str, *, timeout_seconds: float = 30.0) -> SourceDocument:
    try:
        response = httpx.get(url, timeout=timeout_seconds, follow_redirects=True)
        response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ProviderTimeoutError("Timed out fetching the document") from exc
    except httpx.HTTPError as exc:
        raise DocumentParseError(f"Failed to fetch the document: {type(exc).__name__}") from exc

    name = Path(urlparse(url).path).name
    content = response.content
    return SourceDocument(content=content, format=detect_format(name, content), name=name or url)


def _load_pdf(content: bytes) -> list[Page]:
    try:
        reader = PdfReader(BytesIO(content))
        texts = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise DocumentParseError(f"Could not parse PDF document: {exc}") from exc

    return [Page(source_index=index, text=text) for index, text in enumerate(texts)]


def _load_docx(content: bytes) -> list[Page]:
    try:
        document = docx.Document(BytesIO(content))
    except (PackageNotFoundError, BadZipFile, KeyError, ValueError) as exc:
        raise DocumentParseError(f"Could not parse DOCX document: {exc}") from exc

    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            lines.append("\t".join(cell.text for cell in row.cells))

    # DOCX has no reliable page boundaries, so the body is a single page
    return [Page(source_index=0, text="\n".join(lines))]


_LOADERS = {
    "pdf": _load_pdf,
    "docx": _load_docx,
}


def load_pages(document: SourceDocument) -> list[Page]:
    loader = _LOADERS.get(document.format)
    if loader is None:
        raise UnsupportedFormatError(f"Unsupported document format: {document.format}")

    pages = loader(document.content)
    logger.info("Loaded %s document %r: %d page(s)", document.format, document.name, len(pages))
    return pages
