"""Document extraction - raw upload bytes to plain text."""

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from haskify.models.materials import FileType

logger = logging.getLogger(__name__)

SOURCE_CODE_EXTENSIONS = frozenset(
    {".py", ".hs", ".lhs", ".js", ".ts", ".java", ".c", ".h", ".cpp", ".rs", ".go", ".rb"}
)
PLAIN_TEXT_EXTENSIONS = frozenset({".txt", ".md", ".rst"})


class DocumentExtractionError(Exception):
    """Upload has no extractable text (e.g. scanned PDF without a text layer)."""

    pass


class UnsupportedFileTypeError(Exception):
    """Upload is not a PDF, source file or plain-text file."""

    pass


@dataclass(frozen=True)
class ExtractedDocument:
    """Extracted text, one entry per page (a single page for non-PDFs)."""

    pages: list[str]

    @property
    def text(self) -> str:
        return "\n\n".join(self.pages)


def detect_file_type(filename: str, content_type: str | None) -> FileType:
    """Classify an upload by MIME type, then by extension.

    Raises:
        UnsupportedFileTypeError: If neither identifies a supported type
    """
    suffix = PurePath(filename or "").suffix.lower()

    if content_type == "application/pdf" or suffix == ".pdf":
        return FileType.pdf
    if suffix in SOURCE_CODE_EXTENSIONS or content_type in ("text/x-python", "text/x-haskell"):
        return FileType.source_code
    if suffix in PLAIN_TEXT_EXTENSIONS or content_type in ("text/plain", "text/markdown"):
        return FileType.plain_text

    raise UnsupportedFileTypeError(
        f"Unsupported file type for {filename!r}: upload a PDF, source file or text file"
    )


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1", errors="replace")


def _extract_pdf_pages(data: bytes) -> list[str]:
    try:
        reader = PdfReader(io.BytesIO(data))
        return [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as e:
        raise DocumentExtractionError(f"PDF could not be read: {e}") from e


def extract_document(data: bytes, file_type: FileType) -> ExtractedDocument:
    """Extract text from raw upload bytes.

    Args:
        data: Uploaded file contents
        file_type: Declared/detected file type

    Returns:
        ExtractedDocument with per-page text for PDFs

    Raises:
        DocumentExtractionError: If no text could be extracted
    """
    if file_type == FileType.pdf:
        pages = _extract_pdf_pages(data)
    else:
        pages = [_decode_text(data)]

    if not any(page.strip() for page in pages):
        logger.info("Upload has no extractable text", extra={"structured": {"file_type": file_type.value}})
        if file_type == FileType.pdf:
            raise DocumentExtractionError("PDF has no extractable text")
        raise DocumentExtractionError("File is empty")

    return ExtractedDocument(pages=pages)
