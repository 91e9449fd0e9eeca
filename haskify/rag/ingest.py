"""Material ingestion - extract, chunk, embed and persist an upload."""

import logging
from datetime import datetime, timedelta
from uuid import uuid4

from haskify.config import Settings
from haskify.db.repositories import MaterialRepository
from haskify.models.materials import Chunk, FileType, Material, MaterialScope
from haskify.rag.chunker import chunk_pages, chunk_source, chunk_text
from haskify.rag.embeddings import EmbeddingProvider
from haskify.rag.extract import DocumentExtractionError, detect_file_type, extract_document
from haskify.utils.metrics import PrometheusTutorMetrics

logger = logging.getLogger(__name__)


class EmptyUploadError(ValueError):
    """Upload contained no bytes."""

    pass


class UploadTooLargeError(ValueError):
    """Upload exceeds the configured size limit."""

    pass


def chunk_document(pages: list[str], file_type: FileType, settings: Settings) -> list[Chunk]:
    """Chunk extracted pages with the strategy for their file type."""
    if file_type == FileType.source_code:
        return chunk_source(
            "\n".join(pages),
            size=settings.code_chunk_lines,
            overlap=settings.code_chunk_overlap_lines,
            min_lines=settings.code_min_chunk_lines,
        )
    if file_type == FileType.pdf:
        return chunk_pages(
            pages, size=settings.chunk_size_words, overlap=settings.chunk_overlap_words
        )
    return chunk_text(
        "\n\n".join(pages), size=settings.chunk_size_words, overlap=settings.chunk_overlap_words
    )


async def ingest_material(
    *,
    data: bytes,
    filename: str,
    content_type: str | None,
    scope: MaterialScope,
    session_id: str | None,
    settings: Settings,
    embedder: EmbeddingProvider,
    repository: MaterialRepository,
    title: str | None = None,
    now: datetime | None = None,
    metrics: PrometheusTutorMetrics | None = None,
) -> Material:
    """Ingest an upload: validate, extract, chunk, embed (vector mode) and persist.

    The material is only stored once every step succeeded.

    Args:
        data: Raw file bytes
        filename: Original file name (drives type detection and default title)
        content_type: Declared MIME type, if any
        scope: Session-private or system-global
        session_id: Owning session for session scope
        settings: Chunking, retention and retrieval settings
        embedder: Embedding provider used in vector mode
        repository: Material store
        title: Display title (defaults to the file name)

    Returns:
        The stored Material

    Raises:
        EmptyUploadError: If ``data`` is empty
        UploadTooLargeError: If ``data`` exceeds ``max_upload_bytes``
        UnsupportedFileTypeError: If the file type is not supported
        DocumentExtractionError: If no text could be extracted
        EmbeddingError: If embedding fails in vector mode
        PersistenceError: If the store write fails
    """
    metrics = metrics or PrometheusTutorMetrics()
    now = now or datetime.utcnow()

    if not data:
        raise EmptyUploadError("No file content uploaded")
    if len(data) > settings.max_upload_bytes:
        raise UploadTooLargeError(
            f"File exceeds the {settings.max_upload_bytes // (1024 * 1024)} MB upload limit"
        )
    if scope == MaterialScope.session and not session_id:
        raise ValueError("session materials need a session_id")

    file_type = detect_file_type(filename, content_type)
    document = extract_document(data, file_type)

    chunks = chunk_document(document.pages, file_type, settings)
    if not chunks:
        raise DocumentExtractionError("Document produced no text chunks")

    material_id = uuid4()

    embeddings: list[list[float]] | None = None
    if settings.retrieval_mode == "vector":
        embeddings = await embedder.embed([c.text for c in chunks])

    stored_chunks = [
        chunk.model_copy(
            update={
                "source_material_id": material_id,
                "embedding": embeddings[i] if embeddings is not None else None,
            }
        )
        for i, chunk in enumerate(chunks)
    ]

    expires_at = None
    if scope == MaterialScope.session:
        expires_at = now + timedelta(minutes=settings.material_retention_minutes)

    material = Material(
        id=material_id,
        title=title or filename or "Untitled material",
        file_type=file_type,
        scope=scope,
        chunks=stored_chunks,
        session_id=session_id if scope == MaterialScope.session else None,
        expires_at=expires_at,
        created_at=now,
    )

    await repository.add(material)

    metrics.inc_material_ingested(file_type.value, scope.value)
    logger.info(
        f"Ingested material {material.id} ({file_type.value}, {len(stored_chunks)} chunks)",
        extra={
            "structured": {
                "material_id": str(material.id),
                "file_type": file_type.value,
                "scope": scope.value,
                "chunks": len(stored_chunks),
            }
        },
    )
    return material
