"""Material endpoints - upload, list, inspect and clean up course materials."""

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, Field

from haskify.api.deps import ServicesDep, SessionDep, require_admin
from haskify.db.repositories import PersistenceError
from haskify.models.materials import FileType, Material, MaterialScope, MaterialSummary
from haskify.rag.embeddings import EmbeddingError
from haskify.rag.extract import DocumentExtractionError, UnsupportedFileTypeError
from haskify.rag.ingest import EmptyUploadError, UploadTooLargeError, ingest_material
from haskify.services import Services

router = APIRouter(prefix="/api", tags=["materials"])
logger = logging.getLogger(__name__)


class UploadMaterialResponse(BaseModel):
    """Response for material uploads."""

    material_id: UUID = Field(..., serialization_alias="materialId")
    title: str
    chunks: int
    file_type: FileType = Field(..., serialization_alias="fileType")
    scope: MaterialScope
    expires_at: datetime | None = Field(None, serialization_alias="expiresAt")

    @classmethod
    def from_material(cls, material: Material) -> "UploadMaterialResponse":
        return cls(
            material_id=material.id,
            title=material.title,
            chunks=len(material.chunks),
            file_type=material.file_type,
            scope=material.scope,
            expires_at=material.expires_at,
        )


class MaterialListResponse(BaseModel):
    """Response for GET /api/materials."""

    materials: list[MaterialSummary]


class MaterialDetailResponse(BaseModel):
    """Response for GET /api/materials/{material_id}."""

    title: str
    chunks: int


class DeleteMaterialsResponse(BaseModel):
    """Response for DELETE /api/session/materials."""

    deleted: int


async def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    # Read one byte past the limit so oversize uploads are detected without buffering them whole
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {max_bytes // (1024 * 1024)} MB upload limit",
        )
    return data


async def _ingest_upload(
    services: Services,
    file: UploadFile,
    *,
    scope: MaterialScope,
    session_id: str | None,
    title: str | None,
) -> Material:
    """Run ingestion for an uploaded file and map failures to HTTP errors."""
    data = await _read_upload(file, services.settings.max_upload_bytes)

    try:
        return await ingest_material(
            data=data,
            filename=file.filename or "",
            content_type=file.content_type,
            scope=scope,
            session_id=session_id,
            settings=services.settings,
            embedder=services.embedder,
            repository=services.materials,
            title=title,
            metrics=services.tutor_metrics,
        )
    except EmptyUploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except UploadTooLargeError as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e)) from e
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e)) from e
    except DocumentExtractionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except EmbeddingError as e:
        logger.error(f"Embedding failed during upload of {file.filename!r}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to embed material") from e
    except PersistenceError as e:
        logger.error(f"Could not store material {file.filename!r}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to store material"
        ) from e


@router.post(
    "/upload-material",
    response_model=UploadMaterialResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def upload_material(
    ctx: SessionDep,
    services: ServicesDep,
    file: Annotated[UploadFile, File()],
    title: Annotated[str | None, Form(max_length=200)] = None,
) -> UploadMaterialResponse:
    """Upload a PDF, source file or text file as a session material.

    The material is private to the session and expires after the
    retention window.
    """
    material = await _ingest_upload(
        services, file, scope=MaterialScope.session, session_id=ctx.session_id, title=title
    )
    return UploadMaterialResponse.from_material(material)


@router.get("/materials", response_model=MaterialListResponse)
async def list_materials(ctx: SessionDep, services: ServicesDep) -> MaterialListResponse:
    """Materials visible to the session: its own, then system materials."""
    now = datetime.utcnow()
    session_materials = await services.materials.list_for_session(ctx.session_id, now)
    system_materials = await services.materials.list_system()
    return MaterialListResponse(
        materials=[MaterialSummary.from_material(m) for m in [*session_materials, *system_materials]]
    )


@router.get("/materials/{material_id}", response_model=MaterialDetailResponse)
async def get_material(material_id: UUID, ctx: SessionDep, services: ServicesDep) -> MaterialDetailResponse:
    """Title and chunk count of a material visible to the session.

    Raises:
        HTTPException: 404 if missing, expired, inactive or owned by another session
    """
    material = await services.materials.get(material_id)

    visible = material is not None and (
        (material.scope == MaterialScope.system and material.active)
        or (
            material.scope == MaterialScope.session
            and material.session_id == ctx.session_id
            and not material.is_expired(datetime.utcnow())
        )
    )
    if not visible or material is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    return MaterialDetailResponse(title=material.title, chunks=len(material.chunks))


@router.delete("/session/materials", response_model=DeleteMaterialsResponse)
async def delete_session_materials(ctx: SessionDep, services: ServicesDep) -> DeleteMaterialsResponse:
    """End-of-session cleanup: drop the session's materials and quiz hash set."""
    deleted = await services.materials.delete_for_session(ctx.session_id)
    services.hash_store.forget(ctx.session_id)
    logger.info(f"Session {ctx.session_id} cleaned up ({deleted} materials)")
    return DeleteMaterialsResponse(deleted=deleted)


@router.post(
    "/system-materials",
    response_model=UploadMaterialResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def upload_system_material(
    services: ServicesDep,
    file: Annotated[UploadFile, File()],
    title: Annotated[str | None, Form(max_length=200)] = None,
) -> UploadMaterialResponse:
    """Upload a global material available to every session (admin only)."""
    material = await _ingest_upload(services, file, scope=MaterialScope.system, session_id=None, title=title)
    return UploadMaterialResponse.from_material(material)


@router.delete(
    "/system-materials/{material_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def deactivate_system_material(material_id: UUID, services: ServicesDep) -> None:
    """Deactivate a system material (admin only).

    Raises:
        HTTPException: 404 if no such system material exists
    """
    if not await services.materials.deactivate(material_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="System material not found")
