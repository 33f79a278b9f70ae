from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from src.api.deps import get_blob_store, get_db_session, require_roles
from src.api.schemas.artifacts import ArtifactItem, ArtifactsResponse
from src.domain import User
from src.domain.errors import DomainValidationError, NotFoundError, PermissionDeniedError
from src.domain.services.artifacts import ArtifactService
from src.libs.blob_store import BlobStoreError, BlobStoreProtocol

router = APIRouter(prefix="/artifacts", tags=["Artifacts"])
logger = structlog.get_logger()


@router.post("", response_model=ArtifactItem, status_code=status.HTTP_201_CREATED)
async def upload_artifact(
    file: UploadFile = File(...),  # noqa: B008
    competency_ids: list[str] = Form(...),  # noqa: B008
    display_name: str | None = Form(None),
    learner_id: str | None = Form(None, description="Defaults to the authenticated learner"),
    session: AsyncSession = Depends(get_db_session),
    blob_store: BlobStoreProtocol = Depends(get_blob_store),
    user: User = Depends(require_roles(["learner", "educator"])),
) -> ArtifactItem:
    """Upload an evidence file (pdf, jpg, png or mp4) linked to competencies."""
    target = learner_id or user.user_id
    service = ArtifactService(session, blob_store)
    # never buffer more than one byte past the limit
    if file.size is not None and file.size > service.max_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(service.too_large())
        )
    data = await file.read(service.max_size_bytes + 1)
    try:
        artifact = await service.upload(
            uploader=user,
            learner_id=target,
            filename=file.filename or "",
            data=data,
            competency_ids=competency_ids,
            display_name=display_name,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except DomainValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except BlobStoreError as exc:
        logger.exception("artifact_blob_write_failed", learner_id=target)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="File storage is unavailable",
        ) from exc
    return ArtifactItem.from_domain(artifact)


@router.get("", response_model=ArtifactsResponse)
async def list_artifacts(
    learner_id: str | None = None,
    competency_id: str | None = None,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(require_roles(["learner", "educator"])),
) -> ArtifactsResponse:
    target = learner_id or user.user_id
    try:
        artifacts = await ArtifactService(session).list_for_learner(
            target, competency_id=competency_id, viewer=user
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return ArtifactsResponse(artifacts=[ArtifactItem.from_domain(item) for item in artifacts])


@router.delete("/{artifact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_artifact(
    artifact_id: str,
    session: AsyncSession = Depends(get_db_session),
    blob_store: BlobStoreProtocol = Depends(get_blob_store),
    user: User = Depends(require_roles(["learner"])),
) -> Response:
    try:
        await ArtifactService(session, blob_store).delete(actor=user, artifact_id=artifact_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionDeniedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
