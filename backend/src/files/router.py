"""File endpoints: upload registration, owner edits, hard delete, counters."""

from typing import Optional

from fastapi import APIRouter, Depends, status

from audit.schemas import FileResponse, RemarkRequest
from auth.dependencies import get_current_actor
from dependencies import get_file_service, get_moderation_engine
from domain.moderation.policy import Actor
from moderation.engine import ModerationEngine
from .schemas import FileAccessResponse, FileCreate, FileUpdate, LikeResponse
from .service import FileService, NewFile


router = APIRouter(prefix="/files", tags=["Files"])


@router.post("", response_model=FileResponse, status_code=status.HTTP_201_CREATED, summary="Register an upload")
def create_file(
    data: FileCreate,
    actor: Actor = Depends(get_current_actor),
    service: FileService = Depends(get_file_service),
):
    return service.create_file(actor, NewFile(**data.model_dump()))


@router.patch("/{file_id}", response_model=FileResponse, summary="Edit file metadata (owner only)")
def update_file(
    file_id: int,
    data: FileUpdate,
    actor: Actor = Depends(get_current_actor),
    service: FileService = Depends(get_file_service),
):
    return service.update_file_metadata(actor, file_id, **data.model_dump(exclude_unset=True))


@router.delete("/{file_id}", response_model=FileResponse, summary="Hard-delete a file (ADMIN)")
def delete_file(
    file_id: int,
    body: Optional[RemarkRequest] = None,
    actor: Actor = Depends(get_current_actor),
    engine: ModerationEngine = Depends(get_moderation_engine),
):
    return engine.delete_file(actor, file_id, body.remark if body else None)


@router.post("/{file_id}/view", response_model=FileAccessResponse, summary="Count a view of an APPROVED file")
def view_file(
    file_id: int,
    actor: Actor = Depends(get_current_actor),
    service: FileService = Depends(get_file_service),
):
    return service.record_view(file_id)


@router.post("/{file_id}/download", response_model=FileAccessResponse, summary="Count a download of an APPROVED file")
def download_file(
    file_id: int,
    actor: Actor = Depends(get_current_actor),
    service: FileService = Depends(get_file_service),
):
    return service.record_download(file_id)


@router.put("/{file_id}/like", response_model=LikeResponse, summary="Toggle the caller's like")
def toggle_like(
    file_id: int,
    actor: Actor = Depends(get_current_actor),
    service: FileService = Depends(get_file_service),
):
    return service.toggle_like(actor, file_id)
