"""Tag endpoints. Create/update need VOLUNTEER+, delete needs ADMIN."""

from fastapi import APIRouter, Depends, Response, status

from auth.dependencies import get_current_actor
from dependencies import get_tag_service
from domain.moderation.policy import Actor
from .schemas import TagCreate, TagResponse, TagUpdate
from .service import TagService


router = APIRouter(prefix="/tags", tags=["Tags"])


@router.get("", response_model=list[TagResponse])
def list_tags(service: TagService = Depends(get_tag_service)):
    return service.list_tags()


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
def create_tag(
    data: TagCreate,
    actor: Actor = Depends(get_current_actor),
    service: TagService = Depends(get_tag_service),
):
    return service.create_tag(actor, **data.model_dump())


@router.put("/{tag_id}", response_model=TagResponse)
def update_tag(
    tag_id: int,
    data: TagUpdate,
    actor: Actor = Depends(get_current_actor),
    service: TagService = Depends(get_tag_service),
):
    return service.update_tag(actor, tag_id, **data.model_dump(exclude_unset=True))


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tag(
    tag_id: int,
    actor: Actor = Depends(get_current_actor),
    service: TagService = Depends(get_tag_service),
):
    service.delete_tag(actor, tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
