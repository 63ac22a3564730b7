"""Category endpoints. Create/update need VOLUNTEER+, delete needs ADMIN."""

from fastapi import APIRouter, Depends, Response, status

from auth.dependencies import get_current_actor
from dependencies import get_category_service
from domain.moderation.policy import Actor
from .schemas import CategoryCreate, CategoryResponse, CategoryUpdate
from .service import CategoryService


router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=list[CategoryResponse])
def list_categories(service: CategoryService = Depends(get_category_service)):
    return service.list_categories()


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreate,
    actor: Actor = Depends(get_current_actor),
    service: CategoryService = Depends(get_category_service),
):
    return service.create_category(actor, **data.model_dump())


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    actor: Actor = Depends(get_current_actor),
    service: CategoryService = Depends(get_category_service),
):
    # exclude_unset keeps "parent_id omitted" apart from "parent_id: null"
    return service.update_category(actor, category_id, **data.model_dump(exclude_unset=True))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CategoryService = Depends(get_category_service),
):
    service.delete_category(actor, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
