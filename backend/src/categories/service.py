"""Category service.

Categories form a tree through ``parent_id``. Mutations are guarded by the
access policy but are not moderation transitions and are not ledgered.

Rules:
- name is unique (ConflictError)
- parent must exist and may not be the category itself or a descendant
  (ValidationError)
- delete is refused while the category has children or files (ConflictError)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from database import UnitOfWork, UnitOfWorkFactory
from domain.moderation.enums import Transition
from domain.moderation.errors import ConflictError, ValidationError
from domain.moderation.policy import Actor, authorize
from models.category import Category

logger = logging.getLogger(__name__)

# Sentinel distinguishing "leave parent unchanged" from "move to root"
UNCHANGED = object()


class CategoryService:

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def list_categories(self) -> List[Dict[str, Any]]:
        with self.uow_factory() as uow:
            categories = uow.session.query(Category).order_by(Category.sort_order, Category.id).all()
            return [category.to_dict() for category in categories]

    def create_category(
        self,
        actor: Actor,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
        sort_order: int = 0,
        enabled: bool = True,
    ) -> Dict[str, Any]:
        authorize(actor, Transition.CATEGORY_CREATE)
        with self.uow_factory() as uow:
            name = self._check_name(uow, name)
            if parent_id is not None:
                uow.store.require_category(parent_id)
            category = Category(
                name=name,
                description=description,
                parent_id=parent_id,
                sort_order=sort_order,
                enabled=enabled,
            )
            uow.store.add(category)
            snapshot = category.to_dict()
        logger.info(f"Category {snapshot['id']} created", extra={"actor_id": actor.id})
        return snapshot

    def update_category(
        self,
        actor: Actor,
        category_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parent_id: Any = UNCHANGED,
        sort_order: Optional[int] = None,
        enabled: Optional[bool] = None,
    ) -> Dict[str, Any]:
        with self.uow_factory() as uow:
            category = uow.store.require_category(category_id)
            authorize(actor, Transition.CATEGORY_UPDATE)
            if name is not None and name.strip() != category.name:
                category.name = self._check_name(uow, name)
            if description is not None:
                category.description = description
            if parent_id is not UNCHANGED:
                if parent_id is not None:
                    self._check_parent(uow, category_id, parent_id)
                category.parent_id = parent_id
            if sort_order is not None:
                category.sort_order = sort_order
            if enabled is not None:
                category.enabled = enabled
            category.updated_at = datetime.now(timezone.utc)
            uow.flush()
            snapshot = category.to_dict()
        return snapshot

    def delete_category(self, actor: Actor, category_id: int) -> None:
        with self.uow_factory() as uow:
            category = uow.store.require_category(category_id)
            authorize(actor, Transition.CATEGORY_DELETE)
            children = uow.store.count_child_categories(category_id)
            if children:
                raise ConflictError(
                    f"Category {category_id} has {children} child categories",
                    context={"category_id": category_id, "children": children},
                )
            files = uow.store.count_files_in_category(category_id)
            if files:
                raise ConflictError(
                    f"Category {category_id} still holds {files} files",
                    context={"category_id": category_id, "files": files},
                )
            uow.store.delete(category)
        logger.info(f"Category {category_id} deleted", extra={"actor_id": actor.id})

    def _check_name(self, uow: UnitOfWork, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name must not be blank", context={"field": "name"})
        if uow.store.category_by_name(name) is not None:
            raise ConflictError(f"Category name already exists: {name}", context={"name": name})
        return name

    def _check_parent(self, uow: UnitOfWork, category_id: int, parent_id: int) -> None:
        """Walk up from the new parent; reaching ``category_id`` means a cycle."""
        node = uow.store.require_category(parent_id)
        while node is not None:
            if node.id == category_id:
                raise ValidationError(
                    "Category cannot be moved under itself or a descendant",
                    context={"category_id": category_id, "parent_id": parent_id},
                )
            node = uow.store.get_category(node.parent_id) if node.parent_id is not None else None
