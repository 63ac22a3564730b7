"""Tag service. A tag referenced by any file cannot be deleted."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from database import UnitOfWork, UnitOfWorkFactory
from domain.moderation.enums import Transition
from domain.moderation.errors import ConflictError, ValidationError
from domain.moderation.policy import Actor, authorize
from models.tag import Tag

logger = logging.getLogger(__name__)


class TagService:

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def list_tags(self) -> List[Dict[str, Any]]:
        with self.uow_factory() as uow:
            return [tag.to_dict() for tag in uow.session.query(Tag).order_by(Tag.id).all()]

    def create_tag(
        self,
        actor: Actor,
        name: str,
        description: Optional[str] = None,
        enabled: bool = True,
    ) -> Dict[str, Any]:
        authorize(actor, Transition.TAG_CREATE)
        with self.uow_factory() as uow:
            tag = Tag(name=self._check_name(uow, name), description=description, enabled=enabled)
            uow.store.add(tag)
            snapshot = tag.to_dict()
        logger.info(f"Tag {snapshot['id']} created", extra={"actor_id": actor.id})
        return snapshot

    def update_tag(
        self,
        actor: Actor,
        tag_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        enabled: Optional[bool] = None,
    ) -> Dict[str, Any]:
        with self.uow_factory() as uow:
            tag = uow.store.require_tag(tag_id)
            authorize(actor, Transition.TAG_UPDATE)
            if name is not None and name.strip() != tag.name:
                tag.name = self._check_name(uow, name)
            if description is not None:
                tag.description = description
            if enabled is not None:
                tag.enabled = enabled
            tag.updated_at = datetime.now(timezone.utc)
            uow.flush()
            snapshot = tag.to_dict()
        return snapshot

    def delete_tag(self, actor: Actor, tag_id: int) -> None:
        """Delete an unused tag.

        Usage is read from the file_tag relation, not the cached
        ``usage_count``, so a drifted counter cannot unblock a delete.
        """
        with self.uow_factory() as uow:
            tag = uow.store.require_tag(tag_id)
            authorize(actor, Transition.TAG_DELETE)
            in_use = uow.store.count_files_with_tag(tag_id)
            if in_use:
                raise ConflictError(
                    f"Tag {tag_id} is used by {in_use} files",
                    context={"tag_id": tag_id, "files": in_use},
                )
            uow.store.delete(tag)
        logger.info(f"Tag {tag_id} deleted", extra={"actor_id": actor.id})

    def _check_name(self, uow: UnitOfWork, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tag name must not be blank", context={"field": "name"})
        if uow.store.tag_by_name(name) is not None:
            raise ConflictError(f"Tag name already exists: {name}", context={"name": name})
        return name
