"""File service.

Operations on files that are not moderation transitions: registering an
uploaded blob as a PENDING file, owner metadata edits, and the view,
download and like counters. None of these write to the audit ledger.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from database import UnitOfWork, UnitOfWorkFactory
from domain.moderation.enums import CounterKey, FileStatus, Transition, UploadStatus
from domain.moderation.errors import ForbiddenError, ValidationError
from domain.moderation.policy import Actor, authorize
from models.file import File
from models.file_like import FileLike
from models.tag import Tag

logger = logging.getLogger(__name__)


@dataclass
class NewFile:
    """Metadata of a blob that has already been written to the blob store."""
    title: str
    original_name: str
    blob_key: str
    file_type: str
    file_ext: str
    category_id: int
    size_bytes: int = 0
    description: Optional[str] = None
    cover_key: Optional[str] = None
    tag_ids: List[int] = field(default_factory=list)


def _unique(ids: List[int]) -> List[int]:
    seen = set()
    return [i for i in ids if not (i in seen or seen.add(i))]


class FileService:
    """File operations outside the moderation state machine."""

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    def create_file(self, actor: Actor, data: NewFile) -> Dict[str, Any]:
        """Register an upload as a PENDING file owned by ``actor``.

        Raises:
            ForbiddenError: The actor's upload permission is banned
            NotFoundError: Category or a tag does not exist
            ValidationError: Category or a tag is disabled
        """
        with self.uow_factory() as uow:
            owner = uow.store.lock_user(actor.id)
            if owner.upload_status == UploadStatus.BANNED.value:
                raise ForbiddenError(
                    "Upload permission is banned",
                    context={"upload_status": owner.upload_status},
                )

            category = uow.store.require_category(data.category_id)
            if not category.enabled:
                raise ValidationError(
                    f"Category {category.id} is disabled",
                    context={"category_id": category.id},
                )
            tags = self._load_tags(uow, data.tag_ids)

            file = File(
                owner_id=owner.id,
                category_id=category.id,
                title=data.title,
                description=data.description,
                original_name=data.original_name,
                blob_key=data.blob_key,
                file_type=data.file_type,
                file_ext=data.file_ext,
                size_bytes=data.size_bytes,
                cover_key=data.cover_key,
                audit_status=FileStatus.PENDING.value,
            )
            file.tags = tags
            uow.store.add(file)

            uow.counters.increment(CounterKey.USER_UPLOADS, owner.id)
            for tag in tags:
                uow.counters.increment(CounterKey.TAG_USAGE, tag.id)
            uow.flush()
            snapshot = file.to_dict()

        logger.info(
            f"File {snapshot['id']} uploaded, awaiting review",
            extra={"actor_id": actor.id, "subject_type": "FILE", "subject_id": snapshot["id"]},
        )
        return snapshot

    def update_file_metadata(
        self,
        actor: Actor,
        file_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        cover_key: Optional[str] = None,
        tag_ids: Optional[List[int]] = None,
    ) -> Dict[str, Any]:
        """Owner edit of non-status fields. ``None`` leaves a field unchanged.

        Replacing the tag set moves usage counts from the dropped tags to the
        added ones. ``audit_status`` is never touched here.
        """
        with self.uow_factory() as uow:
            file = uow.store.lock_file(file_id)
            authorize(actor, Transition.FILE_EDIT, target_owner_id=file.owner_id)

            if title is not None:
                if not title.strip():
                    raise ValidationError("Title must not be blank", context={"field": "title"})
                file.title = title.strip()
            if description is not None:
                file.description = description
            if cover_key is not None:
                file.cover_key = cover_key

            if tag_ids is not None:
                old_ids = {tag.id for tag in file.tags}
                new_tags = self._load_tags(uow, tag_ids)
                new_ids = {tag.id for tag in new_tags}
                file.tags = new_tags
                for tag_id in sorted(new_ids - old_ids):
                    uow.counters.increment(CounterKey.TAG_USAGE, tag_id)
                for tag_id in sorted(old_ids - new_ids):
                    uow.counters.decrement(CounterKey.TAG_USAGE, tag_id)

            file.updated_at = datetime.now(timezone.utc)
            uow.flush()
            snapshot = file.to_dict()
        return snapshot

    def record_view(self, file_id: int) -> Dict[str, Any]:
        return self._record_access(file_id, CounterKey.FILE_VIEWS)

    def record_download(self, file_id: int) -> Dict[str, Any]:
        """Count one download; returns the blob key the caller streams from."""
        return self._record_access(file_id, CounterKey.FILE_DOWNLOADS)

    def _record_access(self, file_id: int, key: CounterKey) -> Dict[str, Any]:
        with self.uow_factory() as uow:
            file = uow.store.require_file(file_id)
            if file.audit_status != FileStatus.APPROVED.value:
                raise ForbiddenError(
                    "File is not accessible",
                    context={"file_id": file_id, "current_status": file.audit_status},
                )
            uow.counters.increment(key, file_id)
            result = {
                "file_id": file_id,
                "blob_key": file.blob_key,
                "view_count": uow.counters.value(CounterKey.FILE_VIEWS, file_id),
                "download_count": uow.counters.value(CounterKey.FILE_DOWNLOADS, file_id),
            }
        return result

    def toggle_like(self, actor: Actor, file_id: int) -> Dict[str, Any]:
        """Like the file, or unlike it if ``actor`` already does.

        The like relation is the source of truth; ``like_count`` moves with it
        in the same unit of work.
        """
        with self.uow_factory() as uow:
            uow.store.lock_file(file_id)
            like = uow.store.find_like(actor.id, file_id)
            if like is not None:
                uow.store.delete_like(like)
                uow.counters.decrement(CounterKey.FILE_LIKES, file_id)
                liked = False
            else:
                uow.store.add(FileLike(user_id=actor.id, file_id=file_id))
                uow.counters.increment(CounterKey.FILE_LIKES, file_id)
                liked = True
            result = {
                "file_id": file_id,
                "like_count": uow.counters.value(CounterKey.FILE_LIKES, file_id),
                "liked": liked,
            }
        return result

    def _load_tags(self, uow: UnitOfWork, tag_ids: List[int]) -> List[Tag]:
        tags = []
        for tag_id in _unique(tag_ids):
            tag = uow.store.require_tag(tag_id)
            if not tag.enabled:
                raise ValidationError(f"Tag {tag_id} is disabled", context={"tag_id": tag_id})
            tags.append(tag)
        return tags
