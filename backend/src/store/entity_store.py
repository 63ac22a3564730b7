"""Entity store: plain CRUD access to users, files, categories and tags.

No business rules live here. State writes made on behalf of the moderation
engine go through ``conditional_update_*`` which re-checks the expected old
value inside the UPDATE itself, so a concurrent writer that got there first
makes the call return False instead of being silently overwritten.
"""

from typing import Any, Dict, List, Optional, Type

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from domain.moderation.errors import NotFoundError
from models.category import Category
from models.file import File
from models.file_like import FileLike
from models.tag import Tag, file_tag
from models.user import User


def expire_cached(session: Session, model: Type, entity_id: int, attrs: Optional[List[str]] = None) -> None:
    """Expire an identity-map instance after a bulk UPDATE bypassed the ORM."""
    instance = session.identity_map.get(session.identity_key(model, entity_id))
    if instance is not None:
        session.expire(instance, attrs)


class EntityStore:
    """Repository over the canonical entity tables."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user(self, user_id: int, lock: bool = False) -> Optional[User]:
        return self._get(User, user_id, lock)

    def get_file(self, file_id: int, lock: bool = False) -> Optional[File]:
        return self._get(File, file_id, lock)

    def get_category(self, category_id: int) -> Optional[Category]:
        return self._get(Category, category_id, False)

    def get_tag(self, tag_id: int) -> Optional[Tag]:
        return self._get(Tag, tag_id, False)

    def require_user(self, user_id: int, lock: bool = False) -> User:
        user = self.get_user(user_id, lock)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", context={"user_id": user_id})
        return user

    def require_file(self, file_id: int, lock: bool = False) -> File:
        file = self.get_file(file_id, lock)
        if file is None:
            raise NotFoundError(f"File {file_id} not found", context={"file_id": file_id})
        return file

    def require_category(self, category_id: int) -> Category:
        category = self.get_category(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found", context={"category_id": category_id})
        return category

    def require_tag(self, tag_id: int) -> Tag:
        tag = self.get_tag(tag_id)
        if tag is None:
            raise NotFoundError(f"Tag {tag_id} not found", context={"tag_id": tag_id})
        return tag

    def lock_file(self, file_id: int) -> File:
        """Load a file with a row lock held until the unit of work ends."""
        return self.require_file(file_id, lock=True)

    def lock_user(self, user_id: int) -> User:
        """Load a user with a row lock held until the unit of work ends."""
        return self.require_user(user_id, lock=True)

    def _get(self, model, entity_id: int, lock: bool):
        """Load by primary key, optionally with a row lock.

        ``lock=True`` issues SELECT ... FOR UPDATE (ignored by SQLite) and
        refreshes any cached instance so callers validate against the row as
        it is now.
        """
        query = self.session.query(model).filter(model.id == entity_id)
        if lock:
            query = query.with_for_update().populate_existing()
        return query.first()

    def category_by_name(self, name: str) -> Optional[Category]:
        return self.session.query(Category).filter(Category.name == name).first()

    def tag_by_name(self, name: str) -> Optional[Tag]:
        return self.session.query(Tag).filter(Tag.name == name).first()

    def files_owned_by(self, user_id: int) -> List[File]:
        return (
            self.session.query(File)
            .filter(File.owner_id == user_id)
            .order_by(File.id)
            .with_for_update()
            .all()
        )

    def count_child_categories(self, category_id: int) -> int:
        return self.session.scalar(
            select(func.count()).select_from(Category).where(Category.parent_id == category_id)
        )

    def count_files_in_category(self, category_id: int) -> int:
        return self.session.scalar(
            select(func.count()).select_from(File).where(File.category_id == category_id)
        )

    def count_files_with_tag(self, tag_id: int) -> int:
        return self.session.scalar(
            select(func.count()).select_from(file_tag).where(file_tag.c.tag_id == tag_id)
        )

    def liked_file_ids(self, user_id: int) -> List[int]:
        return list(self.session.scalars(
            select(FileLike.file_id).where(FileLike.user_id == user_id).order_by(FileLike.file_id)
        ))

    def find_like(self, user_id: int, file_id: int) -> Optional[FileLike]:
        return self.session.query(FileLike).filter(
            FileLike.user_id == user_id,
            FileLike.file_id == file_id,
        ).first()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, entity) -> None:
        self.session.add(entity)
        self.session.flush()

    def conditional_update_file(self, file_id: int, expected_status: str, fields: Dict[str, Any]) -> bool:
        """UPDATE file SET ... WHERE id = :id AND audit_status = :expected.

        Returns:
            True if the row matched and was updated, False if the status had
            already changed (or the row is gone).
        """
        result = self.session.execute(
            update(File)
            .where(File.id == file_id, File.audit_status == expected_status)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        expire_cached(self.session, File, file_id)
        return result.rowcount == 1

    def conditional_update_user(self, user_id: int, expected: Dict[str, Any], fields: Dict[str, Any]) -> bool:
        """UPDATE user SET ... WHERE id = :id AND <column> = <expected value> ..."""
        criteria = [User.id == user_id]
        for column, value in expected.items():
            criteria.append(getattr(User, column) == value)
        result = self.session.execute(
            update(User)
            .where(*criteria)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        expire_cached(self.session, User, user_id)
        return result.rowcount == 1

    def delete_likes_of_file(self, file_id: int) -> int:
        result = self.session.execute(
            delete(FileLike).where(FileLike.file_id == file_id).execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_like(self, like: FileLike) -> None:
        self.session.delete(like)
        self.session.flush()

    def delete_likes_by_user(self, user_id: int) -> int:
        result = self.session.execute(
            delete(FileLike).where(FileLike.user_id == user_id).execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete(self, entity) -> None:
        self.session.delete(entity)
        self.session.flush()
