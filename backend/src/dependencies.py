"""Global FastAPI dependencies wiring services to the request session.

Every service receives a unit-of-work factory bound to the request's
session; nothing reaches for a module-level connection on its own.
"""

from dataclasses import dataclass

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from config import settings
from database import get_db, unit_of_work_factory, UnitOfWorkFactory
from categories.service import CategoryService
from files.service import FileService
from moderation.engine import ModerationEngine
from tags.service import TagService


def get_uow_factory(db: Session = Depends(get_db)) -> UnitOfWorkFactory:
    return unit_of_work_factory(db)


def get_moderation_engine(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> ModerationEngine:
    return ModerationEngine(uow_factory, remark_max_length=settings.REMARK_MAX_LENGTH)


def get_file_service(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> FileService:
    return FileService(uow_factory)


def get_category_service(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> CategoryService:
    return CategoryService(uow_factory)


def get_tag_service(uow_factory: UnitOfWorkFactory = Depends(get_uow_factory)) -> TagService:
    return TagService(uow_factory)


@dataclass
class Page:
    page: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def get_page(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description=f"Entries per page (max {settings.MAX_PAGE_SIZE})",
    ),
) -> Page:
    return Page(page=page, per_page=per_page)
