"""Statistics endpoints. Ban records and user statistics need ADMIN, the rest VOLUNTEER."""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth.dependencies import require_role
from database import get_db
from domain.moderation.enums import UserRole
from models.user import User
from . import service


router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("/overview")
def overview(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.overview(db)


@router.get("/auditors")
def auditors(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.auditor_leaderboard(db, limit=limit)


@router.get("/hot-files")
def hot_files(
    by: Literal["views", "downloads", "likes"] = Query("views"),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.hot_files(db, by=by, limit=limit)


@router.get("/windows/{window}")
def window_summary(
    window: Literal["today", "week", "month", "all"],
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.window_summary(db, window)


@router.get("/ban-records")
def ban_records(
    recent: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    return service.ban_records(db, recent=recent)


@router.get("/category-files")
def category_files(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.category_file_counts(db)


@router.get("/monthly-uploads")
def monthly_uploads(
    months: int = Query(12, ge=1, le=60),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.monthly_uploads(db, months=months)


@router.get("/users")
def user_statistics(
    months: int = Query(12, ge=1, le=60),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    return service.user_statistics(db, months=months)


@router.get("/audits")
def audit_statistics(
    months: int = Query(12, ge=1, le=60),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.VOLUNTEER)),
):
    return service.audit_statistics(db, months=months)
