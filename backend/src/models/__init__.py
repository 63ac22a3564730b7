"""SQLAlchemy Models for DocShare"""

from .base import Base
from .user import User
from .category import Category
from .tag import Tag, file_tag
from .file import File
from .file_like import FileLike
from .audit_record import AuditRecord, ImmutableRecordError

__all__ = [
    "Base",
    "User",
    "Category",
    "Tag",
    "file_tag",
    "File",
    "FileLike",
    "AuditRecord",
    "ImmutableRecordError",
]
