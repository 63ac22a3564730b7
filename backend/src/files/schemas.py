"""Pydantic schemas for file endpoints."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class FileCreate(BaseModel):
    """Register an uploaded blob (POST /files).

    The blob itself is written to the blob store before this call; only its
    key and metadata are recorded here. The new file starts in PENDING.
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    original_name: str = Field(..., min_length=1, max_length=255)
    blob_key: str = Field(..., min_length=1, description="Key of the stored blob")
    file_type: str = Field(..., pattern="^(document|image)$")
    file_ext: str = Field(..., min_length=1, max_length=16)
    size_bytes: int = Field(0, ge=0)
    category_id: int
    cover_key: Optional[str] = None
    tag_ids: List[int] = Field(default_factory=list)

    @field_validator('title')
    @classmethod
    def check_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Field cannot be blank")
        return v.strip()

    @field_validator('file_ext')
    @classmethod
    def normalize_ext(cls, v):
        return v.lower().lstrip(".")

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Linear algebra lecture notes",
                "original_name": "la-notes.pdf",
                "blob_key": "uploads/2026/01/la-notes-7f3a.pdf",
                "file_type": "document",
                "file_ext": "pdf",
                "size_bytes": 482113,
                "category_id": 2,
                "tag_ids": [1, 4]
            }
        }


class FileUpdate(BaseModel):
    """Owner edit (PATCH /files/{id}). Omitted fields stay unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    cover_key: Optional[str] = None
    tag_ids: Optional[List[int]] = None


class FileAccessResponse(BaseModel):
    file_id: int
    blob_key: str
    view_count: int
    download_count: int


class LikeResponse(BaseModel):
    file_id: int
    like_count: int
    liked: bool = Field(..., description="True if the call added a like, False if it removed one")
