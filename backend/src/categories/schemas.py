"""Pydantic schemas for category endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[int] = Field(None, description="Parent category; omit for a root category")
    sort_order: int = 0
    enabled: bool = True


class CategoryUpdate(BaseModel):
    """Partial update. Send ``parent_id: null`` to move a category to the root."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    parent_id: Optional[int] = None
    sort_order: Optional[int] = None
    enabled: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    sort_order: int
    enabled: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
