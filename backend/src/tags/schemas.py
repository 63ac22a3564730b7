"""Pydantic schemas for tag endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    enabled: bool = True


class TagUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    enabled: Optional[bool] = None


class TagResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    enabled: bool
    usage_count: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
