"""
Pydantic schemas for list endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kbase.schemas.content import ContentRead, empty_to_none

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


# ========================================
# Request Schemas
# ========================================

class ListCreate(BaseModel):
    """
    Request schema for creating a list.

    Example request:
        {"name": "To read this summer", "color": "#10b981", "icon": "book"}
    """

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: str = Field("#6366f1", pattern=HEX_COLOR)
    icon: str = Field("folder", max_length=50)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return empty_to_none(v)


class ListUpdate(BaseModel):
    """Partial update; omitted fields are left alone."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    icon: Optional[str] = Field(None, max_length=50)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return empty_to_none(v)

    @field_validator("name", "color", "icon")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class AddContentsRequest(BaseModel):
    """Body of POST /lists/{id}/contents."""

    model_config = ConfigDict(populate_by_name=True)

    content_ids: List[int] = Field(..., min_length=1, alias="contentIds")


class RemoveContentRequest(BaseModel):
    """Body of DELETE /lists/{id}/contents."""

    model_config = ConfigDict(populate_by_name=True)

    content_id: int = Field(..., alias="contentId")


# ========================================
# Response Schemas
# ========================================

class ListRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    is_default: bool = False
    created_at: datetime
    updated_at: datetime


class ListWithCount(ListRead):
    content_count: int = 0


class ListDetail(ListWithCount):
    contents: List[ContentRead] = []


class AddContentsResponse(BaseModel):
    message: str
    added: int


class RemoveContentResponse(BaseModel):
    success: bool = True
