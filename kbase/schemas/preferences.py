"""
Pydantic schemas for user preferences.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from kbase.models.user import SortField, SortOrder, ViewMode
from kbase.schemas.content import empty_to_none

ItemsPerPage = Literal[10, 20, 50]


class PreferencesRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    display_name: Optional[str] = None
    default_view: ViewMode = ViewMode.LIST
    default_sort: SortField = SortField.CREATED_AT
    default_sort_order: SortOrder = SortOrder.DESC
    items_per_page: int = 20


class PreferencesUpdate(BaseModel):
    """
    Partial preferences update.

    Example request:
        {"default_view": "grid", "items_per_page": 50}
    """

    display_name: Optional[str] = Field(None, max_length=100)
    default_view: Optional[ViewMode] = None
    default_sort: Optional[SortField] = None
    default_sort_order: Optional[SortOrder] = None
    items_per_page: Optional[ItemsPerPage] = None

    @field_validator("display_name", mode="before")
    @classmethod
    def blank_display_name(cls, v):
        return empty_to_none(v)

    @field_validator("default_view", "default_sort", "default_sort_order", "items_per_page")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v
