"""Category request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    display_order: int = 0
    is_active: bool = True
    parent_id: int | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    display_order: int | None = None
    is_active: bool | None = None
    parent_id: int | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    display_order: int
    is_active: bool
    parent_id: int | None = None
    level: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CategoryTreeNode(CategoryResponse):
    children: list[CategoryResponse] = []


class CategoryStatistics(BaseModel):
    total_categories: int
    parent_categories: int
    child_categories: int
    categories_with_parts: int
    categories_without_parts: int
    deletable_categories: int


class DeletableResponse(BaseModel):
    id: int
    deletable: bool


class NameExistsResponse(BaseModel):
    name: str
    exists: bool
