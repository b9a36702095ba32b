"""Part request/response schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class PartCreate(BaseModel):
    part_number: str = Field(..., min_length=1, max_length=100)
    part_name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    manufacturer: str | None = Field(None, max_length=100)
    description: str | None = None
    category_id: int | None = None


class PartUpdate(PartCreate):
    """Full replacement of the mutable fields of a part."""


class PartResponse(BaseModel):
    id: int
    part_number: str
    part_name: str
    price: Decimal
    manufacturer: str | None = None
    description: str | None = None
    category_id: int | None = None
    category_name: str | None = None
    created_at: datetime
    updated_at: datetime


class PartNumberCheckResponse(BaseModel):
    part_number: str
    duplicated: bool


class CountItem(BaseModel):
    label: str | None
    count: int


class PartStatistics(BaseModel):
    total_parts: int
    by_category: list[CountItem]
    by_manufacturer: list[CountItem]
    by_price_range: list[CountItem]
