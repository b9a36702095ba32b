"""CSV import result schemas."""

from pydantic import BaseModel


class RowMessage(BaseModel):
    row: int
    message: str


class ImportOutcomeResponse(BaseModel):
    success: bool
    success_count: int
    error_count: int
    skip_count: int
    total_count: int
    error_messages: list[RowMessage]
    skipped_messages: list[RowMessage]
