"""
Schemas for staged product candidates, imports and statistics.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProductModifications(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    price: float | None = Field(default=None, ge=0)
    category_id: str | None = None
    is_active: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ImportProductRequest(BaseModel):
    modifications: ProductModifications = Field(default_factory=ProductModifications)


class ImportProductResponse(BaseModel):
    candidate_id: str
    product_id: str
    message: str


class BulkImportRequest(BaseModel):
    candidate_ids: list[str] = Field(min_length=1)
    modifications: ProductModifications = Field(default_factory=ProductModifications)
    item_modifications: dict[str, ProductModifications] = Field(default_factory=dict)


class BulkDeleteRequest(BaseModel):
    candidate_ids: list[str] = Field(min_length=1)


class BulkItemErrorResponse(BaseModel):
    id: str
    error: str


class BulkImportResponse(BaseModel):
    imported: list[str] = Field(default_factory=list)
    errors: list[BulkItemErrorResponse] = Field(default_factory=list)
    message: str


class BulkDeleteResponse(BaseModel):
    deleted: list[str] = Field(default_factory=list)
    errors: list[BulkItemErrorResponse] = Field(default_factory=list)
    message: str


class CandidateListResponse(BaseModel):
    products: list[dict[str, Any]] = Field(default_factory=list)
    limit: int
    offset: int


class ImportStatisticsResponse(BaseModel):
    total_scraped: int
    total_imported: int
    pending_import: int
    jobs_by_status: dict[str, int] = Field(default_factory=dict)


class UrlValidationRequest(BaseModel):
    url: str


class UrlValidationResponse(BaseModel):
    url: str
    valid: bool
    platform: str | None = None
    suggestions: list[str] = Field(default_factory=list)
    error: str | None = None
