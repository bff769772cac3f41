"""
app/api/routers/scraped_products.py

Staged product candidate listing, import, deletion and URL validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_current_actor, to_http_exception
from app.schemas.scraped_products import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkImportRequest,
    BulkImportResponse,
    BulkItemErrorResponse,
    CandidateListResponse,
    ImportProductRequest,
    ImportProductResponse,
    ImportStatisticsResponse,
    UrlValidationRequest,
    UrlValidationResponse,
)
from app.schemas.scraping_jobs import MessageResponse
from app.scraping.errors import ScrapingError
from app.scraping.platforms import validate_url
from app.scraping.storage import ProductStore, get_product_store
from app.services.bulk_import_service import BulkImportCoordinator, get_bulk_import_coordinator

router = APIRouter(prefix="/scraper", tags=["scraper-products"])


@router.get("/products", response_model=CandidateListResponse)
def list_scraped_products(
    platform: str | None = Query(default=None, description="Optional platform filter"),
    job_id: str | None = Query(default=None, description="Optional originating job filter"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: str = Depends(get_current_actor),
    store: ProductStore = Depends(get_product_store),
) -> CandidateListResponse:
    candidates = store.list_candidates(platform=platform, job_id=job_id, limit=limit, offset=offset)
    return CandidateListResponse(
        products=[candidate.to_payload() for candidate in candidates],
        limit=limit,
        offset=offset,
    )


@router.post("/products/bulk-import", response_model=BulkImportResponse)
def bulk_import_products(
    payload: BulkImportRequest,
    actor: str = Depends(get_current_actor),
    coordinator: BulkImportCoordinator = Depends(get_bulk_import_coordinator),
) -> BulkImportResponse:
    result = coordinator.bulk_import(
        payload.candidate_ids,
        modifications=payload.modifications.to_dict(),
        item_modifications={
            candidate_id: modifications.to_dict()
            for candidate_id, modifications in payload.item_modifications.items()
        },
        imported_by=actor,
    )
    return BulkImportResponse(
        imported=result.succeeded_ids,
        errors=[BulkItemErrorResponse(id=item.id, error=item.error) for item in result.errors],
        message=f"Imported {len(result.succeeded_ids)} products, {len(result.errors)} errors",
    )


@router.post("/products/bulk-delete", response_model=BulkDeleteResponse)
def bulk_delete_products(
    payload: BulkDeleteRequest,
    actor: str = Depends(get_current_actor),
    coordinator: BulkImportCoordinator = Depends(get_bulk_import_coordinator),
) -> BulkDeleteResponse:
    result = coordinator.bulk_delete(payload.candidate_ids)
    return BulkDeleteResponse(
        deleted=result.succeeded_ids,
        errors=[BulkItemErrorResponse(id=item.id, error=item.error) for item in result.errors],
        message=f"Deleted {len(result.succeeded_ids)} products, {len(result.errors)} errors",
    )


@router.post("/products/{candidate_id}/import", response_model=ImportProductResponse)
def import_product(
    candidate_id: str,
    payload: ImportProductRequest | None = None,
    actor: str = Depends(get_current_actor),
    coordinator: BulkImportCoordinator = Depends(get_bulk_import_coordinator),
) -> ImportProductResponse:
    modifications = payload.modifications.to_dict() if payload else {}
    try:
        product_id = coordinator.import_one(
            candidate_id,
            modifications=modifications,
            imported_by=actor,
        )
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc
    return ImportProductResponse(
        candidate_id=candidate_id,
        product_id=product_id,
        message="Product imported successfully",
    )


@router.delete("/products/{candidate_id}", response_model=MessageResponse)
def delete_product(
    candidate_id: str,
    actor: str = Depends(get_current_actor),
    coordinator: BulkImportCoordinator = Depends(get_bulk_import_coordinator),
) -> MessageResponse:
    try:
        coordinator.delete_one(candidate_id)
    except ScrapingError as exc:
        raise to_http_exception(exc) from exc
    return MessageResponse(message="Product deleted successfully")


@router.get("/statistics", response_model=ImportStatisticsResponse)
def get_import_statistics(
    actor: str = Depends(get_current_actor),
    store: ProductStore = Depends(get_product_store),
) -> ImportStatisticsResponse:
    stats = store.statistics(created_by=actor)
    return ImportStatisticsResponse(
        total_scraped=stats.total_scraped,
        total_imported=stats.total_imported,
        pending_import=stats.pending_import,
        jobs_by_status=stats.jobs_by_status,
    )


@router.post("/validate", response_model=UrlValidationResponse)
def validate_product_url(
    payload: UrlValidationRequest,
    actor: str = Depends(get_current_actor),
) -> UrlValidationResponse:
    result = validate_url(payload.url)
    return UrlValidationResponse(
        url=result.url,
        valid=result.valid,
        platform=result.platform,
        suggestions=result.suggestions,
        error=result.error,
    )
