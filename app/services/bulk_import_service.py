"""
app/services/bulk_import_service.py

Promotion of staged product candidates into the catalog, one at a time or in
bulk with per-item error aggregation.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

from app.domain.scraping import (
    Availability,
    BulkItemError,
    BulkOperationResult,
    ScrapedProductCandidate,
)
from app.scraping.errors import RecordNotFoundError, ScrapingValidationError
from app.scraping.logging_utils import log_event
from app.scraping.storage import ProductStore, get_product_store

logger = logging.getLogger(__name__)

RECOGNIZED_MODIFICATIONS: frozenset[str] = frozenset(
    {"name", "description", "price", "category_id", "is_active"}
)
DEFAULT_PRODUCT_NAME = "Imported Product"
MAX_NAME_LENGTH = 255
MAX_SHORT_DESCRIPTION_LENGTH = 300


def _clean_modifications(modifications: Mapping[str, Any] | None) -> dict[str, Any]:
    if not modifications:
        return {}
    return {
        key: value
        for key, value in modifications.items()
        if key in RECOGNIZED_MODIFICATIONS and value is not None
    }


def build_product_fields(
    candidate: ScrapedProductCandidate,
    *,
    modifications: Mapping[str, Any] | None = None,
    imported_by: str | None = None,
) -> dict[str, Any]:
    """
    Map a candidate plus overrides onto catalog product columns.

    The first image becomes `image_url`; the remaining images are kept as the
    gallery.
    """

    mods = _clean_modifications(modifications)

    name = str(mods.get("name") or candidate.title or DEFAULT_PRODUCT_NAME)[:MAX_NAME_LENGTH]
    description = str(mods.get("description") or candidate.description or "")

    price_value = mods.get("price", candidate.price)
    try:
        price = float(price_value) if price_value is not None else 0.0
    except (TypeError, ValueError) as exc:
        raise ScrapingValidationError("Modification 'price' must be a number.") from exc
    if price < 0:
        raise ScrapingValidationError("Modification 'price' must not be negative.")

    is_active = mods.get("is_active", True)
    if not isinstance(is_active, bool):
        raise ScrapingValidationError("Modification 'is_active' must be a boolean.")

    images = list(candidate.images)
    return {
        "name": name,
        "description": description,
        "short_description": (candidate.description or "")[:MAX_SHORT_DESCRIPTION_LENGTH],
        "price": price,
        "original_price": candidate.original_price,
        "image_url": images[0] if images else None,
        "images": images[1:],
        "brand": candidate.brand,
        "rating": candidate.rating,
        "review_count": candidate.review_count,
        "category_id": str(mods["category_id"]) if mods.get("category_id") else None,
        "is_active": is_active,
        "in_stock": candidate.availability != Availability.OUT_OF_STOCK,
        "created_by": imported_by,
    }


class BulkImportCoordinator:
    """
    Imports and deletes staged candidates.

    Bulk operations handle each id independently: a failing id is reported in
    `errors` and never stops the batch.
    """

    def __init__(self, *, product_store: ProductStore | None = None) -> None:
        self._store = product_store or get_product_store()

    def import_one(
        self,
        candidate_id: str,
        *,
        modifications: Mapping[str, Any] | None = None,
        imported_by: str | None = None,
    ) -> str:
        stored = self._store.get_candidate(candidate_id)
        if stored is None:
            raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")

        fields = build_product_fields(
            stored.candidate,
            modifications=modifications,
            imported_by=imported_by,
        )
        product_id = self._store.import_candidate(
            candidate_id,
            product_fields=fields,
            modifications=dict(modifications or {}),
        )
        log_event(
            logger,
            logging.INFO,
            "candidate_imported",
            candidate_id=candidate_id,
            product_id=product_id,
            images=len(stored.candidate.images),
        )
        return product_id

    def bulk_import(
        self,
        candidate_ids: Sequence[str],
        *,
        modifications: Mapping[str, Any] | None = None,
        item_modifications: Mapping[str, Mapping[str, Any]] | None = None,
        imported_by: str | None = None,
    ) -> BulkOperationResult:
        result = BulkOperationResult()
        per_item = item_modifications or {}
        for candidate_id in candidate_ids:
            merged = {**(modifications or {}), **(per_item.get(candidate_id) or {})}
            try:
                self.import_one(candidate_id, modifications=merged, imported_by=imported_by)
            except Exception as exc:
                result.errors.append(BulkItemError(id=candidate_id, error=str(exc)))
                log_event(
                    logger,
                    logging.WARNING,
                    "candidate_import_failed",
                    candidate_id=candidate_id,
                    error=str(exc),
                )
            else:
                result.succeeded_ids.append(candidate_id)
        return result

    def delete_one(self, candidate_id: str) -> None:
        self._store.delete_candidate(candidate_id)
        log_event(logger, logging.INFO, "candidate_deleted", candidate_id=candidate_id)

    def bulk_delete(self, candidate_ids: Sequence[str]) -> BulkOperationResult:
        result = BulkOperationResult()
        for candidate_id in candidate_ids:
            try:
                self.delete_one(candidate_id)
            except Exception as exc:
                result.errors.append(BulkItemError(id=candidate_id, error=str(exc)))
            else:
                result.succeeded_ids.append(candidate_id)
        return result


@lru_cache(maxsize=1)
def get_bulk_import_coordinator() -> BulkImportCoordinator:
    return BulkImportCoordinator()
