"""
Repository for staged product candidates and their promotion into catalog
products.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from db.models.product import ImportedProduct, ImportedProductStatus, Product
from db.models.scraped_product import ScrapedProduct


class ScrapedProductRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add_candidate(
        self,
        *,
        job_id: uuid.UUID | None,
        provider: str | None,
        fields: dict[str, Any],
    ) -> ScrapedProduct:
        row = ScrapedProduct(job_id=job_id, provider=provider, **fields)
        self._session.add(row)
        self._session.flush()
        return row

    def get_candidate(self, candidate_id: uuid.UUID) -> ScrapedProduct | None:
        return self._session.get(ScrapedProduct, candidate_id)

    def list_candidates(
        self,
        *,
        platform: str | None = None,
        job_id: uuid.UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ScrapedProduct]:
        stmt = select(ScrapedProduct)
        if platform:
            stmt = stmt.where(ScrapedProduct.source_platform == platform)
        if job_id is not None:
            stmt = stmt.where(ScrapedProduct.job_id == job_id)
        stmt = (
            stmt.order_by(ScrapedProduct.scraped_at.desc(), ScrapedProduct.created_at.desc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def imported_candidate_ids(self, candidate_ids: list[uuid.UUID]) -> set[uuid.UUID]:
        if not candidate_ids:
            return set()
        stmt = select(ImportedProduct.scraped_product_id).where(
            ImportedProduct.scraped_product_id.in_(candidate_ids)
        )
        return set(self._session.scalars(stmt).all())

    def delete_unimported_by_source_url(self, *, source_url: str) -> int:
        imported = select(ImportedProduct.scraped_product_id)
        stmt = delete(ScrapedProduct).where(
            ScrapedProduct.source_url == source_url,
            ScrapedProduct.id.not_in(imported),
        )
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    def create_product(self, *, fields: dict[str, Any]) -> Product:
        product = Product(**fields)
        self._session.add(product)
        self._session.flush()
        return product

    def create_import_record(
        self,
        *,
        scraped_product_id: uuid.UUID,
        product_id: uuid.UUID,
        modifications: dict[str, Any],
    ) -> ImportedProduct:
        record = ImportedProduct(
            scraped_product_id=scraped_product_id,
            product_id=product_id,
            modifications=dict(modifications),
            status=ImportedProductStatus.IMPORTED,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def delete_candidate(self, candidate: ScrapedProduct) -> None:
        """
        Delete a candidate with its import records and the catalog products
        created from it.
        """

        product_ids = list(
            self._session.scalars(
                select(ImportedProduct.product_id).where(
                    ImportedProduct.scraped_product_id == candidate.id
                )
            ).all()
        )
        self._session.execute(
            delete(ImportedProduct).where(ImportedProduct.scraped_product_id == candidate.id)
        )
        if product_ids:
            self._session.execute(delete(Product).where(Product.id.in_(product_ids)))
        self._session.delete(candidate)

    def count_candidates(self) -> int:
        return int(self._session.scalar(select(func.count()).select_from(ScrapedProduct)) or 0)

    def count_imported_candidates(self) -> int:
        stmt = select(func.count(func.distinct(ImportedProduct.scraped_product_id)))
        return int(self._session.scalar(stmt) or 0)
