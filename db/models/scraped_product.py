"""
db/models/scraped_product.py

Staged product candidates extracted by scraping jobs, awaiting catalog import.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin


class ScrapedProduct(Base, TimestampMixin):
    __tablename__ = "scraped_products"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    job_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
        comment="Originating scraping job (non-owning reference)",
    )
    provider: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    original_price: Mapped[float | None] = mapped_column(
        Numeric(12, 2, asdecimal=False),
        nullable=True,
    )
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    images: Mapped[list[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    review_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    availability: Mapped[str] = mapped_column(String(32), nullable=False, default="unknown")
    discount_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    specifications: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    source_platform: Mapped[str] = mapped_column(String(32), nullable=False)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_scraped_products_job_id", "job_id"),
        Index("ix_scraped_products_source_platform", "source_platform"),
        Index("ix_scraped_products_source_url", "source_url"),
        Index("ix_scraped_products_scraped_at", "scraped_at"),
    )
