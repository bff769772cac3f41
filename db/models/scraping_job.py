"""
db/models/scraping_job.py

Scraping job model: one submitted batch of product URLs and its progress.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin


class ScrapingJobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    ACTIVE = frozenset({PENDING, PROCESSING})
    TERMINAL = frozenset({COMPLETED, FAILED})
    ALL = frozenset({PENDING, PROCESSING, COMPLETED, FAILED})


class ScrapingJob(Base, TimestampMixin):
    __tablename__ = "scraping_jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    urls: Mapped[list[str]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="Submitted source URLs in submission order",
    )
    platform: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="amazon, alibaba, aliexpress, ebay, walmart, shopify, generic, multi-platform",
    )
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ScrapingJobStatus.PENDING,
    )
    total_urls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_urls: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_scrapes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_scrapes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    imported_products: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    results: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
        comment="Per-URL outcome records",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_scraping_jobs_status", "status"),
        Index("ix_scraping_jobs_created_at", "created_at"),
        Index("ix_scraping_jobs_status_created_at", "status", "created_at"),
        Index("ix_scraping_jobs_created_by", "created_by"),
    )
