"""create scraping job, staging and catalog tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "scraping_jobs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "urls",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Submitted source URLs in submission order",
        ),
        sa.Column(
            "platform",
            sa.String(length=32),
            nullable=False,
            comment="amazon, alibaba, aliexpress, ebay, walmart, shopify, generic, multi-platform",
        ),
        sa.Column("settings", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("total_urls", sa.Integer(), nullable=False),
        sa.Column("processed_urls", sa.Integer(), nullable=False),
        sa.Column("successful_scrapes", sa.Integer(), nullable=False),
        sa.Column("failed_scrapes", sa.Integer(), nullable=False),
        sa.Column("imported_products", sa.Integer(), nullable=False),
        sa.Column(
            "results",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Per-URL outcome records",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scraping_jobs_status", "scraping_jobs", ["status"], unique=False)
    op.create_index("ix_scraping_jobs_created_at", "scraping_jobs", ["created_at"], unique=False)
    op.create_index(
        "ix_scraping_jobs_status_created_at",
        "scraping_jobs",
        ["status", "created_at"],
        unique=False,
    )
    op.create_index("ix_scraping_jobs_created_by", "scraping_jobs", ["created_by"], unique=False)

    op.create_table(
        "scraped_products",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "job_id",
            postgresql.UUID(as_uuid=True),
            nullable=True,
            comment="Originating scraping job (non-owning reference)",
        ),
        sa.Column("provider", sa.String(length=64), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=True),
        sa.Column("original_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("review_count", sa.Integer(), nullable=True),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("availability", sa.String(length=32), nullable=False),
        sa.Column("discount_percentage", sa.Float(), nullable=True),
        sa.Column("specifications", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("source_platform", sa.String(length=32), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("scraped_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_scraped_products_job_id", "scraped_products", ["job_id"], unique=False)
    op.create_index(
        "ix_scraped_products_source_platform",
        "scraped_products",
        ["source_platform"],
        unique=False,
    )
    op.create_index("ix_scraped_products_source_url", "scraped_products", ["source_url"], unique=False)
    op.create_index("ix_scraped_products_scraped_at", "scraped_products", ["scraped_at"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("short_description", sa.String(length=300), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("original_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("review_count", sa.Integer(), nullable=True),
        sa.Column("category_id", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("in_stock", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_products_category_id", "products", ["category_id"], unique=False)
    op.create_index("ix_products_is_active", "products", ["is_active"], unique=False)

    op.create_table(
        "imported_products",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("scraped_product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("modifications", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_imported_products_scraped_product_id",
        "imported_products",
        ["scraped_product_id"],
        unique=False,
    )
    op.create_index("ix_imported_products_product_id", "imported_products", ["product_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_imported_products_product_id", table_name="imported_products")
    op.drop_index("ix_imported_products_scraped_product_id", table_name="imported_products")
    op.drop_table("imported_products")

    op.drop_index("ix_products_is_active", table_name="products")
    op.drop_index("ix_products_category_id", table_name="products")
    op.drop_table("products")

    op.drop_index("ix_scraped_products_scraped_at", table_name="scraped_products")
    op.drop_index("ix_scraped_products_source_url", table_name="scraped_products")
    op.drop_index("ix_scraped_products_source_platform", table_name="scraped_products")
    op.drop_index("ix_scraped_products_job_id", table_name="scraped_products")
    op.drop_table("scraped_products")

    op.drop_index("ix_scraping_jobs_created_by", table_name="scraping_jobs")
    op.drop_index("ix_scraping_jobs_status_created_at", table_name="scraping_jobs")
    op.drop_index("ix_scraping_jobs_created_at", table_name="scraping_jobs")
    op.drop_index("ix_scraping_jobs_status", table_name="scraping_jobs")
    op.drop_table("scraping_jobs")
