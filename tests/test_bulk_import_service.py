"""
tests/test_bulk_import_service.py

Candidate to catalog field mapping and per-item bulk import/delete results.
"""

from __future__ import annotations

import pytest

from app.domain.scraping import Availability
from app.scraping.errors import RecordNotFoundError, ScrapingValidationError
from app.services.bulk_import_service import BulkImportCoordinator, build_product_fields
from fakes import make_candidate

IMAGES = [
    "https://cdn.example.com/1.jpg",
    "https://cdn.example.com/2.jpg",
    "https://cdn.example.com/3.jpg",
]


@pytest.fixture()
def coordinator(product_store) -> BulkImportCoordinator:
    return BulkImportCoordinator(product_store=product_store)


class TestBuildProductFields:
    def test_defaults_from_candidate(self) -> None:
        fields = build_product_fields(make_candidate(images=IMAGES), imported_by="user-1")

        assert fields["name"] == "Echo Dot (4th Gen)"
        assert fields["description"] == "Smart speaker with Alexa."
        assert fields["short_description"] == "Smart speaker with Alexa."
        assert fields["price"] == 49.99
        assert fields["image_url"] == IMAGES[0]
        assert fields["images"] == IMAGES[1:]
        assert fields["is_active"] is True
        assert fields["in_stock"] is True
        assert fields["category_id"] is None
        assert fields["created_by"] == "user-1"

    def test_modifications_override_candidate(self) -> None:
        fields = build_product_fields(
            make_candidate(),
            modifications={
                "name": "Echo Dot Bundle",
                "price": "39.5",
                "category_id": 12,
                "is_active": False,
                "sku": "ignored",
            },
        )

        assert fields["name"] == "Echo Dot Bundle"
        assert fields["price"] == 39.5
        assert fields["category_id"] == "12"
        assert fields["is_active"] is False
        assert "sku" not in fields

    def test_missing_title_and_price_use_placeholders(self) -> None:
        fields = build_product_fields(make_candidate(title="", price=None, images=[]))

        assert fields["name"] == "Imported Product"
        assert fields["price"] == 0.0
        assert fields["image_url"] is None
        assert fields["images"] == []

    def test_long_values_are_cut(self) -> None:
        candidate = make_candidate(title="x" * 400)
        fields = build_product_fields(candidate)
        assert len(fields["name"]) == 255

    def test_out_of_stock_candidate_imported_as_not_in_stock(self) -> None:
        fields = build_product_fields(make_candidate(availability=Availability.OUT_OF_STOCK))
        assert fields["in_stock"] is False

    @pytest.mark.parametrize(
        "modifications",
        [{"price": "abc"}, {"price": -1}, {"is_active": "yes"}],
    )
    def test_invalid_modifications_rejected(self, modifications) -> None:
        with pytest.raises(ScrapingValidationError):
            build_product_fields(make_candidate(), modifications=modifications)


class TestImportOne:
    def test_creates_product_and_import_record(self, coordinator, product_store) -> None:
        candidate_id = product_store.store_candidate(make_candidate(), job_id=None, provider="best_effort")

        product_id = coordinator.import_one(
            candidate_id,
            modifications={"price": 45.0},
            imported_by="user-1",
        )

        assert product_store.products[product_id]["price"] == 45.0
        assert product_store.imports == [
            {"scraped_product_id": candidate_id, "product_id": product_id, "modifications": {"price": 45.0}}
        ]
        assert product_store.get_candidate(candidate_id).imported is True

    def test_unknown_candidate(self, coordinator) -> None:
        with pytest.raises(RecordNotFoundError):
            coordinator.import_one("missing")


class TestBulkOperations:
    def test_bulk_import_reports_per_item_errors(self, coordinator, product_store) -> None:
        id1 = product_store.store_candidate(make_candidate(), job_id=None, provider="best_effort")

        result = coordinator.bulk_import([id1, "id2"], imported_by="user-1")

        assert result.succeeded_ids == [id1]
        assert [error.id for error in result.errors] == ["id2"]
        assert "not found" in result.errors[0].error
        assert len(product_store.products) == 1

    def test_item_modifications_merge_over_global(self, coordinator, product_store) -> None:
        first = product_store.store_candidate(make_candidate(), job_id=None, provider=None)
        second = product_store.store_candidate(make_candidate(), job_id=None, provider=None)

        result = coordinator.bulk_import(
            [first, second],
            modifications={"category_id": "cat-1", "is_active": False},
            item_modifications={second: {"is_active": True, "name": "Renamed"}},
        )

        assert len(result.succeeded_ids) == 2
        products = {
            item["scraped_product_id"]: product_store.products[item["product_id"]]
            for item in product_store.imports
        }
        assert products[first]["is_active"] is False
        assert products[first]["category_id"] == "cat-1"
        assert products[second]["is_active"] is True
        assert products[second]["name"] == "Renamed"
        assert products[second]["category_id"] == "cat-1"

    def test_invalid_item_does_not_stop_batch(self, coordinator, product_store) -> None:
        good = product_store.store_candidate(make_candidate(), job_id=None, provider=None)
        bad = product_store.store_candidate(make_candidate(), job_id=None, provider=None)

        result = coordinator.bulk_import([bad, good], item_modifications={bad: {"price": -5}})

        assert result.succeeded_ids == [good]
        assert result.errors[0].id == bad

    def test_bulk_delete_removes_imported_products(self, coordinator, product_store) -> None:
        candidate_id = product_store.store_candidate(make_candidate(), job_id=None, provider=None)
        coordinator.import_one(candidate_id)

        result = coordinator.bulk_delete([candidate_id, "missing"])

        assert result.succeeded_ids == [candidate_id]
        assert [error.id for error in result.errors] == ["missing"]
        assert product_store.candidates == {}
        assert product_store.products == {}
